"""
Concierge - CLI Entry Point.

Usage:
    concierge chat              Run the onboarding interview, then ask for products
    concierge chat --offline    Don't save the profile to the profile service
    concierge rank "energie"    Rank catalog products for one query
    concierge health            Check configuration
    concierge serve             Start the web API
"""

import asyncio
import logging
import sys

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.spinner import Spinner
from rich.table import Table

app = typer.Typer(
    name="concierge",
    help="Concierge - onboarding interview and supplement recommendations.",
    add_completion=False,
)
console = Console()

EXIT_WORDS = ("exit", "quit", "q")


def setup_logging(verbose: bool = False) -> None:
    """Log to stderr; quiet down the HTTP libraries."""
    from concierge.config import settings

    level = logging.DEBUG if verbose else settings.log_level
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _print_products(products) -> None:
    if not products:
        console.print("[dim]Aucun produit trouvé.[/dim]")
        return
    table = Table(show_header=True, header_style="bold")
    table.add_column("#", style="dim", width=3)
    table.add_column("Produit")
    table.add_column("Prix", justify="right")
    table.add_column("Tags", style="dim")
    for i, product in enumerate(products, 1):
        price = f"{product.price:.2f} {product.currency}"
        if product.is_on_sale:
            price = f"[green]{price}[/green] [dim](-{product.discount_percentage}%)[/dim]"
        table.add_row(str(i), product.title, price, ", ".join(product.tags[:4]))
    console.print(table)


def _print_question(result) -> None:
    console.print(f"\n[bold green]Concierge:[/bold green] {result.message}")
    if result.question and result.question.suggestions and not result.complete:
        choices = "  ".join(
            f"[cyan]{i}[/cyan]. {label}" for i, label in enumerate(result.question.suggestions, 1)
        )
        hint = " (plusieurs choix séparés par des virgules)" if result.question.allow_multiple else ""
        console.print(f"[dim]Choix{hint}:[/dim] {choices}")


def _print_nutrition(profile) -> None:
    from onboarding.nutrition import estimate_for_profile

    estimate = estimate_for_profile(profile)
    if estimate is None:
        return
    console.print(
        f"\n[dim]Besoins estimés: {estimate.tdee:.0f} kcal/jour "
        f"(métabolisme de base {estimate.bmr:.0f} kcal), "
        f"{estimate.protein_grams:.0f} g de protéines[/dim]"
    )


def _as_selections(user_input: str, suggestions: tuple[str, ...]) -> tuple[list[str], list[str]]:
    """
    Map '1, 3' or typed labels (any case) to bubble labels.

    Returns (picked labels, parts that match no label).
    """
    by_label = {label.lower(): label for label in suggestions}
    picks, unmatched = [], []
    for part in user_input.split(","):
        part = part.strip()
        if not part:
            continue
        if part.isdigit() and 1 <= int(part) <= len(suggestions):
            picks.append(suggestions[int(part) - 1])
        elif part.lower() in by_label:
            picks.append(by_label[part.lower()])
        else:
            unmatched.append(part)
    return picks, unmatched


async def _answer_bubble_step(machine, info, user_input: str):
    """
    Answer a bubble step from typed input.

    Exact picks go through the selection path. Anything else is read as a
    custom answer so the lexicon keyword tables apply; steps without custom
    answers fall back to the selection parser's synonym matching.
    """
    picks, unmatched = _as_selections(user_input, info.suggestions)
    if not unmatched:
        return await machine.handle_selection(picks)
    if not machine.enable_custom_input():
        return await machine.handle_selection(unmatched)
    result = await machine.handle_text(", ".join(picks + unmatched))
    machine.disable_custom_input()
    return result


async def _run_interview(machine, session_logger) -> bool:
    """Interview loop. Returns False if the visitor quit before completing."""
    from onboarding.parser import is_back_command, is_summary_command

    _print_question(machine.start())

    while not machine.is_complete:
        user_input = console.input("\n[bold blue]Vous:[/bold blue] ").strip()
        if user_input.lower() in EXIT_WORDS:
            return False
        if not user_input:
            continue

        info = machine.current_question()
        is_command = is_back_command(user_input, machine.lexicon) or is_summary_command(
            user_input, machine.lexicon
        )
        if info and info.has_bubbles and not is_command:
            result = await _answer_bubble_step(machine, info, user_input)
        else:
            result = await machine.handle_text(user_input)

        _print_question(result)
        if result.kind == "persist_failed":
            console.print("[yellow]Le profil n'a pas pu être enregistré. Réessayez votre dernière réponse.[/yellow]")

    return True


async def _run_recommendations(service, profile) -> None:
    """Free-form product questions, with the yes/no combo follow-up."""
    from concierge.catalog import CatalogError

    pending = None
    while True:
        user_input = console.input("\n[bold blue]Vous:[/bold blue] ").strip()
        if user_input.lower() in EXIT_WORDS:
            return
        if not user_input:
            continue

        if pending is not None:
            accepted, message, combos = service.respond_to_suggested_combo(user_input, pending)
            pending = None
            console.print(f"\n[bold green]Concierge:[/bold green] {message}")
            for combo in combos:
                console.print(Panel.fit(combo.benefits, title=combo.name, border_style="cyan"))
                _print_products(combo.products)
            continue

        try:
            with Live(Spinner("dots", text="Recherche..."), console=console, transient=True):
                attachments = await service.recommend(user_input, profile)
        except CatalogError as e:
            console.print(f"\n[red]Recherche impossible: {e}[/red]")
            continue

        _print_products(attachments.recommended_products)
        for combo in attachments.recommended_combos:
            titles = ", ".join(p.title for p in combo.products)
            console.print(f"[cyan]Combo[/cyan] {combo.name}: [dim]{titles}[/dim]")
        if attachments.suggested_combo:
            pending = attachments.suggested_combo
            console.print(f"\n[bold green]Concierge:[/bold green] {pending.prompt}")


@app.command()
def chat(
    user_id: str = typer.Option("cli-user", "--user", "-u", help="Visitor id for the profile service"),
    offline: bool = typer.Option(False, "--offline", help="Complete the interview without saving the profile"),
    log_session: bool = typer.Option(False, "--log", help="Enable session logging to session_logs/"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
) -> None:
    """Run the onboarding interview, then recommend products."""
    load_dotenv()
    setup_logging(verbose)

    from concierge.config import settings
    from concierge.catalog import StorefrontCatalog
    from concierge.observability import SessionLogger
    from concierge.recommendation import RecommendationService
    from onboarding import OnboardingMachine, OnboardingState
    from onboarding.persistence import ProfileClient

    session_logger = None
    if log_session:
        session_logger = SessionLogger()
        console.print(f"[dim]Session logging enabled: {session_logger.log_path}[/dim]")

    console.print(
        Panel.fit(
            "[bold green]Concierge[/bold green]\n"
            "Votre assistant nutrition et compléments.\n\n"
            "[dim]Tapez 'retour' pour revenir, 'résumé' pour voir vos réponses.[/dim]\n"
            "[dim]Tapez 'exit' ou 'quit' pour quitter.[/dim]",
            title="Bienvenue",
            border_style="green",
        )
    )

    store = None if offline else ProfileClient()
    machine = OnboardingMachine(
        state=OnboardingState(user_id=user_id),
        store=store,
        session_logger=session_logger,
    )

    async def run() -> None:
        try:
            if not await _run_interview(machine, session_logger):
                return
            _print_nutrition(machine.profile)
            if not settings.storefront_configured:
                console.print("\n[yellow]Storefront non configuré: recommandations indisponibles.[/yellow]")
                return
            catalog = StorefrontCatalog()
            try:
                service = RecommendationService(catalog, session_logger=session_logger)
                await _run_recommendations(service, machine.profile)
            finally:
                await catalog.aclose()
        finally:
            if store is not None:
                await store.aclose()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("\n\n[dim]Session interrompue. Au revoir ![/dim]")

    if session_logger:
        log_path = session_logger.close()
        console.print(f"[dim]Session log saved: {log_path}[/dim]")


@app.command()
def rank(
    query: str = typer.Argument(..., help="Search query, e.g. 'energy boost'"),
    on_sale: bool = typer.Option(False, "--on-sale", help="Only products with a discount"),
    collection: str = typer.Option(None, "--collection", "-c", help="Collection handle to search in"),
    limit: int = typer.Option(3, "--limit", "-n", help="Number of products"),
) -> None:
    """Rank catalog products for one query (useful for testing)."""
    load_dotenv()
    setup_logging()

    from concierge.catalog import CatalogError, StorefrontCatalog
    from concierge.ranking import search_and_rank

    async def run():
        catalog = StorefrontCatalog()
        try:
            return await search_and_rank(
                catalog, query, only_on_sale=on_sale, collection=collection, limit=limit
            )
        finally:
            await catalog.aclose()

    try:
        with Live(Spinner("dots", text="Searching..."), console=console, transient=True):
            products = asyncio.run(run())
    except CatalogError as e:
        console.print(f"\n[red]FAIL Catalog search: {e}[/red]")
        raise typer.Exit(1)

    _print_products(products)


@app.command()
def health() -> None:
    """Check configuration."""
    load_dotenv()
    from concierge.config import get_settings
    from onboarding.lexicon import get_lexicon

    console.print("\n[bold]Concierge Health Check[/bold]\n")

    try:
        settings = get_settings()
        console.print("[green]OK[/green] Configuration loaded")
        console.print(f"   Environment: {settings.concierge_env}")
        console.print(f"   Log level: {settings.log_level}")

        lexicon = get_lexicon()
        console.print(f"[green]OK[/green] Lexicon loaded ({len(lexicon.goals)} goal keywords)")

        if settings.profile_api_base_url.startswith(("http://", "https://")):
            console.print(f"[green]OK[/green] Profile service: {settings.profile_api_base_url}")
        else:
            console.print("[red]FAIL[/red] Profile service URL missing or invalid")
            raise typer.Exit(1)

        if settings.storefront_configured:
            console.print(f"[green]OK[/green] Storefront configured ({settings.shopify_store_domain})")
        else:
            console.print("[yellow]WARN[/yellow] Storefront not configured, recommendations disabled")

        console.print("\n[green]All checks passed![/green]")

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"\n[red]FAIL Configuration error: {e}[/red]")
        console.print("[dim]Check your .env file.[/dim]")
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version information."""
    from concierge import __version__

    console.print(f"Concierge version {__version__}")


@app.command()
def serve(
    port: int = typer.Option(8000, "--port", "-p", help="Port to run on"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload for development"),
) -> None:
    """Start the web API server."""
    import uvicorn

    load_dotenv()
    console.print("\n[bold green]Concierge Web API[/bold green]")
    console.print(f"Starting server on http://localhost:{port}")
    console.print("[dim]Press Ctrl+C to stop[/dim]\n")

    uvicorn.run(
        "concierge.web.app:app",
        host="0.0.0.0",
        port=port,
        reload=reload,
    )


if __name__ == "__main__":
    app()
