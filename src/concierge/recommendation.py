"""
Recommendation assembly.

Turns a chat query (and, once onboarding is done, the visitor profile) into
the attachments shown under the assistant's reply: ranked products, combos
suited to the profile, and at most one combo to offer interactively.
"""

import logging

from pydantic import Field

from concierge.catalog.models import CatalogModel, Product
from concierge.catalog.storefront import CatalogError, CatalogSearch
from concierge.collections import GOAL_TAGS
from concierge.combos import (
    ProductCombo,
    match_by_recommended_products,
    recommend_by_profile,
    resolve_combo_products,
)
from concierge.intents import detect_requested_collection, is_affirmative, is_sale_request
from concierge.ranking import search_and_rank, search_by_tags
from onboarding.state import Profile

logger = logging.getLogger(__name__)

# Products fetched per goal in the tag search
GOAL_SEARCH_LIMIT = 4

COMBO_ACCEPTED_TEXT = 'Parfait ! Voici la combinaison "{name}" qui contient certains des produits recommandés :'
COMBO_DECLINED_TEXT = "D'accord, pas de problème ! Comment puis-je vous aider autrement ?"
COMBO_PROMPT_TEXT = (
    "💡 J'ai remarqué qu'une combinaison de produits pourrait vous intéresser ! "
    'La combinaison "{name}" contient certains des produits que je vous ai recommandés. '
    'Souhaitez-vous la voir ? (Répondez "oui" ou "non")'
)


class ComboOffer(CatalogModel):
    """A combo with its members resolved to catalog products."""

    name: str
    description: str
    benefits: str
    products: list[Product] = Field(default_factory=list)

    @classmethod
    def from_combo(cls, combo: ProductCombo, products: list[Product]) -> "ComboOffer":
        return cls(
            name=combo.name,
            description=combo.description,
            benefits=combo.benefits,
            products=products,
        )

    @property
    def prompt(self) -> str:
        return COMBO_PROMPT_TEXT.format(name=self.name)


class AssistantAttachments(CatalogModel):
    """Everything attached to one assistant reply, dumped by alias for the frontend."""

    recommended_products: list[Product] = Field(default_factory=list)
    recommended_combos: list[ComboOffer] = Field(default_factory=list)
    suggested_combo: ComboOffer | None = None
    only_on_sale: bool = False
    collection: str | None = None


class RecommendationService:
    """
    Search, rank and bundle for one chat query.

    Catalog errors from the free-text search propagate. Goal tag searches
    and combo member lookups are best effort.
    """

    def __init__(self, catalog: CatalogSearch, limit: int | None = None, session_logger=None):
        if limit is None:
            from concierge.config import settings

            limit = settings.ranking_limit
        self.catalog = catalog
        self.limit = limit
        self.session_logger = session_logger

    async def recommend(self, query: str, profile: Profile | None = None) -> AssistantAttachments:
        only_on_sale = is_sale_request(query)
        collection = detect_requested_collection(query)
        if only_on_sale:
            logger.info(f"Sale request detected in {query!r}")
        if collection:
            logger.info(f"Collection request detected: {collection}")

        products: list[Product] = []
        # An explicit sale or collection request overrides the profile goals
        if profile is not None and profile.goals and not only_on_sale and not collection:
            products = await self._search_by_goals(profile.goals)

        if not products:
            products = await search_and_rank(
                self.catalog,
                query,
                only_on_sale=only_on_sale,
                collection=collection,
                limit=self.limit,
                session_logger=self.session_logger,
            )
        attachments = AssistantAttachments(
            recommended_products=products,
            only_on_sale=only_on_sale,
            collection=collection,
        )

        # Combos only make sense once we know the visitor and have something to pair
        if profile is None or not products:
            return attachments

        for combo in recommend_by_profile(profile.goals, profile.age, profile.gender):
            members = await resolve_combo_products(self.catalog, combo)
            if members:
                attachments.recommended_combos.append(ComboOffer.from_combo(combo, members))

        matching = match_by_recommended_products(products)
        if matching:
            members = await resolve_combo_products(self.catalog, matching)
            if members:
                attachments.suggested_combo = ComboOffer.from_combo(matching, members)

        logger.info(
            f"Recommendation for {query!r}: {len(products)} products, "
            f"{len(attachments.recommended_combos)} combos, "
            f"suggested={attachments.suggested_combo.name if attachments.suggested_combo else None}"
        )
        return attachments

    async def _search_by_goals(self, goals: list[str]) -> list[Product]:
        """
        Tag search for each profile goal, merged by variant.

        Stops once `limit` products are gathered. A failing goal search is
        logged and skipped.
        """
        gathered: list[Product] = []
        seen_variants: set[str] = set()
        for goal in goals:
            tags = GOAL_TAGS.get(goal)
            if not tags:
                continue
            try:
                found = await search_by_tags(self.catalog, tags, limit=GOAL_SEARCH_LIMIT)
            except CatalogError as e:
                logger.warning(f"Tag search for goal {goal!r} failed: {e}")
                continue
            for product in found:
                if product.variant_id not in seen_variants:
                    seen_variants.add(product.variant_id)
                    gathered.append(product)
            if len(gathered) >= self.limit:
                break

        results = gathered[:self.limit]
        if results:
            logger.info(f"Goal tag search for {goals}: {[p.title for p in results]}")
        if self.session_logger:
            self.session_logger.log("goal_search", goals=goals, results=[p.title for p in results])
        return results

    @staticmethod
    def respond_to_suggested_combo(
        text: str, pending: ComboOffer
    ) -> tuple[bool, str, list[ComboOffer]]:
        """
        Handle the visitor's answer to a combo offer.

        Returns (accepted, message, combos to display). Anything other than a
        plain yes counts as a decline.
        """
        if is_affirmative(text):
            return True, COMBO_ACCEPTED_TEXT.format(name=pending.name), [pending]
        return False, COMBO_DECLINED_TEXT, []
