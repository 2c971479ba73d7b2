"""
Profile summaries for the interview.

Plain-text renderings used by the "résumé" command and the completion
recap. Unset fields get localized placeholders.
"""

from .state import Profile

NOT_PROVIDED = "Non renseigné"
NONE_DECLARED = "Aucune"

ACTIVITY_LABELS = {
    "sedentary": "Sédentaire",
    "light": "Légèrement actif",
    "moderate": "Modérément actif",
    "very_active": "Très actif",
}


def _fmt_number(value: float) -> str:
    return f"{value:g}"


def summary_lines(profile: Profile) -> list[tuple[str, str]]:
    """Labeled fields in fixed display order."""
    return [
        ("Âge", str(profile.age) if profile.age else NOT_PROVIDED),
        ("Sexe", profile.gender or NOT_PROVIDED),
        ("Poids", f"{_fmt_number(profile.weight)} kg" if profile.weight else NOT_PROVIDED),
        ("Taille", f"{_fmt_number(profile.height)} cm" if profile.height else NOT_PROVIDED),
        ("Objectifs", ", ".join(profile.goals) if profile.goals else NOT_PROVIDED),
        ("Allergies/Régimes", ", ".join(profile.allergies) if profile.allergies else NONE_DECLARED),
        (
            "Niveau d'activité",
            ACTIVITY_LABELS.get(profile.activity_level, profile.activity_level)
            if profile.activity_level
            else NOT_PROVIDED,
        ),
        ("Informations supplémentaires", profile.additional_info or NONE_DECLARED),
    ]


def render_summary(profile: Profile) -> str:
    """Answer to the summary command. Does not touch the profile."""
    body = "\n".join(f"• {label}: {value}" for label, value in summary_lines(profile))
    return (
        "📋 Récapitulatif de vos réponses:\n\n"
        f"{body}\n\n"
        "Tapez 'retour' pour modifier une réponse précédente."
    )


def render_completion_recap(profile: Profile) -> str:
    """Recap shown right before the profile is saved."""
    body = "\n".join(f"• {label}: {value}" for label, value in summary_lines(profile))
    return f"📋 Récapitulatif:\n\n{body}\n\nEnregistrement en cours..."
