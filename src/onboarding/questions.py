"""
Onboarding Questions.

Prompt text and answer affordances for each interview step:
- whether the step is answered with suggestion bubbles (selection-only)
- whether several bubbles may be picked
- whether an off-menu (custom) answer is allowed
- whether the visitor may skip it
"""

from dataclasses import dataclass, field

from .state import QuestionStep, next_step

TIP_TEXT = (
    "💡 Astuce: Tapez 'retour' pour revenir à la question précédente, "
    "ou 'résumé' pour voir vos réponses."
)

GREETING_TEXT = (
    "Bonjour! 👋 Je suis votre Nutritionniste IA 🥗✨\n\n"
    "Avant de commencer, j'aimerais en savoir un peu plus sur vous pour vous donner "
    "les meilleurs conseils personnalisés. Cela ne prendra qu'un instant!\n\n"
    "💡 Astuce: Vous pouvez taper 'retour' à tout moment pour revenir à une question "
    "précédente, ou 'résumé' pour voir vos réponses."
)

WELCOME_BACK_TEXT = (
    "Bonjour! 👋 J'ai votre profil. Comment puis-je vous aider aujourd'hui "
    "avec votre parcours nutritionnel?"
)


@dataclass(frozen=True)
class QuestionInfo:
    """Display metadata for one interview step."""
    prompt: str
    progress: str
    examples: str = ""
    suggestions: tuple[str, ...] = field(default_factory=tuple)
    has_bubbles: bool = False
    allow_multiple: bool = False
    allow_custom_input: bool = False
    skippable: bool = False

    @property
    def selection_only(self) -> bool:
        """Free text is refused unless the custom-answer affordance is open."""
        return self.has_bubbles

    def render(self) -> str:
        """Progress marker, prompt and examples as one chat message."""
        text = f"{self.progress} {self.prompt}"
        if self.examples:
            text += f"\n\n💡 {self.examples}"
        return text


QUESTIONS: dict[QuestionStep, QuestionInfo] = {
    QuestionStep.AGE: QuestionInfo(
        prompt="Quel est votre âge?",
        progress="[1/8]",
        examples="Exemples: j'ai 30 ans",
    ),
    QuestionStep.GENDER: QuestionInfo(
        prompt="Quel est votre sexe?",
        progress="[2/8]",
        examples="Sélectionnez une option",
        suggestions=("Homme", "Femme", "Autre", "Préfère ne pas dire"),
        has_bubbles=True,
    ),
    QuestionStep.WEIGHT: QuestionInfo(
        prompt="Quel est votre poids? (en kg) - Vous pouvez taper 'passer' pour ignorer",
        progress="[3/8]",
        examples="Exemples: 70 kg, 75.5 kg",
        skippable=True,
    ),
    QuestionStep.HEIGHT: QuestionInfo(
        prompt="Quelle est votre taille? (en cm) - Vous pouvez taper 'passer' pour ignorer",
        progress="[4/8]",
        examples="Exemples: 175 cm, 180 cm",
        skippable=True,
    ),
    QuestionStep.GOALS: QuestionInfo(
        prompt="Quels sont vos objectifs de santé?",
        progress="[5/8]",
        examples="Vous pouvez sélectionner plusieurs options",
        suggestions=("Perte de poids", "Énergie", "Bien-être", "Sport", "Musculation", "Sommeil", "Immunité"),
        has_bubbles=True,
        allow_multiple=True,
        allow_custom_input=True,
    ),
    QuestionStep.ALLERGIES: QuestionInfo(
        prompt="Avez-vous des allergies ou suivez-vous un régime particulier?",
        progress="[6/8]",
        examples="Vous pouvez sélectionner plusieurs options, ou la bulle 'Aucune'",
        suggestions=("Lactose", "Gluten", "Halal", "Végétarien", "Végétalien", "Sans noix", "Aucune"),
        has_bubbles=True,
        allow_multiple=True,
        allow_custom_input=True,
    ),
    QuestionStep.ACTIVITY_LEVEL: QuestionInfo(
        prompt="Quel est votre niveau d'activité physique?",
        progress="[7/8]",
        examples="Sélectionnez une option",
        suggestions=("Sédentaire", "Légèrement actif", "Modérément actif", "Très actif"),
        has_bubbles=True,
    ),
    QuestionStep.ADDITIONAL_INFO: QuestionInfo(
        prompt=(
            "Y a-t-il autre chose que vous aimeriez me dire? "
            "(médicaments, conditions médicales, etc.)"
        ),
        progress="[8/8]",
        examples="Vous pouvez taper 'passer' ou 'rien' si vous n'avez rien à ajouter",
        skippable=True,
    ),
}


def get_question_info(step: QuestionStep) -> QuestionInfo | None:
    """Question metadata for a step; None for COMPLETE."""
    return QUESTIONS.get(step)


def get_next_question(step: QuestionStep) -> tuple[QuestionStep, QuestionInfo | None]:
    """
    Next step and its question.

    Deterministic; COMPLETE has no successor and returns (COMPLETE, None).
    """
    following = next_step(step)
    return following, get_question_info(following)


def get_question_options() -> dict:
    """
    All question metadata for frontend rendering.

    Keyed by step value, in interview order.
    """
    return {
        step.value: {
            "prompt": info.prompt,
            "progress": info.progress,
            "examples": info.examples,
            "suggestions": list(info.suggestions),
            "has_bubbles": info.has_bubbles,
            "allow_multiple": info.allow_multiple,
            "allow_custom_input": info.allow_custom_input,
            "skippable": info.skippable,
        }
        for step, info in QUESTIONS.items()
    }
