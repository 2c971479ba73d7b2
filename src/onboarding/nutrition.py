"""
Nutrition estimates from an interview profile.

Mifflin-St Jeor basal metabolic rate, activity-scaled daily energy
expenditure and a protein target. Used to enrich recommendations once the
interview is complete; weight and height are optional answers, so every
estimate may be unavailable.
"""

from dataclasses import dataclass

from .state import Profile

ACTIVITY_MULTIPLIERS: dict[str, float] = {
    "sedentary": 1.2,
    "light": 1.375,
    "moderate": 1.55,
    "very_active": 1.725,
}

PROTEIN_G_PER_KG = 1.6
PROTEIN_G_PER_KG_VERY_ACTIVE = 2.0


@dataclass(frozen=True)
class NutritionEstimate:
    bmr: int
    tdee: int
    protein_grams: int
    activity_level: str


def calculate_bmr(weight: float, height: float, age: int, gender: str | None) -> float:
    """
    Basal metabolic rate (kcal/day).

    Men: 10w + 6.25h - 5a + 5; women: ... - 161; anyone else gets the
    midpoint (- 78).
    """
    base = (10 * weight) + (6.25 * height) - (5 * age)
    if gender == "male":
        return base + 5
    if gender == "female":
        return base - 161
    return base - 78


def infer_activity_level(goals: list[str] | None) -> str:
    """Activity level implied by goals, for profiles that skipped the question."""
    goals = goals or []
    if "muscle_gain" in goals or "fitness" in goals:
        return "very_active"
    if "weight_loss" in goals:
        return "moderate"
    return "sedentary"


def calculate_tdee(bmr: float, activity_level: str) -> float:
    """Total daily energy expenditure (kcal/day)."""
    return bmr * ACTIVITY_MULTIPLIERS.get(activity_level, ACTIVITY_MULTIPLIERS["sedentary"])


def calculate_protein_grams(weight: float, activity_level: str) -> float:
    per_kg = PROTEIN_G_PER_KG_VERY_ACTIVE if activity_level == "very_active" else PROTEIN_G_PER_KG
    return weight * per_kg


def estimate_for_profile(profile: Profile) -> NutritionEstimate | None:
    """Estimates for a profile, or None if age, weight or height is missing."""
    if not (profile.age and profile.weight and profile.height):
        return None
    activity = profile.activity_level or infer_activity_level(profile.goals)
    bmr = calculate_bmr(profile.weight, profile.height, profile.age, profile.gender)
    return NutritionEstimate(
        bmr=round(bmr),
        tdee=round(calculate_tdee(bmr, activity)),
        protein_grams=round(calculate_protein_grams(profile.weight, activity)),
        activity_level=activity,
    )
