"""
Concierge Onboarding System.

Slot-filling intake interview run before any product advice. Collects the
visitor profile one question at a time and hands it to the profile service.

Steps:
1. Age
2. Gender (suggestion bubbles)
3. Weight (skippable)
4. Height (skippable)
5. Goals (bubbles, multiple, custom answers)
6. Allergies / diets (bubbles, multiple, custom answers)
7. Activity level (bubbles)
8. Additional info (skippable) -> profile save -> complete

Visitors can type 'retour' to amend the previous answer or 'résumé' to see
what has been collected.
"""

from .state import OnboardingState, Profile, QuestionStep
from .machine import OnboardingMachine, TurnResult
from .parser import parse_response, parse_selection

__all__ = [
    "OnboardingState",
    "OnboardingMachine",
    "Profile",
    "QuestionStep",
    "TurnResult",
    "parse_response",
    "parse_selection",
]
