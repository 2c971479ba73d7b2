"""
Shopping intent detection on visitor messages.
"""

import re

from concierge.collections import COLLECTION_MAP

SALE_PATTERNS = [
    re.compile(r"\b(promo|promotion|promos|promotions)\b", re.IGNORECASE),
    re.compile(r"\b(solde|soldes|en solde|en promotion)\b", re.IGNORECASE),
    re.compile(r"\b(réduction|reduction|réductions|reductions)\b", re.IGNORECASE),
    re.compile(r"\b(rabais|discount|discounts|remise|remises)\b", re.IGNORECASE),
    re.compile(r"\b(offre|offres|spécial|special|bon plan)\b", re.IGNORECASE),
    re.compile(r"\b(produits?\s+(?:en\s+)?solde|produits?\s+(?:en\s+)?promotion)\b", re.IGNORECASE),
]

# "collection stress sommeil", "gamme energie-et-endurance", ...
COLLECTION_MENTION_PREFIXES = ("collection", "catégorie", "univers", "gamme")

AFFIRMATIVE_WORDS = frozenset({"oui", "yes", "y", "ok", "okay", "d'accord"})


def is_sale_request(*texts: str) -> bool:
    """True when any text asks for promotions, sales or discounts."""
    return any(pattern.search(text) for text in texts if text for pattern in SALE_PATTERNS)


def _mentions_term(term: str, text: str) -> bool:
    return re.search(rf"\b{re.escape(term)}\b", text, re.IGNORECASE) is not None


def _mentions_handle(handle: str, text: str) -> bool:
    handle_pattern = r"[-\s]".join(re.escape(part) for part in handle.split("-"))
    prefixes = "|".join(COLLECTION_MENTION_PREFIXES)
    return re.search(rf"\b(?:{prefixes})\s+{handle_pattern}\b", text, re.IGNORECASE) is not None


def detect_requested_collection(
    text: str,
    collection_map: dict[str, list[str]] | None = None,
) -> str | None:
    """
    First collection handle the text refers to.

    A collection is referred to when one of its terms appears as a whole word,
    or when it is named explicitly ("gamme stress-sommeil").
    """
    if not text:
        return None
    collection_map = collection_map if collection_map is not None else COLLECTION_MAP
    for handle, terms in collection_map.items():
        if any(_mentions_term(term, text) for term in terms) or _mentions_handle(handle, text):
            return handle
    return None


def is_affirmative(text: str) -> bool:
    return text.lower().strip() in AFFIRMATIVE_WORDS
