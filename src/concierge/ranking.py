"""
Product relevance ranking.

Scores catalog search results against a free-text query or a tag list and
keeps the top few. Scoring is additive, with no normalization by length or
frequency:

    rank()          +10 per query word matching a tag (either-way substring)
                    +5 per query word in the title
                    +3 per query word in a collection title
    rank_by_tags()  products ordered by how many tags they carry, with a
                    keyword fallback (title 10, collection 3) when the
                    tag search found nothing

The async helpers fetch candidates from a CatalogSearch first. Fetch errors
propagate to the caller: an empty list always means "no match".
"""

import logging
from typing import NamedTuple

from concierge.catalog.models import Product
from concierge.catalog.storefront import CatalogSearch
from concierge.collections import COLLECTION_MAP, match_collections

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 3

TAG_MATCH_POINTS = 10
TITLE_MATCH_POINTS = 5
COLLECTION_MATCH_POINTS = 3

KEYWORD_TITLE_POINTS = 10
KEYWORD_COLLECTION_POINTS = 3

COLLECTION_MEMBER_POINTS = 10
DESCRIPTION_MATCH_POINTS = 8

# Query words must be longer than this to count
MIN_WORD_LENGTH = 2


class ScoredCandidate(NamedTuple):
    product: Product
    score: int


def query_words(query: str) -> list[str]:
    """Lowercased words of the query longer than two characters."""
    return [w for w in query.lower().split() if len(w) > MIN_WORD_LENGTH]


def _tag_matches(term: str, tags: list[str]) -> bool:
    return any(tag == term or term in tag or tag in term for tag in tags if tag)


def _sort_by_score(scored: list[ScoredCandidate]) -> list[ScoredCandidate]:
    # sorted() is stable, so ties keep catalog order
    return sorted(scored, key=lambda sc: sc.score, reverse=True)


# =============================================================================
# Free-text ranking
# =============================================================================


def score_candidate(product: Product, words: list[str]) -> int:
    """Additive relevance score of one product for the given query words."""
    tags = [t.lower() for t in product.tags]
    title = product.title.lower()
    collections = [c.lower() for c in product.collections]

    score = 0
    for word in words:
        if _tag_matches(word, tags):
            score += TAG_MATCH_POINTS
        if word in title:
            score += TITLE_MATCH_POINTS
        if any(word in c for c in collections):
            score += COLLECTION_MATCH_POINTS
    return score


def rank(
    candidates: list[Product],
    query: str,
    *,
    tag_ranking: bool = True,
    only_on_sale: bool = False,
    limit: int = DEFAULT_LIMIT,
) -> list[Product]:
    """
    Top products for a free-text query.

    The sale filter runs before scoring. Without tag ranking the first
    `limit` candidates are returned in catalog order.
    """
    filtered = [p for p in candidates if p.is_on_sale] if only_on_sale else list(candidates)
    if only_on_sale:
        logger.debug(f"Filtered to {len(filtered)} products on sale (from {len(candidates)} total)")

    if not tag_ranking or not filtered:
        return filtered[:limit]

    words = query_words(query)
    scored = [ScoredCandidate(p, score_candidate(p, words)) for p in filtered]
    return [sc.product for sc in _sort_by_score(scored)[:limit]]


# =============================================================================
# Tag ranking
# =============================================================================


def score_keyword_match(product: Product, tags: list[str]) -> int:
    """Fallback score treating tags as plain keywords."""
    title = product.title.lower()
    collections = [c.lower() for c in product.collections]
    score = 0
    for tag in tags:
        if tag in title:
            score += KEYWORD_TITLE_POINTS
        if any(tag in c for c in collections):
            score += KEYWORD_COLLECTION_POINTS
    return score


def count_tag_matches(product: Product, tags: list[str]) -> int:
    """How many of the requested tags the product carries (substring-aware)."""
    product_tags = [t.lower() for t in product.tags]
    return sum(1 for tag in tags if _tag_matches(tag, product_tags))


def rank_by_tags(
    candidates: list[Product],
    tags: list[str],
    *,
    limit: int = DEFAULT_LIMIT,
    fallback: list[Product] | None = None,
) -> list[Product]:
    """
    Order tag-search results by number of matching tags.

    `candidates` are assumed pre-filtered by the data source to products with
    at least one of the tags. If there are none, `fallback` (a keyword search
    for the same tags) is scored by title/collection keywords instead and
    zero-score products are dropped.
    """
    tags_lower = [t.lower() for t in tags if t]
    products = list(candidates)

    if not products and fallback:
        logger.info(f"Tag search returned 0 results, falling back to keywords: {tags_lower}")
        scored = [ScoredCandidate(p, score_keyword_match(p, tags_lower)) for p in fallback]
        products = [sc.product for sc in _sort_by_score(scored) if sc.score > 0][:limit]

    by_tag_count = [ScoredCandidate(p, count_tag_matches(p, tags_lower)) for p in products]
    return [sc.product for sc in _sort_by_score(by_tag_count)[:limit]]


# =============================================================================
# Collection ranking
# =============================================================================


def rank_by_collection(
    candidates: list[Product],
    goals: list[str],
    relevant_collections: list[str],
    *,
    limit: int = DEFAULT_LIMIT,
) -> list[Product]:
    """
    Order products gathered from goal-relevant collections.

    Per goal: +10 when the product sits in a relevant collection, +8 when the
    goal appears in its description. Zero-score products are dropped.
    """
    relevant = [c.lower() for c in relevant_collections]

    def in_relevant_collection(product: Product) -> bool:
        handle = (product.collection or "").lower()
        titles = [c.lower() for c in product.collections]
        return any(handle == r or any(r in t for t in titles) for r in relevant)

    scored = []
    for product in candidates:
        description = product.description.lower()
        member = in_relevant_collection(product)
        score = 0
        for goal in goals:
            if goal.lower() in description:
                score += DESCRIPTION_MATCH_POINTS
            if member:
                score += COLLECTION_MEMBER_POINTS
        scored.append(ScoredCandidate(product, score))

    return [sc.product for sc in _sort_by_score(scored) if sc.score > 0][:limit]


# =============================================================================
# Fetch + rank
# =============================================================================


async def search_and_rank(
    catalog: CatalogSearch,
    query: str,
    *,
    tag_ranking: bool = True,
    only_on_sale: bool = False,
    collection: str | None = None,
    limit: int = DEFAULT_LIMIT,
    session_logger=None,
) -> list[Product]:
    """Fetch candidates for a query and rank them. Catalog errors propagate."""
    # Fetch more when filtering by sale so the filter has something to keep
    first = 20 if only_on_sale else 10
    candidates = await catalog.search(query, first=first, collection=collection)
    results = rank(
        candidates,
        query,
        tag_ranking=tag_ranking,
        only_on_sale=only_on_sale,
        limit=limit,
    )
    logger.info(
        f"Ranked {len(candidates)} candidates for {query!r} "
        f"(on_sale={only_on_sale}, collection={collection or 'none'}): "
        f"{[p.title for p in results]}"
    )
    if session_logger:
        session_logger.ranking(query, len(candidates), [p.title for p in results], only_on_sale)
    return results


async def search_by_tags(
    catalog: CatalogSearch,
    tags: list[str],
    *,
    limit: int = DEFAULT_LIMIT,
) -> list[Product]:
    """Tag search with keyword fallback. Catalog errors propagate."""
    candidates = await catalog.search_by_tags(tags, first=limit * 2)
    fallback = None
    if not candidates:
        fallback = await catalog.search(" OR ".join(tags), first=10)
    results = rank_by_tags(candidates, tags, limit=limit, fallback=fallback)
    logger.info(f"Tag search {tags} returned {len(results)} products")
    return results


async def search_by_collection(
    catalog: CatalogSearch,
    goals: list[str],
    *,
    limit: int = DEFAULT_LIMIT,
    collection_map: dict[str, list[str]] | None = None,
) -> list[Product]:
    """
    Products from the collections matching the visitor's goals.

    Searches at most three relevant collections, de-duplicated by variant.
    """
    collection_map = collection_map if collection_map is not None else COLLECTION_MAP
    relevant = match_collections(goals, collection_map)
    if not relevant:
        logger.info(f"No relevant collections for goals {goals}")
        return []

    gathered: list[Product] = []
    seen_variants: set[str] = set()
    for handle in relevant[:3]:
        keywords = collection_map.get(handle) or []
        query = " ".join(keywords[:2]) or handle.split("-")[0]
        for product in await search_and_rank(catalog, query, collection=handle):
            if product.variant_id not in seen_variants:
                seen_variants.add(product.variant_id)
                gathered.append(product)
        if len(gathered) >= limit:
            break

    return rank_by_collection(gathered, goals, relevant, limit=limit)
