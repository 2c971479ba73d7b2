"""
Tests for product relevance ranking.
"""

import asyncio
from unittest.mock import MagicMock

import pytest

from concierge.catalog import CatalogError
from concierge.collections import match_collections
from concierge.ranking import (
    query_words,
    rank,
    rank_by_collection,
    rank_by_tags,
    score_candidate,
    search_and_rank,
    search_by_collection,
    search_by_tags,
)


@pytest.fixture
def energy_pair(make_product):
    tagged = make_product("Morning Energy Capsules", tags=["energy"])
    collection_only = make_product("Iron Complex", tags=["iron"], collections=["Energy Collection"])
    return tagged, collection_only


class TestScoring:

    def test_query_words_drop_short_words(self):
        assert query_words("Un peu de Energy") == ["peu", "energy"]

    def test_score_example(self, energy_pair):
        tagged, collection_only = energy_pair
        words = query_words("energy boost")
        assert score_candidate(tagged, words) == 15
        assert score_candidate(collection_only, words) == 3

    def test_tag_substring_either_way(self, make_product):
        product = make_product("Capsules", tags=["vitamin-d3"])
        assert score_candidate(product, ["vitamin"]) == 10
        short_tag = make_product("Capsules", tags=["zinc"])
        assert score_candidate(short_tag, ["zinc+c"]) == 10


class TestRank:

    def test_higher_score_first(self, energy_pair):
        tagged, collection_only = energy_pair
        result = rank([collection_only, tagged], "energy boost")
        assert result == [tagged, collection_only]

    def test_deterministic(self, sample_products):
        first = rank(sample_products, "stress sleep")
        for _ in range(5):
            assert rank(sample_products, "stress sleep") == first

    def test_top_three(self, sample_products):
        assert len(rank(sample_products, "vitamin")) == 3

    def test_ties_keep_catalog_order(self, make_product):
        products = [make_product(f"Product {i}") for i in range(4)]
        assert rank(products, "nothing matches") == products[:3]

    def test_without_tag_ranking(self, sample_products):
        assert rank(sample_products, "stress", tag_ranking=False) == sample_products[:3]

    def test_only_on_sale(self, sample_products):
        result = rank(sample_products, "energy", only_on_sale=True)
        assert result
        assert all(p.is_on_sale for p in result)

    def test_only_on_sale_without_discounts(self, energy_pair):
        assert rank(list(energy_pair), "energy boost", only_on_sale=True) == []

    def test_empty_candidates(self):
        assert rank([], "energy") == []


class TestRankByTags:

    def test_orders_by_tag_count(self, make_product):
        one = make_product("Melatonin", tags=["sleep"])
        two = make_product("Magnesium", tags=["sleep", "stress"])
        assert rank_by_tags([one, two], ["sleep", "stress"]) == [two, one]

    def test_keyword_fallback(self, make_product):
        titled = make_product("Sleep Gummies")
        in_collection = make_product("Night Tea", collections=["Sleep & Calm"])
        unrelated = make_product("Protein Bar")

        result = rank_by_tags([], ["sleep"], fallback=[in_collection, unrelated, titled])
        assert result == [titled, in_collection]

    def test_no_candidates_no_fallback(self):
        assert rank_by_tags([], ["sleep"]) == []


class TestCollections:

    def test_match_collections(self):
        assert match_collections(["energy", "immunity"]) == ["energie-et-endurance", "immunite"]
        assert match_collections(["better_sleep"]) == ["stress-sommeil"]
        assert match_collections([""]) == []

    def test_rank_by_collection(self, make_product):
        member = make_product("Calm Blend", collection="stress-sommeil", description="")
        described = make_product("Night Tea", collection="other", description="Pour le stress du soir")
        neither = make_product("Protein Bar", collection="sport-performance")

        result = rank_by_collection([neither, described, member], ["stress"], ["stress-sommeil"])
        assert result == [member, described]


class TestSearchAndRank:

    def test_fetches_then_ranks(self, fake_catalog, energy_pair):
        tagged, collection_only = energy_pair
        catalog = fake_catalog(products=[collection_only, tagged])
        session_logger = MagicMock()

        result = asyncio.run(search_and_rank(catalog, "energy boost", session_logger=session_logger))

        assert result == [tagged, collection_only]
        assert catalog.calls == [{"query": "energy boost", "first": 10, "collection": None}]
        session_logger.ranking.assert_called_once()

    def test_sale_search_fetches_more(self, fake_catalog, sample_products):
        catalog = fake_catalog(products=sample_products)
        asyncio.run(search_and_rank(catalog, "promo", only_on_sale=True, collection="stress-sommeil"))
        assert catalog.calls[0]["first"] == 20
        assert catalog.calls[0]["collection"] == "stress-sommeil"

    def test_catalog_error_propagates(self, fake_catalog):
        catalog = fake_catalog(errors=["*"])
        with pytest.raises(CatalogError):
            asyncio.run(search_and_rank(catalog, "energy"))

    def test_search_by_tags_uses_fallback(self, fake_catalog, make_product):
        gummies = make_product("Sleep Gummies")
        catalog = fake_catalog(by_query={"sleep OR stress": [gummies]})

        result = asyncio.run(search_by_tags(catalog, ["sleep", "stress"]))

        assert result == [gummies]
        assert catalog.calls[0] == {"tags": ["sleep", "stress"], "first": 6}

    def test_search_by_collection(self, fake_catalog, make_product):
        calm = make_product("Calm Blend", collection="stress-sommeil")
        catalog = fake_catalog(products=[calm, calm])

        result = asyncio.run(search_by_collection(catalog, ["better_sleep"]))

        assert result == [calm]
        assert catalog.calls[0]["collection"] == "stress-sommeil"

    def test_search_by_collection_without_match(self, fake_catalog):
        catalog = fake_catalog()
        assert asyncio.run(search_by_collection(catalog, ["xyz"])) == []
        assert catalog.calls == []
