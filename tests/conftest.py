"""
Pytest configuration and fixtures for Concierge tests.
"""

import os

import pytest

# Set test environment before importing concierge modules
os.environ["CONCIERGE_ENV"] = "development"
os.environ.pop("CONCIERGE_LEXICON_PATH", None)

from concierge.catalog import CatalogError, Product  # noqa: E402
from onboarding.errors import PersistenceError  # noqa: E402
from onboarding.lexicon import load_lexicon  # noqa: E402


class FakeCatalog:
    """
    In-memory CatalogSearch.

    `by_query` maps exact queries to results; anything else gets `products`.
    Queries listed in `errors` raise CatalogError.
    """

    def __init__(self, products=None, by_query=None, tag_results=None, errors=None):
        self.products = list(products or [])
        self.by_query = dict(by_query or {})
        self.tag_results = list(tag_results or [])
        self.errors = set(errors or [])
        self.calls: list[dict] = []

    async def search(self, query, *, first=10, collection=None):
        self.calls.append({"query": query, "first": first, "collection": collection})
        if query in self.errors or "*" in self.errors:
            raise CatalogError(f"search failed for {query}")
        return list(self.by_query.get(query, self.products))[:first]

    async def search_by_tags(self, tags, *, first=6):
        self.calls.append({"tags": list(tags), "first": first})
        return list(self.tag_results)[:first]


class FakeProfileStore:
    """
    ProfileStore that records saves.

    `failures` are raised one per save call, in order, before saves succeed.
    """

    def __init__(self, failures=None, stored=None):
        self.failures: list[PersistenceError] = list(failures or [])
        self.stored = stored
        self.saved: list[tuple[str, dict]] = []

    async def save_profile(self, user_id, profile):
        if self.failures:
            raise self.failures.pop(0)
        self.saved.append((user_id, profile.to_dict()))

    async def fetch_profile(self, user_id):
        return self.stored


@pytest.fixture
def lexicon():
    """The bundled lexicon, loaded fresh (bypasses the settings override)."""
    return load_lexicon()


@pytest.fixture
def make_product():
    """Factory for catalog products with sensible defaults."""
    counter = {"n": 0}

    def _make(title, **kwargs):
        counter["n"] += 1
        kwargs.setdefault("price", 19.9)
        kwargs.setdefault("variant_id", f"gid://shopify/ProductVariant/{counter['n']}")
        return Product(title=title, **kwargs)

    return _make


@pytest.fixture
def fake_catalog():
    """Factory for FakeCatalog instances."""
    return FakeCatalog


@pytest.fixture
def fake_store():
    """Factory for FakeProfileStore instances."""
    return FakeProfileStore


@pytest.fixture
def sample_products(make_product):
    """A small catalog: two discounted products, varied tags and collections."""
    return [
        make_product(
            "Morning Energy Capsules",
            tags=["energy", "vitality"],
            collections=["Énergie et Endurance"],
            collection="energie-et-endurance",
        ),
        make_product(
            "Iron Complex",
            tags=["iron"],
            collections=["Energy Collection"],
            collection="mineraux",
        ),
        make_product(
            "Magnesium Glycinate Tablets",
            tags=["magnesium", "sleep", "stress"],
            collections=["Stress & Sommeil"],
            collection="stress-sommeil",
            original_price=29.9,
            is_on_sale=True,
            discount_percentage=33,
        ),
        make_product(
            "Vitamin D3 + K2 Capsules",
            tags=["vitamin d", "immunity"],
            collections=["Immunité", "Vitamines"],
            collection="immunite",
        ),
        make_product(
            "Ashwagandha Stress Support",
            tags=["ashwagandha", "stress"],
            collections=["Plantes adaptogènes"],
            collection="plantes-adaptogenes",
            original_price=24.9,
            is_on_sale=True,
            discount_percentage=20,
        ),
    ]
