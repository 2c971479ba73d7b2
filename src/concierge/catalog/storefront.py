"""
Storefront catalog search.

Thin adapter over the Shopify Storefront GraphQL API. It only fetches and
maps products; relevance ranking lives in concierge.ranking. Errors are
raised as CatalogError and never turned into empty results, so "the search
failed" stays distinguishable from "nothing matched".
"""

import logging
from typing import Protocol

import httpx

from .models import Product

logger = logging.getLogger(__name__)

PRODUCT_FIELDS = """
  id
  title
  handle
  description
  tags
  collections(first: 5) { edges { node { title handle } } }
  images(first: 1) { edges { node { url altText } } }
  variants(first: 1) {
    edges {
      node {
        id
        price { amount currencyCode }
        compareAtPrice { amount currencyCode }
        availableForSale
      }
    }
  }
"""

SEARCH_QUERY = (
    "query searchProducts($query: String!, $first: Int!) {"
    "  products(first: $first, query: $query) { edges { node {" + PRODUCT_FIELDS + "} } }"
    "}"
)


class CatalogError(Exception):
    """The catalog could not be searched (HTTP, GraphQL or transport failure)."""


class CatalogSearch(Protocol):
    """Catalog fetch used before every ranking call."""

    async def search(
        self, query: str, *, first: int = 10, collection: str | None = None
    ) -> list[Product]: ...

    async def search_by_tags(self, tags: list[str], *, first: int = 6) -> list[Product]: ...


class StorefrontCatalog:
    """Storefront GraphQL client."""

    def __init__(
        self,
        domain: str | None = None,
        token: str | None = None,
        api_version: str | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        from concierge.config import settings

        domain = domain or settings.shopify_store_domain
        token = token or settings.shopify_storefront_token
        api_version = api_version or settings.shopify_api_version
        if client is None:
            client = httpx.AsyncClient(timeout=settings.http_timeout_seconds)
        self._client = client
        self._url = f"https://{domain}/api/{api_version}/graphql.json"
        self._headers = {
            "Content-Type": "application/json",
            "X-Shopify-Storefront-Access-Token": token,
        }

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _products(self, query: str, first: int) -> list[Product]:
        try:
            response = await self._client.post(
                self._url,
                headers=self._headers,
                json={"query": SEARCH_QUERY, "variables": {"query": query, "first": first}},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Storefront search HTTP {e.response.status_code} for {query!r}")
            raise CatalogError(f"Storefront API error: HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error(f"Storefront search failed for {query!r}: {e}")
            raise CatalogError(f"Storefront API unreachable: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Storefront returned a non-JSON body for {query!r}")
            raise CatalogError("Storefront API returned an invalid response") from e
        if data.get("errors"):
            logger.error(f"Storefront GraphQL errors for {query!r}: {data['errors']}")
            raise CatalogError("Storefront GraphQL query failed")

        edges = (((data.get("data") or {}).get("products")) or {}).get("edges", [])
        products = [Product.from_storefront_node(edge["node"]) for edge in edges]
        logger.debug(f"Storefront search {query!r} returned {len(products)} products")
        return products

    async def search(
        self, query: str, *, first: int = 10, collection: str | None = None
    ) -> list[Product]:
        """Free-text search, optionally inside one collection."""
        search_query = f"collection:{collection} {query}".strip() if collection else query
        return await self._products(search_query, first)

    async def search_by_tags(self, tags: list[str], *, first: int = 6) -> list[Product]:
        """Products carrying at least one of the tags (tag:x OR tag:y)."""
        if not tags:
            return []
        return await self._products(" OR ".join(f"tag:{tag}" for tag in tags), first)
