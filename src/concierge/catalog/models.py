"""
Catalog models.

Product is what the storefront returns for a search, already carrying tags,
collection titles and the on-sale flag. The concierge never mutates it.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CatalogModel(BaseModel):
    """Base for models serialized to the chat frontend in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Product(CatalogModel):
    """A store product as returned by a catalog search."""

    title: str
    price: float
    currency: str = "EUR"
    image: str = ""
    variant_id: str = ""
    available: bool = True
    tags: list[str] = Field(default_factory=list)
    collections: list[str] = Field(default_factory=list)  # Collection titles
    description: str = ""
    original_price: float | None = None
    discount_percentage: int | None = None
    is_on_sale: bool = False
    collection: str | None = None  # Primary collection handle
    handle: str | None = None

    @classmethod
    def from_storefront_node(cls, node: dict) -> "Product":
        """
        Build a Product from a Storefront GraphQL product node.

        On sale means the variant's compareAtPrice is above its price.
        """
        variant = _first_node(node.get("variants"))
        image = _first_node(node.get("images"))
        collection_nodes = [
            edge.get("node", {}) for edge in (node.get("collections") or {}).get("edges", [])
        ]

        price = float((variant.get("price") or {}).get("amount") or 0)
        compare_at = (variant.get("compareAtPrice") or {}).get("amount")
        compare_at_price = float(compare_at) if compare_at else None

        is_on_sale = compare_at_price is not None and compare_at_price > price
        discount = (
            round((compare_at_price - price) / compare_at_price * 100)
            if is_on_sale
            else None
        )
        handles = [c.get("handle") for c in collection_nodes if c.get("handle")]

        return cls(
            title=node.get("title", ""),
            price=price,
            currency=(variant.get("price") or {}).get("currencyCode") or "EUR",
            image=image.get("url") or "",
            variant_id=variant.get("id") or "",
            available=bool(variant.get("availableForSale", False)),
            tags=list(node.get("tags") or []),
            collections=[c.get("title") for c in collection_nodes if c.get("title")],
            description=node.get("description") or "",
            original_price=compare_at_price,
            discount_percentage=discount,
            is_on_sale=is_on_sale,
            collection=handles[0] if handles else None,
            handle=node.get("handle"),
        )


def _first_node(connection: dict | None) -> dict:
    edges = (connection or {}).get("edges") or []
    return edges[0].get("node", {}) if edges else {}
