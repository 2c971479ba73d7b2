"""Catalog models and the storefront search adapter."""

from concierge.catalog.models import Product
from concierge.catalog.storefront import CatalogError, CatalogSearch, StorefrontCatalog

__all__ = [
    "CatalogError",
    "CatalogSearch",
    "Product",
    "StorefrontCatalog",
]
