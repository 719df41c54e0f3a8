"""Product catalog pipeline.

Filter parsing, Shopify search query building, paginated fetching,
node-side filtering and meta taxonomy resolution:

    params -> parse_product_filters -> build_shopify_query
           -> PagedFetcher.fetch -> apply_node_side_filters
           -> TaxonomyResolver.resolve
"""

from app.catalog.fetcher import PagedFetcher
from app.catalog.filters import (
    FilterSpec,
    apply_node_side_filters,
    build_shopify_query,
    parse_product_filters,
)
from app.catalog.items import CatalogItem, CategoryRef, CollectionRef, CustomField
from app.catalog.taxonomy import ResolvedField, TaxonomyResolver, TaxonomySuggestion

__all__ = [
    # Filters
    "FilterSpec",
    "parse_product_filters",
    "build_shopify_query",
    "apply_node_side_filters",
    # Items
    "CatalogItem",
    "CategoryRef",
    "CollectionRef",
    "CustomField",
    # Fetching
    "PagedFetcher",
    # Taxonomies
    "ResolvedField",
    "TaxonomyResolver",
    "TaxonomySuggestion",
]
