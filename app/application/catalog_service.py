"""Catalog application service.

Orchestrates the product pipeline for the read endpoints:
- Parsing filters and building the Shopify search query
- Fetching every matching product and applying node-side filters
- Resolving meta taxonomies and projecting the export payload
- Facets, thesaurus and category taxonomy statistics
"""

from typing import Any

import structlog

from app.catalog.fetcher import PagedFetcher
from app.catalog.filters import (
    MultiValueParams,
    apply_node_side_filters,
    build_shopify_query,
    parse_product_filters,
)
from app.catalog.items import CatalogItem, edge_nodes
from app.catalog.projection import (
    fetch_metaobject_definitions,
    paginate,
    simplify_product,
)
from app.catalog.queries import COLLECTIONS_QUERY, PRODUCT_FACETS_QUERY
from app.catalog.taxonomy import (
    TaxonomyResolver,
    count_products_by_category,
    extract_category_meta_taxonomies,
    get_category_meta_suggestions,
)
from app.domain.exceptions import MissingParameterError, NotFoundError
from app.infrastructure.shopify_client import ShopifyAdminClient

logger = structlog.get_logger()


EXPORT_DEFAULT_PAGE_SIZE = 250
EXPORT_MAX_PAGE_SIZE = 250
PUBLIC_DEFAULT_PAGE_SIZE = 100
PUBLIC_MAX_PAGE_SIZE = 100
FACETS_SAMPLE_SIZE = 250
DEFAULT_MIN_FREQUENCY = 0.1


def _flag(params: MultiValueParams, name: str) -> bool:
    return params.get(name) == "true"


def _unique(values: list[Any]) -> list[Any]:
    """Drop empty and repeated values, keeping first-seen order."""
    return list(dict.fromkeys(v for v in values if v))


def parse_min_frequency(value: str | None) -> float:
    """Parse ``min_frequency``, falling back to the default when malformed."""
    if value is None or value == "":
        return DEFAULT_MIN_FREQUENCY
    try:
        return float(value)
    except ValueError:
        return DEFAULT_MIN_FREQUENCY


class CatalogService:
    """Service for the product export and taxonomy endpoints.

    Example usage:
        async with ShopifyAdminClient(shop, token) as client:
            service = CatalogService(client)
            payload = await service.export_products(request.query_params)
    """

    def __init__(
        self,
        client: ShopifyAdminClient,
        resolver: TaxonomyResolver | None = None,
    ) -> None:
        """Initialize catalog service.

        Args:
            client: Shopify client of the shop being served.
            resolver: Taxonomy resolver, one bound to ``client`` by default.
        """
        self.client = client
        self.resolver = resolver or TaxonomyResolver(client)
        self.fetcher = PagedFetcher(client)

    async def fetch_filtered(
        self,
        params: MultiValueParams,
        full_fields: bool = False,
    ) -> list[CatalogItem]:
        """Run the filter pipeline for a request.

        Args:
            params: Request query parameters.
            full_fields: Fetch full product fields.

        Returns:
            Items accepted by every filter.
        """
        spec = parse_product_filters(params)
        query_string = build_shopify_query(spec)
        items = await self.fetcher.fetch(query_string, full_fields=full_fields)
        filtered = apply_node_side_filters(items, spec)
        logger.info(
            "Filtered products",
            fetched=len(items),
            kept=len(filtered),
            query=query_string,
        )
        return filtered

    # ------------------------------------------------------------------
    # Export and count
    # ------------------------------------------------------------------

    async def export_products(self, params: MultiValueParams) -> dict[str, Any]:
        """Build one page of the simplified product export.

        Args:
            params: Filters plus ``page``, ``page_size``,
                ``exclude_meta_taxonomies`` and ``skip_metaobject_resolution``.

        Returns:
            ``{stats, products}`` payload.
        """
        items = await self.fetch_filtered(params, full_fields=True)
        definitions = await fetch_metaobject_definitions(self.client)

        window = paginate(
            len(items),
            params.get("page"),
            params.get("page_size"),
            EXPORT_DEFAULT_PAGE_SIZE,
            EXPORT_MAX_PAGE_SIZE,
        )
        exclude_meta_taxonomies = _flag(params, "exclude_meta_taxonomies")
        skip_resolution = _flag(params, "skip_metaobject_resolution")

        products = []
        for item in window.slice(items):
            resolved = await self.resolver.resolve(
                item, skip_metaobject_resolution=skip_resolution
            )
            products.append(
                simplify_product(item, resolved, definitions, exclude_meta_taxonomies)
            )

        return {"stats": window.stats(), "products": products}

    async def count_products(self, params: MultiValueParams) -> int:
        """Count the products matching the filters."""
        items = await self.fetch_filtered(params)
        return len(items)

    async def list_public_products(self, params: MultiValueParams) -> dict[str, Any]:
        """Build one page of raw product nodes.

        Args:
            params: Filters plus ``page`` and ``page_size``.

        Returns:
            ``{stats, products}`` payload with nodes as returned by Shopify.
        """
        items = await self.fetch_filtered(params, full_fields=True)
        window = paginate(
            len(items),
            params.get("page"),
            params.get("page_size"),
            PUBLIC_DEFAULT_PAGE_SIZE,
            PUBLIC_MAX_PAGE_SIZE,
        )
        return {
            "stats": window.stats(),
            "products": [item.node for item in window.slice(items)],
        }

    # ------------------------------------------------------------------
    # Facets
    # ------------------------------------------------------------------

    async def _facet_nodes(self) -> list[dict[str, Any]]:
        data = await self.client.execute(
            PRODUCT_FACETS_QUERY, {"first": FACETS_SAMPLE_SIZE}
        )
        return edge_nodes(data.get("products"))

    async def list_filter_options(self) -> dict[str, list[dict[str, Any]]]:
        """List the values the export filters accept.

        Product types, vendors and categories are sampled from the first
        250 products.

        Returns:
            ``{collections, categories, product_types, vendors}`` as
            ``{value, label}`` lists.
        """
        collections_data = await self.client.execute(COLLECTIONS_QUERY)
        collections = [
            {"value": node["id"], "label": node.get("title")}
            for node in edge_nodes(collections_data.get("collections"))
        ]

        nodes = await self._facet_nodes()

        categories_by_id: dict[str, str | None] = {}
        for node in nodes:
            category = node.get("category")
            if category and category.get("id") not in categories_by_id:
                categories_by_id[category["id"]] = category.get("name")

        return {
            "collections": collections,
            "categories": [
                {"value": category_id, "label": name}
                for category_id, name in categories_by_id.items()
            ],
            "product_types": [
                {"value": t, "label": t}
                for t in _unique([n.get("productType") for n in nodes])
            ],
            "vendors": [
                {"value": v, "label": v}
                for v in _unique([n.get("vendor") for n in nodes])
            ],
        }

    async def thesaurus(self) -> dict[str, list[dict[str, Any]]]:
        """List brands (vendors) and categories (product types) with 1-based indexes."""
        nodes = await self._facet_nodes()
        brands = _unique([n.get("vendor") for n in nodes])
        categories = _unique([n.get("productType") for n in nodes])
        return {
            "brands": [
                {"value": str(index), "label": vendor}
                for index, vendor in enumerate(brands, start=1)
            ],
            "categories": [
                {"value": str(index), "label": product_type, "parent": None}
                for index, product_type in enumerate(categories, start=1)
            ],
        }

    # ------------------------------------------------------------------
    # Category taxonomies
    # ------------------------------------------------------------------

    async def category_meta_taxonomies(self, params: MultiValueParams) -> dict[str, Any]:
        """Describe meta taxonomies for a product, a category or every category.

        Args:
            params: Filters plus ``product_id``, ``category`` and
                ``include_suggestions``.

        Returns:
            Payload for the requested scope.

        Raises:
            NotFoundError: If the product or category is absent.
        """
        items = await self.fetch_filtered(params, full_fields=True)
        product_id = params.get("product_id")
        category_name = params.get("category")
        include_suggestions = _flag(params, "include_suggestions")

        if product_id:
            item = next((i for i in items if i.id == product_id), None)
            if item is None:
                raise NotFoundError("Product not found", {"product_id": product_id})
            resolved = await self.resolver.resolve(item)
            return {
                "success": True,
                "product_id": product_id,
                "category": item.category_name,
                "meta_taxonomies": {k: rf.to_dict() for k, rf in resolved.items()},
            }

        if category_name:
            category_items = [i for i in items if i.category_name == category_name]
            if not category_items:
                raise NotFoundError("Category not found", {"category": category_name})
            taxonomies = extract_category_meta_taxonomies(category_items)
            result: dict[str, Any] = {
                "success": True,
                "category": category_name,
                "products_count": len(category_items),
                "meta_taxonomies": taxonomies.get(category_name, []),
            }
            if include_suggestions:
                result["suggestions"] = [
                    s.to_dict()
                    for s in get_category_meta_suggestions(items, category_name)
                ]
            return result

        taxonomies = extract_category_meta_taxonomies(items)
        counts = count_products_by_category(items)
        result = {
            "success": True,
            "total_products": len(items),
            "categories": [
                {
                    "name": name,
                    "products_count": counts.get(name, 0),
                    "meta_taxonomies": fields,
                }
                for name, fields in taxonomies.items()
            ],
        }
        if include_suggestions:
            result["suggestions"] = {
                name: [s.to_dict() for s in get_category_meta_suggestions(items, name)]
                for name in taxonomies
            }
        return result

    async def category_meta_suggestions(self, params: MultiValueParams) -> dict[str, Any]:
        """Suggest metafields that are commonly filled in within a category.

        Args:
            params: Filters plus ``category`` and ``min_frequency``.

        Returns:
            Suggestions at or above the minimum frequency.

        Raises:
            MissingParameterError: If ``category`` is absent.
            NotFoundError: If no product belongs to the category.
        """
        category_name = params.get("category")
        if not category_name:
            raise MissingParameterError(
                "category", "The 'category' parameter is required"
            )
        min_frequency = parse_min_frequency(params.get("min_frequency"))

        items = await self.fetch_filtered(params, full_fields=True)
        products_count = sum(1 for i in items if i.category_name == category_name)
        if products_count == 0:
            raise NotFoundError(
                f"No products found for category '{category_name}'",
                {"category": category_name},
            )

        suggestions = [
            s
            for s in get_category_meta_suggestions(items, category_name)
            if s.frequency >= min_frequency
        ]
        return {
            "success": True,
            "category": category_name,
            "products_count": products_count,
            "suggestions_count": len(suggestions),
            "min_frequency": min_frequency,
            "suggestions": [
                {
                    "namespace": s.namespace,
                    "key": s.key,
                    "type": s.type,
                    "frequency": s.frequency,
                    "frequency_percentage": round(s.frequency * 100),
                    "values": s.values,
                    "values_count": len(s.values),
                }
                for s in suggestions
            ],
        }
