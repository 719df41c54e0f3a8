"""Product filters.

Parses export filters from query parameters, translates the subset
Shopify's search syntax understands into a ``query`` string, and applies
the rest (collections, categories) to fetched items in memory.

Query parameter format:
    product_types_included[]=Shoes&product_types_included[]=Bags
    vendors_excluded=Acme,Globex
    collections_included=summer-sale
    categories_excluded=gid://shopify/TaxonomyCategory/aa-1
    created_from=2024-01-01&created_to=2024-06-30
    is_active=true
"""

from dataclasses import dataclass, fields
from typing import Any, Protocol

from app.catalog.items import CatalogItem


class MultiValueParams(Protocol):
    """Read-only multi-valued mapping such as Starlette's ``QueryParams``."""

    def getlist(self, key: str) -> list[str]: ...

    def get(self, key: str, default: Any = None) -> Any: ...


LIST_PARAMS = (
    "product_types_included",
    "product_types_excluded",
    "vendors_included",
    "vendors_excluded",
    "collections_included",
    "collections_excluded",
    "categories_included",
    "categories_excluded",
)

ACTIVE_STATUS = "ACTIVE"


@dataclass(frozen=True)
class FilterSpec:
    """Filter parameters for a product export.

    Every set is either None (filter absent) or non-empty. Dates are
    kept as the raw strings the caller sent.

    Attributes:
        product_types_included: Keep products of these types.
        product_types_excluded: Drop products of these types.
        vendors_included: Keep products from these vendors.
        vendors_excluded: Drop products from these vendors.
        collections_included: Keep products in any of these collections (id or handle).
        collections_excluded: Drop products in any of these collections (id or handle).
        categories_included: Keep products in these categories (id or name).
        categories_excluded: Drop products in these categories (id or name).
        created_from: Lower bound on creation date.
        created_to: Upper bound on creation date.
        is_active: True for ACTIVE products only, False for the others.
    """

    product_types_included: frozenset[str] | None = None
    product_types_excluded: frozenset[str] | None = None
    vendors_included: frozenset[str] | None = None
    vendors_excluded: frozenset[str] | None = None
    collections_included: frozenset[str] | None = None
    collections_excluded: frozenset[str] | None = None
    categories_included: frozenset[str] | None = None
    categories_excluded: frozenset[str] | None = None
    created_from: str | None = None
    created_to: str | None = None
    is_active: bool | None = None

    @property
    def is_empty(self) -> bool:
        """Check whether no filter is set."""
        return all(getattr(self, f.name) is None for f in fields(self))

    @property
    def has_node_side_filters(self) -> bool:
        """Check whether a filter must be applied after fetching."""
        return any(
            value is not None
            for value in (
                self.collections_included,
                self.collections_excluded,
                self.categories_included,
                self.categories_excluded,
            )
        )


# ============================================================================
# Parsing
# ============================================================================


def _clean_tokens(values: list[str]) -> frozenset[str] | None:
    tokens = frozenset(v.strip() for v in values if v and v.strip())
    return tokens or None


def _get_list_param(params: MultiValueParams, name: str) -> frozenset[str] | None:
    """Read a list filter from ``name[]`` (preferred) or comma-joined ``name``."""
    repeated = params.getlist(f"{name}[]")
    if repeated:
        return _clean_tokens(repeated)
    # First occurrence wins for a repeated plain key.
    values = params.getlist(name)
    if not values or not values[0]:
        return None
    return _clean_tokens(values[0].split(","))


def _get_str_param(params: MultiValueParams, name: str) -> str | None:
    value = params.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def parse_is_active(value: str | None) -> bool | None:
    """Parse the tri-state ``is_active`` flag.

    Args:
        value: Raw parameter value.

    Returns:
        True for "true", False for "false", None for anything else.
    """
    if value == "true":
        return True
    if value == "false":
        return False
    return None


def parse_product_filters(params: MultiValueParams) -> FilterSpec:
    """Build a FilterSpec from request query parameters.

    Never raises: unknown tokens pass through as opaque strings.

    Args:
        params: Query parameters.

    Returns:
        Parsed filters.
    """
    lists = {name: _get_list_param(params, name) for name in LIST_PARAMS}
    return FilterSpec(
        **lists,
        created_from=_get_str_param(params, "created_from"),
        created_to=_get_str_param(params, "created_to"),
        is_active=parse_is_active(params.get("is_active")),
    )


# ============================================================================
# Shopify search query
# ============================================================================


def _quote(token: str) -> str:
    return "'" + token.replace("'", "\\'") + "'"


def build_shopify_query(spec: FilterSpec) -> str:
    """Translate the server-side subset of a FilterSpec into Shopify search syntax.

    Collections and categories are not expressible in the search syntax
    and are left to ``apply_node_side_filters``. Tokens are sorted so the
    output is stable for a given spec.

    Args:
        spec: Filter specification.

    Returns:
        Space-joined query string, empty when nothing applies.
    """
    parts: list[str] = []

    if spec.product_types_included:
        parts.append(
            " OR ".join(
                f"product_type:{_quote(t)}" for t in sorted(spec.product_types_included)
            )
        )
    if spec.product_types_excluded:
        parts.append(
            " ".join(
                f"-product_type:{_quote(t)}" for t in sorted(spec.product_types_excluded)
            )
        )
    if spec.vendors_included:
        parts.append(
            " OR ".join(f"vendor:{_quote(v)}" for v in sorted(spec.vendors_included))
        )
    if spec.vendors_excluded:
        parts.append(
            " ".join(f"-vendor:{_quote(v)}" for v in sorted(spec.vendors_excluded))
        )

    if spec.is_active is True:
        parts.append(f"status:{ACTIVE_STATUS}")
    elif spec.is_active is False:
        parts.append(f"-status:{ACTIVE_STATUS}")

    # Dates are interpolated as received.
    if spec.created_from:
        parts.append(f"created_at:>='{spec.created_from}'")
    if spec.created_to:
        parts.append(f"created_at:<='{spec.created_to}'")

    return " ".join(parts)


# ============================================================================
# Node-side filters
# ============================================================================


def _in_collections(item: CatalogItem, wanted: frozenset[str]) -> bool:
    return any(c.handle in wanted or c.id in wanted for c in item.collections)


def _in_categories(item: CatalogItem, wanted: frozenset[str]) -> bool:
    if item.category is None:
        return False
    name, category_id = item.category.name, item.category.id
    return bool((name and name in wanted) or (category_id and category_id in wanted))


def matches_node_side_filters(item: CatalogItem, spec: FilterSpec) -> bool:
    """Check one item against the collection and category filters.

    Args:
        item: Catalog item.
        spec: Filter specification.

    Returns:
        True if every present filter accepts the item.
    """
    if spec.collections_included is not None and not _in_collections(
        item, spec.collections_included
    ):
        return False
    if spec.collections_excluded is not None and _in_collections(
        item, spec.collections_excluded
    ):
        return False
    if spec.categories_included is not None and not _in_categories(
        item, spec.categories_included
    ):
        return False
    if spec.categories_excluded is not None and _in_categories(
        item, spec.categories_excluded
    ):
        return False
    return True


def apply_node_side_filters(
    items: list[CatalogItem], spec: FilterSpec
) -> list[CatalogItem]:
    """Apply the filters Shopify's search syntax cannot express.

    Args:
        items: Fetched catalog items.
        spec: Filter specification.

    Returns:
        Items accepted by every present filter, in their original order.
    """
    if not spec.has_node_side_filters:
        return list(items)
    return [item for item in items if matches_node_side_filters(item, spec)]
