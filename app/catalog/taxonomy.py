"""Product meta taxonomies.

Resolves metafield references to readable labels and aggregates
metafield statistics per product category.

A reference metafield stores opaque global IDs, e.g.:
    type:  list.metaobject_reference
    value: ["gid://shopify/Metaobject/1", "gid://shopify/Metaobject/2"]

Resolution turns it into:
    [{"id": "gid://shopify/Metaobject/1", "label": "Red"}, ...]
"""

import json
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

import structlog

from app.catalog.items import CatalogItem, CustomField
from app.catalog.queries import NODE_LOOKUP_QUERY
from app.infrastructure.shopify_client import ShopifyAdminClient, ShopifyClientError

logger = structlog.get_logger()


UNKNOWN_LABEL = "Unknown"

# Checked in order on the referenced object.
REFERENCE_LABEL_FIELDS = ("title", "name", "label")

META_TAXONOMY_PATTERNS = (
    "taxonomy",
    "category_meta",
    "auto_meta",
    "suggested",
    "recommended",
    "attributes",
    "specifications",
)
SPECS_NAMESPACE = "specs"


@dataclass
class ResolvedField:
    """A metafield with its references resolved.

    Attributes:
        namespace: Metafield namespace.
        key: Metafield key.
        type: Metafield type.
        value: Resolved value (labels for references, raw value otherwise).
        original_value: Raw value as stored by Shopify.
    """

    namespace: str
    key: str
    type: str | None
    value: Any
    original_value: str | None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "namespace": self.namespace,
            "key": self.key,
            "type": self.type,
            "value": self.value,
            "original_value": self.original_value,
        }


@dataclass
class TaxonomySuggestion:
    """How often a metafield is filled in across a category.

    Attributes:
        namespace: Metafield namespace.
        key: Metafield key.
        type: Metafield type (first seen).
        values: Distinct non-empty values, in first-seen order.
        count: Products of the category with a non-empty value.
        frequency: ``count`` divided by the category's product count.
    """

    namespace: str
    key: str
    type: str | None
    values: list[str] = field(default_factory=list)
    count: int = 0
    frequency: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "namespace": self.namespace,
            "key": self.key,
            "type": self.type,
            "values": list(self.values),
            "count": self.count,
            "frequency": self.frequency,
        }


# ============================================================================
# Reference helpers
# ============================================================================


def is_reference_type(field_type: str | None) -> bool:
    """Check whether a metafield type holds references."""
    return bool(field_type) and field_type.endswith("_reference")


def is_list_type(field_type: str | None) -> bool:
    """Check whether a metafield type is a list type."""
    return bool(field_type) and field_type.startswith("list.")


def reference_ids(custom_field: CustomField) -> tuple[list[str], bool]:
    """Extract referenced IDs from a reference metafield.

    List types are parsed as JSON arrays. A list-typed value that is not
    a valid array is handled like a single reference.

    Args:
        custom_field: Reference metafield.

    Returns:
        Tuple of (ids, is_list).
    """
    raw = custom_field.value
    if not raw:
        return [], is_list_type(custom_field.type)

    if is_list_type(custom_field.type):
        try:
            parsed = json.loads(raw)
        except ValueError:
            parsed = None
        if isinstance(parsed, list):
            return [str(v) for v in parsed if v], True

    return [raw], False


def reference_label(obj: dict[str, Any]) -> str:
    """Pick a display label for a referenced object.

    Metaobject fields are checked first, then the object's own
    attributes, for ``title``, ``name`` and ``label`` in that order. The
    object's type name is the last resort.

    Args:
        obj: Referenced object as returned by the Admin API.

    Returns:
        Display label.
    """
    object_fields = {
        f["key"]: f.get("value") for f in obj.get("fields") or [] if f.get("key")
    }
    for name in REFERENCE_LABEL_FIELDS:
        if object_fields.get(name):
            return object_fields[name]
    for name in REFERENCE_LABEL_FIELDS:
        if obj.get(name):
            return obj[name]
    return obj.get("type") or obj.get("__typename") or UNKNOWN_LABEL


def has_value(value: str | None) -> bool:
    """Check whether a metafield value is non-empty."""
    return value is not None and str(value).strip() != ""


# ============================================================================
# Resolver
# ============================================================================


class TaxonomyResolver:
    """Resolves the metafields of catalog items.

    References embedded by the product fetch are resolved locally. When
    the fetch ran without the references sub-query, each referenced ID
    is looked up with its own request, one after the other.

    Example usage:
        resolver = TaxonomyResolver(client)
        taxonomies = await resolver.resolve(item)
        taxonomies["shopify.color-pattern"].value
    """

    def __init__(self, client: ShopifyAdminClient | None = None) -> None:
        """Initialize resolver.

        Args:
            client: Shopify client used for reference lookups. Without
                one, references that are not embedded stay raw.
        """
        self.client = client

    async def resolve(
        self,
        item: CatalogItem,
        skip_metaobject_resolution: bool = False,
    ) -> dict[str, ResolvedField]:
        """Resolve every metafield of an item.

        Args:
            item: Catalog item.
            skip_metaobject_resolution: Never issue lookups; references
                that are not embedded keep their raw value.

        Returns:
            Resolved fields keyed by ``namespace.key``.
        """
        resolved: dict[str, ResolvedField] = {}
        for custom_field in item.custom_fields:
            resolved[custom_field.full_key] = await self.resolve_field(
                custom_field, skip_metaobject_resolution
            )
        return resolved

    async def resolve_field(
        self,
        custom_field: CustomField,
        skip_metaobject_resolution: bool = False,
    ) -> ResolvedField:
        """Resolve one metafield.

        Args:
            custom_field: Metafield to resolve.
            skip_metaobject_resolution: Disable remote lookups.

        Returns:
            ResolvedField with the original value preserved.
        """
        value: Any = custom_field.value

        if is_reference_type(custom_field.type):
            ids, as_list = reference_ids(custom_field)
            references: list[dict[str, Any]] | None = None

            if ids and custom_field.references:
                references = self._resolve_locally(ids, custom_field.references)
            elif ids and self.client is not None and not skip_metaobject_resolution:
                references = [await self._lookup(ref_id) for ref_id in ids]

            if references is not None:
                value = references if as_list else references[0]

        return ResolvedField(
            namespace=custom_field.namespace,
            key=custom_field.key,
            type=custom_field.type,
            value=value,
            original_value=custom_field.value,
        )

    def _resolve_locally(
        self, ids: list[str], embedded: list[dict[str, Any]]
    ) -> list[dict[str, str]]:
        by_id = {obj.get("id"): obj for obj in embedded if obj.get("id")}
        resolved = []
        for position, ref_id in enumerate(ids):
            obj = by_id.get(ref_id)
            # References come back in value order; id-less ones pair by position.
            if obj is None and position < len(embedded) and not embedded[position].get("id"):
                obj = embedded[position]
            label = reference_label(obj) if obj else UNKNOWN_LABEL
            resolved.append({"id": ref_id, "label": label})
        return resolved

    async def _lookup(self, ref_id: str) -> dict[str, str]:
        """Look up a single referenced object by ID."""
        try:
            data = await self.client.execute(NODE_LOOKUP_QUERY, {"id": ref_id})
        except ShopifyClientError as e:
            logger.warning(
                "Reference lookup failed",
                reference_id=ref_id,
                status_code=e.status_code,
                error=e.message,
            )
            return {"id": ref_id, "label": f"Error: {e.message}"}

        node = data.get("node")
        if not node:
            return {"id": ref_id, "label": UNKNOWN_LABEL}
        return {"id": ref_id, "label": reference_label(node)}


# ============================================================================
# Category aggregations
# ============================================================================


def is_meta_taxonomy_field(custom_field: CustomField) -> bool:
    """Check whether a metafield carries category taxonomy data."""
    if custom_field.namespace == SPECS_NAMESPACE:
        return True
    namespace = custom_field.namespace.lower()
    key = custom_field.key.lower()
    return any(p in namespace or p in key for p in META_TAXONOMY_PATTERNS)


def extract_category_meta_taxonomies(
    items: list[CatalogItem],
) -> dict[str, list[dict[str, Any]]]:
    """Group taxonomy metafields by product category.

    Products without a category are ignored. Within a category each
    ``(namespace, key)`` appears once, with the first value seen.

    Args:
        items: Catalog items.

    Returns:
        Mapping of category name to its taxonomy fields.
    """
    taxonomies: dict[str, list[dict[str, Any]]] = {}
    seen: dict[str, set[tuple[str, str]]] = defaultdict(set)

    for item in items:
        category_name = item.category_name
        if not category_name:
            continue
        fields_for_category = taxonomies.setdefault(category_name, [])
        for custom_field in item.custom_fields:
            if not is_meta_taxonomy_field(custom_field):
                continue
            field_id = (custom_field.namespace, custom_field.key)
            if field_id in seen[category_name]:
                continue
            seen[category_name].add(field_id)
            fields_for_category.append(
                {
                    "namespace": custom_field.namespace,
                    "key": custom_field.key,
                    "value": custom_field.value,
                    "type": custom_field.type,
                }
            )

    return taxonomies


def count_products_by_category(items: list[CatalogItem]) -> dict[str, int]:
    """Count products per category name."""
    counts: dict[str, int] = defaultdict(int)
    for item in items:
        if item.category_name:
            counts[item.category_name] += 1
    return dict(counts)


def get_category_meta_suggestions(
    items: list[CatalogItem],
    category_name: str,
) -> list[TaxonomySuggestion]:
    """Compute how often each metafield is filled in within a category.

    Args:
        items: Catalog items (any category).
        category_name: Category to analyse.

    Returns:
        One suggestion per ``namespace.key`` seen in the category,
        sorted by descending frequency.
    """
    category_items = [item for item in items if item.category_name == category_name]
    total = len(category_items)
    if total == 0:
        return []

    suggestions: dict[str, TaxonomySuggestion] = {}
    for item in category_items:
        counted: set[str] = set()
        for custom_field in item.custom_fields:
            full_key = custom_field.full_key
            suggestion = suggestions.get(full_key)
            if suggestion is None:
                suggestion = TaxonomySuggestion(
                    namespace=custom_field.namespace,
                    key=custom_field.key,
                    type=custom_field.type,
                )
                suggestions[full_key] = suggestion

            if not has_value(custom_field.value):
                continue
            if custom_field.value not in suggestion.values:
                suggestion.values.append(custom_field.value)
            if full_key not in counted:
                counted.add(full_key)
                suggestion.count += 1

    for suggestion in suggestions.values():
        suggestion.frequency = suggestion.count / total

    return sorted(suggestions.values(), key=lambda s: s.frequency, reverse=True)
