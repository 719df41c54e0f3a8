"""Tests for metafield reference resolution and category aggregations."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from app.catalog.items import CatalogItem, CategoryRef, CustomField
from app.catalog.taxonomy import (
    UNKNOWN_LABEL,
    TaxonomyResolver,
    count_products_by_category,
    extract_category_meta_taxonomies,
    get_category_meta_suggestions,
    is_meta_taxonomy_field,
    reference_ids,
    reference_label,
)
from app.infrastructure.shopify_client import ShopifyClientError

COLOR = "list.metaobject_reference"


def custom_field(
    value: str | None,
    type: str = COLOR,
    namespace: str = "shopify",
    key: str = "color-pattern",
    references: list | None = None,
) -> CustomField:
    return CustomField(namespace=namespace, key=key, value=value, type=type, references=references)


def item_in(category: str | None, *fields: CustomField, product_id: str = "p") -> CatalogItem:
    return CatalogItem(
        id=product_id,
        category=None if category is None else CategoryRef(id=f"cat-{category}", name=category),
        custom_fields=list(fields),
    )


class TestReferenceHelpers:
    """Tests for reference parsing and labels."""

    def test_list_value_is_parsed(self) -> None:
        """List references are JSON arrays."""
        ids, is_list = reference_ids(custom_field('["gid://x/1", "gid://x/2"]'))
        assert ids == ["gid://x/1", "gid://x/2"]
        assert is_list is True

    def test_malformed_list_is_single_reference(self) -> None:
        """A list type with a non-array value is treated as one reference."""
        ids, is_list = reference_ids(custom_field("gid://x/1"))
        assert ids == ["gid://x/1"]
        assert is_list is False

    def test_single_reference(self) -> None:
        """Single reference types hold one ID."""
        ids, is_list = reference_ids(custom_field("gid://x/1", type="metaobject_reference"))
        assert ids == ["gid://x/1"]
        assert is_list is False

    def test_label_prefers_metaobject_fields(self) -> None:
        """Metaobject fields win over top-level attributes."""
        obj = {
            "title": "Top",
            "fields": [{"key": "name", "value": "Field name"}, {"key": "label", "value": "L"}],
        }
        assert reference_label(obj) == "Field name"

    def test_label_field_order(self) -> None:
        """title, name and label are tried in that order."""
        assert reference_label({"label": "L", "name": "N"}) == "N"
        assert reference_label({"label": "L"}) == "L"

    def test_label_falls_back_to_type(self) -> None:
        """Objects without label fields use their type."""
        assert reference_label({"type": "shopify--color-pattern"}) == "shopify--color-pattern"
        assert reference_label({"__typename": "Metaobject"}) == "Metaobject"
        assert reference_label({}) == UNKNOWN_LABEL


class TestTaxonomyResolver:
    """Tests for TaxonomyResolver."""

    @pytest.mark.asyncio
    async def test_non_reference_value_is_unchanged(self, mock_client: MagicMock) -> None:
        """Plain metafields keep their raw value."""
        field = custom_field("Cotton", type="single_line_text_field", key="material")
        resolved = await TaxonomyResolver(mock_client).resolve_field(field)

        assert resolved.value == "Cotton"
        assert resolved.original_value == "Cotton"
        mock_client.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_lookup_resolves_labels_in_order(self, mock_client: MagicMock) -> None:
        """Every ID gets a label; null nodes become Unknown."""

        async def lookup(query, variables):
            if variables["id"] == "gid://x/1":
                return {"node": {"id": "gid://x/1", "title": "Red"}}
            return {"node": None}

        mock_client.execute = AsyncMock(side_effect=lookup)
        field = custom_field('["gid://x/1","gid://x/2"]')

        resolved = await TaxonomyResolver(mock_client).resolve_field(field)

        assert resolved.value == [
            {"id": "gid://x/1", "label": "Red"},
            {"id": "gid://x/2", "label": UNKNOWN_LABEL},
        ]
        assert resolved.original_value == '["gid://x/1","gid://x/2"]'
        assert mock_client.execute.await_count == 2

    @pytest.mark.asyncio
    async def test_single_reference_resolves_to_object(self, mock_client: MagicMock) -> None:
        """Non-list references resolve to one object."""
        mock_client.execute.return_value = {"node": {"id": "gid://x/1", "name": "Navy"}}
        field = custom_field("gid://x/1", type="metaobject_reference")

        resolved = await TaxonomyResolver(mock_client).resolve_field(field)

        assert resolved.value == {"id": "gid://x/1", "label": "Navy"}

    @pytest.mark.asyncio
    async def test_lookup_failure_becomes_error_label(self, mock_client: MagicMock) -> None:
        """A failed lookup is reported in the label, not raised."""
        mock_client.execute.side_effect = ShopifyClientError(
            "acme.myshopify.com", "Throttled", 429
        )
        field = custom_field('["gid://x/1"]')

        resolved = await TaxonomyResolver(mock_client).resolve_field(field)

        assert resolved.value == [{"id": "gid://x/1", "label": "Error: Throttled"}]

    @pytest.mark.asyncio
    async def test_embedded_references_need_no_lookup(self, mock_client: MagicMock) -> None:
        """References fetched with the product are resolved locally."""
        field = custom_field(
            '["gid://x/1","gid://x/2"]',
            references=[
                {"id": "gid://x/1", "fields": [{"key": "label", "value": "Blue"}]},
            ],
        )

        resolved = await TaxonomyResolver(mock_client).resolve_field(field)

        assert resolved.value == [
            {"id": "gid://x/1", "label": "Blue"},
            {"id": "gid://x/2", "label": UNKNOWN_LABEL},
        ]
        mock_client.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_embedded_file_references_use_type_name(self, mock_client: MagicMock) -> None:
        """File references without display fields are labelled by their type."""
        item = CatalogItem.from_node(
            {
                "id": "gid://shopify/Product/1",
                "metafields": {
                    "edges": [
                        {
                            "node": {
                                "namespace": "shopify",
                                "key": "gallery",
                                "type": "list.file_reference",
                                "value": '["gid://shopify/MediaImage/9","gid://shopify/GenericFile/3"]',
                                "references": {
                                    "edges": [
                                        {
                                            "node": {
                                                "__typename": "MediaImage",
                                                "id": "gid://shopify/MediaImage/9",
                                            }
                                        },
                                        {"node": {"__typename": "GenericFile"}},
                                    ]
                                },
                            }
                        }
                    ]
                },
            }
        )

        resolved = await TaxonomyResolver(mock_client).resolve(item)

        assert resolved["shopify.gallery"].value == [
            {"id": "gid://shopify/MediaImage/9", "label": "MediaImage"},
            {"id": "gid://shopify/GenericFile/3", "label": "GenericFile"},
        ]
        mock_client.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_skip_keeps_raw_value(self, mock_client: MagicMock) -> None:
        """Skipping resolution leaves references raw."""
        field = custom_field('["gid://x/1"]')

        resolved = await TaxonomyResolver(mock_client).resolve_field(
            field, skip_metaobject_resolution=True
        )

        assert resolved.value == '["gid://x/1"]'
        mock_client.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_without_client_keeps_raw_value(self) -> None:
        """A resolver without client cannot look anything up."""
        resolved = await TaxonomyResolver().resolve_field(custom_field('["gid://x/1"]'))
        assert resolved.value == '["gid://x/1"]'

    @pytest.mark.asyncio
    async def test_resolve_keys_by_namespace_and_key(self, mock_client: MagicMock) -> None:
        """resolve returns every field keyed by namespace.key."""
        item = item_in(
            "Apparel",
            custom_field("Cotton", type="single_line_text_field", key="material"),
            custom_field("4", type="number_integer", namespace="specs", key="size"),
        )

        resolved = await TaxonomyResolver(mock_client).resolve(item)

        assert set(resolved) == {"shopify.material", "specs.size"}
        assert resolved["specs.size"].to_dict() == {
            "namespace": "specs",
            "key": "size",
            "type": "number_integer",
            "value": "4",
            "original_value": "4",
        }


class TestCategoryAggregations:
    """Tests for per-category extraction and suggestions."""

    @pytest.mark.parametrize(
        "namespace,key,expected",
        [
            ("specs", "weight", True),
            ("custom", "auto_meta_color", True),
            ("Category_Meta", "x", True),
            ("custom", "Recommended_size", True),
            ("custom", "care", False),
        ],
    )
    def test_is_meta_taxonomy_field(self, namespace: str, key: str, expected: bool) -> None:
        """Fields match on namespace or key patterns, case-insensitively."""
        field = custom_field("x", type="single_line_text_field", namespace=namespace, key=key)
        assert is_meta_taxonomy_field(field) is expected

    def test_extract_dedupes_per_category(self) -> None:
        """Each field appears once per category with its first value."""
        items = [
            item_in("Apparel", custom_field("S", type="t", namespace="specs", key="size")),
            item_in("Apparel", custom_field("M", type="t", namespace="specs", key="size")),
            item_in("Food", custom_field("1kg", type="t", namespace="specs", key="weight")),
            item_in(None, custom_field("XL", type="t", namespace="specs", key="size")),
            item_in("Food", custom_field("x", type="t", namespace="custom", key="care")),
        ]

        result = extract_category_meta_taxonomies(items)

        assert result == {
            "Apparel": [{"namespace": "specs", "key": "size", "value": "S", "type": "t"}],
            "Food": [{"namespace": "specs", "key": "weight", "value": "1kg", "type": "t"}],
        }

    def test_count_products_by_category(self) -> None:
        """Uncategorized items are not counted."""
        items = [item_in("Apparel"), item_in("Apparel"), item_in("Food"), item_in(None)]
        assert count_products_by_category(items) == {"Apparel": 2, "Food": 1}

    def test_suggestion_frequency(self) -> None:
        """Three of four products filled in gives 0.75."""
        items = [
            item_in("Apparel", custom_field("Red", type="t", key="color")),
            item_in("Apparel", custom_field("Blue", type="t", key="color")),
            item_in("Apparel", custom_field("Red", type="t", key="color")),
            item_in("Apparel", custom_field("", type="t", key="color")),
            item_in("Food", custom_field("Green", type="t", key="color")),
        ]

        [suggestion] = get_category_meta_suggestions(items, "Apparel")

        assert suggestion.count == 3
        assert suggestion.frequency == 0.75
        assert suggestion.values == ["Red", "Blue"]

    def test_suggestions_sorted_by_frequency(self) -> None:
        """Most filled-in fields come first; empty-only fields have zero count."""
        items = [
            item_in(
                "Apparel",
                custom_field("x", type="t", key="rare"),
                custom_field("a", type="t", key="common"),
                custom_field(" ", type="t", key="empty"),
            ),
            item_in("Apparel", custom_field("b", type="t", key="common")),
        ]

        suggestions = get_category_meta_suggestions(items, "Apparel")

        assert [s.key for s in suggestions] == ["common", "rare", "empty"]
        assert suggestions[0].frequency == 1.0
        assert suggestions[2].count == 0
        assert suggestions[2].values == []

    def test_unknown_category_has_no_suggestions(self) -> None:
        """No products means no suggestions."""
        assert get_category_meta_suggestions([item_in("Apparel")], "Food") == []
