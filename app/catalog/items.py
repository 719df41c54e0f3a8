"""Catalog items fetched from the Shopify Admin API.

Request-scoped views over GraphQL product nodes. The raw node is kept
alongside the parsed fields so raw listings can return it verbatim.
"""

from dataclasses import dataclass, field
from typing import Any


def edge_nodes(connection: dict[str, Any] | None) -> list[dict[str, Any]]:
    """Unwrap a GraphQL connection into its list of nodes.

    Args:
        connection: Object shaped ``{"edges": [{"node": {...}}]}`` or None.

    Returns:
        List of node dicts, empty when the connection is missing.
    """
    if not connection:
        return []
    return [edge["node"] for edge in connection.get("edges") or [] if edge.get("node")]


@dataclass(frozen=True)
class CollectionRef:
    """A collection the product belongs to."""

    id: str
    handle: str | None = None
    title: str | None = None


@dataclass(frozen=True)
class CategoryRef:
    """The product's standard taxonomy category."""

    id: str | None
    name: str | None


@dataclass
class CustomField:
    """A product metafield.

    Attributes:
        namespace: Metafield namespace.
        key: Metafield key.
        value: Raw string value as stored by Shopify.
        type: Metafield type (e.g. ``list.metaobject_reference``).
        references: Embedded referenced objects, or None when the
            references sub-query was not part of the fetch.
    """

    namespace: str
    key: str
    value: str | None
    type: str | None
    references: list[dict[str, Any]] | None = None

    @property
    def full_key(self) -> str:
        """Get the ``namespace.key`` identifier."""
        return f"{self.namespace}.{self.key}"

    @classmethod
    def from_node(cls, node: dict[str, Any]) -> "CustomField":
        """Create from a GraphQL metafield node."""
        references = None
        if "references" in node:
            references = edge_nodes(node.get("references"))
        return cls(
            namespace=node.get("namespace") or "",
            key=node.get("key") or "",
            value=node.get("value"),
            type=node.get("type"),
            references=references,
        )


@dataclass
class CatalogItem:
    """A Shopify product as seen by the export pipeline."""

    id: str
    title: str | None = None
    vendor: str | None = None
    product_type: str | None = None
    status: str | None = None
    created_at: str | None = None
    collections: list[CollectionRef] = field(default_factory=list)
    category: CategoryRef | None = None
    custom_fields: list[CustomField] = field(default_factory=list)
    node: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def category_name(self) -> str | None:
        """Get the category name, if any."""
        return self.category.name if self.category else None

    @classmethod
    def from_node(cls, node: dict[str, Any]) -> "CatalogItem":
        """Create from a GraphQL product node.

        Args:
            node: Product node from a ``products`` connection.

        Returns:
            CatalogItem instance.
        """
        category_data = node.get("category")
        category = None
        if category_data:
            category = CategoryRef(id=category_data.get("id"), name=category_data.get("name"))

        return cls(
            id=node["id"],
            title=node.get("title"),
            vendor=node.get("vendor"),
            product_type=node.get("productType"),
            status=node.get("status"),
            created_at=node.get("createdAt"),
            collections=[
                CollectionRef(id=c["id"], handle=c.get("handle"), title=c.get("title"))
                for c in edge_nodes(node.get("collections"))
            ],
            category=category,
            custom_fields=[
                CustomField.from_node(m) for m in edge_nodes(node.get("metafields"))
            ],
            node=node,
        )
