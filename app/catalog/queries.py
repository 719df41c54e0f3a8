"""GraphQL documents for the Shopify Admin API.

Product page queries come in three field sets, see ``FieldSet``.
"""

from enum import Enum


class FieldSet(str, Enum):
    """Product fields requested per page."""

    NARROW = "narrow"
    FULL = "full"
    FULL_WITHOUT_REFERENCES = "full_without_references"


PAGE_SIZES = {
    FieldSet.NARROW: 250,
    # Nested variants, images and metafields push heavy pages over
    # Shopify's query cost limit, so full pages stay small.
    FieldSet.FULL: 50,
    FieldSet.FULL_WITHOUT_REFERENCES: 50,
}


_PRODUCTS_PAGE = """
query getAllProducts($first: Int!, $after: String, $query: String) {
  products(first: $first, after: $after, query: $query) {
    pageInfo { hasNextPage endCursor }
    edges { node { %s } }
  }
}
"""

_NARROW_FIELDS = """
      id
      collections(first: 250) { edges { node { id handle } } }
      category { id name }
      productType
"""

_REFERENCES = """
            references(first: 50) {
              edges {
                node {
                  __typename
                  ... on Node { id }
                  ... on Metaobject { id type handle displayName fields { key value } }
                  ... on Product { id title }
                  ... on Collection { id title }
                }
              }
            }
"""

_FULL_FIELDS = """
      id
      title
      handle
      description
      status
      totalInventory
      createdAt
      updatedAt
      vendor
      productType
      tags
      variants(first: 100) {
        edges { node { id title sku price compareAtPrice inventoryQuantity barcode taxable } }
      }
      images(first: 50) {
        edges { node { id url altText width height } }
      }
      collections(first: 100) {
        edges { node { id title handle } }
      }
      category { id name }
      seo { title description }
      metafields(first: 50) {
        edges {
          node {
            id
            namespace
            key
            value
            type
%s
          }
        }
      }
"""


def products_page_query(field_set: FieldSet) -> str:
    """Build the paginated products query for a field set.

    Args:
        field_set: Fields to request.

    Returns:
        GraphQL document taking ``$first``, ``$after`` and ``$query``.
    """
    if field_set is FieldSet.NARROW:
        fields = _NARROW_FIELDS
    elif field_set is FieldSet.FULL:
        fields = _FULL_FIELDS % _REFERENCES
    else:
        fields = _FULL_FIELDS % ""
    return _PRODUCTS_PAGE % fields


NODE_LOOKUP_QUERY = """
query getNode($id: ID!) {
  node(id: $id) {
    __typename
    id
    ... on Metaobject { type handle displayName fields { key value } }
    ... on Product { title }
    ... on Collection { title }
  }
}
"""

METAOBJECT_DEFINITIONS_QUERY = """
query getMetaobjectDefinitions {
  metaobjectDefinitions(first: 250) {
    edges {
      node {
        id
        type
        name
        fieldDefinitions { key name type { name } }
      }
    }
  }
}
"""

COLLECTIONS_QUERY = """
query getCollections {
  collections(first: 250) {
    edges { node { id title handle } }
  }
}
"""

PRODUCT_FACETS_QUERY = """
query getProductFacets($first: Int!) {
  products(first: $first) {
    edges { node { id vendor productType category { id name } } }
  }
}
"""


# ============================================================================
# Import
# ============================================================================

PRODUCT_CREATE_MUTATION = """
mutation productCreate($input: ProductInput!) {
  productCreate(input: $input) {
    product { id title }
    userErrors { field message }
  }
}
"""

PRODUCT_UPDATE_MUTATION = """
mutation productUpdate($input: ProductInput!) {
  productUpdate(input: $input) {
    product { id title }
    userErrors { field message }
  }
}
"""

PRODUCT_VARIANTS_QUERY = """
query getProductVariants($id: ID!) {
  product(id: $id) {
    variants(first: 50) {
      edges { node { id title sku barcode } }
    }
  }
}
"""

VARIANTS_BULK_UPDATE_MUTATION = """
mutation productVariantsBulkUpdate($productId: ID!, $variants: [ProductVariantsBulkInput!]!) {
  productVariantsBulkUpdate(productId: $productId, variants: $variants) {
    productVariants { id sku barcode }
    userErrors { field message }
  }
}
"""

PRODUCT_MEDIA_QUERY = """
query getProductMedia($id: ID!) {
  product(id: $id) {
    media(first: 100) {
      edges { node { ... on MediaImage { id image { originalSrc } } } }
    }
  }
}
"""

DELETE_MEDIA_MUTATION = """
mutation productDeleteMedia($productId: ID!, $mediaIds: [ID!]!) {
  productDeleteMedia(productId: $productId, mediaIds: $mediaIds) {
    deletedMediaIds
    userErrors { field message }
  }
}
"""

CREATE_MEDIA_MUTATION = """
mutation productCreateMedia($productId: ID!, $media: [CreateMediaInput!]!) {
  productCreateMedia(productId: $productId, media: $media) {
    media { ... on MediaImage { id image { id originalSrc } } }
    mediaUserErrors { field message }
  }
}
"""

PRODUCT_COLLECTIONS_QUERY = """
query getProductCollections($id: ID!) {
  product(id: $id) {
    collections(first: 100) { edges { node { id } } }
  }
}
"""

COLLECTION_REMOVE_PRODUCTS_MUTATION = """
mutation removeProductFromCollection($id: ID!, $productIds: [ID!]!) {
  collectionRemoveProducts(id: $id, productIds: $productIds) {
    userErrors { field message }
  }
}
"""

COLLECTION_ADD_PRODUCTS_MUTATION = """
mutation addProductToCollection($id: ID!, $productIds: [ID!]!) {
  collectionAddProducts(id: $id, productIds: $productIds) {
    userErrors { field message }
  }
}
"""
