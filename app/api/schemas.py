"""API schemas for the Upsellr bridge.

Pydantic models for request/response validation and serialization.
Bodies posted by Upsellr use camelCase field names.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.domain.records import SyncDirection, SyncStatus, SyncType


# ============================================================================
# Common Schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Standard error response.

    All API errors follow this format for consistency.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: Any = Field(default_factory=list, description="Additional error details")
    request_id: str | None = Field(
        default=None, description="Request ID for correlation"
    )


class MessageResponse(BaseModel):
    """Acknowledgement of a recorded item."""

    success: bool = Field(default=True, description="Whether the item was recorded")
    message: str = Field(..., description="Human-readable confirmation")


# ============================================================================
# Catalog Schemas
# ============================================================================


class ProductsCountResponse(BaseModel):
    """Number of products matching the filters."""

    products_count: int = Field(..., ge=0, description="Matching products")


class OptionSchema(BaseModel):
    """A selectable filter value."""

    value: str = Field(..., description="Value to send back as a filter")
    label: str | None = Field(default=None, description="Display label")


class FilterOptionsResponse(BaseModel):
    """Values accepted by the export filters."""

    collections: list[OptionSchema] = Field(default_factory=list)
    categories: list[OptionSchema] = Field(default_factory=list)
    product_types: list[OptionSchema] = Field(default_factory=list)
    vendors: list[OptionSchema] = Field(default_factory=list)


class ThesaurusCategorySchema(OptionSchema):
    """A thesaurus category."""

    parent: str | None = Field(default=None, description="Parent category value")


class ThesaurusResponse(BaseModel):
    """Brands and categories of the shop."""

    brands: list[OptionSchema] = Field(default_factory=list)
    categories: list[ThesaurusCategorySchema] = Field(default_factory=list)


# ============================================================================
# Import Schemas
# ============================================================================


class ProductImportRequest(BaseModel):
    """Batch of Upsellr products to import.

    Products stay free-form; unknown keys are ignored by the importer.
    """

    products: list[Any] = Field(..., description="Upsellr product payloads")


class ProductImportResultSchema(BaseModel):
    """Outcome of importing one product."""

    status: str = Field(..., description="ok or error")
    error: str | None = Field(default=None, description="Joined error messages")
    shopify_id: str | None = Field(default=None, description="Shopify product GID")
    upsellr_raw_id: Any = Field(default=None, description="Upsellr product reference")
    variant_errors: list[dict[str, Any]] = Field(default_factory=list)
    collection_errors: list[dict[str, Any]] = Field(default_factory=list)


class ProductImportResponse(BaseModel):
    """Per-product import outcomes."""

    results: list[ProductImportResultSchema] = Field(default_factory=list)


# ============================================================================
# Sync Schemas
# ============================================================================


class SyncLogCreateRequest(BaseModel):
    """Request to record a catalog run."""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    shop_id: str = Field(..., alias="shopId", min_length=1, description="Shop GID")
    sync_type: SyncType = Field(..., alias="syncType", description="import or export")
    products_count: int = Field(
        ..., alias="productsCount", ge=0, description="Products handled by the run"
    )
    status: SyncStatus = Field(..., description="success, error or partial")
    error_message: str | None = Field(
        default=None, alias="errorMessage", description="Error summary"
    )


class SyncLogSchema(BaseModel):
    """A recorded catalog run."""

    id: str
    shop_id: str
    sync_type: str
    products_count: int
    status: str
    error_message: str | None = None
    created_at: str | None = None


class SyncLogListResponse(BaseModel):
    """Catalog runs of a shop."""

    logs: list[SyncLogSchema] = Field(default_factory=list)
    total: int = Field(..., ge=0)


class ProductSyncCreateRequest(BaseModel):
    """Request to record a synchronized product."""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    shop_id: str = Field(..., alias="shopId", min_length=1, description="Shop GID")
    shopify_product_id: str = Field(
        ..., alias="shopifyProductId", min_length=1, description="Shopify product GID"
    )
    saas_product_id: str | None = Field(
        default=None, alias="saasProductId", description="Upsellr product ID"
    )
    sync_direction: SyncDirection = Field(
        ..., alias="syncDirection", description="Direction of the synchronization"
    )


class ProductSyncSchema(BaseModel):
    """A synchronized product link."""

    id: str
    shop_id: str
    shopify_product_id: str
    saas_product_id: str | None = None
    sync_direction: str
    last_sync: str | None = None


class ProductSyncListResponse(BaseModel):
    """Synchronized products of a shop."""

    products: list[ProductSyncSchema] = Field(default_factory=list)
    total: int = Field(..., ge=0)


class ConnectResponse(BaseModel):
    """Details of a recorded shop connection."""

    success: str = Field(default="ok")
    shopDomain: str
    shopId: str
    token: str
    version: str
    warning: str | None = Field(default=None, description="Set when recording failed")
