"""Stored records.

Connection and synchronization bookkeeping kept per shop.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4


class SyncType(str, Enum):
    """Direction of a catalog run as seen from Upsellr."""

    IMPORT = "import"
    EXPORT = "export"


class SyncStatus(str, Enum):
    """Outcome of a catalog run."""

    SUCCESS = "success"
    ERROR = "error"
    PARTIAL = "partial"


class SyncDirection(str, Enum):
    """Direction a single product was synchronized in."""

    SHOPIFY_TO_SAAS = "shopify_to_saas"
    SAAS_TO_SHOPIFY = "saas_to_shopify"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _new_id() -> str:
    return str(uuid4())


@dataclass
class ShopSetting:
    """Settings of an installed shop."""

    shop: str
    shopify_token: str | None = None
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "shop": self.shop,
            "shopify_token": self.shopify_token,
            "created_at": _iso(self.created_at),
        }


@dataclass
class ShopConnection:
    """A shop connected to Upsellr."""

    shop_id: str
    shop_domain: str
    shop_url: str
    access_token: str
    created_at: datetime = field(default_factory=_utcnow)
    last_sync: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "shop_id": self.shop_id,
            "shop_domain": self.shop_domain,
            "shop_url": self.shop_url,
            "created_at": _iso(self.created_at),
            "last_sync": _iso(self.last_sync),
        }


@dataclass
class SyncLog:
    """Log entry for one import or export run."""

    shop_id: str
    sync_type: str
    products_count: int
    status: str
    error_message: str | None = None
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "sync_type": self.sync_type,
            "products_count": self.products_count,
            "status": self.status,
            "error_message": self.error_message,
            "created_at": _iso(self.created_at),
        }


@dataclass
class ProductSync:
    """Link between a Shopify product and its Upsellr counterpart."""

    shop_id: str
    shopify_product_id: str
    sync_direction: str
    saas_product_id: str | None = None
    id: str = field(default_factory=_new_id)
    last_sync: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "shopify_product_id": self.shopify_product_id,
            "saas_product_id": self.saas_product_id,
            "sync_direction": self.sync_direction,
            "last_sync": _iso(self.last_sync),
        }
