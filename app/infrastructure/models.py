"""SQLAlchemy models for database tables.

Provides ORM models for shop_settings, shop_connections, sync_logs and
product_syncs.
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, Integer, String, Text

from app.domain.records import ProductSync, ShopConnection, ShopSetting, SyncLog
from app.infrastructure.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ShopSettingModel(Base):
    """Per-shop settings, keyed by shop domain."""

    __tablename__ = "shop_settings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    shop = Column(String(255), nullable=False, unique=True, index=True)
    shopify_token = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    def to_record(self) -> ShopSetting:
        """Convert to domain record."""
        return ShopSetting(
            id=self.id,
            shop=self.shop,
            shopify_token=self.shopify_token,
            created_at=self.created_at,
        )


class ShopConnectionModel(Base):
    """A shop connected to Upsellr."""

    __tablename__ = "shop_connections"

    shop_id = Column(String(255), primary_key=True)
    shop_domain = Column(String(255), nullable=False, index=True)
    shop_url = Column(String(500), nullable=False)
    access_token = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    last_sync = Column(DateTime(timezone=True), nullable=True)

    def to_record(self) -> ShopConnection:
        """Convert to domain record."""
        return ShopConnection(
            shop_id=self.shop_id,
            shop_domain=self.shop_domain,
            shop_url=self.shop_url,
            access_token=self.access_token,
            created_at=self.created_at,
            last_sync=self.last_sync,
        )


class SyncLogModel(Base):
    """Log entry for one import or export run."""

    __tablename__ = "sync_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    shop_id = Column(String(255), nullable=False, index=True)
    sync_type = Column(String(20), nullable=False)
    products_count = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_record(self) -> SyncLog:
        """Convert to domain record."""
        return SyncLog(
            id=self.id,
            shop_id=self.shop_id,
            sync_type=self.sync_type,
            products_count=self.products_count,
            status=self.status,
            error_message=self.error_message,
            created_at=self.created_at,
        )


class ProductSyncModel(Base):
    """Link between a Shopify product and its Upsellr counterpart."""

    __tablename__ = "product_syncs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    shop_id = Column(String(255), nullable=False, index=True)
    shopify_product_id = Column(String(255), nullable=False, index=True)
    saas_product_id = Column(String(255), nullable=True)
    sync_direction = Column(String(30), nullable=False)
    last_sync = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_record(self) -> ProductSync:
        """Convert to domain record."""
        return ProductSync(
            id=self.id,
            shop_id=self.shop_id,
            shopify_product_id=self.shopify_product_id,
            saas_product_id=self.saas_product_id,
            sync_direction=self.sync_direction,
            last_sync=self.last_sync,
        )
