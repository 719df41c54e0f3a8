"""Settings and synchronization stores.

Two implementations per store: in-memory (default, also used by tests)
and SQLAlchemy-backed. ``settings.storage_backend`` picks one; routes
receive it through FastAPI dependencies.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.domain.records import ProductSync, ShopConnection, ShopSetting, SyncLog
from app.infrastructure.config import settings
from app.infrastructure.database import build_engine, build_session_factory
from app.infrastructure.models import (
    ProductSyncModel,
    ShopConnectionModel,
    ShopSettingModel,
    SyncLogModel,
)

logger = structlog.get_logger()


# ============================================================================
# Interfaces
# ============================================================================


class SettingsStore(ABC):
    """Per-shop settings and connections."""

    @abstractmethod
    async def get(self, shop: str) -> ShopSetting | None:
        """Get the settings of a shop domain."""

    @abstractmethod
    async def first(self) -> ShopSetting | None:
        """Get the earliest configured shop."""

    @abstractmethod
    async def save_token(self, shop: str, token: str) -> ShopSetting:
        """Store a shop's token, creating its settings when missing."""

    @abstractmethod
    async def create_shop_connection(
        self,
        shop_id: str,
        shop_domain: str,
        shop_url: str,
        access_token: str,
    ) -> ShopConnection:
        """Record (or refresh) a shop connection."""


class SyncLogStore(ABC):
    """Synchronization logs and product links."""

    @abstractmethod
    async def create_sync_log(
        self,
        shop_id: str,
        sync_type: str,
        products_count: int,
        status: str,
        error_message: str | None = None,
    ) -> SyncLog:
        """Record a catalog run."""

    @abstractmethod
    async def list_sync_logs(self, shop_id: str) -> list[SyncLog]:
        """List a shop's runs, newest first."""

    @abstractmethod
    async def create_product_sync(
        self,
        shop_id: str,
        shopify_product_id: str,
        sync_direction: str,
        saas_product_id: str | None = None,
    ) -> ProductSync:
        """Record a synchronized product."""

    @abstractmethod
    async def list_product_syncs(self, shop_id: str) -> list[ProductSync]:
        """List a shop's synchronized products, newest first."""


# ============================================================================
# In-memory
# ============================================================================


class InMemorySettingsStore(SettingsStore):
    """Settings store kept in process memory."""

    def __init__(self) -> None:
        self._settings: dict[str, ShopSetting] = {}
        self._connections: dict[str, ShopConnection] = {}

    async def get(self, shop: str) -> ShopSetting | None:
        return self._settings.get(shop)

    async def first(self) -> ShopSetting | None:
        if not self._settings:
            return None
        return min(self._settings.values(), key=lambda s: s.created_at)

    async def save_token(self, shop: str, token: str) -> ShopSetting:
        setting = self._settings.get(shop)
        if setting is None:
            setting = ShopSetting(shop=shop)
            self._settings[shop] = setting
        setting.shopify_token = token
        return setting

    async def create_shop_connection(
        self,
        shop_id: str,
        shop_domain: str,
        shop_url: str,
        access_token: str,
    ) -> ShopConnection:
        connection = ShopConnection(
            shop_id=shop_id,
            shop_domain=shop_domain,
            shop_url=shop_url,
            access_token=access_token,
        )
        self._connections[shop_id] = connection
        return connection


class InMemorySyncLogStore(SyncLogStore):
    """Sync log store kept in process memory."""

    def __init__(self) -> None:
        self._logs: list[SyncLog] = []
        self._product_syncs: list[ProductSync] = []

    async def create_sync_log(
        self,
        shop_id: str,
        sync_type: str,
        products_count: int,
        status: str,
        error_message: str | None = None,
    ) -> SyncLog:
        log = SyncLog(
            shop_id=shop_id,
            sync_type=sync_type,
            products_count=products_count,
            status=status,
            error_message=error_message,
        )
        self._logs.append(log)
        return log

    async def list_sync_logs(self, shop_id: str) -> list[SyncLog]:
        return [log for log in reversed(self._logs) if log.shop_id == shop_id]

    async def create_product_sync(
        self,
        shop_id: str,
        shopify_product_id: str,
        sync_direction: str,
        saas_product_id: str | None = None,
    ) -> ProductSync:
        record = ProductSync(
            shop_id=shop_id,
            shopify_product_id=shopify_product_id,
            sync_direction=sync_direction,
            saas_product_id=saas_product_id,
        )
        self._product_syncs.append(record)
        return record

    async def list_product_syncs(self, shop_id: str) -> list[ProductSync]:
        return [p for p in reversed(self._product_syncs) if p.shop_id == shop_id]


# ============================================================================
# SQLAlchemy
# ============================================================================


class _SessionScope:
    """Opens one committed session per store call."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise


class DatabaseSettingsStore(_SessionScope, SettingsStore):
    """Settings store backed by the ``shop_settings`` and ``shop_connections`` tables."""

    async def _get_model(
        self, session: AsyncSession, shop: str
    ) -> ShopSettingModel | None:
        result = await session.execute(
            select(ShopSettingModel).where(ShopSettingModel.shop == shop)
        )
        return result.scalar_one_or_none()

    async def get(self, shop: str) -> ShopSetting | None:
        async with self._session() as session:
            model = await self._get_model(session, shop)
            return model.to_record() if model else None

    async def first(self) -> ShopSetting | None:
        async with self._session() as session:
            result = await session.execute(
                select(ShopSettingModel).order_by(ShopSettingModel.created_at).limit(1)
            )
            model = result.scalar_one_or_none()
            return model.to_record() if model else None

    async def save_token(self, shop: str, token: str) -> ShopSetting:
        async with self._session() as session:
            model = await self._get_model(session, shop)
            if model is None:
                model = ShopSettingModel(shop=shop)
                session.add(model)
            model.shopify_token = token
            await session.flush()
            return model.to_record()

    async def create_shop_connection(
        self,
        shop_id: str,
        shop_domain: str,
        shop_url: str,
        access_token: str,
    ) -> ShopConnection:
        async with self._session() as session:
            model = await session.get(ShopConnectionModel, shop_id)
            if model is None:
                model = ShopConnectionModel(shop_id=shop_id)
                session.add(model)
            model.shop_domain = shop_domain
            model.shop_url = shop_url
            model.access_token = access_token
            await session.flush()
            return model.to_record()


class DatabaseSyncLogStore(_SessionScope, SyncLogStore):
    """Sync log store backed by the ``sync_logs`` and ``product_syncs`` tables."""

    async def create_sync_log(
        self,
        shop_id: str,
        sync_type: str,
        products_count: int,
        status: str,
        error_message: str | None = None,
    ) -> SyncLog:
        async with self._session() as session:
            model = SyncLogModel(
                shop_id=shop_id,
                sync_type=sync_type,
                products_count=products_count,
                status=status,
                error_message=error_message,
                created_at=datetime.now(timezone.utc),
            )
            session.add(model)
            await session.flush()
            return model.to_record()

    async def list_sync_logs(self, shop_id: str) -> list[SyncLog]:
        async with self._session() as session:
            result = await session.execute(
                select(SyncLogModel)
                .where(SyncLogModel.shop_id == shop_id)
                .order_by(SyncLogModel.created_at.desc())
            )
            return [model.to_record() for model in result.scalars().all()]

    async def create_product_sync(
        self,
        shop_id: str,
        shopify_product_id: str,
        sync_direction: str,
        saas_product_id: str | None = None,
    ) -> ProductSync:
        async with self._session() as session:
            model = ProductSyncModel(
                shop_id=shop_id,
                shopify_product_id=shopify_product_id,
                saas_product_id=saas_product_id,
                sync_direction=sync_direction,
                last_sync=datetime.now(timezone.utc),
            )
            session.add(model)
            await session.flush()
            return model.to_record()

    async def list_product_syncs(self, shop_id: str) -> list[ProductSync]:
        async with self._session() as session:
            result = await session.execute(
                select(ProductSyncModel)
                .where(ProductSyncModel.shop_id == shop_id)
                .order_by(ProductSyncModel.last_sync.desc())
            )
            return [model.to_record() for model in result.scalars().all()]


# ============================================================================
# Providers
# ============================================================================

_settings_store: SettingsStore | None = None
_sync_log_store: SyncLogStore | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = build_session_factory(build_engine())
        logger.info("Database storage configured", storage_backend=settings.storage_backend)
    return _session_factory


def get_settings_store() -> SettingsStore:
    """Get the configured settings store."""
    global _settings_store
    if _settings_store is None:
        if settings.storage_backend == "database":
            _settings_store = DatabaseSettingsStore(_get_session_factory())
        else:
            _settings_store = InMemorySettingsStore()
    return _settings_store


def get_sync_log_store() -> SyncLogStore:
    """Get the configured sync log store."""
    global _sync_log_store
    if _sync_log_store is None:
        if settings.storage_backend == "database":
            _sync_log_store = DatabaseSyncLogStore(_get_session_factory())
        else:
            _sync_log_store = InMemorySyncLogStore()
    return _sync_log_store


def reset_stores() -> None:
    """Drop the configured stores (for testing)."""
    global _settings_store, _sync_log_store, _session_factory
    _settings_store = None
    _sync_log_store = None
    _session_factory = None
