"""Domain layer - stored records and domain exceptions."""

from app.domain.exceptions import (
    AuthenticationError,
    DomainError,
    MissingParameterError,
    NotFoundError,
    RemoteResponseInvalidError,
)
from app.domain.records import (
    ProductSync,
    ShopConnection,
    ShopSetting,
    SyncDirection,
    SyncLog,
    SyncStatus,
    SyncType,
)

__all__ = [
    # Exceptions
    "AuthenticationError",
    "DomainError",
    "MissingParameterError",
    "NotFoundError",
    "RemoteResponseInvalidError",
    # Records
    "ProductSync",
    "ShopConnection",
    "ShopSetting",
    "SyncDirection",
    "SyncLog",
    "SyncStatus",
    "SyncType",
]
