"""API layer module.

Contains FastAPI routers, dependencies and request/response schemas.
"""

from app.api.catalog import router as catalog_router
from app.api.health import router as health_router
from app.api.imports import router as imports_router
from app.api.public import router as public_router
from app.api.sync import router as sync_router
from app.api.taxonomies import router as taxonomies_router

__all__ = [
    "catalog_router",
    "health_router",
    "imports_router",
    "public_router",
    "sync_router",
    "taxonomies_router",
]
