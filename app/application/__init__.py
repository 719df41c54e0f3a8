"""Application layer module.

Contains application services (use cases) that orchestrate the
catalog pipeline, the Shopify client and the stores.
"""

from app.application.catalog_service import CatalogService
from app.application.import_service import ImageProbe, ImportService
from app.application.sync_service import SyncService

__all__ = [
    "CatalogService",
    "ImageProbe",
    "ImportService",
    "SyncService",
]
