"""Upsellr bridge main application module.

This module initializes the FastAPI application and configures
logging, middleware, routers and exception handlers.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from app.api.catalog import router as catalog_router
from app.api.health import router as health_router
from app.api.imports import router as imports_router
from app.api.middleware import error_body, setup_middleware
from app.api.public import router as public_router
from app.api.sync import router as sync_router
from app.api.taxonomies import router as taxonomies_router
from app.domain.exceptions import DomainError
from app.infrastructure.config import settings
from app.infrastructure.log_config import configure_logging
from app.infrastructure.shopify_client import ShopifyClientError

configure_logging()

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup and shutdown events.

    Args:
        app: The FastAPI application instance.

    Yields:
        None after startup, cleanup happens after yield.
    """
    logger.info(
        "Starting Upsellr bridge",
        version=settings.api_version,
        debug=settings.debug,
        shopify_api_version=settings.shopify_api_version,
        storage_backend=settings.storage_backend,
    )

    yield

    logger.info("Shutting down Upsellr bridge")


app = FastAPI(
    title="Upsellr Shopify Bridge",
    description="Catalog proxy between Shopify shops and Upsellr",
    version=settings.api_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware (must be added before custom middleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Request ID and error handling
setup_middleware(app)

app.include_router(health_router, tags=["Health"])
app.include_router(catalog_router)
app.include_router(taxonomies_router)
app.include_router(imports_router)
app.include_router(sync_router)
app.include_router(public_router)


# ============================================================================
# Custom Exception Handlers
# ============================================================================


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Map domain errors to their HTTP status."""
    logger.info(
        "Request rejected",
        path=request.url.path,
        error_code=exc.error_code,
        status_code=exc.status_code,
        error=exc.message,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.error_code, exc.message, _request_id(request), exc.details),
    )


@app.exception_handler(ShopifyClientError)
async def shopify_error_handler(request: Request, exc: ShopifyClientError) -> JSONResponse:
    """Report Shopify failures as a bad gateway."""
    logger.warning(
        "Shopify call failed",
        path=request.url.path,
        shop_domain=exc.shop_domain,
        status_code=exc.status_code,
        error=exc.message,
    )
    return JSONResponse(
        status_code=502,
        content=error_body(
            "SHOPIFY_API_ERROR",
            exc.message,
            _request_id(request),
            {"shopify_status": exc.status_code, "errors": exc.errors},
        ),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions, unmatched routes included, with consistent format."""
    detail = exc.detail
    if isinstance(detail, dict):
        error_code = detail.get("error_code", "ERROR")
        message = detail.get("message", str(detail))
        details = detail.get("details", [])
    else:
        error_code = "ERROR"
        message = str(detail)
        details = []

    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(error_code, message, _request_id(request), details),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions with consistent format."""
    logger.exception(
        "Unhandled exception in handler",
        path=request.url.path,
        method=request.method,
        error=str(exc),
    )
    return JSONResponse(
        status_code=500,
        content=error_body("INTERNAL_ERROR", "An internal error occurred", _request_id(request)),
    )
