"""API middleware for the Upsellr bridge.

Provides:
- Request correlation (``X-Request-ID`` and shop bound to the log context)
- A last-resort handler for unhandled errors

Shopify authentication is per route, see ``app.api.dependencies``.
"""

import time
from typing import Callable
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger()


REQUEST_ID_HEADER = "X-Request-ID"


def error_body(
    error_code: str,
    message: str,
    request_id: str | None,
    details: object = None,
) -> dict[str, object]:
    """Build the error envelope shared by every error response."""
    return {
        "error_code": error_code,
        "message": message,
        "details": details if details is not None else [],
        "request_id": request_id,
    }


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Correlates requests, log lines and outgoing Shopify calls.

    The request ID is taken from ``X-Request-ID`` or generated, stored on
    ``request.state``, echoed in the response and bound to the structlog
    context together with the ``shop`` query parameter.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request with correlation context.

        Args:
            request: Incoming request.
            call_next: Next middleware/handler.

        Returns:
            Response with request ID header.
        """
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
        request.state.request_id = request_id

        context = {"request_id": request_id}
        shop = request.query_params.get("shop")
        if shop:
            context["shop"] = shop
        structlog.contextvars.bind_contextvars(**context)

        started = time.perf_counter()
        response = None
        try:
            response = await call_next(request)
        finally:
            logger.info(
                "Request completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code if response is not None else 500,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            structlog.contextvars.unbind_contextvars(*context)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Turns exceptions that escaped the exception handlers into a 500 envelope."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Handle errors uniformly.

        Args:
            request: Incoming request.
            call_next: Next middleware/handler.

        Returns:
            Response or error response.
        """
        try:
            return await call_next(request)
        except Exception as e:
            logger.exception(
                "Unhandled exception",
                path=request.url.path,
                method=request.method,
                error=str(e),
            )
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content=error_body(
                    "INTERNAL_ERROR",
                    "An internal error occurred",
                    getattr(request.state, "request_id", None),
                ),
            )


def setup_middleware(app: FastAPI) -> None:
    """Configure all middleware for the application.

    Middleware is added in reverse order (last added = first executed).

    Args:
        app: FastAPI application instance.
    """
    # Added first, so it runs inside RequestIdMiddleware and sees request.state.request_id.
    app.add_middleware(ErrorHandlerMiddleware)

    app.add_middleware(RequestIdMiddleware)
