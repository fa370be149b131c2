"""
FastAPI Application Factory

Creates and configures the storefront API application: middleware stack,
routers under /api/v1 and the mapping from domain exceptions to HTTP
responses.
"""

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
import structlog

from src.commerce.exceptions import (
    AuthenticationRequired,
    NotFoundError,
    PermissionDenied,
    StoreFailure,
    StorefrontError,
    ValidationFailure,
)
from src.config import get_settings
from src.serving.api.middleware import (
    RequestLoggingMiddleware,
    RateLimitMiddleware,
    SecurityHeadersMiddleware,
)
from src.serving.api.routes import (
    addresses_router,
    health_router,
    orders_router,
    payment_methods_router,
    products_router,
    reviews_router,
    stats_router,
    store_settings_router,
    users_router,
    wishlist_router,
)

logger = structlog.get_logger(__name__)

API_PREFIX = "/api/v1"

ERROR_STATUS_CODES = {
    NotFoundError: 404,
    ValidationFailure: 400,
    PermissionDenied: 403,
    AuthenticationRequired: 401,
    StoreFailure: 500,
}


async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
    status_code = next(
        (code for cls, code in ERROR_STATUS_CODES.items() if isinstance(exc, cls)),
        500,
    )
    if status_code >= 500:
        logger.error("Request failed", path=request.url.path, error=exc.message)
    else:
        logger.info(
            "Request rejected",
            path=request.url.path,
            status_code=status_code,
            error=exc.message,
        )
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error(
        "Database error",
        path=request.url.path,
        error=str(exc),
        error_type=type(exc).__name__,
    )
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_api_app(lifespan=None, rate_limit: Optional[bool] = None) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        lifespan: Optional lifespan context manager (startup/shutdown)
        rate_limit: Override for SECURITY rate limiting (tests disable it)

    Returns:
        Configured FastAPI app instance
    """
    settings = get_settings()

    app = FastAPI(
        title="Storefront API",
        description="Catalog, orders, customer records and admin statistics for the storefront",
        version=settings.version,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    # Innermost first: the last middleware added wraps all the others
    if settings.security.rate_limit_enabled if rate_limit is None else rate_limit:
        app.add_middleware(
            RateLimitMiddleware,
            max_requests=settings.security.rate_limit_requests,
            window_seconds=settings.security.rate_limit_window_seconds,
            exempt_paths=(f"{API_PREFIX}/health",),
        )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StorefrontError, storefront_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)

    app.include_router(health_router, prefix=API_PREFIX, tags=["Health"])
    app.include_router(products_router, prefix=f"{API_PREFIX}/products", tags=["Products"])
    app.include_router(orders_router, prefix=f"{API_PREFIX}/orders", tags=["Orders"])
    app.include_router(users_router, prefix=f"{API_PREFIX}/users", tags=["Users"])
    app.include_router(reviews_router, prefix=f"{API_PREFIX}/reviews", tags=["Reviews"])
    app.include_router(
        payment_methods_router, prefix=f"{API_PREFIX}/payment-methods", tags=["Payment Methods"]
    )
    app.include_router(addresses_router, prefix=f"{API_PREFIX}/addresses", tags=["Addresses"])
    app.include_router(wishlist_router, prefix=f"{API_PREFIX}/wishlist", tags=["Wishlist"])
    app.include_router(store_settings_router, prefix=f"{API_PREFIX}/settings", tags=["Settings"])
    app.include_router(stats_router, prefix=f"{API_PREFIX}/admin", tags=["Admin"])

    @app.get(f"{API_PREFIX}/info")
    async def api_info():
        """API information endpoint."""
        return {
            "name": settings.app_name,
            "version": settings.version,
            "environment": settings.app_env,
            "documentation": "/docs" if settings.is_development else None,
        }

    return app
