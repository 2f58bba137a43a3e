"""FastAPI application for the Order Service."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from libs.common.error_handler import add_exception_handlers, error_response
from libs.common.logging import get_logger
from libs.common.middleware import add_observability_middleware
from services.order_service.errors import OrderServiceError
from services.order_service.routers import admin_orders_router, orders_router

logger = get_logger(__name__)


async def order_service_error_handler(
    request: Request, exc: OrderServiceError
) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info(
            "%s %s rejected (%s): %s",
            request.method,
            request.url.path,
            exc.error,
            exc.message,
        )
    return error_response(exc.status_code, exc.message, error=exc.error, **exc.extra())


def create_app() -> FastAPI:
    """Create and configure the Order Service FastAPI app."""
    app = FastAPI(
        title="Storefront Order Service",
        version="0.1.0",
        description="Order placement, coupons, stock reservation and order status workflow.",
    )

    # Add observability (structured logging + request tracing)
    add_observability_middleware(app)

    # Consistent {success, message, error} envelopes for every failure
    add_exception_handlers(app)
    app.add_exception_handler(OrderServiceError, order_service_error_handler)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "orders"}

    app.include_router(orders_router, prefix="/api")
    app.include_router(admin_orders_router, prefix="/api")

    return app


app = create_app()
