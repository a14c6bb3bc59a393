"""
reservepay - FastAPI Backend Application
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from reservepay import __version__
from reservepay.api import admin, auth, checkout, payments, reservations
from reservepay.config import Settings, get_settings
from reservepay.database import get_db
from reservepay.errors import ReservationError
from reservepay.notify.factory import build_dispatcher
from reservepay.services.payments import build_payment_gateway
from reservepay.webhooks import stripe as stripe_webhook

logger = structlog.get_logger()


def configure_logging(settings: Settings) -> None:
    """Configure structured logging"""
    logging.basicConfig(format="%(message)s", level=settings.log_level.upper())

    renderer = (
        structlog.dev.ConsoleRenderer()
        if settings.log_format == "console"
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info(
        "Starting reservepay API",
        version=__version__,
        payment_mode=app.state.settings.payment_mode,
        notification_backend=app.state.settings.notification_backend,
    )
    yield
    await app.state.notifier.drain()
    logger.info("Shutting down reservepay API")


async def handle_reservation_error(request: Request, exc: ReservationError) -> JSONResponse:
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "Request failed",
        path=request.url.path,
        method=request.method,
        code=exc.code,
        status_code=exc.status_code,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="reservepay",
        description="Reservation lifecycle and payment confirmation API",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.notifier = build_dispatcher(settings)
    app.state.payment_gateway_factory = build_payment_gateway

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ReservationError, handle_reservation_error)

    # Health check endpoints
    @app.get("/health")
    async def health():
        """Basic health check"""
        return {"status": "healthy", "service": "api", "version": __version__}

    @app.get("/health/ready")
    async def ready(db: AsyncSession = Depends(get_db)):
        """Readiness check with dependency verification"""
        checks = {}

        # Check database
        try:
            await db.execute(text("SELECT 1"))
            checks["database"] = "ok"
        except Exception as e:
            checks["database"] = f"failed: {str(e)}"

        # Check Redis (only needed for the Celery notification backend)
        if settings.notification_backend == "celery":
            try:
                from reservepay.jobs.celery_app import celery_app
                celery_app.control.ping(timeout=1)
                checks["redis"] = "ok"
            except Exception as e:
                checks["redis"] = f"failed: {str(e)}"

        all_ok = all(v == "ok" for v in checks.values())

        return {
            "status": "ready" if all_ok else "not_ready",
            "checks": checks,
        }

    # Include API routers
    app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
    app.include_router(reservations.router, prefix="/reservations", tags=["Reservations"])
    app.include_router(checkout.router, prefix="/checkout", tags=["Checkout"])
    app.include_router(payments.router, prefix="/payments", tags=["Payments"])
    app.include_router(admin.router, prefix="/admin", tags=["Admin"])

    # Include webhook routers
    app.include_router(stripe_webhook.router, prefix="/webhooks/stripe", tags=["Webhooks"])

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    current = get_settings()
    uvicorn.run(
        "reservepay.main:app",
        host=current.api_host,
        port=current.api_port,
        reload=current.api_debug,
    )
