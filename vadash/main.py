"""
VA Dashboard - FastAPI application entry point.

Wires settings, logging, middleware, error rendering and the routers
together. Every error leaves the API as
``{"error": ..., "status_code": ..., "timestamp": ...}``.
"""

from contextlib import asynccontextmanager
from typing import Any, Optional
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from starlette.exceptions import HTTPException as StarletteHTTPException
import time
import traceback

from config.settings import settings
from config.database import init_db, close_db
from config.logging import setup_logging, get_logger, new_request_context
from vadash.models.cycle import CycleTransitionError
from vadash.api.routers import (
    alerts, analytics, auth, crm, cycles, entities, health, intake, ledger,
    tenants, transactions, webhooks
)

setup_logging()
logger = get_logger(__name__)

DESCRIPTION = "Operations dashboard for a multi-tenant bookkeeping and VA service"

# Mounted under /api/v1/tenants; every path starts with /{tenant_id}
TENANT_ROUTERS = [
    (tenants.router, "Tenants"),
    (cycles.router, "Service Cycles"),
    (intake.router, "Intake"),
    (transactions.router, "Transactions"),
    (entities.router, "Entities"),
    (ledger.router, "Ledger"),
    (crm.router, "CRM"),
    (alerts.router, "Alerts"),
    (analytics.router, "Analytics"),
]


def error_response(status_code: int, error: Any, headers: Optional[dict] = None, **extra) -> JSONResponse:
    """Render an error in the API's envelope."""
    return JSONResponse(
        status_code=status_code,
        content={"error": error, **extra, "status_code": status_code, "timestamp": time.time()},
        headers=headers
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting VA Dashboard", version=settings.app_version, environment=settings.environment)
    try:
        await init_db()
        yield
    except Exception as e:
        logger.error("Failed to start application", error=str(e))
        raise
    finally:
        await close_db()
        logger.info("VA Dashboard stopped")


show_docs = settings.environment != "production"

app = FastAPI(
    title=settings.app_name,
    description=DESCRIPTION,
    version=settings.app_version,
    docs_url="/docs" if show_docs else None,
    redoc_url="/redoc" if show_docs else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=settings.allowed_methods,
    allow_headers=settings.allowed_headers,
)

if settings.environment == "production":
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.trusted_hosts)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """Tag the request with an id for log correlation and time it."""
    request_id = new_request_context(request.headers.get("x-request-id"))
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as exc:
        response = internal_error_response(request, exc)
    elapsed = time.perf_counter() - started

    response.headers["X-Process-Time"] = f"{elapsed:.4f}"
    response.headers["X-Request-ID"] = request_id
    logger.info(
        "Request processed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(elapsed * 1000, 1)
    )
    return response


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.warning("HTTP error", status_code=exc.status_code, detail=exc.detail, path=request.url.path)
    return error_response(exc.status_code, exc.detail, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    logger.warning("Request validation failed", errors=len(errors), path=request.url.path)
    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation failed",
        details=jsonable_encoder(errors)
    )


@app.exception_handler(CycleTransitionError)
async def cycle_transition_handler(request: Request, exc: CycleTransitionError):
    """Illegal cycle status changes that escaped a router."""
    logger.warning("Cycle transition rejected", detail=str(exc), path=request.url.path)
    return error_response(status.HTTP_409_CONFLICT, str(exc))


def internal_error_response(request: Request, exc: Exception) -> JSONResponse:
    """500 for an error no handler claimed; call from inside the except block."""
    logger.error(
        "Unhandled error",
        error=str(exc),
        error_type=type(exc).__name__,
        method=request.method,
        path=request.url.path
    )

    # Internals are only shown on a developer's machine
    if settings.environment == "development":
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            str(exc),
            type=type(exc).__name__,
            traceback=traceback.format_exc()
        )
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


app.include_router(health.router, prefix="/health", tags=["Health"])
app.include_router(auth.router, prefix="/api/v1/auth", tags=["Auth"])
for tenant_router, tag in TENANT_ROUTERS:
    app.include_router(tenant_router, prefix="/api/v1/tenants", tags=[tag])
app.include_router(webhooks.router, prefix="/api", tags=["Webhooks"])


@app.get("/")
async def root():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": DESCRIPTION,
        "environment": settings.environment,
        "docs_url": app.docs_url,
        "health_check": "/health"
    }


@app.get("/info")
async def app_info():
    """Configuration summary; shows whether the machine-to-machine endpoints are enabled."""
    return {
        "application": {
            "name": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "debug": settings.debug
        },
        "features": {
            "admin_webhook": bool(settings.dashboard_admin_token),
            "intake_webhook": bool(settings.intake_shared_secret),
            "analytics_months": settings.analytics_months
        },
        "endpoints": {
            "auth": "/api/v1/auth",
            "tenants": "/api/v1/tenants",
            "webhooks": "/api",
            "health": "/health"
        }
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "vadash.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_config=None
    )
