"""
iCanGrow API — FastAPI Application Factory
============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() assembles middleware, exception handlers and routers;
       the lifespan builds the database gateway (unless one was injected)
       and disposes it on shutdown.
Who:   uvicorn icangrow.main:app

Application Architecture:
    ┌────────────────────────────────────────────────────────────┐
    │                       FastAPI App                          │
    │                                                            │
    │  Middleware Chain:                                         │
    │  RateLimit → RequestID → Logging → GZip → CORS → route     │
    │                                                            │
    │  Routers (/api/v1):                                        │
    │  auth  users  erp  erp/{daily_logs,packaging,review,...}   │
    │  stages  qms/*  audits  audit-logs                         │
    │  suppliers  purchase-orders  clients  dispatches           │
    │  inventory  ops            + GET /health (unprefixed)      │
    │                                                            │
    │  Exception Handlers → {success: false, error, details}     │
    └────────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Configure logging
    2. Validate configuration (logged, not fatal)
    3. Initialize the gateway and check connectivity with backoff
    Shutdown:
    1. Dispose both engine tiers
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from icangrow import __version__
from icangrow.config import settings
from icangrow.database import Gateway
from icangrow.exceptions import ICanGrowError, RateLimitExceededError
from icangrow.middleware.logging import RequestLoggingMiddleware
from icangrow.middleware.rate_limit import RateLimitMiddleware
from icangrow.middleware.request_id import RequestIDMiddleware, request_id_var
from icangrow.routes import (
    audits,
    auth,
    commerce,
    cultivation,
    ebr,
    health,
    inventory,
    ops,
    production,
    quality,
    stages,
    users,
)

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once for the whole process.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Per-statement and per-request chatter from libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("iCanGrow API %s starting up (%s)...", __version__, settings.environment)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving so /health can report the problem
        logger.error("Configuration error: %s", str(e))

    gateway: Optional[Gateway] = getattr(app.state, "gateway", None)
    if gateway is None:
        gateway = Gateway(settings)
        app.state.gateway = gateway
    gateway.initialize()
    if await gateway.wait_until_ready():
        logger.info("Database connection established")

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.port)
    logger.info("=" * 60)

    yield

    logger.info("iCanGrow API shutting down...")
    await gateway.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def error_body(message: str, details=None) -> dict:
    return {
        "success": False,
        "error": message,
        "details": details or None,
        "request_id": request_id_var.get(""),
    }


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions to the error envelope.

    Handler hierarchy:
        ICanGrowError           → exc.status_code (400/401/403/404/409/429/500)
        RequestValidationError  → 400 with per-field details
        HTTPException           → its own status (unknown routes, bad methods)
        Exception (fallback)    → 500, stack trace logged server-side only
    """

    @app.exception_handler(ICanGrowError)
    async def handle_app_error(request: Request, exc: ICanGrowError):
        rid = request_id_var.get("")
        if exc.status_code >= 500:
            logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
        else:
            logger.warning("[%s] %s: %s", rid, type(exc).__name__, exc.message)

        headers = {}
        if isinstance(exc, RateLimitExceededError):
            headers["Retry-After"] = str(exc.retry_after)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.message, exc.context),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        details = [
            {
                "field": ".".join(str(part) for part in error["loc"] if part != "body"),
                "message": error["msg"],
            }
            for error in exc.errors()
        ]
        logger.warning("[%s] Request validation failed: %d error(s)", request_id_var.get(""), len(details))
        return JSONResponse(status_code=400, content=error_body("Validation failed", details))

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=error_body("An unexpected error occurred. Please try again or contact support."),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(gateway: Optional[Gateway] = None) -> FastAPI:
    """
    Build a configured application.

    Args:
        gateway: pre-initialized gateway (tests); built in the lifespan otherwise.
    """
    app = FastAPI(
        title="iCanGrow API",
        description=(
            "Cannabis cultivation ERP and quality management: batches, electronic "
            "batch records, deviations, CAPAs, SOPs, inventory and dispatch."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    if gateway is not None:
        app.state.gateway = gateway

    # Last added runs first: RateLimit → RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(cultivation.router)
    app.include_router(stages.router)
    app.include_router(production.router)
    app.include_router(ebr.router)
    app.include_router(quality.router)
    app.include_router(audits.router)
    app.include_router(commerce.router)
    app.include_router(inventory.router)
    app.include_router(ops.router)
    app.include_router(health.router)

    return app


app = create_app()
