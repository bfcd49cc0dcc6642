"""
============================================================================
Dynamic Frame Pricing v1.0.0
FastAPI Application Entry Point
============================================================================

Reliability Level: L5 Critical
Input Constraints: Storefront form posts, cron-triggered cleanup
Side Effects: Database schema creation, optional background cleanup worker

MANDATE:
- Prices are Decimal end to end (ROUND_HALF_UP, 0.01)
- Every temporary product is recorded with its deletion deadline
- Expired products are swept by cron POST or the in-process worker

============================================================================
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional
import logging
import os

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from app.api.pricing import (
    cleanup_router,
    get_capability_provider,
    get_lifecycle_manager,
    reset_capability_provider,
    router as pricing_router,
)
from app.database.models import init_schema
from app.database.session import check_database_connection, engine
from app.storefront.admin_client import AdminCapability
from services.cleanup_worker import CleanupWorker, get_cleanup_worker
from services.pricing_config import get_service_config

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s | %(levelname)s | %(name)s | %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"


# ============================================================================
# GLOBAL INSTANCES
# ============================================================================

# Cleanup worker singleton (started in lifespan when enabled)
_cleanup_worker: Optional[CleanupWorker] = None


def _worker_capability() -> Optional[AdminCapability]:
    session = get_capability_provider().get_session("CLEANUP_WORKER")
    return session.capability if session is not None else None


# ============================================================================
# APPLICATION LIFESPAN
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
        - Load and validate ServiceConfig (fails fast on TPL-007)
        - Create the temp_products schema
        - Start the cleanup worker if CLEANUP_WORKER_ENABLED

    Shutdown:
        - Stop the cleanup worker
        - Close the shared admin API client
        - Dispose database connections
    """
    global _cleanup_worker

    print("=" * 60)
    print(f"DYNAMIC FRAME PRICING v{APP_VERSION}")
    print("=" * 60)
    print(f"Startup Time: {datetime.now(timezone.utc).isoformat()}")

    config = get_service_config()

    try:
        init_schema(engine)
        check_database_connection()
        print("[OK] Database schema ready")
    except Exception as e:
        print(f"[CRITICAL] Database initialization failed: {e}")
        raise

    if not config.has_admin_credentials:
        print("[WARN] No admin credentials - product creation and cleanup will return 401")

    if config.cleanup_worker_enabled:
        _cleanup_worker = get_cleanup_worker(
            lifecycle=get_lifecycle_manager(),
            capability_factory=_worker_capability,
            interval_seconds=config.cleanup_interval_seconds,
        )
        await _cleanup_worker.start()
        print(f"[OK] Cleanup worker started (every {config.cleanup_interval_seconds}s)")
    else:
        print("[INFO] Cleanup worker disabled - relying on POST /api/cleanup-temp-products")

    print("=" * 60)

    yield

    if _cleanup_worker is not None and _cleanup_worker.is_running:
        await _cleanup_worker.stop()
    _cleanup_worker = None

    reset_capability_provider()

    engine.dispose()
    print(f"[OK] Shutdown complete at {datetime.now(timezone.utc).isoformat()}")


# ============================================================================
# FASTAPI APPLICATION
# ============================================================================

def create_app() -> FastAPI:
    application = FastAPI(
        title="Dynamic Frame Pricing",
        description=(
            "Area-banded frame pricing with temporary storefront products.\n\n"
            "Temporary products are reused per shop and dimensions and are "
            "deleted once their deadline passes."
        ),
        version=APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # The storefront calls /apps/proxy/* cross-origin
    application.add_middleware(
        CORSMiddleware,
        allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    @application.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        error_code = "SYS-500"
        logger.error(
            f"[{error_code}] Unhandled exception | path={request.url.path} | "
            f"error={exc}"
        )
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error_code": error_code,
                "error": "Internal server error. This incident has been logged.",
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )

    application.include_router(pricing_router, prefix="/api", tags=["Pricing"])
    application.include_router(pricing_router, prefix="/apps/proxy", tags=["App Proxy"])
    application.include_router(cleanup_router, prefix="/api", tags=["Cleanup"])

    @application.get("/health", summary="Health Check", tags=["System"])
    def health_check():
        try:
            check_database_connection()
            return {"status": "healthy", "database": "connected"}
        except Exception as e:
            return JSONResponse(
                status_code=503,
                content={"status": "unhealthy", "database": "disconnected", "error": str(e)},
            )

    @application.get("/metrics", summary="Prometheus Metrics", tags=["Observability"])
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=False,
    )
