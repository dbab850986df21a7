"""
Furniture catalog backend.
Category navigation, category/subcategory listings, product pages and the admin
CSV import.
"""
from fastapi import FastAPI, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel
from datetime import datetime, timezone
from pathlib import Path
import logging
import os

from dotenv import load_dotenv

load_dotenv(dotenv_path=Path(__file__).resolve().parent / ".env", override=False)

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from database import check_db_health, init_db, get_session
from exceptions import StorefrontError
from observability import setup_logging
from observability.middleware import CorrelationIDMiddleware
from routes.admin import router as admin_router
from routes.catalog import navigation_router, router as catalog_router
from routes.products import router as products_router
from storage import DiskStorageProvider, get_storage_provider

setup_logging()
logger = logging.getLogger(__name__)

APP_VERSION = "0.1.0"
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
CREATE_TABLES_ON_STARTUP = os.getenv("DB_CREATE_TABLES", "true").lower() == "true"

app = FastAPI(
    title="Furniture Catalog Backend",
    description="Taxonomy normalization, category navigation and product import",
    version=APP_VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIDMiddleware, enable_request_logging=os.getenv("LOG_REQUESTS", "false").lower() == "true")

app.include_router(navigation_router)
app.include_router(catalog_router)
app.include_router(products_router)
app.include_router(admin_router)

# Disk storage serves product images at /uploads
if os.getenv("STORAGE_PROVIDER", "disk").lower() != "bucket":
    _disk_storage = get_storage_provider()
    if isinstance(_disk_storage, DiskStorageProvider):
        app.mount("/uploads", StaticFiles(directory=str(_disk_storage.storage_root)), name="uploads")


class HealthResponse(BaseModel):
    status: str
    version: str


@app.get("/health", response_model=HealthResponse)
async def health_check():
    return {"status": "healthy", "version": APP_VERSION}


@app.get("/health/ready")
async def readiness_check(session: AsyncSession = Depends(get_session)):
    """
    Readiness check - verifies the catalog database is reachable.

    Returns 503 if it is not.
    """
    checks = {}
    try:
        await session.exec(select(1))
        checks["database"] = "ok"
        checks["pool"] = await check_db_health()
    except Exception as e:
        checks["database"] = f"error: {str(e)[:100]}"

    all_ok = checks["database"] == "ok"
    return JSONResponse(
        status_code=200 if all_ok else 503,
        content={
            "status": "ready" if all_ok else "degraded",
            "checks": checks,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError):
    if exc.status_code >= 500:
        logger.error(
            f"{exc.__class__.__name__}: {exc.message}",
            extra={"path": request.url.path, "method": request.method},
            exc_info=exc,
        )
    else:
        logger.info(f"{exc.__class__.__name__}: {exc.message}", extra={"path": request.url.path})
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Log the traceback server-side and return a safe message."""
    error_id = f"ERR-{datetime.now(timezone.utc).strftime('%Y%m%d%H%M%S')}-{id(exc)}"
    logger.error(
        f"Unhandled exception {error_id}",
        extra={"path": request.url.path, "method": request.method, "error_type": type(exc).__name__},
        exc_info=exc,
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "error_id": error_id,
            "message": "An unexpected error occurred. Please try again.",
        },
    )


@app.on_event("startup")
async def startup_event():
    logger.info(f"Catalog backend starting (environment={os.getenv('ENVIRONMENT', 'development')})")
    if CREATE_TABLES_ON_STARTUP:
        await init_db()


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Catalog backend shutting down")
