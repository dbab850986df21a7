"""Admin routes - bulk product import from a CSV export and catalog pruning."""
from fastapi import APIRouter, Depends, File, UploadFile
from pydantic import BaseModel
from typing import List, Sequence, Tuple
import logging
import os

import httpx

from catalog import CatalogStore, ImageMatcher, ProductImporter, parse_csv_rows
from catalog.models import ProductRecord, SkippedRow
from exceptions import StorageServiceError, ValidationError
from routes.catalog import get_catalog_store
from storage import IStorageProvider, get_storage_provider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

# Copy remote images into storage when no stored file matches
IMPORT_DOWNLOAD_IMAGES = os.getenv("IMPORT_DOWNLOAD_IMAGES", "true").lower() == "true"
IMAGE_DOWNLOAD_TIMEOUT = float(os.getenv("IMAGE_DOWNLOAD_TIMEOUT", "15"))


class ImportResponse(BaseModel):
    message: str
    imported: int
    skipped: List[SkippedRow] = []
    warnings: List[str] = []


def get_storage() -> IStorageProvider:
    return get_storage_provider()


@router.post("/import-csv", response_model=ImportResponse)
async def import_csv(
    csvFile: UploadFile = File(...),
    store: CatalogStore = Depends(get_catalog_store),
    storage: IStorageProvider = Depends(get_storage),
):
    content = await csvFile.read()
    if not content:
        raise ValidationError("No file uploaded")
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise ValidationError("CSV file must be UTF-8 encoded", detail={"filename": csvFile.filename})

    rows = parse_csv_rows(text)
    logger.info(f"Parsed {len(rows)} rows from CSV", extra={"upload_name": csvFile.filename})

    matcher = ImageMatcher(storage)
    if IMPORT_DOWNLOAD_IMAGES:
        async with httpx.AsyncClient(timeout=IMAGE_DOWNLOAD_TIMEOUT) as client:
            importer = ProductImporter(store, matcher, storage=storage, http_client=client)
            report = await importer.import_rows(rows)
    else:
        report = await ProductImporter(store, matcher).import_rows(rows)

    return ImportResponse(
        message=report.message,
        imported=report.imported,
        skipped=report.skipped,
        warnings=report.warnings,
    )


class DeleteResponse(BaseModel):
    message: str
    deleted: int
    images_deleted: int = 0
    warnings: List[str] = []


async def _delete_orphaned_images(
    storage: IStorageProvider,
    deleted: Sequence[ProductRecord],
    kept: Sequence[ProductRecord],
) -> Tuple[int, List[str]]:
    """Remove stored images referenced only by deleted products."""
    still_used = {url for product in kept for url in product.images}
    paths: List[str] = []
    for product in deleted:
        for url in product.images:
            path = storage.stored_path(url) if url not in still_used else None
            if path and path not in paths:
                paths.append(path)

    removed = 0
    warnings: List[str] = []
    for path in paths:
        try:
            await storage.delete_file(path)
            removed += 1
        except StorageServiceError as exc:
            logger.warning(f"Could not delete stored image {path}: {exc.message}")
            warnings.append(f"Could not delete stored image '{path}'")
    return removed, warnings


@router.post("/delete-non-featured-products", response_model=DeleteResponse)
async def delete_non_featured_products(
    delete_images: bool = True,
    store: CatalogStore = Depends(get_catalog_store),
    storage: IStorageProvider = Depends(get_storage),
):
    deleted = await store.delete_non_featured_products()
    if not deleted:
        logger.info("No non-featured products found to delete")
        return DeleteResponse(message="No non-featured products found to delete.", deleted=0)

    logger.info(f"Deleted {len(deleted)} non-featured products")
    images_deleted, warnings = 0, []
    if delete_images:
        kept = await store.list_featured_products()
        images_deleted, warnings = await _delete_orphaned_images(storage, deleted, kept)

    return DeleteResponse(
        message=f"Successfully deleted {len(deleted)} non-featured products.",
        deleted=len(deleted),
        images_deleted=images_deleted,
        warnings=warnings,
    )
