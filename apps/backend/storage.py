import os
import time
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from catalog.normalizer import simple_slugify
from exceptions import StorageServiceError

logger = logging.getLogger(__name__)

PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "").rstrip("/")


def build_object_name(filename: str) -> str:
    """``Executive Chair.JPG`` -> ``executive-chair-1699999999999.jpg``"""
    stem, ext = os.path.splitext(os.path.basename(filename))
    safe_stem = simple_slugify(stem) or "file"
    return f"{safe_stem}-{int(time.time() * 1000)}{ext.lower()}"


class IStorageProvider(ABC):
    @abstractmethod
    async def save_file(self, file_content: bytes, filename: str, subfolder: str = "products") -> str:
        """Store bytes and return the stored path (``subfolder/object-name``)."""

    @abstractmethod
    async def delete_file(self, file_path: str):
        """Remove a stored path. Missing files are not an error."""

    @abstractmethod
    async def list_files(self, prefix: str = "products") -> List[str]:
        """Stored paths under ``prefix``, relative to the storage root."""

    @abstractmethod
    def public_url(self, file_path: str) -> str:
        pass

    def stored_path(self, url: str) -> Optional[str]:
        """Inverse of ``public_url``. None for URLs this provider did not issue."""
        if not url:
            return None
        base = self.public_url("")
        if url.startswith(base):
            return url[len(base):] or None
        if "://" in url:
            return None
        return url.lstrip("/") or None


class DiskStorageProvider(IStorageProvider):
    def __init__(self, storage_path: str, base_url: str = PUBLIC_BASE_URL):
        self.storage_root = Path(storage_path)
        self.storage_root.mkdir(parents=True, exist_ok=True)
        self.base_url = base_url.rstrip("/")

    async def save_file(self, file_content: bytes, filename: str, subfolder: str = "products") -> str:
        target_dir = self.storage_root / subfolder
        object_name = build_object_name(filename)
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            with open(target_dir / object_name, "wb") as buffer:
                buffer.write(file_content)
        except OSError as exc:
            raise StorageServiceError("Failed to save file", detail={"filename": filename}) from exc

        return f"{subfolder}/{object_name}"

    async def delete_file(self, file_path: str):
        root = self.storage_root.resolve()
        full_path = (root / file_path.lstrip("/")).resolve()
        if full_path == root or root not in full_path.parents:
            raise StorageServiceError("Refusing to delete outside storage root", detail={"path": file_path})
        try:
            full_path.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageServiceError("Failed to delete file", detail={"path": file_path}) from exc

    async def list_files(self, prefix: str = "products") -> List[str]:
        root = self.storage_root / prefix
        if not root.exists():
            return []
        try:
            return sorted(
                path.relative_to(self.storage_root).as_posix()
                for path in root.rglob("*")
                if path.is_file()
            )
        except OSError as exc:
            raise StorageServiceError("Failed to list files", detail={"prefix": prefix}) from exc

    def public_url(self, file_path: str) -> str:
        return f"{self.base_url}/uploads/{file_path.lstrip('/')}"


class BucketStorageProvider(IStorageProvider):
    def __init__(self):
        try:
            import aioboto3  # type: ignore
            from botocore.client import Config  # type: ignore
        except ModuleNotFoundError as exc:
            raise ModuleNotFoundError(
                "aioboto3 is required for bucket storage. Install it or use STORAGE_PROVIDER=disk."
            ) from exc
        self.endpoint_url = os.getenv("BUCKET_ENDPOINT_URL")
        self.region_name = os.getenv("BUCKET_REGION", "auto")
        self.bucket_name = os.getenv("BUCKET_NAME", "product-images")
        self.access_key = os.getenv("BUCKET_ACCESS_KEY_ID")
        self.secret_key = os.getenv("BUCKET_SECRET_ACCESS_KEY")
        self.public_base_url = os.getenv("BUCKET_PUBLIC_URL", "").rstrip("/")

        if not all([self.endpoint_url, self.bucket_name, self.access_key, self.secret_key]):
            raise ValueError("Missing bucket configuration environment variables")

        self.session = aioboto3.Session()
        self._config = Config

    def _client(self):
        return self.session.client(
            "s3",
            endpoint_url=self.endpoint_url,
            aws_access_key_id=self.access_key,
            aws_secret_access_key=self.secret_key,
            region_name=self.region_name,
            config=self._config(signature_version="s3v4"),
        )

    async def save_file(self, file_content: bytes, filename: str, subfolder: str = "products") -> str:
        from botocore.exceptions import BotoCoreError, ClientError  # type: ignore

        object_key = f"{subfolder}/{build_object_name(filename)}"
        try:
            async with self._client() as s3:
                await s3.put_object(Bucket=self.bucket_name, Key=object_key, Body=file_content)
        except (BotoCoreError, ClientError) as exc:
            raise StorageServiceError("Failed to upload file", detail={"key": object_key}) from exc
        return object_key

    async def delete_file(self, file_path: str):
        from botocore.exceptions import BotoCoreError, ClientError  # type: ignore

        try:
            async with self._client() as s3:
                await s3.delete_object(Bucket=self.bucket_name, Key=file_path)
        except (BotoCoreError, ClientError) as exc:
            raise StorageServiceError("Failed to delete file", detail={"key": file_path}) from exc

    async def list_files(self, prefix: str = "products") -> List[str]:
        from botocore.exceptions import BotoCoreError, ClientError  # type: ignore

        keys: List[str] = []
        try:
            async with self._client() as s3:
                paginator = s3.get_paginator("list_objects_v2")
                async for page in paginator.paginate(Bucket=self.bucket_name, Prefix=prefix.rstrip("/") + "/"):
                    for item in page.get("Contents", []):
                        if not item["Key"].endswith("/"):
                            keys.append(item["Key"])
        except (BotoCoreError, ClientError) as exc:
            raise StorageServiceError("Failed to list files", detail={"prefix": prefix}) from exc
        return sorted(keys)

    def public_url(self, file_path: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url}/{file_path}"
        # Path-style URL: endpoint/bucket/key
        return f"{self.endpoint_url.rstrip('/')}/{self.bucket_name}/{file_path}"


def get_storage_provider() -> IStorageProvider:
    provider_type = os.getenv("STORAGE_PROVIDER", "disk").lower()
    if provider_type == "bucket":
        return BucketStorageProvider()

    candidate_paths = [
        os.getenv("STORAGE_PATH"),
        os.getenv("UPLOAD_DIR"),
        "/data/uploads" if os.path.exists("/data") and os.access("/data", os.W_OK) else None,
        "uploads",
        "/tmp/uploads",
    ]
    for p in candidate_paths:
        if not p:
            continue
        try:
            Path(p).mkdir(parents=True, exist_ok=True)
            return DiskStorageProvider(p)
        except OSError:
            logger.warning(f"Storage path not writable: {p}")
            continue
    # Last resort
    return DiskStorageProvider("/tmp/uploads")
