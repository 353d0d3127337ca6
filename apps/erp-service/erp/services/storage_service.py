"""
Object storage for generated report files.

``STORAGE_PROVIDER`` selects the backend:

- ``local`` (default): files under ``STORAGE_LOCAL_DIR``
- ``supabase``: a Supabase Storage bucket (``STORAGE_BUCKET``)
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """An upload, download or delete could not be completed."""


class StorageObjectNotFound(StorageError):
    """The requested object is not in the store."""


class StorageService:
    """Interface implemented by the storage providers."""

    name = "base"

    def upload(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        raise NotImplementedError

    def download(self, path: str) -> bytes:
        raise NotImplementedError

    def delete(self, path: str) -> None:
        raise NotImplementedError


class LocalStorageService(StorageService):
    name = "local"

    def __init__(self, root: Optional[str] = None, bucket: Optional[str] = None):
        base = Path(root or os.getenv("STORAGE_LOCAL_DIR", "storage"))
        self.root = (base / (bucket or os.getenv("STORAGE_BUCKET", "reports"))).resolve()

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if self.root not in target.parents:
            raise StorageError(f"Invalid storage path: {path}")
        return target

    def upload(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        logger.info("stored %s (%d bytes) in %s", path, len(data), self.root)
        return path

    def download(self, path: str) -> bytes:
        target = self._resolve(path)
        if not target.exists():
            raise StorageObjectNotFound(f"Stored file not found: {path}")
        return target.read_bytes()

    def delete(self, path: str) -> None:
        target = self._resolve(path)
        if target.exists():
            target.unlink()


class SupabaseStorageService(StorageService):
    name = "supabase"

    def __init__(self, url: Optional[str] = None, key: Optional[str] = None, bucket: Optional[str] = None):
        from supabase import create_client

        url = url or os.getenv("SUPABASE_URL", "")
        key = key or os.getenv("SUPABASE_SERVICE_KEY", "")
        if not url or not key:
            raise StorageError("SUPABASE_URL and SUPABASE_SERVICE_KEY are required for Supabase storage")
        self.client = create_client(url, key)
        self.bucket = bucket or os.getenv("STORAGE_BUCKET", "reports")

    def _bucket(self):
        return self.client.storage.from_(self.bucket)

    def upload(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        try:
            self._bucket().upload(path, data, {"content-type": content_type, "upsert": "true"})
        except Exception as exc:
            raise StorageError(f"Upload of {path} failed: {exc}") from exc
        logger.info("uploaded %s (%d bytes) to bucket %s", path, len(data), self.bucket)
        return path

    def download(self, path: str) -> bytes:
        try:
            return self._bucket().download(path)
        except Exception as exc:
            raise StorageError(f"Download of {path} failed: {exc}") from exc

    def delete(self, path: str) -> None:
        try:
            self._bucket().remove([path])
        except Exception as exc:
            raise StorageError(f"Delete of {path} failed: {exc}") from exc


_storage_service: Optional[StorageService] = None


def get_storage_service() -> StorageService:
    """Singleton for the configured provider."""
    global _storage_service
    if _storage_service is None:
        provider = os.getenv("STORAGE_PROVIDER", "local").lower()
        if provider == "supabase":
            _storage_service = SupabaseStorageService()
        elif provider == "local":
            _storage_service = LocalStorageService()
        else:
            raise StorageError(f"Unknown storage provider: {provider}")
        logger.info("Initialized %s report storage", _storage_service.name)
    return _storage_service


def reset_storage_service_for_tests() -> None:
    global _storage_service
    _storage_service = None
