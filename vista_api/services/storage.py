from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Iterable, List, Optional
from uuid import uuid4

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import UploadFile

from vista_api.core import config
from vista_api.core.errors import StorageError, ValidationFailed

logger = logging.getLogger(__name__)

KEY_PREFIX = "uploads"
# S3 DeleteObjects accepts at most 1000 keys per call
_DELETE_BATCH_SIZE = 1000


@dataclass
class UploadPayload:
    file_name: str
    content_type: str
    data: bytes


@dataclass
class StoredFile:
    url: str
    key: str
    file_name: str
    size: int
    mimetype: str

    def as_dict(self) -> dict:
        return asdict(self)


def read_image_upload(file: UploadFile) -> UploadPayload:
    """Validate an incoming image and read it fully into memory."""
    if not file.filename:
        raise ValidationFailed("Invalid file", errors=[{"field": "images", "message": "Missing file name"}])

    content_type = (file.content_type or "").lower()
    if content_type not in config.ALLOWED_IMAGE_TYPES:
        raise ValidationFailed(
            "Unsupported file type",
            errors=[{"field": "images", "message": f"{file.filename}: {content_type or 'unknown'} is not allowed"}],
        )

    data = file.file.read(config.MAX_UPLOAD_BYTES + 1)
    if len(data) > config.MAX_UPLOAD_BYTES:
        raise ValidationFailed(
            "File too large",
            errors=[{"field": "images", "message": f"{file.filename} exceeds {config.MAX_UPLOAD_BYTES} bytes"}],
        )
    return UploadPayload(file_name=file.filename, content_type=content_type, data=data)


def _sanitize_key_part(part: str) -> str:
    return str(part).strip().strip("/")


def build_object_key(folder: str, entity_id: int | str, file_name: str) -> str:
    extension = Path(file_name or "").suffix.lower()
    return "/".join(
        [KEY_PREFIX, _sanitize_key_part(folder), _sanitize_key_part(entity_id), f"{uuid4().hex}{extension}"]
    )


class StorageBackend(ABC):
    @abstractmethod
    def put(self, key: str, payload: UploadPayload) -> str:
        """Store the bytes under ``key`` and return the public URL."""

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    @abstractmethod
    def delete_many(self, keys: List[str]) -> None:
        ...


class LocalStorage(StorageBackend):
    """Files under UPLOADS_DIR, served by the /uploads static mount."""

    def __init__(self, root: str | Path, public_base_url: str = "") -> None:
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")

    def _path_for(self, key: str) -> Path:
        relative = key[len(KEY_PREFIX) + 1 :] if key.startswith(f"{KEY_PREFIX}/") else key
        path = (self.root / relative).resolve()
        if self.root.resolve() not in path.parents:
            raise StorageError(f"Key escapes storage root: {key}")
        return path

    def put(self, key: str, payload: UploadPayload) -> str:
        path = self._path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(payload.data)
        except OSError as exc:
            raise StorageError(f"Failed to write {key}") from exc
        return f"{self.public_base_url}/{key}"

    def delete(self, key: str) -> None:
        try:
            self._path_for(key).unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Failed to delete {key}") from exc

    def delete_many(self, keys: List[str]) -> None:
        for key in keys:
            self.delete(key)


def _get_required_env(var_name: str) -> str:
    value = os.getenv(var_name, "").strip()
    if not value:
        raise RuntimeError(f"Missing required environment variable: {var_name}")
    return value


def _get_s3_client():
    import boto3

    return boto3.client(
        "s3",
        endpoint_url=os.getenv("S3_ENDPOINT_URL", "").strip() or None,
        aws_access_key_id=_get_required_env("S3_ACCESS_KEY_ID"),
        aws_secret_access_key=_get_required_env("S3_SECRET_ACCESS_KEY"),
        region_name=os.getenv("S3_REGION", "auto").strip() or "auto",
    )


class S3Storage(StorageBackend):
    """Any S3-compatible bucket (AWS, R2, MinIO)."""

    def __init__(self, bucket_name: str, public_url: str) -> None:
        self.bucket_name = bucket_name
        self.public_url = public_url.rstrip("/")

    def put(self, key: str, payload: UploadPayload) -> str:
        try:
            _get_s3_client().put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=payload.data,
                ContentType=payload.content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Failed to upload {key}") from exc
        return f"{self.public_url}/{key}"

    def delete(self, key: str) -> None:
        try:
            _get_s3_client().delete_object(Bucket=self.bucket_name, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Failed to delete {key}") from exc

    def delete_many(self, keys: List[str]) -> None:
        client = _get_s3_client()
        for start in range(0, len(keys), _DELETE_BATCH_SIZE):
            batch = keys[start : start + _DELETE_BATCH_SIZE]
            try:
                response = client.delete_objects(
                    Bucket=self.bucket_name,
                    Delete={"Objects": [{"Key": key} for key in batch], "Quiet": True},
                )
            except (BotoCoreError, ClientError) as exc:
                raise StorageError(f"Failed to delete {len(batch)} objects") from exc
            errors = response.get("Errors") or []
            if errors:
                raise StorageError(f"Failed to delete objects: {[error.get('Key') for error in errors]}")


_backend: Optional[StorageBackend] = None


def get_storage() -> StorageBackend:
    global _backend
    if _backend is None:
        if config.STORAGE_BACKEND == "s3":
            _backend = S3Storage(
                bucket_name=_get_required_env("S3_BUCKET_NAME"),
                public_url=_get_required_env("S3_PUBLIC_URL"),
            )
        else:
            _backend = LocalStorage(config.UPLOADS_DIR, config.PUBLIC_BASE_URL)
    return _backend


def set_storage(backend: Optional[StorageBackend]) -> None:
    global _backend
    _backend = backend


def upload_file(payload: UploadPayload, folder: str, entity_id: int | str) -> StoredFile:
    key = build_object_key(folder, entity_id, payload.file_name)
    url = get_storage().put(key, payload)
    logger.info("stored object key=%s size=%s", key, len(payload.data))
    return StoredFile(
        url=url,
        key=key,
        file_name=payload.file_name,
        size=len(payload.data),
        mimetype=payload.content_type,
    )


def delete_file(key: str) -> None:
    get_storage().delete(key)
    logger.info("deleted object key=%s", key)


def delete_files(keys: Iterable[str]) -> None:
    keys = [key for key in keys if key]
    if not keys:
        return
    get_storage().delete_many(keys)
    logger.info("deleted objects count=%s", len(keys))
