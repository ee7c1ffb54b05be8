"""Object storage for generated cover images (local filesystem or S3)."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from ..config import PipelineSettings
from ..errors import StorageFailureError

logger = logging.getLogger(__name__)


def object_key(user_id: object, project_id: object, filename: str) -> str:
    return f"{user_id}/{project_id}/{filename}"


class ObjectStore(ABC):
    """Write-once blob storage returning public URLs."""

    @abstractmethod
    def put(self, key: str, content: bytes, content_type: str) -> str:
        """Store ``content`` under ``key`` and return its public URL.

        Raises:
            StorageFailureError: The backend rejected or failed the write.
        """

    @abstractmethod
    def public_url(self, key: str) -> str:
        ...


class LocalObjectStore(ObjectStore):
    """Files on disk under ``root``, served by the API at ``base_url``."""

    def __init__(self, root: str | Path, base_url: str) -> None:
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")
        self.root.mkdir(parents=True, exist_ok=True)

    def put(self, key: str, content: bytes, content_type: str) -> str:
        file_path = self.root / key
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            if file_path.exists():
                raise FileExistsError(f"Object already exists: {key}")
            file_path.write_bytes(content)
        except OSError as exc:
            logger.error("Local object write failed", extra={"key": key, "error": str(exc)})
            raise StorageFailureError(f"Storage upload failed: {exc}") from exc
        logger.info("Stored object", extra={"key": key, "size_bytes": len(content)})
        return self.public_url(key)

    def public_url(self, key: str) -> str:
        return f"{self.base_url}/{key}"


class S3ObjectStore(ObjectStore):
    """Objects in a public-read S3 bucket."""

    def __init__(self, bucket: str, region: str | None = None, client=None) -> None:
        self.bucket = bucket
        self.region = region or "us-east-1"
        self.client = client or boto3.client(
            "s3",
            config=BotoConfig(signature_version="s3v4", region_name=self.region),
        )

    def put(self, key: str, content: bytes, content_type: str) -> str:
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=content,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as exc:
            logger.error("S3 upload failed", extra={"key": key, "error": str(exc)})
            raise StorageFailureError(f"Storage upload failed: {exc}") from exc
        logger.info("Stored object", extra={"key": key, "size_bytes": len(content)})
        return self.public_url(key)

    def public_url(self, key: str) -> str:
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"


def build_object_store(settings: PipelineSettings) -> ObjectStore:
    if settings.object_store == "s3":
        if not settings.s3_bucket:
            raise RuntimeError("S3_BUCKET environment variable is required when OBJECT_STORE=s3")
        return S3ObjectStore(settings.s3_bucket, settings.aws_region)
    return LocalObjectStore(settings.storage_root, settings.public_asset_base_url)
