"""Cloudflare R2 (S3-compatible) blob backend."""

from __future__ import annotations

from typing import Any

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from week_contracts.settings import Settings
from week_contracts.storage.base import BlobStore, StorageError

logger = structlog.get_logger(__name__)

_MISSING_CODES = ("404", "NoSuchKey", "NotFound")


def _is_missing(exc: ClientError) -> bool:
    code = (exc.response.get("Error") or {}).get("Code")
    return code in _MISSING_CODES


def build_s3_client(settings: Settings) -> Any:
    return boto3.client(
        "s3",
        endpoint_url=settings.r2_endpoint,
        aws_access_key_id=settings.r2_access_key,
        aws_secret_access_key=(
            settings.r2_secret_key.get_secret_value() if settings.r2_secret_key else None
        ),
        region_name="auto",
    )


class R2BlobStore(BlobStore):
    def __init__(self, client: Any, bucket: str):
        self._s3 = client
        self.bucket = bucket

    @classmethod
    def from_settings(cls, settings: Settings) -> R2BlobStore:
        if not settings.r2_bucket:
            raise ValueError("R2_BUCKET is required")
        return cls(build_s3_client(settings), settings.r2_bucket)

    def get(self, path: str) -> bytes | None:
        try:
            resp = self._s3.get_object(Bucket=self.bucket, Key=path)
        except ClientError as exc:
            if _is_missing(exc):
                return None
            raise StorageError(f"R2 get {path} failed: {exc}") from exc
        except BotoCoreError as exc:
            raise StorageError(f"R2 get {path} failed: {exc}") from exc
        return resp["Body"].read()

    def put(self, path: str, data: bytes, *, content_type: str | None = None) -> None:
        extra = {"ContentType": content_type} if content_type else {}
        try:
            self._s3.put_object(Bucket=self.bucket, Key=path, Body=data, **extra)
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"R2 put {path} failed: {exc}") from exc
        logger.debug("r2_put", path=path, size=len(data))

    def delete(self, path: str) -> None:
        try:
            self._s3.delete_object(Bucket=self.bucket, Key=path)
        except ClientError as exc:
            if _is_missing(exc):
                return
            raise StorageError(f"R2 delete {path} failed: {exc}") from exc
        except BotoCoreError as exc:
            raise StorageError(f"R2 delete {path} failed: {exc}") from exc

    def copy(self, source: str, target: str, *, content_type: str | None = None) -> bool:
        del content_type  # server-side copy keeps the source metadata
        try:
            self._s3.copy_object(
                Bucket=self.bucket,
                Key=target,
                CopySource={"Bucket": self.bucket, "Key": source},
            )
        except ClientError as exc:
            if _is_missing(exc):
                return False
            raise StorageError(f"R2 copy {source} -> {target} failed: {exc}") from exc
        except BotoCoreError as exc:
            raise StorageError(f"R2 copy {source} -> {target} failed: {exc}") from exc
        return True
