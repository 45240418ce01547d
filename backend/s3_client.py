"""
S3 storage for logos and generated PWA assets.
Set AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY, AWS_REGION, S3_BUCKET.
S3_ENDPOINT_URL points at an S3-compatible store; ASSET_PUBLIC_BASE_URL overrides public URLs (CDN).
"""
from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from assets.errors import DeleteError, StorageError, UploadError

logger = logging.getLogger(__name__)

S3_BUCKET = os.environ.get("S3_BUCKET", "")
AWS_REGION = os.environ.get("AWS_REGION", "us-east-1")
S3_ENDPOINT_URL = os.environ.get("S3_ENDPOINT_URL") or None
ASSET_PUBLIC_BASE_URL = os.environ.get("ASSET_PUBLIC_BASE_URL", "")
ASSET_CACHE_CONTROL = os.environ.get("ASSET_CACHE_CONTROL", "public, max-age=3600")


class ObjectStore:
    """Thin wrapper over a boto3 S3 client bound to one bucket. Writes overwrite (upsert)."""

    def __init__(self, client: Any, bucket: str, public_base_url: str = "", region: str = AWS_REGION):
        self.client = client
        self.bucket = bucket
        self.region = region
        self.public_base_url = public_base_url.rstrip("/")

    def put_bytes(self, key: str, body: bytes, content_type: str) -> None:
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=body,
                ContentType=content_type,
                CacheControl=ASSET_CACHE_CONTROL,
            )
        except (BotoCoreError, ClientError) as e:
            raise UploadError(key, str(e)) from e

    def delete(self, key: str) -> None:
        """Remove key. S3 treats a missing key as a successful delete."""
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise DeleteError(key, str(e)) from e

    def exists(self, key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in ("404", "NoSuchKey", "NotFound"):
                return False
            raise StorageError(key, str(e)) from e
        except BotoCoreError as e:
            raise StorageError(key, str(e)) from e

    def public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def key_for_url(self, url: str | None) -> str | None:
        """Inverse of public_url; None for URLs that do not point into this bucket."""
        prefix = self.public_url("")
        if not url or not url.startswith(prefix) or len(url) == len(prefix):
            return None
        return url[len(prefix):]


def _client():
    return boto3.client("s3", region_name=AWS_REGION, endpoint_url=S3_ENDPOINT_URL)


@lru_cache(maxsize=1)
def get_store() -> ObjectStore:
    """Process-wide store. FastAPI routes depend on this; tests override it."""
    if not S3_BUCKET:
        logger.warning("S3_BUCKET is not set; asset uploads will fail.")
    return ObjectStore(_client(), S3_BUCKET, ASSET_PUBLIC_BASE_URL)
