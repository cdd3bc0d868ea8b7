# docunlock/services/r2_client.py
import logging
from datetime import datetime
from functools import lru_cache
from typing import Dict, List, Optional

import boto3
from botocore.exceptions import ClientError

from docunlock.config import Settings, get_settings
from docunlock.constants.storage import PDF_MIME_TYPE

logger = logging.getLogger(__name__)


class R2Storage:
    """
    Thin wrapper around an S3 client pointed at a Cloudflare R2 bucket.
    Errors from boto3 propagate; callers decide whether to swallow them.
    """

    def __init__(self, client, bucket: str, public_base: Optional[str] = None, endpoint_url: str = ""):
        self.client = client
        self.bucket = bucket
        self.public_base = public_base
        self.endpoint_url = endpoint_url

    def put_pdf(self, key: str, data: bytes, metadata: Optional[Dict[str, str]] = None) -> str:
        self.client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=data,
            ContentType=PDF_MIME_TYPE,
            CacheControl="public, max-age=31536000",  # 1 year
            Metadata={
                **(metadata or {}),
                "uploadedAt": datetime.utcnow().isoformat(),
            },
        )
        logger.info(f"Uploaded {len(data)} bytes to r2://{self.bucket}/{key}")
        return key

    def get(self, key: str) -> Optional[bytes]:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if e.response["Error"]["Code"] in ("NoSuchKey", "404"):
                return None
            raise
        return response["Body"].read()

    def head(self, key: str) -> Optional[dict]:
        try:
            response = self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if e.response["Error"]["Code"] in ("NoSuchKey", "404"):
                return None
            raise

        return {
            "key": key,
            "size": response["ContentLength"],
            "content_type": response.get("ContentType", PDF_MIME_TYPE),
            "last_modified": response["LastModified"].isoformat(),
            "metadata": response.get("Metadata", {}),
        }

    def delete(self, key: str) -> None:
        self.client.delete_object(Bucket=self.bucket, Key=key)
        logger.info(f"Deleted r2://{self.bucket}/{key}")

    def list_keys(self, prefix: str = "") -> List[str]:
        keys: List[str] = []
        paginator = self.client.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
            for obj in page.get("Contents", []):
                keys.append(obj["Key"])
        return keys

    def public_url(self, key: str) -> str:
        if self.public_base:
            return f"{self.public_base.rstrip('/')}/{key}"
        return f"{self.endpoint_url}/{self.bucket}/{key}"


def build_r2_storage(settings: Settings) -> Optional[R2Storage]:
    if not settings.r2_enabled:
        return None

    s3_client = boto3.client(
        "s3",
        endpoint_url=settings.r2_endpoint_url,
        aws_access_key_id=settings.r2_access_key_id,
        aws_secret_access_key=settings.r2_secret_access_key,
        region_name="auto",
    )
    return R2Storage(
        s3_client,
        settings.r2_bucket_name,
        public_base=settings.r2_public_base,
        endpoint_url=settings.r2_endpoint_url,
    )


@lru_cache
def _cached_r2_storage() -> Optional[R2Storage]:
    return build_r2_storage(get_settings())


def get_blob_store() -> Optional[R2Storage]:
    """FastAPI dependency. ``None`` means inline-only mode."""
    return _cached_r2_storage()
