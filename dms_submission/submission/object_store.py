"""
Object Archival Gateway

Stores the assembled archive and reports an immutable ObjectSummary.
"""

import asyncio
import base64
import hashlib
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .errors import TransientIOError
from .models import ObjectSummary

logger = logging.getLogger(__name__)


def object_path(owner: str, item_id: str) -> str:
    """Archive key: one directory per owner, one object per item."""
    return f"{owner}/{item_id}"


def content_md5(data: bytes) -> str:
    """Base64 MD5, as object stores report Content-MD5."""
    return base64.b64encode(hashlib.md5(data).digest()).decode("ascii")


class ObjectStoreGateway(ABC):
    """Abstract archival target."""

    @abstractmethod
    async def put(self, path: str, file_path: Path) -> ObjectSummary:
        """Store file_path at path. Raises TransientIOError if unreachable."""
        pass


class S3ObjectStoreGateway(ObjectStoreGateway):
    """S3-compatible object storage."""

    def __init__(
        self,
        bucket_name: str,
        prefix: str = "",
        endpoint_url: Optional[str] = None,
        region: Optional[str] = None,
        client=None,
    ):
        if not bucket_name:
            raise ValueError("OBJECT_STORE_BUCKET config missing.")
        self.bucket_name = bucket_name
        self.prefix = prefix.strip("/")
        self._client = client or boto3.client("s3", endpoint_url=endpoint_url, region_name=region)

    def _key(self, path: str) -> str:
        return f"{self.prefix}/{path}" if self.prefix else path

    def _put_sync(self, key: str, file_path: Path) -> ObjectSummary:
        data = file_path.read_bytes()
        md5 = content_md5(data)
        self._client.put_object(
            Bucket=self.bucket_name,
            Key=key,
            Body=data,
            ContentMD5=md5,
            ContentType="application/zip",
        )
        head = self._client.head_object(Bucket=self.bucket_name, Key=key)
        return ObjectSummary(
            location=f"s3://{self.bucket_name}/{key}",
            content_length=int(head.get("ContentLength", len(data))),
            content_md5=md5,
            last_modified=head.get("LastModified") or datetime.now(timezone.utc),
        )

    async def put(self, path: str, file_path: Path) -> ObjectSummary:
        key = self._key(path)
        try:
            summary = await asyncio.to_thread(self._put_sync, key, file_path)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Object store put failed for {key}: {e}")
            raise TransientIOError(f"Object store unavailable: {e}") from e
        logger.info(f"Archived {summary.location} ({summary.content_length} bytes)")
        return summary


class InMemoryObjectStoreGateway(ObjectStoreGateway):
    """In-memory archive for testing and local runs."""

    def __init__(self, bucket_name: str = "test-mem-bucket"):
        self.bucket_name = bucket_name
        self.objects: Dict[str, Tuple[bytes, ObjectSummary]] = {}

    async def put(self, path: str, file_path: Path) -> ObjectSummary:
        data = file_path.read_bytes()
        summary = ObjectSummary(
            location=f"s3://{self.bucket_name}/{path}",
            content_length=len(data),
            content_md5=content_md5(data),
            last_modified=datetime.now(timezone.utc),
        )
        self.objects[path] = (data, summary)
        return summary
