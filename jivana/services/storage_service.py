"""
Object Storage Service - uploaded report files

Two backends behind one interface: S3 for deployments and an in-memory
store for local development and tests. The backend is chosen once at
startup by ``build_object_store``.
"""
import logging
import threading
import time
from typing import Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from jivana.config import Settings
from jivana.utils.exceptions import NotFoundError, StorageError

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/pdf"


class ObjectStore:
    """Store file bytes by key and hand out time-limited download URLs"""

    def __init__(self, url_expires_seconds: int = 3600):
        self.url_expires_seconds = url_expires_seconds

    def put(self, key: str, data: bytes, content_type: str = DEFAULT_CONTENT_TYPE) -> None:
        raise NotImplementedError

    def signed_url(self, key: str, expires_in: Optional[int] = None) -> str:
        raise NotImplementedError


class S3ObjectStore(ObjectStore):
    """Amazon S3 backend"""

    def __init__(self, bucket: str, region: str, url_expires_seconds: int = 3600, client=None):
        """
        Initialize S3 store

        Args:
            bucket: Bucket holding the report files
            region: AWS region of the bucket
            url_expires_seconds: Default lifetime of presigned URLs
            client: Optional preconfigured boto3 S3 client
        """
        super().__init__(url_expires_seconds)
        self.bucket = bucket
        self.client = client or boto3.client("s3", region_name=region)
        logger.info(f"S3 object store initialized for bucket: {bucket}")

    def put(self, key: str, data: bytes, content_type: str = DEFAULT_CONTENT_TYPE) -> None:
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"S3 upload failed for {key}: {e}")
            raise StorageError(f"Upload failed: {e}", key=key)

    def signed_url(self, key: str, expires_in: Optional[int] = None) -> str:
        try:
            return self.client.generate_presigned_url(
                ClientMethod="get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=expires_in or self.url_expires_seconds,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Presigning failed for {key}: {e}")
            raise StorageError(f"Could not create download URL: {e}", key=key)


class InMemoryObjectStore(ObjectStore):
    """Process-local backend; contents are lost on restart"""

    def __init__(self, bucket: str = "memory", url_expires_seconds: int = 3600):
        super().__init__(url_expires_seconds)
        self.bucket = bucket
        self._objects: Dict[str, bytes] = {}
        self._content_types: Dict[str, str] = {}
        self._lock = threading.Lock()

    def put(self, key: str, data: bytes, content_type: str = DEFAULT_CONTENT_TYPE) -> None:
        with self._lock:
            self._objects[key] = bytes(data)
            self._content_types[key] = content_type

    def get(self, key: str) -> bytes:
        with self._lock:
            if key not in self._objects:
                raise NotFoundError("File not found", resource="file", details={"key": key})
            return self._objects[key]

    def signed_url(self, key: str, expires_in: Optional[int] = None) -> str:
        with self._lock:
            if key not in self._objects:
                raise NotFoundError("File not found", resource="file", details={"key": key})
        expires_at = int(time.time()) + (expires_in or self.url_expires_seconds)
        return f"memory://{self.bucket}/{key}?expires={expires_at}"

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._objects

    def __len__(self) -> int:
        with self._lock:
            return len(self._objects)


def build_object_store(settings: Settings) -> ObjectStore:
    """Create the object store selected by STORAGE_BACKEND"""
    backend = settings.STORAGE_BACKEND.lower()

    if backend == "s3":
        return S3ObjectStore(
            bucket=settings.S3_BUCKET_NAME,
            region=settings.AWS_REGION,
            url_expires_seconds=settings.SIGNED_URL_EXPIRES_SECONDS,
        )
    if backend == "memory":
        logger.warning("Using in-memory object store; uploaded files are not persisted")
        return InMemoryObjectStore(
            bucket=settings.S3_BUCKET_NAME,
            url_expires_seconds=settings.SIGNED_URL_EXPIRES_SECONDS,
        )

    raise ValueError(f"Unknown STORAGE_BACKEND: {settings.STORAGE_BACKEND}")
