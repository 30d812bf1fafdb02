"""Storage abstraction layer for object storage."""

from abc import ABC, abstractmethod
from typing import Optional
from enum import Enum


class StorageProvider(str, Enum):
    """Supported storage providers."""
    LOCAL = "local"
    AWS_S3 = "aws_s3"


class ObjectStoreInterface(ABC):
    """Abstract bucket/key object store."""

    @abstractmethod
    async def get_object(self, bucket: str, key: str) -> Optional[bytes]:
        """Return object bytes, or None when the key does not exist."""
        pass

    @abstractmethod
    async def put_object(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream"
    ) -> None:
        """Create or replace an object."""
        pass

    @abstractmethod
    async def get_presigned_url(self, bucket: str, key: str, expires_in: int = 300) -> str:
        """Get a URL a third party (e.g. DuckDB) can read the object from."""
        pass

    @staticmethod
    def normalize_key(key: str) -> str:
        """Strip leading slashes so keys are relative to the bucket."""
        return key.lstrip("/")
