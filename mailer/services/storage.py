"""Storage service with factory pattern."""

import json
import logging
from typing import Any, Optional

from mailer.core.config import settings
from mailer.core.exceptions import StorageError
from mailer.utils.storage import ObjectStoreInterface, StorageProvider
from mailer.utils.storage_providers import AWSS3StorageProvider, LocalStorageProvider

logger = logging.getLogger(__name__)


class StorageFactory:
    """Factory for creating storage providers."""

    @staticmethod
    def create_storage_provider(provider: str = None) -> ObjectStoreInterface:
        """Create storage provider based on configuration."""
        provider = provider or settings.STORAGE_PROVIDER

        if provider == StorageProvider.LOCAL:
            return LocalStorageProvider()
        elif provider == StorageProvider.AWS_S3:
            return AWSS3StorageProvider()
        else:
            raise StorageError(f"Unsupported storage provider: {provider}")


class StorageService:
    """
    JSON and byte access on top of a storage provider.

    Reads are lenient: a missing key, a transport failure or an undecodable
    document all come back as ``None``. Writes raise ``StorageError``.
    """

    def __init__(self, storage_provider: ObjectStoreInterface = None):
        self.storage = storage_provider or StorageFactory.create_storage_provider()

    async def get_bytes(self, bucket: str, key: str) -> Optional[bytes]:
        """Get raw object bytes or None."""
        try:
            return await self.storage.get_object(bucket, key)
        except StorageError as e:
            logger.warning(f"Read of {bucket}/{key} failed, treating as absent: {e.message}")
            return None

    async def get_json(self, bucket: str, key: str) -> Optional[Any]:
        """Get a decoded JSON document or None."""
        data = await self.get_bytes(bucket, key)
        if not data:
            return None
        try:
            return json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            logger.warning(f"Invalid JSON at {bucket}/{key}, treating as absent: {e}")
            return None

    async def put_json(self, bucket: str, key: str, document: Any) -> None:
        """Serialize and store a JSON document."""
        body = json.dumps(document, ensure_ascii=False).encode("utf-8")
        await self.storage.put_object(bucket, key, body, content_type="application/json")
        logger.debug(f"Wrote {len(body)} bytes to {bucket}/{key}")

    async def get_presigned_url(self, bucket: str, key: str, expires_in: Optional[int] = None) -> str:
        """Get a time-limited read URL for an object."""
        return await self.storage.get_presigned_url(
            bucket, key, expires_in or settings.PRESIGNED_URL_EXPIRES
        )
