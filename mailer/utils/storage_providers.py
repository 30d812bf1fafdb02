"""Storage provider implementations."""

import asyncio
import functools
import logging
from pathlib import Path
from typing import Optional

import aiofiles
import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from mailer.core.config import settings
from mailer.core.exceptions import StorageError
from mailer.utils.storage import ObjectStoreInterface

logger = logging.getLogger(__name__)

_MISSING_KEY_CODES = {"NoSuchKey", "404", "NotFound"}


class LocalStorageProvider(ObjectStoreInterface):
    """Local file system storage provider; each bucket is a directory."""

    def __init__(self, base_path: str = None):
        self.base_path = Path(base_path or settings.LOCAL_STORAGE_PATH).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _path(self, bucket: str, key: str) -> Path:
        path = (self.base_path / bucket / self.normalize_key(key)).resolve()
        if self.base_path not in path.parents:
            raise StorageError(f"Key escapes storage root: {key}")
        return path

    async def get_object(self, bucket: str, key: str) -> Optional[bytes]:
        """Read object from local storage."""
        file_path = self._path(bucket, key)
        if not file_path.is_file():
            return None
        try:
            async with aiofiles.open(file_path, 'rb') as f:
                return await f.read()
        except OSError as e:
            raise StorageError(f"Failed to read {key}: {e}")

    async def put_object(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream"
    ) -> None:
        """Write object to local storage."""
        file_path = self._path(bucket, key)
        try:
            # Create directory if it doesn't exist
            file_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(file_path, 'wb') as f:
                await f.write(data)
        except OSError as e:
            raise StorageError(f"Failed to write {key}: {e}")

    async def get_presigned_url(self, bucket: str, key: str, expires_in: int = 300) -> str:
        """Local files are read straight from disk, expiry is ignored."""
        return str(self._path(bucket, key))


class AWSS3StorageProvider(ObjectStoreInterface):
    """AWS S3 (or S3-compatible) storage provider."""

    def __init__(self, client=None):
        if client is not None:
            self.s3_client = client
            return
        try:
            config = None
            if settings.AWS_S3_FORCE_PATH_STYLE:
                config = Config(s3={"addressing_style": "path"})

            self.s3_client = boto3.client(
                's3',
                aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
                aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
                region_name=settings.AWS_REGION,
                endpoint_url=settings.AWS_S3_ENDPOINT,
                config=config,
            )
        except (BotoCoreError, ValueError) as e:
            raise StorageError(f"Failed to initialize AWS S3 client: {str(e)}")

    async def _run(self, func, *args, **kwargs):
        """Run a blocking boto3 call in the default executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))

    async def get_object(self, bucket: str, key: str) -> Optional[bytes]:
        """Download object from AWS S3."""
        key = self.normalize_key(key)
        try:
            response = await self._run(self.s3_client.get_object, Bucket=bucket, Key=key)
            return await self._run(response["Body"].read)
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in _MISSING_KEY_CODES:
                return None
            raise StorageError(f"Failed to read from S3: {str(e)}")
        except BotoCoreError as e:
            raise StorageError(f"Failed to read from S3: {str(e)}")

    async def put_object(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream"
    ) -> None:
        """Upload object to AWS S3."""
        try:
            await self._run(
                self.s3_client.put_object,
                Bucket=bucket,
                Key=self.normalize_key(key),
                Body=data,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to upload to S3: {str(e)}")

    async def get_presigned_url(self, bucket: str, key: str, expires_in: int = 300) -> str:
        """Get signed URL for AWS S3 object."""
        try:
            return await self._run(
                self.s3_client.generate_presigned_url,
                'get_object',
                Params={'Bucket': bucket, 'Key': self.normalize_key(key)},
                ExpiresIn=expires_in,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to get S3 URL: {str(e)}")
