"""Shared base template dataset (Parquet) reader and sources."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import List, Optional

import duckdb
import pyarrow as pa
import pyarrow.parquet as pq
from pydantic import ValidationError as SchemaValidationError

from mailer.core.config import settings
from mailer.core.exceptions import DatasetLoadError
from mailer.schemas.template import Template
from mailer.services.storage import StorageService

logger = logging.getLogger(__name__)

TEMPLATE_COLUMNS = """
    id,
    name,
    subject,
    body,
    placeholders,
    recipient_email AS toEmail,
    recipient_name AS toName
"""


class BaseDatasetReader:
    """Reads template rows out of a Parquet file through DuckDB."""

    def __init__(self, connection: "duckdb.DuckDBPyConnection"):
        self.connection = connection

    def read_buffer(self, data: bytes) -> List[Template]:
        """Read rows from an in-memory Parquet file."""
        cursor = self.connection.cursor()
        try:
            table = pq.read_table(pa.BufferReader(data))
            cursor.register("base_templates", table)
            cursor.execute(f"SELECT {TEMPLATE_COLUMNS} FROM base_templates")
            return self._to_templates(cursor)
        except (duckdb.Error, pa.ArrowException) as e:
            raise DatasetLoadError(f"Failed to read template dataset: {e}")
        finally:
            cursor.close()

    def read_url(self, url: str) -> List[Template]:
        """Read rows from a Parquet file DuckDB can fetch itself (local path or http URL)."""
        cursor = self.connection.cursor()
        try:
            if url.startswith(("http://", "https://", "s3://")):
                cursor.execute("INSTALL httpfs")
                cursor.execute("LOAD httpfs")
            quoted = url.replace("'", "''")
            cursor.execute(f"SELECT {TEMPLATE_COLUMNS} FROM read_parquet('{quoted}')")
            return self._to_templates(cursor)
        except duckdb.Error as e:
            raise DatasetLoadError(f"Failed to read template dataset: {e}")
        finally:
            cursor.close()

    @staticmethod
    def _to_templates(cursor) -> List[Template]:
        columns = [column[0] for column in cursor.description]
        templates = []
        for values in cursor.fetchall():
            record = dict(zip(columns, values))
            try:
                templates.append(Template.model_validate(record))
            except SchemaValidationError:
                logger.warning(f"Skipping base template row with invalid id: {record.get('id')!r}")
        return templates


class BaseDatasetSource(ABC):
    """Where the base dataset is fetched from."""

    def __init__(self, storage: StorageService, reader: BaseDatasetReader,
                 bucket: Optional[str] = None, key: Optional[str] = None):
        self.storage = storage
        self.reader = reader
        self.bucket = bucket or settings.TEMPLATES_BUCKET
        self.key = key or settings.TEMPLATES_KEY

    @abstractmethod
    async def load(self) -> List[Template]:
        """Load all base template rows."""
        pass

    async def _in_executor(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)


class BufferDatasetSource(BaseDatasetSource):
    """Downloads the Parquet bytes and reads them in-process."""

    async def load(self) -> List[Template]:
        data = await self.storage.get_bytes(self.bucket, self.key)
        if not data:
            logger.warning(f"Base dataset {self.bucket}/{self.key} not available, using no base templates")
            return []
        return await self._in_executor(self.reader.read_buffer, data)


class UrlDatasetSource(BaseDatasetSource):
    """Lets DuckDB fetch the Parquet file through a presigned URL."""

    async def load(self) -> List[Template]:
        url = await self.storage.get_presigned_url(self.bucket, self.key)
        return await self._in_executor(self.reader.read_url, url)


def create_dataset_source(storage: StorageService, reader: BaseDatasetReader,
                          mode: Optional[str] = None) -> BaseDatasetSource:
    """Pick the dataset source configured by ``BASE_DATASET_SOURCE``."""
    mode = mode or settings.BASE_DATASET_SOURCE
    if mode == "url":
        return UrlDatasetSource(storage, reader)
    return BufferDatasetSource(storage, reader)
