"""
Record store: one JSON document read at the start of a request and written
back whole at the end.

There is no cross-request locking. Two requests that overlap on the same
document race and the later save wins for the entire document.
"""
from __future__ import annotations

import abc
import json
import os
import tempfile
from pathlib import Path
from typing import Optional

from shared.config import Settings, StoreBackend, get_settings
from shared.models.domain import CatalogDocument
from shared.utils.logging import get_logger
from shared.utils.redis_manager import RedisManager

logger = get_logger(__name__)


def parse_document(raw: Optional[str]) -> CatalogDocument:
    """Decode a stored document; missing or empty input yields an empty catalog."""
    if not raw or not raw.strip():
        return CatalogDocument()
    return CatalogDocument.model_validate(json.loads(raw))


def dump_document(doc: CatalogDocument) -> str:
    return json.dumps(doc.model_dump(mode="json", by_alias=True), indent=2)


class RecordStore(abc.ABC):
    """Whole-document persistence contract consumed by the sync and feed layers."""

    @abc.abstractmethod
    async def load(self) -> CatalogDocument:
        ...

    @abc.abstractmethod
    async def save(self, doc: CatalogDocument) -> None:
        ...


class JsonFileRecordStore(RecordStore):
    """File-backed document, replaced atomically on every save."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    async def load(self) -> CatalogDocument:
        return parse_document(self._read())

    async def save(self, doc: CatalogDocument) -> None:
        self._write(dump_document(doc))

    def _read(self) -> Optional[str]:
        if not self._path.exists():
            return None
        return self._path.read_text(encoding="utf-8")

    def _write(self, data: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self._path.parent, prefix=".store-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(data)
            os.replace(tmp, self._path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise


class RedisRecordStore(RecordStore):
    """Document kept as a single Redis string."""

    def __init__(self, redis: RedisManager, key: str) -> None:
        self._redis = redis
        self._key = key

    async def load(self) -> CatalogDocument:
        return parse_document(await self._redis.get_document(self._key))

    async def save(self, doc: CatalogDocument) -> None:
        await self._redis.set_document(self._key, dump_document(doc))


def build_record_store(
    settings: Settings | None = None, redis: RedisManager | None = None
) -> RecordStore:
    """Select the store backend named in settings."""
    settings = settings or get_settings()
    if settings.store_backend == StoreBackend.REDIS:
        if redis is None:
            raise RuntimeError("Redis-backed store requires a connected RedisManager")
        return RedisRecordStore(redis, settings.store_redis_key)
    logger.info("record_store_file", path=settings.store_path)
    return JsonFileRecordStore(settings.store_path)
