"""Durable per-file match records."""

import logging
from abc import ABC, abstractmethod
from dataclasses import replace

from ..core.models import (
    CatalogEntry,
    MatchRecord,
    MatchSource,
    MediaKind,
    ScannedMediaFile,
    ScrapedItemResult,
)

logger = logging.getLogger(__name__)


class MatchRecordStore(ABC):
    """Match record persistence, keyed by file path."""

    @abstractmethod
    async def matched_paths(self) -> set[str]:
        """File paths whose records are already matched."""

    @abstractmethod
    async def get(self, file_path: str) -> MatchRecord | None:
        """Record for a file path, if any."""

    @abstractmethod
    async def put(self, record: MatchRecord) -> None:
        """Insert or replace a record unconditionally."""

    async def save(self, record: MatchRecord) -> bool:
        """Store a record unless the existing one is already matched.

        Returns True if the record was written.
        """
        existing = await self.get(record.file_path)
        if existing is not None and existing.matched:
            logger.debug(f"Skipping already matched: {record.file_path}")
            return False
        await self.put(record)
        return True

    async def manual_match(
        self, file_path: str, kind: MediaKind, entry: CatalogEntry
    ) -> MatchRecord:
        """Record an operator-chosen match, overriding whatever was stored."""
        existing = await self.get(file_path)
        record = MatchRecord(
            file_path=file_path,
            file_name=existing.file_name if existing else file_path,
            media_kind=kind,
            matched=True,
            source=MatchSource.MANUAL,
            is_strm=existing.is_strm if existing else False,
            tmdb_id=entry.id,
            title=entry.title,
            title_cn=entry.title_cn,
            poster_path=entry.poster_path,
            release_date=entry.release_date,
            vote_average=entry.vote_average,
        )
        await self.put(record)
        return record


class InMemoryMatchRecordStore(MatchRecordStore):
    """Dictionary-backed record store."""

    def __init__(self):
        self._records: dict[str, MatchRecord] = {}

    async def matched_paths(self) -> set[str]:
        return {path for path, record in self._records.items() if record.matched}

    async def get(self, file_path: str) -> MatchRecord | None:
        record = self._records.get(file_path)
        return replace(record) if record else None

    async def put(self, record: MatchRecord) -> None:
        self._records[record.file_path] = replace(record)

    def all(self) -> list[MatchRecord]:
        return [replace(r) for r in self._records.values()]


def record_from_result(
    result: ScrapedItemResult, media_file: ScannedMediaFile
) -> MatchRecord:
    """Build the durable record for a scrape result and its source file."""
    metadata = result.metadata
    return MatchRecord(
        file_path=media_file.file_path,
        file_name=result.item.name,
        media_kind=result.item.kind,
        matched=result.matched,
        source=result.source,
        is_strm=media_file.is_strm,
        tmdb_id=metadata.tmdb_id if metadata else None,
        title=metadata.title if metadata else None,
        title_cn=metadata.title_cn if metadata else None,
        poster_path=metadata.poster_path if metadata else None,
        release_date=metadata.release_date if metadata else None,
        vote_average=metadata.vote_average if metadata else None,
    )
