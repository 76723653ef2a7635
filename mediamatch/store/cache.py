"""Local metadata cache consulted before the remote provider."""

import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from pathlib import Path

import yaml

from ..core.models import CatalogEntry, MediaKind

logger = logging.getLogger(__name__)


class MetadataCache(ABC):
    """Catalog cache interface.

    Implementations may be backed by a database; the scrape pipeline only
    relies on these three operations.
    """

    @abstractmethod
    async def search_by_title(
        self, kind: MediaKind, term: str, limit: int = 50
    ) -> list[CatalogEntry]:
        """Entries whose primary, localized or original title contains ``term``.

        Results are ordered by popularity, most popular first, and bounded by ``limit``.
        """

    @abstractmethod
    async def get_by_id(self, kind: MediaKind, tmdb_id: int) -> CatalogEntry | None:
        """Entry with the given catalog id, if cached."""

    @abstractmethod
    async def upsert(self, kind: MediaKind, entry: CatalogEntry) -> None:
        """Insert or replace an entry, keyed by catalog id."""


class InMemoryMetadataCache(MetadataCache):
    """Dictionary-backed cache, one table per media kind."""

    def __init__(self):
        self._tables: dict[MediaKind, dict[int, CatalogEntry]] = {
            kind: {} for kind in MediaKind
        }

    async def search_by_title(
        self, kind: MediaKind, term: str, limit: int = 50
    ) -> list[CatalogEntry]:
        needle = term.lower()
        hits = [
            entry
            for entry in self._tables[kind].values()
            if any(needle in title.lower() for title in entry.title_variants)
        ]
        hits.sort(key=lambda e: e.popularity, reverse=True)
        return [replace(e) for e in hits[:limit]]

    async def get_by_id(self, kind: MediaKind, tmdb_id: int) -> CatalogEntry | None:
        entry = self._tables[kind].get(tmdb_id)
        return replace(entry) if entry else None

    async def upsert(self, kind: MediaKind, entry: CatalogEntry) -> None:
        self._tables[kind][entry.id] = replace(entry)

    def count(self, kind: MediaKind) -> int:
        return len(self._tables[kind])

    def load_entries(self, kind: MediaKind, entries: list[CatalogEntry]) -> None:
        """Bulk-seed the cache without going through the async API."""
        for entry in entries:
            self._tables[kind][entry.id] = replace(entry)


def load_catalog_file(path: Path, cache: InMemoryMetadataCache) -> int:
    """Seed a cache from a YAML catalog file.

    The file holds ``movie`` and ``tv`` lists of entry mappings using the
    CatalogEntry field names. Returns the number of entries loaded.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    loaded = 0
    for kind in MediaKind:
        entries = [CatalogEntry(**raw) for raw in data.get(kind.value) or []]
        cache.load_entries(kind, entries)
        loaded += len(entries)

    logger.info(f"Loaded {loaded} catalog entries from {path}")
    return loaded
