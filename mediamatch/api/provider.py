"""Remote metadata provider used when the local cache has no match."""

import logging
from abc import ABC, abstractmethod

from ..config.settings import TMDBConfig
from ..core.errors import ProviderError
from ..core.models import CatalogEntry, MediaKind
from .tmdb_client import APIResponse, TmdbClient, extract_chinese_translation

logger = logging.getLogger(__name__)


class MetadataProvider(ABC):
    """Live catalog lookups."""

    @abstractmethod
    async def search(self, kind: MediaKind, query: str) -> list[CatalogEntry]:
        """Search the catalog by title. Raises ProviderError on failure."""

    @abstractmethod
    async def get_full_details(self, kind: MediaKind, tmdb_id: int) -> CatalogEntry:
        """Fetch a complete entry, including localized title and overview."""

    async def close(self) -> None:
        """Release any held connections."""


class TmdbProvider(MetadataProvider):
    """MetadataProvider backed by the TMDB REST API."""

    def __init__(self, config: TMDBConfig, client: TmdbClient | None = None):
        self.client = client or TmdbClient(config)

    async def close(self) -> None:
        await self.client.close()

    async def search(self, kind: MediaKind, query: str) -> list[CatalogEntry]:
        if kind == MediaKind.MOVIE:
            response = await self.client.search_movies(query)
        else:
            response = await self.client.search_tv_shows(query)
        data = self._require(response, f"search '{query}'")
        return [entry_from_tmdb(kind, raw) for raw in data.get("results", [])]

    async def get_full_details(self, kind: MediaKind, tmdb_id: int) -> CatalogEntry:
        if kind == MediaKind.MOVIE:
            response = await self.client.get_movie(tmdb_id)
        else:
            response = await self.client.get_tv_show(tmdb_id)

        data = self._require(response, f"{kind.value} {tmdb_id}")
        entry = entry_from_tmdb(kind, data)

        if kind == MediaKind.MOVIE:
            translations = await self.client.get_movie_translations(tmdb_id)
        else:
            translations = await self.client.get_tv_translations(tmdb_id)

        chinese = extract_chinese_translation(translations)
        if chinese:
            entry.title_cn = chinese.get("title") or chinese.get("name") or None
            entry.overview_cn = chinese.get("overview") or None
        return entry

    @staticmethod
    def _require(response: APIResponse, what: str) -> dict:
        if not response.success or response.data is None:
            raise ProviderError(
                f"TMDB request failed for {what}: {response.error}",
                status_code=response.status_code,
            )
        return response.data


def entry_from_tmdb(kind: MediaKind, raw: dict) -> CatalogEntry:
    """Convert a TMDB movie or TV payload into a CatalogEntry."""
    if kind == MediaKind.MOVIE:
        title = raw.get("title") or ""
        original_title = raw.get("original_title")
        release_date = raw.get("release_date")
    else:
        title = raw.get("name") or ""
        original_title = raw.get("original_name")
        release_date = raw.get("first_air_date")

    # Search results carry genre_ids, detail payloads carry genres
    genre_ids = raw.get("genre_ids") or [g["id"] for g in raw.get("genres") or []]

    return CatalogEntry(
        id=raw["id"],
        title=title,
        original_title=original_title or None,
        release_date=release_date or None,
        popularity=raw.get("popularity") or 0.0,
        overview=raw.get("overview") or None,
        poster_path=raw.get("poster_path"),
        backdrop_path=raw.get("backdrop_path"),
        vote_average=raw.get("vote_average"),
        genre_ids=list(genre_ids),
    )
