"""API integration layer."""

from .provider import MetadataProvider, TmdbProvider, entry_from_tmdb
from .tmdb_client import (
    APIResponse,
    TmdbClient,
    extract_chinese_translation,
)

__all__ = [
    "TmdbClient",
    "TmdbProvider",
    "MetadataProvider",
    "APIResponse",
    "entry_from_tmdb",
    "extract_chinese_translation",
]
