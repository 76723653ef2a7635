"""Cache and match record stores."""

from .cache import InMemoryMetadataCache, MetadataCache, load_catalog_file
from .records import InMemoryMatchRecordStore, MatchRecordStore, record_from_result

__all__ = [
    "MetadataCache",
    "InMemoryMetadataCache",
    "load_catalog_file",
    "MatchRecordStore",
    "InMemoryMatchRecordStore",
    "record_from_result",
]
