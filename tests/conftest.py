"""Pytest configuration and fixtures."""

import shutil
import tempfile
from pathlib import Path

import pytest

from mediamatch.config.settings import MediaMatchConfig
from mediamatch.core.models import CatalogEntry, MediaKind
from mediamatch.store.cache import InMemoryMetadataCache


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config():
    """Create a test configuration with no remote provider."""
    return MediaMatchConfig()


@pytest.fixture
def parasite_entry():
    """Catalog entry for Parasite (2019)."""
    return CatalogEntry(
        id=496243,
        title="Parasite",
        title_cn="寄生虫",
        original_title="기생충",
        release_date="2019-05-30",
        popularity=85.2,
        overview="All unemployed, Ki-taek's family takes peculiar interest in the Parks.",
        poster_path="/7IiTTgloJzvGI1TAYymCfbfl3vT.jpg",
        vote_average=8.5,
        genre_ids=[35, 53, 18],
    )


@pytest.fixture
def sample_movies(parasite_entry):
    """A small movie catalog."""
    return [
        parasite_entry,
        CatalogEntry(
            id=603,
            title="The Matrix",
            title_cn="黑客帝国",
            release_date="1999-03-30",
            popularity=70.1,
        ),
        CatalogEntry(
            id=10997,
            title="Farewell My Concubine",
            title_cn="霸王别姬",
            original_title="霸王別姬",
            release_date="1993-01-01",
            popularity=20.4,
        ),
        CatalogEntry(
            id=27205,
            title="Inception",
            title_cn="盗梦空间",
            release_date="2010-07-15",
            popularity=90.3,
        ),
    ]


@pytest.fixture
def sample_cache(sample_movies):
    """In-memory cache seeded with the sample movie catalog."""
    cache = InMemoryMetadataCache()
    cache.load_entries(MediaKind.MOVIE, sample_movies)
    return cache
