"""Core data models for the scraper matching pipeline."""

from dataclasses import dataclass, field, replace
from enum import Enum


class MediaKind(Enum):
    """Catalog media kinds."""

    MOVIE = "movie"
    TV = "tv"


class MatchType(Enum):
    """How a candidate relates to the searched item."""

    EXACT = "exact"
    FUZZY = "fuzzy"
    YEAR_MISMATCH = "year_mismatch"


class MatchSource(Enum):
    """Provenance of a match."""

    CACHE = "cache"
    API = "api"
    NONE = "none"
    MANUAL = "manual"


class ScrapeStatus(Enum):
    """Scrape job states."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class ParsedName:
    """Title and year extracted from a file or folder name."""

    title: str
    year: int | None = None


@dataclass
class ScannedMediaFile:
    """A media file found during a folder scan."""

    file_path: str
    file_name: str
    folder_name: str
    parsed_title: str
    parsed_year: int | None
    is_strm: bool
    strm_content: str | None = None
    media_kind: MediaKind | None = None

    def tagged(self, kind: MediaKind) -> "ScannedMediaFile":
        """Copy of this file tagged with the media kind of its folder."""
        return replace(self, media_kind=kind)


@dataclass
class CatalogEntry:
    """A movie or TV record from the metadata catalog."""

    id: int
    title: str
    title_cn: str | None = None
    original_title: str | None = None
    release_date: str | None = None  # YYYY-MM-DD or YYYY
    popularity: float = 0.0
    overview: str | None = None
    overview_cn: str | None = None
    poster_path: str | None = None
    backdrop_path: str | None = None
    vote_average: float | None = None
    genre_ids: list[int] = field(default_factory=list)

    @property
    def release_year(self) -> int | None:
        """Year part of the release date, if it has one."""
        return release_year(self.release_date)

    @property
    def title_variants(self) -> list[str]:
        """All non-empty titles this entry is known by."""
        return [t for t in (self.title, self.title_cn, self.original_title) if t]


@dataclass
class MatchCandidate:
    """A catalog entry that cleared the similarity bar."""

    id: int
    title: str
    title_cn: str | None
    original_title: str | None
    release_date: str | None
    similarity: float
    match_type: MatchType

    @property
    def release_year(self) -> int | None:
        return release_year(self.release_date)

    @property
    def display_title(self) -> str:
        return self.title_cn or self.title


@dataclass
class MatchResult:
    """Outcome of one matching attempt."""

    matched: bool
    confidence: float
    tmdb_id: int | None = None
    match_type: MatchType | None = None
    candidates: list[MatchCandidate] = field(default_factory=list)

    @classmethod
    def no_match(cls) -> "MatchResult":
        return cls(matched=False, confidence=0.0)

    @classmethod
    def direct(cls, tmdb_id: int) -> "MatchResult":
        """Match by a known catalog id, bypassing title comparison."""
        return cls(
            matched=True,
            confidence=1.0,
            tmdb_id=tmdb_id,
            match_type=MatchType.EXACT,
        )


@dataclass
class ItemMetadata:
    """Enriched metadata attached to a matched item."""

    tmdb_id: int
    title: str
    title_cn: str | None = None
    overview: str | None = None
    overview_cn: str | None = None
    poster_path: str | None = None
    backdrop_path: str | None = None
    vote_average: float | None = None
    release_date: str | None = None
    genres: list[int] = field(default_factory=list)

    @classmethod
    def from_entry(cls, entry: CatalogEntry) -> "ItemMetadata":
        return cls(
            tmdb_id=entry.id,
            title=entry.title,
            title_cn=entry.title_cn,
            overview=entry.overview,
            overview_cn=entry.overview_cn,
            poster_path=entry.poster_path,
            backdrop_path=entry.backdrop_path,
            vote_average=entry.vote_average,
            release_date=entry.release_date,
            genres=list(entry.genre_ids),
        )


@dataclass
class DebugInfo:
    """Explanation attached to unmatched items."""

    parsed_title: str
    parsed_year: int | None
    searched_kind: MediaKind
    cache_result_count: int
    reason: str


@dataclass
class ScrapeItem:
    """One unit of scrape work."""

    id: str  # file path for scanned files
    name: str
    kind: MediaKind
    year: int | None = None
    tmdb_id: int | None = None  # known external identifier, if any

    @classmethod
    def from_scanned(cls, media_file: ScannedMediaFile) -> "ScrapeItem":
        return cls(
            id=media_file.file_path,
            name=media_file.parsed_title,
            kind=media_file.media_kind or MediaKind.MOVIE,
            year=media_file.parsed_year,
        )


@dataclass
class ScrapedItemResult:
    """Result of scraping a single item."""

    item: ScrapeItem
    match_result: MatchResult
    source: MatchSource
    metadata: ItemMetadata | None = None
    debug_info: DebugInfo | None = None

    @property
    def matched(self) -> bool:
        return self.match_result.matched


@dataclass
class ScrapeProgress:
    """Observable state of a scrape job."""

    total: int = 0
    processed: int = 0
    matched: int = 0
    unmatched: int = 0
    status: ScrapeStatus = ScrapeStatus.IDLE
    current_item: str | None = None

    def snapshot(self) -> "ScrapeProgress":
        """Detached copy safe to hand to pollers."""
        return replace(self)


@dataclass
class MatchRecord:
    """Durable match state for one file."""

    file_path: str
    file_name: str
    media_kind: MediaKind
    matched: bool
    source: MatchSource
    is_strm: bool = False
    tmdb_id: int | None = None
    title: str | None = None
    title_cn: str | None = None
    poster_path: str | None = None
    release_date: str | None = None
    vote_average: float | None = None


def release_year(release_date: str | None) -> int | None:
    """Parse the year from a YYYY-MM-DD or YYYY date string."""
    if not release_date:
        return None
    try:
        return int(release_date[:4])
    except ValueError:
        return None
