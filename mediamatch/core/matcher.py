"""Ranking and selection of catalog candidates for a parsed title."""

from ..config.settings import MatchingConfig
from .models import CatalogEntry, MatchCandidate, MatchResult, MatchType
from .similarity import title_similarity


class CandidateMatcher:
    """Matches a title and year against catalog entries.

    Matching is pure: the same inputs always produce the same result.
    """

    def __init__(self, config: MatchingConfig | None = None):
        """Initialize with matching policy or the defaults."""
        self.config = config or MatchingConfig()

    def match(
        self,
        item_name: str,
        item_year: int | None,
        entries: list[CatalogEntry],
        fuzzy_threshold: float | None = None,
    ) -> MatchResult:
        """Select the best catalog entry for an item name and year."""
        threshold = (
            self.config.fuzzy_threshold if fuzzy_threshold is None else fuzzy_threshold
        )
        candidates = [
            candidate
            for candidate in (self._score(item_name, item_year, e) for e in entries)
            if candidate.similarity >= threshold
            or candidate.match_type == MatchType.EXACT
        ]
        # sorted() is stable, so equal keys keep catalog order
        candidates = sorted(candidates, key=self._sort_key)
        max_candidates = self.config.max_candidates

        if item_year:
            year_matches = [
                c for c in candidates
                if c.release_year is not None
                and abs(c.release_year - item_year) <= self.config.year_tolerance
            ]
            if year_matches:
                best = year_matches[0]
                match_type = (
                    MatchType.FUZZY
                    if best.match_type == MatchType.YEAR_MISMATCH
                    else best.match_type
                )
                return MatchResult(
                    matched=True,
                    confidence=best.similarity,
                    tmdb_id=best.id,
                    match_type=match_type,
                    candidates=year_matches[:max_candidates],
                )

        if candidates:
            best = candidates[0]
            # Without year corroboration the bar is higher
            should_match = (
                best.similarity >= self.config.no_year_threshold
                or best.match_type == MatchType.EXACT
            )
            return MatchResult(
                matched=should_match,
                confidence=best.similarity,
                tmdb_id=best.id,
                match_type=best.match_type,
                candidates=candidates[:max_candidates],
            )

        return MatchResult.no_match()

    def _score(
        self, item_name: str, item_year: int | None, entry: CatalogEntry
    ) -> MatchCandidate:
        """Score an entry by its best matching title variant."""
        best_similarity = max(
            (title_similarity(item_name, title) for title in entry.title_variants),
            default=0.0,
        )

        match_type = MatchType.FUZZY
        if best_similarity == 1.0:
            match_type = MatchType.EXACT
        entry_year = entry.release_year
        if item_year and entry_year and item_year != entry_year:
            match_type = MatchType.YEAR_MISMATCH

        return MatchCandidate(
            id=entry.id,
            title=entry.title,
            title_cn=entry.title_cn,
            original_title=entry.original_title,
            release_date=entry.release_date,
            similarity=best_similarity,
            match_type=match_type,
        )

    @staticmethod
    def _sort_key(candidate: MatchCandidate) -> tuple[int, int, float]:
        """Exact first, year mismatches last, then by similarity descending."""
        return (
            0 if candidate.match_type == MatchType.EXACT else 1,
            1 if candidate.match_type == MatchType.YEAR_MISMATCH else 0,
            -candidate.similarity,
        )


def match_item(
    item_name: str,
    item_year: int | None,
    entries: list[CatalogEntry],
    fuzzy_threshold: float = 0.8,
) -> MatchResult:
    """Match with the default policy."""
    return CandidateMatcher().match(item_name, item_year, entries, fuzzy_threshold)
