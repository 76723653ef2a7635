"""Scrape pipeline coordinator: cache lookup, live fallback and progress tracking."""

import logging
from collections.abc import Callable

from ..api.provider import MetadataProvider, TmdbProvider
from ..config.settings import MediaMatchConfig
from ..store.cache import MetadataCache
from .matcher import CandidateMatcher
from .models import (
    CatalogEntry,
    DebugInfo,
    ItemMetadata,
    MatchResult,
    MatchSource,
    MatchType,
    ScrapedItemResult,
    ScrapeItem,
    ScrapeProgress,
    ScrapeStatus,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ScrapeProgress], None]


class ScrapeJob:
    """Progress and cancellation state for one scrape run."""

    def __init__(self):
        self.progress = ScrapeProgress()
        self._cancel_requested = False

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested

    @property
    def is_running(self) -> bool:
        return self.progress.status == ScrapeStatus.RUNNING

    def reset(self) -> None:
        self.progress = ScrapeProgress()
        self._cancel_requested = False

    def cancel(self) -> None:
        self._cancel_requested = True

    def begin(self, total: int) -> None:
        self.reset()
        self.progress.total = total
        self.progress.status = ScrapeStatus.RUNNING

    def record(self, result: ScrapedItemResult) -> None:
        self.progress.processed += 1
        if result.matched:
            self.progress.matched += 1
        else:
            self.progress.unmatched += 1

    def finish(self, failed: bool = False) -> None:
        """Settle the status; a run that did not complete is marked failed."""
        if failed:
            self.progress.status = ScrapeStatus.FAILED
        elif self.progress.status != ScrapeStatus.CANCELLED:
            self.progress.status = ScrapeStatus.COMPLETED
        self.progress.current_item = None

    def snapshot(self) -> ScrapeProgress:
        return self.progress.snapshot()


class ScrapeOrchestrator:
    """Matches scrape items against the cache, then the live provider.

    Items are processed strictly one at a time. Cancellation is checked before
    each item, so an item already in flight always completes.
    """

    def __init__(
        self,
        config: MediaMatchConfig,
        cache: MetadataCache,
        provider: MetadataProvider | None = None,
    ):
        """Initialize orchestrator. Without a provider one is built from config, if enabled."""
        self.config = config
        self.cache = cache
        self.provider = provider
        self.matcher = CandidateMatcher(config.matching)
        self.job = ScrapeJob()

    def get_progress(self) -> ScrapeProgress:
        return self.job.snapshot()

    def cancel(self) -> None:
        self.job.cancel()

    def reset(self) -> None:
        self.job.reset()

    async def scrape_items(
        self,
        items: list[ScrapeItem],
        on_progress: ProgressCallback | None = None,
        begun: bool = False,
    ) -> list[ScrapedItemResult]:
        """Scrape a batch of items, returning one result per attempted item.

        Pass ``begun=True`` when the caller already called ``job.begin`` for
        these items, so a cancel requested in between is kept.
        """
        provider, owns_provider = self._resolve_provider()
        if provider is None:
            logger.info("No metadata provider configured, matching from cache only")

        if not begun:
            self.job.begin(len(items))
        results: list[ScrapedItemResult] = []
        completed = False

        try:
            for item in items:
                if self.job.cancel_requested:
                    self.job.progress.status = ScrapeStatus.CANCELLED
                    logger.info(f"Scrape cancelled after {len(results)}/{len(items)} items")
                    break

                self.job.progress.current_item = item.name
                self._publish(on_progress)

                try:
                    result = await self.scrape_item(item, provider)
                except Exception as e:
                    logger.error(f"Unexpected error scraping '{item.name}': {e}", exc_info=True)
                    result = self._unmatched(item, MatchResult.no_match(), 0, f"Scrape failed: {e}")

                results.append(result)
                self.job.record(result)
                self._publish(on_progress)
            completed = True
        finally:
            self.job.finish(failed=not completed)
            if not completed:
                logger.error(f"Scrape aborted after {len(results)}/{len(items)} items")
            if owns_provider:
                await provider.close()

        self._publish(on_progress)
        return results

    async def scrape_item(
        self, item: ScrapeItem, provider: MetadataProvider | None = None
    ) -> ScrapedItemResult:
        """Identify a single item."""
        if item.tmdb_id is not None:
            direct = await self._scrape_by_id(item, provider)
            if direct:
                return direct

        matching = self.config.matching
        cached_entries = await self.cache.search_by_title(
            item.kind, item.name, limit=matching.cache_search_limit
        )
        match_result = self.matcher.match(item.name, item.year, cached_entries)

        if match_result.matched:
            entry = next((e for e in cached_entries if e.id == match_result.tmdb_id), None)
            if entry:
                return ScrapedItemResult(
                    item=item,
                    match_result=match_result,
                    source=MatchSource.CACHE,
                    metadata=ItemMetadata.from_entry(entry),
                )

        live_note = None
        if provider is not None:
            logger.info(
                f"Cache {'empty' if not cached_entries else 'unmatched'}, "
                f"trying live search: '{item.name}'"
            )
            live_result, live_note = await self._scrape_live(item, provider)
            if live_result:
                return live_result
        elif not cached_entries:
            logger.info(f"Cache empty and no provider configured: '{item.name}'")

        reason = self._explain(item, match_result, len(cached_entries))
        if live_note:
            reason = f"{reason}; {live_note}"
        logger.info(
            f"Unmatched: '{item.name}' ({item.year or 'no year'}) | {reason}"
        )
        return self._unmatched(item, match_result, len(cached_entries), reason)

    async def _scrape_by_id(
        self, item: ScrapeItem, provider: MetadataProvider | None
    ) -> ScrapedItemResult | None:
        """Resolve an item that already carries a catalog id."""
        entry = await self.cache.get_by_id(item.kind, item.tmdb_id)
        if entry:
            return ScrapedItemResult(
                item=item,
                match_result=MatchResult.direct(item.tmdb_id),
                source=MatchSource.CACHE,
                metadata=ItemMetadata.from_entry(entry),
            )

        if provider is not None:
            entry = await self._fetch_and_cache(item, item.tmdb_id, provider)
            if entry:
                return ScrapedItemResult(
                    item=item,
                    match_result=MatchResult.direct(item.tmdb_id),
                    source=MatchSource.API,
                    metadata=ItemMetadata.from_entry(entry),
                )
        return None

    async def _scrape_live(
        self, item: ScrapeItem, provider: MetadataProvider
    ) -> tuple[ScrapedItemResult | None, str | None]:
        """Search the provider; returns a result or a note on why it failed."""
        matching = self.config.matching
        try:
            results = await provider.search(item.kind, item.name)
        except Exception as e:
            logger.error(f"Live search failed for '{item.name}': {e}")
            return None, f"live search failed: {e}"

        if not results:
            logger.info(f"Live search returned nothing: '{item.name}'")
            return None, "live search returned 0 results"

        logger.info(f"Live search found {len(results)} results")
        api_entries = results[:matching.api_result_limit]
        api_match = self.matcher.match(item.name, item.year, api_entries)

        if api_match.matched:
            logger.info(f"Live match {api_match.tmdb_id}, fetching details for cache")
            match_result = api_match
        elif len(results) == 1:
            # A lone hit for a specific query is trusted at reduced confidence
            logger.info(f"Single live result, trusting it: {results[0].id}")
            match_result = MatchResult(
                matched=True,
                confidence=matching.single_result_confidence,
                tmdb_id=results[0].id,
                match_type=MatchType.FUZZY,
                candidates=api_match.candidates,
            )
        else:
            logger.info("Live results did not match (low similarity or year mismatch)")
            return None, f"live search returned {len(results)} results, none accepted"

        entry = await self._fetch_and_cache(item, match_result.tmdb_id, provider)
        if entry is None:
            return None, f"could not fetch details for {match_result.tmdb_id}"

        return ScrapedItemResult(
            item=item,
            match_result=match_result,
            source=MatchSource.API,
            metadata=ItemMetadata.from_entry(entry),
        ), None

    async def _fetch_and_cache(
        self, item: ScrapeItem, tmdb_id: int, provider: MetadataProvider
    ) -> CatalogEntry | None:
        """Fetch full details from the provider and upsert them into the cache."""
        try:
            entry = await provider.get_full_details(item.kind, tmdb_id)
        except Exception as e:
            logger.error(f"Failed to fetch {item.kind.value} {tmdb_id} from provider: {e}")
            return None
        await self.cache.upsert(item.kind, entry)
        return entry

    def _explain(self, item: ScrapeItem, match_result: MatchResult, cache_count: int) -> str:
        """Explain why the cache path produced no match."""
        matching = self.config.matching
        if cache_count == 0:
            return (
                f"Local cache returned 0 results for \"{item.name}\"; "
                "check that the metadata cache is synced"
            )

        if not match_result.matched and match_result.candidates:
            best = match_result.candidates[0]
            if best.match_type == MatchType.YEAR_MISMATCH:
                return (
                    f"Found candidate \"{best.display_title}\" but the year differs "
                    f"(file: {item.year or 'none'} vs catalog: {best.release_year or 'unknown'})"
                )
            return (
                f"Found {len(match_result.candidates)} candidates but similarity too low "
                f"(best {best.similarity * 100:.0f}% for \"{best.display_title}\", "
                f"need {matching.no_year_threshold * 100:.0f}%+)"
            )

        return (
            f"Local cache had {cache_count} results but no title matched "
            f"(similarity below the {matching.fuzzy_threshold * 100:.0f}% threshold)"
        )

    def _unmatched(
        self, item: ScrapeItem, match_result: MatchResult, cache_count: int, reason: str
    ) -> ScrapedItemResult:
        return ScrapedItemResult(
            item=item,
            match_result=match_result,
            source=MatchSource.NONE,
            debug_info=DebugInfo(
                parsed_title=item.name,
                parsed_year=item.year,
                searched_kind=item.kind,
                cache_result_count=cache_count,
                reason=reason,
            ),
        )

    def _resolve_provider(self) -> tuple[MetadataProvider | None, bool]:
        """Provider to use for this run, and whether this run owns (and closes) it."""
        if self.provider is not None:
            return self.provider, False
        if self.config.tmdb.enabled:
            return TmdbProvider(self.config.tmdb), True
        return None, False

    def _publish(self, on_progress: ProgressCallback | None) -> None:
        if on_progress:
            on_progress(self.job.snapshot())
