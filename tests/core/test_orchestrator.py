"""Test the scrape pipeline coordinator."""

from unittest.mock import AsyncMock, Mock

import pytest

from mediamatch.api.provider import MetadataProvider
from mediamatch.config.settings import MediaMatchConfig
from mediamatch.core.errors import ProviderError
from mediamatch.core.models import (
    CatalogEntry,
    MatchSource,
    MatchType,
    MediaKind,
    ScrapeItem,
    ScrapeStatus,
)
from mediamatch.core.orchestrator import ScrapeJob, ScrapeOrchestrator
from mediamatch.store.cache import InMemoryMetadataCache


def item(name, year=None, kind=MediaKind.MOVIE, tmdb_id=None):
    return ScrapeItem(id=f"/media/{name}.mkv", name=name, kind=kind, year=year, tmdb_id=tmdb_id)


@pytest.fixture
def mock_provider():
    """Provider double with no results by default."""
    provider = Mock(spec=MetadataProvider)
    provider.search = AsyncMock(return_value=[])
    provider.get_full_details = AsyncMock()
    provider.close = AsyncMock()
    return provider


class TestScrapeJob:
    """Test progress bookkeeping."""

    def test_initial_state(self):
        job = ScrapeJob()

        assert job.progress.status == ScrapeStatus.IDLE
        assert job.is_running is False
        assert job.cancel_requested is False

    def test_begin_resets_counts(self):
        job = ScrapeJob()
        job.progress.processed = 5
        job.cancel()

        job.begin(3)

        assert job.progress.total == 3
        assert job.progress.processed == 0
        assert job.progress.status == ScrapeStatus.RUNNING
        assert job.cancel_requested is False

    def test_snapshot_is_detached(self):
        job = ScrapeJob()
        job.begin(2)

        snapshot = job.snapshot()
        job.progress.processed = 2

        assert snapshot.processed == 0


class TestScrapeOrchestrator:
    """Test cache-then-network scraping."""

    @pytest.mark.asyncio
    async def test_parasite_end_to_end(self, test_config, sample_cache):
        """Test an exact cache hit gives a full confidence cache match."""
        orchestrator = ScrapeOrchestrator(test_config, sample_cache)

        results = await orchestrator.scrape_items([item("Parasite", 2019)])

        assert len(results) == 1
        result = results[0]
        assert result.matched is True
        assert result.match_result.tmdb_id == 496243
        assert result.match_result.confidence == 1.0
        assert result.match_result.match_type == MatchType.EXACT
        assert result.source == MatchSource.CACHE
        assert result.metadata.title_cn == "寄生虫"
        assert result.debug_info is None

    @pytest.mark.asyncio
    async def test_cjk_title_cache_hit(self, test_config, sample_cache):
        """Test a Chinese title matches through the localized title field."""
        orchestrator = ScrapeOrchestrator(test_config, sample_cache)

        result = await orchestrator.scrape_item(item("霸王别姬", 1993))

        assert result.matched is True
        assert result.match_result.tmdb_id == 10997

    @pytest.mark.asyncio
    async def test_no_match_reports_empty_cache(self, test_config):
        """Test an empty cache with no provider gives an explained no-match."""
        orchestrator = ScrapeOrchestrator(test_config, InMemoryMetadataCache())

        results = await orchestrator.scrape_items([item("Some Unknown Film", 2020)])

        result = results[0]
        assert result.matched is False
        assert result.source == MatchSource.NONE
        assert result.metadata is None
        assert result.debug_info.cache_result_count == 0
        assert "0 results" in result.debug_info.reason
        assert result.debug_info.parsed_title == "Some Unknown Film"
        assert result.debug_info.parsed_year == 2020

    @pytest.mark.asyncio
    async def test_year_mismatch_reason(self, test_config):
        """Test the reason names the year conflict for a near-identical title."""
        cache = InMemoryMetadataCache()
        cache.load_entries(MediaKind.MOVIE, [
            CatalogEntry(id=1, title="Heatwave", release_date="1982-01-01"),
        ])
        orchestrator = ScrapeOrchestrator(test_config, cache)

        result = await orchestrator.scrape_item(item("Heatwav", 2019))

        # Searching "Heatwav" finds "Heatwave" as a substring hit
        assert result.matched is False
        assert "year differs" in result.debug_info.reason
        assert "2019" in result.debug_info.reason
        assert "1982" in result.debug_info.reason

    @pytest.mark.asyncio
    async def test_low_similarity_reason(self, test_config):
        """Test the reason reports the best similarity when it falls short."""
        cache = InMemoryMetadataCache()
        cache.load_entries(MediaKind.MOVIE, [CatalogEntry(id=1, title="Heatwave")])
        orchestrator = ScrapeOrchestrator(test_config, cache)

        result = await orchestrator.scrape_item(item("Heatwav"))

        assert result.matched is False
        assert "similarity too low" in result.debug_info.reason
        assert result.debug_info.cache_result_count == 1

    @pytest.mark.asyncio
    async def test_no_title_matched_reason(self, test_config):
        """Test the reason when cache hits are all below the fuzzy threshold."""
        cache = InMemoryMetadataCache()
        cache.load_entries(MediaKind.MOVIE, [
            CatalogEntry(id=1, title="Heat and Dust: The Long Road Home"),
        ])
        orchestrator = ScrapeOrchestrator(test_config, cache)

        result = await orchestrator.scrape_item(item("Heat"))

        assert result.matched is False
        assert "no title matched" in result.debug_info.reason

    @pytest.mark.asyncio
    async def test_kind_separates_catalogs(self, test_config, sample_cache):
        """Test TV items never match movie entries."""
        orchestrator = ScrapeOrchestrator(test_config, sample_cache)

        result = await orchestrator.scrape_item(item("Parasite", 2019, kind=MediaKind.TV))

        assert result.matched is False
        assert result.debug_info.searched_kind == MediaKind.TV

    @pytest.mark.asyncio
    async def test_live_fallback_match(self, test_config, mock_provider):
        """Test a cache miss falls back to the provider and caches the details."""
        cache = InMemoryMetadataCache()
        found = CatalogEntry(id=27205, title="Inception", release_date="2010-07-15")
        details = CatalogEntry(
            id=27205, title="Inception", title_cn="盗梦空间", release_date="2010-07-15"
        )
        mock_provider.search.return_value = [
            found,
            CatalogEntry(id=1, title="Inception: The Cobol Job", release_date="2010-12-07"),
        ]
        mock_provider.get_full_details.return_value = details
        orchestrator = ScrapeOrchestrator(test_config, cache, mock_provider)

        result = await orchestrator.scrape_item(item("Inception", 2010), mock_provider)

        assert result.matched is True
        assert result.source == MatchSource.API
        assert result.match_result.tmdb_id == 27205
        assert result.metadata.title_cn == "盗梦空间"
        mock_provider.get_full_details.assert_awaited_once_with(MediaKind.MOVIE, 27205)
        cached = await cache.get_by_id(MediaKind.MOVIE, 27205)
        assert cached.title_cn == "盗梦空间"

    @pytest.mark.asyncio
    async def test_single_live_result_trusted(self, test_config, mock_provider):
        """Test a lone live hit is accepted at reduced confidence."""
        cache = InMemoryMetadataCache()
        lone = CatalogEntry(id=42, title="Completely Different Name", release_date="2001-01-01")
        mock_provider.search.return_value = [lone]
        mock_provider.get_full_details.return_value = lone
        orchestrator = ScrapeOrchestrator(test_config, cache, mock_provider)

        result = await orchestrator.scrape_item(item("Local Alias"), mock_provider)

        assert result.matched is True
        assert result.source == MatchSource.API
        assert result.match_result.tmdb_id == 42
        assert result.match_result.confidence == 0.7
        assert result.match_result.match_type == MatchType.FUZZY

    @pytest.mark.asyncio
    async def test_multiple_unmatched_live_results(self, test_config, mock_provider):
        """Test several dissimilar live hits are not trusted."""
        mock_provider.search.return_value = [
            CatalogEntry(id=1, title="Alpha"),
            CatalogEntry(id=2, title="Beta"),
        ]
        orchestrator = ScrapeOrchestrator(test_config, InMemoryMetadataCache(), mock_provider)

        result = await orchestrator.scrape_item(item("Local Alias"), mock_provider)

        assert result.matched is False
        assert "live search returned 2 results" in result.debug_info.reason
        mock_provider.get_full_details.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_provider_failure_is_unmatched(self, test_config, mock_provider):
        """Test a provider error degrades to an explained no-match."""
        mock_provider.search.side_effect = ProviderError("TMDB request failed", status_code=500)
        orchestrator = ScrapeOrchestrator(test_config, InMemoryMetadataCache(), mock_provider)

        results = await orchestrator.scrape_items([item("Inception", 2010)])

        assert results[0].matched is False
        assert "live search failed" in results[0].debug_info.reason

    @pytest.mark.asyncio
    async def test_details_failure_is_unmatched(self, test_config, mock_provider):
        """Test a failed detail fetch leaves the item unmatched."""
        mock_provider.search.return_value = [CatalogEntry(id=27205, title="Inception")]
        mock_provider.get_full_details.side_effect = ProviderError("boom")
        orchestrator = ScrapeOrchestrator(test_config, InMemoryMetadataCache(), mock_provider)

        result = await orchestrator.scrape_item(item("Inception"), mock_provider)

        assert result.matched is False
        assert "could not fetch details for 27205" in result.debug_info.reason

    @pytest.mark.asyncio
    async def test_unexpected_error_keeps_batch_going(self, test_config, sample_cache):
        """Test one failing item does not abort the batch."""
        orchestrator = ScrapeOrchestrator(test_config, sample_cache)
        original_search = sample_cache.search_by_title

        async def flaky_search(kind, term, limit=50):
            if term == "Broken":
                raise RuntimeError("cache down")
            return await original_search(kind, term, limit)

        sample_cache.search_by_title = flaky_search

        results = await orchestrator.scrape_items([item("Broken"), item("Parasite", 2019)])

        assert len(results) == 2
        assert results[0].matched is False
        assert "cache down" in results[0].debug_info.reason
        assert results[1].matched is True

    @pytest.mark.asyncio
    async def test_known_id_from_cache(self, test_config, sample_cache):
        """Test an item carrying a catalog id skips title matching."""
        orchestrator = ScrapeOrchestrator(test_config, sample_cache)

        result = await orchestrator.scrape_item(item("garbage name", tmdb_id=603))

        assert result.matched is True
        assert result.source == MatchSource.CACHE
        assert result.match_result.tmdb_id == 603
        assert result.match_result.confidence == 1.0

    @pytest.mark.asyncio
    async def test_known_id_from_provider(self, test_config, mock_provider):
        """Test an unknown catalog id is fetched from the provider."""
        cache = InMemoryMetadataCache()
        mock_provider.get_full_details.return_value = CatalogEntry(id=603, title="The Matrix")
        orchestrator = ScrapeOrchestrator(test_config, cache, mock_provider)

        result = await orchestrator.scrape_item(item("garbage name", tmdb_id=603), mock_provider)

        assert result.matched is True
        assert result.source == MatchSource.API
        assert await cache.get_by_id(MediaKind.MOVIE, 603) is not None

    @pytest.mark.asyncio
    async def test_progress_counts(self, test_config, sample_cache):
        """Test progress totals add up after a batch."""
        orchestrator = ScrapeOrchestrator(test_config, sample_cache)
        items = [item("Parasite", 2019), item("Nope Nope", 2001), item("The Matrix", 1999)]

        await orchestrator.scrape_items(items)
        progress = orchestrator.get_progress()

        assert progress.status == ScrapeStatus.COMPLETED
        assert progress.total == 3
        assert progress.processed == 3
        assert progress.matched == 2
        assert progress.unmatched == 1
        assert progress.current_item is None

    @pytest.mark.asyncio
    async def test_progress_callback(self, test_config, sample_cache):
        """Test progress snapshots are published while processing."""
        orchestrator = ScrapeOrchestrator(test_config, sample_cache)
        snapshots = []

        await orchestrator.scrape_items([item("Parasite", 2019)], snapshots.append)

        assert snapshots[0].current_item == "Parasite"
        assert snapshots[0].processed == 0
        assert snapshots[-1].status == ScrapeStatus.COMPLETED
        assert all(s.matched + s.unmatched == s.processed for s in snapshots)

    @pytest.mark.asyncio
    async def test_cancel_stops_before_next_item(self, test_config, sample_cache):
        """Test cancellation lets the in-flight item finish and stops the batch."""
        orchestrator = ScrapeOrchestrator(test_config, sample_cache)

        def cancel_after_first(progress):
            if progress.processed == 1:
                orchestrator.cancel()

        items = [item("Parasite", 2019), item("The Matrix", 1999), item("Inception", 2010)]
        results = await orchestrator.scrape_items(items, cancel_after_first)
        progress = orchestrator.get_progress()

        assert len(results) == 1
        assert progress.status == ScrapeStatus.CANCELLED
        assert progress.processed == 1
        assert progress.total == 3

    @pytest.mark.asyncio
    async def test_aborted_run_settles_status(self, test_config, sample_cache):
        """Test a run aborted by its progress callback is not left running."""
        orchestrator = ScrapeOrchestrator(test_config, sample_cache)

        def fail_after_two(progress):
            if progress.processed == 2:
                raise RuntimeError("listener gone")

        items = [item("Parasite", 2019), item("The Matrix", 1999), item("Inception", 2010)]
        with pytest.raises(RuntimeError):
            await orchestrator.scrape_items(items, fail_after_two)

        progress = orchestrator.get_progress()
        assert progress.status == ScrapeStatus.FAILED
        assert progress.current_item is None

    @pytest.mark.asyncio
    async def test_each_run_resets_progress(self, test_config, sample_cache):
        """Test a new run starts from fresh counts, even after an aborted one."""
        orchestrator = ScrapeOrchestrator(test_config, sample_cache)

        def fail_after_two(progress):
            if progress.processed == 2:
                raise RuntimeError("listener gone")

        items = [item("Parasite", 2019), item("The Matrix", 1999), item("Inception", 2010)]
        with pytest.raises(RuntimeError):
            await orchestrator.scrape_items(items, fail_after_two)

        await orchestrator.scrape_items([item("Parasite", 2019)])
        progress = orchestrator.get_progress()

        assert (progress.total, progress.processed) == (1, 1)
        assert progress.status == ScrapeStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_begun_job_keeps_pending_cancel(self, test_config, sample_cache):
        """Test a caller that began the job keeps a cancel issued before the run."""
        orchestrator = ScrapeOrchestrator(test_config, sample_cache)
        items = [item("Parasite", 2019), item("The Matrix", 1999)]
        orchestrator.job.begin(len(items))
        orchestrator.cancel()

        results = await orchestrator.scrape_items(items, begun=True)

        assert results == []
        assert orchestrator.get_progress().status == ScrapeStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_reset(self, test_config, sample_cache):
        orchestrator = ScrapeOrchestrator(test_config, sample_cache)
        await orchestrator.scrape_items([item("Parasite", 2019)])

        orchestrator.reset()

        assert orchestrator.get_progress().status == ScrapeStatus.IDLE
        assert orchestrator.get_progress().processed == 0

    @pytest.mark.asyncio
    async def test_provider_built_from_config_is_closed(self, sample_cache, monkeypatch):
        """Test a provider created for a run is closed afterwards."""
        config = MediaMatchConfig(tmdb={"api_key": "test-key"})
        created = Mock(spec=MetadataProvider)
        created.search = AsyncMock(return_value=[])
        created.close = AsyncMock()
        monkeypatch.setattr(
            "mediamatch.core.orchestrator.TmdbProvider", Mock(return_value=created)
        )
        orchestrator = ScrapeOrchestrator(config, sample_cache)

        await orchestrator.scrape_items([item("Nope Nope")])

        created.search.assert_awaited_once()
        created.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_injected_provider_not_closed(self, test_config, sample_cache, mock_provider):
        orchestrator = ScrapeOrchestrator(test_config, sample_cache, mock_provider)

        await orchestrator.scrape_items([item("Nope Nope")])

        mock_provider.close.assert_not_awaited()
