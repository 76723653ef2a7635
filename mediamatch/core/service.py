"""Caller-facing scrape service: start a background job, poll, cancel, persist."""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

from ..api.provider import MetadataProvider
from ..config.settings import MediaMatchConfig
from ..store.cache import MetadataCache
from ..store.records import MatchRecordStore, record_from_result
from .errors import ScrapeAlreadyRunningError
from .models import (
    MediaKind,
    ScannedMediaFile,
    ScrapedItemResult,
    ScrapeItem,
    ScrapeProgress,
)
from .orchestrator import ProgressCallback, ScrapeOrchestrator
from .scanner import MediaScanner, deduplicate_by_title

logger = logging.getLogger(__name__)


@dataclass
class FolderEntry:
    """A library folder and the kind of media it holds."""

    path: str
    kind: MediaKind = MediaKind.MOVIE


@dataclass
class ScrapeStart:
    """What a start request kicked off."""

    item_count: int
    skipped_count: int
    folders: list[FolderEntry]
    progress: ScrapeProgress


class ScrapeService:
    """Runs one scrape job at a time in the background.

    ``start`` scans and filters synchronously, schedules the scrape as an
    asyncio task and returns at once; callers poll ``get_progress``.
    """

    def __init__(
        self,
        config: MediaMatchConfig,
        cache: MetadataCache,
        records: MatchRecordStore,
        provider: MetadataProvider | None = None,
        scanner: MediaScanner | None = None,
    ):
        self.config = config
        self.records = records
        self.scanner = scanner or MediaScanner(config.scan)
        self.orchestrator = ScrapeOrchestrator(config, cache, provider)
        self.last_results: list[ScrapedItemResult] = []
        self._task: asyncio.Task | None = None
        self._start_lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def get_progress(self) -> ScrapeProgress:
        return self.orchestrator.get_progress()

    def cancel(self) -> bool:
        """Request cancellation; False if nothing is running."""
        if not self.is_running:
            return False
        self.orchestrator.cancel()
        return True

    def reset(self) -> None:
        if self.is_running:
            raise ScrapeAlreadyRunningError("Cannot reset while a scrape is running")
        self.orchestrator.reset()
        self.last_results = []

    async def collect_files(
        self,
        folders: list[FolderEntry],
        deduplicate: bool = True,
        skip_matched: bool = True,
    ) -> tuple[list[ScannedMediaFile], int]:
        """Scan folders into scrape candidates; returns the files and how many were skipped."""
        files: list[ScannedMediaFile] = []
        for folder in folders:
            files.extend(self.scanner.scan_tagged(folder.path, folder.kind))

        skipped = 0
        if skip_matched:
            try:
                matched_paths = await self.records.matched_paths()
            except Exception as e:
                logger.error(f"Error loading matched records, not skipping any: {e}")
            else:
                original_count = len(files)
                files = [f for f in files if f.file_path not in matched_paths]
                skipped = original_count - len(files)
                if skipped:
                    logger.info(f"Skipped {skipped} already matched files")

        if deduplicate:
            files = deduplicate_by_title(files, by_kind=True)

        return files, skipped

    async def start(
        self,
        folders: list[FolderEntry],
        deduplicate: bool = True,
        skip_matched: bool = True,
        on_progress: ProgressCallback | None = None,
    ) -> ScrapeStart:
        """Start a background scrape over the given folders.

        Raises ScrapeAlreadyRunningError if a job is already running.
        """
        if self.is_running or self._start_lock.locked():
            raise ScrapeAlreadyRunningError("Scrape already in progress")

        async with self._start_lock:
            folders = [
                FolderEntry(path=f.path.strip(), kind=f.kind) for f in folders if f.path.strip()
            ]
            self.orchestrator.reset()
            self.last_results = []

            files, skipped = await self.collect_files(folders, deduplicate, skip_matched)
            items = [ScrapeItem.from_scanned(f) for f in files]

            if items:
                self.orchestrator.job.begin(len(items))
                self._task = asyncio.create_task(self._run(items, files, on_progress))
            else:
                logger.warning("No media files to scrape in the given folders")

            return ScrapeStart(
                item_count=len(items),
                skipped_count=skipped,
                folders=folders,
                progress=self.get_progress(),
            )

    async def wait(self) -> list[ScrapedItemResult]:
        """Wait for the running job, if any, and return its results."""
        if self._task is not None:
            await self._task
        return self.last_results

    def results(self, filter_by: str = "all") -> list[ScrapedItemResult]:
        """Last job's results, optionally only ``matched`` or ``unmatched`` ones."""
        if filter_by == "matched":
            return [r for r in self.last_results if r.matched]
        if filter_by == "unmatched":
            return [r for r in self.last_results if not r.matched]
        return list(self.last_results)

    def result_counts(self) -> dict[str, int]:
        matched = sum(1 for r in self.last_results if r.matched)
        return {
            "total": len(self.last_results),
            "matched": matched,
            "unmatched": len(self.last_results) - matched,
        }

    async def _run(
        self,
        items: list[ScrapeItem],
        files: list[ScannedMediaFile],
        on_progress: ProgressCallback | None,
    ) -> None:
        try:
            results = await self.orchestrator.scrape_items(items, on_progress, begun=True)
        except Exception as e:
            logger.error(f"Scrape job failed: {e}", exc_info=True)
            self.last_results = []
            return
        self.last_results = results

        try:
            saved = await self._persist(results, files)
            logger.info(f"Saved {saved} records")
        except Exception as e:
            logger.error(f"Failed to save records: {e}", exc_info=True)

    async def _persist(
        self, results: list[ScrapedItemResult], files: list[ScannedMediaFile]
    ) -> int:
        """Save one record per result without overwriting already matched ones."""
        files_by_path = {f.file_path: f for f in files}
        saved = 0
        for result in results:
            media_file = files_by_path.get(result.item.id)
            if media_file is None:
                continue
            if await self.records.save(record_from_result(result, media_file)):
                saved += 1
        return saved


def folder_entries(paths: list[str | Path], kind: MediaKind) -> list[FolderEntry]:
    """Build folder entries of a single media kind."""
    return [FolderEntry(path=str(p), kind=kind) for p in paths]
