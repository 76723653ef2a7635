"""Command-line interface."""

import asyncio
import logging
from pathlib import Path

import click

from ..config.settings import MediaMatchConfig, load_config
from ..core.models import MediaKind, ScrapedItemResult
from ..core.service import ScrapeService, folder_entries
from ..store.cache import InMemoryMetadataCache, load_catalog_file
from ..store.records import InMemoryMatchRecordStore


def configure_logging(settings: MediaMatchConfig, verbose: bool) -> None:
    """Set up root logging from config and the --verbose flag."""
    if verbose:
        settings.log_level = "DEBUG"

    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file, encoding="utf-8"))

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=handlers,
    )


def format_result(result: ScrapedItemResult) -> list[str]:
    """Console lines describing one scrape result."""
    status_icon = "[MATCHED]" if result.matched else "[UNMATCHED]"
    year = f" ({result.item.year})" if result.item.year else ""
    lines = [f"\n{status_icon} {result.item.name}{year}"]

    if result.metadata:
        title = result.metadata.title_cn or result.metadata.title
        lines.append(f"    Title: {title}")
        lines.append(f"    TMDB ID: {result.metadata.tmdb_id}")
    if result.matched:
        lines.append(f"    Confidence: {result.match_result.confidence:.2f}")
    lines.append(f"    Source: {result.source.value}")
    if result.debug_info:
        lines.append(f"    Reason: {result.debug_info.reason}")
    return lines


async def run_scrape(
    settings: MediaMatchConfig,
    folders: tuple[Path, ...],
    kind: MediaKind,
    catalog: Path | None,
    dedup: bool,
) -> ScrapeService:
    """Seed the cache, run one scrape to completion and return the service."""
    cache = InMemoryMetadataCache()
    if catalog:
        load_catalog_file(catalog, cache)

    service = ScrapeService(settings, cache, InMemoryMatchRecordStore())
    started = await service.start(folder_entries(list(folders), kind), deduplicate=dedup)
    click.echo(f"Scraping {started.item_count} item(s)")
    await service.wait()
    return service


@click.command()
@click.argument(
    "folders", nargs=-1, required=True, type=click.Path(exists=True, file_okay=False, path_type=Path)
)
@click.option(
    "--type",
    "media_type",
    type=click.Choice(["movie", "tv"]),
    default="movie",
    show_default=True,
    help="Media kind held by the folders",
)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Custom configuration file",
)
@click.option(
    "--catalog",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML catalog used to seed the local metadata cache",
)
@click.option("--no-dedup", is_flag=True, help="Scrape every file, even repeated titles")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def main(
    folders: tuple[Path, ...],
    media_type: str,
    config: Path | None,
    catalog: Path | None,
    no_dedup: bool,
    verbose: bool,
):
    """Identify media files against the catalog by their names.

    FOLDERS: One or more library folders to scan

    Matches come from the local catalog first, then from TMDB when an API
    key is configured.
    """
    try:
        settings = load_config(config)
        configure_logging(settings, verbose)

        if not settings.tmdb.enabled:
            click.echo("No TMDB API key configured, matching from the local catalog only")

        kind = MediaKind(media_type)
        click.echo(f"Scanning {len(folders)} folder(s) as {kind.value}")

        service = asyncio.run(run_scrape(settings, folders, kind, catalog, not no_dedup))

        click.echo(f"\n{'=' * 60}")
        click.echo("SCRAPE RESULTS")
        click.echo(f"{'=' * 60}")
        for result in service.results():
            for line in format_result(result):
                click.echo(line)

        counts = service.result_counts()
        progress = service.get_progress()
        click.echo(f"\n{'=' * 60}")
        click.echo("SUMMARY")
        click.echo(f"{'=' * 60}")
        click.echo(f"Status: {progress.status.value}")
        click.echo(f"Total items: {counts['total']}")
        click.echo(f"Matched: {counts['matched']}")
        click.echo(f"Unmatched: {counts['unmatched']}")

    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        if verbose:
            import traceback

            traceback.print_exc()
        raise SystemExit(1)


if __name__ == "__main__":
    main()
