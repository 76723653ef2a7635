"""Folder scanning for media and stream-pointer files."""

import logging
import os
from pathlib import Path

from ..config.settings import ScanConfig
from .models import MediaKind, ParsedName, ScannedMediaFile
from .parser import FilenameParser, has_cjk, looks_like_noise
from .patterns import TECH_ONLY_PATTERN
from .similarity import normalize_title

logger = logging.getLogger(__name__)


class MediaScanner:
    """Scans directories for media files and recovers their titles."""

    def __init__(
        self,
        config: ScanConfig | None = None,
        parser: FilenameParser | None = None,
    ):
        """Initialize scanner with optional scan settings and parser."""
        self.config = config or ScanConfig()
        self.parser = parser or FilenameParser()
        self.media_extensions = {ext.lower() for ext in self.config.media_extensions}
        self.skip_extensions = {ext.lower() for ext in self.config.skip_extensions}
        self.generic_folder_names = set(self.config.generic_folder_names)

    def scan_folders(self, folder_paths: list[str | Path]) -> list[ScannedMediaFile]:
        """Scan multiple folders for media files."""
        results: list[ScannedMediaFile] = []

        for folder_path in folder_paths:
            normalized_path = Path(os.path.normpath(str(folder_path).strip()))
            logger.info(f"Scanning: {normalized_path}")
            self._scan_folder(normalized_path, results)

        logger.info(f"Found {len(results)} media files")
        return results

    def scan_tagged(
        self, folder_path: str | Path, kind: MediaKind
    ) -> list[ScannedMediaFile]:
        """Scan one folder and tag every file with the folder's media kind."""
        return [f.tagged(kind) for f in self.scan_folders([folder_path])]

    def is_media_file(self, file_name: str) -> bool:
        """Check if a file is a media or stream-pointer file by extension."""
        return Path(file_name).suffix.lower() in self.media_extensions

    def should_skip_file(self, file_name: str) -> bool:
        """Check if a file is a hidden artifact or a known non-media file."""
        # Covers .DS_Store and ._ AppleDouble files
        if file_name.startswith("."):
            return True
        return Path(file_name).suffix.lower() in self.skip_extensions

    def is_strm_file(self, file_name: str) -> bool:
        return Path(file_name).suffix.lower() == self.config.strm_extension

    def resolve_title(self, file_path: Path) -> ParsedName:
        """Parse a title, falling back to the folder and grandparent folder names."""
        parsed = self.parser.parse(file_path.name)

        if looks_like_noise(parsed.title):
            folder_parsed = self.parser.parse(file_path.parent.name)
            if has_cjk(folder_parsed.title) or len(folder_parsed.title) > len(parsed.title):
                parsed = folder_parsed

        grandparent_name = file_path.parent.parent.name
        if (
            self._still_invalid(parsed.title)
            and grandparent_name
            and grandparent_name not in self.generic_folder_names
        ):
            grandparent_parsed = self.parser.parse(grandparent_name)
            if has_cjk(grandparent_parsed.title):
                parsed = grandparent_parsed

        return parsed

    def _still_invalid(self, title: str) -> bool:
        """Stricter noise check used before reaching for the grandparent folder."""
        return not has_cjk(title) and (
            bool(TECH_ONLY_PATTERN.match(title)) or len(title) < 3
        )

    def _scan_folder(self, folder_path: Path, results: list[ScannedMediaFile]) -> None:
        """Recursively scan a single folder, logging and skipping unreadable subtrees."""
        try:
            if not folder_path.exists():
                logger.warning(f"Folder does not exist: {folder_path}")
                return

            if not folder_path.is_dir():
                logger.warning(f"Not a directory: {folder_path}")
                return

            for entry in sorted(folder_path.iterdir(), key=lambda p: p.name):
                # Links may point back up the tree
                if entry.is_symlink():
                    logger.debug(f"Skipping symlink: {entry}")
                    continue
                if entry.is_dir():
                    self._scan_folder(entry, results)
                elif entry.is_file():
                    if self.should_skip_file(entry.name):
                        continue
                    if self.is_media_file(entry.name):
                        results.append(self._create_media_file(entry))

        except OSError as e:
            logger.error(f"Error scanning folder {folder_path}: {e}")

    def _create_media_file(self, file_path: Path) -> ScannedMediaFile:
        """Create ScannedMediaFile object from file path."""
        parsed = self.resolve_title(file_path)
        is_strm = self.is_strm_file(file_path.name)

        return ScannedMediaFile(
            file_path=str(file_path),
            file_name=file_path.name,
            folder_name=file_path.parent.name,
            parsed_title=parsed.title,
            parsed_year=parsed.year,
            is_strm=is_strm,
            strm_content=read_strm_content(file_path) if is_strm else None,
        )


def read_strm_content(file_path: Path) -> str | None:
    """Read a stream-pointer file's content, typically a playback URL."""
    try:
        content = file_path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.debug(f"Could not read STRM file {file_path}: {e}")
        return None
    return content or None


def deduplicate_by_title(
    files: list[ScannedMediaFile], by_kind: bool = False
) -> list[ScannedMediaFile]:
    """Collapse files sharing a title and year, preferring real media over STRM."""
    seen: dict[str, ScannedMediaFile] = {}

    for media_file in files:
        key = f"{normalize_title(media_file.parsed_title)}-{media_file.parsed_year or 'unknown'}"
        if by_kind:
            kind = media_file.media_kind.value if media_file.media_kind else "unknown"
            key = f"{key}-{kind}"

        existing = seen.get(key)
        if existing is None or (existing.is_strm and not media_file.is_strm):
            seen[key] = media_file

    return list(seen.values())
