"""Title and year extraction from noisy media file and folder names."""

import re

from .models import ParsedName
from .patterns import (
    BRACKET_RULES,
    CHINESE_NOISE_RULES,
    CJK_PATTERN,
    CJK_THEN_LATIN_PATTERN,
    EXTENSION_PATTERN,
    LATIN_THEN_CJK_PATTERN,
    LEADING_TAG_RULES,
    LEADING_YEAR_PATTERN,
    PAREN_YEAR_PATTERN,
    RELEASE_NOISE_RULES,
    SEPARATOR_RULES,
    TECH_ONLY_PATTERN,
    TRAILING_YEAR_PATTERN,
    compile_rules,
)


class FilenameParser:
    """Strips release noise from a name and extracts its title and year.

    Handles the naming conventions seen in local libraries and PT releases:

    - ``The Matrix (1999).mkv``
    - ``Inception.2010.1080p.BluRay.mkv``
    - ``阿凡达 Avatar (2009)``
    - ``[PTer].流浪地球.The.Wandering.Earth.2019.2160p.BluRay.x265-GTVG.mkv``
    - ``萧十一郎（狄龙版） 邵氏``
    """

    def __init__(
        self,
        release_rules: list[tuple[str, str]] | None = None,
        chinese_rules: list[tuple[str, str]] | None = None,
    ):
        """Initialize with custom noise catalogs or the defaults."""
        self.extension_re = re.compile(EXTENSION_PATTERN)
        self.leading_rules = compile_rules(LEADING_TAG_RULES)
        # ASCII word boundaries, so "霸王别姬1080p" still loses its resolution tag
        self.release_rules = compile_rules(
            release_rules or RELEASE_NOISE_RULES, re.IGNORECASE | re.ASCII
        )
        self.chinese_rules = compile_rules(chinese_rules or CHINESE_NOISE_RULES)
        self.bracket_rules = compile_rules(BRACKET_RULES)
        self.separator_rules = compile_rules(SEPARATOR_RULES)

    def parse(self, name: str) -> ParsedName:
        """Parse a raw file or folder name into a title and optional year."""
        base_name = self.extension_re.sub("", name)

        for rule in self.leading_rules:
            base_name = rule.apply(base_name)

        clean_name = base_name
        for rule in self.release_rules + self.chinese_rules + self.bracket_rules:
            clean_name = rule.apply(clean_name)
        for rule in self.separator_rules:
            clean_name = rule.apply(clean_name)
        clean_name = clean_name.strip()

        title, year = self._extract_year(clean_name)
        title = re.sub(r"\s+", " ", title).strip()

        if not title:
            title = self._fallback_title(name)

        return ParsedName(title=title, year=year)

    def split_mixed_title(self, title: str) -> list[str]:
        """Split a bilingual title into separate search terms.

        ``"里约大冒险 Rio"`` gives ``["里约大冒险 Rio", "里约大冒险", "Rio"]``.
        """
        results = [title]

        match = CJK_THEN_LATIN_PATTERN.match(title)
        if match:
            results.extend([match.group(1).strip(), match.group(2).strip()])

        match = LATIN_THEN_CJK_PATTERN.match(title)
        if match:
            results.extend([match.group(1).strip(), match.group(2).strip()])

        return list(dict.fromkeys(term for term in results if term))

    def _extract_year(self, clean_name: str) -> tuple[str, int | None]:
        """Pull a trailing year off a cleaned name."""
        match = PAREN_YEAR_PATTERN.match(clean_name)
        if match:
            return match.group(1).strip(), int(match.group(2))

        match = TRAILING_YEAR_PATTERN.match(clean_name)
        if match:
            return match.group(1).strip(), int(match.group(2))

        return clean_name, None

    def _fallback_title(self, name: str) -> str:
        """Raw name minus extension and separators; never empty for non-empty input."""
        fallback = self.extension_re.sub("", name)
        fallback = re.sub(r"[._-]+", " ", fallback).strip()
        return fallback or name.strip() or name


def has_cjk(text: str) -> bool:
    """Check if text contains CJK ideographs."""
    return bool(CJK_PATTERN.search(text))


def looks_like_noise(title: str, min_length: int = 2) -> bool:
    """Check if a parsed title is just technical residue rather than a name.

    Titles with CJK characters are never noise. Otherwise a title is noise when
    it holds only ASCII letters, digits and separator symbols, is shorter than
    ``min_length``, or starts with a four digit year.
    """
    if has_cjk(title):
        return False
    return (
        bool(TECH_ONLY_PATTERN.match(title))
        or len(title) < min_length
        or bool(LEADING_YEAR_PATTERN.match(title))
    )


default_parser = FilenameParser()


def parse_file_name(name: str) -> ParsedName:
    """Parse a name with the default rule catalogs."""
    return default_parser.parse(name)


def split_mixed_title(title: str) -> list[str]:
    """Split a bilingual title with the default parser."""
    return default_parser.split_mixed_title(title)
