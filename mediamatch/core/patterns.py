"""Noise-stripping rule catalog used by the filename parser.

Each catalog is an ordered list of ``(regex, replacement)`` pairs. The parser
applies them in order, so more specific rules must come before the generic
ones they overlap with (``国粤双语`` before ``国语``, ``DTS-HD`` alongside ``DTS``).
"""

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class NoiseRule:
    """A compiled pattern and what to replace its matches with."""

    pattern: re.Pattern
    replacement: str = " "

    def apply(self, text: str) -> str:
        return self.pattern.sub(self.replacement, text)


EXTENSION_PATTERN = r"\.[^/.]+$"

# PT-site prefixes: [PTer], 【字幕组】, @uploader
LEADING_TAG_RULES = [
    (r"^\[.*?\]\s*", ""),
    (r"^【.*?】\s*", ""),
    (r"^@.*?\s+", ""),
]

RELEASE_NOISE_RULES = [
    # Resolution
    (r"\b(2160p|1080p|720p|480p|4K|UHD)\b", " "),
    # Combined forms (4K265, 4Kx265, 4K H265)
    (r"4K\s*[xhHX]?\.?265", " "),
    (r"4K\s*[xhHX]?\.?264", " "),
    # Video codecs
    (r"\b(x264|x265|H\s*\.?\s*264|H\s*\.?\s*265|HEVC|AVC|VP9|AV1|10bit|8bit|265)(?:\b|$)", " "),
    # Audio codecs
    (
        r"\b(AAC|DTS|DTS-HD|TrueHD|Atmos|DD5?\.?1|DD\+|EAC3|FLAC|LPCM|7\.1|5\.1|2\.0|DDP5?\.?1|AC3)\b",
        " ",
    ),
    # Sources and streaming platforms
    (
        r"\b(BluRay|Blu-Ray|BDRip|BDRemux|REMUX|WEBRip|WEB-DL|WEBDL|WEB|HDTV|DVDRip|DVD|HDRip"
        r"|HC|TS|TC|CAM|R5|R6|ATVP|AMZN|NF|DSNP|HMAX|APTV)\b",
        " ",
    ),
    # HDR
    (r"\b(HDR|HDR10|HDR10\+|DV|DoVi|Dolby\.?Vision)\b", " "),
    # Release groups
    (r"-[A-Za-z0-9]+$", " "),
    (r"\b(GTVG|CMCT|FRDS|CHD|PTer|HDChina|TTG|MTeam|OPS|SuGo|REGRET|ALT|FLUX|SPARKS)\b", " "),
    # Editions
    (
        r"\b(PROPER|REPACK|RERIP|INTERNAL|LIMITED|EXTENDED|UNRATED|DIRECTORS\.?CUT|DC|IMAX|3D"
        r"|MULTI|HYBRID)\b",
        " ",
    ),
    # Languages
    (r"\b(CHINESE|CHI|CHS|CHT|ENG|JPN|KOR|GER|FRE|SPA)\b", " "),
    # Subtitles
    (r"\b(SUBBED|DUBBED|HARDSUB|SOFTSUB)\b", " "),
    (r"\b(HiveWeb|HiVe|WEB4K|Web)\b", " "),
    # File sizes (16.55GB, 666.20GB)
    (r"\d+\.?\d*\s*[GTM]B", " "),
    (r"\(\d+\.?\d*\s*[GTM]B\)", " "),
    (r"\bSDR\b", " "),
    (r"\bHQ\b", " "),
]

CHINESE_NOISE_RULES = [
    (r"邵氏", " "),
    (r"国粤双语", " "),
    (r"国语", " "),
    (r"粤语", " "),
    (r"国配", " "),
    (r"台配", " "),
    (r"港版", " "),
    (r"台版", " "),
    (r"加长版", " "),
    (r"导演剪辑版", " "),
    (r"修复版", " "),
    (r"重制版", " "),
    (r"电影版", " "),
    (r"剧场版", " "),
    (r"完整版", " "),
    (r"内封", " "),
    (r"外挂", " "),
    (r"官方", " "),
    (r"简体", " "),
    (r"繁体", " "),
    (r"中字", " "),
    (r"中文", " "),
    (r"字幕", " "),
    (r"（.*?版）", " "),
    (r"\(.*?版\)", " "),
    # Douban ratings (⭐豆瓣 8.8)
    (r"⭐.*?豆瓣.*?\d+\.?\d*", " "),
    (r"豆瓣.*?\d+\.?\d*", " "),
    (r"⭐+", " "),
    (r"\[内封.*?\]", " "),
    (r"\[外挂.*?\]", " "),
    (r"内封简繁中字", " "),
    (r"内封简繁中字幕", " "),
    (r"内嵌简中字幕", " "),
    (r"内封简日双语特效字幕", " "),
    # Collections
    (r"\(合集\)", " "),
    (r"（合集）", " "),
]

# Any bracketed group, except a parenthesized year
BRACKET_RULES = [
    (r"\[(.*?)\]", " "),
    (r"\{(.*?)\}", " "),
    (r"【(.*?)】", " "),
    (r"\(((?!\d{4}\)).*?)\)", " "),
    (r"（(?!\d{4}）).*?）", " "),
]

SEPARATOR_RULES = [
    (r"[._-]+", " "),
    (r"\s+", " "),
]

# Year extraction, tried in order
PAREN_YEAR_PATTERN = re.compile(r"^(.+?)\s*[（(](\d{4})[）)]\s*$")
TRAILING_YEAR_PATTERN = re.compile(r"^(.+?)\s+(19\d{2}|20\d{2})(?:\s|$)")

# CJK ideographs U+4E00..U+9FA5. The mixed-title split also accepts
# CJK punctuation U+3000..U+303F and full-width forms U+FF00..U+FFEF
CJK_PATTERN = re.compile(r"[一-龥]")
TECH_ONLY_PATTERN = re.compile(r"^[\d\s.+@\-A-Z]+$", re.IGNORECASE | re.ASCII)
LEADING_YEAR_PATTERN = re.compile(r"^(19|20)\d{2}")

CJK_THEN_LATIN_PATTERN = re.compile(
    r"^([一-龥　-〿＀-￯0-9]+)\s+([A-Za-z].*)$"
)
LATIN_THEN_CJK_PATTERN = re.compile(
    r"^([A-Za-z][A-Za-z0-9\s]+?)\s+([一-龥].*)$"
)


def compile_rules(
    rules: list[tuple[str, str]], flags: int = 0
) -> list[NoiseRule]:
    """Compile a rule catalog into NoiseRule objects."""
    return [NoiseRule(re.compile(regex, flags), replacement) for regex, replacement in rules]
