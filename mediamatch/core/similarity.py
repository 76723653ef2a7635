"""Title normalization and fuzzy similarity scoring."""

import re

_NON_WORD_RE = re.compile(r"[^\w\s]|_")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_title(title: str) -> str:
    """Lowercase, keep only Unicode letters, digits and spaces, collapse whitespace."""
    normalized = _NON_WORD_RE.sub("", title.lower())
    return _WHITESPACE_RE.sub(" ", normalized).strip()


def levenshtein_distance(a: str, b: str) -> int:
    """Unit-cost edit distance between two strings."""
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, 1):
        current = [i]
        for j, char_b in enumerate(b, 1):
            if char_a == char_b:
                current.append(previous[j - 1])
            else:
                current.append(
                    min(
                        previous[j - 1] + 1,  # substitution
                        current[j - 1] + 1,  # insertion
                        previous[j] + 1,  # deletion
                    )
                )
        previous = current

    return previous[-1]


def title_similarity(title1: str, title2: str) -> float:
    """Similarity score in [0, 1] between two titles."""
    norm1 = normalize_title(title1)
    norm2 = normalize_title(title2)

    if norm1 == norm2:
        return 1.0

    max_length = max(len(norm1), len(norm2))
    distance = levenshtein_distance(norm1, norm2)
    return 1.0 - distance / max_length
