"""
Dispatch a search query to the matching strategy for its search type.

Works over any sequence of book-shaped objects (stored ``Book`` rows or
``ExternalBook`` records): every strategy only reads attributes, filters in
input order and applies the optional limit last.
"""
import enum
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple

from chapterone.models import Pace


class SearchType(str, enum.Enum):
    ALL = "all"
    TITLE = "title"
    AUTHOR = "author"
    MOOD = "mood"
    TONE = "tone"
    THEME = "theme"
    PROFESSION = "profession"
    PACE = "pace"
    READING_STYLE = "readingStyle"


def parse_search_type(raw: Optional[str]) -> SearchType:
    """Unknown or empty values fall back to ``SearchType.ALL``."""
    if not raw:
        return SearchType.ALL
    for search_type in SearchType:
        if search_type.value.lower() == raw.strip().lower():
            return search_type
    return SearchType.ALL


# Evaluated top to bottom; first exact (case-insensitive) match wins
READING_STYLE_RULES: Tuple[Tuple[str, Pace], ...] = (
    ("quick read", Pace.FAST),
    ("deep dive", Pace.SLOW),
    ("academic", Pace.SLOW),
    ("light reading", Pace.MODERATE),
    ("standalone", Pace.MODERATE),
    ("series", Pace.MODERATE),
    ("visual", Pace.MODERATE),
    ("interactive", Pace.MODERATE),
)


def map_reading_style(value: str) -> str:
    """Rewrite a reading-style synonym to its pace value; anything unrecognized passes through unchanged."""
    lowered = value.strip().lower()
    for synonym, pace in READING_STYLE_RULES:
        if synonym == lowered:
            return pace.value
    return value


def _contains(value: Optional[str], needle: str) -> bool:
    return bool(value) and needle in value.lower()


def _any_contains(values: Optional[Iterable[str]], needle: str) -> bool:
    return any(_contains(value, needle) for value in values or [])


def _any_related(values: Optional[Iterable[str]], needle: str) -> bool:
    # exact or substring in either direction
    for value in values or []:
        if not value:
            continue
        lowered = value.lower()
        if lowered == needle or needle in lowered or lowered in needle:
            return True
    return False


def _pace_value(book: Any) -> Optional[str]:
    pace = getattr(book, "pace", None)
    if isinstance(pace, Pace):
        return pace.value
    return pace


def build_matcher(query: str, search_type: SearchType) -> Callable[[Any], bool]:
    needle = query.strip().lower()

    if search_type == SearchType.TITLE:
        return lambda book: _contains(book.title, needle)
    if search_type == SearchType.AUTHOR:
        return lambda book: _contains(book.author, needle)
    if search_type in (SearchType.MOOD, SearchType.TONE):
        return lambda book: _any_contains(book.tone, needle)
    if search_type == SearchType.THEME:
        return lambda book: _any_contains(book.themes, needle)
    if search_type == SearchType.PROFESSION:
        return lambda book: _any_related(book.professions, needle)
    if search_type in (SearchType.PACE, SearchType.READING_STYLE):
        target = map_reading_style(query).strip().lower()
        return lambda book: (_pace_value(book) or "").lower() == target

    def matches_any(book: Any) -> bool:
        return (
            _contains(book.title, needle)
            or _contains(book.author, needle)
            or _any_contains(book.themes, needle)
            or _any_contains(book.tone, needle)
            or _any_contains(book.professions, needle)
        )

    return matches_any


def route(
    books: Sequence[Any],
    query: str,
    search_type: SearchType = SearchType.ALL,
    limit: Optional[int] = None,
) -> List[Any]:
    matcher = build_matcher(query, search_type)
    matched = [book for book in books if matcher(book)]
    if limit is not None:
        matched = matched[:limit]
    return matched
