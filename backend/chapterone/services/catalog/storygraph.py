"""
StoryGraph adapter.

StoryGraph tags books itself (mood tags, theme tags, a pace string, genre
tags and a reading level), so its records only go through the lexical tagger
for professions.
"""
import logging
from typing import Any, List

from chapterone.models import Pace
from chapterone.schemas.book import ExternalBook
from chapterone.services.catalog.base import (
    CatalogAdapter,
    MalformedProviderResponse,
    ProviderUnavailable,
    description_text,
    refine_results,
    string_list,
)

logger = logging.getLogger(__name__)

STORYGRAPH_BASE_URL = "https://api.storygraph.com/v1"

PACE_MAP = {
    "fast-paced": Pace.FAST,
    "medium-paced": Pace.MODERATE,
    "slow-paced": Pace.SLOW,
}

GENRE_AUDIENCES = (
    ("young-adult", "Young Adults"),
    ("adult", "Adults"),
    ("children", "Children"),
    ("middle-grade", "Middle Grade Readers"),
)

READING_LEVEL_AUDIENCES = {
    "easy": "Casual Readers",
    "challenging": "Avid Readers",
}


def map_pace(value: Any) -> Pace:
    return PACE_MAP.get(value, Pace.MODERATE) if isinstance(value, str) else Pace.MODERATE


def audiences_for(record: dict) -> List[str]:
    genre_tags = string_list(record.get("genre_tags"))
    audiences = [label for tag, label in GENRE_AUDIENCES if tag in genre_tags]
    level = READING_LEVEL_AUDIENCES.get(record.get("reading_level"))
    if level:
        audiences.append(level)
    return audiences


class StorygraphAdapter(CatalogAdapter):
    name = "storygraph"

    def _normalize(self, record: Any) -> ExternalBook:
        if not isinstance(record, dict):
            raise MalformedProviderResponse(self.name, f"book record is not an object: {record!r}")
        title = record.get("title")
        if not isinstance(title, str) or not title.strip():
            raise MalformedProviderResponse(self.name, f"book {record.get('id')!r} has no title")

        description = description_text(record.get("description")) or None
        genres = string_list(record.get("genre_tags"))
        rating = record.get("average_rating")
        page_count = record.get("pages") if isinstance(record.get("pages"), int) else None

        return ExternalBook(
            title=title,
            author=record.get("author") if isinstance(record.get("author"), str) else "Unknown",
            isbn=record.get("isbn"),
            cover_image=record.get("cover_url"),
            rating=float(rating) if isinstance(rating, (int, float)) else None,
            description=description,
            page_count=page_count,
            categories=genres,
            pace=map_pace(record.get("pace")),
            tone=string_list(record.get("mood_tags")),
            themes=string_list(record.get("theme_tags")),
            professions=self.tagger.professions(description, genres),
            best_for=audiences_for(record),
            source=self.name,
            external_id=str(record["id"]) if record.get("id") is not None else None,
        )

    def _books(self, path: str, params: dict) -> list:
        data = self._get_json(f"{STORYGRAPH_BASE_URL}/{path}", params=params)
        records = data.get("books") if isinstance(data, dict) else None
        if not isinstance(records, list):
            raise ProviderUnavailable(self.name, f"{path} response has no 'books' list")
        return records

    def search(self, query: str, limit: int = 50, search_type: str = "all") -> List[ExternalBook]:
        records = self._books("books/search", {"q": query, "limit": limit})
        books = refine_results(self._normalize_all(records[:limit], self._normalize), query, search_type, self.tagger)

        logger.info("StoryGraph returned %d book(s) for %r (type=%s)", len(books), query, search_type)
        return books

    def trending(self, limit: int = 50) -> List[ExternalBook]:
        records = self._books("books/trending", {"limit": limit})
        return self._normalize_all(records[:limit], self._normalize)
