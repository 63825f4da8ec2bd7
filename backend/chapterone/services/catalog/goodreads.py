"""
Goodreads XML adapter.

Two endpoints are used: ``search/index.xml`` (work hits carrying a
``best_book`` element) and ``book/popular_by_date.xml`` (full book records
with a description, page count and ISBN). Both require a developer key.
"""
import logging
import xml.etree.ElementTree as ET
from typing import List, Optional

from chapterone.schemas.book import ExternalBook
from chapterone.services.catalog.base import (
    CatalogAdapter,
    MalformedProviderResponse,
    ProviderUnavailable,
    refine_results,
)

logger = logging.getLogger(__name__)

GOODREADS_BASE_URL = "https://www.goodreads.com"


def _text(element: Optional[ET.Element], path: str) -> Optional[str]:
    if element is None:
        return None
    value = element.findtext(path)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _float(value: Optional[str]) -> Optional[float]:
    try:
        return float(value) if value else None
    except ValueError:
        return None


def _int(value: Optional[str]) -> Optional[int]:
    try:
        return int(value) if value else None
    except ValueError:
        return None


class GoodreadsAdapter(CatalogAdapter):
    name = "goodreads"

    def __init__(self, *args, api_key: Optional[str] = None, **kwargs):
        kwargs.setdefault("headers", {"Accept": "application/xml"})
        super().__init__(*args, **kwargs)
        if not api_key:
            raise ValueError("GoodreadsAdapter requires an API key")
        self.api_key = api_key

    def _get_xml(self, path: str, params: dict) -> ET.Element:
        body = self._get_text(f"{GOODREADS_BASE_URL}/{path}", params={"key": self.api_key, **params})
        try:
            return ET.fromstring(body)
        except ET.ParseError as e:
            raise ProviderUnavailable(self.name, f"response from {path} is not valid XML: {e}") from e

    def _normalize_work(self, work: ET.Element) -> ExternalBook:
        best_book = work.find("best_book")
        title = _text(best_book, "title")
        if not title:
            raise MalformedProviderResponse(self.name, "search work has no best_book title")

        tags = self.tagger.tag()
        return ExternalBook(
            title=title,
            author=_text(best_book, "author/name") or "Unknown",
            published_year=_text(work, "original_publication_year") or "",
            cover_image=_text(best_book, "image_url"),
            rating=_float(_text(work, "average_rating")),
            pace=tags.pace,
            source=self.name,
            external_id=_text(best_book, "id"),
        )

    def _normalize_book(self, book: ET.Element) -> ExternalBook:
        title = _text(book, "title")
        if not title:
            raise MalformedProviderResponse(self.name, "popular book has no title")

        description = _text(book, "description")
        page_count = _int(_text(book, "num_pages"))
        tags = self.tagger.tag(text=description, page_count=page_count)

        return ExternalBook(
            title=title,
            author=_text(book, "author/name") or _text(book, "authors/author/name") or "Unknown",
            isbn=_text(book, "isbn13") or _text(book, "isbn"),
            published_year=_text(book, "publication_year") or "",
            cover_image=_text(book, "image_url"),
            rating=_float(_text(book, "average_rating")),
            description=description,
            page_count=page_count,
            pace=tags.pace,
            tone=tags.tone,
            themes=tags.themes,
            professions=tags.professions,
            best_for=tags.best_for,
            source=self.name,
            external_id=_text(book, "id"),
        )

    def search(self, query: str, limit: int = 50, search_type: str = "all") -> List[ExternalBook]:
        params = {"q": query}
        if search_type in ("title", "author"):
            params["search[field]"] = search_type
        root = self._get_xml("search/index.xml", params)

        works = root.findall("search/results/work")
        books = self._normalize_all(works[:limit], self._normalize_work)
        books = refine_results(books, query, search_type, self.tagger)

        logger.info("Goodreads returned %d book(s) for %r (type=%s)", len(books), query, search_type)
        return books

    def popular(self, limit: int = 50) -> List[ExternalBook]:
        root = self._get_xml("book/popular_by_date.xml", {"limit": limit})
        books = root.findall("books/book")
        return self._normalize_all(books[:limit], self._normalize_book)
