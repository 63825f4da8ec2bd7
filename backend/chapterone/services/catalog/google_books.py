"""Google Books volumes adapter."""
import logging
from typing import Any, List, Optional

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

GOOGLE_BOOKS_BASE_URL = "https://www.googleapis.com/books/v1/volumes"
# Google rejects maxResults above 40
MAX_RESULTS = 40


def _extract_isbn(identifiers: Any) -> Optional[str]:
    for ident in identifiers or []:
        if not isinstance(ident, dict):
            continue
        if ident.get("type") in ("ISBN_13", "ISBN_10") and ident.get("identifier"):
            return ident["identifier"]
    return None


def _extract_year(published_date: Any) -> str:
    if not published_date:
        return ""
    return str(published_date).split("-")[0]


class GoogleBooksAdapter(CatalogAdapter):
    name = "google_books"

    def __init__(self, *args, api_key: Optional[str] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.api_key = api_key

    def _build_query(self, query: str, search_type: str) -> str:
        # Example: q=intitle:Dune, q=inauthor:Frank Herbert
        if search_type == "title":
            return f"intitle:{query}"
        if search_type == "author":
            return f"inauthor:{query}"
        if search_type in ("subject", "theme"):
            return f"subject:{query}"
        return query

    def _normalize(self, item: Any) -> ExternalBook:
        info = item.get("volumeInfo") if isinstance(item, dict) else None
        if not isinstance(info, dict):
            raise MalformedProviderResponse(self.name, "volume has no volumeInfo")
        title = info.get("title")
        if not isinstance(title, str) or not title.strip():
            raise MalformedProviderResponse(self.name, f"volume {item.get('id')!r} has no title")

        authors = string_list(info.get("authors"))
        categories = string_list(info.get("categories"))
        page_count = info.get("pageCount") if isinstance(info.get("pageCount"), int) else None
        description = description_text(info.get("description")) or None
        image_links = info.get("imageLinks") or {}
        rating = info.get("averageRating")

        # Google categories are "Fiction / Fantasy"; the tagger keeps the head segment as a theme
        tags = self.tagger.tag(text=description, subjects=categories, page_count=page_count)

        return ExternalBook(
            title=title,
            author=authors[0] if authors else "Unknown",
            isbn=_extract_isbn(info.get("industryIdentifiers")),
            published_year=_extract_year(info.get("publishedDate")),
            cover_image=image_links.get("thumbnail") if isinstance(image_links, dict) else None,
            rating=float(rating) if isinstance(rating, (int, float)) else None,
            description=description,
            page_count=page_count,
            categories=categories,
            pace=tags.pace,
            tone=tags.tone,
            themes=tags.themes,
            professions=tags.professions,
            best_for=tags.best_for,
            source=self.name,
            external_id=item.get("id"),
        )

    def search(self, query: str, limit: int = 40, search_type: str = "all") -> List[ExternalBook]:
        params = {
            "q": self._build_query(query, search_type),
            "maxResults": min(limit, MAX_RESULTS),
        }
        if self.api_key:
            params["key"] = self.api_key

        data = self._get_json(GOOGLE_BOOKS_BASE_URL, params=params)
        if not isinstance(data, dict):
            raise ProviderUnavailable(self.name, "volumes response is not an object")
        # An empty result set omits "items" entirely
        items = data.get("items") or []

        books = refine_results(self._normalize_all(items, self._normalize), query, search_type, self.tagger)

        logger.info("Google Books returned %d book(s) for %r (type=%s)", len(books), query, search_type)
        return books
