"""
Open Library adapter.

Searches ``search.json`` and, for each hit, fetches the work record
(``/works/<id>.json``) for its description, which is either a plain string or
a ``{"value": ...}`` rich-text object. A failed work fetch only costs that
book its description; a failed search raises ``ProviderUnavailable``.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
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

BASE_URL = "https://openlibrary.org"
SEARCH_URL = f"{BASE_URL}/search.json"
COVER_URL = "https://covers.openlibrary.org/b/id/{cover_id}-L.jpg"
DETAIL_WORKERS = 8


class OpenLibraryAdapter(CatalogAdapter):
    name = "openlibrary"

    def __init__(self, *args, fetch_details: bool = True, **kwargs):
        super().__init__(*args, **kwargs)
        self.fetch_details = fetch_details

    def _search_params(self, query: str, limit: int, search_type: str) -> dict:
        params: dict = {"limit": limit}
        if search_type == "title":
            params["title"] = query
        elif search_type == "author":
            params["author"] = query
        elif search_type in ("subject", "theme"):
            params["subject"] = query
        else:
            # profession searches use the general index and are filtered afterwards
            params["q"] = query
        return params

    def _work_details(self, key: str) -> Optional[dict]:
        try:
            data = self._get_json(f"{BASE_URL}{key}.json")
        except ProviderUnavailable as e:
            logger.warning("Open Library work details unavailable for %s: %s", key, e)
            return None
        return data if isinstance(data, dict) else None

    def _normalize(self, doc: Any, details: Optional[dict]) -> ExternalBook:
        if not isinstance(doc, dict):
            raise MalformedProviderResponse(self.name, f"search doc is not an object: {doc!r}")
        title = doc.get("title")
        if not isinstance(title, str) or not title.strip():
            raise MalformedProviderResponse(self.name, f"search doc {doc.get('key')!r} has no title")

        authors = string_list(doc.get("author_name"))
        subjects = string_list(doc.get("subject"))
        page_count = doc.get("number_of_pages_median")
        if not isinstance(page_count, int):
            page_count = None
        year = doc.get("first_publish_year")
        cover_id = doc.get("cover_i")

        description = description_text((details or {}).get("description")) or None
        first_sentence = description_text((details or {}).get("first_sentence")) or None
        tags = self.tagger.tag(text=description, subjects=subjects, page_count=page_count)

        return ExternalBook(
            title=title,
            author=authors[0] if authors else "Unknown",
            published_year=str(year) if year else "",
            cover_image=COVER_URL.format(cover_id=cover_id) if cover_id else None,
            page_count=page_count,
            description=description,
            first_sentence=first_sentence,
            categories=subjects,
            pace=tags.pace,
            tone=tags.tone,
            themes=tags.themes,
            professions=tags.professions,
            best_for=tags.best_for,
            source=self.name,
            external_id=doc.get("key"),
        )

    def search(self, query: str, limit: int = 50, search_type: str = "all") -> List[ExternalBook]:
        data = self._get_json(SEARCH_URL, params=self._search_params(query, limit, search_type))
        docs = data.get("docs") if isinstance(data, dict) else None
        if not isinstance(docs, list):
            raise ProviderUnavailable(self.name, "search response has no 'docs' list")

        keys = [doc.get("key") if isinstance(doc, dict) else None for doc in docs]
        details: List[Optional[dict]] = [None] * len(docs)
        if self.fetch_details and docs:
            fetchable = [(i, key) for i, key in enumerate(keys) if isinstance(key, str) and key]
            if fetchable:
                with ThreadPoolExecutor(max_workers=min(DETAIL_WORKERS, len(fetchable))) as executor:
                    for (i, _), detail in zip(fetchable, executor.map(lambda item: self._work_details(item[1]), fetchable)):
                        details[i] = detail

        books = self._normalize_all(zip(docs, details), lambda pair: self._normalize(*pair))
        # Profession searches are strict: books with no matching profession are dropped
        books = refine_results(books, query, search_type, self.tagger)

        logger.info("Open Library returned %d book(s) for %r (type=%s)", len(books), query, search_type)
        return books
