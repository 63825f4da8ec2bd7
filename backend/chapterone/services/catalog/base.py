"""
Shared plumbing for external catalog adapters.

Every adapter turns one provider's search response into ``ExternalBook``
records. HTTP failures, timeouts and unreadable bodies surface as
``ProviderUnavailable``; callers (the aggregation layer) decide whether to
degrade. A single record that cannot be normalized raises
``MalformedProviderResponse`` inside the adapter and is skipped.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Iterable, List, Optional, TypeVar

import requests

from chapterone.schemas.book import ExternalBook
from chapterone.services.tagger import LexicalTagger, default_tagger

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0

# Facets that narrow an adapter's own tag output to the search term
TONE_FACETS = {"mood", "tone"}
THEME_FACETS = {"theme"}
PROFESSION_FACETS = {"profession"}

T = TypeVar("T")


class CatalogError(Exception):
    """Base class for catalog adapter failures."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"[{provider}] {message}")


class ProviderUnavailable(CatalogError):
    """Raised when an outbound call to a provider fails, times out or returns an unreadable body."""
    pass


class MalformedProviderResponse(CatalogError):
    """Raised when one provider record cannot be normalized into a book."""
    pass


def description_text(value: Any) -> str:
    """
    Canonicalize a provider description into plain text.

    Open Library returns either a plain string or a rich-text object
    ``{"type": "/type/text", "value": "..."}``; everything else becomes "".
    """
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, dict):
        inner = value.get("value")
        if isinstance(inner, str):
            return inner.strip()
    return ""


def string_list(value: Any) -> List[str]:
    """Coerce a provider field that may be a string, a list, or missing into a list of strings."""
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [item for item in value if isinstance(item, str)]
    return []


def _related(tag: str, query: str) -> bool:
    tag_lower = tag.lower()
    query_lower = query.lower()
    return query_lower in tag_lower or tag_lower in query_lower


def narrow_tags(tags: Iterable[str], query: str, fallback: Callable[[str], str]) -> List[str]:
    """Keep tags related to the query in either direction; synthesize one from the query when none survive."""
    narrowed = [tag for tag in tags if _related(tag, query)]
    if not narrowed:
        narrowed = [fallback(query)]
    return narrowed


def narrow_facet(book: ExternalBook, query: str, search_type: str, tagger: LexicalTagger) -> ExternalBook:
    """
    Narrow the facet being searched so the caller always sees at least one relevant tag.

    Only mood/tone, theme and profession searches are narrowed; other search
    types return the book unchanged.
    """
    if search_type in TONE_FACETS:
        book.tone = narrow_tags(book.tone, query, tagger.format_search_term)
    elif search_type in THEME_FACETS:
        book.themes = narrow_tags(book.themes, query, tagger.format_search_term)
    elif search_type in PROFESSION_FACETS:
        book.professions = narrow_tags(book.professions, query, tagger.profession_for_term)
    return book


def matches_profession(book: ExternalBook, query: str) -> bool:
    return any(_related(profession, query) for profession in book.professions or [])


def refine_results(
    books: Iterable[ExternalBook], query: str, search_type: str, tagger: LexicalTagger
) -> List[ExternalBook]:
    """
    Apply facet handling to a provider's normalized books.

    Profession searches first drop every book whose tagged professions do not
    relate to the query; the filter runs on the tagger's output, before
    narrowing can synthesize a matching tag. Other searches never drop books.
    """
    if search_type in PROFESSION_FACETS:
        books = [book for book in books if matches_profession(book, query)]
    return [narrow_facet(book, query, search_type, tagger) for book in books]


class ProviderClient:
    """HTTP access to one external provider, with failures mapped to ``CatalogError``."""

    name = "provider"

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        headers: Optional[dict] = None,
    ):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.headers = headers or {"Accept": "application/json"}

    def _request(self, url: str, params: Optional[dict] = None) -> requests.Response:
        try:
            resp = self.session.get(url, params=params, headers=self.headers, timeout=self.timeout)
            resp.raise_for_status()
        except requests.Timeout as e:
            raise ProviderUnavailable(self.name, f"timed out after {self.timeout}s: {url}") from e
        except requests.RequestException as e:
            raise ProviderUnavailable(self.name, f"request to {url} failed: {e}") from e
        return resp

    def _get_json(self, url: str, params: Optional[dict] = None) -> Any:
        resp = self._request(url, params)
        try:
            return resp.json()
        except ValueError as e:
            raise ProviderUnavailable(self.name, f"response from {url} is not JSON") from e

    def _get_text(self, url: str, params: Optional[dict] = None) -> str:
        return self._request(url, params).text

    def _parse_all(self, records: Iterable[Any], parse: Callable[[Any], T]) -> List[T]:
        """Parse each record, skipping (and logging) the ones that are malformed."""
        items: List[T] = []
        for record in records:
            try:
                items.append(parse(record))
            except MalformedProviderResponse as e:
                logger.warning("Skipping malformed record: %s", e)
        return items


class CatalogAdapter(ProviderClient, ABC):
    """
    Base class for one external book provider.

    Subclasses implement ``search(query, limit, search_type)``.
    """

    name = "catalog"

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        tagger: Optional[LexicalTagger] = None,
        headers: Optional[dict] = None,
    ):
        super().__init__(session=session, timeout=timeout, headers=headers)
        self.tagger = tagger or default_tagger

    @abstractmethod
    def search(self, query: str, limit: int = 50, search_type: str = "all") -> List[ExternalBook]:
        ...

    def _normalize_all(self, records: Iterable[Any], normalize: Callable[[Any], ExternalBook]) -> List[ExternalBook]:
        return self._parse_all(records, normalize)
