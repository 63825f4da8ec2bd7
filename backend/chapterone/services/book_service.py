"""
Book catalogue operations over the local store, optionally widened with
external catalog results.

Lookups that find nothing return ``None`` (or ``False`` for deletes) and leave
the 404 to the router. An empty search query raises ``ValueError`` before
anything is queried or fetched.
"""
import logging
import uuid
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.orm import Session

from chapterone.core.config import settings
from chapterone.models import Book, Pace, Thread
from chapterone.schemas.book import BookCreate, BookResponse, BookUpdate, FilterOptions, to_book_response
from chapterone.services.aggregation import Adapters, aggregate
from chapterone.services.catalog.base import CatalogAdapter, CatalogError
from chapterone.services.catalog.registry import build_adapters
from chapterone.services.search_router import SearchType, parse_search_type, route
from chapterone.services.tagger import LexicalTagger, default_tagger

logger = logging.getLogger(__name__)

LIST_FILTERS = ("categories", "themes", "professions")
TAG_FIELDS = ("pace", "tone", "themes", "best_for", "professions")


def parse_uuid(value: Any) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError):
        return None


def _overlaps(values: Optional[List[str]], wanted: List[str]) -> bool:
    return bool(set(values or []) & set(wanted))


def list_books(db: Session, filters: Optional[Dict[str, Any]] = None) -> List[Book]:
    """
    All books ordered by title.

    ``filters`` may hold lists for categories/themes/professions (a book
    matches when it shares at least one value) and a pace value.
    """
    filters = filters or {}
    query = db.query(Book)

    pace = filters.get("pace")
    if pace:
        query = query.filter(Book.pace == Pace(pace))

    books = query.order_by(Book.title.asc()).all()

    # Array overlap runs in Python so the same code serves Postgres and SQLite
    for field in LIST_FILTERS:
        wanted = [value for value in filters.get(field) or [] if value]
        if wanted:
            books = [book for book in books if _overlaps(getattr(book, field), wanted)]

    return books


def get_book(db: Session, book_id: Any) -> Optional[Book]:
    parsed = parse_uuid(book_id)
    if parsed is None:
        return None
    return db.query(Book).filter(Book.id == parsed).one_or_none()


def get_book_enriched(db: Session, book_id: Any, adapter: CatalogAdapter) -> Optional[BookResponse]:
    """
    The stored book merged with the first external hit for "<title> <author>".

    The stored row is never modified. If the provider fails, the local data is
    returned as is.
    """
    book = get_book(db, book_id)
    if book is None:
        return None

    response = to_book_response(book)
    try:
        hits = adapter.search(f"{book.title} {book.author}", 1)
    except CatalogError as e:
        logger.warning("Enrichment failed for '%s' by %s: %s", book.title, book.author, e)
        return response

    if not hits:
        return response

    enriched = hits[0]
    return response.model_copy(update={
        "published_year": enriched.published_year or book.published_year,
        "description": enriched.description or book.description,
        "page_count": enriched.page_count or book.page_count,
        "themes": enriched.themes or book.themes,
        "tone": enriched.tone or book.tone,
        "pace": enriched.pace or book.pace,
        "best_for": enriched.best_for or book.best_for,
    })


def search_books(
    db: Session,
    query: Optional[str],
    fetch_external: bool = False,
    search_type: Union[str, SearchType, None] = SearchType.ALL,
    limit: Optional[int] = None,
    adapters: Optional[Adapters] = None,
    timeout: Optional[float] = None,
) -> List[Any]:
    """
    Search the local store and, when ``fetch_external`` is set, the external
    catalogs too. External results that exactly match a local (title, author)
    are dropped; provider failures degrade to whatever survived.
    """
    if query is None or not query.strip():
        raise ValueError("Search query is required")

    query = query.strip()
    if not isinstance(search_type, SearchType):
        search_type = parse_search_type(search_type)
    limit = limit or settings.DEFAULT_SEARCH_LIMIT

    local = route(db.query(Book).order_by(Book.title.asc()).all(), query, search_type, limit)
    if not fetch_external:
        return local

    if adapters is None:
        adapters = build_adapters(settings)

    return aggregate(
        local,
        adapters,
        query,
        limit=limit,
        search_type=search_type.value,
        timeout=timeout or settings.AGGREGATION_TIMEOUT_SECONDS,
    )


def _fill_tags(values: Dict[str, Any], tagger: LexicalTagger) -> Dict[str, Any]:
    description = values.get("description")
    page_count = values.get("page_count")
    if not description and not page_count:
        return values

    tags = tagger.tag(text=description, subjects=values.get("categories"), page_count=page_count)
    for field in TAG_FIELDS:
        if values.get(field) is None:
            values[field] = getattr(tags, field)
    return values


def create_book(db: Session, payload: BookCreate, tagger: LexicalTagger = default_tagger) -> Book:
    """Persist a book; tag fields left out of the payload are filled from its description and page count."""
    values = _fill_tags(payload.model_dump(), tagger)
    book = Book(**values)
    db.add(book)
    db.commit()
    db.refresh(book)
    logger.info("Created book '%s' by %s (id=%s)", book.title, book.author, book.id)
    return book


def update_book(db: Session, book_id: Any, payload: BookUpdate) -> Optional[Book]:
    book = get_book(db, book_id)
    if book is None:
        return None

    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(book, field, value)
    db.commit()
    db.refresh(book)
    return book


def delete_book(db: Session, book_id: Any) -> bool:
    book = get_book(db, book_id)
    if book is None:
        return False
    db.delete(book)
    db.commit()
    logger.info("Deleted book id=%s", book_id)
    return True


def get_filter_options(db: Session) -> FilterOptions:
    categories, themes, professions, paces = set(), set(), set(), set()
    for book in db.query(Book).all():
        categories.update(book.categories or [])
        themes.update(book.themes or [])
        professions.update(book.professions or [])
        if book.pace:
            paces.add(Pace(book.pace).value)
    return FilterOptions(
        categories=sorted(categories),
        themes=sorted(themes),
        paces=sorted(paces),
        professions=sorted(professions),
    )


def get_books_by_thread(db: Session, thread_id: Any) -> Optional[List[Book]]:
    parsed = parse_uuid(thread_id)
    if parsed is None:
        return None
    thread = db.query(Thread).filter(Thread.id == parsed).one_or_none()
    if thread is None:
        return None
    return list(thread.books)
