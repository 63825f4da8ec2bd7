from fastapi import APIRouter, Depends, Query, HTTPException, Response, status
from sqlalchemy.orm import Session
from typing import Optional, List, Dict, Iterator
import logging
import requests
from chapterone.database import get_db
from chapterone.core.config import settings
from chapterone.models import Pace
from chapterone.schemas.book import BookResponse, BookCreate, BookUpdate, FilterOptions, to_book_response
from chapterone.services import book_service
from chapterone.services.catalog.base import CatalogAdapter
from chapterone.services.catalog.open_library import OpenLibraryAdapter
from chapterone.services.catalog.registry import build_adapters
from chapterone.services.search_router import parse_search_type

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/books", tags=["books"])


def get_catalog_adapters(
    external: bool = Query(False, description="Also search external catalogs"),
) -> Iterator[Dict[str, CatalogAdapter]]:
    """Adapters used when a search asks for external results, sharing one session per request."""
    if not external:
        yield {}
        return
    session = requests.Session()
    try:
        yield build_adapters(settings, session=session)
    finally:
        session.close()


def get_enrichment_adapter(
    external: bool = Query(False, description="Merge in data from Open Library"),
) -> Iterator[Optional[CatalogAdapter]]:
    if not external:
        yield None
        return
    session = requests.Session()
    try:
        yield OpenLibraryAdapter(session=session, timeout=settings.CATALOG_TIMEOUT_SECONDS)
    finally:
        session.close()


@router.get("", response_model=List[BookResponse])
def get_books(
    categories: Optional[List[str]] = Query(None, description="Books sharing any of these categories"),
    themes: Optional[List[str]] = Query(None, description="Books sharing any of these themes"),
    professions: Optional[List[str]] = Query(None, description="Books sharing any of these professions"),
    pace: Optional[str] = Query(None, description="Fast, Moderate or Slow"),
    db: Session = Depends(get_db),
):
    """List books ordered by title, with optional filters."""
    if pace and pace not in {p.value for p in Pace}:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid pace: {pace}")

    books = book_service.list_books(db, {
        "categories": categories,
        "themes": themes,
        "professions": professions,
        "pace": pace,
    })
    logger.info("Fetched %d books", len(books), extra={"pace": pace, "categories": categories, "themes": themes})
    return [to_book_response(book) for book in books]


@router.get("/filters/options", response_model=FilterOptions)
def get_filter_options(db: Session = Depends(get_db)):
    """Distinct categories, themes, paces and professions across the catalogue."""
    return book_service.get_filter_options(db)


@router.get("/search", response_model=List[BookResponse])
def search_books(
    query: Optional[str] = Query(None, description="Search text"),
    q: Optional[str] = Query(None, description="Alias for query"),
    external: bool = Query(False, description="Also search external catalogs"),
    search_type: Optional[str] = Query(None, alias="searchType", description="all, title, author, mood, tone, theme, profession, pace, readingStyle"),
    type_: Optional[str] = Query(None, alias="type", description="Alias for searchType"),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    db: Session = Depends(get_db),
    adapters: Dict[str, CatalogAdapter] = Depends(get_catalog_adapters),
):
    """Search books by facet; external results are marked is_external."""
    text = query or q
    if not text or not text.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Search query is required")

    resolved_type = parse_search_type(search_type or type_)
    try:
        results = book_service.search_books(
            db,
            text,
            fetch_external=external,
            search_type=resolved_type,
            limit=limit,
            adapters=adapters if external else None,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    logger.info("Search returned %d books", len(results), extra={
        "query": text,
        "search_type": resolved_type.value,
        "external": external,
        "limit": limit,
    })
    return [to_book_response(book) for book in results]


@router.get("/{book_id}", response_model=BookResponse)
def get_book(
    book_id: str,
    external: bool = Query(False, description="Merge in data from Open Library"),
    db: Session = Depends(get_db),
    adapter: Optional[CatalogAdapter] = Depends(get_enrichment_adapter),
):
    """Get full details of a specific book."""
    if external:
        enriched = book_service.get_book_enriched(db, book_id, adapter)
        if enriched is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Book not found")
        return enriched

    book = book_service.get_book(db, book_id)
    if not book:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Book not found")
    return to_book_response(book)


@router.post("", response_model=BookResponse, status_code=status.HTTP_201_CREATED)
def create_book(payload: BookCreate, db: Session = Depends(get_db)):
    book = book_service.create_book(db, payload)
    return to_book_response(book)


@router.put("/{book_id}", response_model=BookResponse)
def update_book(book_id: str, payload: BookUpdate, db: Session = Depends(get_db)):
    book = book_service.update_book(db, book_id, payload)
    if not book:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Book not found")
    return to_book_response(book)


@router.delete("/{book_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_book(book_id: str, db: Session = Depends(get_db)):
    if not book_service.delete_book(db, book_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Book not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
