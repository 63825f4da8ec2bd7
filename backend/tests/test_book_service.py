"""Tests for book_service against the test database."""
from uuid import uuid4

import pytest
from sqlalchemy.orm import Session

from chapterone.models import Book, Pace, Thread
from chapterone.schemas.book import BookCreate, BookUpdate, ExternalBook
from chapterone.services import book_service
from chapterone.services.catalog.base import CatalogAdapter, ProviderUnavailable
from chapterone.services.search_router import SearchType


class FixedAdapter(CatalogAdapter):
    name = "fixed"

    def __init__(self, results=None, error=None):
        super().__init__()
        self.results = results or []
        self.error = error
        self.queries = []

    def search(self, query, limit=50, search_type="all"):
        self.queries.append((query, limit, search_type))
        if self.error:
            raise self.error
        return list(self.results)


def _add(db: Session, title, author, **kwargs) -> Book:
    book = Book(title=title, author=author, **kwargs)
    db.add(book)
    db.flush()
    return book


@pytest.fixture
def catalogue(db: Session):
    return {
        "dune": _add(
            db, "Dune", "Frank Herbert",
            pace=Pace.SLOW, tone=["Serious"], themes=["Science Fiction", "Politics"],
            categories=["Fiction"], professions=["Leadership"], rating=4.5,
        ),
        "emma": _add(
            db, "Emma", "Jane Austen",
            pace=Pace.MODERATE, tone=["Humorous"], themes=["Love"], categories=["Classics"],
        ),
        "lean": _add(
            db, "The Lean Startup", "Eric Ries",
            pace=Pace.FAST, themes=["Business"], categories=["Business"],
            professions=["Entrepreneurship"],
        ),
    }


def test_list_books_orders_by_title(db, catalogue):
    assert [b.title for b in book_service.list_books(db)] == ["Dune", "Emma", "The Lean Startup"]


def test_list_books_filters(db, catalogue):
    assert [b.title for b in book_service.list_books(db, {"pace": "Slow"})] == ["Dune"]
    assert [b.title for b in book_service.list_books(db, {"themes": ["Love", "Business"]})] == [
        "Emma", "The Lean Startup",
    ]
    assert [b.title for b in book_service.list_books(db, {"categories": ["Fiction"], "professions": ["Leadership"]})] == ["Dune"]
    assert book_service.list_books(db, {"categories": ["Poetry"]}) == []


def test_get_book_with_unknown_or_malformed_id(db, catalogue):
    assert book_service.get_book(db, catalogue["dune"].id).title == "Dune"
    assert book_service.get_book(db, str(catalogue["dune"].id)).title == "Dune"
    assert book_service.get_book(db, uuid4()) is None
    assert book_service.get_book(db, "not-a-uuid") is None


def test_search_rejects_empty_queries(db):
    with pytest.raises(ValueError):
        book_service.search_books(db, "   ")
    with pytest.raises(ValueError):
        book_service.search_books(db, None)


def test_local_search_by_facet(db, catalogue):
    assert [b.title for b in book_service.search_books(db, "austen", search_type="author")] == ["Emma"]
    assert [b.title for b in book_service.search_books(db, "deep dive", search_type="readingStyle")] == ["Dune"]
    assert [b.title for b in book_service.search_books(db, "entrepreneur", search_type=SearchType.PROFESSION)] == [
        "The Lean Startup",
    ]


def test_external_search_marks_and_dedups(db, catalogue):
    adapter = FixedAdapter([
        ExternalBook(title="Dune", author="Frank Herbert", source="fixed"),
        ExternalBook(title="Dune Messiah", author="Frank Herbert", source="fixed"),
    ])

    results = book_service.search_books(
        db, "dune", fetch_external=True, search_type="title", limit=10, adapters={"fixed": adapter},
    )

    assert [(b.title, b.is_external) for b in results] == [("Dune", False), ("Dune Messiah", True)]
    # adapters receive the plain search type string
    assert adapter.queries == [("dune", 10, "title")]


def test_external_search_degrades_to_local_results(db, catalogue):
    adapter = FixedAdapter(error=ProviderUnavailable("fixed", "down"))

    results = book_service.search_books(db, "dune", fetch_external=True, adapters=[adapter])

    assert [b.title for b in results] == ["Dune"]


def test_enrichment_merges_without_touching_the_row(db, catalogue):
    dune = catalogue["dune"]
    adapter = FixedAdapter([
        ExternalBook(
            title="Dune", author="Frank Herbert", source="fixed",
            description="A desert planet", page_count=688, published_year="1965",
        ),
    ])

    enriched = book_service.get_book_enriched(db, dune.id, adapter)

    assert enriched.description == "A desert planet"
    assert enriched.page_count == 688
    assert enriched.published_year == "1965"
    assert enriched.themes == ["Science Fiction", "Politics"]
    assert adapter.queries == [("Dune Frank Herbert", 1, "all")]
    db.refresh(dune)
    assert dune.description is None


def test_enrichment_falls_back_to_local_data(db, catalogue):
    adapter = FixedAdapter(error=ProviderUnavailable("fixed", "timed out"))
    enriched = book_service.get_book_enriched(db, catalogue["emma"].id, adapter)
    assert enriched.title == "Emma"
    assert enriched.description is None
    assert book_service.get_book_enriched(db, uuid4(), adapter) is None


def test_create_book_tags_from_description(db):
    book = book_service.create_book(db, BookCreate(
        title="Gone Girl",
        author="Gillian Flynn",
        description="A dark and suspenseful thriller about a marriage",
        page_count=432,
        themes=["Marriage"],
    ))

    assert book.id is not None
    assert book.pace == Pace.MODERATE
    assert {"Dark", "Suspenseful"} <= set(book.tone)
    # explicit values win over derived ones
    assert book.themes == ["Marriage"]


def test_create_book_without_text_leaves_tags_empty(db):
    book = book_service.create_book(db, BookCreate(title="Blank", author="Nobody"))
    assert book.pace is None
    assert book.tone is None


def test_update_and_delete(db, catalogue):
    emma = catalogue["emma"]

    updated = book_service.update_book(db, emma.id, BookUpdate(rating=4.1, pace=Pace.SLOW))
    assert updated.rating == 4.1
    assert updated.pace == Pace.SLOW
    assert updated.title == "Emma"

    assert book_service.update_book(db, uuid4(), BookUpdate(rating=1.0)) is None
    assert book_service.delete_book(db, emma.id) is True
    assert book_service.get_book(db, emma.id) is None
    assert book_service.delete_book(db, emma.id) is False


def test_filter_options(db, catalogue):
    options = book_service.get_filter_options(db)

    assert options.categories == ["Business", "Classics", "Fiction"]
    assert options.paces == ["Fast", "Moderate", "Slow"]
    assert options.professions == ["Entrepreneurship", "Leadership"]
    assert "Science Fiction" in options.themes


def test_books_by_thread(db, catalogue):
    thread = Thread(title="Desert planets", description="Sand everywhere", upvotes=0, comments=0)
    thread.books = [catalogue["dune"]]
    db.add(thread)
    db.flush()

    assert [b.title for b in book_service.get_books_by_thread(db, thread.id)] == ["Dune"]
    assert book_service.get_books_by_thread(db, uuid4()) is None
