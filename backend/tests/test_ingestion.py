"""Tests for the ingestion service: catalog books and Reddit/template threads."""
import random

import pytest
from sqlalchemy.orm import Session

from chapterone.core.user_helpers import ADMIN_USERNAME
from chapterone.models import Book, Thread
from chapterone.schemas.book import ExternalBook
from chapterone.services import ingestion_service
from chapterone.services.catalog.base import ProviderUnavailable
from chapterone.services.catalog.reddit import RedditPost


LONG_TEXT = "This was an adventure about survival and politics on a desert planet, highly recommended."


class QueryAdapter:
    """Returns canned records per query; a query mapped to an exception raises it."""
    name = "canned"

    def __init__(self, results):
        self.results = results

    def search(self, query, limit=50, search_type="all"):
        value = self.results[query]
        if isinstance(value, Exception):
            raise value
        return value


class FakeReddit:
    name = "reddit"

    def __init__(self, posts=None, error=None):
        self.posts = posts or []
        self.error = error

    def top_posts(self, subreddit, limit=100, period="month"):
        if self.error:
            raise self.error
        return self.posts[:limit]


def _record(title, author, **kwargs):
    return ExternalBook(title=title, author=author, source="canned", **kwargs)


def test_ingest_books_stores_new_records_once(db: Session):
    adapter = QueryAdapter({
        "dune": [_record("Dune", "Frank Herbert", isbn="9780441013593", themes=["Science Fiction"])],
        "emma": [_record("Emma", "Jane Austen", published_year="")],
    })

    created = ingestion_service.ingest_books(db, adapter, ["dune", "emma"])
    again = ingestion_service.ingest_books(db, adapter, ["dune", "emma"])

    assert [b.title for b in created] == ["Dune", "Emma"]
    assert again == []
    assert db.query(Book).count() == 2
    emma = db.query(Book).filter(Book.title == "Emma").one()
    assert emma.published_year is None


def test_isbn_match_counts_as_existing(db: Session):
    db.add(Book(title="Dune (Deluxe Edition)", author="Frank Herbert", isbn="9780441013593"))
    db.flush()

    adapter = QueryAdapter({"dune": [_record("Dune", "Frank Herbert", isbn="9780441013593")]})

    assert ingestion_service.ingest_books(db, adapter, ["dune"]) == []


def test_failed_query_is_skipped(db: Session):
    adapter = QueryAdapter({
        "broken": ProviderUnavailable("canned", "down"),
        "emma": [_record("Emma", "Jane Austen")],
    })

    created = ingestion_service.ingest_books(db, adapter, ["broken", "emma"])

    assert [b.title for b in created] == ["Emma"]


def test_extract_book_mentions():
    mentions = ingestion_service.extract_book_mentions(
        'Loved "Dune" by Frank Herbert, and "Emma" by Jane Austen. Also "Untitled" alone'
    )
    assert [(m.title, m.author) for m in mentions] == [
        ("Dune", "Frank Herbert"),
        ("Emma", "Jane Austen"),
    ]


def test_extract_book_titles_prefers_stored_titles(db: Session):
    db.add(Book(title="Dune", author="Frank Herbert"))
    db.flush()

    titles = ingestion_service.extract_book_titles(
        db, 'Has anyone read "dune" or "The Name of the Wind"? Skip "It" though'
    )

    assert titles == ["Dune", "dune", "The Name of the Wind"]
    assert ingestion_service.extract_book_titles(db, "no quotes here") == []


def test_reddit_posts_become_threads(db: Session):
    dune = Book(title="Dune", author="Frank Herbert")
    db.add(dune)
    db.flush()
    posts = [
        RedditPost(id="p1", title='Just finished "Dune" by Frank Herbert', selftext=LONG_TEXT,
                   author="sandworm", ups=42, num_comments=7),
        RedditPost(id="p2", title="Look at my shelf", selftext="pic", author="shelfie", ups=100),
        RedditPost(id="p3", title="Weekly recommendations", selftext="x" * 60, author="[deleted]", ups=3),
    ]

    threads = ingestion_service.fetch_threads_from_reddit(db, FakeReddit(posts), "books")

    assert [t.title for t in threads] == ['Just finished "Dune" by Frank Herbert', "Weekly recommendations"]
    first, second = threads
    assert first.upvotes == 42
    assert first.comments == 7
    assert first.source == "reddit"
    assert first.source_id == "p1"
    assert first.created_by.username == "sandworm"
    assert [b.title for b in first.books] == ["Dune"]
    assert {"Adventure", "Politics", "Survival"} <= set(first.tags)
    # no theme words: the subreddit becomes the tag
    assert second.tags == ["books"]
    assert second.created_by.username == ADMIN_USERNAME


def test_reddit_ingestion_is_idempotent(db: Session):
    posts = [RedditPost(id="p1", title="Favourite adventure novels?", selftext=LONG_TEXT, author="a")]
    reddit = FakeReddit(posts)

    assert len(ingestion_service.fetch_threads_from_reddit(db, reddit, "books")) == 1
    assert ingestion_service.fetch_threads_from_reddit(db, reddit, "books") == []
    assert db.query(Thread).count() == 1


def test_reddit_failure_yields_no_threads(db: Session):
    reddit = FakeReddit(error=ProviderUnavailable("reddit", "429 Too Many Requests"))
    assert ingestion_service.fetch_threads_from_reddit(db, reddit, "books") == []


def test_generate_discussion_threads(db: Session):
    db.add_all([
        Book(title="Dune", author="Frank Herbert", rating=4.5, themes=["Science Fiction"], categories=["Fiction"]),
        Book(title="Emma", author="Jane Austen", rating=4.0),
        Book(title="Unrated", author="Nobody"),
    ])
    db.flush()

    threads = ingestion_service.generate_discussion_threads(db, limit=10, rng=random.Random(7))

    assert len(threads) == 2
    dune_thread, emma_thread = threads
    assert "Dune" in dune_thread.title
    assert [b.title for b in dune_thread.books] == ["Dune"]
    assert dune_thread.tags == ["Science Fiction", "Fiction"]
    assert emma_thread.tags == []
    for thread in threads:
        assert 5 <= thread.upvotes <= 54
        assert 1 <= thread.comments <= 20
        assert thread.created_by.username == ADMIN_USERNAME

    # the same seed picks the same templates, which are already stored
    assert ingestion_service.generate_discussion_threads(db, limit=10, rng=random.Random(7)) == []


def test_generate_discussion_threads_without_rated_books(db: Session):
    assert ingestion_service.generate_discussion_threads(db) == []


@pytest.mark.parametrize("limit", [1])
def test_generate_discussion_threads_respects_limit(db: Session, limit):
    db.add_all([
        Book(title="A", author="x", rating=3.0),
        Book(title="B", author="y", rating=5.0),
    ])
    db.flush()

    threads = ingestion_service.generate_discussion_threads(db, limit=limit, rng=random.Random(1))

    assert [t.books[0].title for t in threads] == ["B"]
