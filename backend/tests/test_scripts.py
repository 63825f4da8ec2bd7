"""Tests for the ingestion command-line entry points."""
import pytest

from chapterone.scripts import ingest_books, ingest_threads


def test_ingest_books_rejects_disabled_provider():
    with pytest.raises(RuntimeError) as excinfo:
        ingest_books.run(["dune"], provider="no-such-provider")
    assert "openlibrary" in str(excinfo.value)


def test_ingest_books_main_uses_default_queries(monkeypatch):
    calls = []
    monkeypatch.setattr(ingest_books, "run", lambda queries, **kwargs: calls.append((queries, kwargs)))

    ingest_books.main(["--provider", "google_books", "--limit", "5", "--type", "title"])

    assert calls == [(
        ingest_books.DEFAULT_QUERIES,
        {"provider": "google_books", "limit": 5, "search_type": "title"},
    )]


def test_ingest_threads_main(monkeypatch):
    calls = []
    monkeypatch.setattr(ingest_threads, "run", lambda subreddits, **kwargs: calls.append((subreddits, kwargs)))

    ingest_threads.main(["fantasy", "--generate", "3"])

    assert calls == [(["fantasy"], {"limit": 20, "generate": 3})]
