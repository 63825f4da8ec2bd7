# backend/chapterone/scripts/ingest_books.py

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from chapterone.core.config import settings
from chapterone.database import SessionLocal
from chapterone.services.catalog.registry import build_adapters
from chapterone.services.ingestion_service import ingest_books

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)

DEFAULT_QUERIES = [
    "bestselling books",
    "award winning books",
    "classic literature",
    "contemporary fiction",
]


def run(queries: List[str], provider: str = "openlibrary", limit: int = 50, search_type: str = "all") -> int:
    """
    Search one catalog provider for each query and store the books we don't have yet.

    :param queries: Search queries to run.
    :param provider: Adapter name (openlibrary, google_books, goodreads, storygraph).
    :return: Number of books created.
    """
    adapters = build_adapters(settings)
    adapter = adapters.get(provider)
    if adapter is None:
        raise RuntimeError(
            f"Provider '{provider}' is not enabled. Enabled providers: {', '.join(adapters)}. "
            "Set its API key (or STORYGRAPH_ENABLED) in backend/.env"
        )

    db: Session = SessionLocal()
    try:
        logger.info("Ingesting books from %s for %d query(ies)", provider, len(queries))
        created = ingest_books(db, adapter, queries, limit=limit, search_type=search_type)
        logger.info("Ingestion complete. Created %d book(s).", len(created))
        return len(created)
    finally:
        db.close()


def main(argv: Optional[List[str]] = None) -> None:
    import argparse

    parser = argparse.ArgumentParser(
        description="Import books from an external catalog into the local store."
    )
    parser.add_argument(
        "queries",
        nargs="*",
        help="Search queries (defaults to a few broad bestseller/classics queries).",
    )
    parser.add_argument(
        "--provider",
        default="openlibrary",
        help="Catalog provider to search (default: openlibrary).",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=50,
        help="Max results per query.",
    )
    parser.add_argument(
        "--type",
        dest="search_type",
        default="all",
        help="Search type passed to the provider (all, title, author, theme, profession, ...).",
    )
    args = parser.parse_args(argv)

    run(args.queries or DEFAULT_QUERIES, provider=args.provider, limit=args.limit, search_type=args.search_type)


if __name__ == "__main__":
    main()
