# backend/chapterone/scripts/ingest_threads.py

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from chapterone.core.config import settings
from chapterone.database import SessionLocal
from chapterone.services.catalog.registry import build_reddit_adapter
from chapterone.services.ingestion_service import fetch_threads_from_reddit, generate_discussion_threads

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)

DEFAULT_SUBREDDITS = ["books", "suggestmeabook", "booksuggestions", "literature"]


def run(subreddits: List[str], limit: int = 20, generate: int = 0) -> int:
    """
    Import discussion threads from Reddit, optionally adding templated threads
    for the highest-rated books.

    :return: Number of threads created.
    """
    reddit = build_reddit_adapter(settings)
    db: Session = SessionLocal()
    try:
        created = 0
        for subreddit in subreddits:
            threads = fetch_threads_from_reddit(db, reddit, subreddit, limit=limit)
            logger.info("r/%s: created %d thread(s)", subreddit, len(threads))
            created += len(threads)

        if generate:
            generated = generate_discussion_threads(db, limit=generate)
            logger.info("Generated %d discussion thread(s)", len(generated))
            created += len(generated)

        logger.info("Thread ingestion complete. Created %d thread(s).", created)
        return created
    finally:
        db.close()


def main(argv: Optional[List[str]] = None) -> None:
    import argparse

    parser = argparse.ArgumentParser(
        description="Import discussion threads from Reddit."
    )
    parser.add_argument(
        "subreddits",
        nargs="*",
        help="Subreddits to read (defaults to books, suggestmeabook, booksuggestions, literature).",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=20,
        help="Top posts to read per subreddit.",
    )
    parser.add_argument(
        "--generate",
        type=int,
        default=0,
        help="Also create templated discussion threads for this many top-rated books.",
    )
    args = parser.parse_args(argv)

    run(args.subreddits or DEFAULT_SUBREDDITS, limit=args.limit, generate=args.generate)


if __name__ == "__main__":
    main()
