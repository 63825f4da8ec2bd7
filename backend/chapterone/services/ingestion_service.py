"""
Batch ingestion: catalog search results become stored books, Reddit posts and
templated prompts become discussion threads.

Every write is idempotent. A book is skipped when one with the same ISBN or
the same (title, author) exists; a thread is skipped when one with the same
title and description (case-insensitive) exists.
"""
import logging
import random
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from chapterone.core.user_helpers import ADMIN_USERNAME, get_or_create_user_by_username
from chapterone.models import Book, Thread, User
from chapterone.schemas.book import ExternalBook
from chapterone.services.catalog.base import CatalogAdapter, CatalogError
from chapterone.services.catalog.reddit import RedditAdapter, RedditPost
from chapterone.services.tagger import LexicalTagger, default_tagger

logger = logging.getLogger(__name__)

MIN_SELFTEXT_LENGTH = 50
MAX_DESCRIPTION_LENGTH = 500
MAX_CANDIDATE_TITLES = 3
MAX_GENERATED_TAGS = 5

QUOTED_TEXT = re.compile(r'"([^"]+)"|\'([^\']+)\'')
BOOK_MENTION = re.compile(r'"([^"]+)"\s+by\s+([^,.]+)')

DISCUSSION_TEMPLATES = (
    (
        "What did you think about {book}?",
        "I just finished reading {book} by {author} and I'm curious what others thought. "
        "What were your favorite moments? Did you like the ending?",
    ),
    (
        "Book Club: {book} - Discussion Thread",
        "This month we're reading {book} by {author}. Share your thoughts, questions, "
        "and observations about this book.",
    ),
    (
        "Looking for books similar to {book}",
        "I really enjoyed {book} by {author} and I'm looking for similar books with {themes}. "
        "Any recommendations?",
    ),
    (
        "Character Analysis: {book}",
        "Let's discuss the character development in {book} by {author}. "
        "Which characters did you connect with the most?",
    ),
)


@dataclass
class BookMention:
    title: str
    author: str


# ----------------------------
# Books
# ----------------------------
def find_existing_book(db: Session, title: str, author: str, isbn: Optional[str] = None) -> Optional[Book]:
    conditions = [(Book.title == title) & (Book.author == author)]
    if isbn:
        conditions.append(Book.isbn == isbn)
    return db.query(Book).filter(or_(*conditions)).first()


def save_external_book(db: Session, record: ExternalBook) -> Optional[Book]:
    """Persist one catalog record; returns None when the book is already stored."""
    if find_existing_book(db, record.title, record.author, record.isbn):
        return None

    book = Book(
        title=record.title,
        author=record.author,
        isbn=record.isbn or None,
        published_year=record.published_year or None,
        cover_image=record.cover_image,
        rating=record.rating,
        description=record.description,
        page_count=record.page_count,
        pace=record.pace,
        tone=record.tone,
        themes=record.themes,
        best_for=record.best_for,
        categories=record.categories,
        professions=record.professions,
    )
    db.add(book)
    db.commit()
    db.refresh(book)
    return book


def ingest_books(
    db: Session,
    adapter: CatalogAdapter,
    queries: Iterable[str],
    limit: int = 50,
    search_type: str = "all",
) -> List[Book]:
    """Search ``adapter`` for each query and store every result not already present."""
    created: List[Book] = []
    for query in queries:
        try:
            records = adapter.search(query, limit, search_type)
        except CatalogError as e:
            logger.warning("Skipping query %r: %s", query, e)
            continue

        saved = [book for book in (save_external_book(db, record) for record in records) if book]
        logger.info("Query %r: %d result(s), %d new book(s)", query, len(records), len(saved))
        created.extend(saved)
    return created


# ----------------------------
# Threads
# ----------------------------
def extract_book_mentions(text: str) -> List[BookMention]:
    """Find ``"Title" by Author`` mentions."""
    return [
        BookMention(title=match.group(1), author=match.group(2).strip())
        for match in BOOK_MENTION.finditer(text or "")
    ]


def extract_book_titles(db: Session, text: str) -> List[str]:
    """
    Quoted strings (4 to 99 characters) that look like book titles.

    Returns the stored titles that match a candidate case-insensitively,
    followed by up to three candidates as written.
    """
    candidates = [
        match.group(1) or match.group(2)
        for match in QUOTED_TEXT.finditer(text or "")
    ]
    candidates = [title for title in candidates if 3 < len(title) < 100]
    if not candidates:
        return []

    lowered = {title.lower() for title in candidates}
    existing = [
        title for (title,) in db.query(Book.title).filter(func.lower(Book.title).in_(sorted(lowered))).all()
    ]

    titles: List[str] = []
    for title in existing + candidates[:MAX_CANDIDATE_TITLES]:
        if title not in titles:
            titles.append(title)
    return titles


def find_existing_thread(db: Session, title: str, description: str) -> Optional[Thread]:
    return (
        db.query(Thread)
        .filter(
            func.lower(Thread.title) == title.lower(),
            func.lower(Thread.description) == description.lower(),
        )
        .first()
    )


def save_thread(
    db: Session,
    title: str,
    description: str,
    tags: Sequence[str],
    creator: User,
    upvotes: int = 0,
    comments: int = 0,
    related_titles: Sequence[str] = (),
    books: Sequence[Book] = (),
    source: Optional[str] = None,
    source_id: Optional[str] = None,
) -> Optional[Thread]:
    """Store a thread unless an identical one exists; related titles are linked only when stored exactly."""
    if find_existing_thread(db, title, description):
        return None

    linked = list(books)
    if related_titles:
        linked.extend(db.query(Book).filter(Book.title.in_(list(related_titles))).all())

    thread = Thread(
        title=title,
        description=description,
        tags=list(tags),
        upvotes=max(upvotes, 0),
        comments=max(comments, 0),
        created_by=creator,
        source=source,
        source_id=source_id,
    )
    thread.books = list({book.id: book for book in linked}.values())
    db.add(thread)
    db.commit()
    db.refresh(thread)
    return thread


def _thread_from_post(
    db: Session,
    post: RedditPost,
    subreddit: str,
    tagger: LexicalTagger,
) -> Optional[Thread]:
    text = f"{post.title} {post.selftext}"
    themes = tagger.themes(text=text)

    related = extract_book_titles(db, text)
    for mention in extract_book_mentions(text):
        if mention.title not in related:
            related.append(mention.title)

    return save_thread(
        db,
        title=post.title,
        description=post.selftext[:MAX_DESCRIPTION_LENGTH],
        tags=themes or [subreddit],
        creator=get_or_create_user_by_username(db, post.author),
        upvotes=post.ups,
        comments=post.num_comments,
        related_titles=related,
        source="reddit",
        source_id=post.id,
    )


def fetch_threads_from_reddit(
    db: Session,
    reddit: RedditAdapter,
    subreddit: str,
    limit: int = 20,
    tagger: LexicalTagger = default_tagger,
) -> List[Thread]:
    """
    Turn a subreddit's top posts of the month into threads.

    Link and image posts (selftext under 50 characters) are skipped. A failed
    fetch is logged and yields no threads.
    """
    try:
        posts = reddit.top_posts(subreddit, limit)
    except CatalogError as e:
        logger.warning("Could not fetch threads from r/%s: %s", subreddit, e)
        return []

    threads: List[Thread] = []
    for post in posts:
        if len(post.selftext or "") < MIN_SELFTEXT_LENGTH:
            continue
        thread = _thread_from_post(db, post, subreddit, tagger)
        if thread:
            threads.append(thread)

    logger.info("r/%s: %d post(s), %d new thread(s)", subreddit, len(posts), len(threads))
    return threads


def generate_discussion_threads(db: Session, limit: int = 10, rng: Optional[random.Random] = None) -> List[Thread]:
    """One templated discussion thread for each of the highest-rated books."""
    rng = rng or random.Random()
    books = (
        db.query(Book)
        .filter(Book.rating.isnot(None))
        .order_by(Book.rating.desc(), Book.title.asc())
        .limit(limit)
        .all()
    )
    if not books:
        return []

    admin = get_or_create_user_by_username(db, ADMIN_USERNAME)
    threads: List[Thread] = []
    for book in books:
        title_template, description_template = rng.choice(DISCUSSION_TEMPLATES)
        values = {
            "book": book.title,
            "author": book.author,
            "themes": ", ".join(book.themes or []) or "these themes",
        }
        thread = save_thread(
            db,
            title=title_template.format(**values),
            description=description_template.format(**values),
            tags=[*(book.themes or []), *(book.categories or [])][:MAX_GENERATED_TAGS],
            creator=admin,
            upvotes=rng.randint(5, 54),
            comments=rng.randint(1, 20),
            books=[book],
        )
        if thread:
            threads.append(thread)
    return threads
