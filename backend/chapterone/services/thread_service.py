"""
Discussion thread operations.

Upvotes are applied with a single ``UPDATE threads SET upvotes = upvotes + 1``
so concurrent requests never lose an increment; nothing in the app decrements
them.
"""
import logging
from typing import Any, Iterable, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, selectinload

from chapterone.models import Book, Thread, User
from chapterone.schemas.thread import ThreadCreate, ThreadResponse, ThreadUpdate
from chapterone.schemas.book import to_book_response
from chapterone.services.book_service import parse_uuid

logger = logging.getLogger(__name__)


def to_thread_response(thread: Thread) -> ThreadResponse:
    return ThreadResponse(
        id=str(thread.id),
        title=thread.title,
        description=thread.description,
        upvotes=thread.upvotes or 0,
        comments=thread.comments or 0,
        tags=list(thread.tags or []),
        source=thread.source,
        created_by_id=str(thread.created_by_id) if thread.created_by_id else None,
        created_by_username=thread.created_by.username if thread.created_by else None,
        books=[to_book_response(book) for book in thread.books],
        created_at=thread.created_at,
        updated_at=thread.updated_at,
    )


def _thread_query(db: Session):
    return db.query(Thread).options(selectinload(Thread.books), selectinload(Thread.created_by))


def _load_books(db: Session, book_ids: Optional[Iterable[Any]]) -> List[Book]:
    ids = [parsed for parsed in (parse_uuid(book_id) for book_id in book_ids or []) if parsed]
    if not ids:
        return []
    return db.query(Book).filter(Book.id.in_(ids)).all()


def list_threads(db: Session, tags: Optional[List[str]] = None, created_by_id: Any = None) -> List[Thread]:
    """Threads newest first, optionally restricted to a creator and to threads sharing any of ``tags``."""
    query = _thread_query(db)
    if created_by_id is not None:
        creator = parse_uuid(created_by_id)
        if creator is None:
            return []
        query = query.filter(Thread.created_by_id == creator)

    threads = query.order_by(Thread.created_at.desc()).all()

    wanted = {tag for tag in tags or [] if tag}
    if wanted:
        threads = [thread for thread in threads if wanted & set(thread.tags or [])]
    return threads


def get_thread(db: Session, thread_id: Any) -> Optional[Thread]:
    parsed = parse_uuid(thread_id)
    if parsed is None:
        return None
    return _thread_query(db).filter(Thread.id == parsed).one_or_none()


def create_thread(db: Session, payload: ThreadCreate) -> Thread:
    """Raises ValueError when created_by_id does not name an existing user."""
    creator_id = None
    if payload.created_by_id:
        creator_id = parse_uuid(payload.created_by_id)
        if creator_id is None or db.get(User, creator_id) is None:
            raise ValueError(f"Unknown user: {payload.created_by_id}")

    thread = Thread(
        title=payload.title,
        description=payload.description,
        tags=list(payload.tags or []),
        created_by_id=creator_id,
        upvotes=0,
        comments=0,
    )
    thread.books = _load_books(db, payload.book_ids)
    db.add(thread)
    db.commit()
    db.refresh(thread)
    logger.info("Created thread '%s' (id=%s, books=%d)", thread.title, thread.id, len(thread.books))
    return thread


def update_thread(db: Session, thread_id: Any, payload: ThreadUpdate) -> Optional[Thread]:
    thread = get_thread(db, thread_id)
    if thread is None:
        return None
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(thread, field, value)
    db.commit()
    db.refresh(thread)
    return thread


def delete_thread(db: Session, thread_id: Any) -> bool:
    thread = get_thread(db, thread_id)
    if thread is None:
        return False
    db.delete(thread)
    db.commit()
    return True


def upvote_thread(db: Session, thread_id: Any) -> Optional[Thread]:
    parsed = parse_uuid(thread_id)
    if parsed is None:
        return None

    updated = (
        db.query(Thread)
        .filter(Thread.id == parsed)
        .update({Thread.upvotes: Thread.upvotes + 1}, synchronize_session=False)
    )
    if not updated:
        return None
    db.commit()

    thread = get_thread(db, parsed)
    db.refresh(thread)
    return thread


def add_books_to_thread(db: Session, thread_id: Any, book_ids: Iterable[Any]) -> Optional[Thread]:
    thread = get_thread(db, thread_id)
    if thread is None:
        return None
    existing = {book.id for book in thread.books}
    for book in _load_books(db, book_ids):
        if book.id not in existing:
            thread.books.append(book)
            existing.add(book.id)
    db.commit()
    db.refresh(thread)
    return thread


def remove_books_from_thread(db: Session, thread_id: Any, book_ids: Iterable[Any]) -> Optional[Thread]:
    thread = get_thread(db, thread_id)
    if thread is None:
        return None
    remove = {parsed for parsed in (parse_uuid(book_id) for book_id in book_ids) if parsed}
    thread.books = [book for book in thread.books if book.id not in remove]
    db.commit()
    db.refresh(thread)
    return thread


def search_threads(db: Session, query: Optional[str]) -> List[Thread]:
    if query is None or not query.strip():
        raise ValueError("Search query is required")
    pattern = f"%{query.strip().lower()}%"
    return (
        _thread_query(db)
        .filter(or_(func.lower(Thread.title).like(pattern), func.lower(Thread.description).like(pattern)))
        .order_by(Thread.created_at.desc())
        .all()
    )


def get_threads_by_user(db: Session, user_id: Any) -> List[Thread]:
    return list_threads(db, created_by_id=user_id)


def get_all_tags(db: Session) -> List[str]:
    tags = set()
    for (thread_tags,) in db.query(Thread.tags).all():
        tags.update(thread_tags or [])
    return sorted(tags)
