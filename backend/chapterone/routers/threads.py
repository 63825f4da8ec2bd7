from fastapi import APIRouter, Depends, Query, HTTPException, Response, status
from sqlalchemy.orm import Session
from typing import Optional, List
import logging
from chapterone.database import get_db
from chapterone.schemas.book import BookResponse, to_book_response
from chapterone.schemas.thread import ThreadResponse, ThreadCreate, ThreadUpdate, ThreadBooksRequest
from chapterone.services import book_service, thread_service
from chapterone.services.thread_service import to_thread_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/threads", tags=["threads"])


def _not_found():
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Thread not found")


@router.get("", response_model=List[ThreadResponse])
def get_threads(
    tags: Optional[List[str]] = Query(None, description="Threads carrying any of these tags"),
    created_by: Optional[str] = Query(None, description="Creator user id"),
    db: Session = Depends(get_db),
):
    """List threads, newest first."""
    threads = thread_service.list_threads(db, tags=tags, created_by_id=created_by)
    return [to_thread_response(thread) for thread in threads]


@router.get("/search", response_model=List[ThreadResponse])
def search_threads(q: Optional[str] = Query(None), db: Session = Depends(get_db)):
    try:
        threads = thread_service.search_threads(db, q)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return [to_thread_response(thread) for thread in threads]


@router.get("/tags", response_model=List[str])
def get_tags(db: Session = Depends(get_db)):
    return thread_service.get_all_tags(db)


@router.get("/{thread_id}", response_model=ThreadResponse)
def get_thread(thread_id: str, db: Session = Depends(get_db)):
    thread = thread_service.get_thread(db, thread_id)
    if not thread:
        raise _not_found()
    return to_thread_response(thread)


@router.get("/{thread_id}/books", response_model=List[BookResponse])
def get_thread_books(thread_id: str, db: Session = Depends(get_db)):
    books = book_service.get_books_by_thread(db, thread_id)
    if books is None:
        raise _not_found()
    return [to_book_response(book) for book in books]


@router.post("", response_model=ThreadResponse, status_code=status.HTTP_201_CREATED)
def create_thread(payload: ThreadCreate, db: Session = Depends(get_db)):
    try:
        thread = thread_service.create_thread(db, payload)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return to_thread_response(thread)


@router.put("/{thread_id}", response_model=ThreadResponse)
def update_thread(thread_id: str, payload: ThreadUpdate, db: Session = Depends(get_db)):
    thread = thread_service.update_thread(db, thread_id, payload)
    if not thread:
        raise _not_found()
    return to_thread_response(thread)


@router.delete("/{thread_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_thread(thread_id: str, db: Session = Depends(get_db)):
    if not thread_service.delete_thread(db, thread_id):
        raise _not_found()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{thread_id}/upvote", response_model=ThreadResponse)
def upvote_thread(thread_id: str, db: Session = Depends(get_db)):
    thread = thread_service.upvote_thread(db, thread_id)
    if not thread:
        raise _not_found()
    return to_thread_response(thread)


@router.post("/{thread_id}/books", response_model=ThreadResponse)
def add_books(thread_id: str, payload: ThreadBooksRequest, db: Session = Depends(get_db)):
    thread = thread_service.add_books_to_thread(db, thread_id, payload.book_ids)
    if not thread:
        raise _not_found()
    return to_thread_response(thread)


@router.delete("/{thread_id}/books", response_model=ThreadResponse)
def remove_books(thread_id: str, payload: ThreadBooksRequest, db: Session = Depends(get_db)):
    thread = thread_service.remove_books_from_thread(db, thread_id, payload.book_ids)
    if not thread:
        raise _not_found()
    return to_thread_response(thread)
