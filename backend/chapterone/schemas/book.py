from pydantic import BaseModel, Field, field_validator
from typing import Optional, Any
from datetime import datetime
from chapterone.models import Pace


class ExternalBook(BaseModel):
    """A catalog provider record normalized into the book shape. Never persisted by itself."""
    title: str
    author: str = "Unknown"
    isbn: Optional[str] = None
    published_year: Optional[str] = None
    cover_image: Optional[str] = None
    rating: Optional[float] = None
    description: Optional[str] = None
    first_sentence: Optional[str] = None
    page_count: Optional[int] = None
    categories: list[str] = Field(default_factory=list)
    pace: Optional[Pace] = None
    tone: list[str] = Field(default_factory=list)
    themes: list[str] = Field(default_factory=list)
    best_for: list[str] = Field(default_factory=list)
    professions: list[str] = Field(default_factory=list)
    source: str
    external_id: Optional[str] = None
    is_external: bool = True


class BookResponse(BaseModel):
    id: Optional[str] = None  # external results have no local id
    title: str
    author: str
    isbn: Optional[str] = None
    published_year: Optional[str] = None
    cover_image: Optional[str] = None
    rating: Optional[float] = None
    description: Optional[str] = None
    page_count: Optional[int] = None
    pace: Optional[Pace] = None
    tone: Optional[list[str]] = None
    themes: Optional[list[str]] = None
    best_for: Optional[list[str]] = None
    categories: Optional[list[str]] = None
    professions: Optional[list[str]] = None
    is_external: bool = False
    source: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BookCreate(BaseModel):
    title: str = Field(min_length=1)
    author: str = Field(min_length=1)
    isbn: Optional[str] = None
    published_year: Optional[str] = None
    cover_image: Optional[str] = None
    rating: Optional[float] = None
    description: Optional[str] = None
    page_count: Optional[int] = Field(default=None, ge=0)
    pace: Optional[Pace] = None
    tone: Optional[list[str]] = None
    themes: Optional[list[str]] = None
    best_for: Optional[list[str]] = None
    categories: Optional[list[str]] = None
    professions: Optional[list[str]] = None


class BookUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    author: Optional[str] = Field(default=None, min_length=1)
    isbn: Optional[str] = None
    published_year: Optional[str] = None
    cover_image: Optional[str] = None
    rating: Optional[float] = None
    description: Optional[str] = None
    page_count: Optional[int] = Field(default=None, ge=0)
    pace: Optional[Pace] = None
    tone: Optional[list[str]] = None
    themes: Optional[list[str]] = None
    best_for: Optional[list[str]] = None
    categories: Optional[list[str]] = None
    professions: Optional[list[str]] = None

    @field_validator("title", "author")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class FilterOptions(BaseModel):
    categories: list[str]
    themes: list[str]
    paces: list[str]
    professions: list[str]


def to_book_response(book: Any) -> BookResponse:
    """Build a response from either a stored Book row or an ExternalBook."""
    book_id = getattr(book, "id", None)
    return BookResponse(
        id=str(book_id) if book_id is not None else None,
        title=book.title,
        author=book.author,
        isbn=book.isbn,
        published_year=book.published_year,
        cover_image=book.cover_image,
        rating=book.rating,
        description=book.description,
        page_count=book.page_count,
        pace=book.pace,
        tone=book.tone,
        themes=book.themes,
        best_for=book.best_for,
        categories=book.categories,
        professions=book.professions,
        is_external=bool(getattr(book, "is_external", False)),
        source=getattr(book, "source", None),
        created_at=getattr(book, "created_at", None),
        updated_at=getattr(book, "updated_at", None),
    )
