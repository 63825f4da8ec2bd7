from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
from chapterone.schemas.book import BookResponse


class ThreadResponse(BaseModel):
    id: str
    title: str
    description: str
    upvotes: int
    comments: int
    tags: list[str]
    source: Optional[str] = None
    created_by_id: Optional[str] = None
    created_by_username: Optional[str] = None
    books: list[BookResponse] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ThreadCreate(BaseModel):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    tags: Optional[list[str]] = None
    created_by_id: Optional[str] = None
    book_ids: Optional[list[str]] = None


class ThreadUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = Field(default=None, min_length=1)
    tags: Optional[list[str]] = None

    @field_validator("title", "description")
    @classmethod
    def reject_null(cls, value):
        # Omit the field to leave it unchanged; the columns are NOT NULL.
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class ThreadBooksRequest(BaseModel):
    book_ids: list[str] = Field(min_length=1)
