from sqlalchemy import Column, String, Integer, Text, DateTime, ForeignKey, Enum as SQLEnum, JSON, ARRAY, Float, Table, Uuid, CheckConstraint
from sqlalchemy.orm import relationship
import uuid
from datetime import datetime
import enum
from chapterone.database import Base


class Pace(str, enum.Enum):
    FAST = "Fast"
    MODERATE = "Moderate"
    SLOW = "Slow"


# Text arrays are native on Postgres; SQLite (dev / tests) stores them as JSON lists
StringList = ARRAY(String).with_variant(JSON(), "sqlite")


thread_books = Table(
    "thread_books",
    Base.metadata,
    Column("thread_id", Uuid, ForeignKey("threads.id", ondelete="CASCADE"), primary_key=True),
    Column("book_id", Uuid, ForeignKey("books.id", ondelete="CASCADE"), primary_key=True),
    Column("created_at", DateTime, default=datetime.utcnow),
)


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    username = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, unique=True, index=True, nullable=True)
    password_hash = Column(String, nullable=True)  # Ingested users (e.g. Reddit authors) have no password
    favorite_genres = Column(StringList, nullable=True)
    favorite_themes = Column(StringList, nullable=True)
    preferred_pace = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    threads = relationship("Thread", back_populates="created_by")


class Book(Base):
    __tablename__ = "books"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String, nullable=False, index=True)
    author = Column(String, nullable=False, index=True)
    isbn = Column(String, nullable=True)
    published_year = Column(String, nullable=True)  # kept as the provider reports it ("1965", "")
    cover_image = Column(String, nullable=True)
    rating = Column(Float, nullable=True)
    description = Column(Text, nullable=True)
    page_count = Column(Integer, nullable=True)
    pace = Column(
        SQLEnum(
            Pace,
            name="pace",
            values_callable=lambda enum: [e.value for e in enum],
        ),
        nullable=True,
    )
    tone = Column(StringList, nullable=True)
    themes = Column(StringList, nullable=True)
    best_for = Column(StringList, nullable=True)
    categories = Column(StringList, nullable=True)
    professions = Column(StringList, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    threads = relationship("Thread", secondary=thread_books, back_populates="books")

    # Rows loaded from the store are never external; catalog DTOs carry is_external=True
    is_external = False


class Thread(Base):
    __tablename__ = "threads"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    upvotes = Column(Integer, nullable=False, default=0)
    comments = Column(Integer, nullable=False, default=0)
    tags = Column(StringList, nullable=True)
    source = Column(String, nullable=True)  # e.g. "reddit"; null for threads created in-app
    source_id = Column(String, nullable=True)
    created_by_id = Column(Uuid, ForeignKey("users.id"), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("upvotes >= 0", name="ck_threads_upvotes_non_negative"),
        CheckConstraint("comments >= 0", name="ck_threads_comments_non_negative"),
    )

    # Relationships
    created_by = relationship("User", back_populates="threads")
    books = relationship("Book", secondary=thread_books, back_populates="threads")
