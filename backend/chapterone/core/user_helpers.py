"""
Helper functions for looking up thread creators.
"""
from typing import Optional
from sqlalchemy.orm import Session
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from chapterone.models import User
import logging

logger = logging.getLogger(__name__)

ADMIN_USERNAME = "admin"
ADMIN_EMAIL = "admin@example.com"


def normalize_username(username: Optional[str]) -> str:
    """Reddit reports removed accounts as "[deleted]"; those threads go to the admin user."""
    if not username or not username.strip() or username.strip() == "[deleted]":
        return ADMIN_USERNAME
    return username.strip()


def get_or_create_user_by_username(db: Session, username: Optional[str], email: Optional[str] = None) -> User:
    """
    Get or create the local User row for ``username``.

    Ingested users have no password. Idempotent and safe under concurrent
    ingestion: a unique-constraint race re-fetches the row the other writer
    created.
    """
    username = normalize_username(username)
    if email is None and username == ADMIN_USERNAME:
        email = ADMIN_EMAIL

    user = db.query(User).filter(User.username == username).one_or_none()
    if user:
        return user

    normalized_email = email.lower().strip() if email else None
    if normalized_email:
        # Email must stay unique; drop it rather than fail when it's already taken
        taken = db.query(User).filter(func.lower(User.email) == normalized_email).first()
        if taken:
            logger.warning(
                "Email %s already belongs to user_id=%s; creating %s without an email",
                normalized_email, taken.id, username,
            )
            normalized_email = None

    new_user = User(username=username, email=normalized_email)
    db.add(new_user)
    try:
        db.commit()
        db.refresh(new_user)
    except IntegrityError:
        db.rollback()
        user = db.query(User).filter(User.username == username).one_or_none()
        if user:
            return user
        raise

    logger.info("Created user %s (id=%s)", username, new_user.id)
    return new_user
