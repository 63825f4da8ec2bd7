import logging
from typing import Dict, Optional

import requests

from chapterone.core.config import Settings
from chapterone.services.catalog.base import CatalogAdapter
from chapterone.services.catalog.goodreads import GoodreadsAdapter
from chapterone.services.catalog.google_books import GoogleBooksAdapter
from chapterone.services.catalog.open_library import OpenLibraryAdapter
from chapterone.services.catalog.reddit import RedditAdapter
from chapterone.services.catalog.storygraph import StorygraphAdapter

logger = logging.getLogger(__name__)


def build_adapters(settings: Settings, session: Optional[requests.Session] = None) -> Dict[str, CatalogAdapter]:
    """
    Build the enabled book adapters, keyed by provider name, in fan-out order.

    Open Library needs no credentials and is always enabled. Google Books and
    Goodreads are enabled when their key is configured, StoryGraph when
    STORYGRAPH_ENABLED is set.
    """
    session = session or requests.Session()
    timeout = settings.CATALOG_TIMEOUT_SECONDS

    adapters: Dict[str, CatalogAdapter] = {}
    adapters[OpenLibraryAdapter.name] = OpenLibraryAdapter(session=session, timeout=timeout)
    if settings.GOOGLE_BOOKS_API_KEY:
        adapters[GoogleBooksAdapter.name] = GoogleBooksAdapter(
            session=session, timeout=timeout, api_key=settings.GOOGLE_BOOKS_API_KEY
        )
    if settings.GOODREADS_API_KEY:
        adapters[GoodreadsAdapter.name] = GoodreadsAdapter(
            session=session, timeout=timeout, api_key=settings.GOODREADS_API_KEY
        )
    if settings.STORYGRAPH_ENABLED:
        adapters[StorygraphAdapter.name] = StorygraphAdapter(session=session, timeout=timeout)

    logger.info("Catalog adapters enabled: %s", ", ".join(adapters))
    return adapters


def build_reddit_adapter(settings: Settings, session: Optional[requests.Session] = None) -> RedditAdapter:
    return RedditAdapter(
        session=session,
        timeout=settings.CATALOG_TIMEOUT_SECONDS,
        user_agent=settings.REDDIT_USER_AGENT,
    )
