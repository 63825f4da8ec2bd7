"""
Reddit listing adapter.

Reddit is a thread source rather than a book source: it yields posts and
comments, which the ingestion service turns into discussion threads.
"""
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from chapterone.services.catalog.base import (
    MalformedProviderResponse,
    ProviderClient,
    ProviderUnavailable,
)

logger = logging.getLogger(__name__)

REDDIT_BASE_URL = "https://www.reddit.com/r"
DEFAULT_USER_AGENT = "ChapterOne/1.0.0"


@dataclass
class RedditPost:
    id: str
    title: str
    selftext: str = ""
    author: Optional[str] = None
    ups: int = 0
    num_comments: int = 0
    created_utc: Optional[float] = None
    url: Optional[str] = None


@dataclass
class RedditComment:
    id: str
    body: str = ""
    author: Optional[str] = None
    ups: int = 0
    created_utc: Optional[float] = None


def _children(listing: Any) -> list:
    data = listing.get("data") if isinstance(listing, dict) else None
    children = data.get("children") if isinstance(data, dict) else None
    if not isinstance(children, list):
        raise ProviderUnavailable(RedditAdapter.name, "listing has no data.children")
    return children


def _int(value: Any) -> int:
    return value if isinstance(value, int) and value >= 0 else 0


class RedditAdapter(ProviderClient):
    name = "reddit"

    def __init__(self, *args, user_agent: str = DEFAULT_USER_AGENT, **kwargs):
        kwargs.setdefault("headers", {"User-Agent": user_agent, "Accept": "application/json"})
        super().__init__(*args, **kwargs)

    def _post(self, child: Any) -> RedditPost:
        data = child.get("data") if isinstance(child, dict) else None
        if not isinstance(data, dict) or not data.get("id") or not data.get("title"):
            raise MalformedProviderResponse(self.name, "post has no id or title")
        return RedditPost(
            id=data["id"],
            title=data["title"],
            selftext=data.get("selftext") or "",
            author=data.get("author"),
            ups=_int(data.get("ups")),
            num_comments=_int(data.get("num_comments")),
            created_utc=data.get("created_utc"),
            url=data.get("url"),
        )

    def _comment(self, child: Any) -> RedditComment:
        data = child.get("data") if isinstance(child, dict) else None
        if not isinstance(data, dict) or not data.get("id"):
            raise MalformedProviderResponse(self.name, "comment has no id")
        return RedditComment(
            id=data["id"],
            body=data.get("body") or "",
            author=data.get("author"),
            ups=_int(data.get("ups")),
            created_utc=data.get("created_utc"),
        )

    def top_posts(self, subreddit: str, limit: int = 100, period: str = "month") -> List[RedditPost]:
        listing = self._get_json(
            f"{REDDIT_BASE_URL}/{subreddit}/top.json",
            params={"limit": limit, "t": period},
        )
        posts = self._parse_all(_children(listing), self._post)
        logger.info("Fetched %d post(s) from r/%s", len(posts), subreddit)
        return posts

    def comments(self, subreddit: str, post_id: str) -> List[RedditComment]:
        # The response is [post listing, comment listing]
        payload = self._get_json(f"{REDDIT_BASE_URL}/{subreddit}/comments/{post_id}.json")
        if not isinstance(payload, list) or len(payload) < 2:
            raise ProviderUnavailable(self.name, f"comments response for {post_id} is not a two-listing array")
        return self._parse_all(_children(payload[1]), self._comment)
