"""
Resolve a request path to the content that should answer it.

Resolution order (first match wins):
    1. the web log root without its trailing slash redirects to the root
    2. a post at the exact permalink
    3. a page at the exact permalink
    4. a feed (see feed_types.classify_feed)
    5. a post at the permalink with its trailing slash toggled (redirect)
    6. a page at the permalink with its trailing slash toggled (redirect)
    7. a post that used to live at either form of the permalink (redirect)
    8. a page that used to live at either form of the permalink (redirect)
    9. not found
"""

from dataclasses import dataclass, replace
from typing import Sequence, Union

import structlog

from weblog.data.base import WebLogData
from weblog.models import DisplayCategory, Page, Post, WebLog
from weblog.services.feed_types import FeedType, TagFeed, canonical_tag, classify_feed

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ServePost:
    post: Post


@dataclass(frozen=True)
class ServePage:
    page: Page


@dataclass(frozen=True)
class ServeFeed:
    feed_type: FeedType
    item_count: int


@dataclass(frozen=True)
class RedirectTo:
    """Permanent redirect to a permalink relative to the web log."""

    permalink: str


@dataclass(frozen=True)
class NotFound:
    pass


Action = Union[ServePost, ServePage, ServeFeed, RedirectTo, NotFound]


def normalize_path(web_log: WebLog, request_path: str) -> str:
    """Lower-case the path and remove the web log's sub-path from its front."""
    _, extra = web_log.host_and_path()
    path = request_path.lower()
    extra = extra.lower()
    if extra and (path == extra or path.startswith(f"{extra}/")):
        path = path[len(extra):]
    return path


def toggle_trailing_slash(permalink: str) -> str:
    return permalink[:-1] if permalink.endswith("/") else f"{permalink}/"


async def resolve(
    web_log: WebLog, request_path: str, data: WebLogData, categories: Sequence[DisplayCategory]
) -> Action:
    """
    Decide how to answer a request.

    Args:
        web_log: The web log the request was made to
        request_path: The full request path (including any web log sub-path)
        data: Storage
        categories: The web log's category hierarchy (for category feeds)

    Returns:
        The action to take; RedirectTo permalinks are relative to the web log
    """
    path = normalize_path(web_log, request_path)
    log = logger.bind(web_log_id=web_log.id, path=path)

    if path == "":
        log.debug("Web log root requested without trailing slash")
        return RedirectTo("")

    permalink = path[1:]
    alternate = toggle_trailing_slash(permalink)

    post = await data.find_post_by_permalink(permalink, web_log.id)
    if post is not None:
        log.debug("Found post by permalink", post_id=post.id)
        return ServePost(post)

    page = await data.find_page_by_permalink(permalink, web_log.id)
    if page is not None:
        log.debug("Found page by permalink", page_id=page.id)
        return ServePage(page)

    classified = classify_feed(web_log, path, categories)
    if classified is not None:
        feed_type, item_count = classified
        if isinstance(feed_type, TagFeed):
            feed_type = replace(feed_type, tag=await canonical_tag(data, web_log, feed_type.tag))
        log.debug("Found feed", feed_type=type(feed_type).__name__, item_count=item_count)
        return ServeFeed(feed_type, item_count)

    post = await data.find_post_by_permalink(alternate, web_log.id)
    if post is not None:
        log.debug("Found post by trailing-slash-agnostic permalink", post_id=post.id)
        return RedirectTo(alternate)

    page = await data.find_page_by_permalink(alternate, web_log.id)
    if page is not None:
        log.debug("Found page by trailing-slash-agnostic permalink", page_id=page.id)
        return RedirectTo(alternate)

    current = await data.find_current_post_permalink([permalink, alternate], web_log.id)
    if current is not None:
        log.debug("Found post by prior permalink", current=current)
        return RedirectTo(current)

    current = await data.find_current_page_permalink([permalink, alternate], web_log.id)
    if current is not None:
        log.debug("Found page by prior permalink", current=current)
        return RedirectTo(current)

    log.debug("No content found")
    return NotFound()
