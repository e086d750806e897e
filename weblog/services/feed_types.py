"""
Feed types and the classification of request paths into them.

Category and tag feeds are route-scoped: only `/category/{slug}/{feed name}`
and `/tag/{tag}/{feed name}` are recognised, never a bare suffix match.
Custom feeds are matched by suffix in configuration order; the first match
wins, so overlapping custom feed paths should be avoided.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

from weblog.data.base import WebLogData
from weblog.models import CustomFeed, DisplayCategory, WebLog
from weblog.services.categories import find_by_slug

__all__ = [
    "StandardFeed",
    "CategoryFeed",
    "TagFeed",
    "CustomFeedType",
    "FeedType",
    "classify_feed",
    "canonical_tag",
    "tag_from_url",
]


@dataclass(frozen=True)
class StandardFeed:
    path: str


@dataclass(frozen=True)
class CategoryFeed:
    category_id: str
    path: str


@dataclass(frozen=True)
class TagFeed:
    tag: str
    path: str


@dataclass(frozen=True)
class CustomFeedType:
    feed: CustomFeed
    path: str

    @property
    def is_podcast(self) -> bool:
        return self.feed.podcast is not None


FeedType = Union[StandardFeed, CategoryFeed, TagFeed, CustomFeedType]


def _scoped_segment(path: str, prefix: str, feed_name: str) -> Optional[str]:
    """The part of `{prefix}{segment}/{feed_name}` between prefix and feed name."""
    suffix = f"/{feed_name}"
    if not (path.startswith(prefix) and path.endswith(suffix)):
        return None
    segment = path[len(prefix):-len(suffix)]
    return segment or None


def classify_feed(
    web_log: WebLog, path: str, categories: Sequence[DisplayCategory]
) -> Optional[Tuple[FeedType, int]]:
    """
    Determine which feed (if any) a path requests, and how many items it holds.

    Args:
        web_log: The web log being served
        path: Request path relative to the web log, with its leading slash
        categories: The web log's category hierarchy

    Returns:
        (feed type, item count), or None when the path is not a feed
    """
    rss = web_log.rss
    feed_name = rss.feed_name

    if rss.is_feed_enabled and path == f"/{feed_name}":
        return StandardFeed(path), web_log.feed_item_count

    if rss.is_category_enabled:
        slug = _scoped_segment(path, "/category/", feed_name)
        if slug is not None:
            cat = find_by_slug(categories, slug)
            if cat is not None:
                return CategoryFeed(cat.id, path), web_log.feed_item_count

    if rss.is_tag_enabled:
        segment = _scoped_segment(path, "/tag/", feed_name)
        if segment is not None:
            return TagFeed(tag_from_url(segment), path), web_log.feed_item_count

    for feed in rss.custom_feeds:
        if feed.path and path.endswith(feed.path):
            count = feed.podcast.items_in_feed if feed.podcast else web_log.feed_item_count
            return CustomFeedType(feed, path), count

    return None


def tag_from_url(segment: str) -> str:
    """
    The tag named by a `/tag/{segment}/` path segment.

    The server has already percent-decoded the path; only the `+` standing in
    for a space remains to be undone.
    """
    return segment.replace("+", " ")


async def canonical_tag(data: WebLogData, web_log: WebLog, url_value: str) -> str:
    """Recover a tag's text from the value used in its links."""
    mapping = await data.find_tag_map_by_url_value(url_value, web_log.id)
    return mapping.tag if mapping else url_value
