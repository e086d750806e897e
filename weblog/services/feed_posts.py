"""
Post selection for feeds and archive pages.

Every query asks storage for one more post than it needs; for archive pages
the extra post tells whether an older page exists, and feeds simply drop it.
"""

from dataclasses import dataclass
from typing import List, Sequence

from weblog.data.base import WebLogData
from weblog.models import DisplayCategory, Post, WebLog
from weblog.services.categories import category_ids_for
from weblog.services.feed_types import CategoryFeed, CustomFeedType, FeedType, StandardFeed, TagFeed


@dataclass
class PostPage:
    posts: List[Post]
    page_nbr: int
    has_older: bool

    @property
    def has_newer(self) -> bool:
        return self.page_nbr > 1


async def _fetch(
    data: WebLogData,
    web_log: WebLog,
    feed_type: FeedType,
    page_nbr: int,
    page_size: int,
    categories: Sequence[DisplayCategory],
) -> List[Post]:
    match feed_type:
        case StandardFeed():
            return await data.find_page_of_published_posts(web_log.id, page_nbr, page_size)
        case CategoryFeed(category_id=category_id):
            ids = category_ids_for(categories, category_id)
            return await data.find_page_of_categorized_posts(web_log.id, ids, page_nbr, page_size)
        case TagFeed(tag=tag):
            return await data.find_page_of_tagged_posts(web_log.id, tag, page_nbr, page_size)
        case CustomFeedType(feed=feed):
            if feed.source.kind == "category":
                ids = category_ids_for(categories, feed.source.value)
                return await data.find_page_of_categorized_posts(web_log.id, ids, page_nbr, page_size)
            return await data.find_page_of_tagged_posts(web_log.id, feed.source.value, page_nbr, page_size)
        case _:
            raise TypeError(f"Unknown feed type {feed_type!r}")


async def select_feed_posts(
    data: WebLogData,
    web_log: WebLog,
    feed_type: FeedType,
    item_count: int,
    categories: Sequence[DisplayCategory],
) -> List[Post]:
    """The newest `item_count` published posts belonging in the feed."""
    posts = await _fetch(data, web_log, feed_type, 1, item_count, categories)
    return posts[:item_count]


async def page_of_posts(
    data: WebLogData,
    web_log: WebLog,
    feed_type: FeedType,
    page_nbr: int,
    categories: Sequence[DisplayCategory],
) -> PostPage:
    """One archive page of the posts a feed type selects (page size = posts per page)."""
    page_size = web_log.posts_per_page
    posts = await _fetch(data, web_log, feed_type, page_nbr, page_size, categories)
    return PostPage(posts=posts[:page_size], page_nbr=page_nbr, has_older=len(posts) > page_size)
