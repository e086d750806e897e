"""
Public content endpoints.

Every path below a web log's URL base lands on `serve_content`, which answers
the home page, post lists (home, category and tag archives), and otherwise
defers to the permalink resolver for posts, pages, feeds and redirects.
"""

import re
from typing import Any, Optional, Sequence

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse, Response

from weblog.api.deps import get_caches, get_data, get_web_log, request_path
from weblog.core.caches import WebLogCaches
from weblog.core.config import settings
from weblog.data.base import WebLogData
from weblog.models import DisplayCategory, Page, Post, WebLog
from weblog.schemas import PageLinkOut, PageOut, PostListOut, PostOut
from weblog.services.categories import find_by_slug
from weblog.services.feed_builder import generate_feed
from weblog.services.feed_posts import PostPage, page_of_posts, select_feed_posts
from weblog.services.feed_types import (
    CategoryFeed,
    FeedType,
    StandardFeed,
    TagFeed,
    canonical_tag,
    tag_from_url,
)
from weblog.services.resolver import (
    NotFound,
    RedirectTo,
    ServeFeed,
    ServePage,
    ServePost,
    normalize_path,
    resolve,
)

router = APIRouter()
logger = structlog.get_logger(__name__)

_HOME_PAGE = re.compile(r"^/page/(?P<page>\d+)/?$")
_ARCHIVE = re.compile(r"^/(?P<kind>category|tag)/(?P<value>.+?)(?:/page/(?P<page>\d+))?/?$")


def not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")


def redirect(web_log: WebLog, permalink: str) -> RedirectResponse:
    return RedirectResponse(web_log.relative_url(permalink), status_code=status.HTTP_301_MOVED_PERMANENTLY)


def post_out(web_log: WebLog, post: Post, authors: dict) -> PostOut:
    return PostOut(
        id=post.id,
        title=post.title,
        permalink=post.permalink,
        url=web_log.relative_url(post.permalink),
        author=authors.get(post.author_id),
        published_on=post.published_on,
        updated_on=post.updated_on,
        text=post.text,
        category_ids=post.category_ids,
        tags=post.tags,
        episode=post.episode,
        metadata=post.metadata_,
    )


def page_out(web_log: WebLog, page: Page) -> PageOut:
    return PageOut(
        id=page.id,
        title=page.title,
        permalink=page.permalink,
        url=web_log.relative_url(page.permalink),
        updated_on=page.updated_on,
        text=page.text,
        metadata=page.metadata_,
    )


async def post_list(
    data: WebLogData,
    caches: WebLogCaches,
    web_log: WebLog,
    page: PostPage,
    base: str,
    subtitle: Optional[str] = None,
) -> PostListOut:
    """A page of posts with links to its neighbours (`base` is the list's own permalink)."""
    authors = await data.find_user_names(web_log.id, sorted({post.author_id for post in page.posts}))
    newer_link = None
    if page.has_newer:
        newer_link = web_log.relative_url(base if page.page_nbr == 2 else f"{base}page/{page.page_nbr - 1}/")
    older_link = web_log.relative_url(f"{base}page/{page.page_nbr + 1}/") if page.has_older else None
    return PostListOut(
        web_log=web_log.name,
        subtitle=subtitle,
        page_nbr=page.page_nbr,
        posts=[post_out(web_log, post, authors) for post in page.posts],
        newer_link=newer_link,
        older_link=older_link,
        pages=[PageLinkOut(title=p.title, permalink=p.permalink) for p in caches.page_lists.get(web_log.id)],
    )


async def fetch_page(
    data: WebLogData,
    web_log: WebLog,
    feed_type: FeedType,
    page_nbr: int,
    categories: Sequence[DisplayCategory],
) -> PostPage:
    if page_nbr < 1:
        raise not_found()
    return await page_of_posts(data, web_log, feed_type, page_nbr, categories)


async def home(data: WebLogData, caches: WebLogCaches, web_log: WebLog, page_nbr: int) -> Any:
    if web_log.default_page != "posts" and page_nbr == 1:
        page = await data.find_page_by_id(web_log.default_page, web_log.id)
        if page is None:
            raise not_found()
        return page_out(web_log, page)
    posts = await fetch_page(data, web_log, StandardFeed(""), page_nbr, caches.categories.get(web_log.id))
    if not posts.posts and page_nbr > 1:
        raise not_found()
    return await post_list(data, caches, web_log, posts, "", web_log.subtitle)


async def category_archive(
    data: WebLogData, caches: WebLogCaches, web_log: WebLog, slug: str, page_nbr: int
) -> Any:
    categories = caches.categories.get(web_log.id)
    cat = find_by_slug(categories, slug)
    if cat is None:
        raise not_found()
    posts = await fetch_page(data, web_log, CategoryFeed(cat.id, f"/category/{slug}/"), page_nbr, categories)
    if not posts.posts:
        raise not_found()
    return await post_list(data, caches, web_log, posts, f"category/{slug}/", cat.description)


async def tag_archive(
    data: WebLogData, caches: WebLogCaches, web_log: WebLog, url_value: str, page_nbr: int
) -> Any:
    """
    Posts with a tag.

    A tag URL with hyphens that finds nothing is retried with spaces in their
    place (links produced by older versions); a hit redirects to that form.
    """
    categories = caches.categories.get(web_log.id)
    tag = await canonical_tag(data, web_log, tag_from_url(url_value))
    posts = await fetch_page(data, web_log, TagFeed(tag, f"/tag/{url_value}/"), page_nbr, categories)
    if posts.posts:
        return await post_list(data, caches, web_log, posts, f"tag/{url_value}/", f'Posts tagged "{tag}"')

    if "-" in tag and page_nbr == 1:
        spaced = tag.replace("-", " ")
        retry = await fetch_page(data, web_log, TagFeed(spaced, f"/tag/{url_value}/"), 1, categories)
        if retry.posts:
            logger.debug("Redirecting hyphenated tag", tag=tag, spaced=spaced)
            return redirect(web_log, f"tag/{spaced.replace(' ', '+')}/")
    raise not_found()


async def feed(data: WebLogData, caches: WebLogCaches, web_log: WebLog, action: ServeFeed) -> Response:
    categories = caches.categories.get(web_log.id)
    posts = await select_feed_posts(data, web_log, action.feed_type, action.item_count, categories)
    if not posts:
        raise not_found()
    xml = await generate_feed(data, web_log, action.feed_type, posts, categories, settings.GENERATOR)
    return Response(content=xml, media_type="text/xml")


@router.get("/{path:path}", response_model=None)
async def serve_content(
    request: Request,
    web_log: WebLog = Depends(get_web_log),
    data: WebLogData = Depends(get_data),
    caches: WebLogCaches = Depends(get_caches),
) -> Any:
    path = normalize_path(web_log, request_path(request))
    feed_suffix = f"/{web_log.rss.feed_name}"

    if path == "/":
        return await home(data, caches, web_log, 1)

    found = _HOME_PAGE.match(path)
    if found:
        return await home(data, caches, web_log, int(found.group("page")))

    found = _ARCHIVE.match(path)
    if found and not path.endswith(feed_suffix):
        page_nbr = int(found.group("page") or 1)
        if found.group("kind") == "category":
            return await category_archive(data, caches, web_log, found.group("value"), page_nbr)
        return await tag_archive(data, caches, web_log, found.group("value"), page_nbr)

    action = await resolve(web_log, request_path(request), data, caches.categories.get(web_log.id))
    match action:
        case ServePost(post=post):
            authors = await data.find_user_names(web_log.id, [post.author_id])
            return post_out(web_log, post, authors)
        case ServePage(page=page):
            return page_out(web_log, page)
        case ServeFeed():
            return await feed(data, caches, web_log, action)
        case RedirectTo(permalink=permalink):
            return redirect(web_log, permalink)
        case NotFound():
            raise not_found()
