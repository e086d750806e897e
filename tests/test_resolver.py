"""
Tests for permalink resolution.

Tests cover:
1. Current permalinks of posts and pages
2. Feeds
3. Trailing-slash redirects
4. Prior-permalink redirects
5. Web logs served from a sub-path
"""

import pytest

from weblog.models import WebLog
from weblog.services.categories import build_hierarchy
from weblog.services.feed_types import CategoryFeed, CustomFeedType, StandardFeed, TagFeed
from weblog.services.resolver import (
    NotFound,
    RedirectTo,
    ServeFeed,
    ServePage,
    ServePost,
    normalize_path,
    resolve,
    toggle_trailing_slash,
)


@pytest.fixture
async def categories(data, blog):
    return await build_hierarchy(data, blog.id)


class TestResolve:
    @pytest.mark.asyncio
    async def test_current_permalink_serves_post(self, data, blog, categories):
        action = await resolve(blog, "/2021/post-renamed.html", data, categories)
        assert isinstance(action, ServePost)
        assert action.post.id == "post-rust"

    @pytest.mark.asyncio
    async def test_prior_permalink_redirects(self, data, blog, categories):
        """A post moved from 2021/my-post.html redirects to its new home."""
        action = await resolve(blog, "/2021/my-post.html", data, categories)
        assert action == RedirectTo("2021/post-renamed.html")

    @pytest.mark.asyncio
    async def test_path_is_lower_cased(self, data, blog, categories):
        action = await resolve(blog, "/2021/Post-Renamed.HTML", data, categories)
        assert isinstance(action, ServePost)

    @pytest.mark.asyncio
    async def test_page(self, data, blog, categories):
        action = await resolve(blog, "/about/", data, categories)
        assert isinstance(action, ServePage)
        assert action.page.id == "page-about"

    @pytest.mark.asyncio
    async def test_trailing_slash_added(self, data, blog, categories):
        assert await resolve(blog, "/2021/tech-post", data, categories) == RedirectTo("2021/tech-post/")
        assert await resolve(blog, "/about", data, categories) == RedirectTo("about/")

    @pytest.mark.asyncio
    async def test_trailing_slash_removed(self, data, blog, categories):
        action = await resolve(blog, "/2021/post-renamed.html/", data, categories)
        assert action == RedirectTo("2021/post-renamed.html")

    @pytest.mark.asyncio
    async def test_redirect_target_is_served(self, data, blog, categories):
        """Following a redirect reaches the content in one step."""
        for path in ["/2021/tech-post", "/2021/my-post.html", "/about-me.html"]:
            action = await resolve(blog, path, data, categories)
            assert isinstance(action, RedirectTo)
            followed = await resolve(blog, f"/{action.permalink}", data, categories)
            assert isinstance(followed, (ServePost, ServePage))

    @pytest.mark.asyncio
    async def test_prior_page_permalink(self, data, blog, categories):
        assert await resolve(blog, "/about-me.html", data, categories) == RedirectTo("about/")

    @pytest.mark.asyncio
    async def test_prior_permalink_with_toggled_slash(self, data, blog, categories):
        assert await resolve(blog, "/2021/my-post.html/", data, categories) == RedirectTo("2021/post-renamed.html")

    @pytest.mark.asyncio
    async def test_standard_feed(self, data, blog, categories):
        action = await resolve(blog, "/feed.xml", data, categories)
        assert action == ServeFeed(StandardFeed("/feed.xml"), 10)

    @pytest.mark.asyncio
    async def test_category_feed(self, data, blog, categories):
        action = await resolve(blog, "/category/tech/rust/feed.xml", data, categories)
        assert action == ServeFeed(CategoryFeed("cat-rust", "/category/tech/rust/feed.xml"), 10)

    @pytest.mark.asyncio
    async def test_tag_feed_canonical_tag(self, data, blog, categories):
        """The URL value f-sharp maps to the tag F#."""
        action = await resolve(blog, "/tag/f-sharp/feed.xml", data, categories)
        assert action == ServeFeed(TagFeed("F#", "/tag/f-sharp/feed.xml"), 10)

    @pytest.mark.asyncio
    async def test_custom_feed(self, data, blog, categories):
        action = await resolve(blog, "/podcast.xml", data, categories)
        assert isinstance(action.feed_type, CustomFeedType)
        assert action.item_count == 5

    @pytest.mark.asyncio
    async def test_draft_is_still_resolvable(self, data, blog, categories):
        action = await resolve(blog, "/2021/unfinished.html", data, categories)
        assert isinstance(action, ServePost)

    @pytest.mark.asyncio
    async def test_not_found(self, data, blog, categories):
        assert await resolve(blog, "/nothing-here", data, categories) == NotFound()

    @pytest.mark.asyncio
    async def test_other_web_log_content_not_found(self, data, blog, categories):
        other = WebLog(id="wl-other", name="Other", url_base="http://other")
        assert await resolve(other, "/2021/post-renamed.html", data, []) == NotFound()


class TestSubPath:
    def make_web_log(self):
        return WebLog(id="wl-main", name="Blog", url_base="http://testserver/Blog")

    def test_normalize_strips_sub_path(self):
        web_log = self.make_web_log()
        assert normalize_path(web_log, "/blog/2021/post.html") == "/2021/post.html"
        assert normalize_path(web_log, "/Blog/") == "/"
        assert normalize_path(web_log, "/blog") == ""

    def test_similar_prefix_not_stripped(self):
        assert normalize_path(self.make_web_log(), "/blogger/x") == "/blogger/x"

    @pytest.mark.asyncio
    async def test_root_without_slash_redirects(self, data):
        action = await resolve(self.make_web_log(), "/blog", data, [])
        assert action == RedirectTo("")
        assert self.make_web_log().relative_url(action.permalink) == "/Blog/"


class TestToggleTrailingSlash:
    def test_toggle(self):
        assert toggle_trailing_slash("a/b") == "a/b/"
        assert toggle_trailing_slash("a/b/") == "a/b"
