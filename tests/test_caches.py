"""
Tests for the web log caches.
"""

import pytest

from weblog.core.caches import (
    CategoryCache,
    PageListCache,
    TemplateCache,
    ThemeAssetCache,
    WebLogCache,
    WebLogCaches,
)
from weblog.models import DisplayCategory, Theme, ThemeTemplate, WebLog


def web_log(id, url_base):
    return WebLog(id=id, name=id, url_base=url_base)


class TestWebLogCache:
    def test_longest_url_base_wins(self):
        cache = WebLogCache()
        cache.set(web_log("root", "https://example.com"))
        cache.set(web_log("blog", "https://example.com/blog"))

        assert cache.try_get("https://example.com/blog/2021/post.html").id == "blog"
        assert cache.try_get("https://example.com/about/").id == "root"
        assert cache.try_get("https://example.com/blogger").id == "root"
        assert cache.try_get("https://other.example.com/") is None

    def test_set_replaces(self):
        cache = WebLogCache()
        cache.set(web_log("a", "https://a.example.com"))
        cache.set(web_log("a", "https://new-a.example.com"))

        assert len(cache.all()) == 1
        assert cache.get("a").url_base == "https://new-a.example.com"

    def test_remove(self):
        cache = WebLogCache()
        cache.set(web_log("a", "https://a.example.com"))
        cache.remove("a")
        assert cache.get("a") is None

    def test_snapshot_unchanged_by_later_writes(self):
        """A reader holding a snapshot never sees a write land in it."""
        cache = WebLogCache()
        cache.set(web_log("a", "https://a.example.com"))
        snapshot = cache.all()
        cache.set(web_log("b", "https://b.example.com"))

        assert [wl.id for wl in snapshot] == ["a"]
        assert len(cache.all()) == 2


class TestCategoryCache:
    def test_web_logs_independent(self):
        cache = CategoryCache()
        cache.set("wl-1", [DisplayCategory(id="c1", slug="one", name="One")])
        cache.set("wl-2", [DisplayCategory(id="c2", slug="two", name="Two")])
        cache.set("wl-1", [])

        assert cache.get("wl-1") == ()
        assert [c.id for c in cache.get("wl-2")] == ["c2"]
        assert cache.get("unknown") == ()

    @pytest.mark.asyncio
    async def test_update(self, data, blog):
        cache = CategoryCache()
        await cache.update(data, blog.id)
        tech = next(c for c in cache.get(blog.id) if c.slug == "tech")
        assert tech.post_count == 2


class TestPageListCache:
    @pytest.mark.asyncio
    async def test_listed_pages_without_text(self, data, blog):
        cache = PageListCache()
        await cache.update(data, blog.id)

        pages = cache.get(blog.id)
        assert [p.title for p in pages] == ["About"]
        assert pages[0].text == ""
        assert pages[0].permalink == "about/"


class TestTemplateCache:
    def test_resolve_nested_includes(self):
        templates = {"page": '{% include_template "a" %}!', "a": '<a>{% include_template "b" %}</a>', "b": "b"}
        assert TemplateCache.resolve_includes(templates, "page") == "<a>b</a>!"

    def test_missing_include_removed(self):
        assert TemplateCache.resolve_includes({"t": 'x{% include_template "nope" %}y'}, "t") == "xy"

    def test_recursive_include_stops(self):
        text = TemplateCache.resolve_includes({"t": 'x{% include_template "t" %}'}, "t")
        assert text.startswith("xxx")

    @pytest.mark.asyncio
    async def test_get_from_theme(self, data, sample_theme):
        cache = TemplateCache()
        text = await cache.get(data, "default", "layout")
        assert text == "<html><header><nav></nav></header><main></main></html>"
        assert await cache.get(data, "default", "missing") is None
        assert await cache.get(data, "no-theme", "layout") is None

    @pytest.mark.asyncio
    async def test_cached_until_invalidated(self, data, sample_theme, test_session):
        cache = TemplateCache()
        assert await cache.get(data, "default", "nav") == "<nav></nav>"

        sample_theme.templates = [ThemeTemplate(name="nav", text="<nav>new</nav>")]
        test_session.add(sample_theme)
        test_session.commit()

        assert await cache.get(data, "default", "nav") == "<nav></nav>"
        cache.invalidate_theme("default")
        assert await cache.get(data, "default", "nav") == "<nav>new</nav>"


class TestThemeAssetCache:
    @pytest.mark.asyncio
    async def test_fill_and_refresh(self, data, sample_theme):
        cache = ThemeAssetCache()
        await cache.fill(data)
        assert sorted(cache.get("default")) == ["script.js", "style.css"]

        await cache.refresh_theme(data, "default")
        assert len(cache.get("default")) == 2
        assert cache.get("other") == ()


class TestWebLogCaches:
    @pytest.mark.asyncio
    async def test_fill(self, data, blog, sample_theme):
        caches = WebLogCaches()
        await caches.fill(data)

        assert caches.web_logs.try_get("http://testserver/2021/post.html").id == blog.id
        assert len(caches.categories.get(blog.id)) == 3
        assert len(caches.page_lists.get(blog.id)) == 1
        assert caches.stats()["web_logs"] == 1
