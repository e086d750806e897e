"""
Tests for feed classification.

Tests cover:
1. Standard, category, tag and custom feed paths
2. Feeds switched off in the web log's RSS options
3. Item counts (posts per page, RSS override, podcast count)
4. Custom feed ordering and tag canonicalization
"""

import pytest

from weblog.models import CustomFeed, CustomFeedSource, PodcastOptions, RssOptions, WebLog
from weblog.services.categories import order_by_hierarchy
from weblog.models import Category
from weblog.services.feed_types import (
    CategoryFeed,
    CustomFeedType,
    StandardFeed,
    TagFeed,
    canonical_tag,
    classify_feed,
)


def make_web_log(**rss) -> WebLog:
    return WebLog(id="wl", name="Test", url_base="https://example.com", posts_per_page=10, rss=RssOptions(**rss))


CATEGORIES = order_by_hierarchy([
    Category(id="tech", web_log_id="wl", name="Tech", slug="tech"),
    Category(id="rust", web_log_id="wl", name="Rust", slug="rust", parent_id="tech"),
])


class TestStandardFeed:
    def test_standard_feed_uses_posts_per_page(self):
        """/feed.xml is the standard feed, sized by posts per page."""
        result = classify_feed(make_web_log(), "/feed.xml", CATEGORIES)
        assert result == (StandardFeed("/feed.xml"), 10)

    def test_rss_override_count(self):
        result = classify_feed(make_web_log(items_in_feed=25), "/feed.xml", CATEGORIES)
        assert result[1] == 25

    def test_custom_feed_name(self):
        web_log = make_web_log(feed_name="rss.xml")
        assert classify_feed(web_log, "/feed.xml", CATEGORIES) is None
        assert classify_feed(web_log, "/rss.xml", CATEGORIES)[0] == StandardFeed("/rss.xml")

    def test_disabled(self):
        assert classify_feed(make_web_log(is_feed_enabled=False), "/feed.xml", CATEGORIES) is None

    def test_classification_is_pure(self):
        web_log = make_web_log()
        first = classify_feed(web_log, "/category/tech/feed.xml", CATEGORIES)
        second = classify_feed(web_log, "/category/tech/feed.xml", CATEGORIES)
        assert first == second


class TestCategoryFeed:
    def test_nested_category(self):
        result = classify_feed(make_web_log(), "/category/tech/rust/feed.xml", CATEGORIES)
        assert result == (CategoryFeed("rust", "/category/tech/rust/feed.xml"), 10)

    def test_unknown_category(self):
        assert classify_feed(make_web_log(), "/category/cooking/feed.xml", CATEGORIES) is None

    def test_disabled(self):
        web_log = make_web_log(is_category_enabled=False)
        assert classify_feed(web_log, "/category/tech/feed.xml", CATEGORIES) is None

    def test_no_suffix_matching(self):
        """Only /category/{slug}/{feed name} is a category feed."""
        assert classify_feed(make_web_log(), "/posts/category/tech/feed.xml", CATEGORIES) is None


class TestTagFeed:
    def test_tag_is_url_decoded(self):
        result = classify_feed(make_web_log(), "/tag/type+systems/feed.xml", CATEGORIES)
        assert result[0] == TagFeed("type systems", "/tag/type+systems/feed.xml")

    def test_decoded_path_used_as_is(self):
        result = classify_feed(make_web_log(), "/tag/c#/feed.xml", CATEGORIES)
        assert result[0].tag == "c#"

    def test_not_decoded_twice(self):
        result = classify_feed(make_web_log(), "/tag/100%25/feed.xml", CATEGORIES)
        assert result[0].tag == "100%25"

    def test_disabled(self):
        assert classify_feed(make_web_log(is_tag_enabled=False), "/tag/rust/feed.xml", CATEGORIES) is None

    def test_empty_tag(self):
        assert classify_feed(make_web_log(), "/tag//feed.xml", CATEGORIES) is None


class TestCustomFeed:
    def test_podcast_count(self):
        feed = CustomFeed(
            source=CustomFeedSource(kind="tag", value="episode"),
            path="podcast.xml",
            podcast=PodcastOptions(title="Pod", items_in_feed=3, image_url="pod.png"),
        )
        result = classify_feed(make_web_log(custom_feeds=[feed]), "/podcast.xml", CATEGORIES)

        assert result == (CustomFeedType(feed, "/podcast.xml"), 3)
        assert result[0].is_podcast

    def test_non_podcast_count(self):
        feed = CustomFeed(source=CustomFeedSource(kind="category", value="tech"), path="tech.xml")
        result = classify_feed(make_web_log(custom_feeds=[feed], items_in_feed=7), "/tech.xml", CATEGORIES)
        assert result[1] == 7
        assert not result[0].is_podcast

    def test_first_configured_match_wins(self):
        first = CustomFeed(source=CustomFeedSource(kind="tag", value="a"), path="all.xml")
        second = CustomFeed(source=CustomFeedSource(kind="tag", value="b"), path="feeds/all.xml")
        result = classify_feed(make_web_log(custom_feeds=[first, second]), "/feeds/all.xml", CATEGORIES)
        assert result[0].feed is first

    def test_standard_feed_checked_first(self):
        feed = CustomFeed(source=CustomFeedSource(kind="tag", value="a"), path="feed.xml")
        result = classify_feed(make_web_log(custom_feeds=[feed]), "/feed.xml", CATEGORIES)
        assert isinstance(result[0], StandardFeed)

    def test_not_a_feed(self):
        assert classify_feed(make_web_log(), "/2021/my-post.html", CATEGORIES) is None


class TestCanonicalTag:
    @pytest.mark.asyncio
    async def test_mapped_tag(self, data, sample_web_log, sample_tag_map):
        assert await canonical_tag(data, sample_web_log, "f-sharp") == "F#"

    @pytest.mark.asyncio
    async def test_unmapped_tag(self, data, sample_web_log):
        assert await canonical_tag(data, sample_web_log, "python") == "python"


class TestCustomFeedSource:
    def test_parse(self):
        source = CustomFeedSource.parse("tag:rust")
        assert source.kind == "tag"
        assert source.value == "rust"
        assert str(source) == "tag:rust"

    @pytest.mark.parametrize("text", ["bogus", "author:daniel"])
    def test_parse_rejects_unknown_kind(self, text):
        with pytest.raises(ValueError):
            CustomFeedSource.parse(text)
