"""
Test fixtures for myWebLog tests.

Provides an in-memory database, SQL storage over it, and a sample web log
with categories, posts, pages, a tag mapping and a podcast feed.
"""

import pytest
from datetime import datetime, timedelta, timezone
from typing import Generator, List
from sqlmodel import Session, SQLModel, create_engine
from sqlalchemy.pool import StaticPool

from weblog.data import SqlWebLogData
from weblog.db import create_db_and_tables
from weblog.models import (
    Category,
    CustomFeed,
    CustomFeedSource,
    Episode,
    MetaItem,
    Page,
    PodcastOptions,
    Post,
    PostStatus,
    RssOptions,
    TagMap,
    Theme,
    ThemeAsset,
    ThemeTemplate,
    WebLog,
    WebLogUser,
)

TEST_DATABASE_URL = "sqlite:///:memory:"

BASE_TIME = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="function")
def test_engine():
    """Create a test database engine with in-memory SQLite."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_db_and_tables(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def test_session(test_engine) -> Generator[Session, None, None]:
    """Provide a test database session."""
    with Session(test_engine) as session:
        yield session


@pytest.fixture
def data(test_engine) -> SqlWebLogData:
    return SqlWebLogData(test_engine)


def make_podcast_feed() -> CustomFeed:
    return CustomFeed(
        id="feed-podcast",
        source=CustomFeedSource.parse("category:cat-cooking"),
        path="podcast.xml",
        podcast=PodcastOptions(
            title="Kitchen Talk",
            subtitle="Cooking, out loud",
            items_in_feed=5,
            summary="A podcast about cooking",
            displayed_author="Daniel Summers",
            email="daniel@example.com",
            image_url="images/podcast.png",
            apple_category="Arts",
            apple_subcategory="Food",
            default_media_type="audio/mpeg",
            media_base_url="https://media.example.com/",
            podcast_guid="9B024349-CCF0-5F69-A609-6B82873EAB3C",
            funding_url="https://example.com/support",
        ),
    )


@pytest.fixture
def sample_web_log(test_session: Session) -> WebLog:
    """A web log served at the root of the test server."""
    web_log = WebLog(
        id="wl-main",
        name="Daniel's <em>Blog</em>",
        slug="daniel",
        subtitle="Thoughts and recipes",
        posts_per_page=10,
        url_base="http://testserver",
        rss=RssOptions(copyright="CC BY 4.0", custom_feeds=[make_podcast_feed()]),
    )
    test_session.add(web_log)
    test_session.commit()
    test_session.refresh(web_log)
    return web_log


@pytest.fixture
def sample_user(test_session: Session, sample_web_log: WebLog) -> WebLogUser:
    user = WebLogUser(
        id="user-daniel",
        web_log_id=sample_web_log.id,
        email="daniel@example.com",
        first_name="Daniel",
        last_name="Summers",
    )
    test_session.add(user)
    test_session.commit()
    test_session.refresh(user)
    return user


@pytest.fixture
def sample_categories(test_session: Session, sample_web_log: WebLog) -> List[Category]:
    """Tech > Rust, plus a top-level Cooking category."""
    categories = [
        Category(id="cat-tech", web_log_id=sample_web_log.id, name="Tech", slug="tech"),
        Category(id="cat-rust", web_log_id=sample_web_log.id, name="Rust", slug="rust", parent_id="cat-tech"),
        Category(id="cat-cooking", web_log_id=sample_web_log.id, name="Cooking", slug="cooking",
                 description="Food, mostly"),
    ]
    for cat in categories:
        test_session.add(cat)
    test_session.commit()
    return categories


@pytest.fixture
def sample_posts(test_session: Session, sample_web_log: WebLog, sample_user: WebLogUser,
                 sample_categories: List[Category]) -> List[Post]:
    """
    Published posts (newest first), plus one draft.

    - post-rust: only in Rust, tagged F#, moved from 2021/my-post.html
    - post-tech: in Tech
    - post-episode: a podcast episode in Cooking
    - post-draft: never published
    """
    posts = [
        Post(
            id="post-rust",
            web_log_id=sample_web_log.id,
            author_id=sample_user.id,
            status=PostStatus.PUBLISHED,
            title="Rust and F#",
            permalink="2021/post-renamed.html",
            prior_permalinks=["2021/my-post.html"],
            published_on=BASE_TIME,
            updated_on=BASE_TIME + timedelta(hours=1),
            text='<p>Comparing two languages. <a href="/2020/intro.html">Intro</a></p><p>More text</p>',
            category_ids=["cat-rust"],
            tags=["F#", "type systems"],
        ),
        Post(
            id="post-tech",
            web_log_id=sample_web_log.id,
            author_id=sample_user.id,
            status=PostStatus.PUBLISHED,
            title="A Tech Post",
            permalink="2021/tech-post/",
            published_on=BASE_TIME - timedelta(days=1),
            updated_on=BASE_TIME - timedelta(days=1),
            text="<p>About computers</p>",
            category_ids=["cat-tech"],
            tags=["f-sharp"],
        ),
        Post(
            id="post-episode",
            web_log_id=sample_web_log.id,
            author_id=sample_user.id,
            status=PostStatus.PUBLISHED,
            title="Episode 1: Bread",
            permalink="2021/episode-1.html",
            published_on=BASE_TIME - timedelta(days=2),
            updated_on=BASE_TIME - timedelta(days=2),
            text='<p>We bake bread.</p><img src="/images/bread.jpg">',
            category_ids=["cat-cooking"],
            episode=Episode(
                media="episode-1.mp3",
                length=123456,
                duration=3723.5,
                chapter_file="chapters/episode-1.json",
                transcript_url="transcripts/episode-1.vtt",
                transcript_type="text/vtt",
                transcript_captions=True,
                season_number=1,
                episode_number=1,
                episode_description="Pilot",
            ),
            metadata_=[
                MetaItem(name="chapter", value="0:10:00 Kneading"),
                MetaItem(name="chapter", value="0:00:00 Intro"),
            ],
        ),
        Post(
            id="post-draft",
            web_log_id=sample_web_log.id,
            author_id=sample_user.id,
            status=PostStatus.DRAFT,
            title="Unfinished",
            permalink="2021/unfinished.html",
            text="<p>Later</p>",
            category_ids=["cat-tech"],
        ),
    ]
    for post in posts:
        test_session.add(post)
    test_session.commit()
    for post in posts:
        test_session.refresh(post)
    return posts


@pytest.fixture
def sample_pages(test_session: Session, sample_web_log: WebLog, sample_user: WebLogUser) -> List[Page]:
    pages = [
        Page(
            id="page-about",
            web_log_id=sample_web_log.id,
            author_id=sample_user.id,
            title="About",
            permalink="about/",
            prior_permalinks=["about-me.html"],
            show_in_page_list=True,
            text="<p>About this web log</p>",
        ),
        Page(
            id="page-hidden",
            web_log_id=sample_web_log.id,
            author_id=sample_user.id,
            title="Hidden",
            permalink="hidden.html",
            text="<p>Not listed</p>",
        ),
    ]
    for page in pages:
        test_session.add(page)
    test_session.commit()
    for page in pages:
        test_session.refresh(page)
    return pages


@pytest.fixture
def sample_tag_map(test_session: Session, sample_web_log: WebLog) -> TagMap:
    tag_map = TagMap(id="map-fsharp", web_log_id=sample_web_log.id, tag="F#", url_value="f-sharp")
    test_session.add(tag_map)
    test_session.commit()
    test_session.refresh(tag_map)
    return tag_map


@pytest.fixture
def sample_theme(test_session: Session) -> Theme:
    theme = Theme(
        id="default",
        name="Default",
        version="1.0",
        templates=[
            ThemeTemplate(name="layout", text='<html>{% include_template "header" %}<main></main></html>'),
            ThemeTemplate(name="header", text='<header>{% include_template "nav" %}</header>'),
            ThemeTemplate(name="nav", text="<nav></nav>"),
            ThemeTemplate(name="broken", text='<div>{% include_template "missing" %}</div>'),
        ],
    )
    test_session.add(theme)
    test_session.add(ThemeAsset(theme_id="default", path="style.css", data=b"body {}"))
    test_session.add(ThemeAsset(theme_id="default", path="script.js", data=b""))
    test_session.commit()
    test_session.refresh(theme)
    return theme


@pytest.fixture
def blog(sample_web_log, sample_user, sample_categories, sample_posts, sample_pages, sample_tag_map) -> WebLog:
    """Everything above, in one fixture."""
    return sample_web_log
