"""
Web Log (tenant) Model

A web log owns its posts, pages, categories and tag mappings, and is served
under its own URL base. RSS options, including custom (podcast) feeds, are
stored with the web log as a JSON document.

Usage:
    from weblog.models.web_log import WebLog

    web_log = WebLog(name="Daniel's Blog", slug="daniel", url_base="https://example.com/blog")
    web_log.absolute_url("2021/my-post.html")
    # -> "https://example.com/blog/2021/my-post.html"
"""

from typing import List, Literal, Optional
from urllib.parse import urlsplit

from pydantic import BaseModel, Field as PydanticField
from sqlmodel import Field, SQLModel, Column

from weblog.core.typing import new_id
from weblog.models.support import ExplicitRating, PodcastMedium
from weblog.models.types import PydanticJSON


class CustomFeedSource(BaseModel):
    """The source of a custom feed: a category (by id) or a tag."""

    kind: Literal["category", "tag"]
    value: str

    @classmethod
    def parse(cls, source: str) -> "CustomFeedSource":
        """Parse the `category:<id>` / `tag:<text>` string form."""
        kind, sep, value = source.partition(":")
        if not sep or kind not in ("category", "tag"):
            raise ValueError(f"{source} is not a valid feed source")
        return cls(kind=kind, value=value)

    def __str__(self) -> str:
        return f"{self.kind}:{self.value}"


class PodcastOptions(BaseModel):
    title: str
    subtitle: Optional[str] = None
    items_in_feed: int = 10
    summary: str = ""
    displayed_author: str = ""
    email: str = ""
    image_url: str = PydanticField(min_length=1)
    apple_category: str = ""
    apple_subcategory: Optional[str] = None
    explicit: ExplicitRating = ExplicitRating.NO
    default_media_type: Optional[str] = None
    media_base_url: Optional[str] = None
    podcast_guid: Optional[str] = None
    funding_url: Optional[str] = None
    funding_text: Optional[str] = None
    medium: Optional[PodcastMedium] = None


class CustomFeed(BaseModel):
    id: str = PydanticField(default_factory=new_id)
    source: CustomFeedSource
    path: str
    podcast: Optional[PodcastOptions] = None


class RssOptions(BaseModel):
    is_feed_enabled: bool = True
    feed_name: str = "feed.xml"
    items_in_feed: Optional[int] = None
    is_category_enabled: bool = True
    is_tag_enabled: bool = True
    copyright: Optional[str] = None
    custom_feeds: List[CustomFeed] = PydanticField(default_factory=list)


class WebLog(SQLModel, table=True):
    """
    A web log (tenant).

    Attributes:
        id: Short GUID
        name: Displayed name
        slug: Short identifier
        subtitle: Tag line (feed description fallback)
        default_page: "posts" or the id of a page to use as the home page
        posts_per_page: Page size for post lists (and default feed size)
        theme_id: Theme used to render this web log
        url_base: Scheme, host and optional sub-path (no trailing slash)
        time_zone: IANA time zone for displayed dates
        rss: Feed configuration
    """

    __tablename__ = "web_log"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=22)
    name: str = Field(max_length=200)
    slug: str = Field(default="", max_length=100)
    subtitle: Optional[str] = Field(default=None, max_length=500)
    default_page: str = Field(default="posts", max_length=50)
    posts_per_page: int = Field(default=10)
    theme_id: str = Field(default="default", max_length=100)
    url_base: str = Field(index=True, max_length=500)
    time_zone: str = Field(default="Etc/UTC", max_length=100)
    rss: RssOptions = Field(default_factory=RssOptions, sa_column=Column(PydanticJSON(RssOptions), nullable=False))

    def host_and_path(self) -> tuple[str, str]:
        """Split the URL base into scheme + host and the extra sub-path ("" if none)."""
        parts = urlsplit(self.url_base)
        return f"{parts.scheme}://{parts.netloc}", parts.path.rstrip("/")

    def absolute_url(self, permalink: str) -> str:
        return f"{self.url_base}/{permalink}"

    def relative_url(self, permalink: str) -> str:
        _, extra = self.host_and_path()
        return f"{extra}/{permalink}"

    @property
    def feed_item_count(self) -> int:
        """Items in standard, category and tag feeds."""
        return self.rss.items_in_feed or self.posts_per_page


__all__ = ["WebLog", "RssOptions", "CustomFeed", "CustomFeedSource", "PodcastOptions"]
