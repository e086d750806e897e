"""
Post Model

A dated, categorized, tagged entry in a web log; optionally a podcast episode.

Permalinks are unique per web log. When a permalink changes, the old value
is pushed onto the front of `prior_permalinks` so requests for it can be
redirected to the current location.
"""

from datetime import datetime
from typing import List, Optional

from sqlmodel import Field, SQLModel, Column
from sqlalchemy import Text, Index, JSON

from weblog.core.typing import new_id, utc_now
from weblog.models.support import Episode, MetaItem, PostStatus, Revision
from weblog.models.types import PydanticJSON


class Post(SQLModel, table=True):
    """
    Attributes:
        id: Short GUID
        web_log_id: Owning web log
        author_id: Web log user who wrote the post
        status: Draft or Published
        title: Post title (may contain HTML)
        permalink: Current relative link (e.g. "2021/my-post.html")
        prior_permalinks: Links this post used to have, most recent first
        published_on: First publication instant (None for never-published drafts)
        updated_on: Last update instant
        template: Theme template override
        text: HTML body
        category_ids: Categories the post is assigned to
        tags: Tags (lower-cased when saved)
        episode: Podcast episode information
        metadata: Free-form name/value pairs
        revisions: Text history, most recent first
    """

    __tablename__ = "post"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=22)
    web_log_id: str = Field(foreign_key="web_log.id", index=True, max_length=22)
    author_id: str = Field(default="", max_length=22)
    status: PostStatus = Field(default=PostStatus.DRAFT)
    title: str = Field(default="", max_length=500)
    permalink: str = Field(max_length=500)
    prior_permalinks: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    published_on: Optional[datetime] = Field(default=None)
    updated_on: datetime = Field(default_factory=utc_now)
    template: Optional[str] = Field(default=None, max_length=100)
    text: str = Field(default="", sa_column=Column(Text, nullable=False))
    category_ids: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    tags: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    episode: Optional[Episode] = Field(default=None, sa_column=Column(PydanticJSON(Episode), nullable=True))
    metadata_: List[MetaItem] = Field(
        default_factory=list, sa_column=Column("metadata", PydanticJSON(List[MetaItem]), nullable=False)
    )
    revisions: List[Revision] = Field(
        default_factory=list, sa_column=Column(PydanticJSON(List[Revision]), nullable=False)
    )

    __table_args__ = (
        Index("ix_post_web_log_permalink", "web_log_id", "permalink", unique=True),
        Index("ix_post_web_log_status_published", "web_log_id", "status", "published_on"),
    )

    def meta(self, name: str) -> List[str]:
        """Values of every metadata item with the given name, in order."""
        return [item.value for item in self.metadata_ if item.name == name]


__all__ = ["Post"]
