"""
Page Model

An undated piece of content (about, contact, ...). Pages share the permalink
history rules of posts.
"""

from datetime import datetime
from typing import List, Optional

from sqlmodel import Field, SQLModel, Column
from sqlalchemy import Text, Index, JSON

from weblog.core.typing import new_id, utc_now
from weblog.models.support import MetaItem, Revision
from weblog.models.types import PydanticJSON


class Page(SQLModel, table=True):
    __tablename__ = "page"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=22)
    web_log_id: str = Field(foreign_key="web_log.id", index=True, max_length=22)
    author_id: str = Field(default="", max_length=22)
    title: str = Field(default="", max_length=500)
    permalink: str = Field(max_length=500)
    prior_permalinks: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    published_on: datetime = Field(default_factory=utc_now)
    updated_on: datetime = Field(default_factory=utc_now)
    show_in_page_list: bool = Field(default=False)
    template: Optional[str] = Field(default=None, max_length=100)
    text: str = Field(default="", sa_column=Column(Text, nullable=False))
    metadata_: List[MetaItem] = Field(
        default_factory=list, sa_column=Column("metadata", PydanticJSON(List[MetaItem]), nullable=False)
    )
    revisions: List[Revision] = Field(
        default_factory=list, sa_column=Column(PydanticJSON(List[Revision]), nullable=False)
    )

    __table_args__ = (
        Index("ix_page_web_log_permalink", "web_log_id", "permalink", unique=True),
    )


__all__ = ["Page"]
