from sqlmodel import Field, SQLModel
from sqlalchemy import Index

from weblog.core.typing import new_id


class TagMap(SQLModel, table=True):
    """Maps a tag to the value used in its links (ex. "c#" -> "c-sharp")."""

    __tablename__ = "tag_map"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=22)
    web_log_id: str = Field(foreign_key="web_log.id", index=True, max_length=22)
    tag: str = Field(max_length=200)
    url_value: str = Field(max_length=200)

    __table_args__ = (
        Index("ix_tag_map_web_log_url_value", "web_log_id", "url_value", unique=True),
    )


__all__ = ["TagMap"]
