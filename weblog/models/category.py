from typing import List, Optional

from pydantic import BaseModel
from sqlmodel import Field, SQLModel

from weblog.core.typing import new_id


class Category(SQLModel, table=True):
    """A category; `parent_id` makes it a subcategory."""

    __tablename__ = "category"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=22)
    web_log_id: str = Field(foreign_key="web_log.id", index=True, max_length=22)
    name: str = Field(max_length=200)
    slug: str = Field(max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    parent_id: Optional[str] = Field(default=None, max_length=22)


class DisplayCategory(BaseModel):
    """
    A category as placed in its web log's hierarchy.

    Attributes:
        slug: Full slug, including parent slugs ("tech/rust")
        parent_names: Ancestor names, root first
        post_count: Published posts in this category or any subcategory
    """

    id: str
    slug: str
    name: str
    description: Optional[str] = None
    parent_names: List[str] = []
    post_count: int = 0


__all__ = ["Category", "DisplayCategory"]
