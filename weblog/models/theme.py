from datetime import datetime
from typing import List

from pydantic import BaseModel
from sqlmodel import Field, SQLModel, Column
from sqlalchemy import LargeBinary

from weblog.core.typing import utc_now
from weblog.models.types import PydanticJSON


class ThemeTemplate(BaseModel):
    name: str
    text: str


class Theme(SQLModel, table=True):
    """A theme; its id is the path under which its assets are served."""

    __tablename__ = "theme"

    id: str = Field(primary_key=True, max_length=100)
    name: str = Field(default="", max_length=200)
    version: str = Field(default="", max_length=50)
    templates: List[ThemeTemplate] = Field(
        default_factory=list, sa_column=Column(PydanticJSON(List[ThemeTemplate]), nullable=False)
    )


class ThemeAsset(SQLModel, table=True):
    """A file served at /themes/{theme_id}/{path}."""

    __tablename__ = "theme_asset"

    theme_id: str = Field(primary_key=True, max_length=100)
    path: str = Field(primary_key=True, max_length=500)
    updated_on: datetime = Field(default_factory=utc_now)
    data: bytes = Field(default=b"", sa_column=Column(LargeBinary, nullable=False))


__all__ = ["Theme", "ThemeAsset", "ThemeTemplate"]
