from typing import List, Optional
from pydantic import BaseModel
from datetime import datetime

from weblog.models import Episode, MetaItem


class PostOut(BaseModel):
    id: str
    title: str
    permalink: str
    url: str
    author: Optional[str] = None
    published_on: Optional[datetime] = None
    updated_on: datetime
    text: str
    category_ids: List[str] = []
    tags: List[str] = []
    episode: Optional[Episode] = None
    metadata: List[MetaItem] = []


class PageOut(BaseModel):
    id: str
    title: str
    permalink: str
    url: str
    updated_on: datetime
    text: str
    metadata: List[MetaItem] = []


class PageLinkOut(BaseModel):
    title: str
    permalink: str


class PostListOut(BaseModel):
    web_log: str
    subtitle: Optional[str] = None
    page_nbr: int
    posts: List[PostOut]
    newer_link: Optional[str] = None
    older_link: Optional[str] = None
    pages: List[PageLinkOut] = []
