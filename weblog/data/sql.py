"""
SQLModel implementation of the storage interface.

Sessions are synchronous; each call runs its session work on an AnyIO worker
thread so request handlers never block the event loop. List-valued columns
(tags, category ids, prior permalinks) are JSON, so membership tests are
applied while streaming rows rather than in SQL, which keeps the queries
portable between SQLite and PostgreSQL.
"""

from functools import partial
from typing import Callable, Dict, List, Optional, Sequence, TypeVar

import anyio
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from weblog.core.typing import col
from weblog.data.base import WebLogData
from weblog.models import (
    Category,
    Page,
    Post,
    PostStatus,
    TagMap,
    Theme,
    ThemeAsset,
    WebLog,
    WebLogUser,
)

T = TypeVar("T")

# Rows fetched per round trip when filtering JSON columns in Python
STREAM_BATCH_SIZE = 200


class SqlWebLogData(WebLogData):
    def __init__(self, engine: Engine):
        self.engine = engine

    async def _run(self, func: Callable[..., T], *args) -> T:
        return await anyio.to_thread.run_sync(partial(func, *args))

    # ~~ helpers (run on worker threads) ~~

    def _published_query(self, web_log_id: str):
        return (
            select(Post)
            .where(Post.web_log_id == web_log_id)
            .where(Post.status == PostStatus.PUBLISHED)
            .where(col(Post.published_on).is_not(None))
            .order_by(col(Post.published_on).desc())
        )

    def _page_of_matching_posts(
        self, web_log_id: str, predicate: Callable[[Post], bool], page_nbr: int, page_size: int
    ) -> List[Post]:
        skip = (page_nbr - 1) * page_size
        wanted = page_size + 1
        found: List[Post] = []
        with Session(self.engine) as session:
            rows = session.exec(self._published_query(web_log_id).execution_options(yield_per=STREAM_BATCH_SIZE))
            for post in rows:
                if not predicate(post):
                    continue
                if skip > 0:
                    skip -= 1
                    continue
                found.append(post)
                if len(found) == wanted:
                    break
        return found

    def _current_permalink(self, model, permalinks: Sequence[str], web_log_id: str) -> Optional[str]:
        wanted = set(permalinks)
        with Session(self.engine) as session:
            rows = session.exec(
                select(model).where(model.web_log_id == web_log_id).execution_options(yield_per=STREAM_BATCH_SIZE)
            )
            for item in rows:
                if wanted.intersection(item.prior_permalinks):
                    return item.permalink
        return None

    def _find_one(self, statement):
        with Session(self.engine) as session:
            return session.exec(statement).first()

    def _find_all(self, statement) -> list:
        with Session(self.engine) as session:
            return list(session.exec(statement).all())

    # ~~ web logs ~~

    async def all_web_logs(self) -> List[WebLog]:
        return await self._run(self._find_all, select(WebLog))

    # ~~ posts ~~

    async def find_post_by_permalink(self, permalink: str, web_log_id: str) -> Optional[Post]:
        statement = select(Post).where(Post.web_log_id == web_log_id).where(Post.permalink == permalink)
        return await self._run(self._find_one, statement)

    async def find_current_post_permalink(self, permalinks: Sequence[str], web_log_id: str) -> Optional[str]:
        return await self._run(self._current_permalink, Post, list(permalinks), web_log_id)

    async def find_page_of_published_posts(self, web_log_id: str, page_nbr: int, page_size: int) -> List[Post]:
        statement = self._published_query(web_log_id).offset((page_nbr - 1) * page_size).limit(page_size + 1)
        return await self._run(self._find_all, statement)

    async def find_page_of_categorized_posts(
        self, web_log_id: str, category_ids: Sequence[str], page_nbr: int, page_size: int
    ) -> List[Post]:
        wanted = set(category_ids)
        return await self._run(
            self._page_of_matching_posts,
            web_log_id,
            lambda post: bool(wanted.intersection(post.category_ids)),
            page_nbr,
            page_size,
        )

    async def find_page_of_tagged_posts(self, web_log_id: str, tag: str, page_nbr: int, page_size: int) -> List[Post]:
        return await self._run(
            self._page_of_matching_posts,
            web_log_id,
            lambda post: tag in post.tags,
            page_nbr,
            page_size,
        )

    async def find_published_category_ids(self, web_log_id: str) -> Dict[str, List[str]]:
        statement = (
            select(Post.id, Post.category_ids)
            .where(Post.web_log_id == web_log_id)
            .where(Post.status == PostStatus.PUBLISHED)
        )
        rows = await self._run(self._find_all, statement)
        return {post_id: list(category_ids or []) for post_id, category_ids in rows}

    # ~~ pages ~~

    async def find_page_by_permalink(self, permalink: str, web_log_id: str) -> Optional[Page]:
        statement = select(Page).where(Page.web_log_id == web_log_id).where(Page.permalink == permalink)
        return await self._run(self._find_one, statement)

    async def find_current_page_permalink(self, permalinks: Sequence[str], web_log_id: str) -> Optional[str]:
        return await self._run(self._current_permalink, Page, list(permalinks), web_log_id)

    async def find_page_by_id(self, page_id: str, web_log_id: str) -> Optional[Page]:
        statement = select(Page).where(Page.web_log_id == web_log_id).where(Page.id == page_id)
        return await self._run(self._find_one, statement)

    async def find_listed_pages(self, web_log_id: str) -> List[Page]:
        statement = (
            select(Page)
            .where(Page.web_log_id == web_log_id)
            .where(col(Page.show_in_page_list).is_(True))
            .order_by(col(Page.title))
        )
        return await self._run(self._find_all, statement)

    # ~~ categories, tags, users ~~

    async def find_categories(self, web_log_id: str) -> List[Category]:
        return await self._run(self._find_all, select(Category).where(Category.web_log_id == web_log_id))

    async def find_tag_map_by_url_value(self, url_value: str, web_log_id: str) -> Optional[TagMap]:
        statement = select(TagMap).where(TagMap.web_log_id == web_log_id).where(TagMap.url_value == url_value)
        return await self._run(self._find_one, statement)

    async def find_tag_maps_for_tags(self, tags: Sequence[str], web_log_id: str) -> List[TagMap]:
        if not tags:
            return []
        statement = select(TagMap).where(TagMap.web_log_id == web_log_id).where(col(TagMap.tag).in_(list(tags)))
        return await self._run(self._find_all, statement)

    async def find_user_names(self, web_log_id: str, user_ids: Sequence[str]) -> Dict[str, str]:
        if not user_ids:
            return {}
        statement = (
            select(WebLogUser)
            .where(WebLogUser.web_log_id == web_log_id)
            .where(col(WebLogUser.id).in_(list(user_ids)))
        )
        users = await self._run(self._find_all, statement)
        return {user.id: user.display_name for user in users}

    # ~~ themes ~~

    async def find_theme(self, theme_id: str) -> Optional[Theme]:
        return await self._run(self._find_one, select(Theme).where(Theme.id == theme_id))

    async def find_theme_asset_paths(self, theme_id: Optional[str] = None) -> Dict[str, List[str]]:
        statement = select(ThemeAsset.theme_id, ThemeAsset.path)
        if theme_id is not None:
            statement = statement.where(ThemeAsset.theme_id == theme_id)
        rows = await self._run(self._find_all, statement)
        paths: Dict[str, List[str]] = {}
        for asset_theme, path in rows:
            paths.setdefault(asset_theme, []).append(path)
        return paths
