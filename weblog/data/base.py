"""
Storage interface used by content resolution and feed generation.

Every call is asynchronous and scoped to a web log. Implementations raise on
storage failure; nothing here retries.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

from weblog.models import Category, Page, Post, TagMap, Theme, WebLog


class WebLogData(ABC):
    # ~~ web logs ~~

    @abstractmethod
    async def all_web_logs(self) -> List[WebLog]:
        ...

    # ~~ posts ~~

    @abstractmethod
    async def find_post_by_permalink(self, permalink: str, web_log_id: str) -> Optional[Post]:
        ...

    @abstractmethod
    async def find_current_post_permalink(self, permalinks: Sequence[str], web_log_id: str) -> Optional[str]:
        """Current permalink of the post that previously lived at any of the given links."""

    @abstractmethod
    async def find_page_of_published_posts(self, web_log_id: str, page_nbr: int, page_size: int) -> List[Post]:
        """
        Published posts, newest first.

        Returns up to `page_size + 1` posts; the extra one only signals that
        an older page exists.
        """

    @abstractmethod
    async def find_page_of_categorized_posts(
        self, web_log_id: str, category_ids: Sequence[str], page_nbr: int, page_size: int
    ) -> List[Post]:
        """Published posts in any of the given categories (same paging as above)."""

    @abstractmethod
    async def find_page_of_tagged_posts(self, web_log_id: str, tag: str, page_nbr: int, page_size: int) -> List[Post]:
        """Published posts carrying the given tag (same paging as above)."""

    @abstractmethod
    async def find_published_category_ids(self, web_log_id: str) -> Dict[str, List[str]]:
        """Category ids of every published post, keyed by post id."""

    # ~~ pages ~~

    @abstractmethod
    async def find_page_by_permalink(self, permalink: str, web_log_id: str) -> Optional[Page]:
        ...

    @abstractmethod
    async def find_current_page_permalink(self, permalinks: Sequence[str], web_log_id: str) -> Optional[str]:
        ...

    @abstractmethod
    async def find_page_by_id(self, page_id: str, web_log_id: str) -> Optional[Page]:
        ...

    @abstractmethod
    async def find_listed_pages(self, web_log_id: str) -> List[Page]:
        """Pages shown in the page list, ordered by title."""

    # ~~ categories, tags, users ~~

    @abstractmethod
    async def find_categories(self, web_log_id: str) -> List[Category]:
        ...

    @abstractmethod
    async def find_tag_map_by_url_value(self, url_value: str, web_log_id: str) -> Optional[TagMap]:
        ...

    @abstractmethod
    async def find_tag_maps_for_tags(self, tags: Sequence[str], web_log_id: str) -> List[TagMap]:
        ...

    @abstractmethod
    async def find_user_names(self, web_log_id: str, user_ids: Sequence[str]) -> Dict[str, str]:
        """Display names keyed by user id."""

    # ~~ themes ~~

    @abstractmethod
    async def find_theme(self, theme_id: str) -> Optional[Theme]:
        ...

    @abstractmethod
    async def find_theme_asset_paths(self, theme_id: Optional[str] = None) -> Dict[str, List[str]]:
        """Asset paths keyed by theme id (all themes when no id is given)."""
