"""
In-memory caches of per-web-log data that changes rarely.

Each cache holds an immutable snapshot. Writers build a new snapshot and swap
it in under a lock; readers use whichever snapshot is current without taking
the lock, so a read never observes a half-applied update. Web logs are cached
independently; updating one never touches another's entries.

The caches are owned by a `WebLogCaches` instance created at startup and
handed to request handlers (see weblog.api.deps).
"""

import re
import threading
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import structlog
from cachetools import TTLCache

from weblog.data.base import WebLogData
from weblog.models import DisplayCategory, Page, WebLog
from weblog.services.categories import build_hierarchy

logger = structlog.get_logger(__name__)

# Resolved template text is rebuilt from storage after this many seconds
TEMPLATE_TTL_SECONDS = 3600
TEMPLATE_CACHE_SIZE = 1000
MAX_INCLUDE_DEPTH = 10

_INCLUDE_TEMPLATE = re.compile(r'\{%\s*include_template\s+"([^"]+)"\s*%\}')


class WebLogCache:
    """All web logs, found by the URL a request was made to."""

    def __init__(self):
        self._lock = threading.Lock()
        self._web_logs: Tuple[WebLog, ...] = ()

    def all(self) -> Tuple[WebLog, ...]:
        return self._web_logs

    def get(self, web_log_id: str) -> Optional[WebLog]:
        return next((web_log for web_log in self._web_logs if web_log.id == web_log_id), None)

    def try_get(self, url: str) -> Optional[WebLog]:
        """
        The web log serving a URL.

        When URL bases nest (e.g. `https://example.com` and
        `https://example.com/blog`), the longest matching base wins.
        """
        matches = [
            web_log
            for web_log in self._web_logs
            if url == web_log.url_base or url.startswith(f"{web_log.url_base}/")
        ]
        if not matches:
            return None
        return max(matches, key=lambda web_log: len(web_log.url_base))

    def set(self, web_log: WebLog) -> None:
        """Add or replace one web log."""
        with self._lock:
            others = tuple(wl for wl in self._web_logs if wl.id != web_log.id)
            self._web_logs = others + (web_log,)

    def remove(self, web_log_id: str) -> None:
        with self._lock:
            self._web_logs = tuple(wl for wl in self._web_logs if wl.id != web_log_id)

    async def fill(self, data: WebLogData) -> None:
        web_logs = await data.all_web_logs()
        with self._lock:
            self._web_logs = tuple(web_logs)
        logger.info("Web log cache filled", web_logs=len(web_logs))


class CategoryCache:
    """The ordered, counted category hierarchy of each web log."""

    def __init__(self):
        self._lock = threading.Lock()
        self._categories: Mapping[str, Tuple[DisplayCategory, ...]] = MappingProxyType({})

    def get(self, web_log_id: str) -> Tuple[DisplayCategory, ...]:
        return self._categories.get(web_log_id, ())

    def set(self, web_log_id: str, categories: Sequence[DisplayCategory]) -> None:
        with self._lock:
            snapshot = dict(self._categories)
            snapshot[web_log_id] = tuple(categories)
            self._categories = MappingProxyType(snapshot)

    async def update(self, data: WebLogData, web_log_id: str) -> None:
        """Rebuild a web log's hierarchy (call after categories or posts change)."""
        self.set(web_log_id, await build_hierarchy(data, web_log_id))


class PageListCache:
    """Pages shown in each web log's page list, without their text."""

    def __init__(self):
        self._lock = threading.Lock()
        self._pages: Mapping[str, Tuple[Page, ...]] = MappingProxyType({})

    def get(self, web_log_id: str) -> Tuple[Page, ...]:
        return self._pages.get(web_log_id, ())

    def set(self, web_log_id: str, pages: Sequence[Page]) -> None:
        listed = tuple(Page.model_validate(page.model_dump(exclude={"text", "revisions"})) for page in pages)
        with self._lock:
            snapshot = dict(self._pages)
            snapshot[web_log_id] = listed
            self._pages = MappingProxyType(snapshot)

    async def update(self, data: WebLogData, web_log_id: str) -> None:
        self.set(web_log_id, await data.find_listed_pages(web_log_id))


class TemplateCache:
    """
    Theme template text with `{% include_template "name" %}` directives resolved.

    TTLCache is not thread-safe, so reads and writes both go through the lock.
    """

    def __init__(self, ttl: int = TEMPLATE_TTL_SECONDS, maxsize: int = TEMPLATE_CACHE_SIZE):
        self._lock = threading.Lock()
        self._templates: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)

    @staticmethod
    def resolve_includes(templates: Mapping[str, str], name: str) -> str:
        """
        Inline included templates (nested includes too).

        An include naming a missing template, or nested more deeply than
        MAX_INCLUDE_DEPTH, is replaced with nothing and logged.
        """

        def expand(text: str, depth: int) -> str:
            def replace(found: re.Match) -> str:
                child = found.group(1)
                if child not in templates:
                    logger.warning("Included template not found", template=name, include=child)
                    return ""
                if depth >= MAX_INCLUDE_DEPTH:
                    logger.warning("Template includes nested too deeply", template=name, include=child)
                    return ""
                return expand(templates[child], depth + 1)

            return _INCLUDE_TEMPLATE.sub(replace, text)

        return expand(templates[name], 0)

    async def get(self, data: WebLogData, theme_id: str, name: str) -> Optional[str]:
        """The resolved text of a theme's template; None if the theme or template does not exist."""
        key = (theme_id, name)
        with self._lock:
            cached = self._templates.get(key)
        if cached is not None:
            return cached

        theme = await data.find_theme(theme_id)
        if theme is None:
            return None
        templates = {template.name: template.text for template in theme.templates}
        if name not in templates:
            return None
        text = self.resolve_includes(templates, name)

        with self._lock:
            self._templates[key] = text
        return text

    def invalidate_theme(self, theme_id: str) -> None:
        with self._lock:
            for key in [key for key in self._templates.keys() if key[0] == theme_id]:
                self._templates.pop(key, None)


class ThemeAssetCache:
    """Paths of the assets each theme provides."""

    def __init__(self):
        self._lock = threading.Lock()
        self._assets: Mapping[str, Tuple[str, ...]] = MappingProxyType({})

    def get(self, theme_id: str) -> Tuple[str, ...]:
        return self._assets.get(theme_id, ())

    async def refresh_theme(self, data: WebLogData, theme_id: str) -> None:
        paths = await data.find_theme_asset_paths(theme_id)
        with self._lock:
            snapshot = dict(self._assets)
            snapshot[theme_id] = tuple(paths.get(theme_id, []))
            self._assets = MappingProxyType(snapshot)

    async def fill(self, data: WebLogData) -> None:
        paths = await data.find_theme_asset_paths()
        with self._lock:
            self._assets = MappingProxyType({theme_id: tuple(p) for theme_id, p in paths.items()})


class WebLogCaches:
    """Every cache the application uses, created once per process."""

    def __init__(self):
        self.web_logs = WebLogCache()
        self.categories = CategoryCache()
        self.page_lists = PageListCache()
        self.templates = TemplateCache()
        self.theme_assets = ThemeAssetCache()

    async def fill(self, data: WebLogData) -> None:
        """Load everything at startup."""
        await self.web_logs.fill(data)
        for web_log in self.web_logs.all():
            await self.refresh_web_log(data, web_log)
        await self.theme_assets.fill(data)

    async def refresh_web_log(self, data: WebLogData, web_log: WebLog) -> None:
        """Replace one web log and its derived data."""
        self.web_logs.set(web_log)
        await self.categories.update(data, web_log.id)
        await self.page_lists.update(data, web_log.id)

    def stats(self) -> Dict[str, int]:
        return {
            "web_logs": len(self.web_logs.all()),
            "category_sets": len(self.categories._categories),
            "page_lists": len(self.page_lists._pages),
            "templates": len(self.templates._templates),
            "theme_asset_sets": len(self.theme_assets._assets),
        }


__all__ = [
    "WebLogCache",
    "CategoryCache",
    "PageListCache",
    "TemplateCache",
    "ThemeAssetCache",
    "WebLogCaches",
]
