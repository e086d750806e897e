from .support import PostStatus, ExplicitRating, PodcastMedium, MetaItem, Revision, Episode
from .web_log import WebLog, RssOptions, CustomFeed, CustomFeedSource, PodcastOptions
from .post import Post
from .page import Page
from .category import Category, DisplayCategory
from .tag_map import TagMap
from .user import WebLogUser
from .theme import Theme, ThemeAsset, ThemeTemplate

__all__ = [
    "PostStatus",
    "ExplicitRating",
    "PodcastMedium",
    "MetaItem",
    "Revision",
    "Episode",
    "WebLog",
    "RssOptions",
    "CustomFeed",
    "CustomFeedSource",
    "PodcastOptions",
    "Post",
    "Page",
    "Category",
    "DisplayCategory",
    "TagMap",
    "WebLogUser",
    "Theme",
    "ThemeAsset",
    "ThemeTemplate",
]
