"""
Value types shared by posts, pages and feeds.

These are plain pydantic models; tables store them in JSON columns.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from weblog.core.typing import utc_now


class PostStatus(str, Enum):
    DRAFT = "Draft"
    PUBLISHED = "Published"


class ExplicitRating(str, Enum):
    """Valid values for the iTunes explicit rating."""

    YES = "yes"
    NO = "no"
    CLEAN = "clean"


class PodcastMedium(str, Enum):
    """Podcast Index podcast:medium values (what the podcast IS, not what it is ABOUT)."""

    PODCAST = "podcast"
    MUSIC = "music"
    VIDEO = "video"
    FILM = "film"
    AUDIOBOOK = "audiobook"
    NEWSLETTER = "newsletter"
    BLOG = "blog"


class MetaItem(BaseModel):
    name: str
    value: str


class Revision(BaseModel):
    as_of: datetime = Field(default_factory=utc_now)
    text: str = ""


class Episode(BaseModel):
    """
    Podcast episode information attached to a post.

    Attributes:
        media: URL of the media file (absolute, or relative to the podcast media base / web log)
        length: Size of the media file in bytes
        duration: Running time in seconds
        media_type: MIME type (overrides the podcast default)
        image_url: Episode artwork (overrides the podcast image)
        explicit: Explicit rating (overrides the podcast rating)
        chapter_file: Link to a chapter file
        chapter_type: MIME type of the chapter file
        transcript_url: Link to a transcript
        transcript_type: MIME type of the transcript (required when a transcript is given)
        transcript_lang: Language of the transcript
        transcript_captions: Declare the transcript to be a captions file
        season_number / season_description: Season of a serialized podcast
        episode_number / episode_description: Episode number and its display name
    """

    media: str
    length: int = 0
    duration: Optional[float] = None
    media_type: Optional[str] = None
    image_url: Optional[str] = None
    subtitle: Optional[str] = None
    explicit: Optional[ExplicitRating] = None
    chapter_file: Optional[str] = None
    chapter_type: Optional[str] = None
    transcript_url: Optional[str] = None
    transcript_type: Optional[str] = None
    transcript_lang: Optional[str] = None
    transcript_captions: Optional[bool] = None
    season_number: Optional[int] = None
    season_description: Optional[str] = None
    episode_number: Optional[float] = None
    episode_description: Optional[str] = None

    def format_duration(self) -> Optional[str]:
        """Duration as H:MM:SS (fractions of a second are dropped)."""
        if self.duration is None:
            return None
        total = int(self.duration)
        hours, rest = divmod(total, 3600)
        minutes, seconds = divmod(rest, 60)
        return f"{hours}:{minutes:02d}:{seconds:02d}"


__all__ = [
    "PostStatus",
    "ExplicitRating",
    "PodcastMedium",
    "MetaItem",
    "Revision",
    "Episode",
]
