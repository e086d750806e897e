"""
Type helpers for SQLAlchemy/SQLModel compatibility with type checkers, plus
the small value helpers shared by the models.

SQLModel fields are declared with Python types (e.g., `permalink: str`) but at
the class level they're actually InstrumentedAttribute descriptors with
SQLAlchemy column methods like .desc(), .in_(), .is_not(), etc.
"""

import base64
import uuid
from typing import TYPE_CHECKING, Optional, TypeVar
from datetime import datetime, timezone

if TYPE_CHECKING:
    from sqlalchemy.orm.attributes import InstrumentedAttribute

T = TypeVar("T")


def col(attr: T) -> "InstrumentedAttribute[T]":
    """
    Type helper for SQLAlchemy column operations in queries.

    At runtime this is a no-op - it just returns the input unchanged.

    Usage:
        select(Post).order_by(col(Post.published_on).desc())
    """
    return attr  # type: ignore[return-value]


def utc_now() -> datetime:
    """
    Get current UTC time (timezone-aware).

    Use as default_factory in SQLModel fields.
    """
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; every stored instant is UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def new_id() -> str:
    """Create a new URL-friendly short GUID (22 characters)."""
    encoded = base64.b64encode(uuid.uuid4().bytes).decode("ascii")
    return encoded.replace("/", "_").replace("+", "-")[:22]


__all__ = [
    "col",
    "utc_now",
    "as_utc",
    "new_id",
]
