"""
Column type storing pydantic values (single models or lists of them) as JSON.
"""

from typing import Any

from pydantic import TypeAdapter
from sqlalchemy import JSON
from sqlalchemy.types import TypeDecorator


class PydanticJSON(TypeDecorator):
    """
    JSON column validated through a pydantic TypeAdapter on the way out.

    Usage:
        episode: Optional[Episode] = Field(default=None, sa_column=Column(PydanticJSON(Episode)))
    """

    impl = JSON
    cache_ok = True

    def __init__(self, annotation: Any):
        super().__init__()
        self.annotation = annotation
        self._adapter = TypeAdapter(annotation)

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return self._adapter.dump_python(value, mode="json")

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return self._adapter.validate_python(value)
