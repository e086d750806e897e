from typing import Optional

from sqlmodel import Field, SQLModel

from weblog.core.typing import new_id


class WebLogUser(SQLModel, table=True):
    """An author; only the displayed name is used when serving content."""

    __tablename__ = "web_log_user"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=22)
    web_log_id: str = Field(foreign_key="web_log.id", index=True, max_length=22)
    email: str = Field(max_length=255)
    first_name: str = Field(default="", max_length=100)
    last_name: str = Field(default="", max_length=100)
    preferred_name: str = Field(default="", max_length=100)
    url: Optional[str] = Field(default=None, max_length=500)

    @property
    def display_name(self) -> str:
        first = self.preferred_name or self.first_name
        return f"{first} {self.last_name}".strip()


__all__ = ["WebLogUser"]
