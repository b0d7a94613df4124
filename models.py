from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Priority = Literal["low", "medium", "high"]
PRIORITIES = ("low", "medium", "high")


def short_date(now: datetime) -> str:
    """Locale-style short date, e.g. "Mon, Oct 19"."""
    return f"{now:%a, %b} {now.day}"


def iso_timestamp(now: datetime) -> str:
    """UTC timestamp with millisecond precision, e.g. "2026-10-19T09:30:00.000Z"."""
    now = now.astimezone(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Todo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    text: str
    completed: bool = False
    # Any string is kept as stored; request bodies are the ones checked
    # against Priority, and priority_badge shows unknown values as medium.
    priority: str = "medium"
    date: Optional[str] = None
    created_at: Optional[str] = Field(default=None, alias="createdAt")

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


class TodoCreate(BaseModel):
    text: Optional[str] = None
    priority: Priority = "medium"


class TodoUpdate(BaseModel):
    text: Optional[str] = None
    completed: Optional[bool] = None
    priority: Optional[Priority] = None

    def changes(self) -> dict:
        # null counts as omitted
        return self.model_dump(exclude_unset=True, exclude_none=True)
