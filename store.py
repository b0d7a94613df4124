import logging
import threading
from datetime import datetime
from typing import List, Optional

from errors import NotFoundError, ValidationError
from models import Todo, iso_timestamp, short_date

logger = logging.getLogger(__name__)

TEXT_REQUIRED = "Todo text is required"
NOT_FOUND = "Todo not found"


class TodoStore:
    """
    In-memory task list for one process.

    Newest tasks sit at the head of the list. Ids come from a counter that
    starts at 1 and is never reused, even after deletes. Every operation holds
    the lock, so concurrent requests cannot interleave create/update/delete.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._todos: List[Todo] = []
        self._next_id = 1

    def list(self) -> List[Todo]:
        with self._lock:
            return list(self._todos)

    def create(self, text: Optional[str], priority: str = "medium", now: Optional[datetime] = None) -> Todo:
        text = _clean_text(text)
        now = now or datetime.now().astimezone()
        with self._lock:
            todo = Todo(
                id=self._next_id,
                text=text,
                priority=priority,
                completed=False,
                date=short_date(now),
                created_at=iso_timestamp(now),
            )
            self._next_id += 1
            self._todos.insert(0, todo)
        logger.info("Created todo id=%s priority=%s", todo.id, todo.priority)
        return todo

    def update(self, todo_id: int, changes: dict) -> Todo:
        """Overwrite only the fields present in `changes`."""
        changes = dict(changes)
        if "text" in changes:
            changes["text"] = _clean_text(changes["text"])
        with self._lock:
            index = self._index(todo_id)
            todo = self._todos[index].model_copy(update=changes)
            self._todos[index] = todo
        logger.info("Updated todo id=%s fields=%s", todo_id, sorted(changes))
        return todo

    def delete(self, todo_id: int) -> None:
        with self._lock:
            del self._todos[self._index(todo_id)]
        logger.info("Deleted todo id=%s", todo_id)

    def _index(self, todo_id: int) -> int:
        for i, todo in enumerate(self._todos):
            if todo.id == todo_id:
                return i
        raise NotFoundError(NOT_FOUND)


def _clean_text(text: Optional[str]) -> str:
    if text is None or not text.strip():
        raise ValidationError(TEXT_REQUIRED)
    return text.strip()
