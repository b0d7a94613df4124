"""
Task client: a local mirror of the todo list.

At startup the client fetches the list from the service. If that works the
client stays online and pushes every later mutation through the REST API,
applying it locally first and restoring the previous list when the push
fails. If the fetch fails it falls back to the list persisted in local
storage (or the onboarding seed) and keeps working offline.

Every committed list is written to local storage under one key.
"""
import json
import logging
import math
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple

from dotenv import load_dotenv
load_dotenv()

import httpx
from pydantic import ValidationError as SchemaError

from errors import NotFoundError, TodoError, TransportError, ValidationError
from models import PRIORITIES, Todo, iso_timestamp, short_date

API_URL = os.getenv("TODO_API_URL", "http://localhost:5000/api")
STORAGE_PATH = os.getenv("TODO_STORAGE_PATH", ".local/todos/storage.json")
CLIENT_TIMEOUT = float(os.getenv("TODO_CLIENT_TIMEOUT", "5.0"))
STORAGE_KEY = "todos"

FILTERS = ("all", "active", "completed", "high")

logger = logging.getLogger(__name__)


def seed_todos() -> List[Todo]:
    return [
        Todo(id=1, text="Welcome to your Todo App!", completed=False, priority="high", date="Today"),
        Todo(id=2, text="Click checkbox to complete tasks", completed=True, priority="medium", date="Today"),
        Todo(id=3, text="Try adding your own tasks below", completed=False, priority="low", date="Today"),
        Todo(id=4, text="Double-click to edit any task", completed=False, priority="medium", date="Today"),
        Todo(id=5, text="Use priority badges to organize", completed=False, priority="high", date="Tomorrow"),
    ]


class LocalStorage:
    """Key/value string storage kept in a single JSON file."""

    def __init__(self, path: str | Path = STORAGE_PATH) -> None:
        self.path = Path(path)

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except ValueError:
            logger.warning("Ignoring unreadable storage file %s", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def get_item(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data), encoding="utf-8")

    def remove_item(self, key: str) -> None:
        data = self._read()
        if data.pop(key, None) is not None:
            self.path.write_text(json.dumps(data), encoding="utf-8")


def load_todos(storage: LocalStorage) -> Optional[List[Todo]]:
    """Return the persisted list, or None when nothing usable is stored."""
    raw = storage.get_item(STORAGE_KEY)
    if raw is None:
        return None
    try:
        return parse_todos(json.loads(raw))
    except (ValueError, TransportError):
        logger.warning("Stored todos are malformed, ignoring them")
        return None


def save_todos(storage: LocalStorage, todos: Iterable[Todo]) -> None:
    storage.set_item(STORAGE_KEY, json.dumps([todo.to_wire() for todo in todos]))


def parse_todos(data) -> List[Todo]:
    if not isinstance(data, list):
        raise TransportError("Expected a list of todos")
    try:
        return [Todo.model_validate(item) for item in data]
    except SchemaError as exc:
        raise TransportError(f"Malformed todo: {exc.errors()[0]['msg']}") from exc


# ---------------------------------------------------------------------------
# List transitions. Each returns a new list and leaves its input untouched.
# ---------------------------------------------------------------------------

def new_todo(text: str, priority: str = "medium", now: Optional[datetime] = None,
             taken: Iterable[int] = ()) -> Todo:
    now = now or datetime.now().astimezone()
    todo_id = int(now.timestamp() * 1000)
    taken = set(taken)
    while todo_id in taken:
        todo_id += 1
    return Todo(
        id=todo_id,
        text=text.strip(),
        completed=False,
        priority=priority,
        date=short_date(now),
        created_at=iso_timestamp(now),
    )


def add_todo(todos: List[Todo], text: str, priority: str = "medium",
             now: Optional[datetime] = None) -> List[Todo]:
    if not text.strip():
        return list(todos)
    return [new_todo(text, priority, now, (t.id for t in todos))] + list(todos)


def _replace(todos: List[Todo], todo_id: int, change: Callable[[Todo], dict]) -> List[Todo]:
    return [t.model_copy(update=change(t)) if t.id == todo_id else t for t in todos]


def toggle_complete(todos: List[Todo], todo_id: int) -> List[Todo]:
    return _replace(todos, todo_id, lambda t: {"completed": not t.completed})


def toggle_priority(todos: List[Todo], todo_id: int) -> List[Todo]:
    # high <-> medium only; low jumps straight to high
    return _replace(todos, todo_id, lambda t: {"priority": "medium" if t.priority == "high" else "high"})


def edit_text(todos: List[Todo], todo_id: int, text: str) -> List[Todo]:
    if not text.strip():
        return list(todos)
    return _replace(todos, todo_id, lambda t: {"text": text.strip()})


def delete_todo(todos: List[Todo], todo_id: int) -> List[Todo]:
    return [t for t in todos if t.id != todo_id]


def clear_completed(todos: List[Todo]) -> List[Todo]:
    return [t for t in todos if not t.completed]


# ---------------------------------------------------------------------------
# Derived views
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Counts:
    total: int
    completed: int
    remaining: int


def filter_todos(todos: List[Todo], name: str) -> List[Todo]:
    if name == "active":
        return [t for t in todos if not t.completed]
    if name == "completed":
        return [t for t in todos if t.completed]
    if name == "high":
        return [t for t in todos if t.priority == "high"]
    return list(todos)


def counts(todos: List[Todo]) -> Counts:
    total = len(todos)
    completed = sum(1 for t in todos if t.completed)
    return Counts(total=total, completed=completed, remaining=total - completed)


def completion_percentage(todos: List[Todo]) -> int:
    c = counts(todos)
    if c.total == 0:
        return 0
    # half rounds up, 12.5 -> 13
    return int(math.floor(c.completed / c.total * 100 + 0.5))


_BADGES = {
    "high": ("High", "🚨"),
    "medium": ("Medium", "⚠️"),
    "low": ("Low", "📌"),
}


def priority_badge(priority: str) -> Tuple[str, str]:
    return _BADGES.get(priority, _BADGES["medium"])


class TaskClient:
    def __init__(
        self,
        api_url: str = API_URL,
        storage: Optional[LocalStorage] = None,
        http: Optional[httpx.Client] = None,
        timeout: float = CLIENT_TIMEOUT,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.storage = storage or LocalStorage()
        self.timeout = timeout
        self._owns_http = http is None
        self._http = http or httpx.Client()
        self.todos: List[Todo] = []
        self.filter = "all"
        self.priority = "medium"
        self.online = False

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    # ---- startup ----

    def load(self) -> str:
        """Initial sync. Returns where the list came from: remote, stored or seed."""
        try:
            todos = parse_todos(self._request("GET", "/todos"))
        except TodoError as exc:
            logger.warning("Using local storage instead: %s", exc.message)
            self.online = False
            todos = load_todos(self.storage)
            source = "stored"
            if todos is None:
                todos, source = seed_todos(), "seed"
        else:
            self.online = True
            source = "remote"
        self._commit(todos)
        logger.info("Loaded %d todos from %s", len(todos), source)
        return source

    # ---- view state ----

    def set_filter(self, name: str) -> None:
        if name not in FILTERS:
            raise ValueError(f"Unknown filter {name!r}")
        self.filter = name

    def set_priority(self, priority: str) -> None:
        if priority not in PRIORITIES:
            raise ValueError(f"Unknown priority {priority!r}")
        self.priority = priority

    @property
    def visible(self) -> List[Todo]:
        return filter_todos(self.todos, self.filter)

    @property
    def counts(self) -> Counts:
        return counts(self.todos)

    @property
    def completion_percentage(self) -> int:
        return completion_percentage(self.todos)

    # ---- mutations ----

    def add(self, text: str) -> Optional[Todo]:
        if not text.strip():
            return None
        before = self.todos
        provisional = new_todo(text, self.priority, taken=(t.id for t in before))
        self._commit([provisional] + before)
        if not self.online:
            return provisional
        try:
            created = Todo.model_validate(
                self._request("POST", "/todos", json={"text": provisional.text, "priority": provisional.priority})
            )
        except SchemaError as exc:
            self._rollback(before, "add")
            raise TransportError("Malformed todo in response") from exc
        except TodoError:
            self._rollback(before, "add")
            raise
        self._commit([created if t.id == provisional.id else t for t in self.todos])
        return created

    def toggle_complete(self, todo_id: int) -> None:
        todo = self._find(todo_id)
        if todo is not None:
            self._push_update(todo_id, toggle_complete(self.todos, todo_id), {"completed": not todo.completed})

    def toggle_priority(self, todo_id: int) -> None:
        todo = self._find(todo_id)
        if todo is not None:
            after = toggle_priority(self.todos, todo_id)
            self._push_update(todo_id, after, {"priority": self._find(todo_id, after).priority})

    def edit_text(self, todo_id: int, text: str) -> None:
        if self._find(todo_id) is not None and text.strip():
            self._push_update(todo_id, edit_text(self.todos, todo_id, text), {"text": text.strip()})

    def delete(self, todo_id: int) -> None:
        if self._find(todo_id) is None:
            return
        before = self.todos
        self._commit(delete_todo(before, todo_id))
        if not self.online:
            return
        try:
            self._request("DELETE", f"/todos/{todo_id}")
        except NotFoundError:
            logger.info("Todo %s was already gone on the server", todo_id)
        except TodoError:
            self._rollback(before, "delete")
            raise

    def clear_completed(self) -> int:
        before = self.todos
        done = [t.id for t in before if t.completed]
        self._commit(clear_completed(before))
        if not self.online:
            return len(done)
        deleted = set()
        try:
            for todo_id in done:
                try:
                    self._request("DELETE", f"/todos/{todo_id}")
                except NotFoundError:
                    pass
                deleted.add(todo_id)
        except TodoError:
            self._rollback([t for t in before if t.id not in deleted], "clear completed")
            raise
        return len(done)

    # ---- internals ----

    def _find(self, todo_id: int, todos: Optional[List[Todo]] = None) -> Optional[Todo]:
        for todo in self.todos if todos is None else todos:
            if todo.id == todo_id:
                return todo
        return None

    def _commit(self, todos: List[Todo]) -> None:
        self.todos = todos
        save_todos(self.storage, todos)

    def _rollback(self, todos: List[Todo], action: str) -> None:
        logger.warning("Push for %s failed, restoring previous list", action)
        self._commit(todos)

    def _push_update(self, todo_id: int, after: List[Todo], changes: dict) -> None:
        before = self.todos
        self._commit(after)
        if not self.online:
            return
        try:
            updated = Todo.model_validate(self._request("PUT", f"/todos/{todo_id}", json=changes))
        except SchemaError as exc:
            self._rollback(before, "update")
            raise TransportError("Malformed todo in response") from exc
        except TodoError:
            self._rollback(before, "update")
            raise
        self._commit([updated if t.id == todo_id else t for t in self.todos])

    def _request(self, method: str, path: str, **kwargs):
        try:
            response = self._http.request(method, f"{self.api_url}{path}", timeout=self.timeout, **kwargs)
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {path} failed: {exc}") from exc
        if response.status_code == 400:
            raise ValidationError(_error_message(response))
        if response.status_code == 404:
            raise NotFoundError(_error_message(response))
        if response.is_error:
            raise TransportError(f"{method} {path} returned {response.status_code}")
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(f"{method} {path} returned a malformed body") from exc


def _error_message(response: httpx.Response) -> str:
    try:
        return response.json()["error"]
    except (ValueError, KeyError, TypeError):
        return response.text or f"HTTP {response.status_code}"


def render(client: TaskClient) -> List[str]:
    c = client.counts
    lines = [
        f"Total {c.total} | Remaining {c.remaining} | Completed {c.completed}",
        f"Completion Progress {client.completion_percentage}%",
    ]
    if not client.visible:
        lines.append("No tasks found!")
    for todo in client.visible:
        label, emoji = priority_badge(todo.priority)
        mark = "x" if todo.completed else " "
        lines.append(f"[{mark}] {todo.text}  {todo.date or ''}  {emoji} {label}")
    return lines


def main() -> None:
    from logging_setup import setup_logging

    setup_logging(os.getenv("LOG_LEVEL", "INFO"))
    client = TaskClient()
    try:
        client.load()
        for line in render(client):
            print(line)
    finally:
        client.close()


if __name__ == "__main__":
    main()
