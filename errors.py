class TodoError(Exception):
    """Base class for todo failures. `message` is safe to show to the user."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TodoError):
    """Missing or empty task text, or another malformed input."""


class NotFoundError(TodoError):
    """The referenced task id does not exist."""


class TransportError(TodoError):
    """The client could not reach the service or got an unusable answer."""
