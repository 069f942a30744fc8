"""Request context management using contextvars.

Async-safe storage for request-scoped data. The request id is set by
RequestIDMiddleware and read by the logging filter.
"""

from contextvars import ContextVar

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)


def set_request_id(request_id: str | None) -> object:
    """Set the request id for the current task. Returns a token for reset_request_id."""
    return _request_id.set(request_id)


def reset_request_id(token: object) -> None:
    _request_id.reset(token)  # type: ignore[arg-type]


def get_request_id() -> str | None:
    return _request_id.get()
