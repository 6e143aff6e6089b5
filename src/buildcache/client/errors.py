"""Errors raised by the build cache client."""

from __future__ import annotations

from typing import Optional

import httpx


class BuildCacheError(Exception):
    """Raised when the remote cache answers with an unexpected status."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @classmethod
    def from_response(cls, response: httpx.Response) -> "BuildCacheError":
        return cls(status_line(response), status_code=response.status_code)


def status_line(response: httpx.Response) -> str:
    """``<code> <reason> <body>`` for a response whose body has been read."""

    try:
        body = response.text
    except Exception:  # noqa: BLE001 - undecodable or unread bodies must not mask the status
        body = ""
    return f"{response.status_code} {response.reason_phrase} {body}"


def root_cause(exc: BaseException) -> BaseException:
    seen = {id(exc)}
    current = exc
    while True:
        nested = current.__cause__
        if nested is None and not current.__suppress_context__:
            nested = current.__context__
        if nested is None or id(nested) in seen:
            return current
        seen.add(id(nested))
        current = nested


def describe_root_cause(exc: BaseException) -> str:
    """Describe the deepest cause of ``exc`` as ``TypeName: message``."""

    cause = root_cause(exc)
    name = type(cause).__name__
    try:
        message = str(cause)
    except Exception:  # noqa: BLE001 - a broken __str__ must not hide the failure
        message = ""
    return f"{name}: {message}" if message else name
