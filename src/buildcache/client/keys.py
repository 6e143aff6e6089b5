"""Cache keys and their mapping onto remote locators."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Union
from urllib.parse import quote

import httpx


class BuildCacheKey(Protocol):
    """Anything exposing a stable hash usable as a URL path segment."""

    @property
    def hash_code(self) -> str: ...


@dataclass(frozen=True, slots=True)
class CacheKey:
    hash_code: str

    def __post_init__(self) -> None:
        if not self.hash_code:
            raise ValueError("Cache key must not be empty")

    def __str__(self) -> str:
        return self.hash_code


KeyLike = Union[BuildCacheKey, str]


def key_segment(key: KeyLike) -> str:
    value = key if isinstance(key, str) else key.hash_code
    if not value:
        raise ValueError("Cache key must not be empty")
    return value


def locator_for(base_url: httpx.URL | str, key: KeyLike) -> httpx.URL:
    """Append ``key`` to ``base_url`` as a single path segment.

    A trailing slash on the base URL does not produce an empty segment and any
    query string on the base URL is kept.
    """

    base = httpx.URL(str(base_url))
    segment = quote(key_segment(key), safe="")
    return base.copy_with(path=f"{base.path.rstrip('/')}/{segment}")
