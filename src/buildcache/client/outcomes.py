"""Outcome records produced by cache loads and stores."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

import httpx

from .cdn import CdnCacheStatus


@dataclass(frozen=True, slots=True)
class LoadHit:
    bytes_transferred: int
    duration: float
    cdn_status: CdnCacheStatus


@dataclass(frozen=True, slots=True)
class LoadMiss:
    message: str


@dataclass(frozen=True, slots=True)
class LoadFailure:
    error: str


@dataclass(frozen=True, slots=True)
class StoreSuccess:
    bytes_stored: int
    duration: float


@dataclass(frozen=True, slots=True)
class StoreTooLarge:
    declared_size: int


@dataclass(frozen=True, slots=True)
class StoreFailure:
    error: str


LoadOutcome = Union[LoadHit, LoadMiss, LoadFailure]
StoreOutcome = Union[StoreSuccess, StoreTooLarge, StoreFailure]


@dataclass(frozen=True, slots=True)
class LoadAction:
    locator: httpx.URL
    outcome: LoadOutcome


@dataclass(frozen=True, slots=True)
class StoreAction:
    locator: httpx.URL
    outcome: StoreOutcome


CacheAction = Union[LoadAction, StoreAction]


def describe_action(action: CacheAction) -> dict[str, object]:
    """Flatten an action into log-friendly key/value pairs."""

    fields: dict[str, object] = {"url": str(action.locator)}
    match action:
        case LoadAction(outcome=LoadHit() as hit):
            fields.update(
                operation="load",
                result="hit",
                bytes=hit.bytes_transferred,
                duration_ms=round(hit.duration * 1000, 2),
                cdn_status=hit.cdn_status.value,
            )
        case LoadAction(outcome=LoadMiss() as miss):
            fields.update(operation="load", result="miss", detail=miss.message)
        case LoadAction(outcome=LoadFailure() as failure):
            fields.update(operation="load", result="failure", error=failure.error)
        case StoreAction(outcome=StoreSuccess() as success):
            fields.update(
                operation="store",
                result="success",
                bytes=success.bytes_stored,
                duration_ms=round(success.duration * 1000, 2),
            )
        case StoreAction(outcome=StoreTooLarge() as too_large):
            fields.update(operation="store", result="too_large", bytes=too_large.declared_size)
        case StoreAction(outcome=StoreFailure() as failure):
            fields.update(operation="store", result="failure", error=failure.error)
        case _:
            raise TypeError(f"Unsupported cache action: {action!r}")
    return fields
