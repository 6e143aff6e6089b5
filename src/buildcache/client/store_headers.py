"""Provider-specific headers attached to cache uploads."""

from __future__ import annotations

import re
from typing import Mapping, Optional

from ..common.settings import S3_STORAGE_CLASSES

_METADATA_NAME = re.compile(r"^[A-Za-z0-9][A-Za-z0-9-]*$")


def s3_store_headers(
    storage_class: Optional[str] = None,
    metadata: Optional[Mapping[str, str]] = None,
) -> dict[str, str]:
    """Headers understood by S3 origins behind the CDN (storage class and user metadata)."""

    headers: dict[str, str] = {}
    if storage_class:
        normalized = storage_class.strip().upper()
        if normalized not in S3_STORAGE_CLASSES:
            raise ValueError(f"Unknown S3 storage class: {storage_class}")
        headers["x-amz-storage-class"] = normalized
    for name, value in (metadata or {}).items():
        if not _METADATA_NAME.match(name):
            raise ValueError(f"Invalid S3 metadata name: {name!r}")
        headers[f"x-amz-meta-{name.lower()}"] = value
    return headers


def merge_store_headers(explicit: Mapping[str, str], provider: Mapping[str, str]) -> dict[str, str]:
    """Combine header sets; explicitly configured headers win over provider defaults."""

    merged: dict[str, str] = {}
    taken: set[str] = set()
    for name, value in explicit.items():
        merged[name] = value
        taken.add(name.lower())
    for name, value in provider.items():
        if name.lower() not in taken:
            merged[name] = value
    return merged
