"""Classification of the cache status reported by the CDN in front of the cache."""

from __future__ import annotations

from enum import Enum


class CdnCacheStatus(str, Enum):
    HIT = "hit"
    MISS = "miss"
    UNKNOWN = "unknown"

    @classmethod
    def from_header(cls, value: object) -> "CdnCacheStatus":
        """Map a header value such as ``Hit from cloudfront`` onto a status.

        Matching is a case-insensitive substring test and "hit" wins over
        "miss". Absent or non-text values are ``UNKNOWN``.
        """

        if not isinstance(value, str):
            return cls.UNKNOWN
        normalized = value.lower()
        if "hit" in normalized:
            return cls.HIT
        if "miss" in normalized:
            return cls.MISS
        return cls.UNKNOWN
