from __future__ import annotations

import pytest

from buildcache.client.store_headers import merge_store_headers, s3_store_headers


def test_s3_storage_class_header() -> None:
    assert s3_store_headers("standard_ia") == {"x-amz-storage-class": "STANDARD_IA"}


def test_s3_metadata_headers() -> None:
    headers = s3_store_headers(metadata={"Build-Host": "runner-7"})
    assert headers == {"x-amz-meta-build-host": "runner-7"}


def test_no_provider_options_yield_no_headers() -> None:
    assert s3_store_headers() == {}


def test_unknown_storage_class_is_rejected() -> None:
    with pytest.raises(ValueError, match="storage class"):
        s3_store_headers("COLD")


def test_invalid_metadata_name_is_rejected() -> None:
    with pytest.raises(ValueError):
        s3_store_headers(metadata={"bad name": "x"})


def test_explicit_headers_win_case_insensitively() -> None:
    merged = merge_store_headers(
        {"X-Amz-Storage-Class": "GLACIER_IR"},
        {"x-amz-storage-class": "STANDARD_IA", "x-amz-meta-team": "build"},
    )
    assert merged == {"X-Amz-Storage-Class": "GLACIER_IR", "x-amz-meta-team": "build"}
