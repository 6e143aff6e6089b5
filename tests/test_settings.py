from __future__ import annotations

import pytest
from pydantic import ValidationError

from buildcache.common.settings import BuildCacheSettings, parse_header_pairs


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in (
        "BUILDCACHE_URL",
        "BUILDCACHE_USERNAME",
        "BUILDCACHE_PASSWORD",
        "BUILDCACHE_BEARER_TOKEN",
        "BUILDCACHE_STORE_HEADERS",
        "BUILDCACHE_MAX_ENTRY_SIZE",
        "BUILDCACHE_CDN_CACHE_HEADER",
        "BUILDCACHE_S3_STORAGE_CLASS",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("BUILDCACHE_URL", "https://cdn.example.com/cache")
    settings = BuildCacheSettings()
    assert str(settings.url) == "https://cdn.example.com/cache"
    assert settings.cdn_cache_header == "X-Cache"
    assert settings.max_entry_size == 20_000_000
    assert settings.store_headers == {}
    assert settings.username is None and settings.bearer_token is None


def test_store_headers_from_pairs(monkeypatch) -> None:
    monkeypatch.setenv("BUILDCACHE_URL", "https://cdn.example.com/cache")
    monkeypatch.setenv("BUILDCACHE_STORE_HEADERS", "x-amz-storage-class=STANDARD_IA, X-Team = build")
    settings = BuildCacheSettings()
    assert settings.store_headers == {"x-amz-storage-class": "STANDARD_IA", "X-Team": "build"}


def test_store_headers_from_json(monkeypatch) -> None:
    monkeypatch.setenv("BUILDCACHE_URL", "https://cdn.example.com/cache")
    monkeypatch.setenv("BUILDCACHE_STORE_HEADERS", '{"X-Team": "build"}')
    assert BuildCacheSettings().store_headers == {"X-Team": "build"}


def test_basic_credentials(monkeypatch) -> None:
    monkeypatch.setenv("BUILDCACHE_URL", "https://cdn.example.com/cache")
    monkeypatch.setenv("BUILDCACHE_USERNAME", "ci")
    monkeypatch.setenv("BUILDCACHE_PASSWORD", "s3cret")
    settings = BuildCacheSettings()
    assert settings.username == "ci"
    assert settings.password.get_secret_value() == "s3cret"
    assert "s3cret" not in repr(settings)


def test_basic_and_bearer_are_mutually_exclusive() -> None:
    with pytest.raises(ValidationError, match="not both"):
        BuildCacheSettings(url="https://cdn.example.com", username="ci", password="pw", bearer_token="tok")


def test_username_requires_password() -> None:
    with pytest.raises(ValidationError, match="together"):
        BuildCacheSettings(url="https://cdn.example.com", username="ci")


@pytest.mark.parametrize(
    "overrides",
    [
        {"max_entry_size": -1},
        {"cdn_cache_header": "  "},
        {"url": "not a url"},
        {"store_headers": {" ": "value"}},
    ],
)
def test_invalid_values_are_rejected(overrides) -> None:
    values = {"url": "https://cdn.example.com"}
    values.update(overrides)
    with pytest.raises(ValidationError):
        BuildCacheSettings(**values)


def test_missing_url_is_rejected() -> None:
    with pytest.raises(ValidationError):
        BuildCacheSettings()


def test_parse_header_pairs_rejects_malformed_entries() -> None:
    assert parse_header_pairs(None) == {}
    assert parse_header_pairs(" ") == {}
    with pytest.raises(ValueError):
        parse_header_pairs("no-equals-sign")
    with pytest.raises(ValueError):
        parse_header_pairs("[1, 2]")


def test_s3_storage_class_is_normalized(monkeypatch) -> None:
    monkeypatch.setenv("BUILDCACHE_URL", "https://cdn.example.com/cache")
    monkeypatch.setenv("BUILDCACHE_S3_STORAGE_CLASS", " standard_ia ")
    assert BuildCacheSettings().s3_storage_class == "STANDARD_IA"


def test_unknown_s3_storage_class_fails_at_load(monkeypatch) -> None:
    monkeypatch.setenv("BUILDCACHE_URL", "https://cdn.example.com/cache")
    monkeypatch.setenv("BUILDCACHE_S3_STORAGE_CLASS", "FROZEN")
    with pytest.raises(ValidationError, match="Unknown S3 storage class"):
        BuildCacheSettings()
