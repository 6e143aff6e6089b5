"""Runtime configuration for the build cache client."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Optional

from pydantic import Field, HttpUrl, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


DEFAULT_CDN_CACHE_HEADER = "X-Cache"
DEFAULT_MAX_ENTRY_SIZE = 20_000_000
S3_STORAGE_CLASSES = frozenset(
    {
        "STANDARD",
        "REDUCED_REDUNDANCY",
        "STANDARD_IA",
        "ONEZONE_IA",
        "INTELLIGENT_TIERING",
        "GLACIER",
        "DEEP_ARCHIVE",
        "OUTPOSTS",
        "GLACIER_IR",
        "SNOW",
        "EXPRESS_ONEZONE",
    }
)


def env_field(default, env_name: str):
    return Field(default, validation_alias=env_name)


def parse_header_pairs(value: str | None) -> dict[str, str]:
    """Parse ``name=value,name2=value2`` (or a JSON object) into a header mapping."""

    if not value or not value.strip():
        return {}
    stripped = value.strip()
    if stripped.startswith("{"):
        data = json.loads(stripped)
        if not isinstance(data, dict):
            raise ValueError("Header mapping must be a JSON object")
        return {str(key): str(item) for key, item in data.items()}
    result: dict[str, str] = {}
    for item in stripped.split(","):
        if not item.strip():
            continue
        key, sep, header_value = item.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Invalid header entry: {item.strip()!r}")
        result[key.strip()] = header_value.strip()
    return result


class BuildCacheSettings(BaseSettings):
    """Resolved configuration for a CDN-fronted build cache."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", populate_by_name=True)

    url: HttpUrl = env_field(..., "BUILDCACHE_URL")
    username: Optional[str] = env_field(None, "BUILDCACHE_USERNAME")
    password: Optional[SecretStr] = env_field(None, "BUILDCACHE_PASSWORD")
    bearer_token: Optional[SecretStr] = env_field(None, "BUILDCACHE_BEARER_TOKEN")
    cdn_cache_header: str = env_field(DEFAULT_CDN_CACHE_HEADER, "BUILDCACHE_CDN_CACHE_HEADER")
    max_entry_size: int = env_field(DEFAULT_MAX_ENTRY_SIZE, "BUILDCACHE_MAX_ENTRY_SIZE")
    store_headers: Annotated[dict[str, str], NoDecode] = Field(default_factory=dict, validation_alias="BUILDCACHE_STORE_HEADERS")
    s3_storage_class: Optional[str] = env_field(None, "BUILDCACHE_S3_STORAGE_CLASS")
    timeout_seconds: float = env_field(30.0, "BUILDCACHE_TIMEOUT")
    max_connections: int = env_field(10, "BUILDCACHE_MAX_CONNECTIONS")
    ca_bundle_path: Optional[Path] = env_field(None, "BUILDCACHE_CA_BUNDLE")
    metrics_textfile: Optional[Path] = env_field(None, "BUILDCACHE_METRICS_TEXTFILE")
    log_level: str = env_field("INFO", "BUILDCACHE_LOG_LEVEL")
    otel_exporter_endpoint: Optional[str] = env_field(None, "BUILDCACHE_OTEL_EXPORTER_ENDPOINT")
    otel_exporter_headers: Annotated[dict[str, str], NoDecode] = Field(
        default_factory=dict, validation_alias="BUILDCACHE_OTEL_EXPORTER_HEADERS"
    )
    otel_sampler_ratio: float = env_field(0.1, "BUILDCACHE_OTEL_SAMPLER_RATIO")

    @field_validator("store_headers", "otel_exporter_headers", mode="before")
    @classmethod
    def _split_header_pairs(cls, value):
        if value is None:
            return {}
        if isinstance(value, str):
            return parse_header_pairs(value)
        return value

    @field_validator("store_headers", "otel_exporter_headers")
    @classmethod
    def _validate_header_names(cls, value: dict[str, str]) -> dict[str, str]:
        for name in value:
            if not name.strip():
                raise ValueError("Header names must not be empty")
        return value

    @field_validator("cdn_cache_header")
    @classmethod
    def _validate_cdn_header(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("CDN cache header name must not be empty")
        return value

    @field_validator("s3_storage_class")
    @classmethod
    def _validate_storage_class(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        normalized = value.strip().upper()
        if normalized not in S3_STORAGE_CLASSES:
            raise ValueError(f"Unknown S3 storage class: {value}")
        return normalized

    @field_validator("max_entry_size")
    @classmethod
    def _validate_max_entry_size(cls, value: int) -> int:
        if value < 0:
            raise ValueError("max_entry_size must be >= 0")
        return value

    @model_validator(mode="after")
    def _validate_credentials(self) -> "BuildCacheSettings":
        if (self.username is None) != (self.password is None):
            raise ValueError("username and password must be configured together")
        if self.username is not None and self.bearer_token is not None:
            raise ValueError("configure either basic credentials or a bearer token, not both")
        return self
