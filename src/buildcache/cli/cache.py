"""CLI for fetching and publishing build cache entries."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Optional, Sequence

import httpx
from pydantic import ValidationError

from ..client.entries import FileEntryReader, FileEntryWriter
from ..client.errors import BuildCacheError
from ..client.factory import create_cache_service
from ..common.observability import configure_logging, configure_tracing
from ..common.settings import BuildCacheSettings


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fetch or publish build cache entries")
    parser.add_argument("--url", help="Cache base URL (default: BUILDCACHE_URL)")
    parser.add_argument("--json", action="store_true", help="Output JSON instead of plain text")
    subparsers = parser.add_subparsers(dest="command", required=True)

    get_parser = subparsers.add_parser("get", help="Download an entry into a file")
    get_parser.add_argument("key", help="Cache key (content hash)")
    get_parser.add_argument("--output", type=Path, required=True, help="Destination file")

    put_parser = subparsers.add_parser("put", help="Upload a file as a cache entry")
    put_parser.add_argument("key", help="Cache key (content hash)")
    put_parser.add_argument("path", type=Path, help="File to upload")

    subparsers.add_parser("describe", help="Show the resolved cache configuration")
    return parser.parse_args(argv)


def load_settings(args: argparse.Namespace) -> BuildCacheSettings:
    if args.url:
        return BuildCacheSettings(url=args.url)
    return BuildCacheSettings()


def _emit(args: argparse.Namespace, payload: dict[str, object], text: str) -> None:
    if args.json:
        print(json.dumps(payload, indent=2))
    else:
        print(text)


def run(args: argparse.Namespace) -> int:
    settings = load_settings(args)
    configure_logging(settings, "buildcache.cli")
    configure_tracing(settings, "buildcache.cli")

    with create_cache_service(settings) as service:
        if args.command == "describe":
            description = service.describe()
            _emit(args, description, "\n".join(f"{name}: {value}" for name, value in description.items()))
            return 0

        if args.command == "get":
            found = service.load(args.key, FileEntryReader(args.output))
            payload = {"key": args.key, "found": found, "output": str(args.output)}
            _emit(args, payload, f"Hit: {args.output}" if found else f"Miss: {args.key}")
            return 0 if found else 1

        writer = FileEntryWriter(args.path)
        service.store(args.key, writer)
        skipped = writer.size > settings.max_entry_size
        payload = {"key": args.key, "bytes": writer.size, "skipped_too_large": skipped}
        _emit(
            args,
            payload,
            f"Skipped: {writer.size} bytes exceeds {settings.max_entry_size}" if skipped else f"Stored: {args.key} ({writer.size} bytes)",
        )
        return 0


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    try:
        exit_code = run(args)
    except ValidationError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        exit_code = 2
    except (BuildCacheError, httpx.HTTPError, OSError) as exc:
        print(f"Cache error: {exc}", file=sys.stderr)
        exit_code = 3
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
