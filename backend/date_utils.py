"""Shared timestamp parsing and formatting helpers."""
from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


def format_datetime_utc(value: datetime) -> str:
    dt = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp as written in session logs."""
    if not isinstance(value, str):
        return None
    cleaned = value.strip()
    if not cleaned:
        return None
    try:
        parsed = datetime.fromisoformat(cleaned.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def iso_to_epoch(value: Any) -> float | None:
    parsed = parse_timestamp(value)
    if parsed is None:
        return None
    return parsed.timestamp()


def epoch_ns_to_iso(epoch_ns: int) -> str:
    return format_datetime_utc(datetime.fromtimestamp(epoch_ns / 1_000_000_000, timezone.utc))


def _file_created_datetime(stats: os.stat_result) -> datetime | None:
    for attr in ("st_birthtime",):
        value = getattr(stats, attr, None)
        if isinstance(value, (int, float)) and value > 0:
            return datetime.fromtimestamp(float(value), timezone.utc)
    ctime = getattr(stats, "st_ctime", None)
    if isinstance(ctime, (int, float)) and ctime > 0:
        return datetime.fromtimestamp(float(ctime), timezone.utc)
    return None


def stat_dates(stats: os.stat_result) -> dict[str, str]:
    """Return normalized creation/modified timestamps for a stat result."""
    created_dt = _file_created_datetime(stats)
    modified_dt = datetime.fromtimestamp(float(stats.st_mtime), timezone.utc)
    return {
        "createdAt": format_datetime_utc(created_dt) if created_dt else format_datetime_utc(modified_dt),
        "updatedAt": format_datetime_utc(modified_dt),
    }


def file_metadata_dates(path: Path) -> dict[str, str]:
    """Return normalized filesystem creation/modified timestamps."""
    try:
        stats = path.stat()
    except OSError:
        return {"createdAt": "", "updatedAt": ""}
    return stat_dates(stats)
