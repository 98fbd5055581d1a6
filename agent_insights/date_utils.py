"""Shared timestamp normalization helpers."""
from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any

_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def format_datetime_utc(value: datetime) -> str:
    """Format as a millisecond-precision UTC ISO string with a `Z` suffix."""
    dt = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if not isinstance(value, str):
        return None
    raw = value.strip()
    if not raw:
        return None
    if _DATE_ONLY_RE.match(raw):
        try:
            return datetime.combine(date.fromisoformat(raw), datetime.min.time(), tzinfo=timezone.utc)
        except ValueError:
            return None
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except (ValueError, TypeError):
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def iso_to_epoch_ms(value: Any) -> float | None:
    parsed = parse_iso(value)
    if parsed is None:
        return None
    return parsed.timestamp() * 1000.0


def day_bucket(value: Any) -> str:
    """Return the UTC calendar day (YYYY-MM-DD) of a timestamp, or ``""``."""
    parsed = parse_iso(value)
    if parsed is None:
        return ""
    return parsed.astimezone(timezone.utc).date().isoformat()


def file_mtime(path: Path) -> datetime:
    try:
        return datetime.fromtimestamp(path.stat().st_mtime, timezone.utc)
    except OSError:
        return datetime.now(timezone.utc)


def offset_timestamp(base: datetime, offset_ms: int) -> str:
    """Synthesize a timestamp `offset_ms` milliseconds after `base`."""
    return format_datetime_utc(base + timedelta(milliseconds=offset_ms))
