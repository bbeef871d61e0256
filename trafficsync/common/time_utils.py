"""Clock helpers for record timestamps and log lines."""

from __future__ import annotations

from datetime import datetime, timezone


def local_now() -> datetime:
    return datetime.now().astimezone()


def utc_timestamp_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat(timespec="milliseconds")


def format_clock(moment: datetime) -> str:
    """Display form used on camera cards: 24h hour and minute."""
    return moment.strftime("%H:%M")


def parse_update_time(value: object, fallback: datetime) -> datetime:
    """Parse an upstream update stamp.

    ArcGIS date fields arrive as epoch milliseconds; some exports carry ISO 8601
    strings instead. Anything else resolves to ``fallback``.
    """
    if value is None or value == "" or isinstance(value, bool):
        return fallback
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc).astimezone()
        except (OverflowError, OSError, ValueError):
            return fallback
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return fallback
        if parsed.tzinfo is None:
            return parsed
        return parsed.astimezone()
    return fallback
