"""Datetime helpers."""

from __future__ import annotations

from typing import Any

import pendulum

UTC = "UTC"


def now_utc() -> pendulum.DateTime:
    return pendulum.now(UTC)


def day_utc(value: pendulum.DateTime | None = None) -> str:
    """Calendar day in UTC as ``YYYY-MM-DD``."""
    moment = (value or now_utc()).in_timezone(UTC)
    return moment.format("YYYY-MM-DD")


def isoformat(value: pendulum.DateTime) -> str:
    return value.in_timezone(UTC).to_iso8601_string()


def parse_timestamp(value: Any) -> pendulum.DateTime | None:
    """Parse an ISO string or epoch (seconds or milliseconds) into a UTC datetime.

    Returns None for anything that cannot be interpreted as a point in time.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        seconds = value / 1000 if value > 1e11 else value
        try:
            return pendulum.from_timestamp(seconds, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and value.strip():
        try:
            parsed = pendulum.parse(value.strip(), tz=UTC)
        except ValueError:
            return None
        if not isinstance(parsed, pendulum.DateTime):
            return None
        return parsed.in_timezone(UTC)
    return None


def age_in_days(timestamp: pendulum.DateTime, now: pendulum.DateTime) -> float:
    return (now - timestamp).total_seconds() / 86400
