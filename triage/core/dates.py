"""Timestamp helpers shared by the refresh cycle and the view builder."""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(moment: datetime) -> str:
    """Format an aware datetime as ISO 8601 with a trailing Z."""
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO date or timestamp into an aware UTC datetime.

    Accepts "2026-02-07", "2026-02-07T14:00:00Z" and offset forms.
    Naive values are taken as UTC. Returns None for empty or invalid input.
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def date_key(value: str | None) -> str | None:
    """Return the UTC calendar day (YYYY-MM-DD) of a timestamp, or None."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return None
    return parsed.date().isoformat()


def reference_time(created_at: str | None, meeting_date: str | None) -> datetime | None:
    """Aging reference for a task: created_at, falling back to meeting_date."""
    return parse_timestamp(created_at) or parse_timestamp(meeting_date)
