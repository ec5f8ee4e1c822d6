"""Shared timeframe policy.

All callers that need concrete bounds go through ``normalize_timeframe``:
when either bound is missing or unparseable the window becomes the last
``lookback_minutes`` minutes ending at ``now`` (call time unless the caller
passes a run-start time).
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

from src.core.contracts.content import Timeframe

DEFAULT_LOOKBACK_MINUTES = 5


def parse_iso(value: str | None) -> datetime | None:
    if not value or not value.strip():
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
    return parsed


def to_iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def default_window(now: datetime | None = None, lookback_minutes: int = DEFAULT_LOOKBACK_MINUTES) -> tuple[str, str]:
    end = now or datetime.now(timezone.utc)
    start = end - timedelta(minutes=lookback_minutes)
    return to_iso(start), to_iso(end)


def has_complete_bounds(tf: Timeframe) -> bool:
    start = parse_iso(tf.start_time)
    end = parse_iso(tf.end_time)
    return start is not None and end is not None and start <= end


def normalize_timeframe(
    tf: Timeframe | None,
    now: datetime | None = None,
    lookback_minutes: int = DEFAULT_LOOKBACK_MINUTES,
) -> Timeframe:
    """Return a timeframe with concrete ISO bounds, falling back to the default window."""
    if tf is not None and has_complete_bounds(tf):
        return tf.model_copy(update={
            "start_time": to_iso(parse_iso(tf.start_time)),
            "end_time": to_iso(parse_iso(tf.end_time)),
        })
    start, end = default_window(now, lookback_minutes)
    explanation = f"defaulted to last {lookback_minutes} minutes"
    if tf is not None and tf.explanation:
        explanation = f"{tf.explanation} ({explanation})"
    return Timeframe(
        type=tf.type if tf is not None and tf.type != "none" else "relative",
        start_time=start,
        end_time=end,
        explanation=explanation,
    )


def search_window(
    tf: Timeframe | None,
    now: datetime | None = None,
    lookback_minutes: int = DEFAULT_LOOKBACK_MINUTES,
) -> tuple[str | None, str | None]:
    """Bounds for a retrieval query. ``type: none`` searches without bounds."""
    if tf is None or tf.type == "none":
        return None, None
    normalized = normalize_timeframe(tf, now=now, lookback_minutes=lookback_minutes)
    return normalized.start_time, normalized.end_time
