"""Shared timeframe normalisation."""

from datetime import datetime, timedelta, timezone

from src.core.contracts.content import Timeframe
from src.core.timeframes import normalize_timeframe, parse_iso, search_window

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class TestNormalizeTimeframe:
    def test_none_type_defaults_to_last_five_minutes(self):
        tf = normalize_timeframe(Timeframe(type="none"), now=NOW)

        assert parse_iso(tf.end_time) == NOW
        assert parse_iso(tf.start_time) == NOW - timedelta(minutes=5)
        assert tf.type == "relative"
        assert "last 5 minutes" in tf.explanation

    def test_missing_end_bound_falls_back(self):
        tf = normalize_timeframe(Timeframe(type="relative", start_time="2024-03-01T10:00:00Z"), now=NOW)

        assert parse_iso(tf.start_time) == NOW - timedelta(minutes=5)

    def test_unparseable_bound_falls_back(self):
        tf = normalize_timeframe(Timeframe(type="specific", start_time="yesterday", end_time="today"), now=NOW)

        assert parse_iso(tf.end_time) == NOW
        assert tf.type == "specific"

    def test_complete_bounds_are_kept(self):
        tf = normalize_timeframe(
            Timeframe(type="specific", start_time="2024-01-01T00:00:00+00:00", end_time="2024-01-10T00:00:00Z"),
            now=NOW,
        )

        assert tf.start_time == "2024-01-01T00:00:00Z"
        assert tf.end_time == "2024-01-10T00:00:00Z"

    def test_lookback_is_configurable(self):
        tf = normalize_timeframe(None, now=NOW, lookback_minutes=15)

        assert parse_iso(tf.start_time) == NOW - timedelta(minutes=15)


class TestSearchWindow:
    def test_none_searches_unbounded(self):
        assert search_window(Timeframe(type="none"), now=NOW) == (None, None)
        assert search_window(None, now=NOW) == (None, None)

    def test_relative_without_bounds_gets_default_window(self):
        start, end = search_window(Timeframe(type="relative"), now=NOW)

        assert parse_iso(end) - parse_iso(start) == timedelta(minutes=5)
