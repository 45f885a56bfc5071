"""Tests for UTC timestamp helpers."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest

from lesson_spine.core.timestamps import ensure_utc, parse_timestamp, to_iso8601, utc_now


class TestParseTimestamp:
    def test_z_suffix(self):
        assert parse_timestamp("2030-01-01T09:00:00Z") == datetime(2030, 1, 1, 9, tzinfo=UTC)

    def test_offset_is_converted_to_utc(self):
        parsed = parse_timestamp("2030-01-01T11:00:00+02:00")
        assert parsed == datetime(2030, 1, 1, 9, tzinfo=UTC)
        assert parsed.utcoffset() == timedelta(0)

    def test_naive_string_is_taken_as_utc(self):
        assert parse_timestamp("2030-01-01T09:00:00") == datetime(2030, 1, 1, 9, tzinfo=UTC)

    def test_datetime_passthrough(self):
        local = datetime(2030, 1, 1, 4, tzinfo=timezone(timedelta(hours=-5)))
        assert parse_timestamp(local) == datetime(2030, 1, 1, 9, tzinfo=UTC)

    @pytest.mark.parametrize("value", ["", "   ", "tomorrow", "2030-13-01T00:00:00Z"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_timestamp(value)


class TestHelpers:
    def test_utc_now_is_aware(self):
        assert utc_now().tzinfo is not None

    def test_ensure_utc_naive(self):
        assert ensure_utc(datetime(2030, 1, 1)).tzinfo is UTC

    def test_to_iso8601(self):
        assert to_iso8601(None) is None
        assert to_iso8601(datetime(2030, 1, 1, tzinfo=UTC)) == "2030-01-01T00:00:00+00:00"
