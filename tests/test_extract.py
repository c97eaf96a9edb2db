"""
Tests for ingest/extract.py - PHIVOLCS table rows to Earthquake records.
"""

import math
from datetime import datetime, timezone

import pytest
import pytz

from ingest.extract import (
    extract_events,
    find_header_mismatch,
    iter_events,
    parse_event_time,
    parse_float,
)
from tests.helpers import table_html


def _millis(*args):
    return int(datetime(*args, tzinfo=timezone.utc).timestamp() * 1000)


class TestParseFloat:
    """Leading-number parsing."""

    @pytest.mark.parametrize("text,expected", [
        ("14.5", 14.5),
        ("  121.0 ", 121.0),
        ("10 km", 10.0),
        ("-3e2x", -300.0),
        (".5", 0.5),
        ("+7.", 7.0),
    ])
    def test_numeric_prefix(self, text, expected):
        assert parse_float(text) == expected

    @pytest.mark.parametrize("text", ["", "x", "N/A", "-", "km 10"])
    def test_no_number_is_nan(self, text):
        assert math.isnan(parse_float(text))

    def test_infinity(self):
        assert parse_float("Infinity") == math.inf
        assert parse_float("-Infinity") == -math.inf


class TestParseEventTime:
    """Published timestamps are Philippine time."""

    def test_iso_like(self):
        assert parse_event_time("2024-01-05 10:00") == _millis(2024, 1, 5, 2, 0)

    def test_phivolcs_format(self):
        assert parse_event_time("05 January 2024 - 10:00 AM") == _millis(2024, 1, 5, 2, 0)

    def test_unparseable(self):
        assert parse_event_time("unknown") is None
        assert parse_event_time("") is None


class TestDaylightSavingZone:
    """Wall-clock times that a DST zone skips or repeats."""

    @pytest.fixture(autouse=True)
    def new_york(self, monkeypatch):
        monkeypatch.setattr("ingest.extract.SOURCE_TZ", pytz.timezone("America/New_York"))

    def test_skipped_hour_moves_forward(self):
        # 02:30 does not exist on 2024-03-10; 03:00 EDT is 07:00 UTC
        assert parse_event_time("2024-03-10 02:30") == _millis(2024, 3, 10, 7, 0)

    def test_repeated_hour_is_untimed(self):
        assert parse_event_time("2024-11-03 01:30") is None

    def test_rows_survive_transitions(self):
        html = table_html([
            ["2024-03-10 02:30", "14.5", "121.0", "10", "4.2", "Spring"],
            ["2024-11-03 01:30", "14.5", "121.0", "10", "3.1", "Fall"],
        ])
        events = extract_events(html)

        assert [e.place for e in events] == ["Spring", "Fall"]
        assert events[0].time == _millis(2024, 3, 10, 7, 0)
        assert events[1].time is None


class TestExtractEvents:
    """Row filtering and positional mapping."""

    def test_two_row_example(self):
        """Second row has a non-numeric latitude and is dropped."""
        html = table_html([
            ["2024-01-05 10:00", "14.5", "121.0", "10", "4.2", "Quezon City"],
            ["bad", "x", "121.0", "10", "4.2", "Place"],
        ])
        events = extract_events(html)

        assert len(events) == 1
        ev = events[0]
        assert ev.lat == 14.5
        assert ev.lon == 121.0
        assert ev.mag == 4.2
        assert ev.depth == 10.0
        assert ev.place == "Quezon City"
        assert ev.date == "2024-01-05 10:00"
        assert ev.time == _millis(2024, 1, 5, 2, 0)

    def test_short_rows_skipped(self):
        html = table_html([
            ["2024-01-05 10:00", "14.5", "121.0", "10", "4.2"],
            ["2024-01-05 10:00"],
            [],
        ])
        assert extract_events(html) == []

    def test_extra_cells_ignored(self):
        html = table_html([
            ["2024-01-05 10:00", "14.5", "121.0", "10", "4.2", "Davao", "extra", "more"],
        ])
        events = extract_events(html)
        assert len(events) == 1
        assert events[0].place == "Davao"

    def test_non_numeric_depth_kept(self):
        html = table_html([["2024-01-05 10:00", "14.5", "121.0", "n/a", "4.2", "Cebu"]])
        events = extract_events(html)
        assert len(events) == 1
        assert events[0].depth is None

    def test_unparseable_date_kept(self):
        html = table_html([["unknown", "14.5", "121.0", "10", "4.2", "Cebu"]])
        events = extract_events(html)
        assert len(events) == 1
        assert events[0].date == "unknown"
        assert events[0].time is None

    @pytest.mark.parametrize("col", [1, 2, 4])
    def test_gating_fields_drop_row(self, col):
        row = ["2024-01-05 10:00", "14.5", "121.0", "10", "4.2", "Cebu"]
        row[col] = "--"
        assert extract_events(table_html([row])) == []

    def test_infinite_latitude_dropped(self):
        row = ["2024-01-05 10:00", "Infinity", "121.0", "10", "4.2", "Cebu"]
        assert extract_events(table_html([row])) == []

    def test_nested_markup_and_whitespace_stripped(self):
        row = [
            "\n  <span>2024-01-05 10:00</span>  ",
            " 14.5 ",
            "121.0",
            "10",
            "<b>4.2</b>",
            '<a href="/x">012 km N 45° W of\n   <b>Quezon</b> City</a>',
        ]
        events = extract_events(table_html([row]))
        assert len(events) == 1
        assert events[0].mag == 4.2
        assert events[0].place == "012 km N 45° W of Quezon City"

    def test_rows_from_every_table(self):
        html = """
        <html><body>
          <table><tr><td>2024-01-05 10:00</td><td>14.5</td><td>121.0</td>
                     <td>10</td><td>4.2</td><td>A</td></tr></table>
          <p>between</p>
          <table><tr><td>2024-01-06 10:00</td><td>10.1</td><td>125.0</td>
                     <td>5</td><td>3.1</td><td>B</td></tr></table>
        </body></html>
        """
        assert {e.place for e in extract_events(html)} == {"A", "B"}

    def test_invariant_holds_on_mixed_input(self):
        rows = [
            ["2024-01-05 10:00", "14.5", "121.0", "10", "4.2", "ok"],
            ["2024-01-05 10:00", "", "121.0", "10", "4.2", "no lat"],
            ["2024-01-05 10:00", "14.5", "abc", "10", "4.2", "no lon"],
            ["2024-01-05 10:00", "14.5", "121.0", "10", "NaN", "no mag"],
            ["x", "1", "2", "y", "3", "partial"],
            ["only", "three", "cells"],
        ]
        events = extract_events(table_html(rows))
        assert [e.place for e in events] == ["ok", "partial"]
        for e in events:
            assert math.isfinite(e.lat)
            assert math.isfinite(e.lon)
            assert math.isfinite(e.mag)

    @pytest.mark.parametrize("markup", ["", "not html at all", "<table><tr><td>", "<<<>>>"])
    def test_garbage_never_raises(self, markup):
        assert extract_events(markup) == []

    def test_iter_events_is_lazy(self):
        html = table_html([["2024-01-05 10:00", "14.5", "121.0", "10", "4.2", "A"]])
        it = iter_events(html)
        assert next(it).place == "A"
        with pytest.raises(StopIteration):
            next(it)


class TestHeaderMismatch:
    """Optional column-order check."""

    def test_expected_header(self):
        assert find_header_mismatch(table_html([])) == []

    def test_no_header(self):
        assert find_header_mismatch(table_html([], header=None)) == []

    def test_swapped_columns(self):
        header = ("Date - Time", "Longitude", "Latitude", "Depth", "Mag", "Location")
        assert find_header_mismatch(table_html([], header=header)) == [1, 2]

    def test_mismatch_only_warns(self, caplog):
        header = ("Date - Time", "Longitude", "Latitude", "Depth", "Mag", "Location")
        html = table_html([["2024-01-05 10:00", "14.5", "121.0", "10", "4.2", "A"]], header=header)
        with caplog.at_level("WARNING"):
            events = extract_events(html)
        assert len(events) == 1
        assert "header" in caplog.text
