"""Tests for the reporting-process extension: contexts, thresholds and the new-app check."""

from datetime import date, datetime, timedelta

import pytest

from usagewatch.reporting.extension import (
    CONTEXT_APP_USAGE,
    CONTEXT_NEW_APP_DETECTION,
    CONTEXT_TOTAL_ACTIVITY,
    EVENT_APP_USAGE_TRACKING,
    EVENT_DAILY_SCREEN_TIME,
    EVENT_NEW_APP_DETECTION,
    ActivityReportExtension,
)
from usagewatch.schemas.usage import ActivitySegment
from usagewatch.services.shared_state import NEW_APP_DETECTIONS_KEY, OBSERVED_APPS_KEY

TODAY = date(2025, 7, 2)


def _segments(durations: dict, start: datetime = datetime(2025, 7, 2, 10, 0)):
    return iter([ActivitySegment(
        start_time=start,
        end_time=start + timedelta(minutes=15),
        per_app_duration=durations,
    )])


@pytest.fixture
def extension(aggregator_state) -> ActivityReportExtension:
    return ActivityReportExtension(aggregator_state, today=lambda: TODAY, clock=lambda: 1000.0)


class TestIntervals:
    def test_app_usage_context_aggregates(self, extension, aggregator_state, store):
        extension.interval_did_end({CONTEXT_APP_USAGE: _segments({"A": 120, "B": 30})})

        assert aggregator_state.read_usage_record("A").cumulative_duration == 120
        assert store.get(OBSERVED_APPS_KEY) == ["A", "B"]

    def test_total_activity_context_adds_to_day(self, extension, aggregator_state):
        extension.interval_did_start({CONTEXT_TOTAL_ACTIVITY: _segments({"A": 120, "B": 30})})
        extension.interval_did_end({CONTEXT_TOTAL_ACTIVITY: _segments({"A": 50})})

        assert aggregator_state.read_daily_screen_time("2025-07-02") == 200

    def test_total_activity_does_not_touch_usage_keys(self, extension, store):
        extension.interval_did_end({CONTEXT_TOTAL_ACTIVITY: _segments({"A": 120})})

        assert store.keys("app_usage_") == []

    def test_unknown_context_ignored(self, extension, store):
        extension.interval_did_end({"Web Usage": _segments({"A": 120})})

        assert store.keys() == []


class TestThresholds:
    def test_unknown_event_is_ignored(self, extension, store):
        assert extension.event_did_reach_threshold("BedtimeStarted", _segments({"A": 1})) is False
        assert store.keys() == []

    def test_daily_screen_time_overwrites(self, extension, aggregator_state):
        extension.interval_did_end({CONTEXT_TOTAL_ACTIVITY: _segments({"A": 500})})

        assert extension.event_did_reach_threshold(EVENT_DAILY_SCREEN_TIME, _segments({"A": 3600}))
        assert aggregator_state.read_daily_screen_time("2025-07-02") == 3600

    def test_app_usage_tracking_bounded(self, extension, aggregator_state):
        for _ in range(105):
            extension.event_did_reach_threshold(EVENT_APP_USAGE_TRACKING, _segments({"A": 10}))

        entries = aggregator_state.read_detailed_usage("A")
        assert len(entries) == 100
        assert entries[-1] == {"bundleIdentifier": "A", "duration": 10, "timestamp": 1000.0}


class TestNewAppCheck:
    def test_queues_apps_missing_from_baseline(self, extension, scheduler_state, store):
        scheduler_state.write_known_apps({"A"})

        added = extension.event_did_reach_threshold(EVENT_NEW_APP_DETECTION, _segments({"A": 1, "B": 1}))
        extension.interval_did_end({CONTEXT_NEW_APP_DETECTION: _segments({"B": 1, "C": 1})})

        assert added is True
        assert store.get(NEW_APP_DETECTIONS_KEY) == ["B", "C"]

    def test_adopted_apps_are_pruned(self, extension, scheduler_state, store):
        scheduler_state.write_known_apps({"A"})
        extension.detect_new_apps(_segments({"B": 1}))

        scheduler_state.write_known_apps({"A", "B"})
        extension.detect_new_apps(_segments({"A": 1}))

        assert store.get(NEW_APP_DETECTIONS_KEY) == []

    def test_check_waits_for_baseline(self, extension, store):
        assert extension.detect_new_apps(_segments({"A": 1})) == []
        assert not store.contains(NEW_APP_DETECTIONS_KEY)

    def test_check_never_writes_baseline(self, extension, scheduler_state):
        scheduler_state.write_known_apps({"A"})
        extension.detect_new_apps(_segments({"B": 1}))

        assert scheduler_state.read_known_apps() == {"A"}
