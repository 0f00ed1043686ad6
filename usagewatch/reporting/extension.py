"""
Reporting-process side of the system.

The operating environment hands over activity reports per context on
interval start/end and when a monitored threshold is crossed. Everything
here writes only aggregator-owned shared-state keys; the process has no
network access and never touches the remote store.
"""

import logging
import time
from datetime import date
from typing import Callable, Dict, Iterable, List

from usagewatch.schemas.usage import ActivitySegment
from usagewatch.services.segment_aggregator import SegmentAggregator
from usagewatch.services.shared_state import AggregatorStateHandle
from usagewatch.utils.constants import DETAILED_USAGE_RETENTION

logger = logging.getLogger(__name__)


# Report contexts
CONTEXT_TOTAL_ACTIVITY = "Total Activity"
CONTEXT_APP_USAGE = "App Usage"
CONTEXT_NEW_APP_DETECTION = "New App Detection"

# Threshold event names
EVENT_DAILY_SCREEN_TIME = "DailyScreenTime"
EVENT_NEW_APP_DETECTION = "NewAppDetection"
EVENT_APP_USAGE_TRACKING = "AppUsageTracking"


def _app_totals(segments: Iterable[ActivitySegment]) -> Dict[str, float]:
    totals: Dict[str, float] = {}
    for segment in segments:
        for app_id, duration in segment.per_app_duration.items():
            totals[app_id] = totals.get(app_id, 0.0) + duration
    return totals


class ActivityReportExtension:

    def __init__(
        self,
        state: AggregatorStateHandle,
        aggregator: SegmentAggregator = None,
        today: Callable[[], date] = date.today,
        clock: Callable[[], float] = time.time,
    ):
        self.state = state
        self.aggregator = aggregator or SegmentAggregator(state, clock=clock)
        self.today = today
        self.clock = clock

        self._context_handlers = {
            CONTEXT_TOTAL_ACTIVITY: self.store_total_activity,
            CONTEXT_APP_USAGE: self.aggregator.aggregate,
            CONTEXT_NEW_APP_DETECTION: self.detect_new_apps,
        }
        self._threshold_handlers = {
            EVENT_DAILY_SCREEN_TIME: self.handle_daily_screen_time_threshold,
            EVENT_NEW_APP_DETECTION: self.detect_new_apps,
            EVENT_APP_USAGE_TRACKING: self.handle_app_usage_tracking,
        }

    # --- triggers ---

    def interval_did_start(self, reports: Dict[str, Iterable[ActivitySegment]]) -> None:
        logger.info("Device activity interval started")
        self._process_reports(reports)

    def interval_did_end(self, reports: Dict[str, Iterable[ActivitySegment]]) -> None:
        logger.info("Device activity interval ended")
        self._process_reports(reports)

    def event_did_reach_threshold(self, event_name: str, segments: Iterable[ActivitySegment]) -> bool:
        handler = self._threshold_handlers.get(event_name)
        if handler is None:
            logger.warning(f"Unknown threshold event: {event_name}")
            return False

        logger.info(f"Event threshold reached: {event_name}")
        handler(segments)
        return True

    def _process_reports(self, reports: Dict[str, Iterable[ActivitySegment]]) -> None:
        for context, segments in reports.items():
            handler = self._context_handlers.get(context)
            if handler is None:
                logger.warning(f"Unknown report context: {context}")
                continue
            logger.info(f"Activity report for context: {context}")
            handler(segments)

    # --- handlers ---

    def store_total_activity(self, segments: Iterable[ActivitySegment]) -> float:
        # interval total added to today's screen time
        total = sum(_app_totals(segments).values())
        if total <= 0:
            return 0.0

        date_key = self.today().isoformat()
        day_total = self.state.read_daily_screen_time(date_key) + total
        self.state.write_daily_screen_time(date_key, day_total)
        logger.info(f"Stored daily screen time: {day_total:.0f}s for {date_key}")
        return day_total

    def handle_daily_screen_time_threshold(self, segments: Iterable[ActivitySegment]) -> float:
        # threshold report carries the whole day so far: overwrite, do not add
        total = sum(_app_totals(segments).values())
        date_key = self.today().isoformat()
        self.state.write_daily_screen_time(date_key, total)
        logger.info(f"Daily screen time threshold reached: {total:.0f}s for {date_key}")
        return total

    def detect_new_apps(self, segments: Iterable[ActivitySegment]) -> List[str]:
        # queue apps missing from the host's baseline; the host owns known_apps
        current = set(_app_totals(segments))
        known = self.state.read_known_apps()
        if not known:
            # host has not run its bootstrap pass yet
            logger.info("No known-apps baseline yet, skipping new app check")
            return []
        new_apps = sorted(current - known)

        queue = self.state.read_new_app_detections()
        # entries the host has since adopted into its baseline are dropped
        pending = [app_id for app_id in queue if app_id not in known]
        added = [app_id for app_id in new_apps if app_id not in pending]

        if added or len(pending) != len(queue):
            self.state.write_new_app_detections(pending + added)

        if added:
            logger.info(f"Detected {len(added)} new apps: {added}")
        return added

    def handle_app_usage_tracking(self, segments: Iterable[ActivitySegment]) -> int:
        # per-app detail entries with timestamp, bounded
        now = self.clock()
        totals = _app_totals(segments)

        for app_id, duration in sorted(totals.items()):
            entries = self.state.read_detailed_usage(app_id)
            entries.append({
                "bundleIdentifier": app_id,
                "duration": duration,
                "timestamp": now,
            })
            self.state.write_detailed_usage(app_id, entries[-DETAILED_USAGE_RETENTION:])

        logger.info(f"Stored detailed usage for {len(totals)} apps")
        return len(totals)
