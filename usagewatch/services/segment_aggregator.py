import logging
import time
import uuid
from typing import Callable, Dict, Iterable

from usagewatch.schemas.usage import ActivitySegment, AppUsageRecord, TimeRange
from usagewatch.services.shared_state import AggregatorStateHandle
from usagewatch.utils.constants import TIME_RANGE_RETENTION

logger = logging.getLogger(__name__)


def _new_session_id() -> str:
    return str(uuid.uuid4())


class SegmentAggregator:

    # Raw activity segments -> per-app cumulative / hourly / time-range records
    # Runs only in the reporting process (single writer of usage keys)

    def __init__(
        self,
        state: AggregatorStateHandle,
        retention: int = TIME_RANGE_RETENTION,
        session_id_factory: Callable[[], str] = _new_session_id,
        clock: Callable[[], float] = time.time,
    ):
        self.state = state
        self.retention = retention
        self.session_id_factory = session_id_factory
        self.clock = clock

    def aggregate(self, segments: Iterable[ActivitySegment]) -> Dict[str, AppUsageRecord]:
        # segments may be a one-shot iterator: consume exactly once
        records: Dict[str, AppUsageRecord] = {}
        segment_count = 0

        for segment in segments:
            segment_count += 1
            hour = segment.bucket_hour

            for app_id, duration in segment.per_app_duration.items():
                record = records.get(app_id)
                if record is None:
                    # read-modify-write against the shared store
                    record = self.state.read_usage_record(app_id)
                    records[app_id] = record

                # 1) cumulative total
                record.cumulative_duration += duration

                # 2) hour bucket (zero-duration segments leave buckets untouched)
                if duration > 0:
                    record.hourly_breakdown[hour] = record.hourly_breakdown.get(hour, 0.0) + duration

                # 3) exact time range, bounded FIFO
                record.time_ranges.append(TimeRange(
                    start=segment.start_time.timestamp(),
                    end=segment.end_time.timestamp(),
                    duration=duration,
                    session_id=self.session_id_factory(),
                ))
                if len(record.time_ranges) > self.retention:
                    record.time_ranges = record.time_ranges[-self.retention:]

        if not records:
            # no activity this interval: leave the previous snapshot in place
            logger.info(f"No app activity in {segment_count} segments")
            return {}

        for record in records.values():
            self.state.write_usage_record(record)

        self.state.write_observed_apps(records.keys())
        self.state.touch_last_update(self.clock())

        logger.info(f"Aggregated {segment_count} segments into {len(records)} app usage records")
        return records
