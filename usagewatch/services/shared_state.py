"""
Flat key/value store shared by the reporting process and the host process.

The store offers whole-value get/set per key and nothing else: no
compare-and-swap, no multi-key transactions. Each key family has exactly one
writer, which is expressed by the two handle types below:

- AggregatorStateHandle: reporting process, owns usage/inventory keys
- SchedulerStateHandle: host process, owns the known-apps baseline and status
"""

import json
import logging
import time
from typing import Any, Dict, List, Optional, Set

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from usagewatch.database import SharedSessionLocal
from usagewatch.models.shared_state import SharedStateEntry
from usagewatch.schemas.usage import AppUsageRecord, TimeRange
from usagewatch.services.errors import KeyOwnershipError, MalformedStateError

logger = logging.getLogger(__name__)


# --- Aggregator-owned keys ---
APP_USAGE_PREFIX = "app_usage_"
HOURLY_BREAKDOWN_PREFIX = "hourly_breakdown_"
APP_USAGE_RANGES_PREFIX = "app_usage_ranges_"
DETAILED_USAGE_PREFIX = "detailed_app_usage_"
DAILY_SCREEN_TIME_PREFIX = "daily_screen_time_"
OBSERVED_APPS_KEY = "observed_apps"
LAST_ACTIVITY_UPDATE_KEY = "last_activity_update"
NEW_APP_DETECTIONS_KEY = "new_app_detections"

# --- Scheduler-owned keys ---
KNOWN_APPS_KEY = "known_apps"
RECONCILIATION_ERROR_KEY = "reconciliation_error"
LAST_RECONCILIATION_KEY = "last_reconciliation"


AGGREGATOR_KEY_PREFIXES = (
    APP_USAGE_PREFIX,   # also covers app_usage_ranges_
    HOURLY_BREAKDOWN_PREFIX,
    DETAILED_USAGE_PREFIX,
    DAILY_SCREEN_TIME_PREFIX,
)
AGGREGATOR_KEYS = (OBSERVED_APPS_KEY, LAST_ACTIVITY_UPDATE_KEY, NEW_APP_DETECTIONS_KEY)

SCHEDULER_KEYS = (KNOWN_APPS_KEY, RECONCILIATION_ERROR_KEY, LAST_RECONCILIATION_KEY)


def is_aggregator_key(key: str) -> bool:
    return key in AGGREGATOR_KEYS or key.startswith(AGGREGATOR_KEY_PREFIXES)


def is_scheduler_key(key: str) -> bool:
    return key in SCHEDULER_KEYS


class SharedStateStore:
    """Raw JSON blob store backed by the ``shared_state`` table."""

    def __init__(self, session_factory=SharedSessionLocal):
        self.session_factory = session_factory

    def get(self, key: str, default: Any = None) -> Any:
        db = self.session_factory()
        try:
            entry = db.get(SharedStateEntry, key)
            if entry is None:
                return default
            try:
                return json.loads(entry.value)
            except ValueError:
                raise MalformedStateError(key, "value is not valid JSON")
        finally:
            db.close()

    def contains(self, key: str) -> bool:
        db = self.session_factory()
        try:
            return db.get(SharedStateEntry, key) is not None
        finally:
            db.close()

    def set(self, key: str, value: Any) -> None:
        db = self.session_factory()
        try:
            encoded = json.dumps(value)
            entry = db.get(SharedStateEntry, key)
            if entry is None:
                db.add(SharedStateEntry(key=key, value=encoded))
            else:
                entry.value = encoded
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise
        finally:
            db.close()

    def delete(self, key: str) -> None:
        db = self.session_factory()
        try:
            db.query(SharedStateEntry).filter(SharedStateEntry.key == key).delete()
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise
        finally:
            db.close()

    def keys(self, prefix: str = "") -> List[str]:
        db = self.session_factory()
        try:
            query = db.query(SharedStateEntry.key)
            if prefix:
                query = query.filter(SharedStateEntry.key.startswith(prefix))
            return sorted(row[0] for row in query.all())
        finally:
            db.close()


def _read_id_list(store: SharedStateStore, key: str) -> Optional[List[str]]:
    # None when the key is absent; MalformedStateError when it is not a list of strings
    value = store.get(key)
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise MalformedStateError(key, "expected a list of app ids")
    return value


def _read_usage_record(store: SharedStateStore, app_id: str) -> AppUsageRecord:
    cumulative = store.get(APP_USAGE_PREFIX + app_id, 0.0)
    hourly = store.get(HOURLY_BREAKDOWN_PREFIX + app_id, {})
    ranges = store.get(APP_USAGE_RANGES_PREFIX + app_id, [])

    try:
        return AppUsageRecord(
            app_id=app_id,
            cumulative_duration=cumulative,
            hourly_breakdown=hourly,
            time_ranges=[TimeRange.model_validate(r) for r in ranges],
        )
    except (ValidationError, TypeError) as e:
        raise MalformedStateError(APP_USAGE_PREFIX + app_id, str(e))


class _StateHandle:
    family = ""

    def __init__(self, store: SharedStateStore):
        self.store = store

    def _owns(self, key: str) -> bool:
        raise NotImplementedError

    def _write(self, key: str, value: Any) -> None:
        if not self._owns(key):
            raise KeyOwnershipError(key, self.family)
        self.store.set(key, value)


class AggregatorStateHandle(_StateHandle):
    """Reporting-process view: writes usage/inventory keys, reads the baseline."""

    family = "aggregator"

    def _owns(self, key: str) -> bool:
        return is_aggregator_key(key)

    # reads
    def read_usage_record(self, app_id: str) -> AppUsageRecord:
        try:
            return _read_usage_record(self.store, app_id)
        except MalformedStateError as e:
            # Own data is unreadable: start the app over rather than stall reporting
            logger.warning(f"{e}; resetting usage record for {app_id}")
            return AppUsageRecord(app_id=app_id)

    def read_known_apps(self) -> Set[str]:
        try:
            return set(_read_id_list(self.store, KNOWN_APPS_KEY) or [])
        except MalformedStateError as e:
            logger.warning(str(e))
            return set()

    def read_new_app_detections(self) -> List[str]:
        try:
            return _read_id_list(self.store, NEW_APP_DETECTIONS_KEY) or []
        except MalformedStateError as e:
            logger.warning(str(e))
            return []

    def read_daily_screen_time(self, date_key: str) -> float:
        value = self.store.get(DAILY_SCREEN_TIME_PREFIX + date_key, 0.0)
        return float(value) if isinstance(value, (int, float)) else 0.0

    def read_detailed_usage(self, app_id: str) -> List[Dict[str, Any]]:
        value = self.store.get(DETAILED_USAGE_PREFIX + app_id, [])
        return value if isinstance(value, list) else []

    # writes
    def write_usage_record(self, record: AppUsageRecord) -> None:
        app_id = record.app_id
        self._write(APP_USAGE_PREFIX + app_id, record.cumulative_duration)
        self._write(
            HOURLY_BREAKDOWN_PREFIX + app_id,
            {str(hour): seconds for hour, seconds in sorted(record.hourly_breakdown.items())},
        )
        self._write(
            APP_USAGE_RANGES_PREFIX + app_id,
            [r.model_dump(by_alias=True) for r in record.time_ranges],
        )

    def write_observed_apps(self, app_ids) -> None:
        self._write(OBSERVED_APPS_KEY, sorted(set(app_ids)))

    def touch_last_update(self, timestamp: float = None) -> None:
        self._write(LAST_ACTIVITY_UPDATE_KEY, timestamp if timestamp is not None else time.time())

    def write_new_app_detections(self, app_ids: List[str]) -> None:
        self._write(NEW_APP_DETECTIONS_KEY, list(app_ids))

    def write_daily_screen_time(self, date_key: str, seconds: float) -> None:
        self._write(DAILY_SCREEN_TIME_PREFIX + date_key, seconds)

    def write_detailed_usage(self, app_id: str, entries: List[Dict[str, Any]]) -> None:
        self._write(DETAILED_USAGE_PREFIX + app_id, entries)


class SchedulerStateHandle(_StateHandle):
    """Host-process view: reads usage/inventory keys, writes the baseline and status."""

    family = "scheduler"

    def _owns(self, key: str) -> bool:
        return is_scheduler_key(key)

    # reads
    def read_observed_apps(self) -> Optional[Set[str]]:
        # None = no usable snapshot this pass (missing or malformed)
        try:
            app_ids = _read_id_list(self.store, OBSERVED_APPS_KEY)
        except MalformedStateError as e:
            logger.warning(f"{e}; treating as no data")
            return None
        return set(app_ids) if app_ids is not None else None

    def read_known_apps(self) -> Optional[Set[str]]:
        # None = no baseline yet (bootstrap)
        try:
            app_ids = _read_id_list(self.store, KNOWN_APPS_KEY)
        except MalformedStateError as e:
            logger.warning(f"{e}; rebuilding baseline")
            return None
        return set(app_ids) if app_ids is not None else None

    def read_new_app_detections(self) -> List[str]:
        try:
            return _read_id_list(self.store, NEW_APP_DETECTIONS_KEY) or []
        except MalformedStateError as e:
            logger.warning(str(e))
            return []

    def read_usage_record(self, app_id: str) -> Optional[AppUsageRecord]:
        try:
            return _read_usage_record(self.store, app_id)
        except MalformedStateError as e:
            logger.warning(str(e))
            return None

    def read_usage_app_ids(self) -> List[str]:
        # app_usage_ranges_* shares the app_usage_ prefix
        return sorted(
            key[len(APP_USAGE_PREFIX):]
            for key in self.store.keys(APP_USAGE_PREFIX)
            if not key.startswith(APP_USAGE_RANGES_PREFIX)
        )

    def read_last_activity_update(self) -> Optional[float]:
        value = self.store.get(LAST_ACTIVITY_UPDATE_KEY)
        return float(value) if isinstance(value, (int, float)) else None

    def read_status(self) -> Dict[str, Any]:
        last_success = self.store.get(LAST_RECONCILIATION_KEY)
        return {
            "last_error": self.store.get(RECONCILIATION_ERROR_KEY),
            "last_success": last_success if isinstance(last_success, (int, float)) else None,
        }

    # writes
    def write_known_apps(self, app_ids) -> None:
        self._write(KNOWN_APPS_KEY, sorted(set(app_ids)))

    def add_known_app(self, app_id: str) -> None:
        known = self.read_known_apps() or set()
        if app_id not in known:
            known.add(app_id)
            self.write_known_apps(known)

    def discard_known_app(self, app_id: str) -> None:
        known = self.read_known_apps()
        if known is not None and app_id in known:
            known.discard(app_id)
            self.write_known_apps(known)

    def set_error(self, message: str) -> None:
        self._write(RECONCILIATION_ERROR_KEY, message)

    def mark_success(self, timestamp: float = None) -> None:
        self._write(RECONCILIATION_ERROR_KEY, None)
        self._write(LAST_RECONCILIATION_KEY, timestamp if timestamp is not None else time.time())
