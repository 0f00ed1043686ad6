"""
Deletion lifecycle for removed apps.

Per ``{owner_id}_{app_id}`` record::

    [no record] -> detected -> persisted -> notified -> restored | removed

A removal is only recorded when no unprocessed record exists for the key,
so repeated detections (e.g. a pass re-run after a failed baseline advance)
never create a second open record. Restore and remove are guardian actions
and both close the record (``is_processed = True``).
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, List, Optional

from usagewatch.models.deleted_apps import (
    STATE_NOTIFIED,
    STATE_PERSISTED,
    STATE_REMOVED,
    STATE_RESTORED,
)
from usagewatch.services.errors import (
    AlreadyProcessedError,
    RecordNotFoundError,
    RecordOwnershipError,
    RemoteSyncError,
)
from usagewatch.services.notification_service import NotificationDispatcher
from usagewatch.services.owner_locks import OwnerLocks
from usagewatch.services.remote_sync import RemoteSyncAdapter
from usagewatch.services.restriction_service import RestrictionService
from usagewatch.services.shared_state import SchedulerStateHandle
from usagewatch.utils.constants import (
    CATEGORY_APP_DELETED,
    COLLECTION_DELETED_APPS,
    composite_key,
    resolve_display_name,
)

logger = logging.getLogger(__name__)


@dataclass
class RemovalOutcome:
    created: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)   # already tracked
    failed: List[str] = field(default_factory=list)    # remote write failed

    @property
    def all_persisted(self) -> bool:
        return not self.failed


class DeletionLifecycleManager:

    def __init__(
        self,
        remote: RemoteSyncAdapter,
        notifier: NotificationDispatcher,
        restrictions: RestrictionService,
        state: SchedulerStateHandle,
        locks: OwnerLocks,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.remote = remote
        self.notifier = notifier
        self.restrictions = restrictions
        self.state = state
        self.locks = locks
        self.now = now

    # --- detection (called from a reconciliation pass) ---

    def process_removals(self, owner_id: str, removed_app_ids: Iterable[str]) -> RemovalOutcome:
        outcome = RemovalOutcome()

        for app_id in sorted(removed_app_ids):
            try:
                if self._detect(owner_id, app_id):
                    outcome.created.append(app_id)
                else:
                    outcome.skipped.append(app_id)
            except RemoteSyncError as e:
                # retried by the next scheduled pass
                logger.error(f"Failed to record deletion of {app_id}: {e}")
                outcome.failed.append(app_id)

        return outcome

    def _detect(self, owner_id: str, app_id: str) -> bool:
        key = composite_key(owner_id, app_id)

        # 1) at most one unprocessed record per key
        existing = self.remote.get(COLLECTION_DELETED_APPS, key)
        if existing is not None and not existing.get("is_processed"):
            logger.info(f"Deletion of {app_id} already tracked ({key}), skipping")
            return False

        # 2) detected: snapshot of monitoring status at detection time
        display_name = resolve_display_name(app_id)
        was_monitored = self.restrictions.is_monitored(owner_id, app_id)

        # 3) persisted (merge keeps fields a later update adds)
        self.remote.upsert(COLLECTION_DELETED_APPS, key, {
            "app_id": app_id,
            "display_name": display_name,
            "owner_id": owner_id,
            "detected_at": self.now(),
            "was_monitored": was_monitored,
            "is_processed": False,
            "state": STATE_PERSISTED,
            "notified_at": None,
            "processed_at": None,
        })
        logger.info(f"App deleted: {display_name} ({app_id})")

        # 4) notified (best-effort)
        self._notify(owner_id, app_id, display_name, key)
        return True

    def _notify(self, owner_id: str, app_id: str, display_name: str, key: str) -> None:
        try:
            delivered = self.notifier.notify(CATEGORY_APP_DELETED, {
                "appId": app_id,
                "displayName": display_name,
                "ownerId": owner_id,
            })
        except Exception as e:
            logger.warning(f"Deletion notification for {app_id} failed: {e}")
            return

        if not delivered:
            logger.warning(f"Deletion notification for {app_id} was not delivered")
            return

        try:
            self.remote.upsert(COLLECTION_DELETED_APPS, key, {
                "state": STATE_NOTIFIED,
                "notified_at": self.now(),
            })
        except RemoteSyncError as e:
            logger.warning(f"Could not mark {key} as notified: {e}")

    # --- guardian actions ---

    def list_pending(self, owner_id: str) -> List[dict]:
        return self.remote.query_unprocessed(COLLECTION_DELETED_APPS, owner_id)

    def restore(self, owner_id: str, doc_id: str) -> dict:
        # recreate the restriction, close the record, re-add to the baseline
        with self.locks.hold(owner_id):
            record = self._load_open_record(owner_id, doc_id)
            app_id = record["app_id"]

            self.restrictions.create_default(owner_id, app_id)
            self._mark_processed(doc_id, STATE_RESTORED)
            self.state.add_known_app(app_id)

            logger.info(f"Restored {record['display_name']} to monitoring")
            return self.remote.get(COLLECTION_DELETED_APPS, doc_id)

    def remove(self, owner_id: str, doc_id: str) -> dict:
        # drop the restriction, close the record, keep it out of the baseline
        with self.locks.hold(owner_id):
            record = self._load_open_record(owner_id, doc_id)
            app_id = record["app_id"]

            self.restrictions.delete(owner_id, app_id)
            self._mark_processed(doc_id, STATE_REMOVED)
            self.state.discard_known_app(app_id)

            logger.info(f"Removed {record['display_name']} from monitoring")
            return self.remote.get(COLLECTION_DELETED_APPS, doc_id)

    def _load_open_record(self, owner_id: str, doc_id: str) -> dict:
        record: Optional[dict] = self.remote.get(COLLECTION_DELETED_APPS, doc_id)
        if record is None:
            raise RecordNotFoundError(COLLECTION_DELETED_APPS, doc_id)
        if record["owner_id"] != owner_id:
            raise RecordOwnershipError(doc_id, owner_id)
        if record["is_processed"]:
            raise AlreadyProcessedError(doc_id)
        return record

    def _mark_processed(self, doc_id: str, state: str) -> None:
        self.remote.upsert(COLLECTION_DELETED_APPS, doc_id, {
            "is_processed": True,
            "state": state,
            "processed_at": self.now(),
        })
