import logging
from datetime import datetime
from typing import Callable, Iterable, List

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
from usagewatch.utils.constants import (
    CATEGORY_NEW_APP_DETECTED,
    COLLECTION_NEW_APP_DETECTIONS,
    composite_key,
    resolve_display_name,
)

logger = logging.getLogger(__name__)


class NewAppDetectionManager:

    # "new app" signals: one open newAppDetections record per key,
    # guardian either adds the app to monitoring or ignores it.
    # Signals are best-effort and never retried within a pass.

    def __init__(
        self,
        remote: RemoteSyncAdapter,
        notifier: NotificationDispatcher,
        restrictions: RestrictionService,
        locks: OwnerLocks,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.remote = remote
        self.notifier = notifier
        self.restrictions = restrictions
        self.locks = locks
        self.now = now

    def signal_new_apps(
        self, owner_id: str, app_ids: Iterable[str], queued: Iterable[str] = ()
    ) -> List[str]:
        # app_ids: new in the observed inventory; queued: reporting-side detection queue
        observed_new = set(app_ids)
        signalled = []

        for app_id in sorted(observed_new | set(queued)):
            key = composite_key(owner_id, app_id)
            try:
                existing = self.remote.get(COLLECTION_NEW_APP_DETECTIONS, key)
                if existing is not None and not existing.get("is_processed"):
                    continue
                if existing is not None and app_id not in observed_new:
                    # queued id the guardian already answered
                    continue

                display_name = resolve_display_name(app_id)
                self.remote.upsert(COLLECTION_NEW_APP_DETECTIONS, key, {
                    "app_id": app_id,
                    "display_name": display_name,
                    "owner_id": owner_id,
                    "detected_at": self.now(),
                    "is_processed": False,
                    "processed_at": None,
                })
            except RemoteSyncError as e:
                logger.warning(f"Could not record new app {app_id}: {e}")
                continue

            try:
                self.notifier.notify(CATEGORY_NEW_APP_DETECTED, {
                    "appId": app_id,
                    "displayName": display_name,
                    "ownerId": owner_id,
                })
            except Exception as e:
                logger.warning(f"New app notification for {app_id} failed: {e}")

            logger.info(f"New app detected: {display_name} ({app_id})")
            signalled.append(app_id)

        return signalled

    def list_pending(self, owner_id: str) -> List[dict]:
        return self.remote.query_unprocessed(COLLECTION_NEW_APP_DETECTIONS, owner_id)

    def add_to_monitoring(self, owner_id: str, doc_id: str) -> dict:
        with self.locks.hold(owner_id):
            record = self._load_open_record(owner_id, doc_id)
            self.restrictions.create_default(owner_id, record["app_id"])
            self._mark_processed(doc_id)
            logger.info(f"Added {record['display_name']} to monitoring")
            return self.remote.get(COLLECTION_NEW_APP_DETECTIONS, doc_id)

    def ignore(self, owner_id: str, doc_id: str) -> dict:
        with self.locks.hold(owner_id):
            record = self._load_open_record(owner_id, doc_id)
            self._mark_processed(doc_id)
            logger.info(f"Ignored new app: {record['display_name']}")
            return self.remote.get(COLLECTION_NEW_APP_DETECTIONS, doc_id)

    def _load_open_record(self, owner_id: str, doc_id: str) -> dict:
        record = self.remote.get(COLLECTION_NEW_APP_DETECTIONS, doc_id)
        if record is None:
            raise RecordNotFoundError(COLLECTION_NEW_APP_DETECTIONS, doc_id)
        if record["owner_id"] != owner_id:
            raise RecordOwnershipError(doc_id, owner_id)
        if record["is_processed"]:
            raise AlreadyProcessedError(doc_id)
        return record

    def _mark_processed(self, doc_id: str) -> None:
        self.remote.upsert(COLLECTION_NEW_APP_DETECTIONS, doc_id, {
            "is_processed": True,
            "processed_at": self.now(),
        })
