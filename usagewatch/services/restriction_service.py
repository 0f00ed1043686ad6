import logging
from datetime import datetime
from typing import Callable, Optional

from usagewatch.services.remote_sync import RemoteSyncAdapter
from usagewatch.utils.constants import (
    COLLECTION_APP_RESTRICTIONS,
    DEFAULT_TIME_LIMIT_SECONDS,
    composite_key,
)

logger = logging.getLogger(__name__)


class RestrictionService:

    # appRestrictions writes made on behalf of the deletion / new-app flows
    # (limit enforcement itself lives outside this service)

    def __init__(
        self,
        remote: RemoteSyncAdapter,
        default_time_limit: float = DEFAULT_TIME_LIMIT_SECONDS,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.remote = remote
        self.default_time_limit = default_time_limit
        self.now = now

    def get(self, owner_id: str, app_id: str) -> Optional[dict]:
        return self.remote.get(COLLECTION_APP_RESTRICTIONS, composite_key(owner_id, app_id))

    def is_monitored(self, owner_id: str, app_id: str) -> bool:
        # monitored = a restriction exists with a positive time limit
        restriction = self.get(owner_id, app_id)
        if restriction is None:
            return False
        return (restriction.get("time_limit") or 0) > 0

    def create_default(self, owner_id: str, app_id: str) -> None:
        # full replace: a recreated restriction starts from a clean day
        now = self.now()
        self.remote.upsert(
            COLLECTION_APP_RESTRICTIONS,
            composite_key(owner_id, app_id),
            {
                "app_id": app_id,
                "owner_id": owner_id,
                "time_limit": self.default_time_limit,
                "is_disabled": False,
                "daily_usage": 0.0,
                "last_reset_date": now,
                "last_updated": now,
            },
            merge=False,
        )
        logger.info(f"Restriction created for {app_id} ({self.default_time_limit:.0f}s/day)")

    def delete(self, owner_id: str, app_id: str) -> bool:
        removed = self.remote.delete(COLLECTION_APP_RESTRICTIONS, composite_key(owner_id, app_id))
        if removed:
            logger.info(f"Restriction deleted for {app_id}")
        return removed
