"""
One reconciliation pass for an owner:

    shared state -> inventory diff -> deletion lifecycle -> new-app signals
    -> advance the known-apps baseline

The baseline is written last and only when every removal of the pass was
durably recorded remotely. A failed or interrupted pass leaves the old
baseline in place, so the next pass re-detects the same removals; the
lifecycle's unprocessed-record guard makes that re-run harmless.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from usagewatch.services.deletion_lifecycle import DeletionLifecycleManager
from usagewatch.services.errors import UsageWatchError
from usagewatch.services.identity import IdentityProvider
from usagewatch.services.inventory_differ import diff_inventory
from usagewatch.services.new_app_detection import NewAppDetectionManager
from usagewatch.services.owner_locks import OwnerLocks
from usagewatch.services.shared_state import SchedulerStateHandle

logger = logging.getLogger(__name__)


PASS_COMPLETED = "completed"
PASS_SKIPPED = "skipped"
PASS_NO_DATA = "no_data"
PASS_FAILED = "failed"


@dataclass
class PassResult:
    status: str
    owner_id: Optional[str] = None
    bootstrap: bool = False
    new_apps: List[str] = field(default_factory=list)
    removed_apps: List[str] = field(default_factory=list)
    failed_apps: List[str] = field(default_factory=list)
    baseline_advanced: bool = False
    reason: Optional[str] = None


class ReconciliationService:

    def __init__(
        self,
        state: SchedulerStateHandle,
        lifecycle: DeletionLifecycleManager,
        new_apps: NewAppDetectionManager,
        identity: IdentityProvider,
        locks: OwnerLocks,
        clock: Callable[[], float] = time.time,
    ):
        self.state = state
        self.lifecycle = lifecycle
        self.new_apps = new_apps
        self.identity = identity
        self.locks = locks
        self.clock = clock

    def run_scheduled_pass(self) -> PassResult:
        owner_id = self.identity.current_owner_id()
        if not owner_id:
            # no signed-in owner: nothing is touched
            logger.info("No authenticated owner, skipping reconciliation pass")
            return PassResult(status=PASS_SKIPPED, reason="no authenticated owner")
        return self.run_pass(owner_id)

    def run_pass(self, owner_id: str) -> PassResult:
        # the shared store holds one device-wide baseline, owned by the signed-in owner
        if owner_id != self.identity.current_owner_id():
            logger.warning(f"Refusing reconciliation pass for {owner_id}: not the signed-in owner")
            return PassResult(status=PASS_SKIPPED, owner_id=owner_id, reason="not the signed-in owner")

        with self.locks.try_hold(owner_id) as acquired:
            if not acquired:
                logger.info(f"Reconciliation pass for {owner_id} still running, skipping")
                return PassResult(status=PASS_SKIPPED, owner_id=owner_id, reason="pass in progress")

            logger.info(f"Reconciliation pass started for {owner_id}")
            try:
                result = self._reconcile(owner_id)
            except (UsageWatchError, SQLAlchemyError) as e:
                logger.error(f"Reconciliation pass for {owner_id} aborted: {e}")
                self._set_error(f"Sync failed: {e}")
                return PassResult(status=PASS_FAILED, owner_id=owner_id, reason=str(e))

            logger.info(
                f"Reconciliation pass finished for {owner_id}: {result.status} "
                f"(new={len(result.new_apps)}, removed={len(result.removed_apps)}, "
                f"failed={len(result.failed_apps)})"
            )
            return result

    def _reconcile(self, owner_id: str) -> PassResult:
        # 1) latest snapshot written by the reporting process
        observed = self.state.read_observed_apps()
        if observed is None:
            self.state.mark_success(self.clock())
            return PassResult(status=PASS_NO_DATA, owner_id=owner_id, reason="no usage snapshot")

        baseline = self.state.read_known_apps()

        # 2) diff
        diff = diff_inventory(baseline, observed)

        if diff.bootstrap:
            # first pass: adopt the snapshot without reporting installs
            logger.info(f"Bootstrap pass: baseline initialised with {len(observed)} apps")
            self.state.write_known_apps(observed)
            self.state.mark_success(self.clock())
            return PassResult(
                status=PASS_COMPLETED,
                owner_id=owner_id,
                bootstrap=True,
                baseline_advanced=True,
            )

        # 3) removals
        outcome = self.lifecycle.process_removals(owner_id, diff.removed_apps)

        # 4) new-app signals (diff + detection queue), best-effort
        queued = set(self.state.read_new_app_detections()) - set(baseline or ())
        signalled = self.new_apps.signal_new_apps(owner_id, diff.new_apps, queued=queued)

        result = PassResult(
            status=PASS_COMPLETED,
            owner_id=owner_id,
            new_apps=signalled,
            removed_apps=outcome.created,
            failed_apps=outcome.failed,
        )

        # 5) advance the baseline only once every removal is durable
        if not outcome.all_persisted:
            result.status = PASS_FAILED
            result.reason = f"{len(outcome.failed)} deletion records could not be saved"
            self._set_error(f"Failed to sync deleted apps: {', '.join(outcome.failed)}")
            return result

        self.state.write_known_apps(observed)
        self.state.mark_success(self.clock())
        result.baseline_advanced = True
        return result

    def _set_error(self, message: str) -> None:
        try:
            self.state.set_error(message)
        except SQLAlchemyError as e:
            logger.warning(f"Could not store reconciliation status: {e}")
