from dataclasses import dataclass

from fastapi import Request

from usagewatch.database import SessionLocal, SharedSessionLocal
from usagewatch.services.deletion_lifecycle import DeletionLifecycleManager
from usagewatch.services.identity import IdentityProvider
from usagewatch.services.new_app_detection import NewAppDetectionManager
from usagewatch.services.notification_service import NotificationDispatcher
from usagewatch.services.owner_locks import OwnerLocks
from usagewatch.services.reconciliation import ReconciliationService
from usagewatch.services.remote_sync import RemoteSyncAdapter
from usagewatch.services.restriction_service import RestrictionService
from usagewatch.services.scheduler_service import SchedulerService
from usagewatch.services.shared_state import SchedulerStateHandle, SharedStateStore


@dataclass
class HostServices:
    state: SchedulerStateHandle
    remote: RemoteSyncAdapter
    notifier: NotificationDispatcher
    lifecycle: DeletionLifecycleManager
    new_apps: NewAppDetectionManager
    reconciliation: ReconciliationService
    scheduler: SchedulerService
    identity: IdentityProvider


def build_services(
    session_factory=SessionLocal,
    shared_session_factory=SharedSessionLocal,
    identity: IdentityProvider = None,
    notifier: NotificationDispatcher = None,
) -> HostServices:
    # host-process object graph, built once at startup
    state = SchedulerStateHandle(SharedStateStore(shared_session_factory))
    remote = RemoteSyncAdapter(session_factory)
    notifier = notifier or NotificationDispatcher(session_factory)
    identity = identity or IdentityProvider()
    locks = OwnerLocks()
    restrictions = RestrictionService(remote)

    lifecycle = DeletionLifecycleManager(remote, notifier, restrictions, state, locks)
    new_apps = NewAppDetectionManager(remote, notifier, restrictions, locks)
    reconciliation = ReconciliationService(state, lifecycle, new_apps, identity, locks)

    return HostServices(
        state=state,
        remote=remote,
        notifier=notifier,
        lifecycle=lifecycle,
        new_apps=new_apps,
        reconciliation=reconciliation,
        scheduler=SchedulerService(reconciliation),
        identity=identity,
    )


# Dependency - services attached to the app at startup
def get_services(request: Request) -> HostServices:
    return request.app.state.services
