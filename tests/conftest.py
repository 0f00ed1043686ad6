"""Pytest configuration and fixtures for usagewatch tests."""

from pathlib import Path
from typing import Iterator, List, Tuple

import pytest
from sqlalchemy.orm import sessionmaker

import usagewatch.models  # noqa: F401  register every table
from usagewatch.database import Base, SharedBase, make_engine
from usagewatch.services.container import HostServices, build_services
from usagewatch.services.errors import RemoteSyncError
from usagewatch.services.identity import IdentityProvider
from usagewatch.services.remote_sync import RemoteSyncAdapter
from usagewatch.services.shared_state import (
    AggregatorStateHandle,
    SchedulerStateHandle,
    SharedStateStore,
)

OWNER_ID = "owner1"


class RecordingNotifier:
    """Notification collaborator that records calls instead of pushing."""

    def __init__(self, fail: bool = False, delivered: bool = True):
        self.calls: List[Tuple[str, dict]] = []
        self.fail = fail
        self.delivered = delivered

    def notify(self, category: str, payload: dict) -> bool:
        if self.fail:
            raise RuntimeError("push service unavailable")
        self.calls.append((category, payload))
        return self.delivered

    def categories(self) -> List[str]:
        return [category for category, _ in self.calls]


class FlakyRemote(RemoteSyncAdapter):
    """Remote adapter whose upserts fail for selected app ids."""

    def __init__(self, session_factory, failing_apps=()):
        super().__init__(session_factory)
        self.failing_apps = set(failing_apps)

    def upsert(self, collection, key, fields, merge=True):
        app_id = key.split("_", 1)[1]
        if app_id in self.failing_apps:
            raise RemoteSyncError(collection, key, ConnectionError("network down"))
        return super().upsert(collection, key, fields, merge=merge)


@pytest.fixture
def remote_session_factory(tmp_path: Path) -> Iterator[sessionmaker]:
    """Session factory bound to a fresh SQLite remote store."""
    engine = make_engine(f"sqlite:///{tmp_path / 'remote.db'}")
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def shared_session_factory(tmp_path: Path) -> Iterator[sessionmaker]:
    """Session factory bound to a fresh SQLite shared state store."""
    engine = make_engine(f"sqlite:///{tmp_path / 'shared.db'}")
    SharedBase.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def store(shared_session_factory) -> SharedStateStore:
    return SharedStateStore(shared_session_factory)


@pytest.fixture
def aggregator_state(store) -> AggregatorStateHandle:
    return AggregatorStateHandle(store)


@pytest.fixture
def scheduler_state(store) -> SchedulerStateHandle:
    return SchedulerStateHandle(store)


@pytest.fixture
def remote(remote_session_factory) -> RemoteSyncAdapter:
    return RemoteSyncAdapter(remote_session_factory)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def identity() -> IdentityProvider:
    return IdentityProvider(OWNER_ID)


@pytest.fixture
def services(remote_session_factory, shared_session_factory, identity, notifier) -> HostServices:
    """Host-process services wired against the temp stores."""
    return build_services(
        session_factory=remote_session_factory,
        shared_session_factory=shared_session_factory,
        identity=identity,
        notifier=notifier,
    )
