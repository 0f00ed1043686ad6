"""Tests for reconciliation passes: baseline ordering, bootstrap and single-flight."""

from tests.conftest import OWNER_ID, FlakyRemote
from usagewatch.services.reconciliation import (
    PASS_COMPLETED,
    PASS_FAILED,
    PASS_NO_DATA,
    PASS_SKIPPED,
)
from usagewatch.services.shared_state import KNOWN_APPS_KEY, OBSERVED_APPS_KEY
from usagewatch.utils.constants import (
    CATEGORY_APP_DELETED,
    CATEGORY_NEW_APP_DETECTED,
    COLLECTION_APP_RESTRICTIONS,
    COLLECTION_DELETED_APPS,
    COLLECTION_NEW_APP_DETECTIONS,
)


def _observe(aggregator_state, app_ids):
    aggregator_state.write_observed_apps(app_ids)


class TestPass:
    def test_removal_then_restore(self, services, aggregator_state, scheduler_state):
        scheduler_state.write_known_apps({"A", "B", "C"})
        _observe(aggregator_state, {"A", "C"})

        result = services.reconciliation.run_scheduled_pass()

        assert result.status == PASS_COMPLETED
        assert result.removed_apps == ["B"]
        assert result.baseline_advanced
        record = services.remote.get(COLLECTION_DELETED_APPS, "owner1_B")
        assert record["is_processed"] is False
        assert scheduler_state.read_known_apps() == {"A", "C"}

        services.lifecycle.restore(OWNER_ID, "owner1_B")

        restriction = services.remote.get(COLLECTION_APP_RESTRICTIONS, "owner1_B")
        assert restriction["time_limit"] == 7200.0
        assert services.remote.get(COLLECTION_DELETED_APPS, "owner1_B")["is_processed"] is True
        assert scheduler_state.read_known_apps() == {"A", "B", "C"}

    def test_failed_write_keeps_baseline(self, services, aggregator_state, scheduler_state,
                                         remote_session_factory):
        scheduler_state.write_known_apps({"A", "B", "C"})
        _observe(aggregator_state, {"A"})
        healthy_remote = services.lifecycle.remote
        services.lifecycle.remote = FlakyRemote(remote_session_factory, failing_apps={"B"})

        result = services.reconciliation.run_pass(OWNER_ID)

        assert result.status == PASS_FAILED
        assert result.failed_apps == ["B"]
        assert result.removed_apps == ["C"]
        assert not result.baseline_advanced
        assert scheduler_state.read_known_apps() == {"A", "B", "C"}
        assert "B" in scheduler_state.read_status()["last_error"]

        # next cycle: remote is back, B is detected again, C is not duplicated
        services.lifecycle.remote = healthy_remote
        retry = services.reconciliation.run_pass(OWNER_ID)

        assert retry.status == PASS_COMPLETED
        assert retry.removed_apps == ["B"]
        assert retry.baseline_advanced
        assert scheduler_state.read_known_apps() == {"A"}
        assert scheduler_state.read_status()["last_error"] is None
        pending = services.lifecycle.list_pending(OWNER_ID)
        assert sorted(r["app_id"] for r in pending) == ["B", "C"]

    def test_rerun_without_advance_creates_no_duplicates(self, services, aggregator_state,
                                                         scheduler_state, notifier):
        scheduler_state.write_known_apps({"A", "B"})
        _observe(aggregator_state, {"A"})

        services.reconciliation.run_pass(OWNER_ID)
        # process died before the baseline write
        scheduler_state.write_known_apps({"A", "B"})
        services.reconciliation.run_pass(OWNER_ID)

        assert len(services.lifecycle.list_pending(OWNER_ID)) == 1
        assert notifier.categories().count(CATEGORY_APP_DELETED) == 1

    def test_new_apps_are_signalled_once(self, services, aggregator_state, scheduler_state, notifier):
        scheduler_state.write_known_apps({"A"})
        _observe(aggregator_state, {"A", "com.roblox.client"})

        result = services.reconciliation.run_pass(OWNER_ID)
        scheduler_state.write_known_apps({"A"})
        services.reconciliation.run_pass(OWNER_ID)

        assert result.new_apps == ["com.roblox.client"]
        assert notifier.categories() == [CATEGORY_NEW_APP_DETECTED]
        record = services.remote.get(COLLECTION_NEW_APP_DETECTIONS, "owner1_com.roblox.client")
        assert record["display_name"] == "Roblox"

    def test_detection_queue_feeds_new_apps(self, services, aggregator_state, scheduler_state):
        scheduler_state.write_known_apps({"A"})
        _observe(aggregator_state, {"A"})
        aggregator_state.write_new_app_detections(["Q"])

        result = services.reconciliation.run_pass(OWNER_ID)

        assert result.new_apps == ["Q"]

    def test_ignored_queued_app_is_not_signalled_again(self, services, aggregator_state,
                                                       scheduler_state, notifier):
        scheduler_state.write_known_apps({"A"})
        _observe(aggregator_state, {"A"})
        aggregator_state.write_new_app_detections(["Q"])

        services.reconciliation.run_pass(OWNER_ID)
        services.new_apps.ignore(OWNER_ID, "owner1_Q")
        second = services.reconciliation.run_pass(OWNER_ID)
        third = services.reconciliation.run_pass(OWNER_ID)

        assert second.new_apps == [] and third.new_apps == []
        assert notifier.categories().count(CATEGORY_NEW_APP_DETECTED) == 1
        assert services.new_apps.list_pending(OWNER_ID) == []

    def test_monitored_queued_app_is_not_signalled_again(self, services, aggregator_state,
                                                         scheduler_state, notifier):
        scheduler_state.write_known_apps({"A"})
        _observe(aggregator_state, {"A"})
        aggregator_state.write_new_app_detections(["Q"])

        services.reconciliation.run_pass(OWNER_ID)
        services.new_apps.add_to_monitoring(OWNER_ID, "owner1_Q")
        services.reconciliation.run_pass(OWNER_ID)

        assert notifier.categories().count(CATEGORY_NEW_APP_DETECTED) == 1

    def test_unchanged_inventory(self, services, aggregator_state, scheduler_state, notifier):
        scheduler_state.write_known_apps({"A", "B"})
        _observe(aggregator_state, {"A", "B"})

        result = services.reconciliation.run_pass(OWNER_ID)

        assert result.status == PASS_COMPLETED
        assert result.removed_apps == [] and result.new_apps == []
        assert notifier.calls == []


class TestBootstrap:
    def test_first_pass_creates_no_records(self, services, aggregator_state, scheduler_state, notifier):
        _observe(aggregator_state, {"A", "B"})

        result = services.reconciliation.run_pass(OWNER_ID)

        assert result.status == PASS_COMPLETED
        assert result.bootstrap
        assert result.removed_apps == []
        assert services.lifecycle.list_pending(OWNER_ID) == []
        assert services.new_apps.list_pending(OWNER_ID) == []
        assert notifier.calls == []
        assert scheduler_state.read_known_apps() == {"A", "B"}

    def test_second_pass_is_not_bootstrap(self, services, aggregator_state):
        _observe(aggregator_state, {"A", "B"})
        services.reconciliation.run_pass(OWNER_ID)
        _observe(aggregator_state, {"A"})

        result = services.reconciliation.run_pass(OWNER_ID)

        assert not result.bootstrap
        assert result.removed_apps == ["B"]


class TestSkippedPasses:
    def test_no_identity_touches_nothing(self, services, aggregator_state, store):
        services.identity.sign_out()
        _observe(aggregator_state, {"A"})

        result = services.reconciliation.run_scheduled_pass()

        assert result.status == PASS_SKIPPED
        assert not store.contains(KNOWN_APPS_KEY)

    def test_no_snapshot_is_no_data(self, services, scheduler_state):
        scheduler_state.write_known_apps({"A", "B"})

        result = services.reconciliation.run_pass(OWNER_ID)

        assert result.status == PASS_NO_DATA
        assert scheduler_state.read_known_apps() == {"A", "B"}
        assert services.lifecycle.list_pending(OWNER_ID) == []

    def test_malformed_snapshot_is_no_data(self, services, store, scheduler_state):
        scheduler_state.write_known_apps({"A", "B"})
        store.set(OBSERVED_APPS_KEY, "A,B")

        result = services.reconciliation.run_pass(OWNER_ID)

        assert result.status == PASS_NO_DATA
        assert services.lifecycle.list_pending(OWNER_ID) == []

    def test_overlapping_pass_is_skipped(self, services, aggregator_state, scheduler_state):
        scheduler_state.write_known_apps({"A", "B"})
        _observe(aggregator_state, {"A"})

        with services.reconciliation.locks.try_hold(OWNER_ID) as acquired:
            assert acquired
            result = services.reconciliation.run_pass(OWNER_ID)

        assert result.status == PASS_SKIPPED
        assert scheduler_state.read_known_apps() == {"A", "B"}

    def test_pass_for_other_owner_leaves_baseline(self, services, aggregator_state, scheduler_state):
        scheduler_state.write_known_apps({"A", "B"})
        _observe(aggregator_state, {"A"})

        refused = services.reconciliation.run_pass("owner2")

        assert refused.status == PASS_SKIPPED
        assert scheduler_state.read_known_apps() == {"A", "B"}
        assert services.lifecycle.list_pending("owner2") == []

        # the signed-in owner still sees the removal
        result = services.reconciliation.run_scheduled_pass()
        assert result.removed_apps == ["B"]
        assert [r["app_id"] for r in services.lifecycle.list_pending(OWNER_ID)] == ["B"]
