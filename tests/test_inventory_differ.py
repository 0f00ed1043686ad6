"""Tests for inventory diffing."""

from usagewatch.services.inventory_differ import diff_inventory


class TestDiffInventory:
    def test_new_and_removed(self):
        diff = diff_inventory({"A", "B", "C"}, {"A", "C", "D"})

        assert diff.new_apps == ("D",)
        assert diff.removed_apps == ("B",)
        assert not diff.bootstrap

    def test_same_inputs_same_result(self):
        baseline, observed = {"A", "B", "C"}, {"A", "C", "E", "F"}

        first = diff_inventory(baseline, observed)
        second = diff_inventory(baseline, observed)

        assert first == second

    def test_results_are_sorted(self):
        diff = diff_inventory({"z", "m", "a", "keep"}, {"keep", "y", "b"})

        assert diff.removed_apps == ("a", "m", "z")
        assert diff.new_apps == ("b", "y")

    def test_missing_baseline_is_bootstrap(self):
        diff = diff_inventory(None, {"A", "B"})

        assert diff.bootstrap
        assert diff.removed_apps == ()
        assert diff.new_apps == ("A", "B")

    def test_empty_baseline_is_bootstrap(self):
        diff = diff_inventory(set(), {"A"})

        assert diff.bootstrap
        assert diff.removed_apps == ()

    def test_unchanged_inventory(self):
        diff = diff_inventory(["A", "B"], ["B", "A"])

        assert diff.is_empty
