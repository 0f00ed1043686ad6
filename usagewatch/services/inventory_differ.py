from dataclasses import dataclass
from typing import Iterable, Optional, Tuple


@dataclass(frozen=True)
class InventoryDiff:
    new_apps: Tuple[str, ...]
    removed_apps: Tuple[str, ...]
    # first pass against an empty baseline: everything looks "new"
    bootstrap: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.new_apps and not self.removed_apps


def diff_inventory(baseline: Optional[Iterable[str]], observed: Iterable[str]) -> InventoryDiff:
    """
    Compare the known-apps baseline with the latest observed app set.

    new_apps = observed - baseline, removed_apps = baseline - observed.
    Results are sorted so a pass processes apps in a reproducible order.
    A missing or empty baseline is reported as a bootstrap diff; it never
    yields removed apps.
    """
    observed_set = set(observed)
    baseline_set = set(baseline) if baseline is not None else set()
    bootstrap = not baseline_set

    return InventoryDiff(
        new_apps=tuple(sorted(observed_set - baseline_set)),
        removed_apps=tuple(sorted(baseline_set - observed_set)),
        bootstrap=bootstrap,
    )
