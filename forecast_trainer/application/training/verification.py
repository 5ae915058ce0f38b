from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from forecast_trainer.domain import CompletionMismatchError
from forecast_trainer.domain.training import ArtifactStore
from forecast_trainer.infrastructure.paths import ArtifactPaths

from .resolver import list_completed_combos

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompletionSummary:
    expected: int
    local_completed: int
    global_completed: int

    @property
    def actual(self) -> int:
        return self.local_completed + self.global_completed


def verify_completion(
    store: ArtifactStore,
    paths: ArtifactPaths,
    *,
    eligible: Sequence[str],
    run_local: bool,
    run_global: bool,
) -> CompletionSummary:
    """Recount forecast artifacts and compare with the eligible units.

    Local partitions and the global unit are counted separately; the
    global unit counts once however many partition slices it wrote.
    """
    local_done, global_done = list_completed_combos(store, paths)
    summary = CompletionSummary(
        expected=len(set(eligible)),
        local_completed=len(set(local_done)) if run_local else 0,
        global_completed=1 if run_global and global_done else 0,
    )
    if summary.actual != summary.expected:
        raise CompletionMismatchError(
            "Not all time series were completed within 'train_models', "
            f"expected {summary.expected} time series but only "
            f"{summary.actual} time series were ran. "
            "Please run 'train_models' again.",
            context={
                "expected": str(summary.expected),
                "actual": str(summary.actual),
            },
        )
    logger.info(
        "Verified completion local=%s global=%s expected=%s",
        summary.local_completed,
        summary.global_completed,
        summary.expected,
    )
    return summary
