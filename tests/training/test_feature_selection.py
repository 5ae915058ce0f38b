from __future__ import annotations

from typing import Sequence

import numpy as np
import pandas as pd

from forecast_trainer.application.training.feature_selection import (
    bind_predictors,
    select_by_target_correlation,
    select_unit_features,
)
from forecast_trainer.application.training.registry import (
    build_glmnet,
    build_meanf,
    build_svm_rbf,
)
from forecast_trainer.domain.training import (
    FoldBoundary,
    ModelSets,
    WorkflowSpec,
)

FOLDS = (
    FoldBoundary(
        1,
        "Validation",
        pd.Timestamp("2020-09-01"),
        pd.Timestamp("2020-12-01"),
    ),
)


def _data() -> pd.DataFrame:
    trend = np.arange(12, dtype=float)
    return pd.DataFrame(
        {
            "Combo": "a",
            "Date": pd.date_range("2020-01-01", periods=12, freq="MS"),
            "Target": trend * 2.0,
            "strong": trend,
            "weak": [1.0, -1.0] * 6,
            "medium": trend + np.tile([3.0, -3.0, 0.0], 4),
            "flat": 1.0,
        }
    )


class CountingSelector:
    def __init__(self) -> None:
        self.calls: list[str] = []

    def __call__(
        self,
        data: pd.DataFrame,
        folds: Sequence[FoldBoundary],
        *,
        mode: str,
    ) -> list[str]:
        self.calls.append(mode)
        return ["strong"]


def test_selector_runs_once_per_recipe() -> None:
    selector = CountingSelector()
    specs = [
        WorkflowSpec("glmnet", "R1", build_glmnet("R1")),
        WorkflowSpec("svm-rbf", "R1", build_svm_rbf("R1")),
        WorkflowSpec("meanf", "R1", build_meanf("R1")),
    ]

    selected = select_unit_features(
        {"R1": _data()},
        specs,
        selector=selector,
        folds=FOLDS,
        mode="local_machine",
        enabled=True,
        model_sets=ModelSets(),
    )

    assert selected == {"R1": ["strong"]}
    assert selector.calls == ["local_machine"]


def test_selector_skipped_without_eligible_models() -> None:
    selector = CountingSelector()

    selected = select_unit_features(
        {"R1": _data()},
        [WorkflowSpec("meanf", "R1", build_meanf("R1"))],
        selector=selector,
        folds=FOLDS,
        mode="sequential",
        enabled=True,
        model_sets=ModelSets(),
    )

    assert selected == {}
    assert selector.calls == []


def test_bind_predictors_only_for_eligible_models() -> None:
    selected = {"R1": ["strong", "Date"]}
    glmnet = WorkflowSpec("glmnet", "R1", build_glmnet("R1"))
    meanf = WorkflowSpec("meanf", "R1", build_meanf("R1"))

    bound = bind_predictors(glmnet, selected, ModelSets())

    assert bound.predictors == ("strong", "Date")
    assert bind_predictors(meanf, selected, ModelSets()) is meanf.workflow


def test_target_correlation_keeps_top_half() -> None:
    selected = select_by_target_correlation(_data(), FOLDS, mode="sequential")

    assert selected == ["strong", "medium"]


def test_target_correlation_without_candidates() -> None:
    data = _data().loc[:, ["Combo", "Date", "Target"]]

    assert select_by_target_correlation(data, FOLDS, mode="sequential") == []
