from __future__ import annotations

import pandas as pd

from forecast_trainer.application.training.splits import create_splits
from forecast_trainer.domain.training import FoldBoundary


def _fold(train_end: str, test_end: str, fold_id: int = 1) -> FoldBoundary:
    return FoldBoundary(
        train_test_id=fold_id,
        run_type="Validation",
        train_end=pd.Timestamp(train_end),
        test_end=pd.Timestamp(test_end),
    )


def test_create_splits_never_assesses_training_dates() -> None:
    data = pd.DataFrame(
        {
            "Combo": "a",
            "Date": pd.date_range("2021-01-01", periods=12, freq="MS"),
            "Target": range(12),
        }
    ).sample(frac=1.0, random_state=3)
    folds = [
        _fold("2021-06-01", "2021-09-01", 1),
        _fold("2021-03-01", "2021-06-01", 2),
    ]

    resamples = create_splits(data, folds)

    assert [split.train_test_id for split in resamples.splits] == [1, 2]
    for split, fold in zip(resamples.splits, folds):
        analysis = resamples.data.iloc[split.analysis]["Date"]
        assessment = resamples.data.iloc[split.assessment]["Date"]
        assert analysis.max() <= fold.train_end
        assert assessment.min() > fold.train_end
        assert assessment.max() <= fold.test_end
    assert len(resamples.splits[0].assessment) == 3


def test_create_splits_assesses_single_next_origin() -> None:
    rows = []
    for origin in range(1, 7):
        for horizon in (1, 2):
            rows.append(
                {
                    "Combo": "a",
                    "Date": pd.Timestamp("2021-01-01")
                    + pd.DateOffset(months=origin + horizon),
                    "Origin": origin,
                    "Horizon": horizon,
                    "Target": float(origin + horizon),
                }
            )
    data = pd.DataFrame(rows)
    fold = _fold("2021-05-01", "2021-07-01")

    resamples = create_splits(data, [fold])

    assessment = resamples.data.iloc[resamples.splits[0].assessment]
    assert set(assessment["Origin"]) == {4}
    assert sorted(assessment["Horizon"]) == [1, 2]


def test_create_splits_without_first_step_rows_assesses_nothing() -> None:
    data = pd.DataFrame(
        {
            "Combo": "a",
            "Date": pd.date_range("2021-01-01", periods=4, freq="MS"),
            "Origin": [1, 1, 1, 1],
            "Horizon": [2, 3, 4, 5],
            "Target": [1.0, 2.0, 3.0, 4.0],
        }
    )

    resamples = create_splits(data, [_fold("2021-02-01", "2021-04-01")])

    assert resamples.splits[0].assessment.size == 0
