from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from forecast_trainer.application.training.registry import build_glmnet
from forecast_trainer.application.training.tuning import (
    TuningRequest,
    assemble_forecast,
    resolve_hyperparameter_id,
    tune_and_forecast,
)
from forecast_trainer.domain import TrainingError
from forecast_trainer.domain.training import (
    FoldBoundary,
    HyperparameterCombo,
    HyperparameterGrid,
)


def _folds() -> tuple[FoldBoundary, ...]:
    return (
        FoldBoundary(
            1,
            "Back_Test",
            pd.Timestamp("2021-09-01"),
            pd.Timestamp("2021-12-01"),
        ),
        FoldBoundary(
            2,
            "Validation",
            pd.Timestamp("2021-06-01"),
            pd.Timestamp("2021-09-01"),
        ),
    )


def _data() -> pd.DataFrame:
    trend = np.arange(24, dtype=float)
    return pd.DataFrame(
        {
            "Combo": "store_a",
            "Date": pd.date_range("2020-01-01", periods=24, freq="MS"),
            "Target": 3.0 + trend,
            "driver": trend,
        }
    )


def test_resolve_hyperparameter_id_single_combo_is_one() -> None:
    combos = [HyperparameterCombo(7, {"alpha": 0.1})]

    assert resolve_hyperparameter_id(combos, {"alpha": 0.1}) == 1


def test_resolve_hyperparameter_id_matches_params() -> None:
    combos = [
        HyperparameterCombo(1, {"alpha": 0.1}),
        HyperparameterCombo(2, {"alpha": 0.2}),
    ]

    assert resolve_hyperparameter_id(combos, {"alpha": 0.2}) == 2
    with pytest.raises(TrainingError, match="not part of the grid"):
        resolve_hyperparameter_id(combos, {"alpha": 0.3})


def test_assemble_forecast_joins_run_type_and_rows() -> None:
    predictions = pd.DataFrame(
        {"Train_Test_ID": [1, 2], "Row": [3, 0], "Forecast": [-2.0, np.inf]}
    )
    data = pd.DataFrame(
        {
            "Combo": ["a", "a", "a", "a"],
            "Date": pd.date_range("2021-01-01", periods=4, freq="MS"),
            "Target": [1.0, 2.0, 3.0, 4.0],
        }
    )

    frame = assemble_forecast(
        predictions,
        data,
        _folds(),
        hyperparameter_id=2,
        negative_forecast=False,
    )

    assert frame["Run_Type"].tolist() == ["Back_Test", "Validation"]
    assert frame["Date"].tolist() == [
        pd.Timestamp("2021-04-01"),
        pd.Timestamp("2021-01-01"),
    ]
    assert frame["Target"].tolist() == [4.0, 1.0]
    assert frame["Forecast"].tolist() == [0.0, 0.0]
    assert set(frame["Hyperparameter_ID"]) == {2}
    assert "Row" not in frame.columns


def test_tune_and_forecast_is_reproducible() -> None:
    request = TuningRequest(
        combo_id="store_a",
        model_type="local",
        model_name="glmnet",
        recipe="R1",
        workflow=build_glmnet("R1"),
        data=_data(),
        grid=HyperparameterGrid(
            model_name="glmnet",
            recipe="R1",
            combos=(
                HyperparameterCombo(1, {"alpha": 100.0}),
                HyperparameterCombo(2, {"alpha": 0.001}),
            ),
        ),
        folds=_folds(),
        seed=42,
        negative_forecast=False,
    )

    first = tune_and_forecast(request)
    second = tune_and_forecast(request)

    assert first.model_id == "glmnet--local--R1"
    assert set(first.forecast["Hyperparameter_ID"]) == {2}
    assert sorted(first.forecast["Run_Type"].unique()) == [
        "Back_Test",
        "Validation",
    ]
    pd.testing.assert_frame_equal(first.forecast, second.forecast)
