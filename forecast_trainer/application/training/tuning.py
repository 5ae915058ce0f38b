from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

import numpy as np
import pandas as pd

from forecast_trainer.domain import TrainingError
from forecast_trainer.domain.training import (
    COMBO_COL,
    DATE_COL,
    ROW_COL,
    TARGET_COL,
    VALIDATION,
    FoldBoundary,
    HyperparameterCombo,
    HyperparameterGrid,
    TrainableWorkflow,
    TrainedModel,
)

from .postprocess import adjust_forecast
from .splits import create_splits

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TuningRequest:
    combo_id: str
    model_type: str
    model_name: str
    recipe: str
    workflow: TrainableWorkflow
    data: pd.DataFrame
    grid: HyperparameterGrid
    folds: tuple[FoldBoundary, ...]
    seed: int
    negative_forecast: bool


def tune_and_forecast(request: TuningRequest) -> TrainedModel:
    """Tune on validation folds, fit once, then refit every fold.

    The seed is reset before each stochastic step so a given request
    always produces the same model and forecast.
    """
    data = request.data.reset_index(drop=True)
    validation = tuple(
        fold for fold in request.folds if fold.run_type == VALIDATION
    )

    _reset_seed(request.seed)
    scored = request.workflow.tune_grid(
        create_splits(data, validation), request.grid.combos
    )
    best = request.workflow.select_best_by_rmse(scored)
    hyperparameter_id = resolve_hyperparameter_id(request.grid.combos, best)
    finalized = request.workflow.finalize(best)

    _reset_seed(request.seed)
    model_fit = finalized.fit(data.loc[data[TARGET_COL].notna()])

    _reset_seed(request.seed)
    predictions = finalized.refit(create_splits(data, request.folds))
    forecast = assemble_forecast(
        predictions,
        data,
        request.folds,
        hyperparameter_id=hyperparameter_id,
        negative_forecast=request.negative_forecast,
    )
    logger.debug(
        "Trained model=%s recipe=%s combo=%s hyperparameter_id=%s",
        request.model_name,
        request.recipe,
        request.combo_id,
        hyperparameter_id,
    )
    return TrainedModel(
        combo_id=request.combo_id,
        model_name=request.model_name,
        model_type=request.model_type,
        recipe_id=request.recipe,
        forecast=forecast,
        model_fit=model_fit,
    )


def resolve_hyperparameter_id(
    combos: Sequence[HyperparameterCombo], best: Mapping[str, Any]
) -> int:
    if len(combos) <= 1:
        return 1
    for combo in combos:
        if dict(combo.params) == dict(best):
            return int(combo.combo_id)
    raise TrainingError(
        "Selected hyperparameters are not part of the grid",
        context={"params": str(dict(best))},
    )


def assemble_forecast(
    predictions: pd.DataFrame,
    data: pd.DataFrame,
    folds: Sequence[FoldBoundary],
    *,
    hyperparameter_id: int,
    negative_forecast: bool,
) -> pd.DataFrame:
    run_types = pd.DataFrame(
        {
            "Train_Test_ID": [int(fold.train_test_id) for fold in folds],
            "Run_Type": [fold.run_type for fold in folds],
        }
    )
    rows = data.loc[:, [COMBO_COL, DATE_COL, TARGET_COL]].copy()
    rows[ROW_COL] = np.arange(len(rows))

    frame = predictions.astype({"Train_Test_ID": int, ROW_COL: int})
    frame = frame.merge(run_types, on="Train_Test_ID", how="left")
    frame = frame.merge(rows, on=ROW_COL, how="left")
    frame["Hyperparameter_ID"] = int(hyperparameter_id)
    frame = frame.drop(columns=[ROW_COL])
    return adjust_forecast(frame, negative_forecast=negative_forecast)


def _reset_seed(seed: int) -> None:
    random.seed(seed)
    np.random.seed(seed)
