from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Sequence

import numpy as np
import pandas as pd
from pandas.api.types import is_numeric_dtype
from sklearn.impute import SimpleImputer
from sklearn.metrics import mean_squared_error
from sklearn.pipeline import Pipeline, make_pipeline
from sklearn.preprocessing import StandardScaler

from forecast_trainer.domain import TrainingError
from forecast_trainer.domain.training import (
    COMBO_COL,
    DATE_COL,
    ROW_COL,
    TARGET_COL,
    HyperparameterCombo,
    Resamples,
    Split,
)

logger = logging.getLogger(__name__)

_RESERVED_COLUMNS = frozenset({COMBO_COL, TARGET_COL})
SCORE_COLUMNS = ("Hyperparameter_Combo", "Params", "rmse")
PREDICTION_COLUMNS = ("Train_Test_ID", ROW_COL, "Forecast")


@dataclass(frozen=True)
class FittedWorkflow:
    model_name: str
    recipe: str
    features: tuple[str, ...]
    params: Mapping[str, Any]
    estimator: Pipeline

    def predict(self, frame: pd.DataFrame) -> np.ndarray:
        if frame.empty:
            return np.empty(0, dtype=float)
        design = design_matrix(frame, self.features)
        return np.asarray(self.estimator.predict(design), dtype=float)


@dataclass(frozen=True)
class SklearnWorkflow:
    """Trainable workflow around a scikit-learn regressor.

    Grid parameters are passed to the estimator constructor on top of
    ``base_params``. ``predictors`` of None uses every numeric column plus
    the date.
    """

    model_name: str
    recipe: str
    estimator_cls: type
    base_params: Mapping[str, Any] = field(default_factory=dict)
    params: Mapping[str, Any] = field(default_factory=dict)
    predictors: tuple[str, ...] | None = None

    def with_predictors(self, predictors: Sequence[str]) -> "SklearnWorkflow":
        return replace(self, predictors=tuple(predictors))

    def finalize(self, params: Mapping[str, Any]) -> "SklearnWorkflow":
        return replace(self, params={**self.params, **dict(params)})

    def tune_grid(
        self,
        resamples: Resamples,
        grid: Sequence[HyperparameterCombo],
    ) -> pd.DataFrame:
        rows: list[dict[str, Any]] = []
        for combo in grid:
            candidate = self.finalize(combo.params)
            scores = [
                candidate._score_split(resamples.data, split)
                for split in resamples.splits
            ]
            rows.append(
                {
                    "Hyperparameter_Combo": int(combo.combo_id),
                    "Params": dict(combo.params),
                    "rmse": _mean_finite(scores),
                }
            )
        return pd.DataFrame(rows, columns=list(SCORE_COLUMNS))

    def select_best_by_rmse(self, scored: pd.DataFrame) -> Mapping[str, Any]:
        if scored.empty:
            raise TrainingError(
                "Hyperparameter grid produced no results",
                context={"model": self.model_name, "recipe": self.recipe},
            )
        finite = scored.loc[np.isfinite(scored["rmse"].astype(float))]
        if finite.empty:
            if len(scored) == 1:
                return dict(scored.iloc[0]["Params"])
            raise TrainingError(
                "No hyperparameter combination produced a finite RMSE",
                context={"model": self.model_name, "recipe": self.recipe},
            )
        # idxmin keeps the first of equal scores, i.e. grid order
        best = finite["rmse"].astype(float).idxmin()
        return dict(finite.loc[best, "Params"])

    def fit(self, data: pd.DataFrame) -> FittedWorkflow:
        train = data.loc[data[TARGET_COL].notna()]
        if train.empty:
            raise TrainingError(
                "No rows with a target value to fit",
                context={"model": self.model_name, "recipe": self.recipe},
            )
        features = feature_columns(train, self.predictors)
        if not features:
            raise TrainingError(
                "No usable predictor columns",
                context={"model": self.model_name, "recipe": self.recipe},
            )
        estimator = make_pipeline(
            SimpleImputer(strategy="median", keep_empty_features=True),
            StandardScaler(),
            self.estimator_cls(**{**self.base_params, **self.params}),
        )
        estimator.fit(
            design_matrix(train, features),
            train[TARGET_COL].to_numpy(dtype=float),
        )
        return FittedWorkflow(
            model_name=self.model_name,
            recipe=self.recipe,
            features=features,
            params=dict(self.params),
            estimator=estimator,
        )

    def refit(self, resamples: Resamples) -> pd.DataFrame:
        frames: list[pd.DataFrame] = []
        for split in resamples.splits:
            if split.assessment.size == 0:
                continue
            fitted = self.fit(resamples.data.iloc[split.analysis])
            forecast = fitted.predict(resamples.data.iloc[split.assessment])
            frames.append(
                pd.DataFrame(
                    {
                        "Train_Test_ID": split.train_test_id,
                        ROW_COL: split.assessment,
                        "Forecast": forecast,
                    }
                )
            )
        if not frames:
            return pd.DataFrame(columns=list(PREDICTION_COLUMNS))
        return pd.concat(frames, ignore_index=True)

    def _score_split(self, data: pd.DataFrame, split: Split) -> float:
        assessment = data.iloc[split.assessment]
        assessment = assessment.loc[assessment[TARGET_COL].notna()]
        if assessment.empty:
            return float("nan")
        actual = assessment[TARGET_COL].to_numpy(dtype=float)
        try:
            fitted = self.fit(data.iloc[split.analysis])
            mse = mean_squared_error(actual, fitted.predict(assessment))
        except (TrainingError, ValueError) as exc:
            logger.warning(
                "Tuning fit failed model=%s recipe=%s fold=%s params=%s: %s",
                self.model_name,
                self.recipe,
                split.train_test_id,
                dict(self.params),
                exc,
            )
            return float("nan")
        return float(np.sqrt(mse))


def feature_columns(
    frame: pd.DataFrame, predictors: Sequence[str] | None
) -> tuple[str, ...]:
    candidates = frame.columns if predictors is None else predictors
    selected: list[str] = []
    for name in candidates:
        if name in _RESERVED_COLUMNS or name not in frame.columns:
            continue
        if name in selected:
            continue
        if name == DATE_COL or is_numeric_dtype(frame[name]):
            selected.append(name)
    return tuple(selected)


def design_matrix(
    frame: pd.DataFrame, features: Sequence[str]
) -> np.ndarray:
    columns: list[np.ndarray] = []
    for name in features:
        if name == DATE_COL:
            dates = pd.to_datetime(frame[DATE_COL])
            days = (dates - pd.Timestamp("1970-01-01")) / pd.Timedelta(days=1)
            columns.append(days.to_numpy(dtype=float))
        else:
            columns.append(
                pd.to_numeric(frame[name], errors="coerce").to_numpy(
                    dtype=float
                )
            )
    return np.column_stack(columns)


def _mean_finite(scores: Sequence[float]) -> float:
    values = np.asarray(scores, dtype=float)
    values = values[np.isfinite(values)]
    if values.size == 0:
        return float("nan")
    return float(values.mean())
