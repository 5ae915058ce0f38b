from __future__ import annotations

import logging
import math
from typing import Mapping, Sequence

import pandas as pd
from pandas.api.types import is_numeric_dtype

from forecast_trainer.domain.training import (
    COMBO_COL,
    DATE_COL,
    TARGET_COL,
    FeatureSelector,
    FoldBoundary,
    ModelSets,
    TrainableWorkflow,
    WorkflowSpec,
)

logger = logging.getLogger(__name__)

_EXCLUDED_COLUMNS = frozenset({COMBO_COL, DATE_COL, TARGET_COL})


def select_unit_features(
    recipe_data: Mapping[str, pd.DataFrame],
    workflows: Sequence[WorkflowSpec],
    *,
    selector: FeatureSelector | None,
    folds: Sequence[FoldBoundary],
    mode: str,
    enabled: bool,
    model_sets: ModelSets,
) -> dict[str, list[str]]:
    """Run the feature selector at most once per recipe of a unit.

    Returns an empty mapping when selection is disabled or no model of the
    unit is eligible for it.
    """
    if not enabled or selector is None:
        return {}
    if not any(
        spec.model_name in model_sets.feature_selection_models
        for spec in workflows
    ):
        logger.info("Feature selection skipped: no eligible model in unit")
        return {}

    selected: dict[str, list[str]] = {}
    for spec in workflows:
        if spec.recipe in selected or spec.recipe not in recipe_data:
            continue
        features = list(selector(recipe_data[spec.recipe], folds, mode=mode))
        logger.info(
            "Selected %s features for recipe=%s", len(features), spec.recipe
        )
        selected[spec.recipe] = features
    return selected


def bind_predictors(
    spec: WorkflowSpec,
    selected: Mapping[str, Sequence[str]],
    model_sets: ModelSets,
) -> TrainableWorkflow:
    if spec.model_name not in model_sets.feature_selection_models:
        return spec.workflow
    features = selected.get(spec.recipe)
    if features is None:
        return spec.workflow
    predictors = list(dict.fromkeys([*features, DATE_COL]))
    return spec.workflow.with_predictors(predictors)


def select_by_target_correlation(
    data: pd.DataFrame,
    folds: Sequence[FoldBoundary],
    *,
    mode: str,
) -> list[str]:
    """Keep the numeric predictors most correlated with the target.

    Only rows up to the earliest training cutoff are scored. Columns are
    ranked by absolute Pearson correlation and the top half is kept.
    """
    _ = mode
    rows = data.loc[data[TARGET_COL].notna()]
    if folds:
        cutoff = min(fold.train_end for fold in folds)
        rows = rows.loc[pd.to_datetime(rows[DATE_COL]) <= cutoff]

    candidates = [
        name
        for name in data.columns
        if name not in _EXCLUDED_COLUMNS and is_numeric_dtype(data[name])
    ]
    if not candidates:
        return []

    target = rows[TARGET_COL].astype(float)
    scores: list[tuple[str, float]] = []
    for name in candidates:
        corr = rows[name].astype(float).corr(target) if len(rows) > 1 else None
        score = 0.0 if corr is None or pd.isna(corr) else abs(float(corr))
        scores.append((name, score))

    ranked = sorted(scores, key=lambda item: -item[1])
    keep = max(1, math.ceil(len(ranked) / 2))
    return [name for name, _score in ranked[:keep]]
