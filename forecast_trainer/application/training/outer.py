from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Sequence

import pandas as pd

from forecast_trainer.domain import TrainingError
from forecast_trainer.domain.training import (
    ALL_DATA,
    COMBO_COL,
    DATE_COL,
    FITTED_MODEL_COLUMNS,
    FORECAST_COLUMNS,
    HORIZON_COL,
    MODEL_TYPE_GLOBAL,
    MODEL_TYPE_LOCAL,
    ArtifactStore,
    ParallelMode,
    RunContext,
    TrainedModel,
    WorkflowSpec,
)
from forecast_trainer.infrastructure.paths import ArtifactPaths, hash_data
from forecast_trainer.infrastructure.workers import (
    start_worker_pool,
    stop_worker_pool,
)

from .feature_selection import bind_predictors, select_unit_features
from .inner import dispatch_models
from .inputs import load_unit_recipe_data
from .tuning import TuningRequest

logger = logging.getLogger(__name__)

_HORIZON_GROUP = ("Combo_ID", COMBO_COL, "Model_ID", "Train_Test_ID")


@dataclass(frozen=True)
class UnitTask:
    context: RunContext
    store: ArtifactStore
    combo: str


def run_unit(task: UnitTask) -> str:
    """Train, persist and return one partition unit (or All-Data)."""
    context = task.context
    options = context.options
    paths = ArtifactPaths(context.run_info)
    is_global = task.combo == ALL_DATA

    recipe_data = load_unit_recipe_data(
        task.store,
        paths,
        task.combo,
        global_model_recipes=options.global_model_recipes,
    )
    specs = unit_workflows(context, recipe_data, is_global=is_global)
    if not specs:
        raise TrainingError(
            "No workflows available for unit",
            context={"combo": task.combo},
        )
    selected = select_unit_features(
        recipe_data,
        specs,
        selector=context.feature_selector,
        folds=context.inputs.folds,
        mode=context.plan.inner_mode,
        enabled=options.feature_selection,
        model_sets=context.model_sets,
    )
    combo_id = ALL_DATA if is_global else _combo_name(recipe_data, task.combo)
    requests = [
        TuningRequest(
            combo_id=combo_id,
            model_type=MODEL_TYPE_GLOBAL if is_global else MODEL_TYPE_LOCAL,
            model_name=spec.model_name,
            recipe=spec.recipe,
            workflow=bind_predictors(spec, selected, context.model_sets),
            data=recipe_data[spec.recipe],
            grid=context.inputs.grid_for(spec.model_name, spec.recipe),
            folds=context.inputs.folds,
            seed=options.seed,
            negative_forecast=options.negative_forecast,
        )
        for spec in specs
    ]
    models = dispatch_models(
        requests,
        combo=combo_id,
        mode=context.plan.inner_mode,
        num_cores=context.plan.num_cores,
    )
    persist_unit(task.store, paths, task.combo, models)
    return task.combo


def unit_workflows(
    context: RunContext,
    recipe_data: Mapping[str, pd.DataFrame],
    *,
    is_global: bool,
) -> list[WorkflowSpec]:
    specs = [
        spec for spec in context.inputs.workflows if spec.recipe in recipe_data
    ]
    if not is_global:
        return specs
    return [
        spec
        for spec in specs
        if spec.model_name in context.model_sets.global_models
        and spec.recipe in context.options.global_model_recipes
    ]


def persist_unit(
    store: ArtifactStore,
    paths: ArtifactPaths,
    combo: str,
    models: Sequence[TrainedModel],
) -> None:
    is_global = combo == ALL_DATA
    fitted = pd.DataFrame(
        [
            {
                "Combo_ID": model.combo_id,
                "Model_ID": model.model_id,
                "Model_Name": model.model_name,
                "Model_Type": model.model_type,
                "Recipe_ID": model.recipe_id,
                "Model_Fit": model.model_fit,
            }
            for model in models
        ],
        columns=list(FITTED_MODEL_COLUMNS),
    )
    forecast = build_forecast_table(models)
    if not is_global:
        store.write_object(fitted, paths.models_path(combo))
        store.write_table(
            forecast, paths.forecast_path(combo, global_models=False)
        )
        return
    # the model collection is written last and marks the unit complete
    for combo_name, part in forecast.groupby(COMBO_COL, sort=True):
        store.write_table(
            part.reset_index(drop=True),
            paths.forecast_path(
                hash_data(str(combo_name)), global_models=True
            ),
        )
    store.write_object(fitted, paths.models_path(hash_data(ALL_DATA)))
    logger.info(
        "Wrote global forecasts for %s partitions",
        forecast[COMBO_COL].nunique(),
    )


def build_forecast_table(models: Sequence[TrainedModel]) -> pd.DataFrame:
    frames: list[pd.DataFrame] = []
    for model in models:
        frame = model.forecast.copy()
        frame["Combo_ID"] = model.combo_id
        frame["Model_ID"] = model.model_id
        frame["Model_Name"] = model.model_name
        frame["Model_Type"] = model.model_type
        frame["Recipe_ID"] = model.recipe_id
        frames.append(frame)
    table = pd.concat(frames, ignore_index=True)
    return number_horizons(table).loc[:, list(FORECAST_COLUMNS)]


def number_horizons(table: pd.DataFrame) -> pd.DataFrame:
    """Number rows 1..n by date within each model, fold and partition."""
    ordered = table.sort_values(DATE_COL, kind="mergesort")
    ordered[HORIZON_COL] = (
        ordered.groupby(list(_HORIZON_GROUP), sort=False).cumcount() + 1
    )
    return ordered.sort_values("Train_Test_ID", kind="mergesort").reset_index(
        drop=True
    )


def dispatch_units(
    tasks: Sequence[UnitTask], *, mode: ParallelMode, num_cores: int
) -> list[str]:
    pool = start_worker_pool(mode, num_cores, len(tasks))
    completed: list[str] = []
    try:
        for combo in pool.imap_unordered(run_unit, tasks):
            completed.append(combo)
            logger.info(
                "Completed unit combo=%s (%s/%s)",
                combo,
                len(completed),
                len(tasks),
            )
    finally:
        stop_worker_pool(pool)
    return completed


def _combo_name(recipe_data: Mapping[str, pd.DataFrame], combo: str) -> str:
    for frame in recipe_data.values():
        names = frame[COMBO_COL].dropna().unique()
        if len(names):
            return str(names[0])
    raise TrainingError(
        "Prepared data has no Combo value", context={"combo": combo}
    )
