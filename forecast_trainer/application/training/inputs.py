from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Mapping, Sequence

import pandas as pd

from forecast_trainer.domain import ConfigError, TrainingError
from forecast_trainer.domain.training import (
    ALL_DATA,
    ArtifactStore,
    BroadcastInputs,
    FoldBoundary,
    HyperparameterCombo,
    HyperparameterGrid,
    WorkflowSpec,
)
from forecast_trainer.infrastructure.paths import (
    ArtifactPaths,
    parse_artifact_name,
)

logger = logging.getLogger(__name__)

_FOLD_COLUMNS = ("Train_Test_ID", "Run_Type", "Train_End", "Test_End")
_WORKFLOW_COLUMNS = ("Model_Name", "Model_Recipe", "Model_Workflow")
_HYPERPARAMETER_COLUMNS = (
    "Model",
    "Recipe",
    "Hyperparameter_Combo",
    "Hyperparameters",
)


def load_broadcast_inputs(
    store: ArtifactStore, paths: ArtifactPaths
) -> BroadcastInputs:
    """Read the fold, workflow and grid tables shared by every unit."""
    folds = _parse_folds(store.read_table(paths.train_test_split_path()))
    workflows = _parse_workflows(
        store.read_object(paths.model_workflows_path())
    )
    grids = _parse_grids(
        store.read_object(paths.model_hyperparameters_path())
    )
    logger.info(
        "Loaded inputs folds=%s workflows=%s grids=%s",
        len(folds),
        len(workflows),
        len(grids),
    )
    return BroadcastInputs(workflows=workflows, grids=grids, folds=folds)


def load_unit_recipe_data(
    store: ArtifactStore,
    paths: ArtifactPaths,
    combo: str,
    *,
    global_model_recipes: Sequence[str],
) -> dict[str, pd.DataFrame]:
    """Return recipe name -> prepared data for one unit.

    The All-Data unit concatenates every partition's data for the recipes
    listed in ``global_model_recipes``.
    """
    is_global = combo == ALL_DATA
    pattern = paths.recipe_data_pattern("*" if is_global else combo)
    frames: dict[str, list[pd.DataFrame]] = defaultdict(list)
    for path in store.list_files(pattern):
        name = parse_artifact_name(path)
        if name is None:
            continue
        recipe = name.suffix
        if is_global and recipe not in global_model_recipes:
            continue
        frames[recipe].append(store.read_table(path))
    if not frames:
        raise TrainingError(
            "No prepared data found for unit",
            context={"combo": combo, "pattern": pattern},
        )
    return {
        recipe: pd.concat(parts, ignore_index=True)
        for recipe, parts in sorted(frames.items())
    }


def _parse_folds(frame: pd.DataFrame) -> tuple[FoldBoundary, ...]:
    _require_columns(frame, _FOLD_COLUMNS, "train_test_split")
    if frame["Train_Test_ID"].duplicated().any():
        raise ConfigError(
            "train_test_split has duplicate Train_Test_ID values"
        )
    folds: list[FoldBoundary] = []
    for row in frame.itertuples(index=False):
        train_end = pd.Timestamp(row.Train_End)
        test_end = pd.Timestamp(row.Test_End)
        if not train_end < test_end:
            raise ConfigError(
                "train_test_split Train_End must be before Test_End",
                context={"Train_Test_ID": str(row.Train_Test_ID)},
            )
        folds.append(
            FoldBoundary(
                train_test_id=int(row.Train_Test_ID),
                run_type=str(row.Run_Type),
                train_end=train_end,
                test_end=test_end,
            )
        )
    return tuple(folds)


def _parse_workflows(frame: Any) -> tuple[WorkflowSpec, ...]:
    table = _require_frame(frame, "model_workflows")
    _require_columns(table, _WORKFLOW_COLUMNS, "model_workflows")
    if table.duplicated(subset=["Model_Name", "Model_Recipe"]).any():
        raise ConfigError(
            "model_workflows has duplicate (Model_Name, Model_Recipe) rows"
        )
    return tuple(
        WorkflowSpec(
            model_name=str(row.Model_Name),
            recipe=str(row.Model_Recipe),
            workflow=row.Model_Workflow,
        )
        for row in table.itertuples(index=False)
    )


def _parse_grids(frame: Any) -> dict[tuple[str, str], HyperparameterGrid]:
    table = _require_frame(frame, "model_hyperparameters")
    _require_columns(table, _HYPERPARAMETER_COLUMNS, "model_hyperparameters")
    combos: dict[tuple[str, str], list[HyperparameterCombo]] = (
        defaultdict(list)
    )
    for row in table.itertuples(index=False):
        params = row.Hyperparameters
        if not isinstance(params, Mapping):
            raise ConfigError(
                "Hyperparameters must be a mapping",
                context={"model": str(row.Model), "recipe": str(row.Recipe)},
            )
        combos[(str(row.Model), str(row.Recipe))].append(
            HyperparameterCombo(
                combo_id=int(row.Hyperparameter_Combo), params=dict(params)
            )
        )
    return {
        key: HyperparameterGrid(
            model_name=key[0], recipe=key[1], combos=tuple(values)
        )
        for key, values in combos.items()
    }


def _require_frame(value: Any, label: str) -> pd.DataFrame:
    if not isinstance(value, pd.DataFrame):
        raise ConfigError(
            f"{label} must be a table",
            context={"type": type(value).__name__},
        )
    return value


def _require_columns(
    frame: pd.DataFrame, columns: Sequence[str], label: str
) -> None:
    missing = [name for name in columns if name not in frame.columns]
    if missing:
        raise ConfigError(
            f"{label} is missing required columns",
            context={"missing": ", ".join(missing)},
        )
