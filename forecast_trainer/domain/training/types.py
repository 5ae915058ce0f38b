from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal, Mapping

import numpy as np
import pandas as pd

if TYPE_CHECKING:
    from .protocols import FeatureSelector, TrainableWorkflow

ALL_DATA = "All-Data"
VALIDATION = "Validation"
MODEL_TYPE_LOCAL = "local"
MODEL_TYPE_GLOBAL = "global"

COMBO_COL = "Combo"
DATE_COL = "Date"
TARGET_COL = "Target"
HORIZON_COL = "Horizon"
ORIGIN_COL = "Origin"
ROW_COL = "Row"

FORECAST_COLUMNS = (
    "Combo_ID",
    "Model_ID",
    "Model_Name",
    "Model_Type",
    "Recipe_ID",
    "Train_Test_ID",
    "Run_Type",
    "Horizon",
    "Combo",
    "Date",
    "Target",
    "Forecast",
    "Hyperparameter_ID",
)

FITTED_MODEL_COLUMNS = (
    "Combo_ID",
    "Model_ID",
    "Model_Name",
    "Model_Type",
    "Recipe_ID",
    "Model_Fit",
)

DEFAULT_GLOBAL_MODELS = (
    "cubist",
    "glmnet",
    "mars",
    "svm-poly",
    "svm-rbf",
    "xgboost",
)
DEFAULT_FEATURE_SELECTION_MODELS = DEFAULT_GLOBAL_MODELS + (
    "arima-boost",
    "prophet-boost",
    "prophet-xregs",
    "nnetar-xregs",
)

ParallelMode = Literal["sequential", "local_machine", "ray"]


@dataclass(frozen=True)
class RunInfo:
    experiment_name: str
    run_name: str
    storage_path: str
    data_output: str = "csv"
    object_output: str = "joblib"


@dataclass(frozen=True)
class TrainOptions:
    """Flags of one training invocation.

    ``run_global_models`` of None lets the resolver decide from the date
    type, the forecast approach and the available models.
    """

    run_global_models: bool | None = None
    run_local_models: bool = True
    global_model_recipes: tuple[str, ...] = ("R1",)
    feature_selection: bool = False
    negative_forecast: bool = False
    parallel_processing: str | None = None
    inner_parallel: bool = False
    num_cores: int | None = None
    seed: int = 123
    feature_selector: str = "target_corr"


@dataclass(frozen=True)
class ModelSets:
    global_models: frozenset[str] = frozenset(DEFAULT_GLOBAL_MODELS)
    feature_selection_models: frozenset[str] = frozenset(
        DEFAULT_FEATURE_SELECTION_MODELS
    )


@dataclass(frozen=True)
class RunLog:
    combo_variables: tuple[str, ...]
    date_type: str
    forecast_approach: str
    fields: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ParallelPlan:
    outer_mode: ParallelMode = "sequential"
    inner_mode: ParallelMode = "sequential"
    num_cores: int = 1


@dataclass(frozen=True)
class FoldBoundary:
    train_test_id: int
    run_type: str
    train_end: pd.Timestamp
    test_end: pd.Timestamp


@dataclass(frozen=True)
class Split:
    train_test_id: int
    run_type: str
    analysis: np.ndarray
    assessment: np.ndarray


@dataclass(frozen=True)
class Resamples:
    data: pd.DataFrame
    splits: tuple[Split, ...]


@dataclass(frozen=True)
class HyperparameterCombo:
    combo_id: int
    params: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class HyperparameterGrid:
    model_name: str
    recipe: str
    combos: tuple[HyperparameterCombo, ...]


@dataclass(frozen=True)
class WorkflowSpec:
    model_name: str
    recipe: str
    workflow: "TrainableWorkflow"


@dataclass(frozen=True)
class BroadcastInputs:
    workflows: tuple[WorkflowSpec, ...]
    grids: Mapping[tuple[str, str], HyperparameterGrid]
    folds: tuple[FoldBoundary, ...]

    def grid_for(self, model_name: str, recipe: str) -> HyperparameterGrid:
        grid = self.grids.get((model_name, recipe))
        if grid is None:
            return HyperparameterGrid(
                model_name=model_name,
                recipe=recipe,
                combos=(HyperparameterCombo(combo_id=1),),
            )
        return grid


@dataclass(frozen=True)
class RunContext:
    run_info: RunInfo
    options: TrainOptions
    run_log: RunLog
    plan: ParallelPlan
    inputs: BroadcastInputs
    model_sets: ModelSets
    feature_selector: "FeatureSelector | None" = None


@dataclass(frozen=True)
class TrainedModel:
    combo_id: str
    model_name: str
    model_type: str
    recipe_id: str
    forecast: pd.DataFrame
    model_fit: Any

    @property
    def model_id(self) -> str:
        return f"{self.model_name}--{self.model_type}--{self.recipe_id}"


@dataclass(frozen=True)
class SubTaskResult:
    model_name: str
    recipe: str
    model: TrainedModel | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.model is not None
