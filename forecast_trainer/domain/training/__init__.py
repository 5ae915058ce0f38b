from .protocols import (
    ArtifactStore,
    FeatureSelector,
    TrainableWorkflow,
    WorkerPool,
)
from .registry import Registry
from .types import (
    ALL_DATA,
    COMBO_COL,
    DATE_COL,
    DEFAULT_FEATURE_SELECTION_MODELS,
    DEFAULT_GLOBAL_MODELS,
    FITTED_MODEL_COLUMNS,
    FORECAST_COLUMNS,
    HORIZON_COL,
    MODEL_TYPE_GLOBAL,
    MODEL_TYPE_LOCAL,
    ORIGIN_COL,
    ROW_COL,
    TARGET_COL,
    VALIDATION,
    BroadcastInputs,
    FoldBoundary,
    HyperparameterCombo,
    HyperparameterGrid,
    ModelSets,
    ParallelMode,
    ParallelPlan,
    Resamples,
    RunContext,
    RunInfo,
    RunLog,
    Split,
    SubTaskResult,
    TrainedModel,
    TrainOptions,
    WorkflowSpec,
)

__all__ = [
    "ALL_DATA",
    "COMBO_COL",
    "DATE_COL",
    "DEFAULT_FEATURE_SELECTION_MODELS",
    "DEFAULT_GLOBAL_MODELS",
    "FITTED_MODEL_COLUMNS",
    "FORECAST_COLUMNS",
    "HORIZON_COL",
    "MODEL_TYPE_GLOBAL",
    "MODEL_TYPE_LOCAL",
    "ORIGIN_COL",
    "ROW_COL",
    "TARGET_COL",
    "VALIDATION",
    "ArtifactStore",
    "BroadcastInputs",
    "FeatureSelector",
    "FoldBoundary",
    "HyperparameterCombo",
    "HyperparameterGrid",
    "ModelSets",
    "ParallelMode",
    "ParallelPlan",
    "Registry",
    "Resamples",
    "RunContext",
    "RunInfo",
    "RunLog",
    "Split",
    "SubTaskResult",
    "TrainableWorkflow",
    "TrainedModel",
    "TrainOptions",
    "WorkerPool",
    "WorkflowSpec",
]
