from __future__ import annotations

from typing import Any, Mapping

import numpy as np
import pandas as pd
from pandas.api.types import is_scalar

from forecast_trainer.domain import ConfigError
from forecast_trainer.domain.training import (
    ArtifactStore,
    RunLog,
    TrainOptions,
)
from forecast_trainer.infrastructure.paths import ArtifactPaths, hash_data

LIST_SEPARATOR = "---"
TUNABLE_FIELDS = (
    "run_global_models",
    "run_local_models",
    "global_model_recipes",
    "feature_selection",
    "seed",
)
_REQUIRED_FIELDS = ("combo_variables", "date_type", "forecast_approach")


def read_run_log(store: ArtifactStore, paths: ArtifactPaths) -> RunLog:
    frame = store.read_table(paths.log_path())
    if frame.empty:
        raise ConfigError(
            "Run log is empty", context={"path": paths.log_path()}
        )
    row = frame.iloc[0].to_dict()
    missing = [name for name in _REQUIRED_FIELDS if _is_missing(row.get(name))]
    if missing:
        raise ConfigError(
            "Run log is missing required fields",
            context={"missing": ", ".join(missing)},
        )
    combo_variables = tuple(
        str(row.pop("combo_variables")).split(LIST_SEPARATOR)
    )
    date_type = str(row.pop("date_type"))
    forecast_approach = str(row.pop("forecast_approach"))
    fields = {
        name: None if _is_missing(value) else normalize_field(value)
        for name, value in row.items()
    }
    return RunLog(
        combo_variables=combo_variables,
        date_type=date_type,
        forecast_approach=forecast_approach,
        fields=fields,
    )


def write_run_log(
    store: ArtifactStore,
    paths: ArtifactPaths,
    run_log: RunLog,
    updates: Mapping[str, Any],
) -> RunLog:
    fields = dict(run_log.fields)
    fields.update(
        (name, normalize_field(value)) for name, value in updates.items()
    )
    row = {
        "combo_variables": LIST_SEPARATOR.join(run_log.combo_variables),
        "date_type": run_log.date_type,
        "forecast_approach": run_log.forecast_approach,
        **fields,
    }
    store.write_table(pd.DataFrame([row]), paths.log_path())
    return RunLog(
        combo_variables=run_log.combo_variables,
        date_type=run_log.date_type,
        forecast_approach=run_log.forecast_approach,
        fields=fields,
    )


def effective_fields(options: TrainOptions) -> dict[str, Any]:
    """Flags recorded in the run log after a verified training step."""
    return {
        **tunable_fields(options),
        "negative_forecast": bool(options.negative_forecast),
        "inner_parallel": bool(options.inner_parallel),
    }


def tunable_fields(options: TrainOptions) -> dict[str, Any]:
    return {
        "run_global_models": bool(options.run_global_models),
        "run_local_models": bool(options.run_local_models),
        "global_model_recipes": LIST_SEPARATOR.join(
            options.global_model_recipes
        ),
        "feature_selection": bool(options.feature_selection),
        "seed": int(options.seed),
    }


def tunable_hash(fields: Mapping[str, Any]) -> str | None:
    """Hash of the tunable fields, or None when any of them is absent."""
    if any(_is_missing(fields.get(name)) for name in TUNABLE_FIELDS):
        return None
    return hash_data(
        {name: normalize_field(fields[name]) for name in TUNABLE_FIELDS}
    )


def has_training_config(fields: Mapping[str, Any]) -> bool:
    """Whether a previous training step recorded any tunable flag."""
    return any(not _is_missing(fields.get(name)) for name in TUNABLE_FIELDS)


def normalize_field(value: Any) -> Any:
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, (int, np.integer)):
        return int(value)
    if isinstance(value, (float, np.floating)):
        return int(value) if float(value).is_integer() else float(value)
    if isinstance(value, (list, tuple)):
        return LIST_SEPARATOR.join(str(item) for item in value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "false"):
            return lowered == "true"
        return value
    return value


def _is_missing(value: Any) -> bool:
    return value is None or (is_scalar(value) and bool(pd.isna(value)))
