from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from pathlib import PurePath
from typing import Any

from forecast_trainer.domain.training import RunInfo

_HASH_BYTES = 8
_NAME_SEPARATOR = "-"

LOGS_FOLDER = "logs"
PREP_DATA_FOLDER = "prep_data"
PREP_MODELS_FOLDER = "prep_models"
MODELS_FOLDER = "models"
FORECASTS_FOLDER = "forecasts"

SINGLE_MODELS_SUFFIX = "single_models"
GLOBAL_MODELS_SUFFIX = "global_models"


def hash_data(value: Any) -> str:
    """Stable hex digest used in artifact names; never contains '-'."""
    if isinstance(value, str):
        payload = value
    else:
        payload = json.dumps(value, sort_keys=True, default=str)
    digest = hashlib.blake2b(payload.encode("utf-8"), digest_size=_HASH_BYTES)
    return digest.hexdigest()


@dataclass(frozen=True)
class ArtifactName:
    experiment: str
    run: str
    combo: str
    run_type: str

    @property
    def suffix(self) -> str:
        return self.run_type.split(".", 1)[0]


def parse_artifact_name(path: str) -> ArtifactName | None:
    parts = PurePath(path).name.split(_NAME_SEPARATOR)
    if len(parts) != 4:
        return None
    experiment, run, combo, run_type = parts
    return ArtifactName(
        experiment=experiment,
        run=run,
        combo=combo,
        run_type=run_type,
    )


@dataclass(frozen=True)
class ArtifactPaths:
    """Path convention {folder}/{exp}-{run}[-{combo}]-{suffix}.{ext}."""

    run_info: RunInfo

    @property
    def prefix(self) -> str:
        return _NAME_SEPARATOR.join(
            (
                hash_data(self.run_info.experiment_name),
                hash_data(self.run_info.run_name),
            )
        )

    def log_path(self) -> str:
        return f"{LOGS_FOLDER}/{self.prefix}.csv"

    def recipe_data_path(self, combo: str, recipe: str) -> str:
        return self._data_path(PREP_DATA_FOLDER, combo, recipe)

    def recipe_data_pattern(self, combo: str = "*") -> str:
        return (
            f"{PREP_DATA_FOLDER}/{self.prefix}-{combo}-*"
            f".{self.run_info.data_output}"
        )

    def train_test_split_path(self) -> str:
        return (
            f"{PREP_MODELS_FOLDER}/{self.prefix}-train_test_split"
            f".{self.run_info.data_output}"
        )

    def model_workflows_path(self) -> str:
        return (
            f"{PREP_MODELS_FOLDER}/{self.prefix}-model_workflows"
            f".{self.run_info.object_output}"
        )

    def model_hyperparameters_path(self) -> str:
        return (
            f"{PREP_MODELS_FOLDER}/{self.prefix}-model_hyperparameters"
            f".{self.run_info.object_output}"
        )

    def models_path(self, combo: str) -> str:
        return (
            f"{MODELS_FOLDER}/{self.prefix}-{combo}-{SINGLE_MODELS_SUFFIX}"
            f".{self.run_info.object_output}"
        )

    def forecast_path(self, combo: str, *, global_models: bool) -> str:
        suffix = (
            GLOBAL_MODELS_SUFFIX if global_models else SINGLE_MODELS_SUFFIX
        )
        return self._data_path(FORECASTS_FOLDER, combo, suffix)

    def forecast_pattern(self) -> str:
        return (
            f"{FORECASTS_FOLDER}/{self.prefix}-*"
            f".{self.run_info.data_output}"
        )

    def _data_path(self, folder: str, combo: str, suffix: str) -> str:
        return (
            f"{folder}/{self.prefix}-{combo}-{suffix}"
            f".{self.run_info.data_output}"
        )

