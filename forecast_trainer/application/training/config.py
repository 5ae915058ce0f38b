from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from forecast_trainer.domain import ConfigError
from forecast_trainer.domain.training import RunInfo, TrainOptions

DEFAULT_CONFIG_PATH = (
    Path(__file__).resolve().parents[3] / "config" / "training.yml"
)

_DATA_OUTPUTS = ("csv", "parquet")
_OBJECT_OUTPUTS = ("joblib",)


@dataclass(frozen=True)
class TrainingConfig:
    run: RunInfo
    train: TrainOptions


def load_config(path: Path | None = None) -> TrainingConfig:
    config_path = path or DEFAULT_CONFIG_PATH
    raw = _load_yaml_mapping(config_path)
    return TrainingConfig(
        run=_build_run_info(raw, config_path),
        train=_build_train_options(raw, config_path),
    )


def apply_overrides(
    config: TrainingConfig,
    *,
    run: Mapping[str, Any] | None = None,
    train: Mapping[str, Any] | None = None,
) -> TrainingConfig:
    """Replace config values with the non-None overrides given."""
    run_values = {**asdict(config.run), **_present(run)}
    train_values = {**asdict(config.train), **_present(train)}
    return replace(
        config,
        run=_parse_run_info(run_values, Path("<overrides>")),
        train=_parse_train_options(train_values, Path("<overrides>")),
    )


def _build_run_info(raw: Mapping[str, Any], config_path: Path) -> RunInfo:
    section = raw.get("run")
    if not isinstance(section, Mapping):
        raise ConfigError(f"run must be a mapping in {config_path}")
    return _parse_run_info(section, config_path)


def _build_train_options(
    raw: Mapping[str, Any], config_path: Path
) -> TrainOptions:
    section = raw.get("train", {})
    if section is None:
        section = {}
    if not isinstance(section, Mapping):
        raise ConfigError(f"train must be a mapping in {config_path}")
    return _parse_train_options(section, config_path)


def _parse_run_info(section: Mapping[str, Any], config_path: Path) -> RunInfo:
    _reject_unknown(section, RunInfo, "run", config_path)
    for key in ("experiment_name", "run_name", "storage_path"):
        if not section.get(key):
            raise ConfigError(f"run.{key} is required in {config_path}")
    data_output = str(section.get("data_output", "csv")).lower()
    if data_output not in _DATA_OUTPUTS:
        raise ConfigError(
            f"run.data_output must be csv or parquet in {config_path}",
            context={"value": data_output},
        )
    object_output = str(section.get("object_output", "joblib")).lower()
    if object_output not in _OBJECT_OUTPUTS:
        raise ConfigError(
            f"run.object_output must be joblib in {config_path}",
            context={"value": object_output},
        )
    return RunInfo(
        experiment_name=str(section["experiment_name"]),
        run_name=str(section["run_name"]),
        storage_path=str(Path(str(section["storage_path"])).expanduser()),
        data_output=data_output,
        object_output=object_output,
    )


def _parse_train_options(
    section: Mapping[str, Any], config_path: Path
) -> TrainOptions:
    _reject_unknown(section, TrainOptions, "train", config_path)
    defaults = TrainOptions()
    try:
        return TrainOptions(
            run_global_models=_optional_bool(
                section.get("run_global_models"), "run_global_models"
            ),
            run_local_models=_as_bool(
                section.get("run_local_models", defaults.run_local_models),
                "run_local_models",
            ),
            global_model_recipes=_as_recipes(
                section.get(
                    "global_model_recipes", defaults.global_model_recipes
                )
            ),
            feature_selection=_as_bool(
                section.get("feature_selection", defaults.feature_selection),
                "feature_selection",
            ),
            negative_forecast=_as_bool(
                section.get("negative_forecast", defaults.negative_forecast),
                "negative_forecast",
            ),
            parallel_processing=_optional_str(
                section.get("parallel_processing")
            ),
            inner_parallel=_as_bool(
                section.get("inner_parallel", defaults.inner_parallel),
                "inner_parallel",
            ),
            num_cores=(
                int(section["num_cores"])
                if section.get("num_cores") is not None
                else None
            ),
            seed=int(section.get("seed", defaults.seed)),
            feature_selector=str(
                section.get("feature_selector", defaults.feature_selector)
            ),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigError(
            f"Invalid train configuration in {config_path}",
            context={"section": "train", "error": str(exc)},
        ) from exc


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ValueError(f"{key} must be a boolean")


def _optional_bool(value: Any, key: str) -> bool | None:
    if value is None:
        return None
    if isinstance(value, str) and value.strip().lower() in ("auto", ""):
        return None
    return _as_bool(value, key)


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.lower() in ("none", "sequential"):
        return None
    return text


def _as_recipes(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        items = [item.strip() for item in value.split(",")]
    elif isinstance(value, (list, tuple)):
        items = [str(item).strip() for item in value]
    else:
        raise ValueError("global_model_recipes must be a list of recipe names")
    recipes = tuple(item for item in items if item)
    if not recipes:
        raise ValueError("global_model_recipes must not be empty")
    return recipes


def _reject_unknown(
    section: Mapping[str, Any],
    constructor: type[Any],
    key: str,
    config_path: Path,
) -> None:
    known = set(constructor.__dataclass_fields__)
    unknown = sorted(set(section) - known)
    if unknown:
        raise ConfigError(
            f"Unknown {key} keys in {config_path}",
            context={"keys": ", ".join(unknown)},
        )


def _present(values: Mapping[str, Any] | None) -> dict[str, Any]:
    if not values:
        return {}
    return {key: value for key, value in values.items() if value is not None}


def _load_yaml_mapping(config_path: Path) -> Mapping[str, Any]:
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")
    try:
        raw_text = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(
            f"Failed to read config file {config_path}"
        ) from exc
    try:
        raw_config: Any = yaml.safe_load(raw_text) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(
            f"Invalid YAML in {config_path}",
            context={"path": str(config_path)},
        ) from exc
    if not isinstance(raw_config, Mapping):
        raise ConfigError(
            f"Config file must contain a mapping: {config_path}"
        )
    return raw_config
