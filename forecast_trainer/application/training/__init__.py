from .config import (
    DEFAULT_CONFIG_PATH,
    TrainingConfig,
    apply_overrides,
    load_config,
)
from .registry import TrainingRegistries, default_registries
from .runner import TrainingSummary, train_models

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "TrainingConfig",
    "TrainingRegistries",
    "TrainingSummary",
    "apply_overrides",
    "default_registries",
    "load_config",
    "train_models",
]
