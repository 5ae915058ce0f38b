from .errors import (
    AllModelsFailedError,
    CompletionMismatchError,
    ConfigError,
    ConflictingResumeError,
    EnvVarError,
    ForecastTrainerError,
    StorageError,
    TrainingError,
)

__all__ = (
    "AllModelsFailedError",
    "CompletionMismatchError",
    "ConfigError",
    "ConflictingResumeError",
    "EnvVarError",
    "ForecastTrainerError",
    "StorageError",
    "TrainingError",
)
