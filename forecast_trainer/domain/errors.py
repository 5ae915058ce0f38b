from __future__ import annotations

from typing import Mapping

ErrorContext = Mapping[str, str]


class ForecastTrainerError(Exception):
    def __init__(
        self, message: str, *, context: ErrorContext | None = None
    ) -> None:
        self.context = dict(context) if context else {}
        super().__init__(message)


class ConfigError(ForecastTrainerError):
    pass


class EnvVarError(ForecastTrainerError):
    pass


class StorageError(ForecastTrainerError):
    pass


class TrainingError(ForecastTrainerError):
    pass


class ConflictingResumeError(ConfigError):
    """All units are complete but the tunable inputs differ from the log."""


class AllModelsFailedError(TrainingError):
    pass


class CompletionMismatchError(TrainingError):
    """Forecast artifact count differs from the number of eligible units."""
