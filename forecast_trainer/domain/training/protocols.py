from __future__ import annotations

from typing import (
    Any,
    Callable,
    Iterator,
    Mapping,
    Protocol,
    Sequence,
    TypeVar,
)

import pandas as pd

from .types import FoldBoundary, HyperparameterCombo, Resamples

T = TypeVar("T")
R = TypeVar("R")


class TrainableWorkflow(Protocol):
    """Untrained model specification bound to one recipe."""

    def with_predictors(
        self, predictors: Sequence[str]
    ) -> "TrainableWorkflow": ...

    def tune_grid(
        self,
        resamples: Resamples,
        grid: Sequence[HyperparameterCombo],
    ) -> pd.DataFrame: ...

    def select_best_by_rmse(
        self, scored: pd.DataFrame
    ) -> Mapping[str, Any]: ...

    def finalize(self, params: Mapping[str, Any]) -> "TrainableWorkflow": ...

    def fit(self, data: pd.DataFrame) -> object: ...

    def refit(self, resamples: Resamples) -> pd.DataFrame: ...


class FeatureSelector(Protocol):
    def __call__(
        self,
        data: pd.DataFrame,
        folds: Sequence[FoldBoundary],
        *,
        mode: str,
    ) -> Sequence[str]: ...


class ArtifactStore(Protocol):
    def read_table(self, path: str) -> pd.DataFrame: ...

    def write_table(self, frame: pd.DataFrame, path: str) -> None: ...

    def read_object(self, path: str) -> Any: ...

    def write_object(self, payload: Any, path: str) -> None: ...

    def list_files(self, pattern: str) -> list[str]: ...


class WorkerPool(Protocol):
    @property
    def mode(self) -> str: ...

    def imap_unordered(
        self, fn: Callable[[T], R], items: Sequence[T]
    ) -> Iterator[R]: ...

    def close(self) -> None: ...
