from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Sequence

import numpy as np
import pandas as pd
import pytest

from forecast_trainer.application.training import default_registries
from forecast_trainer.domain.training import RunInfo
from forecast_trainer.infrastructure import (
    ArtifactPaths,
    LocalArtifactStore,
    hash_data,
)

COMBOS = ("store_a", "store_b")
FOLDS = (
    (1, "Back_Test", "2021-09-01", "2021-12-01"),
    (2, "Validation", "2021-06-01", "2021-09-01"),
    (3, "Validation", "2021-03-01", "2021-06-01"),
)


@dataclass(frozen=True)
class Experiment:
    run_info: RunInfo
    store: LocalArtifactStore
    paths: ArtifactPaths
    combos: tuple[str, ...]

    def combo_hashes(self) -> list[str]:
        return [hash_data(combo) for combo in self.combos]


def combo_frame(combo: str, offset: float) -> pd.DataFrame:
    dates = pd.date_range("2020-01-01", "2021-12-01", freq="MS")
    rng = np.random.default_rng(len(combo) + int(offset))
    trend = np.arange(len(dates), dtype=float)
    driver = trend * 0.5 + rng.normal(0.0, 0.1, len(dates))
    return pd.DataFrame(
        {
            "Combo": combo,
            "Date": dates,
            "Target": 10.0 + offset + trend + driver,
            "driver": driver,
            "noise": rng.normal(0.0, 1.0, len(dates)),
        }
    )


def write_experiment(
    root: Path,
    *,
    combos: Sequence[str] = COMBOS,
    models: Sequence[str] = ("glmnet", "meanf"),
    recipes: Sequence[str] = ("R1",),
    grids: Mapping[str, Sequence[Mapping[str, object]]] | None = None,
    date_type: str = "month",
    forecast_approach: str = "bottoms_up",
) -> Experiment:
    run_info = RunInfo(
        experiment_name="demand",
        run_name="baseline",
        storage_path=str(root),
    )
    store = LocalArtifactStore(root)
    paths = ArtifactPaths(run_info)

    store.write_table(
        pd.DataFrame(
            [
                {
                    "combo_variables": "Store",
                    "date_type": date_type,
                    "forecast_approach": forecast_approach,
                }
            ]
        ),
        paths.log_path(),
    )
    for index, combo in enumerate(combos):
        frame = combo_frame(combo, offset=float(index * 5))
        for recipe in recipes:
            store.write_table(
                frame, paths.recipe_data_path(hash_data(combo), recipe)
            )
    store.write_table(
        pd.DataFrame(
            FOLDS,
            columns=["Train_Test_ID", "Run_Type", "Train_End", "Test_End"],
        ),
        paths.train_test_split_path(),
    )

    registries = default_registries()
    store.write_object(
        pd.DataFrame(
            [
                {
                    "Model_Name": model,
                    "Model_Recipe": recipe,
                    "Model_Workflow": registries.workflows.build(
                        model, recipe=recipe
                    ),
                }
                for model in models
                for recipe in recipes
            ]
        ),
        paths.model_workflows_path(),
    )

    if grids is None:
        grids = {"glmnet": ({"alpha": 0.01}, {"alpha": 0.5})}
    rows = [
        {
            "Model": model,
            "Recipe": recipe,
            "Hyperparameter_Combo": combo_id,
            "Hyperparameters": dict(params),
        }
        for model, combos_for_model in grids.items()
        if model in models
        for recipe in recipes
        for combo_id, params in enumerate(combos_for_model, start=1)
    ]
    store.write_object(
        pd.DataFrame(
            rows,
            columns=[
                "Model",
                "Recipe",
                "Hyperparameter_Combo",
                "Hyperparameters",
            ],
        ),
        paths.model_hyperparameters_path(),
    )
    return Experiment(
        run_info=run_info, store=store, paths=paths, combos=tuple(combos)
    )


@pytest.fixture
def experiment(tmp_path: Path) -> Experiment:
    return write_experiment(tmp_path)


@pytest.fixture
def make_experiment(tmp_path: Path):
    def factory(**kwargs: object) -> Experiment:
        return write_experiment(tmp_path, **kwargs)  # type: ignore[arg-type]

    return factory
