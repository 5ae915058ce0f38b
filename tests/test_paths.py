from __future__ import annotations

from forecast_trainer.domain.training import RunInfo
from forecast_trainer.infrastructure import (
    ArtifactPaths,
    hash_data,
    parse_artifact_name,
)


def test_hash_data_is_stable_and_hyphen_free() -> None:
    assert hash_data("store_a") == hash_data("store_a")
    assert hash_data("store_a") != hash_data("store_b")
    assert "-" not in hash_data("All-Data")
    assert hash_data({"b": 1, "a": 2}) == hash_data({"a": 2, "b": 1})


def test_artifact_paths_follow_naming_convention() -> None:
    paths = ArtifactPaths(
        RunInfo(
            experiment_name="demand",
            run_name="baseline",
            storage_path="/tmp/unused",
            data_output="parquet",
        )
    )
    prefix = f"{hash_data('demand')}-{hash_data('baseline')}"

    assert paths.log_path() == f"logs/{prefix}.csv"
    assert paths.recipe_data_path("abc", "R1") == (
        f"prep_data/{prefix}-abc-R1.parquet"
    )
    assert paths.forecast_path("abc", global_models=True) == (
        f"forecasts/{prefix}-abc-global_models.parquet"
    )
    assert paths.models_path("abc") == (
        f"models/{prefix}-abc-single_models.joblib"
    )


def test_parse_artifact_name_splits_four_parts() -> None:
    name = parse_artifact_name("forecasts/e1-r1-c1-global_models.csv")

    assert name is not None
    assert (name.experiment, name.run, name.combo) == ("e1", "r1", "c1")
    assert name.suffix == "global_models"
    name = "prep_models/e1-r1-train_test_split.csv"
    assert parse_artifact_name(name) is None
