from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from forecast_trainer.domain import StorageError
from forecast_trainer.infrastructure import LocalArtifactStore


def test_table_round_trip_parses_dates(tmp_path: Path) -> None:
    store = LocalArtifactStore(tmp_path)
    frame = pd.DataFrame(
        {
            "Date": pd.to_datetime(["2021-01-01", "2021-02-01"]),
            "Target": [1.0, 2.0],
        }
    )

    store.write_table(frame, "forecasts/a-b-c-single_models.csv")
    loaded = store.read_table("forecasts/a-b-c-single_models.csv")

    pd.testing.assert_frame_equal(loaded, frame)


def test_parquet_tables_are_supported(tmp_path: Path) -> None:
    store = LocalArtifactStore(tmp_path)
    frame = pd.DataFrame({"Train_End": pd.to_datetime(["2021-01-01"])})

    store.write_table(frame, "prep_models/a-b-train_test_split.parquet")

    assert store.read_table(
        "prep_models/a-b-train_test_split.parquet"
    )["Train_End"].iloc[0] == pd.Timestamp("2021-01-01")


def test_objects_use_joblib(tmp_path: Path) -> None:
    store = LocalArtifactStore(tmp_path)

    store.write_object({"alpha": 0.1}, "models/a-b-c-single_models.joblib")

    assert store.read_object("models/a-b-c-single_models.joblib") == {
        "alpha": 0.1
    }


def test_missing_artifact_raises_storage_error(tmp_path: Path) -> None:
    store = LocalArtifactStore(tmp_path)

    with pytest.raises(StorageError, match="Artifact not found") as exc:
        store.read_table("logs/missing.csv")
    assert exc.value.context["path"].endswith("missing.csv")


def test_unsupported_format_raises(tmp_path: Path) -> None:
    store = LocalArtifactStore(tmp_path)

    with pytest.raises(StorageError, match="Unsupported table format"):
        store.write_table(pd.DataFrame({"a": [1]}), "logs/run.xlsx")


def test_list_files_returns_sorted_relative_paths(tmp_path: Path) -> None:
    store = LocalArtifactStore(tmp_path)
    for name in ("b", "a"):
        store.write_table(
            pd.DataFrame({"x": [1]}), f"forecasts/e-r-{name}-single_models.csv"
        )

    assert store.list_files("forecasts/e-r-*.csv") == [
        "forecasts/e-r-a-single_models.csv",
        "forecasts/e-r-b-single_models.csv",
    ]
    assert LocalArtifactStore(tmp_path / "absent").list_files("*") == []
