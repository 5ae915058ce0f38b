from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import joblib
import pandas as pd

from forecast_trainer.domain import StorageError

_DATE_COLUMNS = ("Date", "Train_End", "Test_End")
_TABLE_READERS = {
    ".csv": pd.read_csv,
    ".parquet": pd.read_parquet,
}


@dataclass(frozen=True)
class LocalArtifactStore:
    """Artifact store rooted at a local directory.

    Tables are csv or parquet, chosen by extension; objects are joblib
    pickles. Paths are relative to ``root``.
    """

    root: Path

    def read_table(self, path: str) -> pd.DataFrame:
        target = self._resolve_existing(path)
        reader = _TABLE_READERS.get(target.suffix)
        if reader is None:
            raise StorageError(
                "Unsupported table format",
                context={"path": str(target)},
            )
        try:
            frame = reader(target)
        except Exception as exc:
            raise StorageError(
                "Failed to read table artifact",
                context={"path": str(target)},
            ) from exc
        return _parse_dates(frame)

    def write_table(self, frame: pd.DataFrame, path: str) -> None:
        target = self._prepare_target(path)
        try:
            if target.suffix == ".parquet":
                frame.to_parquet(target, index=False)
            elif target.suffix == ".csv":
                frame.to_csv(target, index=False)
            else:
                raise StorageError(
                    "Unsupported table format",
                    context={"path": str(target)},
                )
        except StorageError:
            raise
        except Exception as exc:
            raise StorageError(
                "Failed to write table artifact",
                context={"path": str(target)},
            ) from exc

    def read_object(self, path: str) -> Any:
        target = self._resolve_existing(path)
        try:
            return joblib.load(target)
        except Exception as exc:
            raise StorageError(
                "Failed to read object artifact",
                context={"path": str(target)},
            ) from exc

    def write_object(self, payload: Any, path: str) -> None:
        target = self._prepare_target(path)
        try:
            joblib.dump(payload, target)
        except Exception as exc:
            raise StorageError(
                "Failed to write object artifact",
                context={"path": str(target)},
            ) from exc

    def list_files(self, pattern: str) -> list[str]:
        if not self.root.exists():
            return []
        return sorted(
            path.relative_to(self.root).as_posix()
            for path in self.root.glob(pattern)
            if path.is_file()
        )

    def _resolve_existing(self, path: str) -> Path:
        target = self.root / path
        if not target.exists():
            raise StorageError(
                "Artifact not found",
                context={"path": str(target)},
            )
        return target

    def _prepare_target(self, path: str) -> Path:
        target = self.root / path
        ensure_directory(
            target.parent,
            invalid_message="Artifact folder is not a directory",
            create_message="Failed to create artifact folder",
        )
        return target


def ensure_directory(
    path: Path,
    *,
    invalid_message: str,
    create_message: str,
    context: Mapping[str, str] | None = None,
) -> None:
    if path.exists() and not path.is_dir():
        raise StorageError(
            invalid_message,
            context=_merge_context(context, path),
        )
    try:
        path.mkdir(parents=True, exist_ok=True)
    except Exception as exc:
        raise StorageError(
            create_message,
            context=_merge_context(context, path),
        ) from exc


def _parse_dates(frame: pd.DataFrame) -> pd.DataFrame:
    for column in _DATE_COLUMNS:
        if column in frame.columns:
            frame[column] = pd.to_datetime(frame[column])
    return frame


def _merge_context(
    context: Mapping[str, str] | None,
    path: Path | None,
) -> dict[str, str]:
    merged = dict(context) if context else {}
    if path is not None and "path" not in merged:
        merged["path"] = str(path)
    return merged
