from __future__ import annotations

from typing import Sequence

import numpy as np
import pandas as pd

from forecast_trainer.domain.training import (
    DATE_COL,
    HORIZON_COL,
    ORIGIN_COL,
    FoldBoundary,
    Resamples,
    Split,
)


def create_splits(
    data: pd.DataFrame, folds: Sequence[FoldBoundary]
) -> Resamples:
    """Build one walk-forward split per fold boundary.

    Row indices are positions in the returned ``Resamples.data``. Recipes
    with a ``Horizon`` column only assess the forecast origin that follows
    the last training origin, so no later origin leaks into a fold.
    """
    frame = data.reset_index(drop=True)
    dates = pd.to_datetime(frame[DATE_COL])
    multi_origin = HORIZON_COL in frame.columns
    splits: list[Split] = []
    for fold in folds:
        analysis_mask = (dates <= fold.train_end).to_numpy()
        assessment_mask = (
            (dates > fold.train_end) & (dates <= fold.test_end)
        ).to_numpy()
        if multi_origin:
            assessment_mask &= _next_origin_mask(frame, analysis_mask)
        splits.append(
            Split(
                train_test_id=int(fold.train_test_id),
                run_type=fold.run_type,
                analysis=np.flatnonzero(analysis_mask),
                assessment=np.flatnonzero(assessment_mask),
            )
        )
    return Resamples(data=frame, splits=tuple(splits))


def _next_origin_mask(
    frame: pd.DataFrame, analysis_mask: np.ndarray
) -> np.ndarray:
    first_step = analysis_mask & (frame[HORIZON_COL] == 1).to_numpy()
    origins = frame.loc[first_step, ORIGIN_COL]
    if origins.empty:
        return np.zeros(len(frame), dtype=bool)
    next_origin = origins.max() + 1
    return (frame[ORIGIN_COL] == next_origin).to_numpy()
