from __future__ import annotations

import numpy as np
import pandas as pd

FORECAST_COL = "Forecast"


def sanitize_forecast(
    values: pd.Series, *, negative_forecast: bool
) -> pd.Series:
    numeric = pd.to_numeric(values, errors="coerce").astype(float)
    # non-finite -> missing -> 0, then clip
    cleaned = numeric.where(np.isfinite(numeric)).fillna(0.0)
    if not negative_forecast:
        cleaned = cleaned.where(cleaned >= 0.0, 0.0)
    return cleaned


def adjust_forecast(
    frame: pd.DataFrame, *, negative_forecast: bool
) -> pd.DataFrame:
    adjusted = frame.copy()
    adjusted[FORECAST_COL] = sanitize_forecast(
        adjusted[FORECAST_COL], negative_forecast=negative_forecast
    )
    return adjusted
