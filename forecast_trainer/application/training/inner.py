from __future__ import annotations

import logging
from typing import Sequence

from forecast_trainer.domain import AllModelsFailedError
from forecast_trainer.domain.training import (
    ParallelMode,
    SubTaskResult,
    TrainedModel,
)
from forecast_trainer.infrastructure.workers import (
    start_worker_pool,
    stop_worker_pool,
)

from .tuning import TuningRequest, tune_and_forecast

logger = logging.getLogger(__name__)


def run_sub_task(request: TuningRequest) -> SubTaskResult:
    try:
        model = tune_and_forecast(request)
    except Exception as exc:  # a failing model is dropped, not fatal
        return SubTaskResult(
            model_name=request.model_name,
            recipe=request.recipe,
            error=f"{type(exc).__name__}: {exc}",
        )
    return SubTaskResult(
        model_name=request.model_name, recipe=request.recipe, model=model
    )


def dispatch_models(
    requests: Sequence[TuningRequest],
    *,
    combo: str,
    mode: ParallelMode,
    num_cores: int,
) -> list[TrainedModel]:
    """Train every (model, recipe) request of one unit.

    Failed sub-tasks are logged and dropped; the unit fails only when no
    model could be trained.
    """
    pool = start_worker_pool(mode, num_cores, len(requests))
    try:
        results = list(pool.imap_unordered(run_sub_task, requests))
    finally:
        stop_worker_pool(pool)

    models: list[TrainedModel] = []
    ordered = sorted(results, key=lambda item: (item.model_name, item.recipe))
    for result in ordered:
        if result.model is None:
            logger.warning(
                "Model failed combo=%s model=%s recipe=%s error=%s",
                combo,
                result.model_name,
                result.recipe,
                result.error,
            )
            continue
        models.append(result.model)

    if not models:
        raise AllModelsFailedError(
            "All models failed to train",
            context={"combo": combo, "attempted": str(len(requests))},
        )
    logger.info(
        "Trained %s of %s models combo=%s", len(models), len(requests), combo
    )
    return models
