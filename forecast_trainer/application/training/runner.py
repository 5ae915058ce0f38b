from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from forecast_trainer.domain.training import (
    ArtifactStore,
    FeatureSelector,
    ModelSets,
    ParallelPlan,
    RunContext,
    RunInfo,
    TrainOptions,
)
from forecast_trainer.infrastructure import LocalArtifactStore, log_boundary
from forecast_trainer.infrastructure.paths import ArtifactPaths

from .inputs import load_broadcast_inputs
from .outer import UnitTask, dispatch_units
from .registry import TrainingRegistries, default_registries
from .resolver import resolve_parallel_plan, resolve_tasks
from .run_log import effective_fields, read_run_log, write_run_log
from .verification import CompletionSummary, verify_completion

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrainingSummary:
    options: TrainOptions
    plan: ParallelPlan
    eligible: tuple[str, ...]
    trained: tuple[str, ...]
    skipped: bool
    completion: CompletionSummary | None = None


def _boundary_context(
    run_info: RunInfo, *_args: object, **_kwargs: object
) -> Mapping[str, str]:
    return {
        "experiment": run_info.experiment_name,
        "run": run_info.run_name,
    }


@log_boundary("training.train_models", context=_boundary_context)
def train_models(
    run_info: RunInfo,
    options: TrainOptions | None = None,
    *,
    store: ArtifactStore | None = None,
    model_sets: ModelSets | None = None,
    registries: TrainingRegistries | None = None,
) -> TrainingSummary:
    """Train every outstanding partition unit of a run.

    Already completed units are kept, so a re-run only trains what is
    missing. The run log is rewritten once all units are verified.
    """
    options = options or TrainOptions()
    model_sets = model_sets or ModelSets()
    plan = resolve_parallel_plan(
        options.parallel_processing, options.inner_parallel, options.num_cores
    )
    store = store or LocalArtifactStore(Path(run_info.storage_path))
    paths = ArtifactPaths(run_info)

    run_log = read_run_log(store, paths)
    inputs = load_broadcast_inputs(store, paths)
    task_plan = resolve_tasks(
        store,
        paths,
        options=options,
        run_log=run_log,
        workflows=inputs.workflows,
        model_sets=model_sets,
    )
    if task_plan.skip:
        return TrainingSummary(
            options=task_plan.options,
            plan=plan,
            eligible=task_plan.eligible,
            trained=(),
            skipped=True,
        )

    context = RunContext(
        run_info=run_info,
        options=task_plan.options,
        run_log=run_log,
        plan=plan,
        inputs=inputs,
        model_sets=model_sets,
        feature_selector=_build_selector(task_plan.options, registries),
    )
    tasks = [
        UnitTask(context=context, store=store, combo=combo)
        for combo in task_plan.work
    ]
    trained: list[str] = []
    if tasks:
        trained = dispatch_units(
            tasks, mode=plan.outer_mode, num_cores=plan.num_cores
        )
    elif not task_plan.completed:
        logger.warning("No partitions eligible for training")

    completion = verify_completion(
        store,
        paths,
        eligible=task_plan.eligible,
        run_local=task_plan.options.run_local_models,
        run_global=bool(task_plan.options.run_global_models),
    )
    write_run_log(store, paths, run_log, effective_fields(task_plan.options))
    return TrainingSummary(
        options=task_plan.options,
        plan=plan,
        eligible=task_plan.eligible,
        trained=tuple(trained),
        skipped=False,
        completion=completion,
    )


def _build_selector(
    options: TrainOptions, registries: TrainingRegistries | None
) -> FeatureSelector | None:
    if not options.feature_selection:
        return None
    selectors = (registries or default_registries()).feature_selectors
    return selectors.build(options.feature_selector)
