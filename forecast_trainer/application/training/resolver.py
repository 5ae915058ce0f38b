from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from typing import Sequence

from forecast_trainer.domain import (
    ConfigError,
    ConflictingResumeError,
    TrainingError,
)
from forecast_trainer.domain.training import (
    ALL_DATA,
    ArtifactStore,
    ModelSets,
    ParallelMode,
    ParallelPlan,
    RunLog,
    TrainOptions,
    WorkflowSpec,
)
from forecast_trainer.infrastructure.paths import (
    SINGLE_MODELS_SUFFIX,
    ArtifactPaths,
    hash_data,
    parse_artifact_name,
)

from .run_log import has_training_config, tunable_fields, tunable_hash

logger = logging.getLogger(__name__)

_OUTER_MODES = ("local_machine", "ray")
_LOCAL_ONLY_DATE_TYPES = ("day", "week")
_GLOBAL_APPROACH = "bottoms_up"


@dataclass(frozen=True)
class TaskPlan:
    """Outcome of task resolution.

    ``options`` carries the effective global-model flag. ``skip`` is set
    when every eligible unit is already complete with identical inputs.
    """

    options: TrainOptions
    eligible: tuple[str, ...]
    completed: tuple[str, ...]
    work: tuple[str, ...]
    skip: bool = False


def resolve_parallel_plan(
    parallel_processing: str | None,
    inner_parallel: bool,
    num_cores: int | None,
) -> ParallelPlan:
    if (
        parallel_processing is not None
        and parallel_processing not in _OUTER_MODES
    ):
        raise ConfigError(
            "parallel_processing must be local_machine, ray or empty",
            context={"parallel_processing": str(parallel_processing)},
        )
    if inner_parallel and parallel_processing is not None:
        raise ConfigError(
            "inner_parallel cannot be combined with parallel_processing",
            context={"parallel_processing": parallel_processing},
        )
    available = max(1, (os.cpu_count() or 1) - 1)
    cores = available if num_cores is None else int(num_cores)
    if cores < 1:
        raise ConfigError(
            "num_cores must be at least 1",
            context={"num_cores": str(num_cores)},
        )
    if cores > available:
        logger.warning(
            "Capping num_cores=%s to available cores=%s", cores, available
        )
        cores = available
    outer_mode: ParallelMode = (
        "ray" if parallel_processing == "ray" else
        "local_machine" if parallel_processing else "sequential"
    )
    return ParallelPlan(
        outer_mode=outer_mode,
        inner_mode="local_machine" if inner_parallel else "sequential",
        num_cores=cores,
    )


def resolve_global_models(
    requested: bool | None,
    *,
    run_log: RunLog,
    workflows: Sequence[WorkflowSpec],
    combo_count: int,
    model_sets: ModelSets,
) -> bool:
    if (
        run_log.date_type in _LOCAL_ONLY_DATE_TYPES
        or run_log.forecast_approach != _GLOBAL_APPROACH
    ):
        if requested:
            logger.info(
                "Turning global models off for date_type=%s approach=%s",
                run_log.date_type,
                run_log.forecast_approach,
            )
        return False
    enabled = True if requested is None else bool(requested)
    if enabled and not any(
        spec.model_name in model_sets.global_models for spec in workflows
    ):
        logger.info(
            "Turning global models off since no multivariate models "
            "were chosen to run"
        )
        return False
    if enabled and combo_count == 1:
        logger.info(
            "Turning global models off since there is only a single "
            "time series"
        )
        return False
    return enabled


def list_prepared_combos(
    store: ArtifactStore, paths: ArtifactPaths
) -> list[str]:
    combos: list[str] = []
    for path in store.list_files(paths.recipe_data_pattern()):
        name = parse_artifact_name(path)
        if name is not None and name.combo not in combos:
            combos.append(name.combo)
    return combos


def list_completed_combos(
    store: ArtifactStore, paths: ArtifactPaths
) -> tuple[list[str], bool]:
    """Return local forecast combos and whether the global unit finished.

    The global unit writes its fitted-model collection after every
    partition slice, so that collection marks it complete.
    """
    local: list[str] = []
    global_done = bool(
        store.list_files(paths.models_path(hash_data(ALL_DATA)))
    )
    for path in store.list_files(paths.forecast_pattern()):
        name = parse_artifact_name(path)
        if name is None:
            continue
        if name.suffix == SINGLE_MODELS_SUFFIX and name.combo not in local:
            local.append(name.combo)
    return local, global_done


def build_eligible(
    combos: Sequence[str], *, run_local: bool, run_global: bool
) -> tuple[str, ...]:
    eligible = list(combos) if run_local else []
    if run_global and len(combos) > 1:
        eligible.append(ALL_DATA)
    return tuple(eligible)


def resolve_tasks(
    store: ArtifactStore,
    paths: ArtifactPaths,
    *,
    options: TrainOptions,
    run_log: RunLog,
    workflows: Sequence[WorkflowSpec],
    model_sets: ModelSets,
) -> TaskPlan:
    combos = list_prepared_combos(store, paths)
    if not combos:
        raise TrainingError(
            "No prepared data found for run",
            context={"pattern": paths.recipe_data_pattern()},
        )
    run_global = resolve_global_models(
        options.run_global_models,
        run_log=run_log,
        workflows=workflows,
        combo_count=len(combos),
        model_sets=model_sets,
    )
    resolved = replace(options, run_global_models=run_global)
    eligible = build_eligible(
        combos, run_local=resolved.run_local_models, run_global=run_global
    )

    local_done, global_done = list_completed_combos(store, paths)
    completed = tuple(local_done + ([ALL_DATA] if global_done else []))
    work = tuple(combo for combo in eligible if combo not in completed)
    logger.info(
        "Resolved tasks eligible=%s completed=%s work=%s run_global_models=%s",
        len(eligible),
        len(completed),
        len(work),
        run_global,
    )

    if not work and completed and not has_training_config(run_log.fields):
        logger.info(
            "No training flags recorded in the run log, verifying existing "
            "forecasts"
        )
    elif not work and completed:
        current = tunable_hash(tunable_fields(resolved))
        previous = tunable_hash(run_log.fields)
        if current != previous:
            raise ConflictingResumeError(
                "Inputs have recently changed in 'train_models', please "
                "revert back to original inputs or start a new run",
                context={
                    "experiment": paths.run_info.experiment_name,
                    "run": paths.run_info.run_name,
                },
            )
        logger.info("Individual models already trained")
        return TaskPlan(
            options=resolved,
            eligible=eligible,
            completed=completed,
            work=work,
            skip=True,
        )
    return TaskPlan(
        options=resolved, eligible=eligible, completed=completed, work=work
    )
