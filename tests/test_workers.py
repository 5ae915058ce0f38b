from __future__ import annotations

import pytest

from forecast_trainer.domain import ConfigError
from forecast_trainer.infrastructure import (
    start_worker_pool,
    stop_worker_pool,
    workers,
)
from forecast_trainer.infrastructure.workers import (
    LocalMachinePool,
    SequentialPool,
)


def test_single_task_runs_in_process() -> None:
    pool = start_worker_pool("local_machine", num_cores=4, task_count=1)

    assert isinstance(pool, SequentialPool)
    assert list(pool.imap_unordered(abs, [-3])) == [3]


def test_local_machine_pool_limits_workers(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    sizes: list[int] = []
    executor_cls = workers.ProcessPoolExecutor

    def _executor(max_workers: int):
        sizes.append(max_workers)
        return executor_cls(max_workers=max_workers)

    monkeypatch.setattr(workers, "ProcessPoolExecutor", _executor)

    pool = start_worker_pool("local_machine", num_cores=8, task_count=2)
    try:
        assert isinstance(pool, LocalMachinePool)
        assert sizes == [2]
        assert sorted(pool.imap_unordered(abs, [-1, -2])) == [1, 2]
    finally:
        stop_worker_pool(pool)


def test_unknown_mode_is_rejected() -> None:
    with pytest.raises(ConfigError, match="Unknown worker pool mode"):
        start_worker_pool(
            "threads", num_cores=2, task_count=3  # type: ignore[arg-type]
        )
