from __future__ import annotations

import logging
from concurrent.futures import Future, ProcessPoolExecutor, as_completed
from typing import Any, Callable, Iterator, Sequence, TypeVar

from forecast_trainer.domain import ConfigError
from forecast_trainer.domain.training import ParallelMode, WorkerPool

from .env import ray_address

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class SequentialPool:
    mode = "sequential"

    def imap_unordered(
        self, fn: Callable[[T], R], items: Sequence[T]
    ) -> Iterator[R]:
        for item in items:
            yield fn(item)

    def close(self) -> None:
        return None


class LocalMachinePool:
    mode = "local_machine"

    def __init__(self, worker_count: int) -> None:
        self._executor = ProcessPoolExecutor(max_workers=worker_count)

    def imap_unordered(
        self, fn: Callable[[T], R], items: Sequence[T]
    ) -> Iterator[R]:
        futures: list[Future[R]] = [
            self._executor.submit(fn, item) for item in items
        ]
        for future in as_completed(futures):
            yield future.result()

    def close(self) -> None:
        self._executor.shutdown(wait=True, cancel_futures=True)


class RayPool:
    mode = "ray"

    def __init__(self, address: str | None) -> None:
        self._ray = _import_ray()
        self._owns_runtime = not self._ray.is_initialized()
        if self._owns_runtime:
            _init_ray(self._ray, address)
        self._pending: list[Any] = []

    def imap_unordered(
        self, fn: Callable[[T], R], items: Sequence[T]
    ) -> Iterator[R]:
        remote_fn = self._ray.remote(fn)
        self._pending = [remote_fn.remote(item) for item in items]
        while self._pending:
            done, self._pending = self._ray.wait(self._pending, num_returns=1)
            yield self._ray.get(done[0])

    def close(self) -> None:
        for ref in self._pending:
            self._ray.cancel(ref, force=True)
        self._pending = []
        if self._owns_runtime and self._ray.is_initialized():
            self._ray.shutdown()


def start_worker_pool(
    mode: ParallelMode, num_cores: int, task_count: int
) -> WorkerPool:
    if mode == "sequential" or task_count <= 1:
        return SequentialPool()
    if mode == "local_machine":
        worker_count = max(1, min(num_cores, task_count))
        logger.info(
            "Starting local worker pool workers=%s tasks=%s",
            worker_count,
            task_count,
        )
        return LocalMachinePool(worker_count)
    if mode == "ray":
        logger.info("Starting ray worker pool tasks=%s", task_count)
        return RayPool(ray_address())
    raise ConfigError(
        "Unknown worker pool mode",
        context={"mode": str(mode)},
    )


def stop_worker_pool(pool: WorkerPool) -> None:
    try:
        pool.close()
    except Exception as exc:  # pragma: no cover
        logger.warning("Failed to stop %s worker pool: %s", pool.mode, exc)


def _import_ray():
    try:
        import ray  # pylint: disable=import-outside-toplevel
    except ImportError as exc:
        raise ConfigError(
            "ray is required when parallel_processing=ray; "
            "install with `pip install \"forecast-trainer[ray]\"`"
        ) from exc
    return ray


def _init_ray(ray: Any, address: str | None) -> None:
    if address:
        ray.init(
            address=address,
            ignore_reinit_error=True,
            include_dashboard=False,
        )
    else:
        ray.init(ignore_reinit_error=True, include_dashboard=False)
