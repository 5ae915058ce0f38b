from __future__ import annotations

import functools
import logging
import time
from typing import Callable, Mapping, ParamSpec, TypeVar

from forecast_trainer.domain import EnvVarError
from .env import optional_env, require_env

LogContext = Mapping[str, str]
ContextFactory = Callable[..., LogContext]

P = ParamSpec("P")
R = TypeVar("R")

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
# third-party loggers that flood INFO during worker start-up
_QUIET_LOGGERS = ("ray", "sklearn", "joblib")


def _build_console_handler() -> logging.Handler:
    return logging.StreamHandler()


def _build_file_handler() -> logging.Handler:
    return logging.FileHandler(require_env("LOG_FILE_PATH"))


_HANDLER_BUILDERS: dict[str, Callable[[], logging.Handler]] = {
    "console": _build_console_handler,
    "file": _build_file_handler,
}


def configure_logging() -> None:
    """Configure root logging from LOG_DEST, LOG_FILE_PATH and LOG_LEVEL."""
    handlers = [
        _HANDLER_BUILDERS[name]() for name in _log_destinations()
    ]
    logging.basicConfig(
        level=_log_level(),
        format=_LOG_FORMAT,
        handlers=handlers,
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _log_destinations() -> list[str]:
    raw = optional_env("LOG_DEST") or "console"
    names = [part.strip().lower() for part in raw.split(",") if part.strip()]
    if not names:
        raise EnvVarError(
            "LOG_DEST must include at least one destination",
            context={"env_var": "LOG_DEST", "value": raw},
        )
    unknown = [name for name in names if name not in _HANDLER_BUILDERS]
    if unknown:
        raise EnvVarError(
            "LOG_DEST must be 'console' or 'file'",
            context={"env_var": "LOG_DEST", "value": ", ".join(unknown)},
        )
    return list(dict.fromkeys(names))


def _log_level() -> str:
    level = (optional_env("LOG_LEVEL") or "INFO").strip().upper()
    if level not in _LEVELS:
        raise EnvVarError(
            "LOG_LEVEL must be a standard logging level",
            context={"env_var": "LOG_LEVEL", "value": level},
        )
    return level


def log_boundary(
    name: str,
    *,
    logger: logging.Logger | None = None,
    context: LogContext | ContextFactory | None = None,
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Log start, completion time and failure of a pipeline entry point."""

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        log = logger or logging.getLogger(func.__module__)

        @functools.wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            details = _format_context(
                _resolve_context(context, *args, **kwargs)
            )
            log.info("event=start boundary=%s%s", name, details)
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                log.warning(
                    "event=failed boundary=%s error=%s%s",
                    name,
                    type(exc).__name__,
                    details,
                )
                raise
            log.info(
                "event=complete boundary=%s elapsed=%.2fs%s",
                name,
                time.perf_counter() - started,
                details,
            )
            return result

        return wrapper

    return decorator


def _resolve_context(
    context: LogContext | ContextFactory | None,
    *args: object,
    **kwargs: object,
) -> LogContext | None:
    if context is None:
        return None
    if callable(context):
        return context(*args, **kwargs)
    return context


def _format_context(context: LogContext | None) -> str:
    if not context:
        return ""
    pairs = " ".join(
        f"{key}={value}" for key, value in sorted(context.items())
    )
    return f" {pairs}"
