from __future__ import annotations

import argparse
import logging
from functools import partial
from pathlib import Path
from typing import Any, Sequence

from forecast_trainer.application import training
from forecast_trainer.domain import ForecastTrainerError
from forecast_trainer.infrastructure import configure_logging, log_boundary

logger = logging.getLogger(__name__)

_BOOL_CHOICES = ("true", "false")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="forecast-trainer",
        description="Forecast model training command line interface.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help=(
            "Path to training config YAML "
            f"(default: {training.DEFAULT_CONFIG_PATH})."
        ),
    )
    subparsers = parser.add_subparsers(dest="command")

    train_parser = subparsers.add_parser(
        "train",
        help="Train models for every outstanding time series.",
    )
    train_parser.add_argument("--experiment-name", help="Experiment name.")
    train_parser.add_argument("--run-name", help="Run name.")
    train_parser.add_argument(
        "--storage-path",
        help="Root folder of the run artifacts.",
    )
    train_parser.add_argument(
        "--run-global-models",
        choices=("true", "false", "auto"),
        help="Train one global model across all time series.",
    )
    train_parser.add_argument(
        "--run-local-models",
        choices=_BOOL_CHOICES,
        help="Train models per time series.",
    )
    train_parser.add_argument(
        "--global-model-recipes",
        help="Comma-separated recipes used by global models.",
    )
    train_parser.add_argument(
        "--feature-selection",
        choices=_BOOL_CHOICES,
        help="Run feature selection before training eligible models.",
    )
    train_parser.add_argument(
        "--feature-selector",
        help="Registered feature selector name (default: target_corr).",
    )
    train_parser.add_argument(
        "--negative-forecast",
        choices=_BOOL_CHOICES,
        help="Allow negative forecast values.",
    )
    train_parser.add_argument(
        "--parallel-processing",
        choices=("none", "local_machine", "ray"),
        help="Run time series in parallel.",
    )
    train_parser.add_argument(
        "--inner-parallel",
        choices=_BOOL_CHOICES,
        help="Run models within a time series in parallel.",
    )
    train_parser.add_argument(
        "--num-cores",
        type=int,
        help="Maximum number of worker processes.",
    )
    train_parser.add_argument(
        "--seed",
        type=int,
        help="Random seed reset before every stochastic step.",
    )
    return parser


def _run_overrides(args: argparse.Namespace) -> dict[str, Any]:
    return {
        "experiment_name": getattr(args, "experiment_name", None),
        "run_name": getattr(args, "run_name", None),
        "storage_path": getattr(args, "storage_path", None),
    }


def _train_overrides(args: argparse.Namespace) -> dict[str, Any]:
    return {
        "run_global_models": getattr(args, "run_global_models", None),
        "run_local_models": getattr(args, "run_local_models", None),
        "global_model_recipes": getattr(args, "global_model_recipes", None),
        "feature_selection": getattr(args, "feature_selection", None),
        "feature_selector": getattr(args, "feature_selector", None),
        "negative_forecast": getattr(args, "negative_forecast", None),
        "parallel_processing": getattr(args, "parallel_processing", None),
        "inner_parallel": getattr(args, "inner_parallel", None),
        "num_cores": getattr(args, "num_cores", None),
        "seed": getattr(args, "seed", None),
    }


def _run_train(
    config_path: Path | None,
    *,
    run_overrides: dict[str, Any],
    train_overrides: dict[str, Any],
) -> int:
    config = training.apply_overrides(
        training.load_config(config_path),
        run=run_overrides,
        train=train_overrides,
    )
    summary = training.train_models(config.run, config.train)
    if summary.skipped:
        logger.info("Training skipped: all models already trained")
    else:
        logger.info(
            "Training complete trained=%s eligible=%s",
            len(summary.trained),
            len(summary.eligible),
        )
    return 0


def _run_missing_command() -> int:
    logger.error("No command given; use 'train'.")
    return 2


def _cli_context(argv: Sequence[str] | None) -> dict[str, str]:
    if not argv:
        return {}
    return {"argv": " ".join(argv)}


@log_boundary("cli.dispatch", context=_cli_context)
def _dispatch(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    config_path = getattr(args, "config", None)
    handlers = {
        None: _run_missing_command,
        "train": partial(
            _run_train,
            config_path,
            run_overrides=_run_overrides(args),
            train_overrides=_train_overrides(args),
        ),
    }
    handler = handlers.get(args.command)
    if handler is None:
        logger.error("Unknown command: %s", args.command)
        return 2
    try:
        return handler()
    except ForecastTrainerError as exc:
        if exc.context:
            logger.error("Error: %s context=%s", exc, exc.context)
        else:
            logger.error("Error: %s", exc)
        return 1


def main(argv: Sequence[str] | None = None) -> int:
    configure_logging()
    return _dispatch(argv)


if __name__ == "__main__":
    raise SystemExit(main())
