from __future__ import annotations

import os

from dotenv import load_dotenv

from forecast_trainer.domain import EnvVarError

load_dotenv()


def require_env(name: str) -> str:
    value = optional_env(name)
    if value is None:
        raise EnvVarError(
            f"{name} must be set in .env", context={"env_var": name}
        )
    return value


def optional_env(name: str) -> str | None:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def ray_address() -> str | None:
    """Cluster address from RAY_ADDRESS: 'auto', 'host:port' or 'ray://...'."""
    value = optional_env("RAY_ADDRESS")
    if value is None or value == "auto" or value.startswith("ray://"):
        return value
    host, _, port = value.rpartition(":")
    if not host or not port.isdigit():
        raise EnvVarError(
            "RAY_ADDRESS must be 'auto', 'host:port' or a ray:// URL",
            context={"env_var": "RAY_ADDRESS", "value": value},
        )
    return value
