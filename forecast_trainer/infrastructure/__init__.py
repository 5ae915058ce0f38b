from .env import optional_env, ray_address, require_env
from .logging import configure_logging, log_boundary
from .paths import (
    ArtifactName,
    ArtifactPaths,
    hash_data,
    parse_artifact_name,
)
from .storage import LocalArtifactStore, ensure_directory
from .workers import start_worker_pool, stop_worker_pool

__all__ = [
    "ArtifactName",
    "ArtifactPaths",
    "LocalArtifactStore",
    "configure_logging",
    "ensure_directory",
    "hash_data",
    "log_boundary",
    "optional_env",
    "parse_artifact_name",
    "ray_address",
    "require_env",
    "start_worker_pool",
    "stop_worker_pool",
]
