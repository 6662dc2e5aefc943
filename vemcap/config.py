"""
vemcap/config.py

Configuration for the worker pool behind the parallel path.

The pool settings live in a YAML file with a single ``engine`` section:

    engine:
      max_workers: 8            # null -> derived from CPU count
      partitions_per_worker: 4
      thread_name_prefix: vemcap

Lookup order for load_engine_config():
    1. explicit path argument
    2. VEMCAP_CONFIG environment variable
    3. vemcap_config.yaml shipped with the package

The dispatch threshold itself is a constant (see vemcap.threshold) and is
deliberately absent here.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

logger = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).parent
DEFAULT_CONFIG_PATH = PACKAGE_DIR / "vemcap_config.yaml"
CONFIG_ENV_VAR = "VEMCAP_CONFIG"


class EngineConfigError(ValueError):
    """Raised when engine configuration is invalid."""
    pass


@dataclass(frozen=True)
class EngineConfig:
    """Worker pool settings for the parallel engine."""

    max_workers: Optional[int] = None       # None -> auto from CPU count
    partitions_per_worker: int = 4          # index ranges handed to each worker
    thread_name_prefix: str = "vemcap"

    def __post_init__(self):
        if self.max_workers is not None:
            if isinstance(self.max_workers, bool) or not isinstance(self.max_workers, int):
                raise EngineConfigError(
                    f"max_workers must be an integer or None, got {self.max_workers!r}"
                )
            if self.max_workers < 1:
                raise EngineConfigError(f"max_workers must be >= 1, got {self.max_workers}")
        if isinstance(self.partitions_per_worker, bool) or not isinstance(self.partitions_per_worker, int):
            raise EngineConfigError(
                f"partitions_per_worker must be an integer, got {self.partitions_per_worker!r}"
            )
        if self.partitions_per_worker < 1:
            raise EngineConfigError(
                f"partitions_per_worker must be >= 1, got {self.partitions_per_worker}"
            )
        if not self.thread_name_prefix:
            raise EngineConfigError("thread_name_prefix must be a non-empty string")

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "EngineConfig":
        """Build a config from the ``engine`` mapping of a config file."""
        data = data or {}
        if not isinstance(data, dict):
            raise EngineConfigError(f"engine section must be a mapping, got {type(data).__name__}")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise EngineConfigError(f"Unknown engine config keys: {', '.join(unknown)}")

        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_workers": self.max_workers,
            "partitions_per_worker": self.partitions_per_worker,
            "thread_name_prefix": self.thread_name_prefix,
        }


def resolve_config_path(path: Optional[Union[str, Path]] = None) -> Path:
    """Return the config file to read, following the documented lookup order."""
    if path is not None:
        return Path(path)

    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)

    return DEFAULT_CONFIG_PATH


def load_engine_config(path: Optional[Union[str, Path]] = None) -> EngineConfig:
    """
    Load engine configuration from YAML.

    Args:
        path: Optional explicit config file.

    Returns:
        Validated EngineConfig.

    Raises:
        FileNotFoundError: If the resolved file does not exist.
        EngineConfigError: If the file content is malformed or invalid.
    """
    config_path = resolve_config_path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Engine config not found: {config_path}")

    with open(config_path, "r") as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise EngineConfigError(f"Config root must be a mapping: {config_path}")

    config = EngineConfig.from_dict(raw.get("engine"))
    logger.info(f"Loaded engine config from {config_path}: {config.to_dict()}")
    return config


__all__ = [
    "EngineConfig",
    "EngineConfigError",
    "load_engine_config",
    "resolve_config_path",
    "CONFIG_ENV_VAR",
    "DEFAULT_CONFIG_PATH",
]
