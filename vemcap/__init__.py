"""
vemcap

Split element-wise work on large collections across threads, and keep small
collections on the calling thread.
"""

from .config import EngineConfig, EngineConfigError, load_engine_config
from .dispatch import threaded_map, threaded_mutate
from .engine import (
    EngineShutdownError,
    ParallelEngine,
    configure_engine,
    get_engine,
    shared_engine,
    shutdown_engine,
)
from .slot import Slot, SlotReleasedError
from .strategies import ParallelStrategy, SequentialStrategy, select_strategy
from .threshold import THRESHOLD, should_use_parallel

__version__ = "0.1.0"

__all__ = [
    "THRESHOLD",
    "should_use_parallel",
    "threaded_map",
    "threaded_mutate",
    "Slot",
    "SlotReleasedError",
    "SequentialStrategy",
    "ParallelStrategy",
    "select_strategy",
    "ParallelEngine",
    "EngineShutdownError",
    "get_engine",
    "shared_engine",
    "configure_engine",
    "shutdown_engine",
    "EngineConfig",
    "EngineConfigError",
    "load_engine_config",
]
