"""
Shared fixtures for vemcap tests.
"""

import pytest

from vemcap.config import EngineConfig
from vemcap.engine import ParallelEngine, shutdown_engine


@pytest.fixture(autouse=True)
def reset_shared_engine():
    """Give every test a fresh process-wide engine."""
    shutdown_engine()
    yield
    shutdown_engine()


@pytest.fixture
def engine():
    """A private four-worker engine."""
    with ParallelEngine(EngineConfig(max_workers=4)) as eng:
        yield eng
