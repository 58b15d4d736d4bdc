"""
Pytest configuration and shared fixtures for all classlink tests.

Unit tests drive every loader on a ManualScheduler (virtual clock), so timing
is deterministic and no event loop is needed. Integration tests run real
source files under asyncio.
"""

import sys
import pytest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
from classlink.loader import Loader
from classlink.runtime.scheduling import ManualScheduler
from classlink.utils.config import LoaderConfig

from tests.test_utils import StubFetcher


# =============================================================================
# Function-scoped fixtures (default - one per test)
# =============================================================================

@pytest.fixture
def scheduler():
    """Fresh virtual clock starting at 0."""
    return ManualScheduler()


@pytest.fixture
def config():
    """Stock engine timings."""
    return LoaderConfig()


@pytest.fixture
def fetcher():
    """Fetcher that completes synchronously; every file exists unless marked missing."""
    return StubFetcher()


@pytest.fixture
def loader(fetcher, scheduler, config):
    """
    Loader wired to the stub fetcher and the virtual clock.
    Closed after the test so no timers outlive it.
    """
    instance = Loader(fetcher, scheduler=scheduler, config=config)
    yield instance
    instance.close()


# =============================================================================
# Markers
# =============================================================================

def pytest_configure(config):
    """Register custom markers for test organization."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
