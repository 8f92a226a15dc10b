"""
Global pytest configuration and fixtures for LADS tests
"""

import asyncio
import logging

import pytest

from lads.config import LadsConfig
from lads.core.scheduler import Scheduler

# Configure logging for tests
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

# Suppress noisy logs during testing
logging.getLogger('aiohttp').setLevel(logging.WARNING)

# Seconds per countdown tick in tests
TEST_TICK = 0.01

LADS_ENV_VARS = (
    'LADS_TICK_INTERVAL',
    'LADS_DISPATCH_INTERVAL',
    'LADS_DRAIN_TIMEOUT',
    'LADS_LOG_LEVEL',
    'LADS_GEMINI_MODEL',
    'GEMINI_API_KEY',
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the caller's environment out of configuration"""
    for name in LADS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
async def cleanup_tasks():
    """Automatically cleanup any remaining countdowns after each test"""
    yield

    current = asyncio.current_task()
    tasks = [task for task in asyncio.all_tasks() if not task.done() and task is not current]
    if tasks:
        for task in tasks:
            task.cancel()

        # Wait for tasks to be cancelled
        await asyncio.gather(*tasks, return_exceptions=True)


@pytest.fixture
def config():
    """Fast-ticking configuration"""
    return LadsConfig(tick_interval=TEST_TICK)


@pytest.fixture
def scheduler(config):
    """Scheduler with an empty registry"""
    return Scheduler(config)


# Custom markers for test categorization
def pytest_configure(config):
    """Configure custom pytest markers"""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Tests that take more than 5 seconds")
