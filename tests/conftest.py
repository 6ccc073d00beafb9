"""
Global pytest configuration and fixtures for prefetch pool tests
"""

import logging
import sys
from pathlib import Path
from unittest.mock import Mock

import pytest

# Add the src directory to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from prefetch_pool.core.clock import ManualClock
from prefetch_pool.core.events import EventNotifier, EventType
from prefetch_pool.pooling.registry import PoolRegistry
from prefetch_pool.pooling.scheduler import RefillScheduler
from prefetch_pool.testing import ScriptedProvider

# Configure logging for tests
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logging.getLogger('aiohttp').setLevel(logging.WARNING)


@pytest.fixture
def clock():
    """Simulated clock starting at t=0"""
    return ManualClock()


@pytest.fixture
def notifier():
    return EventNotifier()


@pytest.fixture
def recorded_events(notifier):
    """Every event published through the notifier fixture, in order"""
    events = []
    notifier.subscribe(events.append)
    return events


@pytest.fixture
def provider():
    return ScriptedProvider()


@pytest.fixture
def scheduler(provider, clock):
    return RefillScheduler(provider, clock)


@pytest.fixture
def registry(scheduler, clock, notifier):
    return PoolRegistry(scheduler, clock, notifier)


@pytest.fixture
def fake_scheduler():
    """Scheduler stand-in that records requests without running anything"""
    return Mock(spec=RefillScheduler)


def launched_tokens(fake_scheduler):
    """Fetch tokens handed to a fake scheduler, oldest first"""
    return [c.args[1] for c in fake_scheduler.launch_fetch.call_args_list]


def events_of(events, event_type: EventType):
    return [e for e in events if e.event_type == event_type]


def pytest_configure(config):
    """Configure custom pytest markers"""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
