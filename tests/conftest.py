"""
Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests
in the Dealbuster test suite.
"""

import logging

import pytest

from dealbuster.components.notifier import EventNotifier
from dealbuster.models.config import ModeConfig, OperatingMode
from dealbuster.services.deal_service import DealService
from dealbuster.utils import logging as dealbuster_logging
from dealbuster.utils.error_handling import ErrorTracker

from engine_fixtures import EventRecorder, FakeClock, ManualScheduler


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def recorder():
    return EventRecorder()


@pytest.fixture
def make_service(clock, recorder):
    """Factory for services wired to the fake clock, recorder and manual scheduler."""

    def _make(mode: OperatingMode = OperatingMode.CENTRALIZED, **thresholds) -> DealService:
        notifier = EventNotifier(error_tracker=ErrorTracker())
        notifier.subscribe(recorder)
        return DealService(
            mode_config=ModeConfig(mode=mode, **thresholds),
            notifier=notifier,
            scheduler_factory=ManualScheduler,
            clock=clock,
        )

    return _make


@pytest.fixture
def centralized_service(make_service):
    return make_service(OperatingMode.CENTRALIZED)


@pytest.fixture
def decentralized_service(make_service):
    return make_service(OperatingMode.DECENTRALIZED)


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers installed by setup_logging so tests stay isolated."""
    yield
    dealbuster_logging.shutdown_logging()
    for name in ["dealbuster"] + [
        f"dealbuster.{c}" for c in dealbuster_logging.LoggingManager.COMPONENTS
    ]:
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)


# Pytest configuration
def pytest_collection_modifyitems(config, items):
    """Add the unit marker to every test not marked integration or slow."""
    for item in items:
        if not any(
            marker.name in ["integration", "slow"] for marker in item.iter_markers()
        ):
            item.add_marker(pytest.mark.unit)
