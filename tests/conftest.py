"""
Pytest configuration for Local Agent Core tests.

This module provides:
1. A controllable clock for expiry tests
2. Common fixtures for all tests
3. Test session configuration
"""

from datetime import datetime, timedelta, timezone

import pytest

from agent_core.context_model import Context
from agent_core.intent_generator import IntentGenerator
from agent_core.policy_engine import PolicyEngine


# -----------------------------------------------------------------------------
# Controllable Clock
# -----------------------------------------------------------------------------
class FakeClock:
    """
    Clock that only moves when told to.

    Usage:
        clock = FakeClock()
        engine = PolicyEngine(clock=clock)
        clock.advance(hours=2)
    """
    def __init__(self, start: datetime = None):
        self.now = start or datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


# -----------------------------------------------------------------------------
# Common Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def generator():
    return IntentGenerator()


@pytest.fixture
def engine(clock):
    """Policy engine restricted to the device module."""
    return PolicyEngine(allowed_modules=["device"], clock=clock)


@pytest.fixture
def open_engine(clock):
    """Policy engine with no allow-list restriction."""
    return PolicyEngine(clock=clock)


@pytest.fixture
def awake_context():
    return Context(user_id=TEST_USER_ID, current_location="home", current_activity="working")


@pytest.fixture
def sleeping_context():
    return Context(user_id=TEST_USER_ID, current_location="home", current_activity="sleeping")


@pytest.fixture
def device_intent(generator):
    return generator.generate(
        "device.control",
        0.9,
        {"device": "living_room_light", "action": "on"},
        "User wants to turn on the living room light",
    )


# -----------------------------------------------------------------------------
# Test Constants
# -----------------------------------------------------------------------------
TEST_USER_ID = "test-user-123"


# -----------------------------------------------------------------------------
# Session Configuration
# -----------------------------------------------------------------------------
def pytest_configure(config):
    """Configure pytest session."""
    config.addinivalue_line(
        "markers", "concurrency: tests that exercise the grant-table lock"
    )
