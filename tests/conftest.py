"""
Shared fixtures for the mcpmux tests.
"""

import pytest

from fakes import FakeConnectionFactory


@pytest.fixture
def connections():
    """A fresh scripted connection factory."""
    return FakeConnectionFactory()


@pytest.fixture
def events():
    """Collects emitted events as (event_type, payload) tuples."""
    return []


@pytest.fixture
def record(events):
    """Builds handlers that append to the events list."""

    def make(event_type):
        def handler(payload):
            events.append((event_type, payload))

        return handler

    return make
