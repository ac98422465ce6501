"""Pytest configuration and fixtures for citysim tests."""

import os

import pytest

import citysim.events  # noqa: F401 - register all events
from citysim import logging
from citysim.core.registry import clear_registry
from citysim.simulation import Simulation


@pytest.fixture
def clean_registry():
    """
    Save registry state, clear it for the test, then restore it.

    This fixture should be explicitly requested by tests that need isolation
    from the built-in events or from test pollution by other test modules.

    DO NOT use autouse=True, as it would interfere with integration tests
    that rely on real events being registered.
    """
    # noinspection PyProtectedMember
    from citysim.core.registry import _EVENT_REGISTRY

    saved_events = dict(_EVENT_REGISTRY)

    clear_registry()

    yield

    _EVENT_REGISTRY.clear()
    _EVENT_REGISTRY.update(saved_events)


@pytest.fixture
def tiny_city() -> Simulation:
    """The default city with a fixed seed, for fast integration tests."""
    return Simulation.init(seed=123)


@pytest.fixture(autouse=True)
def mute_citysim_logs(caplog):
    # Optimize log level based on context:
    # - CI coverage run: DEBUG to execute all logging for accurate coverage
    # - everything else: ERROR for faster tests
    if os.environ.get("COVERAGE_RUN") == "true":
        level = logging.DEBUG
    else:
        level = logging.ERROR

    caplog.set_level(level, logger="citysim")
    logging.getLogger("citysim").setLevel(level)
