"""Shared fixtures for the minds test suite."""

import pytest

from minds.config import Settings
from minds.personas import default_registry

from tests.helpers import recording_sleep as make_recording_sleep


@pytest.fixture
def registry():
    return default_registry()


@pytest.fixture
def settings():
    return Settings(api_key="test-key")


@pytest.fixture
def recording_sleep():
    return make_recording_sleep()
