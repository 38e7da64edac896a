"""Shared fixtures."""

import pytest

from surveynav.config import EngineSettings
from surveynav.examples import build_example_car_survey


@pytest.fixture
def car_survey():
    return build_example_car_survey()


@pytest.fixture
def settings():
    return EngineSettings(_env_file=None)
