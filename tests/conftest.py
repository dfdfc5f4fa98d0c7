"""
Pytest configuration and shared fixtures for the phase-out planner tests.
"""

import pytest

from phaseout import create_app
from phaseout.config import Settings, reset_global_settings
from phaseout.models.policy import PolicySchedule, RateSet
from phaseout.models.time_grid import TimeGrid


@pytest.fixture
def settings():
    """Settings for a testing app, independent of the process environment."""
    return Settings(
        _env_file=None,
        SECRET_KEY="test-secret-key",
        APP_ENV="testing",
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture
def app(settings):
    """Create a Flask app using the built-in policy."""
    reset_global_settings()
    app = create_app(settings)
    yield app
    reset_global_settings()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def synthetic_policy():
    """
    A made-up schedule: exemption 50K in 2030-2031, removed from 2032.

    Uses non-default credit and estimate rates so tests catch any place the
    engine ignores the injected policy.
    """
    flat = RateSet(net_income_rate=0.05, gross_receipts_rate=0.002, profits_rate=0.03)
    return PolicySchedule(
        rates={year: flat for year in range(2030, 2035)},
        exemptions={2030: 50000, 2031: 50000, 2032: 0, 2033: 0, 2034: 0},
        credit_rate=0.5,
        estimated_profits_rate=0.25,
        small_filer_threshold=50000,
        analysis_window=TimeGrid(start_year=2031, end_year=2034),
        explanation_window=TimeGrid(start_year=2030, end_year=2034),
    )
