"""
Shared test fixtures for the LifeOS client core test suite.
"""

import pytest
import structlog

from lifeos.auth import AuthenticatedUser, Session
from lifeos.config import Settings, get_settings
from lifeos.models.billing import BillingCycle, PlanTier, UserSubscription


@pytest.fixture(autouse=True)
def _set_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Point the client at a fake host so Settings never reaches a real backend."""
    monkeypatch.setenv("API_BASE_URL", "http://lifeos.test/api")
    monkeypatch.setenv("DEBUG", "false")
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _configure_structlog_for_tests():
    """Configure structlog for tests using a simple, deterministic setup."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(0),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )
    yield
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def user() -> AuthenticatedUser:
    return AuthenticatedUser(
        id="user-1",
        email="user@example.com",
        name="Asha Rao",
        phone="+919800000000",
    )


@pytest.fixture
def session(user: AuthenticatedUser) -> Session:
    return Session(token="test-token", user=user)


@pytest.fixture
def free_subscription() -> UserSubscription:
    return UserSubscription(plan=PlanTier.FREE, billing_cycle=BillingCycle.NONE, is_active=True)


@pytest.fixture
def pro_subscription() -> UserSubscription:
    return UserSubscription(
        plan=PlanTier.PRO,
        billing_cycle=BillingCycle.MONTHLY,
        price=199,
        is_active=True,
        days_remaining=30,
    )
