"""Unit tests for the structlog logging configuration."""

import structlog

from lifeos.auth import AuthenticatedUser, Session
from lifeos.logging_config import setup_logging


class TestSetupLogging:
    def test_setup_logging_runs_without_error_debug(self):
        setup_logging(debug=True)
        logger = structlog.get_logger("test")
        # Should not raise
        logger.info("test_event", key="value")

    def test_setup_logging_runs_without_error_production(self):
        setup_logging(debug=False)
        logger = structlog.get_logger("test")
        # Should not raise
        logger.info("test_event", key="value")


class TestSessionContextBinding:
    def test_session_binds_user_id(self):
        structlog.contextvars.clear_contextvars()
        Session(token="t", user=AuthenticatedUser(id="user-42")).bind_log_context()

        assert structlog.contextvars.get_contextvars()["user_id"] == "user-42"

        structlog.contextvars.clear_contextvars()
        assert structlog.contextvars.get_contextvars() == {}

    def test_anonymous_session_binds_nothing(self):
        structlog.contextvars.clear_contextvars()
        Session(token="t").bind_log_context()

        assert structlog.contextvars.get_contextvars() == {}
