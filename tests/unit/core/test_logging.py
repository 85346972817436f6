"""Unit tests for structured logging helpers."""

import pytest
import structlog
from structlog.testing import capture_logs

from bdocore.core.config import Settings
from bdocore.core.filters import FilterTreeManager
from bdocore.core.logging import (
    LoggingContext,
    add_logger_name,
    configure_logging,
    rename_message_field,
)


@pytest.fixture
def reset_structlog():
    yield
    structlog.reset_defaults()


def test_rename_message_field():
    event = rename_message_field(None, "info", {"event": "hello", "x": 1})
    assert event == {"message": "hello", "x": 1}


def test_add_logger_name_fallback():
    event = add_logger_name(object(), "info", {})
    assert event["logger"] == "bdocore"


def test_configure_logging_json(reset_structlog):
    configure_logging(Settings(environment="production", log_format="json"))
    renderer = structlog.get_config()["processors"][-1]
    assert isinstance(renderer, structlog.processors.JSONRenderer)


def test_configure_logging_console(reset_structlog):
    configure_logging(Settings(environment="testing", log_format="console"))
    renderer = structlog.get_config()["processors"][-1]
    assert isinstance(renderer, structlog.dev.ConsoleRenderer)


def test_logging_context_binds_and_unbinds():
    with LoggingContext(bdo_id="BDO_Product"):
        assert structlog.contextvars.get_contextvars()["bdo_id"] == "BDO_Product"
    assert "bdo_id" not in structlog.contextvars.get_contextvars()


def test_missing_node_is_logged():
    manager = FilterTreeManager()

    with capture_logs() as logs:
        manager.remove_condition("missing")

    assert logs == [
        {"event": "Condition not found for removal", "node_id": "missing", "log_level": "warning"}
    ]
