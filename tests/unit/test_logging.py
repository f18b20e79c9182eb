# Assumptions:
# - Using pytest for testing framework
# - Processors tested directly; setup_logging checked for its structlog config

import logging

import pytest
import structlog

from oktaguard.logging.setup import (
    add_component_context,
    add_correlation_context,
    get_correlation_id,
    set_correlation_id,
    setup_logging,
)


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()


class TestLoggingSetup:
    """Test cases for structured logging helpers"""

    def test_component_processor(self):
        event = add_component_context("oktaguard")(None, "info", {"event": "Key set fetched"})

        assert event == {"event": "Key set fetched", "component": "oktaguard"}

    def test_correlation_processor(self):
        set_correlation_id("corr-1")
        try:
            event = add_correlation_context()(None, "info", {"event": "x"})
        finally:
            set_correlation_id(None)

        assert event["correlation_id"] == "corr-1"
        assert get_correlation_id() is None

    def test_correlation_processor_without_id(self):
        assert add_correlation_context()(None, "info", {"event": "x"}) == {"event": "x"}

    def test_setup_logging_json(self, restore_logging):
        setup_logging("oktaguard-test", level="DEBUG", format_type="json")

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_setup_logging_console(self, restore_logging):
        setup_logging("oktaguard-test", format_type="console")

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)
