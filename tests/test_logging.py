"""Tests for the structured logging setup."""
from __future__ import annotations

import json
import logging

import pytest
import structlog

from swiftship.core.logging import SERVICE_NAME, configure_logging, get_logger


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


def test_records_carry_service_and_environment(caplog: pytest.LogCaptureFixture) -> None:
    configure_logging("DEBUG", environment="staging")
    caplog.set_level(logging.INFO)

    get_logger(name="swiftship.tests", task_id="task-1").info("task_started")

    record = json.loads(caplog.records[-1].getMessage())
    assert record["event"] == "task_started"
    assert record["service"] == SERVICE_NAME
    assert record["environment"] == "staging"
    assert record["task_id"] == "task-1"
    assert record["level"] == "info"
    assert record["logger"] == "swiftship.tests"
