"""Unit tests for structured logging."""

import json
import logging

from fhir_codec.infrastructure.logging_config import StructuredFormatter, setup_logging


def _record(**context):
    record = logging.LogRecord(
        name="fhir_codec.adapters.codecs.json_codec",
        level=logging.WARNING,
        pathname=__file__,
        lineno=10,
        msg="Rejected JSON document: %s",
        args=("unknown field",),
        exc_info=None,
    )
    for name, value in context.items():
        setattr(record, name, value)
    return record


class TestStructuredFormatter:
    """Test JSON log formatting."""

    def test_json_record(self):
        """Records become JSON objects with codec context."""
        data = json.loads(StructuredFormatter().format(_record(codec="json", resource_type="Patient")))

        assert data["level"] == "WARNING"
        assert data["message"] == "Rejected JSON document: unknown field"
        assert data["codec"] == "json"
        assert data["resource_type"] == "Patient"
        assert data["timestamp"].endswith("Z")

    def test_missing_context_omitted(self):
        """Context fields that are unset or None are left out."""
        data = json.loads(StructuredFormatter().format(_record(codec="xml", resource_type=None)))

        assert data["codec"] == "xml"
        assert "resource_type" not in data


class TestSetupLogging:
    """Test root logger configuration."""

    def test_level_and_formatter(self):
        """setup_logging installs one handler at the requested level."""
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level
        try:
            setup_logging(use_json=True, log_level="debug")

            assert root.level == logging.DEBUG
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, StructuredFormatter)
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

    def test_unknown_level_falls_back(self):
        """Unknown level names mean INFO."""
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level
        try:
            setup_logging(log_level="chatty")

            assert root.level == logging.INFO
            assert not isinstance(root.handlers[0].formatter, StructuredFormatter)
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
