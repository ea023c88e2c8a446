"""Tests for settings, logging helpers and the exception hierarchy."""

import json
import logging

from reviewbridge.core.config import Settings
from reviewbridge.core.exceptions import (
    AnchorResolutionError,
    CommentNotFoundError,
    RepositoryError,
    ReviewBridgeException,
)
from reviewbridge.core.logging_config import StructuredJSONFormatter, get_logger


def test_settings_defaults(monkeypatch):
    monkeypatch.delenv("PORT", raising=False)
    monkeypatch.delenv("REPO_ROOT", raising=False)
    settings = Settings(_env_file=None)
    assert settings.PORT == 27182
    assert settings.MCP_PATH == "/mcp"
    assert settings.REPO_ROOT is None


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("PORT", "9000")
    monkeypatch.setenv("REPO_ROOT", "/srv/repo")
    settings = Settings(_env_file=None)
    assert settings.PORT == 9000
    assert settings.REPO_ROOT == "/srv/repo"


def test_get_logger_namespacing():
    assert get_logger("diff.parser").name == "reviewbridge.diff.parser"
    assert get_logger("reviewbridge.main").name == "reviewbridge.main"


def test_json_formatter_includes_extra_fields():
    record = logging.LogRecord("reviewbridge.test", logging.INFO, __file__, 1, "hello %s", ("x",), None)
    record.session_id = "abc"
    data = json.loads(StructuredJSONFormatter().format(record))
    assert data["message"] == "hello x"
    assert data["level"] == "INFO"
    assert data["session_id"] == "abc"


def test_exception_status_codes():
    assert isinstance(RepositoryError("/x", "nope"), ReviewBridgeException)
    assert RepositoryError("/x", "nope").status_code == 400
    assert CommentNotFoundError("c1").message == "Comment c1 not found."
    error = AnchorResolutionError("a.ts", 7)
    assert error.status_code == 422
    assert "Call get_diff first" in error.message
