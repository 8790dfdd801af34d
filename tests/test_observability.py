"""Tests for configuration and structured logging"""

import json
import logging
import sys

import pytest
import structlog
from pydantic import ValidationError

from repogate.core.config import Settings
from repogate.core.models import UnitRegistry, UnitType
from repogate.infrastructure.database import DatabaseConnection
from repogate.infrastructure.logging import (bind_context, clear_context, get_logger,
                                            setup_logging, unbind_context)
from repogate.infrastructure.logging_processors import (add_authorization_context,
                                                        add_service_context,
                                                        format_exception_info,
                                                        sanitize_sensitive_data,
                                                        set_log_severity)


@pytest.fixture(autouse=True)
def clean_context():
    clear_context()
    yield
    clear_context()


class TestSettings:
    """Settings loading"""

    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.environment == "development"
        assert settings.is_development
        assert settings.log_format == "console"
        assert settings.status_context_window_days == 7
        assert settings.default_collaboration_mode == "write"
        assert settings.disabled_repo_units == []

    def test_production_forces_json_logs(self):
        settings = Settings(_env_file=None, environment="production", log_format="console")

        assert settings.is_production
        assert settings.log_format == "json"
        assert Settings(_env_file=None, environment="production").log_format == "json"

    def test_context_window_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, status_context_window_days=0)

    def test_environment_variables(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("DEFAULT_COLLABORATION_MODE", "read")

        settings = Settings(_env_file=None)

        assert settings.log_level == "DEBUG"
        assert settings.default_collaboration_mode == "read"

    def test_unit_registry_from_settings(self):
        settings = Settings(_env_file=None, disabled_repo_units=["repo.wiki"])

        registry = UnitRegistry.from_settings(settings)

        assert registry.is_disabled(UnitType.WIKI)
        assert UnitType.WIKI not in registry.default_units()

    def test_database_connection_from_settings(self):
        settings = Settings(_env_file=None, database_url="sqlite:///./other.db")

        connection = DatabaseConnection.from_settings(settings)

        assert connection.database_url == "sqlite+aiosqlite:///./other.db"
        assert connection.is_sqlite


class TestSanitizeSensitiveData:
    """Redaction of secrets"""

    def test_top_level_and_nested(self):
        event = {
            "event": "rule_updated",
            "api_key": "abc",
            "details": {"access_token": "t", "repo_id": 1},
            "items": [{"password": "p"}, "plain"],
        }

        result = sanitize_sensitive_data(None, "info", event)

        assert result["api_key"] == "***REDACTED***"
        assert result["details"] == {"access_token": "***REDACTED***", "repo_id": 1}
        assert result["items"] == [{"password": "***REDACTED***"}, "plain"]
        assert result["event"] == "rule_updated"

    def test_key_match_is_case_insensitive(self):
        result = sanitize_sensitive_data(None, "info", {"Authorization": "Bearer x"})

        assert result["Authorization"] == "***REDACTED***"


class TestAuthorizationContext:
    """Context bound through contextvars"""

    def test_bound_context_is_copied(self):
        bind_context(doer_id=3, repository="acme/widgets", unrelated="x")

        result = add_authorization_context(None, "info", {"event": "push_checked"})

        assert result["doer_id"] == 3
        assert result["repository"] == "acme/widgets"
        assert "unrelated" not in result

    def test_explicit_values_win(self):
        bind_context(branch="main")

        result = add_authorization_context(None, "info", {"event": "e", "branch": "dev"})

        assert result["branch"] == "dev"

    def test_unbind(self):
        bind_context(doer_id=3, repo_id=100)
        unbind_context("doer_id")

        result = add_authorization_context(None, "info", {"event": "e"})

        assert "doer_id" not in result
        assert result["repo_id"] == 100
        assert structlog.contextvars.get_contextvars() == {"repo_id": 100}


class TestProcessors:
    """Remaining structlog processors"""

    @pytest.mark.parametrize("level,severity", [
        ("debug", "DEBUG"),
        ("warning", "WARNING"),
        ("critical", "CRITICAL"),
        ("trace", "INFO"),
    ])
    def test_severity(self, level, severity):
        assert set_log_severity(None, level, {"level": level})["severity"] == severity

    def test_severity_without_level(self):
        assert "severity" not in set_log_severity(None, "info", {"event": "e"})

    def test_exception_info(self):
        try:
            raise ValueError("bad pattern")
        except ValueError:
            event = {"event": "failed", "exc_info": sys.exc_info()}

        result = format_exception_info(None, "error", event)

        assert "exc_info" not in result
        assert result["exception"]["type"] == "ValueError"
        assert result["exception"]["message"] == "bad pattern"
        assert result["exception"]["traceback"]

    def test_service_context(self):
        result = add_service_context(None, "info", {"event": "e"})

        assert result["service"] == "repogate"
        assert result["environment"] in ("development", "staging", "production")


def find_record(output, event):
    records = [json.loads(line) for line in output.splitlines() if line.startswith("{")]
    return next(r for r in records if r["event"] == event)


@pytest.fixture
def restore_logging():
    """Undo the global handler and structlog configuration after a test"""
    root = logging.getLogger()
    level = root.level
    yield
    for name in ("sqlalchemy.engine", "aiosqlite"):
        library_logger = logging.getLogger(name)
        library_logger.handlers.clear()
        library_logger.propagate = True
        library_logger.setLevel(logging.NOTSET)
    root.handlers[:] = [
        h for h in root.handlers
        if not isinstance(h.formatter, structlog.stdlib.ProcessorFormatter)
    ]
    root.setLevel(level)
    structlog.reset_defaults()


class TestSetupLogging:
    """End-to-end rendering through setup_logging"""

    def test_json_output(self, capsys, restore_logging):
        setup_logging(Settings(_env_file=None, log_format="json", log_level="DEBUG"))
        bind_context(repo_id=100, branch="main")

        get_logger("repogate.checks").warning("push_checked", allowed=False, token="abc")

        record = find_record(capsys.readouterr().out, "push_checked")
        assert record["service"] == "repogate"
        assert record["severity"] == "WARNING"
        assert record["repo_id"] == 100
        assert record["branch"] == "main"
        assert record["token"] == "***REDACTED***"
        assert "timestamp" in record

    def test_stdlib_records_share_the_pipeline(self, capsys, restore_logging):
        setup_logging(Settings(_env_file=None, log_format="json"))

        logging.getLogger("thirdparty").error("plain message")

        record = find_record(capsys.readouterr().out, "plain message")
        assert record["severity"] == "ERROR"

    def test_level_filtering(self, capsys, restore_logging):
        setup_logging(Settings(_env_file=None, log_format="json", log_level="WARNING"))

        get_logger("repogate.checks").info("permission_resolved")

        assert capsys.readouterr().out == ""

    def test_console_output(self, capsys, restore_logging):
        setup_logging(Settings(_env_file=None, log_format="console"))

        get_logger("repogate.checks").info("rule_updated", password="hunter2")

        out = capsys.readouterr().out
        assert "rule_updated" in out
        assert "***REDACTED***" in out
        assert "hunter2" not in out
