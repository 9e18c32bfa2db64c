"""Tests for environment-driven configuration."""

from __future__ import annotations

import logging

import pytest

from habitlens.config import DEFAULT_MILESTONES, AppConfig, ConfigError, Environment
from habitlens.utils.datetime_utils import get_timezone, today
from habitlens.utils.logger import setup_logging


class TestDefaults:
    def test_defaults(self):
        config = AppConfig(environ={})
        assert config.environment is Environment.DEVELOPMENT
        assert config.ai.provider == "openai"
        assert config.ai.openai_model == "gpt-4-turbo-preview"
        assert config.ai.anthropic_model == "claude-3-opus-20240229"
        assert config.ai.insight_max_tokens == 500
        assert config.ai.pattern_max_tokens == 800
        assert config.notifications.reminder_hour == 9
        assert config.notifications.milestone_hour == 20
        assert config.notifications.milestones == DEFAULT_MILESTONES
        assert config.notifications.twilio_whatsapp_from == "whatsapp:+14155238886"
        assert config.database.path is None
        assert config.is_development()


class TestParsing:
    def test_reads_environment(self):
        config = AppConfig(environ={
            "ENVIRONMENT": "production",
            "AI_PROVIDER": "Claude",
            "CLAUDE_API_KEY": "sk-ant-123456",
            "REMINDER_HOUR": "7",
            "REMINDER_MINUTE": "30",
            "STREAK_MILESTONES": "21, 7,7",
            "NOTIFICATION_WORKERS": "8",
            "NOTIFICATION_CHANNEL": "telegram",
            "NOTIFICATIONS_ENABLED": "false",
        })
        assert config.is_production()
        assert config.ai.provider == "claude"
        assert config.ai.anthropic_api_key == "sk-ant-123456"
        assert config.notifications.reminder_hour == 7
        assert config.notifications.reminder_minute == 30
        assert config.notifications.milestones == (7, 21)
        assert config.notifications.max_workers == 8
        assert config.notifications.channel == "telegram"
        assert config.notifications.enabled is False

    def test_secrets_are_masked(self):
        config = AppConfig(environ={"OPENAI_API_KEY": "sk-secret-value"})
        data = config.to_dict()
        assert data["ai"]["openai_api_key"] == "sk-s..."
        assert "secret" not in str(data)


class TestValidation:
    @pytest.mark.parametrize("env", [
        {"REMINDER_HOUR": "24"},
        {"MILESTONE_MINUTE": "60"},
        {"NOTIFICATION_WORKERS": "0"},
        {"DB_MAX_CONNECTIONS": "0"},
        {"AI_TIMEOUT": "0"},
        {"STREAK_MILESTONES": "7,-1"},
        {"STREAK_MILESTONES": "seven"},
        {"REMINDER_HOUR": "nine"},
        {"NOTIFICATION_CHANNEL": "pigeon"},
        {"ENVIRONMENT": "moon"},
        {"LOG_LEVEL": "loud"},
    ])
    def test_invalid_values(self, env):
        with pytest.raises(ConfigError):
            AppConfig(environ=env)

    def test_config_error_is_value_error(self):
        assert issubclass(ConfigError, ValueError)


class TestLogging:
    def test_console_only_by_default(self):
        config = AppConfig(environ={"LOG_LEVEL": "debug"})
        logging_config = config.get_logging_config()
        assert set(logging_config["handlers"]) == {"console"}
        assert logging_config["loggers"][""]["level"] == "DEBUG"
        assert logging_config["loggers"]["apscheduler"]["level"] == "WARNING"

    def test_file_handler(self, tmp_path):
        config = AppConfig(environ={"LOG_TO_FILE": "true", "LOG_DIR": str(tmp_path / "logs")})
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        setup_logging(config)
        try:
            handler = config.get_logging_config()["handlers"]["file"]
            assert handler["class"] == "logging.handlers.RotatingFileHandler"
            assert handler["filename"].endswith("habitlens_development.log")
            assert (tmp_path / "logs").is_dir()
            assert any(isinstance(h, logging.FileHandler) for h in root.handlers)
        finally:
            for h in root.handlers[:]:
                if h not in saved_handlers:
                    root.removeHandler(h)
                    h.close()
            for h in saved_handlers:
                if h not in root.handlers:
                    root.addHandler(h)
            root.setLevel(saved_level)


class TestDateUtils:
    def test_timezone_lookup(self):
        assert get_timezone(None) is None
        assert get_timezone("Europe/Moscow").zone == "Europe/Moscow"

    def test_today_in_timezone(self):
        assert today("UTC") is not None
