#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
HabitLens v1.0 - Configuration
Централизованная конфигурация с валидацией

Версия: 1.0.0
"""

import os
import sys
from pathlib import Path
from typing import Optional, Dict, Any, Mapping, Tuple
from dataclasses import dataclass
from enum import Enum


class ConfigError(ValueError):
    """Ошибка конфигурации"""
    pass


class Environment(Enum):
    """Среды выполнения"""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(Enum):
    """Уровни логирования"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


DEFAULT_MILESTONES: Tuple[int, ...] = (7, 14, 30, 50, 100)


@dataclass
class DatabaseConfig:
    """Конфигурация хранилища"""
    path: Optional[Path] = None
    max_connections: int = 10
    query_timeout: float = 10.0


@dataclass
class AIConfig:
    """Конфигурация AI провайдеров"""
    provider: str = "openai"
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4-turbo-preview"
    anthropic_api_key: Optional[str] = None
    anthropic_model: str = "claude-3-opus-20240229"
    anthropic_base_url: str = "https://api.anthropic.com"
    insight_max_tokens: int = 500
    pattern_max_tokens: int = 800
    temperature: float = 0.7
    request_timeout: float = 30.0


@dataclass
class NotificationConfig:
    """Конфигурация уведомлений и планировщика"""
    channel: str = "whatsapp"
    enabled: bool = True
    twilio_account_sid: Optional[str] = None
    twilio_auth_token: Optional[str] = None
    twilio_whatsapp_from: str = "whatsapp:+14155238886"
    telegram_bot_token: Optional[str] = None
    reminder_hour: int = 9
    reminder_minute: int = 0
    milestone_hour: int = 20
    milestone_minute: int = 0
    timezone: Optional[str] = None
    milestones: Tuple[int, ...] = DEFAULT_MILESTONES
    max_workers: int = 4
    send_timeout: float = 15.0


class AppConfig:
    """Главный класс конфигурации"""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self._env = os.environ if environ is None else environ
        self.environment = self._get_enum(Environment, 'ENVIRONMENT', 'development')
        self._load_config()
        self._validate_config()

    def _get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self._env.get(key)
        if value is None or value == '':
            return default
        return value

    def _get_bool(self, key: str, default: bool) -> bool:
        return self._get(key, 'true' if default else 'false').lower() == 'true'

    def _get_int(self, key: str, default: int) -> int:
        raw = self._get(key, str(default))
        try:
            return int(raw)
        except ValueError:
            raise ConfigError(f"{key} должен быть целым числом, получено: {raw!r}")

    def _get_float(self, key: str, default: float) -> float:
        raw = self._get(key, str(default))
        try:
            return float(raw)
        except ValueError:
            raise ConfigError(f"{key} должен быть числом, получено: {raw!r}")

    def _get_enum(self, enum_cls, key: str, default: str, upper: bool = False):
        raw = self._get(key, default)
        value = raw.upper() if upper else raw.lower()
        try:
            return enum_cls(value)
        except ValueError:
            allowed = ', '.join(item.value for item in enum_cls)
            raise ConfigError(f"{key} должен быть одним из: {allowed}, получено: {raw!r}")

    def _load_config(self):
        """Загрузка конфигурации из переменных окружения"""

        # Директории
        self.data_dir = Path(self._get('DATA_DIR', 'data'))
        self.log_dir = Path(self._get('LOG_DIR', 'logs'))

        # Хранилище
        db_path = self._get('DB_PATH')
        self.database = DatabaseConfig(
            path=Path(db_path) if db_path else None,
            max_connections=self._get_int('DB_MAX_CONNECTIONS', 10),
            query_timeout=self._get_float('DB_QUERY_TIMEOUT', 10.0)
        )

        # AI конфигурация
        self.ai = AIConfig(
            provider=self._get('AI_PROVIDER', 'openai').lower(),
            openai_api_key=self._get('OPENAI_API_KEY'),
            openai_model=self._get('OPENAI_MODEL', 'gpt-4-turbo-preview'),
            anthropic_api_key=self._get('ANTHROPIC_API_KEY') or self._get('CLAUDE_API_KEY'),
            anthropic_model=self._get('ANTHROPIC_MODEL', 'claude-3-opus-20240229'),
            anthropic_base_url=self._get('ANTHROPIC_BASE_URL', 'https://api.anthropic.com'),
            temperature=self._get_float('AI_TEMPERATURE', 0.7),
            request_timeout=self._get_float('AI_TIMEOUT', 30.0)
        )

        # Уведомления
        self.notifications = NotificationConfig(
            channel=self._get('NOTIFICATION_CHANNEL', 'whatsapp').lower(),
            enabled=self._get_bool('NOTIFICATIONS_ENABLED', True),
            twilio_account_sid=self._get('TWILIO_ACCOUNT_SID'),
            twilio_auth_token=self._get('TWILIO_AUTH_TOKEN'),
            twilio_whatsapp_from=self._get('TWILIO_WHATSAPP_FROM', 'whatsapp:+14155238886'),
            telegram_bot_token=self._get('TELEGRAM_BOT_TOKEN'),
            reminder_hour=self._get_int('REMINDER_HOUR', 9),
            reminder_minute=self._get_int('REMINDER_MINUTE', 0),
            milestone_hour=self._get_int('MILESTONE_HOUR', 20),
            milestone_minute=self._get_int('MILESTONE_MINUTE', 0),
            timezone=self._get('SCHEDULER_TIMEZONE'),
            milestones=self._parse_milestones(self._get('STREAK_MILESTONES')),
            max_workers=self._get_int('NOTIFICATION_WORKERS', 4),
            send_timeout=self._get_float('NOTIFICATION_SEND_TIMEOUT', 15.0)
        )

        # Логирование
        self.log_level = self._get_enum(LogLevel, 'LOG_LEVEL', 'INFO', upper=True)
        self.log_to_file = self._get_bool('LOG_TO_FILE', False)
        self.log_format = self._get(
            'LOG_FORMAT',
            '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
        )

    def _parse_milestones(self, raw: Optional[str]) -> Tuple[int, ...]:
        """Разбор списка вех вида "7,14,30" """
        if not raw:
            return DEFAULT_MILESTONES
        try:
            values = sorted({int(part) for part in raw.split(',') if part.strip()})
        except ValueError:
            raise ConfigError(f"STREAK_MILESTONES имеет неверный формат: {raw!r}")
        return tuple(values)

    def _validate_config(self):
        """Валидация конфигурации"""
        errors = []
        n = self.notifications

        for name, hour in (('REMINDER_HOUR', n.reminder_hour), ('MILESTONE_HOUR', n.milestone_hour)):
            if not 0 <= hour <= 23:
                errors.append(f"{name} вне диапазона 0-23: {hour}")

        for name, minute in (('REMINDER_MINUTE', n.reminder_minute), ('MILESTONE_MINUTE', n.milestone_minute)):
            if not 0 <= minute <= 59:
                errors.append(f"{name} вне диапазона 0-59: {minute}")

        if n.max_workers < 1:
            errors.append("NOTIFICATION_WORKERS должен быть положительным числом")

        if not n.milestones or any(m <= 0 for m in n.milestones):
            errors.append("STREAK_MILESTONES должен содержать положительные числа")

        if self.database.max_connections < 1:
            errors.append("DB_MAX_CONNECTIONS должен быть положительным числом")

        for name, timeout in (
            ('DB_QUERY_TIMEOUT', self.database.query_timeout),
            ('AI_TIMEOUT', self.ai.request_timeout),
            ('NOTIFICATION_SEND_TIMEOUT', n.send_timeout),
        ):
            if timeout <= 0:
                errors.append(f"{name} должен быть больше нуля")

        if n.channel not in ('whatsapp', 'telegram'):
            errors.append(f"Неизвестный канал уведомлений: {n.channel}")

        if errors:
            raise ConfigError("Ошибки конфигурации:\n" + "\n".join(f"• {error}" for error in errors))

    def ensure_directories(self):
        """Создание необходимых директорий"""
        for directory in (self.data_dir, self.log_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def get_logging_config(self) -> Dict[str, Any]:
        """Получение конфигурации логирования"""
        handlers = ['console']
        if self.log_to_file:
            handlers.append('file')

        config = {
            'version': 1,
            'disable_existing_loggers': False,
            'formatters': {
                'default': {
                    'format': self.log_format,
                    'datefmt': '%Y-%m-%d %H:%M:%S'
                }
            },
            'handlers': {
                'console': {
                    'class': 'logging.StreamHandler',
                    'level': self.log_level.value,
                    'formatter': 'default',
                    'stream': sys.stdout
                }
            },
            'loggers': {
                '': {
                    'level': self.log_level.value,
                    'handlers': handlers,
                    'propagate': False
                }
            }
        }

        if self.log_to_file:
            config['handlers']['file'] = {
                'class': 'logging.handlers.RotatingFileHandler',
                'level': self.log_level.value,
                'formatter': 'default',
                'filename': str(self.log_dir / f"habitlens_{self.environment.value}.log"),
                'maxBytes': 10485760,  # 10MB
                'backupCount': 5,
                'encoding': 'utf-8'
            }

        for noisy in ('httpx', 'aiohttp', 'apscheduler', 'telegram', 'openai'):
            config['loggers'][noisy] = {
                'level': 'WARNING',
                'handlers': handlers,
                'propagate': False
            }

        return config

    def is_development(self) -> bool:
        """Проверка режима разработки"""
        return self.environment == Environment.DEVELOPMENT

    def is_production(self) -> bool:
        """Проверка продакшн режима"""
        return self.environment == Environment.PRODUCTION

    @staticmethod
    def _mask(secret: Optional[str]) -> Optional[str]:
        if not secret:
            return None
        return secret[:4] + "..."

    def to_dict(self) -> Dict[str, Any]:
        """Сериализация конфигурации в словарь"""
        n = self.notifications
        return {
            'environment': self.environment.value,
            'ai': {
                'provider': self.ai.provider,
                'openai_model': self.ai.openai_model,
                'openai_api_key': self._mask(self.ai.openai_api_key),
                'anthropic_model': self.ai.anthropic_model,
                'anthropic_api_key': self._mask(self.ai.anthropic_api_key),
                'request_timeout': self.ai.request_timeout
            },
            'notifications': {
                'channel': n.channel,
                'enabled': n.enabled,
                'reminder_time': f"{n.reminder_hour:02d}:{n.reminder_minute:02d}",
                'milestone_time': f"{n.milestone_hour:02d}:{n.milestone_minute:02d}",
                'timezone': n.timezone,
                'milestones': list(n.milestones),
                'max_workers': n.max_workers,
                'twilio_account_sid': self._mask(n.twilio_account_sid),
                'telegram_bot_token': self._mask(n.telegram_bot_token)
            },
            'database_path': str(self.database.path) if self.database.path else None,
            'log_level': self.log_level.value
        }


# Глобальный экземпляр конфигурации
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Получить глобальную конфигурацию"""
    global _config
    if _config is None:
        _config = AppConfig()
    return _config


def load_config(environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Перечитать конфигурацию и заменить глобальный экземпляр"""
    global _config
    _config = AppConfig(environ)
    return _config


__all__ = [
    'AppConfig',
    'ConfigError',
    'Environment',
    'LogLevel',
    'DatabaseConfig',
    'AIConfig',
    'NotificationConfig',
    'DEFAULT_MILESTONES',
    'get_config',
    'load_config'
]
