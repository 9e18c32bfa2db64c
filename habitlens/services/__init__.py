# habitlens/services/__init__.py

"""
Модуль сервисов HabitLens v1.0

Этот модуль собирает хранилище, AI провайдер, канал уведомлений, планировщик
и прикладные сервисы в один управляемый набор.
"""

import logging
from typing import Any, Dict, Optional

from ..config import AppConfig, get_config
from ..core.database import HabitDatabase, create_database
from .ai import InsightProvider, create_insight_provider
from .insights import InsightService
from .notifications import MessagingChannel, NotificationDispatcher, create_channel
from .patterns import PatternAnalyzer
from .scheduler import FiringReport, NotificationScheduler
from .tracking import HabitTrackingService

logger = logging.getLogger(__name__)

class ServiceManager:
    """
    Менеджер для управления всеми сервисами

    Обеспечивает:
    - Инициализацию сервисов в нужном порядке
    - Передачу зависимостей между сервисами
    - Корректную остановку планировщика и транспортов
    """

    def __init__(self, config: Optional[AppConfig] = None, database: Optional[HabitDatabase] = None,
                 provider: Optional[InsightProvider] = None, channel: Optional[MessagingChannel] = None):
        self.config = config or get_config()
        query_timeout = self.config.database.query_timeout

        if database is None:
            data_file = self.config.database.path
            database = create_database(
                data_file,
                max_connections=self.config.database.max_connections,
                acquire_timeout=query_timeout
            )
        self.database = database

        self.provider = provider or create_insight_provider(self.config.ai)
        self.channel = channel or create_channel(self.config.notifications)
        self.dispatcher = NotificationDispatcher(
            self.channel, self.database, send_timeout=self.config.notifications.send_timeout
        )
        self.scheduler = NotificationScheduler(
            self.database, self.database, self.dispatcher,
            config=self.config.notifications, query_timeout=query_timeout
        )
        self.insights = InsightService(
            self.provider, self.database, self.database, self.database, query_timeout=query_timeout
        )
        self.patterns = PatternAnalyzer(
            self.provider, self.database, self.database, query_timeout=query_timeout
        )
        self.tracking = HabitTrackingService(
            self.database, self.database, query_timeout=query_timeout,
            today_provider=self.scheduler.today_provider
        )
        self.initialized = False

    async def start(self) -> bool:
        """Запуск фоновых заданий"""
        logger.info("🔧 Starting HabitLens services...")
        logger.info(f"🤖 AI provider: {self.provider.name} ({self.provider.model})")
        logger.info(f"📨 Notification channel: {self.channel.name}")

        self.scheduler.start()
        self.initialized = True
        logger.info("✅ All services started")
        return True

    async def stop(self) -> None:
        """Остановка сервисов в обратном порядке"""
        logger.info("🛑 Stopping services...")

        self.scheduler.stop()

        try:
            await self.dispatcher.close()
        except Exception as e:
            logger.error(f"❌ Error closing notification channel: {e}")

        try:
            await self.provider.close()
        except Exception as e:
            logger.error(f"❌ Error closing AI provider: {e}")

        await self.database.save()

        self.initialized = False
        logger.info("✅ All services stopped")

    async def __aenter__(self) -> "ServiceManager":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

    def health_check(self) -> Dict[str, Any]:
        """Проверка состояния всех сервисов"""
        health: Dict[str, Any] = {
            "status": "healthy",
            "services": {}
        }

        db_stats = self.database.get_stats()
        health["services"]["database"] = {
            "status": "error" if db_stats["database"]["error_count"] else "healthy",
            **db_stats
        }

        provider_stats = self.provider.get_stats()
        health["services"]["ai"] = {
            "status": "warning" if not getattr(self.provider, "enabled", True) else "healthy",
            **provider_stats
        }

        scheduler_status = self.scheduler.get_status()
        failed_jobs = [r for r in self.scheduler.last_reports.values() if not r.ok]
        health["services"]["scheduler"] = {
            "status": "warning" if failed_jobs else "healthy",
            **scheduler_status
        }

        health["services"]["notifications"] = {
            "status": "healthy",
            "channel": self.channel.name,
            **self.dispatcher.stats.to_dict()
        }

        # Определяем общий статус
        service_statuses = [s.get("status", "unknown") for s in health["services"].values()]
        if "error" in service_statuses:
            health["status"] = "error"
        elif "warning" in service_statuses:
            health["status"] = "warning"

        return health

# Глобальный экземпляр менеджера сервисов
_service_manager: Optional[ServiceManager] = None

def get_service_manager(config: Optional[AppConfig] = None) -> ServiceManager:
    """Получить глобальный менеджер сервисов"""
    global _service_manager
    if _service_manager is None:
        _service_manager = ServiceManager(config)
    return _service_manager

async def close_all_services() -> None:
    """Остановка глобального менеджера"""
    global _service_manager
    if _service_manager:
        await _service_manager.stop()
        _service_manager = None

__all__ = [
    'ServiceManager',
    'get_service_manager',
    'close_all_services',
    'InsightService',
    'PatternAnalyzer',
    'HabitTrackingService',
    'NotificationDispatcher',
    'NotificationScheduler',
    'FiringReport'
]
