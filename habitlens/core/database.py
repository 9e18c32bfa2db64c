#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
HabitLens v1.0 - Data Store
Контракты хранилищ и файловая реализация с пулом соединений

Версия: 1.0.0
"""

import abc
import asyncio
import itertools
import json
import shutil
import threading
from contextlib import asynccontextmanager
from datetime import datetime, date
from pathlib import Path
from typing import Any, AsyncIterator, Awaitable, Dict, List, Optional, TypeVar, Union
from dataclasses import dataclass, replace
import logging

from .models import (
    ActiveHabitContact, CompletionLog, Habit, HabitFrequency, Insight,
    NotificationMessage, UserContext, to_calendar_date
)
from .streaks import compute_streak

logger = logging.getLogger(__name__)

T = TypeVar("T")

# ===== EXCEPTIONS =====

class DatabaseError(Exception):
    """Базовое исключение для ошибок хранилища"""
    pass

class DatabaseConnectionError(DatabaseError):
    """Не удалось получить соединение"""
    pass

class DatabaseTimeoutError(DatabaseError):
    """Операция с хранилищем превысила таймаут"""
    pass

class DatabaseCorruptionError(DatabaseError):
    """Ошибка повреждения данных"""
    pass

class HabitNotFoundError(DatabaseError):
    """Привычка не найдена"""
    pass

async def with_timeout(awaitable: Awaitable[T], timeout: float, operation: str) -> T:
    """Ограничить операцию с хранилищем таймаутом"""
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError:
        raise DatabaseTimeoutError(f"{operation} timed out after {timeout}s")

# ===== COLLABORATOR CONTRACTS =====

class LogStore(abc.ABC):
    """Хранилище логов выполнения"""

    @abc.abstractmethod
    async def fetch_logs(self, habit_id: int, user_id: int) -> List[CompletionLog]:
        """Логи привычки, от самого нового к самому старому"""

    @abc.abstractmethod
    async def upsert_log(self, habit_id: int, user_id: int, on_date: Union[date, str],
                         completed: bool, notes: Optional[str] = None) -> CompletionLog:
        """Создать или обновить лог за день"""

class HabitDirectory(abc.ABC):
    """Справочник привычек и пользователей"""

    @abc.abstractmethod
    async def list_active_habits_with_contacts(self) -> List[ActiveHabitContact]:
        ...

    @abc.abstractmethod
    async def list_habits_for_user(self, user_id: int) -> List[Habit]:
        ...

    @abc.abstractmethod
    async def get_habit(self, habit_id: int, user_id: int) -> Optional[Habit]:
        ...

    @abc.abstractmethod
    async def aggregate_user_context(self, user_id: int) -> UserContext:
        ...

class InsightStore(abc.ABC):
    """Хранилище сгенерированных инсайтов"""

    @abc.abstractmethod
    async def save_insight(self, user_id: int, habit_id: Optional[int], insight: Insight) -> int:
        ...

    @abc.abstractmethod
    async def list_recent_insights(self, user_id: int, limit: int = 10) -> List[Dict[str, Any]]:
        ...

class NotificationStore(abc.ABC):
    """Хранилище отправленных уведомлений"""

    @abc.abstractmethod
    async def save_notification(self, notification: NotificationMessage) -> int:
        ...

    @abc.abstractmethod
    async def list_notifications(self, user_id: int, limit: int = 50) -> List[NotificationMessage]:
        ...

# ===== HELPER CLASSES =====

@dataclass
class DatabaseStats:
    """Статистика хранилища"""
    total_users: int = 0
    total_habits: int = 0
    total_logs: int = 0
    total_insights: int = 0
    total_notifications: int = 0
    save_count: int = 0
    error_count: int = 0
    last_save: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_users': self.total_users,
            'total_habits': self.total_habits,
            'total_logs': self.total_logs,
            'total_insights': self.total_insights,
            'total_notifications': self.total_notifications,
            'save_count': self.save_count,
            'error_count': self.error_count,
            'last_save': self.last_save
        }

# ===== MAIN STORE =====

class HabitDatabase(LogStore, HabitDirectory, InsightStore, NotificationStore):
    """
    Хранилище привычек в памяти с опциональным сохранением в JSON файл.

    Каждая операция берет соединение из пула и возвращает его на любом пути выхода.
    """

    VERSION_KEY = "__database_version__"
    CURRENT_VERSION = "1.0.0"

    def __init__(self, data_file: Optional[Path] = None, max_connections: int = 10,
                 acquire_timeout: float = 10.0):
        self.data_file = Path(data_file) if data_file else None
        self.max_connections = max_connections
        self.acquire_timeout = acquire_timeout

        self._users: Dict[int, Dict[str, Any]] = {}
        self._habits: Dict[int, Habit] = {}
        self._logs: Dict[int, Dict[date, CompletionLog]] = {}
        self._insights: List[Dict[str, Any]] = []
        self._notifications: List[NotificationMessage] = []

        self._habit_ids = itertools.count(1)
        self._insight_ids = itertools.count(1)
        self._notification_ids = itertools.count(1)

        self._semaphore = asyncio.Semaphore(max_connections)
        self.active_connections = 0
        self.file_lock = threading.RLock()
        self._persist_lock = asyncio.Lock()
        self.stats = DatabaseStats()

        if self.data_file and self.data_file.exists():
            self._load_sync()

    # ===== CONNECTIONS =====

    @asynccontextmanager
    async def connection(self) -> AsyncIterator["HabitDatabase"]:
        """Получить соединение из пула"""
        try:
            await asyncio.wait_for(self._semaphore.acquire(), timeout=self.acquire_timeout)
        except asyncio.TimeoutError:
            raise DatabaseConnectionError(
                f"No free connection after {self.acquire_timeout}s "
                f"({self.max_connections} in use)"
            )

        self.active_connections += 1
        try:
            yield self
        finally:
            self.active_connections -= 1
            self._semaphore.release()

    # ===== SEEDING =====

    def add_user(self, user_id: int, contact_address: Optional[str] = None) -> None:
        """Зарегистрировать пользователя (или обновить контакт)"""
        self._users[user_id] = {'contact_address': contact_address}

    def add_habit(self, user_id: int, name: str, frequency: Union[HabitFrequency, str] = HabitFrequency.DAILY,
                  color_tag: Optional[str] = None, habit_id: Optional[int] = None) -> Habit:
        """Создать привычку для пользователя"""
        if user_id not in self._users:
            self.add_user(user_id)

        if habit_id is None:
            habit_id = next(self._habit_ids)
            while habit_id in self._habits:
                habit_id = next(self._habit_ids)

        habit = Habit(id=habit_id, user_id=user_id, name=name, frequency=frequency, color_tag=color_tag)
        self._habits[habit.id] = habit
        self._logs.setdefault(habit.id, {})
        return habit

    # ===== LOG STORE =====

    async def fetch_logs(self, habit_id: int, user_id: int) -> List[CompletionLog]:
        async with self.connection():
            # Вызывающий получает копии, сохраненные логи не меняются
            logs = [
                replace(log) for log in self._logs.get(habit_id, {}).values()
                if log.user_id == user_id
            ]
            return sorted(logs, key=lambda log: log.date, reverse=True)

    async def upsert_log(self, habit_id: int, user_id: int, on_date: Union[date, str],
                         completed: bool, notes: Optional[str] = None) -> CompletionLog:
        async with self.connection():
            habit = self._habits.get(habit_id)
            if habit is None or habit.user_id != user_id:
                raise HabitNotFoundError(f"Habit {habit_id} not found for user {user_id}")

            log = CompletionLog(
                habit_id=habit_id,
                user_id=user_id,
                date=to_calendar_date(on_date),
                completed=completed,
                notes=notes
            )
            self._logs.setdefault(habit_id, {})[log.date] = log
            await self._persist()
            return replace(log)

    # ===== HABIT DIRECTORY =====

    async def list_active_habits_with_contacts(self) -> List[ActiveHabitContact]:
        async with self.connection():
            rows = []
            for habit in sorted(self._habits.values(), key=lambda h: h.id):
                contact = self._users.get(habit.user_id, {}).get('contact_address')
                if not contact:
                    continue
                rows.append(ActiveHabitContact(
                    user_id=habit.user_id,
                    contact_address=contact,
                    habit_id=habit.id,
                    habit_name=habit.name
                ))
            return rows

    async def list_habits_for_user(self, user_id: int) -> List[Habit]:
        async with self.connection():
            habits = [h for h in self._habits.values() if h.user_id == user_id]
            return sorted(habits, key=lambda h: h.created_at, reverse=True)

    async def get_habit(self, habit_id: int, user_id: int) -> Optional[Habit]:
        async with self.connection():
            habit = self._habits.get(habit_id)
            if habit is None or habit.user_id != user_id:
                return None
            return habit

    async def aggregate_user_context(self, user_id: int) -> UserContext:
        async with self.connection():
            habits = [h for h in self._habits.values() if h.user_id == user_id]
            scores = []
            for habit in habits:
                logs = [log for log in self._logs.get(habit.id, {}).values() if log.user_id == user_id]
                # Привычки без логов не участвуют в среднем
                if logs:
                    scores.append(compute_streak(logs).consistency_score)

            average = sum(scores) / len(scores) if scores else 0.0
            return UserContext(
                user_id=user_id,
                total_habits=len(habits),
                average_consistency=average
            )

    # ===== INSIGHT STORE =====

    async def save_insight(self, user_id: int, habit_id: Optional[int], insight: Insight) -> int:
        async with self.connection():
            insight_id = next(self._insight_ids)
            record = insight.to_dict()
            record.update({
                'id': insight_id,
                'user_id': user_id,
                'habit_id': habit_id,
                'created_at': datetime.now().isoformat()
            })
            self._insights.append(record)
            await self._persist()
            return insight_id

    async def list_recent_insights(self, user_id: int, limit: int = 10) -> List[Dict[str, Any]]:
        async with self.connection():
            records = [dict(r) for r in self._insights if r['user_id'] == user_id]
            for record in records:
                habit = self._habits.get(record.get('habit_id'))
                record['habit_name'] = habit.name if habit else None
            records.sort(key=lambda r: r['id'], reverse=True)
            return records[:limit]

    # ===== NOTIFICATION STORE =====

    async def save_notification(self, notification: NotificationMessage) -> int:
        async with self.connection():
            notification.id = next(self._notification_ids)
            self._notifications.append(notification)
            await self._persist()
            return notification.id

    async def list_notifications(self, user_id: int, limit: int = 50) -> List[NotificationMessage]:
        async with self.connection():
            items = [n for n in self._notifications if n.user_id == user_id]
            items.sort(key=lambda n: n.id or 0, reverse=True)
            return items[:limit]

    # ===== PERSISTENCE =====

    def _snapshot(self) -> Dict[str, Any]:
        """Снимок данных для сохранения"""
        return {
            self.VERSION_KEY: self.CURRENT_VERSION,
            'users': {str(uid): data for uid, data in self._users.items()},
            'habits': [h.to_dict() for h in self._habits.values()],
            'logs': [log.to_dict() for logs in self._logs.values() for log in logs.values()],
            'insights': list(self._insights),
            'notifications': [n.to_dict() for n in self._notifications]
        }

    async def _persist(self) -> None:
        if self.data_file is None:
            return
        # Снимки попадают на диск в порядке их создания
        async with self._persist_lock:
            data = self._snapshot()
            await asyncio.to_thread(self._save_data_sync, data)

    async def save(self) -> None:
        """Принудительно сохранить данные на диск"""
        await self._persist()

    def _save_data_sync(self, data: Dict[str, Any]) -> None:
        """Синхронное сохранение данных"""
        with self.file_lock:
            self.data_file.parent.mkdir(parents=True, exist_ok=True)
            # Атомарное сохранение через временный файл
            temp_file = self.data_file.with_suffix('.tmp')

            try:
                with open(temp_file, 'w', encoding='utf-8') as f:
                    json.dump(data, f, ensure_ascii=False, indent=2)

                shutil.move(str(temp_file), str(self.data_file))

                self.stats.save_count += 1
                self.stats.last_save = datetime.now().isoformat()

            except Exception:
                self.stats.error_count += 1
                if temp_file.exists():
                    temp_file.unlink()
                raise

    def _load_sync(self) -> None:
        """Синхронная загрузка данных из файла"""
        with self.file_lock:
            try:
                with open(self.data_file, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            except json.JSONDecodeError as e:
                logger.error(f"Database file is corrupted: {e}")
                raise DatabaseCorruptionError(f"Cannot parse {self.data_file}: {e}")

        for user_id, user_data in data.get('users', {}).items():
            self._users[int(user_id)] = dict(user_data)

        for habit_data in data.get('habits', []):
            habit = Habit.from_dict(habit_data)
            self._habits[habit.id] = habit
            self._logs.setdefault(habit.id, {})

        for log_data in data.get('logs', []):
            log = CompletionLog.from_dict(log_data)
            self._logs.setdefault(log.habit_id, {})[log.date] = log

        self._insights = list(data.get('insights', []))
        self._notifications = [NotificationMessage.from_dict(n) for n in data.get('notifications', [])]

        # Продолжаем нумерацию после загруженных записей
        self._habit_ids = itertools.count(max(self._habits, default=0) + 1)
        self._insight_ids = itertools.count(max((r['id'] for r in self._insights), default=0) + 1)
        self._notification_ids = itertools.count(
            max((n.id or 0 for n in self._notifications), default=0) + 1
        )

        logger.info(f"Loaded {len(self._users)} users and {len(self._habits)} habits from {self.data_file}")

    # ===== STATS =====

    def get_stats(self) -> Dict[str, Any]:
        """Получить статистику хранилища"""
        self.stats.total_users = len(self._users)
        self.stats.total_habits = len(self._habits)
        self.stats.total_logs = sum(len(logs) for logs in self._logs.values())
        self.stats.total_insights = len(self._insights)
        self.stats.total_notifications = len(self._notifications)

        return {
            'database': self.stats.to_dict(),
            'active_connections': self.active_connections,
            'max_connections': self.max_connections,
            'persistent': self.data_file is not None
        }

# ===== CONVENIENCE FUNCTIONS =====

def create_database(data_file: Optional[Path] = None, max_connections: int = 10,
                    acquire_timeout: float = 10.0) -> HabitDatabase:
    """Создать хранилище"""
    return HabitDatabase(data_file, max_connections=max_connections, acquire_timeout=acquire_timeout)

# ===== EXPORT =====

__all__ = [
    'DatabaseError',
    'DatabaseConnectionError',
    'DatabaseTimeoutError',
    'DatabaseCorruptionError',
    'HabitNotFoundError',
    'with_timeout',
    'LogStore',
    'HabitDirectory',
    'InsightStore',
    'NotificationStore',
    'DatabaseStats',
    'HabitDatabase',
    'create_database'
]
