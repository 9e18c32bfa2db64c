#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
HabitLens v1.0 - Notification Scheduler
Ежедневные напоминания и уведомления о достижении серий

Два задания APScheduler работают независимо по одному и тому же представлению
"активные привычки пользователей с контактом". Каждая привычка оценивается не
более одного раза за запуск; сбой одной привычки не прерывает остальные.

Версия: 1.0.0
"""

import asyncio
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from ..config import NotificationConfig
from ..core.database import HabitDirectory, LogStore, with_timeout
from ..core.models import ActiveHabitContact
from ..core.streaks import compute_streak
from ..utils.datetime_utils import get_timezone, today as local_today
from .notifications import NotificationDispatcher

logger = logging.getLogger(__name__)

REMINDER_JOB_ID = "daily_reminders"
MILESTONE_JOB_ID = "streak_milestones"

# ===== REPORTS =====

@dataclass
class HabitFailure:
    """Сбой оценки одной привычки"""
    user_id: Optional[int]
    habit_id: Optional[int]
    error: str

    def to_dict(self) -> Dict[str, Any]:
        return {'user_id': self.user_id, 'habit_id': self.habit_id, 'error': self.error}

@dataclass
class FiringReport:
    """Итог одного запуска задания"""
    job: str
    evaluated: int = 0
    sent: int = 0
    undelivered: int = 0
    skipped: int = 0
    failures: List[HabitFailure] = field(default_factory=list)
    started_at: str = field(default_factory=lambda: datetime.now().isoformat())
    finished_at: Optional[str] = None

    @property
    def ok(self) -> bool:
        return not self.failures

    def to_dict(self) -> Dict[str, Any]:
        return {
            'job': self.job,
            'evaluated': self.evaluated,
            'sent': self.sent,
            'undelivered': self.undelivered,
            'skipped': self.skipped,
            'failures': [f.to_dict() for f in self.failures],
            'started_at': self.started_at,
            'finished_at': self.finished_at
        }

# Обработчик одной привычки: True - отправлено, False - не доставлено, None - нечего отправлять
HabitHandler = Callable[[ActiveHabitContact, date], Awaitable[Optional[bool]]]

# ===== SCHEDULER =====

class NotificationScheduler:
    """Планировщик уведомлений с ограниченным пулом воркеров"""

    def __init__(self, directory: HabitDirectory, log_store: LogStore, dispatcher: NotificationDispatcher,
                 config: Optional[NotificationConfig] = None, query_timeout: float = 10.0,
                 today_provider: Optional[Callable[[], date]] = None):
        self.directory = directory
        self.log_store = log_store
        self.dispatcher = dispatcher
        self.config = config or NotificationConfig()
        self.query_timeout = query_timeout
        self.milestones = frozenset(self.config.milestones)
        self.timezone = get_timezone(self.config.timezone)
        self.today_provider = today_provider or (lambda: local_today(self.timezone))
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.last_reports: Dict[str, FiringReport] = {}

    # ===== LIFECYCLE =====

    @property
    def is_running(self) -> bool:
        return self.scheduler is not None and self.scheduler.running

    def start(self) -> bool:
        """Зарегистрировать задания и запустить планировщик (нужен работающий event loop)"""
        if not self.config.enabled:
            logger.warning("⚠️ Notifications disabled, scheduler not started")
            return False

        if self.is_running:
            return True

        scheduler_kwargs = {'timezone': self.timezone} if self.timezone else {}
        self.scheduler = AsyncIOScheduler(**scheduler_kwargs)

        self.scheduler.add_job(
            self.run_daily_reminders,
            CronTrigger(hour=self.config.reminder_hour, minute=self.config.reminder_minute, **scheduler_kwargs),
            id=REMINDER_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )

        self.scheduler.add_job(
            self.run_milestone_check,
            CronTrigger(hour=self.config.milestone_hour, minute=self.config.milestone_minute, **scheduler_kwargs),
            id=MILESTONE_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )

        self.scheduler.start()
        logger.info(
            f"📅 Notification scheduler started: reminders at "
            f"{self.config.reminder_hour:02d}:{self.config.reminder_minute:02d}, milestones at "
            f"{self.config.milestone_hour:02d}:{self.config.milestone_minute:02d}"
        )
        return True

    def stop(self) -> None:
        if self.is_running:
            self.scheduler.shutdown(wait=False)
            logger.info("🛑 Notification scheduler stopped")
        self.scheduler = None

    # ===== JOBS =====

    async def run_daily_reminders(self, today: Optional[date] = None) -> FiringReport:
        """Напоминание по каждой привычке без выполненной записи за сегодня"""
        return await self._run_firing(REMINDER_JOB_ID, self._remind_habit, today)

    async def run_milestone_check(self, today: Optional[date] = None) -> FiringReport:
        """Уведомление, если текущая серия совпала с одной из вех"""
        return await self._run_firing(MILESTONE_JOB_ID, self._check_milestone, today)

    async def _remind_habit(self, row: ActiveHabitContact, today: date) -> Optional[bool]:
        logs = await with_timeout(
            self.log_store.fetch_logs(row.habit_id, row.user_id), self.query_timeout, "fetch_logs"
        )
        if any(log.completed and log.date == today for log in logs):
            return None

        return await self.dispatcher.send_reminder(row.user_id, row.habit_id, row.habit_name, row.contact_address)

    async def _check_milestone(self, row: ActiveHabitContact, today: date) -> Optional[bool]:
        logs = await with_timeout(
            self.log_store.fetch_logs(row.habit_id, row.user_id), self.query_timeout, "fetch_logs"
        )
        streak = compute_streak(logs)
        if streak.current_streak not in self.milestones:
            return None

        logger.info(f"🔥 Habit {row.habit_id} reached a {streak.current_streak}-day streak")
        return await self.dispatcher.send_streak_alert(
            row.user_id, row.habit_id, row.habit_name, streak.current_streak, row.contact_address
        )

    # ===== FIRING =====

    async def _run_firing(self, job: str, handler: HabitHandler, today: Optional[date]) -> FiringReport:
        report = FiringReport(job=job)
        today = today or self.today_provider()

        try:
            rows = await with_timeout(
                self.directory.list_active_habits_with_contacts(), self.query_timeout,
                "list_active_habits_with_contacts"
            )
        except Exception as e:
            logger.error(f"❌ {job}: cannot load active habits: {e!r}")
            report.failures.append(HabitFailure(user_id=None, habit_id=None, error=repr(e)))
            return self._finish(report)

        queue: asyncio.Queue = asyncio.Queue()
        seen = set()
        for row in rows:
            key = (row.user_id, row.habit_id)
            if key in seen:
                continue
            seen.add(key)
            if not row.contact_address:
                report.skipped += 1
                continue
            queue.put_nowait(row)

        worker_count = min(self.config.max_workers, queue.qsize())
        workers = [
            asyncio.create_task(self._worker(queue, handler, today, report))
            for _ in range(worker_count)
        ]
        if workers:
            await asyncio.gather(*workers)

        return self._finish(report)

    async def _worker(self, queue: asyncio.Queue, handler: HabitHandler, today: date,
                      report: FiringReport) -> None:
        while True:
            try:
                row = queue.get_nowait()
            except asyncio.QueueEmpty:
                return

            report.evaluated += 1
            try:
                result = await handler(row, today)
            except Exception as e:
                logger.error(f"❌ {report.job}: habit {row.habit_id} of user {row.user_id} failed: {e!r}")
                report.failures.append(HabitFailure(user_id=row.user_id, habit_id=row.habit_id, error=repr(e)))
            else:
                if result is None:
                    report.skipped += 1
                elif result:
                    report.sent += 1
                else:
                    report.undelivered += 1
            finally:
                queue.task_done()

    def _finish(self, report: FiringReport) -> FiringReport:
        report.finished_at = datetime.now().isoformat()
        self.last_reports[report.job] = report
        logger.info(
            f"✅ {report.job}: evaluated={report.evaluated} sent={report.sent} "
            f"undelivered={report.undelivered} skipped={report.skipped} failures={len(report.failures)}"
        )
        return report

    def get_status(self) -> Dict[str, Any]:
        jobs = {}
        if self.is_running:
            for job in self.scheduler.get_jobs():
                jobs[job.id] = job.next_run_time.isoformat() if job.next_run_time else None

        return {
            'running': self.is_running,
            'jobs': jobs,
            'last_reports': {name: r.to_dict() for name, r in self.last_reports.items()}
        }


__all__ = [
    'NotificationScheduler',
    'FiringReport',
    'HabitFailure',
    'REMINDER_JOB_ID',
    'MILESTONE_JOB_ID'
]
