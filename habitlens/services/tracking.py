#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
HabitLens v1.0 - Habit Tracking Service
Отметки выполнения и список привычек с показателями серий

Версия: 1.0.0
"""

import asyncio
from datetime import date
from typing import Callable, List, Optional, Tuple, Union
import logging

from ..core.database import HabitDirectory, HabitNotFoundError, LogStore, with_timeout
from ..core.models import CompletionLog, Habit, HabitView, StreakResult
from ..core.streaks import compute_streak
from ..utils.datetime_utils import today as local_today

logger = logging.getLogger(__name__)


class HabitTrackingService:
    """Отметки выполнения привычек; серии всегда пересчитываются из логов"""

    def __init__(self, directory: HabitDirectory, log_store: LogStore, query_timeout: float = 10.0,
                 today_provider: Optional[Callable[[], date]] = None):
        self.directory = directory
        self.log_store = log_store
        self.query_timeout = query_timeout
        self.today_provider = today_provider or local_today

    async def _streak_for(self, habit_id: int, user_id: int) -> Tuple[List[CompletionLog], StreakResult]:
        logs = await with_timeout(self.log_store.fetch_logs(habit_id, user_id), self.query_timeout, "fetch_logs")
        return logs, compute_streak(logs)

    async def _require_habit(self, user_id: int, habit_id: int) -> Habit:
        habit = await with_timeout(self.directory.get_habit(habit_id, user_id), self.query_timeout, "get_habit")
        if habit is None:
            raise HabitNotFoundError(f"Habit {habit_id} not found for user {user_id}")
        return habit

    async def record_completion(self, user_id: int, habit_id: int, on_date: Union[date, str, None] = None,
                                completed: bool = True,
                                notes: Optional[str] = None) -> Tuple[CompletionLog, StreakResult]:
        """Записать (или перезаписать) день и вернуть пересчитанную серию"""
        await self._require_habit(user_id, habit_id)

        log = await with_timeout(
            self.log_store.upsert_log(habit_id, user_id, on_date or self.today_provider(), completed, notes),
            self.query_timeout,
            "upsert_log"
        )
        _, streak = await self._streak_for(habit_id, user_id)

        logger.info(f"✅ Habit {habit_id} marked {'done' if completed else 'missed'} on {log.date} "
                    f"(streak {streak.current_streak})")
        return log, streak

    async def habit_streak(self, user_id: int, habit_id: int) -> StreakResult:
        await self._require_habit(user_id, habit_id)
        _, streak = await self._streak_for(habit_id, user_id)
        return streak

    async def habits_with_streaks(self, user_id: int) -> List[HabitView]:
        habits = await with_timeout(
            self.directory.list_habits_for_user(user_id), self.query_timeout, "list_habits_for_user"
        )
        results = await asyncio.gather(*[self._streak_for(habit.id, user_id) for habit in habits])
        return [HabitView(habit=habit, streak=streak) for habit, (_, streak) in zip(habits, results)]

    async def today_status(self, user_id: int, today: Optional[date] = None) -> List[Tuple[HabitView, bool]]:
        """Привычки пользователя и отметка, выполнена ли каждая сегодня"""
        today = today or self.today_provider()
        habits = await with_timeout(
            self.directory.list_habits_for_user(user_id), self.query_timeout, "list_habits_for_user"
        )
        results = await asyncio.gather(*[self._streak_for(habit.id, user_id) for habit in habits])

        status = []
        for habit, (logs, streak) in zip(habits, results):
            done = any(log.completed and log.date == today for log in logs)
            status.append((HabitView(habit=habit, streak=streak), done))
        return status


__all__ = ['HabitTrackingService']
