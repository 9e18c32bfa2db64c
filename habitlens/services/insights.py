#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
HabitLens v1.0 - Insight Service
Генерация и сохранение AI инсайтов по привычке

Версия: 1.0.0
"""

import asyncio
from typing import Any, Dict, List
import logging

from ..core.database import HabitDirectory, HabitNotFoundError, InsightStore, LogStore, with_timeout
from ..core.models import HabitHistory, Insight
from ..core.streaks import compute_streak
from .ai.base import InsightProvider

logger = logging.getLogger(__name__)


class InsightService:
    """Инсайт по запросу пользователя"""

    def __init__(self, provider: InsightProvider, directory: HabitDirectory, log_store: LogStore,
                 insight_store: InsightStore, query_timeout: float = 10.0):
        self.provider = provider
        self.directory = directory
        self.log_store = log_store
        self.insight_store = insight_store
        self.query_timeout = query_timeout

    async def generate_habit_insight(self, user_id: int, habit_id: int) -> Insight:
        """
        Сгенерировать инсайт по привычке и сохранить его.

        Сбой провайдера заменяется резервным инсайтом; ошибки хранилища
        (включая HabitNotFoundError) передаются вызывающему коду.
        """
        habit = await with_timeout(self.directory.get_habit(habit_id, user_id), self.query_timeout, "get_habit")
        if habit is None:
            raise HabitNotFoundError(f"Habit {habit_id} not found for user {user_id}")

        logs, context = await asyncio.gather(
            with_timeout(self.log_store.fetch_logs(habit_id, user_id), self.query_timeout, "fetch_logs"),
            with_timeout(self.directory.aggregate_user_context(user_id), self.query_timeout,
                         "aggregate_user_context")
        )

        history = HabitHistory.build(habit, logs, compute_streak(logs))
        insight = await self.provider.generate_insight(history, context)

        insight_id = await with_timeout(
            self.insight_store.save_insight(user_id, habit_id, insight), self.query_timeout, "save_insight"
        )
        insight.metadata['insight_id'] = insight_id

        logger.info(f"💡 Insight '{insight.title}' saved for habit {habit_id} of user {user_id}")
        return insight

    async def recent_insights(self, user_id: int, limit: int = 10) -> List[Dict[str, Any]]:
        return await with_timeout(
            self.insight_store.list_recent_insights(user_id, limit), self.query_timeout, "list_recent_insights"
        )


__all__ = ['InsightService']
