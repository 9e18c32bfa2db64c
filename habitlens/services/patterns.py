#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
HabitLens v1.0 - Pattern Analyzer
Анализ паттернов по всем привычкам пользователя

Версия: 1.0.0
"""

import asyncio
from typing import Iterable, List, Sequence, Tuple
import logging

from ..core.database import HabitDirectory, LogStore, with_timeout
from ..core.models import CompletionLog, Habit, HabitHistory, PatternAnalysis
from ..core.streaks import compute_streak
from .ai.base import InsightProvider

logger = logging.getLogger(__name__)


class PatternAnalyzer:
    """Один анализ паттернов на весь набор привычек пользователя"""

    def __init__(self, provider: InsightProvider, directory: HabitDirectory = None,
                 log_store: LogStore = None, query_timeout: float = 10.0):
        self.provider = provider
        self.directory = directory
        self.log_store = log_store
        self.query_timeout = query_timeout

    async def analyze(self, habits_with_logs: Iterable[Tuple[Habit, Sequence[CompletionLog]]]) -> PatternAnalysis:
        """Без привычек провайдер не вызывается"""
        histories: List[HabitHistory] = [
            HabitHistory.build(habit, logs, compute_streak(logs))
            for habit, logs in habits_with_logs
        ]

        if not histories:
            return PatternAnalysis.empty()

        return await self.provider.analyze_patterns(histories)

    async def analyze_user(self, user_id: int) -> PatternAnalysis:
        """Загрузить привычки и логи пользователя из хранилища и проанализировать"""
        if self.directory is None or self.log_store is None:
            raise RuntimeError("PatternAnalyzer needs a habit directory and a log store for analyze_user")

        habits = await with_timeout(
            self.directory.list_habits_for_user(user_id), self.query_timeout, "list_habits_for_user"
        )
        if not habits:
            return PatternAnalysis.empty()

        logs = await asyncio.gather(*[
            with_timeout(self.log_store.fetch_logs(habit.id, user_id), self.query_timeout, "fetch_logs")
            for habit in habits
        ])

        analysis = await self.analyze(zip(habits, logs))
        logger.info(f"🔍 Pattern analysis for user {user_id}: "
                    f"{len(analysis.patterns)} patterns, {len(analysis.suggestions)} suggestions")
        return analysis


__all__ = ['PatternAnalyzer']
