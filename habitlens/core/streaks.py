#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
HabitLens v1.0 - Streak Calculator
Расчет текущей и максимальной серии и показателя регулярности

Версия: 1.0.0
"""

from datetime import date, datetime
from typing import Iterable, List, Optional, Union

from .models import CompletionLog, StreakResult, to_calendar_date

DateLike = Union[date, datetime, str]


def is_consecutive(first: DateLike, second: DateLike) -> bool:
    """Два дня соседние, если разница между ними ровно один календарный день"""
    return abs((to_calendar_date(first) - to_calendar_date(second)).days) == 1


def compute_streak(logs: Iterable[CompletionLog]) -> StreakResult:
    """
    Расчет показателей серии по логам одной привычки.

    Логи ожидаются от самого нового к самому старому; порядок восстанавливается,
    если вызывающий код передал их иначе. Пустой вход дает нулевой результат.
    """
    ordered: List[CompletionLog] = sorted(logs, key=lambda log: log.date, reverse=True)
    if not ordered:
        return StreakResult(0, 0, 0.0)

    completed_count = sum(1 for log in ordered if log.completed)

    # Текущая серия: непрерывный ряд выполненных дней от самой свежей записи
    current_streak = 0
    previous: Optional[date] = None
    for log in ordered:
        if not log.completed:
            break
        if previous is not None and not is_consecutive(previous, log.date):
            break
        current_streak += 1
        previous = log.date

    # Максимальная серия по всей истории, с тем же правилом соседства
    longest_streak = 0
    run = 0
    previous = None
    for log in ordered:
        if log.completed:
            if previous is not None and is_consecutive(previous, log.date):
                run += 1
            else:
                run = 1
            previous = log.date
        else:
            run = 0
            previous = None
        longest_streak = max(longest_streak, run)

    consistency_score = round(completed_count / len(ordered) * 100, 2)

    return StreakResult(
        current_streak=current_streak,
        longest_streak=longest_streak,
        consistency_score=consistency_score
    )


class StreakCalculator:
    """Обертка над расчетом серий для внедрения в сервисы"""

    def compute(self, logs: Iterable[CompletionLog]) -> StreakResult:
        return compute_streak(logs)

    @staticmethod
    def is_consecutive(first: DateLike, second: DateLike) -> bool:
        return is_consecutive(first, second)


__all__ = ['compute_streak', 'is_consecutive', 'StreakCalculator']
