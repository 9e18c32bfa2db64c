"""
Ядро HabitLens: модели, расчет серий и хранилище
"""

from .models import (
    HabitFrequency, InsightType, NotificationType, ValidationError,
    CompletionLog, StreakResult, Habit, HabitView, ActiveHabitContact,
    HabitHistory, UserContext, Insight, DetectedPattern, PatternAnalysis,
    NotificationMessage
)
from .streaks import StreakCalculator, compute_streak, is_consecutive
from .database import (
    DatabaseError, DatabaseConnectionError, DatabaseTimeoutError, HabitNotFoundError,
    LogStore, HabitDirectory, InsightStore, NotificationStore, HabitDatabase
)

__all__ = [
    'HabitFrequency',
    'InsightType',
    'NotificationType',
    'ValidationError',
    'CompletionLog',
    'StreakResult',
    'Habit',
    'HabitView',
    'ActiveHabitContact',
    'HabitHistory',
    'UserContext',
    'Insight',
    'DetectedPattern',
    'PatternAnalysis',
    'NotificationMessage',
    'StreakCalculator',
    'compute_streak',
    'is_consecutive',
    'DatabaseError',
    'DatabaseConnectionError',
    'DatabaseTimeoutError',
    'HabitNotFoundError',
    'LogStore',
    'HabitDirectory',
    'InsightStore',
    'NotificationStore',
    'HabitDatabase'
]
