#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
HabitLens v1.0 - Core Data Models
Модели данных с валидацией и типизацией

Версия: 1.0.0
"""

from datetime import datetime, date
from typing import Dict, List, Optional, Union, Any, Sequence
from dataclasses import dataclass, field
from enum import Enum
import logging

logger = logging.getLogger(__name__)

# ===== ENUMS =====

class HabitFrequency(Enum):
    """Периодичность привычки"""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

class InsightType(Enum):
    """Типы AI инсайтов"""
    PATTERN = "pattern"
    SUGGESTION = "suggestion"
    PREDICTION = "prediction"
    EXPLANATION = "explanation"
    ENCOURAGEMENT = "encouragement"

class NotificationType(Enum):
    """Типы уведомлений"""
    REMINDER = "reminder"
    STREAK_ALERT = "streak_alert"
    ENCOURAGEMENT = "encouragement"

# ===== VALIDATION HELPERS =====

class ValidationError(Exception):
    """Ошибка валидации данных"""
    pass

def validate_text(text: str, min_length: int = 1, max_length: int = 1000, field_name: str = "text") -> str:
    """Валидация текстовых полей"""
    if not isinstance(text, str):
        raise ValidationError(f"{field_name} must be a string")

    text = text.strip()
    if len(text) < min_length:
        raise ValidationError(f"{field_name} must contain at least {min_length} characters")

    if len(text) > max_length:
        raise ValidationError(f"{field_name} must contain at most {max_length} characters")

    return text

def to_calendar_date(value: Union[date, datetime, str]) -> date:
    """Приведение значения к календарному дню (время суток отбрасывается)"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip()).date()
        except ValueError:
            raise ValidationError(f"Invalid date format: {value}")
    raise ValidationError(f"Unsupported date value: {value!r}")

def clamp_confidence(value: Any, default: float) -> float:
    """Приведение уверенности к диапазону [0, 1]"""
    try:
        score = float(value)
    except (TypeError, ValueError):
        return default
    if score != score:  # NaN
        return default
    return max(0.0, min(1.0, score))

# ===== TRACKING MODELS =====

@dataclass
class CompletionLog:
    """Запись о выполнении привычки за календарный день"""
    habit_id: int
    user_id: int
    date: date
    completed: bool
    notes: Optional[str] = None

    def __post_init__(self):
        self.date = to_calendar_date(self.date)
        self.completed = bool(self.completed)
        if self.notes is not None:
            self.notes = validate_text(self.notes, min_length=0, max_length=500, field_name="notes") or None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'habit_id': self.habit_id,
            'user_id': self.user_id,
            'date': self.date.isoformat(),
            'completed': self.completed,
            'notes': self.notes
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompletionLog":
        return cls(
            habit_id=data['habit_id'],
            user_id=data['user_id'],
            date=data['date'],
            completed=data.get('completed', False),
            notes=data.get('notes')
        )

@dataclass(frozen=True)
class StreakResult:
    """Производные показатели серии; не хранится, всегда пересчитывается"""
    current_streak: int = 0
    longest_streak: int = 0
    consistency_score: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'current_streak': self.current_streak,
            'longest_streak': self.longest_streak,
            'consistency_score': self.consistency_score
        }

@dataclass
class Habit:
    """Привычка пользователя"""
    id: int
    user_id: int
    name: str
    frequency: HabitFrequency = HabitFrequency.DAILY
    color_tag: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        self.name = validate_text(self.name, min_length=1, max_length=200, field_name="name")
        if not isinstance(self.frequency, HabitFrequency):
            try:
                self.frequency = HabitFrequency(self.frequency)
            except ValueError:
                valid_values = [f.value for f in HabitFrequency]
                raise ValidationError(f"frequency must be one of: {valid_values}")
        if isinstance(self.created_at, str):
            self.created_at = datetime.fromisoformat(self.created_at)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'user_id': self.user_id,
            'name': self.name,
            'frequency': self.frequency.value,
            'color_tag': self.color_tag,
            'created_at': self.created_at.isoformat()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Habit":
        return cls(
            id=data['id'],
            user_id=data['user_id'],
            name=data['name'],
            frequency=data.get('frequency', HabitFrequency.DAILY.value),
            color_tag=data.get('color_tag'),
            created_at=data.get('created_at') or datetime.now()
        )

@dataclass
class HabitView:
    """Привычка, дополненная показателями серии"""
    habit: Habit
    streak: StreakResult

    def to_dict(self) -> Dict[str, Any]:
        data = self.habit.to_dict()
        data.update(self.streak.to_dict())
        return data

@dataclass(frozen=True)
class ActiveHabitContact:
    """Строка представления "активные привычки пользователей с контактом" """
    user_id: int
    contact_address: Optional[str]
    habit_id: int
    habit_name: str

# ===== AI MODELS =====

@dataclass
class HabitHistory:
    """История привычки, передаваемая AI провайдеру"""
    habit_id: int
    habit_name: str
    frequency: str
    logs: List[CompletionLog] = field(default_factory=list)
    current_streak: int = 0
    longest_streak: int = 0
    consistency_score: float = 0.0

    @property
    def completion_rate(self) -> float:
        """Доля выполненных записей по всем логам (0..1)"""
        if not self.logs:
            return 0.0
        return sum(1 for log in self.logs if log.completed) / len(self.logs)

    @classmethod
    def build(cls, habit: Habit, logs: Sequence[CompletionLog], streak: StreakResult) -> "HabitHistory":
        return cls(
            habit_id=habit.id,
            habit_name=habit.name,
            frequency=habit.frequency.value,
            logs=list(logs),
            current_streak=streak.current_streak,
            longest_streak=streak.longest_streak,
            consistency_score=streak.consistency_score
        )

@dataclass(frozen=True)
class UserContext:
    """Агрегированный контекст пользователя"""
    user_id: int
    total_habits: int = 0
    average_consistency: float = 0.0

@dataclass
class Insight:
    """AI инсайт по привычке"""
    type: InsightType
    title: str
    content: str
    confidence_score: float
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.type, InsightType):
            self.type = InsightType(self.type)
        self.confidence_score = clamp_confidence(self.confidence_score, 0.5)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type.value,
            'title': self.title,
            'content': self.content,
            'confidence_score': self.confidence_score,
            'metadata': dict(self.metadata)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Insight":
        return cls(
            type=data['type'],
            title=data['title'],
            content=data['content'],
            confidence_score=data.get('confidence_score', 0.5),
            metadata=data.get('metadata') or {}
        )

@dataclass
class DetectedPattern:
    """Выявленный паттерн по нескольким привычкам"""
    type: str
    description: str
    confidence: float = 0.5

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type,
            'description': self.description,
            'confidence': self.confidence
        }

@dataclass
class PatternAnalysis:
    """Результат анализа паттернов"""
    patterns: List[DetectedPattern] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

    @classmethod
    def empty(cls) -> "PatternAnalysis":
        return cls(patterns=[], suggestions=[])

    @property
    def is_empty(self) -> bool:
        return not self.patterns and not self.suggestions

    def to_dict(self) -> Dict[str, Any]:
        return {
            'patterns': [p.to_dict() for p in self.patterns],
            'suggestions': list(self.suggestions)
        }

# ===== NOTIFICATION MODELS =====

@dataclass
class NotificationMessage:
    """Запись об отправленном уведомлении"""
    type: NotificationType
    message: str
    user_id: int
    habit_id: Optional[int] = None
    id: Optional[int] = None
    sent_at: str = field(default_factory=lambda: datetime.now().isoformat())

    def __post_init__(self):
        if not isinstance(self.type, NotificationType):
            self.type = NotificationType(self.type)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'type': self.type.value,
            'message': self.message,
            'user_id': self.user_id,
            'habit_id': self.habit_id,
            'sent_at': self.sent_at
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NotificationMessage":
        return cls(
            type=data['type'],
            message=data['message'],
            user_id=data['user_id'],
            habit_id=data.get('habit_id'),
            id=data.get('id'),
            sent_at=data.get('sent_at') or datetime.now().isoformat()
        )

# ===== EXPORT =====

__all__ = [
    'HabitFrequency',
    'InsightType',
    'NotificationType',
    'ValidationError',
    'validate_text',
    'to_calendar_date',
    'clamp_confidence',
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
    'NotificationMessage'
]
