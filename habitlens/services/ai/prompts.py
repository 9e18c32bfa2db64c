#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
HabitLens v1.0 - Prompt Templates
Шаблоны промптов, общие для всех AI провайдеров

Версия: 1.0.0
"""

from enum import Enum
from typing import Dict, Sequence

from ...core.models import HabitHistory, UserContext

# Сколько последних записей попадает в промпт
RECENT_LOG_LIMIT = 14


class PromptTemplate(Enum):
    """Шаблоны промптов"""
    INSIGHT_SYSTEM = "insight_system"
    PATTERN_SYSTEM = "pattern_system"
    INSIGHT = "insight"
    PATTERN = "pattern"
    PATTERN_HABIT = "pattern_habit"


class PromptManager:
    """Менеджер промптов с шаблонами"""

    def __init__(self):
        self.templates: Dict[PromptTemplate, str] = self._load_templates()

    def _load_templates(self) -> Dict[PromptTemplate, str]:
        """Загрузка шаблонов промптов"""
        return {
            PromptTemplate.INSIGHT_SYSTEM: (
                "You are an expert habit coach and behavioral psychologist. "
                "Analyze habit tracking data and provide actionable, personalized insights."
            ),

            PromptTemplate.PATTERN_SYSTEM: (
                "You are an expert at analyzing behavioral patterns. "
                "Identify patterns, trends, and provide actionable suggestions."
            ),

            PromptTemplate.INSIGHT: """Analyze this habit tracking data and provide a personalized insight:

Habit: {habit_name}
Frequency: {frequency}
Current Streak: {current_streak} days
Longest Streak: {longest_streak} days
Consistency Score: {consistency_score}%
Completion Rate: {completion_rate:.1f}%

Recent Activity (last 14 days):
{recent_activity}

User Context:
- Total Habits: {total_habits}
- Average Consistency: {average_consistency:.1f}%

Provide ONE of the following:
1. A pattern explanation (why streaks are breaking)
2. A personalized suggestion (how to improve)
3. A prediction (success probability)
4. An explanation (what's working/not working)

Format your response as JSON:
{{
  "type": "suggestion|pattern|prediction|explanation",
  "title": "Short title",
  "content": "Detailed explanation (2-3 sentences)",
  "confidenceScore": 0.0-1.0
}}""",

            PromptTemplate.PATTERN_HABIT: """Habit: {habit_name}
Frequency: {frequency}
Streak: {current_streak}/{longest_streak}
Consistency: {consistency_score}%""",

            PromptTemplate.PATTERN: """Analyze these multiple habits and identify patterns:

{habits}

Identify:
1. Common patterns (e.g., "habits done in morning have higher success")
2. Actionable suggestions (e.g., "pair exercise with morning coffee")

Format as JSON:
{{
  "patterns": [
    {{"type": "pattern name", "description": "...", "confidence": 0.0-1.0}}
  ],
  "suggestions": ["suggestion 1", "suggestion 2"]
}}"""
        }

    def get_prompt(self, template: PromptTemplate, **kwargs) -> str:
        """Получить промпт по шаблону"""
        return self.templates[template].format(**kwargs)

    def system_prompt(self, template: PromptTemplate) -> str:
        return self.templates[template]

    def build_insight_prompt(self, history: HabitHistory, context: UserContext) -> str:
        """Промпт для инсайта по одной привычке"""
        recent_logs = history.logs[:RECENT_LOG_LIMIT]
        recent_activity = "\n".join(
            f"{log.date.isoformat()}: {'✓' if log.completed else '✗'}" for log in recent_logs
        )

        return self.get_prompt(
            PromptTemplate.INSIGHT,
            habit_name=history.habit_name,
            frequency=history.frequency,
            current_streak=history.current_streak,
            longest_streak=history.longest_streak,
            consistency_score=history.consistency_score,
            completion_rate=history.completion_rate * 100,
            recent_activity=recent_activity,
            total_habits=context.total_habits,
            average_consistency=context.average_consistency
        )

    def build_pattern_prompt(self, histories: Sequence[HabitHistory]) -> str:
        """Промпт для анализа паттернов по набору привычек"""
        habits = "\n\n".join(
            self.get_prompt(
                PromptTemplate.PATTERN_HABIT,
                habit_name=h.habit_name,
                frequency=h.frequency,
                current_streak=h.current_streak,
                longest_streak=h.longest_streak,
                consistency_score=h.consistency_score
            )
            for h in histories
        )
        return self.get_prompt(PromptTemplate.PATTERN, habits=habits)


__all__ = ['PromptTemplate', 'PromptManager', 'RECENT_LOG_LIMIT']
