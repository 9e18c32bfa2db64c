#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
HabitLens v1.0 - Insight Provider Base
Общий интерфейс AI провайдеров: промпты, разбор ответа и резервные инсайты

Конкретный провайдер реализует только транспорт (_complete). Построение промптов,
разбор ответа и поведение при сбоях общие, поэтому провайдеры взаимозаменяемы.

Версия: 1.0.0
"""

import abc
import asyncio
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence
import logging

from ...core.models import HabitHistory, Insight, InsightType, PatternAnalysis, UserContext
from .parsing import parse_insight_response, parse_pattern_response
from .prompts import PromptManager, PromptTemplate

logger = logging.getLogger(__name__)

# ===== EXCEPTIONS =====

class TextGenerationError(Exception):
    """Сбой генерации текста у провайдера"""
    pass

# ===== DATA CLASSES =====

@dataclass(frozen=True)
class ModelConfig:
    """Параметры одного запроса к модели"""
    model: str
    max_tokens: int
    temperature: float = 0.7

@dataclass
class ProviderStats:
    """Статистика запросов провайдера"""
    total_requests: int = 0
    successful_requests: int = 0
    fallback_responses: int = 0
    average_response_time_ms: float = 0.0

    @property
    def success_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return (self.successful_requests / self.total_requests) * 100

    def record(self, success: bool, response_time_ms: float) -> None:
        self.total_requests += 1
        if success:
            self.successful_requests += 1
        else:
            self.fallback_responses += 1

        # Скользящее среднее по всем запросам
        self.average_response_time_ms += (
            (response_time_ms - self.average_response_time_ms) / self.total_requests
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_requests': self.total_requests,
            'successful_requests': self.successful_requests,
            'fallback_responses': self.fallback_responses,
            'average_response_time_ms': round(self.average_response_time_ms, 2),
            'success_rate': round(self.success_rate, 2)
        }

# ===== FALLBACK =====

def fallback_insight(history: HabitHistory, provider: str = "fallback") -> Insight:
    """Детерминированный инсайт на случай недоступности модели"""
    metadata = {'fallback': True, 'provider': provider}

    if history.current_streak == 0:
        return Insight(
            type=InsightType.SUGGESTION,
            title="Get Back on Track",
            content=(
                f"Your {history.habit_name} habit needs attention. Try starting with smaller, "
                f"more achievable goals to rebuild momentum."
            ),
            confidence_score=0.5,
            metadata=metadata
        )

    return Insight(
        type=InsightType.ENCOURAGEMENT,
        title="Keep Going!",
        content=(
            f"Great job maintaining your {history.current_streak}-day streak! "
            f"Consistency is key to building lasting habits."
        ),
        confidence_score=0.5,
        metadata=metadata
    )

# ===== PROVIDER INTERFACE =====

class InsightProvider(abc.ABC):
    """Базовый AI провайдер инсайтов"""

    name = "base"

    def __init__(self, model: str, temperature: float = 0.7, insight_max_tokens: int = 500,
                 pattern_max_tokens: int = 800, request_timeout: float = 30.0,
                 prompt_manager: Optional[PromptManager] = None):
        self.model = model
        self.temperature = temperature
        self.insight_max_tokens = insight_max_tokens
        self.pattern_max_tokens = pattern_max_tokens
        self.request_timeout = request_timeout
        self.prompt_manager = prompt_manager or PromptManager()
        self.stats = ProviderStats()

    @abc.abstractmethod
    async def _complete(self, prompt: str, system_prompt: str, model_config: ModelConfig) -> str:
        """Отправить промпт модели и вернуть сырой текст ответа"""

    async def complete(self, prompt: str, system_prompt: str, model_config: ModelConfig) -> str:
        """Вызов модели с таймаутом; пустой ответ считается сбоем"""
        text = await asyncio.wait_for(
            self._complete(prompt, system_prompt, model_config),
            timeout=self.request_timeout
        )
        if not text or not text.strip():
            raise TextGenerationError(f"{self.name} returned an empty response")
        return text

    def _model_config(self, max_tokens: int) -> ModelConfig:
        return ModelConfig(model=self.model, max_tokens=max_tokens, temperature=self.temperature)

    async def generate_insight(self, history: HabitHistory, context: UserContext) -> Insight:
        """Инсайт по одной привычке; при любом сбое возвращается резервный"""
        prompt = self.prompt_manager.build_insight_prompt(history, context)
        system_prompt = self.prompt_manager.system_prompt(PromptTemplate.INSIGHT_SYSTEM)
        start_time = time.time()

        try:
            raw = await self.complete(prompt, system_prompt, self._model_config(self.insight_max_tokens))
        except Exception as e:
            self.stats.record(False, (time.time() - start_time) * 1000)
            logger.warning(f"⚠️ {self.name} insight request failed, using fallback: {e!r}")
            return fallback_insight(history, self.name)

        self.stats.record(True, (time.time() - start_time) * 1000)
        try:
            insight = parse_insight_response(raw)
        except Exception as e:
            logger.warning(f"⚠️ {self.name} insight response could not be parsed, using fallback: {e!r}")
            return fallback_insight(history, self.name)

        insight.metadata.update({'provider': self.name, 'model': self.model})
        return insight

    async def analyze_patterns(self, histories: Sequence[HabitHistory]) -> PatternAnalysis:
        """Анализ паттернов по набору привычек; при сбое или пустом входе - пустой анализ"""
        if not histories:
            return PatternAnalysis.empty()

        prompt = self.prompt_manager.build_pattern_prompt(histories)
        system_prompt = self.prompt_manager.system_prompt(PromptTemplate.PATTERN_SYSTEM)
        start_time = time.time()

        try:
            raw = await self.complete(prompt, system_prompt, self._model_config(self.pattern_max_tokens))
        except Exception as e:
            self.stats.record(False, (time.time() - start_time) * 1000)
            logger.warning(f"⚠️ {self.name} pattern request failed: {e!r}")
            return PatternAnalysis.empty()

        self.stats.record(True, (time.time() - start_time) * 1000)
        try:
            return parse_pattern_response(raw)
        except Exception as e:
            logger.warning(f"⚠️ {self.name} pattern response could not be parsed: {e!r}")
            return PatternAnalysis.empty()

    async def close(self) -> None:
        """Освободить ресурсы транспорта"""
        return None

    def get_stats(self) -> Dict[str, Any]:
        return {
            'provider': self.name,
            'model': self.model,
            **self.stats.to_dict()
        }


__all__ = [
    'TextGenerationError',
    'ModelConfig',
    'ProviderStats',
    'InsightProvider',
    'fallback_insight'
]
