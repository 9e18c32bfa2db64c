#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
HabitLens v1.0 - Provider Factory
Выбор AI провайдера при старте по конфигурации

Версия: 1.0.0
"""

from enum import Enum
import logging

from ...config import AIConfig
from .base import InsightProvider
from .claude_provider import ClaudeInsightProvider
from .openai_provider import OpenAIInsightProvider

logger = logging.getLogger(__name__)


class AIProvider(Enum):
    """Провайдеры AI"""
    OPENAI = "openai"
    CLAUDE = "claude"


def create_insight_provider(config: AIConfig) -> InsightProvider:
    """Создать провайдер из конфигурации; неизвестное имя означает OpenAI"""
    try:
        provider = AIProvider((config.provider or "").strip().lower())
    except ValueError:
        logger.warning(f"Unknown AI provider '{config.provider}', falling back to openai")
        provider = AIProvider.OPENAI

    common = dict(
        temperature=config.temperature,
        insight_max_tokens=config.insight_max_tokens,
        pattern_max_tokens=config.pattern_max_tokens,
        request_timeout=config.request_timeout
    )

    if provider is AIProvider.CLAUDE:
        return ClaudeInsightProvider(
            api_key=config.anthropic_api_key,
            model=config.anthropic_model,
            base_url=config.anthropic_base_url,
            **common
        )

    return OpenAIInsightProvider(
        api_key=config.openai_api_key,
        model=config.openai_model,
        **common
    )


__all__ = ['AIProvider', 'create_insight_provider']
