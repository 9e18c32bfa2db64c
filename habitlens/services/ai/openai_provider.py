#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
HabitLens v1.0 - OpenAI Insight Provider
Провайдер инсайтов на базе OpenAI Chat Completions

Версия: 1.0.0
"""

from typing import Any, Optional
import logging

from openai import AsyncOpenAI

from .base import InsightProvider, ModelConfig, TextGenerationError

logger = logging.getLogger(__name__)


class OpenAIInsightProvider(InsightProvider):
    """Инсайты через OpenAI"""

    name = "openai"

    def __init__(self, api_key: Optional[str] = None, model: str = "gpt-4-turbo-preview",
                 client: Optional[Any] = None, **kwargs):
        super().__init__(model=model, **kwargs)
        self.client = client
        self.enabled = self._initialize_client(api_key)

        logger.info(f"OpenAI provider initialized - model {self.model}: {'✅' if self.enabled else '❌'}")

    def _initialize_client(self, api_key: Optional[str]) -> bool:
        """Инициализация OpenAI клиента"""
        if self.client is not None:
            return True

        if not api_key:
            logger.warning("OpenAI API key not configured, insights will use fallback")
            return False

        self.client = AsyncOpenAI(api_key=api_key, timeout=self.request_timeout)
        return True

    async def _complete(self, prompt: str, system_prompt: str, model_config: ModelConfig) -> str:
        if not self.enabled:
            raise TextGenerationError("OpenAI client is not configured")

        response = await self.client.chat.completions.create(
            model=model_config.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt}
            ],
            max_tokens=model_config.max_tokens,
            temperature=model_config.temperature
        )

        if not response.choices:
            return ""
        return (response.choices[0].message.content or "").strip()

    async def close(self) -> None:
        if self.client is not None and hasattr(self.client, "close"):
            await self.client.close()


__all__ = ['OpenAIInsightProvider']
