#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
HabitLens v1.0 - Claude Insight Provider
Провайдер инсайтов на базе Anthropic Messages API (HTTP через aiohttp)

Версия: 1.0.0
"""

from typing import Any, Callable, Dict, Optional
import logging

import aiohttp

from .base import InsightProvider, ModelConfig, TextGenerationError

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"


class ClaudeInsightProvider(InsightProvider):
    """Инсайты через Anthropic Claude"""

    name = "claude"

    def __init__(self, api_key: Optional[str] = None, model: str = "claude-3-opus-20240229",
                 base_url: str = "https://api.anthropic.com",
                 session_factory: Optional[Callable[[], Any]] = None, **kwargs):
        super().__init__(model=model, **kwargs)
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')
        self.session_factory = session_factory or aiohttp.ClientSession
        self.enabled = bool(api_key)

        if not self.enabled:
            logger.warning("Anthropic API key not configured, insights will use fallback")
        logger.info(f"Claude provider initialized - model {self.model}: {'✅' if self.enabled else '❌'}")

    @property
    def messages_url(self) -> str:
        return f"{self.base_url}/v1/messages"

    def _headers(self) -> Dict[str, str]:
        return {
            'x-api-key': self.api_key or '',
            'anthropic-version': ANTHROPIC_VERSION,
            'content-type': 'application/json'
        }

    async def _complete(self, prompt: str, system_prompt: str, model_config: ModelConfig) -> str:
        if not self.enabled:
            raise TextGenerationError("Anthropic API key is not configured")

        body = {
            'model': model_config.model,
            'max_tokens': model_config.max_tokens,
            'temperature': model_config.temperature,
            'system': system_prompt,
            'messages': [
                {'role': 'user', 'content': prompt}
            ]
        }

        async with self.session_factory() as session:
            async with session.post(self.messages_url, json=body, headers=self._headers()) as resp:
                if resp.status >= 400:
                    detail = await resp.text()
                    raise TextGenerationError(f"Anthropic API returned {resp.status}: {detail[:200]}")
                data = await resp.json()

        blocks = data.get('content') or []
        for block in blocks:
            if isinstance(block, dict) and block.get('type') == 'text':
                return (block.get('text') or '').strip()
        return ""


__all__ = ['ClaudeInsightProvider', 'ANTHROPIC_VERSION']
