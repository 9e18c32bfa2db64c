"""
AI провайдеры инсайтов HabitLens
"""

from .base import InsightProvider, ModelConfig, ProviderStats, TextGenerationError, fallback_insight
from .claude_provider import ClaudeInsightProvider
from .factory import AIProvider, create_insight_provider
from .openai_provider import OpenAIInsightProvider
from .parsing import extract_json_fragment, parse_insight_response, parse_pattern_response
from .prompts import PromptManager, PromptTemplate

__all__ = [
    'InsightProvider',
    'ModelConfig',
    'ProviderStats',
    'TextGenerationError',
    'fallback_insight',
    'OpenAIInsightProvider',
    'ClaudeInsightProvider',
    'AIProvider',
    'create_insight_provider',
    'extract_json_fragment',
    'parse_insight_response',
    'parse_pattern_response',
    'PromptManager',
    'PromptTemplate'
]
