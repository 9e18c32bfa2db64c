#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
HabitLens v1.0 - AI Response Parsing
Извлечение JSON из ответов моделей и заполнение значений по умолчанию

Версия: 1.0.0
"""

import json
from typing import Any, Dict, List, Optional
import logging

from ...core.models import (
    DetectedPattern, Insight, InsightType, PatternAnalysis, clamp_confidence
)

logger = logging.getLogger(__name__)

DEFAULT_INSIGHT_TYPE = InsightType.SUGGESTION
DEFAULT_INSIGHT_TITLE = "Habit Insight"
DEFAULT_INSIGHT_CONFIDENCE = 0.6
RAW_CONTENT_LIMIT = 500


def _balanced_end(text: str, start: int) -> Optional[int]:
    """Индекс закрывающей скобки для '{' в позиции start, с учетом строк"""
    depth = 0
    in_string = False
    escaped = False

    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == '\\':
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == '{':
            depth += 1
        elif char == '}':
            depth -= 1
            if depth == 0:
                return index

    return None


def extract_json_fragment(text: str) -> Optional[Dict[str, Any]]:
    """Первый сбалансированный фрагмент {...}, который разбирается как JSON объект"""
    if not text:
        return None

    start = text.find('{')
    while start != -1:
        end = _balanced_end(text, start)
        if end is not None:
            try:
                parsed = json.loads(text[start:end + 1])
            except ValueError:
                parsed = None
            except RecursionError:
                # Слишком глубокая вложенность: пропускаем весь блок целиком
                logger.debug(f"JSON fragment at {start} is nested too deeply")
                start = text.find('{', end + 1)
                continue
            if isinstance(parsed, dict):
                return parsed
        start = text.find('{', start + 1)

    return None


def _insight_type(value: Any) -> InsightType:
    try:
        return InsightType(str(value).strip().lower())
    except ValueError:
        return DEFAULT_INSIGHT_TYPE


def parse_insight_response(raw: str) -> Insight:
    """Разбор ответа модели в Insight с подстановкой значений по умолчанию"""
    raw = raw or ""
    data = extract_json_fragment(raw) or {}
    if not data:
        logger.debug("No JSON object in insight response, using raw text")

    insight_type = _insight_type(data['type']) if data.get('type') else DEFAULT_INSIGHT_TYPE
    title = data.get('title')
    content = data.get('content')

    return Insight(
        type=insight_type,
        title=str(title) if title else DEFAULT_INSIGHT_TITLE,
        content=str(content) if content else raw[:RAW_CONTENT_LIMIT],
        confidence_score=clamp_confidence(data.get('confidenceScore'), DEFAULT_INSIGHT_CONFIDENCE)
    )


def _parse_patterns(items: Any) -> List[DetectedPattern]:
    patterns = []
    if not isinstance(items, list):
        return patterns

    for item in items:
        if isinstance(item, dict) and item.get('description'):
            patterns.append(DetectedPattern(
                type=str(item.get('type') or 'pattern'),
                description=str(item['description']),
                confidence=clamp_confidence(item.get('confidence'), 0.5)
            ))
        elif isinstance(item, str) and item.strip():
            patterns.append(DetectedPattern(type='pattern', description=item.strip()))

    return patterns


def parse_pattern_response(raw: str) -> PatternAnalysis:
    """Разбор ответа модели в PatternAnalysis; без JSON - пустой анализ"""
    data = extract_json_fragment(raw or "")
    if not data:
        return PatternAnalysis.empty()

    suggestions = data.get('suggestions')
    if not isinstance(suggestions, list):
        suggestions = []

    return PatternAnalysis(
        patterns=_parse_patterns(data.get('patterns')),
        suggestions=[str(s).strip() for s in suggestions if isinstance(s, (str, int, float)) and str(s).strip()]
    )


__all__ = [
    'extract_json_fragment',
    'parse_insight_response',
    'parse_pattern_response',
    'DEFAULT_INSIGHT_TITLE',
    'DEFAULT_INSIGHT_CONFIDENCE',
    'RAW_CONTENT_LIMIT'
]
