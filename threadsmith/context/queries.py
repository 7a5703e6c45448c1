"""
Context Query Routing

Maps a free-form question ("what's stale?", "why did we decide on X?",
"context on issue #42") to the kind of answer the engine should give.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..common.patterns import PatternMatcher, PatternRule


class QueryIntent(str, Enum):
    """Types of context query"""
    TASK_CONTEXT = "task_context"  # "What's the context on issue #42?"
    DECISIONS = "decisions"  # "Why did we decide that?"
    STALE_TASKS = "stale_tasks"  # "What's fallen through the cracks?"
    DISCUSSION = "discussion"  # "What are we discussing?"
    TRENDING = "trending"  # "What's trending?"
    GENERAL = "general"  # Catch-all: formatted channel context


@dataclass
class RoutedQuery:
    intent: QueryIntent
    task_id: Optional[str] = None


def _intent(intent: QueryIntent):
    def handler(_match):
        return RoutedQuery(intent=intent)
    return handler


def _task_reference(match: re.Match) -> RoutedQuery:
    return RoutedQuery(intent=QueryIntent.TASK_CONTEXT, task_id=match.group(1))


# Priority order: the first rule that matches decides the intent
QUERY_RULES = PatternMatcher([
    PatternRule.compile("task_reference", r"\b(?:issue|task)\s*#?(\d+)", _task_reference),
    PatternRule.compile(
        "why_decided", r"^(?=.*why)(?=.*decide)", _intent(QueryIntent.DECISIONS),
        flags=re.IGNORECASE | re.DOTALL,
    ),
    PatternRule.compile("stale", r"stale|fallen\s+through|forgotten", _intent(QueryIntent.STALE_TASKS)),
    PatternRule.compile("discussion", r"discussing|talking\s+about", _intent(QueryIntent.DISCUSSION)),
    PatternRule.compile("trending", r"trending|popular", _intent(QueryIntent.TRENDING)),
])


def route_query(query: Optional[str]) -> RoutedQuery:
    """Detect the intent of a context query"""
    if not query:
        return RoutedQuery(intent=QueryIntent.GENERAL)
    return QUERY_RULES.first(query) or RoutedQuery(intent=QueryIntent.GENERAL)
