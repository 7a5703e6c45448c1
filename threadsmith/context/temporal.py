"""
Temporal Analyzer

Pulls relative-time, deadline and duration expressions out of messages and
scans a channel for recurring topics and tasks that have gone quiet.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional

from ..common.patterns import PatternMatcher, PatternRule
from ..common.schemas import Deadline, Duration, RelativeTime, TaskStatus, TimeContext
from ..common.timefmt import hours_between, round_half_up

if TYPE_CHECKING:
    from .store import ContextStore
    from .threads import ThreadSegmenter

logger = logging.getLogger("threadsmith.context.temporal")

OPEN_TASK_STATUSES = (TaskStatus.MENTIONED, TaskStatus.IN_PROGRESS)


def _relative(unit: str, value: Optional[int] = None):
    def handler(match):
        amount = value if value is not None else int(match.group(1))
        return RelativeTime(value=amount, unit=unit, raw=match.group(0))
    return handler


def _deadline(kind: str):
    def handler(match):
        return Deadline(target=match.group(1), type=kind, raw=match.group(0))
    return handler


def _duration(kind: str):
    def handler(match):
        return Duration(value=int(match.group(1)), type=kind, raw=match.group(0))
    return handler


RELATIVE_RULES = PatternMatcher([
    PatternRule.compile("hours_ago", r"\b(\d+)\s*(?:hours?|hrs?|h)\s+ago\b", _relative("hours")),
    PatternRule.compile("days_ago", r"\b(\d+)\s*(?:days?|d)\s+ago\b", _relative("days")),
    PatternRule.compile("weeks_ago", r"\b(\d+)\s*(?:weeks?|w)\s+ago\b", _relative("weeks")),
    PatternRule.compile("yesterday", r"\byesterday\b", _relative("days", 1)),
    PatternRule.compile("this_morning", r"\bthis\s+morning\b", _relative("hours", 12)),
    PatternRule.compile("now", r"\b(?:just\s+now|right\s+now|currently)\b", _relative("minutes", 0)),
])

DEADLINE_RULES = PatternMatcher([
    PatternRule.compile("weekday", r"\bby\s+(?:this\s+)?(\w+day)\b", _deadline("weekday")),
    PatternRule.compile("period", r"\bby\s+(?:end\s+of\s+)?(\w+)", _deadline("period")),
    PatternRule.compile(
        "deadline", r"\b(?:needs?\s+to\s+be\s+done|due)\s+(?:by|before)\s+(.+)", _deadline("deadline")
    ),
    PatternRule.compile(
        "remaining", r"\b(\d+)\s*(?:hours?|days?|weeks?)\s+(?:from\s+now|left)\b", _deadline("duration")
    ),
])

DURATION_RULES = PatternMatcher([
    PatternRule.compile("ongoing", r"\bfor\s+(\d+)\s*(?:hours?|days?|weeks?)\b", _duration("ongoing")),
    PatternRule.compile(
        "elapsed",
        r"\b(?:been|for)\s+(?:the\s+)?(?:last|past)\s+(\d+)\s*(?:hours?|days?|weeks?)\b",
        _duration("elapsed"),
    ),
])


@dataclass
class StalenessAlert:
    task: str
    hours_since_activity: int
    last_mentioned_by: Optional[str] = None


@dataclass
class RecurringTopic:
    topic: str
    count: int


@dataclass
class TemporalPatterns:
    recurring_topics: List[RecurringTopic] = field(default_factory=list)
    urgency_trends: List[Dict] = field(default_factory=list)  # reserved
    staleness_alerts: List[StalenessAlert] = field(default_factory=list)
    deadline_warnings: List[Dict] = field(default_factory=list)  # reserved


def extract_time_context(content: Optional[str]) -> TimeContext:
    """
    Find time expressions in a message.

    Args:
        content: Message text

    Returns:
        TimeContext with at most one relative time, one deadline and one
        duration; the first matching rule of each category wins
    """
    if not content:
        return TimeContext()
    return TimeContext(
        relative=RELATIVE_RULES.first(content),
        deadline=DEADLINE_RULES.first(content),
        duration=DURATION_RULES.first(content),
    )


class TemporalAnalyzer:
    """Channel-level scans over threads and task entities"""

    def __init__(self, store: "ContextStore", segmenter: "ThreadSegmenter"):
        self._store = store
        self._segmenter = segmenter

    def extract_time_context(self, content: Optional[str]) -> TimeContext:
        return extract_time_context(content)

    def find_recurring_topics(self, channel_id: str) -> List[RecurringTopic]:
        counts: Dict[str, int] = {}
        for thread in self._segmenter.channel_threads(channel_id):
            if thread.topic:
                counts[thread.topic] = counts.get(thread.topic, 0) + 1
        return [RecurringTopic(topic=t, count=c) for t, c in counts.items() if c >= 2]

    def find_stale_tasks(self, channel_id: str, now: Optional[float] = None) -> List[StalenessAlert]:
        """Open task entities whose linked thread has been quiet too long"""
        if now is None:
            now = self._store.now()
        entity_map = self._store.entity_maps.get(channel_id)
        if entity_map is None:
            return []

        threshold = self._store.config.stale_after_hours
        alerts = []
        for name, record in entity_map.tasks.items():
            if record.status not in OPEN_TASK_STATUSES or not record.task_id:
                continue
            thread = self._segmenter.get_thread_by_task_id(record.task_id)
            if thread is None:
                continue
            hours = hours_between(thread.last_activity_at, now)
            if hours > threshold:
                alerts.append(StalenessAlert(
                    task=name,
                    hours_since_activity=round_half_up(hours),
                    last_mentioned_by=thread.last_speaker,
                ))
        return alerts

    def analyze_temporal_patterns(self, channel_id: str, now: Optional[float] = None) -> TemporalPatterns:
        """Recurring topics and staleness alerts; closes idle threads on the way"""
        if now is None:
            now = self._store.now()
        self._segmenter.close_idle_threads(channel_id, now)

        patterns = TemporalPatterns(
            recurring_topics=self.find_recurring_topics(channel_id),
            staleness_alerts=self.find_stale_tasks(channel_id, now),
        )
        if patterns.staleness_alerts:
            logger.debug("%d stale task(s) in %s", len(patterns.staleness_alerts), channel_id)
        return patterns
