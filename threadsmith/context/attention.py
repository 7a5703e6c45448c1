"""
Attention Scorer

Additive, regex-weighted importance score (0-100) for a single message.
Bug, urgency and task language push the score up; greetings, acks and
casual chatter push it down. Every rule that fires is returned as a reason.

The score is informational: it never filters messages on its own.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional

from ..common.patterns import PatternMatcher, PatternRule
from ..common.schemas import AttentionLevel, AttentionReason, AttentionResult, ScoredMessage

if TYPE_CHECKING:
    from .store import ContextStore

logger = logging.getLogger("threadsmith.context.attention")

HIGH_THRESHOLD = 70
MEDIUM_THRESHOLD = 40
LOW_ATTENTION_CUTOFF = 30
REPLY_BONUS = 5
CONTINUING_TOPIC_BONUS = 10


def _reason(reason: str, points: int, kind: str):
    def handler(_match):
        return AttentionReason(reason=reason, points=points, type=kind)
    return handler


def _rule(name: str, pattern: str, points: int, reason: str) -> PatternRule:
    kind = "positive" if points > 0 else "negative"
    return PatternRule.compile(name, pattern, handler=_reason(reason, points, kind))


ATTENTION_RULES = PatternMatcher([
    # High-value indicators
    _rule("bug", r"(?:bug|issue|broken|crash|error|fail)", 30, "Bug/issue mention"),
    _rule("urgency", r"(?:urgent|asap|critical|blocking|production)", 25, "Urgency indicator"),
    _rule("task_language", r"(?:need\s+to|have\s+to|must|should|todo)", 20, "Task language"),
    _rule("mention", r"@\w+", 15, "Direct mention"),
    _rule("action_verb", r"\b(?:implement|build|create|fix|add)", 15, "Action verb"),
    _rule("time_constraint", r"(?:deadline|\bby\s+\w+|\bbefore\s+\w+)", 10, "Time constraint"),
    _rule("business_impact", r"(?:customer|user|client|revenue)", 15, "Business impact"),
    # Low-value indicators
    _rule("low_info", r"^\s*(?:ok|okay|cool|nice|got it|thanks|ty|lol|ha)\b", -20, "Low-info response"),
    _rule("greeting", r"^\s*(?:hey|hi|hello|yo|sup)\b", -15, "Greeting"),
    _rule("empty", r"^\s*$", -30, "Empty message"),
    _rule("casual", r"(?:lol|lmao|haha|hehe)", -10, "Casual response"),
])


@dataclass
class LowAttentionSummary:
    count: int
    summary: str
    messages: List[str] = field(default_factory=list)


def level_for(score: int) -> AttentionLevel:
    if score >= HIGH_THRESHOLD:
        return AttentionLevel.HIGH
    if score >= MEDIUM_THRESHOLD:
        return AttentionLevel.MEDIUM
    return AttentionLevel.LOW


def calculate_attention_score(
    content: Optional[str],
    in_reply_to: bool = False,
    continues_topic: bool = False,
) -> AttentionResult:
    """
    Score how much a message deserves attention.

    Args:
        content: Message text (None is treated as empty)
        in_reply_to: Message replies to / quotes an earlier one
        continues_topic: Message continues the thread's current topic

    Returns:
        AttentionResult with clamped score, level and every matched reason
    """
    content = content or ""
    reasons: List[AttentionReason] = ATTENTION_RULES.every(content)

    if in_reply_to:
        reasons.append(AttentionReason(reason="Reply message", points=REPLY_BONUS, type="context"))
    if continues_topic:
        reasons.append(
            AttentionReason(reason="Continuing topic", points=CONTINUING_TOPIC_BONUS, type="context")
        )

    score = max(0, min(100, sum(r.points for r in reasons)))
    return AttentionResult(score=score, level=level_for(score), reasons=reasons)


class AttentionScorer:
    """Scores messages and keeps the most recent ones per channel"""

    def __init__(self, store: "ContextStore"):
        self._store = store

    def score_and_cache(
        self,
        channel_id: str,
        content: str,
        username: str,
        timestamp: Optional[float] = None,
        attention: Optional[AttentionResult] = None,
    ) -> ScoredMessage:
        """Cache a scored message; the oldest falls off once the cache is full"""
        if attention is None:
            attention = calculate_attention_score(content)
        scored = ScoredMessage(
            content=content or "",
            username=username,
            timestamp=timestamp if timestamp is not None else self._store.now(),
            attention=attention,
        )
        self._store.attention_cache_for(channel_id).append(scored)
        return scored

    def get_cached(self, channel_id: str) -> List[ScoredMessage]:
        return list(self._store.attention_cache.get(channel_id, ()))

    def get_high_attention_messages(self, channel_id: str, threshold: Optional[int] = None) -> List[ScoredMessage]:
        if threshold is None:
            threshold = self._store.config.high_attention_threshold
        return [m for m in self.get_cached(channel_id) if m.attention.score >= threshold]

    def summarize_low_attention(self, channel_id: str) -> Optional[LowAttentionSummary]:
        low = [m for m in self.get_cached(channel_id) if m.attention.score < LOW_ATTENTION_CUTOFF]
        if not low:
            return None
        return LowAttentionSummary(
            count=len(low),
            summary=f"{len(low)} low-importance messages (greetings, acknowledgments, etc.)",
            messages=[m.content[:50] for m in low[-10:]],
        )
