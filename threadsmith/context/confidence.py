"""
Confidence Trail & Learning

Logs every actionability decision made by the extractor together with the
human outcome that follows, and derives advisory confidence nudges from the
correlations found in that log.

Nothing here changes a confidence on its own: callers decide whether to
apply the suggested adjustment.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

from ..common.patterns import PatternRule
from ..common.schemas import (
    ConfidenceEntry,
    ConfidenceLevel,
    ExtractionAction,
    MessagePatterns,
    Outcome,
    coerce_enum,
)
from ..common.timefmt import round_half_up

if TYPE_CHECKING:
    from .store import ContextStore

logger = logging.getLogger("threadsmith.context.confidence")

LEVELS = [ConfidenceLevel.LOW.value, ConfidenceLevel.MEDIUM.value, ConfidenceLevel.HIGH.value]
SHORT_MESSAGE_WORDS = 5

HEDGING_RULE = PatternRule.compile(
    "hedging", r"\b(?:maybe|might|could|perhaps|possibly|someday|eventually)\b"
)
URGENCY_RULE = PatternRule.compile(
    "urgency", r"\b(?:asap|urgent|critical|blocking|right\s+now|immediately)\b"
)
ASSIGNEE_RULE = PatternRule.compile(
    "assignee", r"(?:@\w+|\b(?:you|he|she|they)\b\s+(?:should|can|could|need))"
)
DEADLINE_RULE = PatternRule.compile(
    "deadline", r"\b(?:by|before|due|deadline|friday|monday|tomorrow)\b"
)

# (analysis key, message feature, confidence it is expected to go with, threshold %, step)
CORRELATIONS = [
    ("hedging_reduces_confidence", "has_hedging", ConfidenceLevel.LOW.value, 60, -1),
    ("urgency_increases_confidence", "has_urgency", ConfidenceLevel.HIGH.value, 60, 1),
    ("questions_are_low_confidence", "is_question", ConfidenceLevel.LOW.value, 50, -1),
]

_FEATURE_LABELS = {
    "has_hedging": "hedged messages",
    "has_urgency": "urgent messages",
    "is_question": "questions",
}


@dataclass
class PatternCorrelation:
    total: int
    matching_target: int
    percentage: int


@dataclass
class FalsePositive:
    message: str
    predicted_title: Optional[str]
    patterns: MessagePatterns


@dataclass
class ConfidenceAnalysis:
    total_entries: int = 0
    by_confidence: Dict[str, int] = field(
        default_factory=lambda: {level: 0 for level in LEVELS}
    )
    by_outcome: Dict[str, int] = field(
        default_factory=lambda: {"accepted": 0, "rejected": 0, "corrected": 0, "pending": 0}
    )
    false_positives: List[FalsePositive] = field(default_factory=list)
    patterns: Dict[str, Optional[PatternCorrelation]] = field(default_factory=dict)


@dataclass
class ConfidenceAdjustment:
    original_confidence: str
    adjusted_confidence: str
    adjustment: int
    reasons: List[str] = field(default_factory=list)


def extract_patterns(message: str) -> MessagePatterns:
    """Message features recorded alongside each confidence entry"""
    message = message or ""
    words = message.split()
    return MessagePatterns(
        length=len(message),
        has_hedging=HEDGING_RULE.search(message) is not None,
        has_urgency=URGENCY_RULE.search(message) is not None,
        has_assignee=ASSIGNEE_RULE.search(message) is not None,
        has_deadline=DEADLINE_RULE.search(message) is not None,
        is_question="?" in message,
        first_word=words[0].lower() if words else "",
        word_count=len(words),
    )


def _level_value(level: Union[str, ConfidenceLevel, None]) -> str:
    if isinstance(level, ConfidenceLevel):
        return level.value
    return level if isinstance(level, str) else ""


class ConfidenceTrail:
    """Bounded log of extraction decisions and their outcomes"""

    def __init__(self, store: "ContextStore"):
        self._store = store

    @property
    def entries(self) -> List[ConfidenceEntry]:
        return list(self._store.confidence_trail)

    def record_confidence(
        self,
        message: str,
        result: Dict[str, Any],
        action: Union[ExtractionAction, str, None] = None,
    ) -> ConfidenceEntry:
        """
        Append an extraction decision to the trail.

        Args:
            message: Message the extractor looked at
            result: Extractor output ({is_actionable, confidence, title})
            action: What the bot did with it; unknown actions are kept verbatim

        Returns:
            The new entry; the oldest entry is evicted once the trail is full
        """
        now = self._store.now()
        entry = ConfidenceEntry(
            id=f"conf-{int(now * 1000)}-{uuid.uuid4().hex[:9]}",
            timestamp=now,
            message=message or "",
            result=dict(result) if isinstance(result, dict) else {},
            action=coerce_enum(ExtractionAction, action),
            patterns=extract_patterns(message),
        )
        self._store.confidence_trail.append(entry)
        logger.debug("Confidence entry %s (%s, %s)", entry.id, entry.confidence, entry.action)
        return entry

    def find_entry(self, entry_id: str) -> Optional[ConfidenceEntry]:
        for entry in self._store.confidence_trail:
            if entry.id == entry_id:
                return entry
        return None

    def record_outcome(
        self,
        entry_id: str,
        outcome: Union[Outcome, str],
        correction: Optional[str] = None,
    ) -> bool:
        """Attach the human verdict to an entry; False for unknown entries or outcomes"""
        entry = self.find_entry(entry_id)
        if entry is None:
            return False
        parsed = coerce_enum(Outcome, outcome)
        if not isinstance(parsed, Outcome):
            logger.warning("Ignoring unknown outcome %r for %s", outcome, entry_id)
            return False
        entry.set_outcome(parsed, correction)
        logger.info("Outcome for %s: %s", entry_id, entry.outcome.value)
        return True

    def _correlation(self, feature: str, target: str) -> Optional[PatternCorrelation]:
        with_feature = [e for e in self._store.confidence_trail if getattr(e.patterns, feature)]
        if not with_feature:
            return None
        matching = sum(1 for e in with_feature if e.confidence == target)
        return PatternCorrelation(
            total=len(with_feature),
            matching_target=matching,
            percentage=round_half_up(matching / len(with_feature) * 100),
        )

    def analyze_confidence_patterns(self) -> ConfidenceAnalysis:
        """Histograms, false positives and feature correlations over the trail"""
        analysis = ConfidenceAnalysis(total_entries=len(self._store.confidence_trail))

        for entry in self._store.confidence_trail:
            confidence = entry.confidence
            if confidence in analysis.by_confidence:
                analysis.by_confidence[confidence] += 1

            if entry.outcome is not None:
                analysis.by_outcome[entry.outcome.value] += 1
            else:
                analysis.by_outcome["pending"] += 1

            if entry.outcome == Outcome.REJECTED and confidence != ConfidenceLevel.LOW.value:
                analysis.false_positives.append(FalsePositive(
                    message=entry.message,
                    predicted_title=entry.result.get("title"),
                    patterns=entry.patterns,
                ))

        for key, feature, target, _threshold, _step in CORRELATIONS:
            analysis.patterns[key] = self._correlation(feature, target)
        return analysis

    def get_learned_confidence_adjustment(
        self,
        message: str,
        base_confidence: Union[str, ConfidenceLevel, None],
    ) -> ConfidenceAdjustment:
        """
        Suggest a confidence one step up or down based on past outcomes.

        Base levels are matched case-insensitively. An unrecognised base is
        returned unchanged when there is nothing to nudge; otherwise it is
        stepped from medium and the reasons say so.
        """
        patterns = extract_patterns(message)
        analysis = self.analyze_confidence_patterns()

        adjustment = 0
        learned: List[str] = []
        for key, feature, target, threshold, step in CORRELATIONS:
            correlation = analysis.patterns.get(key)
            if not getattr(patterns, feature) or correlation is None:
                continue
            if correlation.percentage > threshold:
                adjustment += step
                learned.append(
                    f"Learned: {correlation.percentage}% of {_FEATURE_LABELS[feature]} "
                    f"were {target} confidence"
                )

        original = _level_value(base_confidence)
        base = original.strip().lower()
        reasons = self._adjustment_reasons(patterns) + learned

        if base in LEVELS:
            index = LEVELS.index(base)
        elif adjustment == 0:
            return ConfidenceAdjustment(original, original, 0, reasons)
        else:
            index = LEVELS.index(ConfidenceLevel.MEDIUM.value)
            reasons.append(f"Unrecognised base confidence '{original}' treated as medium")
        new_index = max(0, min(len(LEVELS) - 1, index + adjustment))

        return ConfidenceAdjustment(
            original_confidence=original,
            adjusted_confidence=LEVELS[new_index],
            adjustment=adjustment,
            reasons=reasons,
        )

    @staticmethod
    def _adjustment_reasons(patterns: MessagePatterns) -> List[str]:
        reasons = []
        if patterns.has_hedging:
            reasons.append("Message contains hedging language (maybe, might, someday)")
        if patterns.is_question:
            reasons.append("Message is phrased as a question")
        if patterns.has_urgency:
            reasons.append("Message contains urgency indicators")
        if patterns.word_count < SHORT_MESSAGE_WORDS:
            reasons.append("Message is very short")
        return reasons
