"""
Decision Recorder

Detects decision sentences ("let's ...", "going with ...", "the plan is ...")
and appends them to the channel's decision log with what / why / who.
"""

import logging
import re
import uuid
from typing import TYPE_CHECKING, List, Optional

from ..common.patterns import PatternMatcher, PatternRule
from ..common.schemas import Decision

if TYPE_CHECKING:
    from .store import ContextStore
    from .threads import ThreadSegmenter

logger = logging.getLogger("threadsmith.context.decisions")

# Priority order: the first rule that matches wins
DECISION_RULES = PatternMatcher([
    PatternRule.compile(
        "proposal",
        r"\b(?:let's|let\s+us|we\s+should|we'll|we\s+will|I\s+think\s+we\s+should|decided\s+to)\s+(.+)",
    ),
    PatternRule.compile(
        "choice",
        r"\b(?:going\s+with|choosing|selected|picked)\s+(.+?)(?:\s+because|\s+over|\s*,|\s*$)",
    ),
    PatternRule.compile("plan", r"\b(?:the\s+)?plan\s+is\s+(?:to\s+)?(.+)"),
])

WHY_RULE = PatternRule.compile("because", r"\bbecause\s+(.+?)(?:\.|,|$)")
ALTERNATIVE_RULE = PatternRule.compile("instead_of", r"\binstead\s+of\s+(.+?)(?:\.|,|$)")

_TRAILING_CLAUSE = re.compile(r"(?:^|\s+)(?:because|instead\s+of)\b.*$", re.IGNORECASE | re.DOTALL)
_TRAILING_PUNCT = ".!?,;: "


def _clean_what(raw: str) -> str:
    """Drop a trailing because/instead-of clause and terminal punctuation"""
    what = _TRAILING_CLAUSE.sub("", raw)
    return what.strip().rstrip(_TRAILING_PUNCT).strip()


class DecisionRecorder:
    """Per-channel decision log"""

    def __init__(self, store: "ContextStore", segmenter: "ThreadSegmenter"):
        self._store = store
        self._segmenter = segmenter

    def extract_decision(
        self,
        content: str,
        username: str,
        channel_id: str,
        timestamp: Optional[float] = None,
    ) -> Optional[Decision]:
        """
        Detect and record a decision in a message.

        At most one decision per message. A message without a decision
        phrase returns None and records nothing.

        Args:
            content: Message text
            username: Author, recorded as `who`
            channel_id: Channel whose log receives the decision
            timestamp: Decision time (default: store clock)

        Returns:
            The recorded Decision, or None
        """
        if not content:
            return None

        what = None
        for rule in DECISION_RULES.rules:
            captured = rule.apply(content)
            if captured:
                what = _clean_what(captured)
                if what:
                    break
        if not what:
            return None

        why = WHY_RULE.apply(content)
        alternative = ALTERNATIVE_RULE.apply(content)
        active = self._segmenter.get_active_thread(channel_id)

        decision = Decision(
            id=f"decision-{uuid.uuid4().hex[:12]}",
            channel_id=channel_id,
            thread_id=active.id if active else None,
            what=what,
            why=why.strip() if why else None,
            who=username,
            when=timestamp if timestamp is not None else self._store.now(),
            alternatives=[alternative.strip()] if alternative else [],
        )
        return self.record_decision(channel_id, decision)

    def record_decision(self, channel_id: str, decision: Decision) -> Decision:
        self._store.decisions.setdefault(channel_id, []).append(decision)
        logger.info("Decision recorded in %s: %s", channel_id, decision.what)
        return decision

    def get_recent_decisions(self, channel_id: str, limit: Optional[int] = None) -> List[Decision]:
        if limit is None:
            limit = self._store.config.recent_decisions_limit
        if limit <= 0:
            return []
        return list(self._store.decisions.get(channel_id, [])[-limit:])

    def find_decision_for_thread(self, channel_id: str, thread_id: Optional[str]) -> Optional[Decision]:
        """Latest decision recorded while the given thread was active"""
        if thread_id is None:
            return None
        for decision in reversed(self._store.decisions.get(channel_id, [])):
            if decision.thread_id == thread_id:
                return decision
        return None

    def find_decision(self, decision_id: str) -> Optional[Decision]:
        for channel_decisions in self._store.decisions.values():
            for decision in channel_decisions:
                if decision.id == decision_id:
                    return decision
        return None
