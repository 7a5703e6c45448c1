"""
Context Record Schemas

Records that leave the context engine: thread messages, focus entries,
decisions, task origins, confidence entries and attention/time annotations.
Mutable per-channel state (threads, entity maps, project memories) lives in
plain classes; these are the values they hand out.
"""

import time
from enum import Enum
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, Field


# ============================================================================
# Enums
# ============================================================================

class EntityType(str, Enum):
    """Kinds of entity tracked per channel"""
    PERSON = "person"
    TASK = "task"
    FEATURE = "feature"
    CONCEPT = "concept"  # reserved, not populated by current heuristics


class TaskStatus(str, Enum):
    """Lifecycle of a task entity"""
    MENTIONED = "mentioned"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    CLOSED = "closed"


class AttentionLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ConfidenceLevel(str, Enum):
    """Extraction confidence, ordered low < medium < high"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ExtractionAction(str, Enum):
    """What the bot did with an extraction result"""
    CREATED = "created"
    ASKED_CLARIFICATION = "asked_clarification"
    ASKED_CONFIRMATION = "asked_confirmation"
    SKIPPED = "skipped"


class Outcome(str, Enum):
    """Human verdict on a created (or skipped) task"""
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CORRECTED = "corrected"


E = TypeVar("E", bound=Enum)


def coerce_enum(enum_cls: Type[E], value: Any) -> Union[E, str, None]:
    """
    Map a loose value onto an enum without raising.

    Known values (case-insensitive) become the enum member. Unknown strings
    are kept verbatim so tracker-specific vocabularies survive; anything
    else, including blank strings, becomes None.
    """
    if value is None or isinstance(value, enum_cls):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    try:
        return enum_cls(text.lower())
    except ValueError:
        return text or None


# ============================================================================
# Messages & focus
# ============================================================================

class ChatEvent(BaseModel):
    """One incoming chat message, as delivered by the host integration"""
    channel_id: str
    content: str = ""
    username: str
    timestamp: Optional[float] = None


class ThreadMessage(BaseModel):
    """A message as stored in a thread or task origin"""
    id: Optional[str] = None
    content: str
    username: str
    timestamp: float = Field(default_factory=time.time)

    def render(self) -> str:
        return f"{self.username}: {self.content}"


class FocusEntry(BaseModel):
    """A recently discussed entity on a channel's focus stack"""
    type: EntityType
    name: str
    title: Optional[str] = None
    timestamp: float = Field(default_factory=time.time)

    @property
    def label(self) -> str:
        return self.name or self.title or ""


# ============================================================================
# Decisions & task origins
# ============================================================================

class Decision(BaseModel):
    """
    A team decision detected in conversation.

    Only related_task_id changes after creation (when a ticket is linked).
    """
    id: str
    channel_id: str
    thread_id: Optional[str] = None
    what: str
    why: Optional[str] = None
    who: Optional[str] = None
    when: float = Field(default_factory=time.time)
    alternatives: List[str] = Field(default_factory=list)
    related_task_id: Optional[str] = None


class TaskOrigin(BaseModel):
    """Conversational provenance of a created ticket"""
    task_id: str
    channel_id: str
    thread_id: Optional[str] = None
    messages: List[ThreadMessage] = Field(default_factory=list)
    entities: List[str] = Field(default_factory=list)
    decision: Optional[Decision] = None
    created_at: float = Field(default_factory=time.time)
    updated_at: float = Field(default_factory=time.time)

    def add_message(self, content: str, username: str, timestamp: float) -> None:
        self.messages.append(ThreadMessage(content=content, username=username, timestamp=timestamp))
        self.updated_at = max(self.updated_at, timestamp)


# ============================================================================
# Attention
# ============================================================================

class AttentionReason(BaseModel):
    reason: str
    points: int
    type: str  # "positive", "negative", "context"


class AttentionResult(BaseModel):
    """Heuristic importance of one message"""
    score: int = Field(ge=0, le=100)
    level: AttentionLevel
    reasons: List[AttentionReason] = Field(default_factory=list)


class ScoredMessage(BaseModel):
    content: str
    username: str
    timestamp: float
    attention: AttentionResult


# ============================================================================
# Time expressions
# ============================================================================

class RelativeTime(BaseModel):
    value: int
    unit: str  # "minutes", "hours", "days", "weeks"
    raw: str


class Deadline(BaseModel):
    target: str
    type: str  # "weekday", "period", "deadline", "duration"
    raw: str


class Duration(BaseModel):
    value: int
    type: str  # "ongoing", "elapsed"
    raw: str


class TimeContext(BaseModel):
    """At most one hit per category, first matching pattern wins"""
    relative: Optional[RelativeTime] = None
    deadline: Optional[Deadline] = None
    duration: Optional[Duration] = None

    @property
    def is_empty(self) -> bool:
        return self.relative is None and self.deadline is None and self.duration is None


# ============================================================================
# Confidence trail
# ============================================================================

class MessagePatterns(BaseModel):
    """Features derived from a message when its confidence entry is created"""
    length: int = 0
    has_hedging: bool = False
    has_urgency: bool = False
    has_assignee: bool = False
    has_deadline: bool = False
    is_question: bool = False
    first_word: str = ""
    word_count: int = 0


class ConfidenceEntry(BaseModel):
    """One actionability decision and, later, its human outcome"""
    id: str
    timestamp: float = Field(default_factory=time.time)
    message: str
    result: Dict[str, Any] = Field(default_factory=dict)  # {is_actionable, confidence, title}
    action: Optional[Union[ExtractionAction, str]] = None  # unknown actions kept verbatim
    outcome: Optional[Outcome] = None
    correction: Optional[str] = None
    patterns: MessagePatterns = Field(default_factory=MessagePatterns)

    @property
    def confidence(self) -> Optional[str]:
        value = self.result.get("confidence")
        if isinstance(value, ConfidenceLevel):
            return value.value
        if isinstance(value, str):
            return value.strip().lower()
        return None

    def set_outcome(self, outcome: Outcome, correction: Optional[str] = None) -> None:
        self.outcome = outcome
        self.correction = correction
