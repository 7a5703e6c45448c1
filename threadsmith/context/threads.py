"""
Thread Segmenter

Groups a channel's message stream into conversational threads bounded by
time (idle gap) and topic (discourse markers such as "anyway", "new topic").

Threads are closed lazily: an idle thread is only marked inactive when its
channel receives the next message or a staleness scan looks at it. Nothing
runs on a timer.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional, Set

from ..common.patterns import PatternMatcher, PatternRule
from ..common.schemas import ThreadMessage
from .entities import ExtractedEntities, extract_entities

if TYPE_CHECKING:
    from .store import ContextStore

logger = logging.getLogger("threadsmith.context.threads")

# A message opening with one of these starts a new thread
TOPIC_CHANGE_RULES = PatternMatcher([
    PatternRule.compile("greeting_or_pivot", r"^\s*(?:hey|hi|so|ok|anyway|btw|moving on)\b"),
    PatternRule.compile("explicit_new_topic", r"^\s*(?:new topic|different question|one more thing)\b"),
    PatternRule.compile("addition", r"^\s*(?:also|additionally|another thing)\b"),
])

# "<the> login bug" -> "login"
TOPIC_RULES = PatternMatcher([
    PatternRule.compile(
        "subject_before_kind",
        r"(?:\b(?:the|a|an|this|that)\s+)?\b(\w+(?:\s+\w+)?)\s+(?:issue|bug|feature|task|problem)\b",
    ),
])


@dataclass
class TopicChange:
    is_new_topic: bool
    topic: Optional[str] = None


@dataclass
class ThreadSummary:
    topic: Optional[str]
    message_count: int
    participants: List[str] = field(default_factory=list)
    recent_messages: List[str] = field(default_factory=list)
    task_created: bool = False
    task_id: Optional[str] = None
    duration: float = 0.0  # seconds since the thread started


def detect_topic_change(content: str) -> TopicChange:
    """Check for discourse markers and pull a topic out of the message"""
    if not content:
        return TopicChange(is_new_topic=False)
    topic = TOPIC_RULES.first(content)
    return TopicChange(
        is_new_topic=TOPIC_CHANGE_RULES.matches_any(content),
        topic=topic.strip() if topic else None,
    )


class Thread:
    """A bounded run of messages in one channel treated as one conversation"""

    def __init__(self, thread_id: str, channel_id: str, topic: Optional[str], started_at: float):
        self.id = thread_id
        self.channel_id = channel_id
        self.topic = topic
        self.messages: List[ThreadMessage] = []
        self.entities: Set[str] = set()
        self.task_created = False
        self.task_id: Optional[str] = None
        self.started_at = started_at
        self.last_activity_at = started_at
        self.is_active = True

    def add_message(self, message_id: str, content: str, username: str, timestamp: float) -> ThreadMessage:
        message = ThreadMessage(id=message_id, content=content, username=username, timestamp=timestamp)
        self.messages.append(message)
        # Out-of-order deliveries never move activity backwards
        self.last_activity_at = max(self.last_activity_at, timestamp)
        return message

    def is_idle(self, now: float, idle_seconds: float) -> bool:
        return now - self.last_activity_at > idle_seconds

    def close(self) -> None:
        self.is_active = False

    def link_task(self, task_id: str) -> None:
        self.task_created = True
        self.task_id = task_id

    def unlink_task(self) -> None:
        self.task_created = False
        self.task_id = None

    @property
    def participants(self) -> List[str]:
        seen: List[str] = []
        for m in self.messages:
            if m.username not in seen:
                seen.append(m.username)
        return seen

    @property
    def last_speaker(self) -> Optional[str]:
        return self.messages[-1].username if self.messages else None

    def get_summary(self, now: float, recent: int = 5) -> ThreadSummary:
        recent_messages = self.messages[-recent:] if recent > 0 else []
        return ThreadSummary(
            topic=self.topic,
            message_count=len(self.messages),
            participants=self.participants,
            recent_messages=[m.render() for m in recent_messages],
            task_created=self.task_created,
            task_id=self.task_id,
            duration=max(0.0, now - self.started_at),
        )


class ThreadSegmenter:
    """Appends messages to the right thread of their channel"""

    def __init__(self, store: "ContextStore"):
        self._store = store

    @property
    def _idle_seconds(self) -> float:
        return self._store.config.thread_idle_minutes * 60

    def channel_threads(self, channel_id: str) -> List[Thread]:
        return self._store.threads.get(channel_id, [])

    def get_active_thread(self, channel_id: str) -> Optional[Thread]:
        for thread in self.channel_threads(channel_id):
            if thread.is_active:
                return thread
        return None

    def get_thread(self, channel_id: str, thread_id: str) -> Optional[Thread]:
        for thread in self.channel_threads(channel_id):
            if thread.id == thread_id:
                return thread
        return None

    def get_thread_by_task_id(self, task_id: str) -> Optional[Thread]:
        for channel_threads in self._store.threads.values():
            for thread in channel_threads:
                if thread.task_id == task_id:
                    return thread
        return None

    def close_idle_threads(self, channel_id: str, now: Optional[float] = None) -> int:
        """Mark every active thread idle for longer than the limit as inactive"""
        if now is None:
            now = self._store.now()
        closed = 0
        for thread in self.channel_threads(channel_id):
            if thread.is_active and thread.is_idle(now, self._idle_seconds):
                thread.close()
                closed += 1
                logger.debug("Closed idle thread %s (channel %s)", thread.id, channel_id)
        return closed

    def get_or_create_thread(self, channel_id: str, content: str, timestamp: float) -> Thread:
        channel_threads = self._store.threads.setdefault(channel_id, [])

        active = self.get_active_thread(channel_id)
        change = detect_topic_change(content)

        if active is not None and not change.is_new_topic:
            return active

        if active is not None:
            active.close()

        thread = Thread(
            thread_id=f"{channel_id}-{int(timestamp * 1000)}-{len(channel_threads)}",
            channel_id=channel_id,
            topic=change.topic,
            started_at=timestamp,
        )
        channel_threads.append(thread)
        logger.info(
            "Opened thread %s in %s (topic: %s)", thread.id, channel_id, thread.topic or "none"
        )
        return thread

    def add_message(
        self,
        channel_id: str,
        message_id: Optional[str],
        content: str,
        username: str,
        timestamp: Optional[float] = None,
        entities: Optional[ExtractedEntities] = None,
    ) -> Thread:
        """
        Append a message to the channel's active thread, opening one if needed.

        A message arriving after the idle limit still joins the thread; the
        thread is then closed so the next message opens a new one.

        Args:
            channel_id: Channel the message arrived in
            message_id: Host message id (generated when None)
            content: Message text
            username: Author
            timestamp: POSIX seconds (default: store clock)
            entities: Pre-extracted entities, to avoid extracting twice

        Returns:
            The thread the message was appended to
        """
        if timestamp is None:
            timestamp = self._store.now()
        content = content or ""
        if message_id is None:
            message_id = f"{channel_id}-{int(timestamp * 1000)}"

        thread = self.get_or_create_thread(channel_id, content, timestamp)
        went_idle = thread.is_idle(timestamp, self._idle_seconds)
        thread.add_message(message_id, content, username, timestamp)
        if went_idle:
            thread.close()
            logger.debug("Closed idle thread %s (channel %s)", thread.id, channel_id)

        if entities is None:
            entities = extract_entities(content)
        thread.entities.update(entities.all())

        return thread
