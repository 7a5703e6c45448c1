"""
Task-Origin Linker

Binds a created ticket id to the conversation it came from: the thread,
the message window handed over by the caller and the decision (if any)
that produced it.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Union

from ..common.schemas import Decision, TaskOrigin, ThreadMessage, render_task_origin_summary
from ..common.timefmt import format_relative_time, to_iso

if TYPE_CHECKING:
    from .decisions import DecisionRecorder
    from .store import ContextStore
    from .threads import ThreadSegmenter

logger = logging.getLogger("threadsmith.context.task_links")

MessageLike = Union[ThreadMessage, Dict[str, Any]]


@dataclass
class OriginMatch:
    task_id: str
    origin: TaskOrigin


def _as_message(message: MessageLike, default_timestamp: float) -> ThreadMessage:
    if isinstance(message, ThreadMessage):
        return message
    return ThreadMessage(
        id=message.get("id"),
        content=message.get("content") or "",
        username=message.get("username") or "unknown",
        timestamp=message.get("timestamp") or default_timestamp,
    )


class TaskOriginLinker:
    """Task id -> TaskOrigin table plus thread/decision back-links"""

    def __init__(
        self,
        store: "ContextStore",
        segmenter: "ThreadSegmenter",
        decisions: "DecisionRecorder",
    ):
        self._store = store
        self._segmenter = segmenter
        self._decisions = decisions

    def link_task_to_origin(
        self,
        task_id: str,
        channel_id: str,
        thread_id: Optional[str] = None,
        messages: Optional[Iterable[MessageLike]] = None,
        decision: Optional[Decision] = None,
        title: Optional[str] = None,
    ) -> TaskOrigin:
        """
        Record where a ticket came from.

        Linking the same task id again replaces the earlier origin.

        Args:
            task_id: Ticket id in the external tracker
            channel_id: Channel the ticket was extracted from
            thread_id: Source thread (default: the channel's active thread)
            messages: Message window the ticket was extracted from
            decision: Decision behind the ticket (default: latest decision
                recorded in the source thread)
            title: Ticket title; registers the task entity with its id

        Returns:
            The new TaskOrigin
        """
        now = self._store.now()

        thread = self._segmenter.get_thread(channel_id, thread_id) if thread_id else None
        if thread is None:
            thread = self._segmenter.get_active_thread(channel_id)

        origin = TaskOrigin(
            task_id=task_id,
            channel_id=channel_id,
            thread_id=thread.id if thread else thread_id,
            created_at=now,
            updated_at=now,
        )
        for message in messages or []:
            m = _as_message(message, now)
            origin.add_message(m.content, m.username, m.timestamp)

        previous = self._segmenter.get_thread_by_task_id(task_id)
        if previous is not None and previous is not thread:
            previous.unlink_task()

        if thread is not None:
            thread.link_task(task_id)
            origin.entities = sorted(thread.entities)
            if decision is None:
                decision = self._decisions.find_decision_for_thread(channel_id, thread.id)

        if decision is not None:
            decision.related_task_id = task_id
            origin.decision = decision

        if title:
            self._store.entity_map(channel_id).add_task(title, task_id=task_id)

        self._store.task_origins[task_id] = origin
        logger.info(
            "Linked task %s to %s (thread %s, %d messages)",
            task_id, channel_id, origin.thread_id or "none", len(origin.messages),
        )
        return origin

    def get_task_origin(self, task_id: str) -> Optional[TaskOrigin]:
        return self._store.task_origins.get(task_id)

    def add_message_to_task_origin(
        self,
        task_id: str,
        content: str,
        username: str,
        timestamp: Optional[float] = None,
    ) -> bool:
        origin = self._store.task_origins.get(task_id)
        if origin is None:
            return False
        origin.add_message(content, username, timestamp if timestamp is not None else self._store.now())
        return True

    def find_task_origin_by_keyword(self, keyword: str, channel_id: Optional[str] = None) -> Optional[OriginMatch]:
        """First stored origin (insertion order) whose messages contain the keyword"""
        if not keyword:
            return None
        needle = keyword.lower()
        for task_id, origin in self._store.task_origins.items():
            if channel_id and origin.channel_id != channel_id:
                continue
            if any(needle in m.content.lower() for m in origin.messages):
                return OriginMatch(task_id=task_id, origin=origin)
        return None

    def get_task_origin_summary(self, task_id: str) -> Optional[Dict[str, Any]]:
        origin = self.get_task_origin(task_id)
        if origin is None:
            return None
        return render_task_origin_summary(origin, self._store.now())

    def get_full_context(self, task_id: str) -> Optional[Dict[str, Any]]:
        origin = self.get_task_origin(task_id)
        if origin is None:
            return None
        now = self._store.now()
        conversation: List[Dict[str, str]] = [
            {
                "username": m.username,
                "content": m.content,
                "time": format_relative_time(m.timestamp, now),
            }
            for m in origin.messages
        ]
        return {
            "task_id": origin.task_id,
            "channel_id": origin.channel_id,
            "thread_id": origin.thread_id,
            "full_conversation": conversation,
            "decision": origin.decision.model_dump() if origin.decision else None,
            "entities": list(origin.entities),
            "created_at": to_iso(origin.created_at),
        }
