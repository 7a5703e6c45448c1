"""
Context Engine

Drives every context component for each incoming message and renders the
resulting state for extraction prompts and end-user context queries.

This is the only object the rest of the bot talks to.

Usage:
    engine = ContextEngine()
    enriched = engine.process_message("C123", "the login bug is back", "alice")
    prompt_context = engine.get_formatted_context("C123")
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from ..common.config import EngineConfig
from ..common.schemas import (
    AttentionResult,
    ConfidenceEntry,
    ConfidenceLevel,
    Decision,
    ExtractionAction,
    FocusEntry,
    Outcome,
    TaskOrigin,
    TaskStatus,
    TimeContext,
    coerce_enum,
    render_decision_answers,
    render_decisions_section,
    render_discussion_answer,
    render_focus_section,
    render_project_summary,
    render_staleness_answers,
    render_staleness_section,
    render_task_context,
    render_thread_section,
)
from .attention import AttentionScorer, LowAttentionSummary, calculate_attention_score
from .confidence import ConfidenceAdjustment, ConfidenceAnalysis, ConfidenceTrail
from .decisions import DecisionRecorder
from .entities import EntityMap, extract_entities, resolve_pronouns
from .project_memory import CrossChannelContext, CrossChannelMemory, ProjectMemory
from .queries import QueryIntent, route_query
from .store import ContextStore
from .task_links import MessageLike, OriginMatch, TaskOriginLinker
from .temporal import TemporalAnalyzer, TemporalPatterns, extract_time_context
from .threads import Thread, ThreadSegmenter

logger = logging.getLogger("threadsmith.context.engine")

FOCUS_LIMIT = 3
FORMATTED_DECISIONS_LIMIT = 3
QUERY_DECISIONS_LIMIT = 5


@dataclass
class ThreadInfo:
    id: str
    topic: Optional[str]
    is_active: bool
    message_count: int


@dataclass
class EntityBundle:
    people: List[str] = field(default_factory=list)
    tasks: List[str] = field(default_factory=list)
    features: List[str] = field(default_factory=list)
    resolved_pronouns: Dict[str, FocusEntry] = field(default_factory=dict)


@dataclass
class EnrichedContext:
    """Everything the engine learned from one message"""
    thread: ThreadInfo
    entities: EntityBundle
    current_focus: List[FocusEntry]
    decision: Optional[Decision]
    time_context: TimeContext
    attention: AttentionResult


class ContextEngine:
    """
    Conversation-context orchestrator.

    Owns one ContextStore and one instance of every component, all sharing
    that store. Messages of one channel must be delivered one at a time.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        clock: Callable[[], float] = time.time,
        store: Optional[ContextStore] = None,
    ):
        self.store = store or ContextStore(config, clock=clock)
        self.threads = ThreadSegmenter(self.store)
        self.attention = AttentionScorer(self.store)
        self.decisions = DecisionRecorder(self.store, self.threads)
        self.temporal = TemporalAnalyzer(self.store, self.threads)
        self.linker = TaskOriginLinker(self.store, self.threads, self.decisions)
        self.projects = CrossChannelMemory(self.store)
        self.confidence = ConfidenceTrail(self.store)

    # ------------------------------------------------------------------
    # Message pipeline
    # ------------------------------------------------------------------

    def process_message(
        self,
        channel_id: str,
        content: Optional[str],
        username: str,
        project_name: Optional[str] = None,
        timestamp: Optional[float] = None,
        message_id: Optional[str] = None,
    ) -> EnrichedContext:
        """
        Run one message through every context component.

        Args:
            channel_id: Channel the message arrived in
            content: Message text (None is treated as empty)
            username: Author
            project_name: Project the channel belongs to, if known
            timestamp: POSIX seconds (default: store clock)
            message_id: Host message id (generated when None)

        Returns:
            EnrichedContext for the message
        """
        content = content or ""
        if timestamp is None:
            timestamp = self.store.now()

        entities = extract_entities(content)
        thread = self.threads.add_message(
            channel_id, message_id, content, username, timestamp, entities=entities
        )

        entity_map = self.store.entity_map(channel_id)
        entity_map.register(entities)
        resolved = resolve_pronouns(content, entity_map)

        decision = self.decisions.extract_decision(content, username, channel_id, timestamp)
        time_context = extract_time_context(content)

        in_reply_to = content.lstrip().startswith(">")
        continues_topic = bool(
            len(thread.messages) > 1
            and thread.topic
            and thread.topic.lower() in content.lower()
        )
        attention = calculate_attention_score(content, in_reply_to, continues_topic)
        self.attention.score_and_cache(channel_id, content, username, timestamp, attention)

        if project_name:
            self.projects.sync_channel_to_project(project_name, channel_id, entity_map)

        logger.debug(
            "Processed message in %s: thread=%s attention=%d decision=%s",
            channel_id, thread.id, attention.score, bool(decision),
        )

        return EnrichedContext(
            thread=ThreadInfo(
                id=thread.id,
                topic=thread.topic,
                is_active=thread.is_active,
                message_count=len(thread.messages),
            ),
            entities=EntityBundle(
                people=entities.people,
                tasks=entities.tasks,
                features=entities.features,
                resolved_pronouns=resolved,
            ),
            current_focus=entity_map.get_current_focus(FOCUS_LIMIT),
            decision=decision,
            time_context=time_context,
            attention=attention,
        )

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def get_formatted_context(
        self,
        channel_id: str,
        include_thread: bool = True,
        include_entities: bool = True,
        include_decisions: bool = True,
        include_time_patterns: bool = True,
        max_messages: int = 10,
    ) -> str:
        """Prompt-ready text describing the channel's current context"""
        lines: List[str] = []

        if include_thread:
            thread = self.threads.get_active_thread(channel_id)
            if thread is not None:
                summary = thread.get_summary(self.store.now(), recent=max_messages)
                lines.extend(render_thread_section(summary, max_messages))

        if include_entities:
            entity_map = self.store.entity_maps.get(channel_id)
            if entity_map is not None:
                lines.extend(render_focus_section(entity_map.get_current_focus(FOCUS_LIMIT)))

        if include_decisions:
            recent = self.decisions.get_recent_decisions(channel_id, FORMATTED_DECISIONS_LIMIT)
            lines.extend(render_decisions_section(recent))

        if include_time_patterns:
            patterns = self.temporal.analyze_temporal_patterns(channel_id)
            lines.extend(render_staleness_section(patterns.staleness_alerts))

        return "\n".join(lines)

    def get_task_context_for_ai(self, task_id: str) -> Optional[str]:
        origin = self.linker.get_task_origin(task_id)
        if origin is None:
            return None
        return render_task_context(origin, self.store.now())

    def get_project_summary(self, project_name: str) -> str:
        return render_project_summary(project_name, self.get_cross_channel_context(project_name))

    def answer_context_query(
        self,
        query: str,
        channel_id: str,
        project_name: Optional[str] = None,
    ) -> Optional[str]:
        """
        Answer a free-form question about the channel's context.

        Returns:
            Answer text; None only for a task reference without a stored origin
        """
        routed = route_query(query)

        if routed.intent == QueryIntent.TASK_CONTEXT:
            return self.get_task_context_for_ai(routed.task_id)

        if routed.intent == QueryIntent.DECISIONS:
            recent = self.decisions.get_recent_decisions(channel_id, QUERY_DECISIONS_LIMIT)
            return render_decision_answers(recent) if recent else "No recent decisions found."

        if routed.intent == QueryIntent.STALE_TASKS:
            alerts = self.temporal.analyze_temporal_patterns(channel_id).staleness_alerts
            return render_staleness_answers(alerts) if alerts else "No stale tasks found!"

        if routed.intent == QueryIntent.DISCUSSION:
            thread = self.threads.get_active_thread(channel_id)
            entity_map = self.store.entity_maps.get(channel_id)
            focus = entity_map.get_current_focus(FOCUS_LIMIT) if entity_map else []
            answer = render_discussion_answer(thread.topic if thread else None, focus)
            return answer or "No active discussion detected."

        if routed.intent == QueryIntent.TRENDING:
            if project_name:
                trending = self.get_cross_channel_context(project_name).trending_entities
                if trending:
                    return "\n".join(f"• {e.entity}: {e.mentions} mentions" for e in trending)
            return "No trending topics found."

        return self.get_formatted_context(channel_id)

    # ------------------------------------------------------------------
    # Channel state
    # ------------------------------------------------------------------

    def get_entity_map(self, channel_id: str) -> EntityMap:
        return self.store.entity_map(channel_id)

    def get_active_thread(self, channel_id: str) -> Optional[Thread]:
        return self.threads.get_active_thread(channel_id)

    def get_recent_decisions(self, channel_id: str, limit: Optional[int] = None) -> List[Decision]:
        return self.decisions.get_recent_decisions(channel_id, limit)

    def analyze_temporal_patterns(self, channel_id: str) -> TemporalPatterns:
        return self.temporal.analyze_temporal_patterns(channel_id)

    def get_high_attention_messages(self, channel_id: str, threshold: Optional[int] = None):
        return self.attention.get_high_attention_messages(channel_id, threshold)

    def summarize_low_attention(self, channel_id: str) -> Optional[LowAttentionSummary]:
        return self.attention.summarize_low_attention(channel_id)

    def update_task_status(
        self,
        channel_id: str,
        task_id: str,
        status: Union[str, TaskStatus],
        project_name: Optional[str] = None,
    ) -> bool:
        """
        Update a task's status in its channel and, if given, its project.

        Statuses outside TaskStatus are stored verbatim; a blank or non-string
        status changes nothing and returns False.
        """
        status = coerce_enum(TaskStatus, status)
        if status is None:
            return False
        entity_map = self.store.entity_maps.get(channel_id)
        updated = entity_map is not None and entity_map.update_task_status(task_id, status)
        if project_name:
            updated = self.projects.update_task_status(project_name, task_id, status) or updated
        if updated:
            logger.info("Task %s -> %s", task_id, getattr(status, "value", status))
        return updated

    def clear_channel_context(self, channel_id: str) -> None:
        self.store.clear_channel(channel_id)
        logger.info("Cleared context for channel %s", channel_id)

    def get_context_stats(self, channel_id: Optional[str] = None) -> Dict[str, Any]:
        """Counters for one channel, or process-wide counters when no channel is given"""
        if channel_id is None:
            return {
                "channels": len(self.store.channel_ids()),
                "projects": len(self.store.projects),
                "task_origins": len(self.store.task_origins),
                "confidence_entries": len(self.store.confidence_trail),
            }

        thread = self.threads.get_active_thread(channel_id)
        entity_map = self.store.entity_maps.get(channel_id)
        return {
            "thread": {
                "topic": thread.topic,
                "message_count": len(thread.messages),
                "is_active": thread.is_active,
            } if thread else None,
            "entities": entity_map.counts() if entity_map else {
                "people": 0, "tasks": 0, "features": 0, "focus_stack_size": 0,
            },
            "decisions": len(self.store.decisions.get(channel_id, [])),
            "task_origins": len(self.store.task_origins),
            "confidence_entries": len(self.store.confidence_trail),
        }

    # ------------------------------------------------------------------
    # Task origins
    # ------------------------------------------------------------------

    def link_task_to_origin(
        self,
        task_id: str,
        channel_id: str,
        thread_id: Optional[str] = None,
        messages: Optional[Iterable[MessageLike]] = None,
        decision: Optional[Decision] = None,
        title: Optional[str] = None,
    ) -> TaskOrigin:
        return self.linker.link_task_to_origin(task_id, channel_id, thread_id, messages, decision, title)

    def get_task_origin(self, task_id: str) -> Optional[TaskOrigin]:
        return self.linker.get_task_origin(task_id)

    def get_task_origin_summary(self, task_id: str) -> Optional[Dict[str, Any]]:
        return self.linker.get_task_origin_summary(task_id)

    def add_message_to_task_origin(self, task_id: str, content: str, username: str) -> bool:
        return self.linker.add_message_to_task_origin(task_id, content, username)

    def find_task_origin_by_keyword(self, keyword: str, channel_id: Optional[str] = None) -> Optional[OriginMatch]:
        return self.linker.find_task_origin_by_keyword(keyword, channel_id)

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def get_project_memory(self, project_name: str) -> ProjectMemory:
        return self.projects.get_project_memory(project_name)

    def sync_channel_to_project(self, project_name: str, channel_id: str) -> ProjectMemory:
        return self.projects.sync_channel_to_project(project_name, channel_id, self.store.entity_map(channel_id))

    def get_cross_channel_context(self, project_name: str) -> CrossChannelContext:
        return self.projects.get_cross_channel_context(project_name)

    # ------------------------------------------------------------------
    # Confidence trail
    # ------------------------------------------------------------------

    def record_confidence(
        self,
        message: str,
        result: Dict[str, Any],
        action: Union[ExtractionAction, str, None] = None,
    ) -> ConfidenceEntry:
        return self.confidence.record_confidence(message, result, action)

    def record_outcome(self, entry_id: str, outcome: Union[Outcome, str], correction: Optional[str] = None) -> bool:
        return self.confidence.record_outcome(entry_id, outcome, correction)

    def analyze_confidence_patterns(self) -> ConfidenceAnalysis:
        return self.confidence.analyze_confidence_patterns()

    def get_learned_confidence_adjustment(
        self,
        message: str,
        base_confidence: Union[str, ConfidenceLevel, None],
    ) -> ConfidenceAdjustment:
        return self.confidence.get_learned_confidence_adjustment(message, base_confidence)
