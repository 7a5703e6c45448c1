"""
Threadsmith Context Schemas

Records handed out by the context engine and the text renderers built on them.
"""

from .context_records import (
    EntityType,
    TaskStatus,
    AttentionLevel,
    ConfidenceLevel,
    ExtractionAction,
    Outcome,
    coerce_enum,
    ChatEvent,
    ThreadMessage,
    FocusEntry,
    Decision,
    TaskOrigin,
    AttentionReason,
    AttentionResult,
    ScoredMessage,
    RelativeTime,
    Deadline,
    Duration,
    TimeContext,
    MessagePatterns,
    ConfidenceEntry,
)
from .templates import (
    render_thread_section,
    render_focus_section,
    render_decisions_section,
    render_staleness_section,
    render_task_origin_summary,
    render_task_context,
    render_project_summary,
    render_decision_answers,
    render_staleness_answers,
    render_discussion_answer,
)

__all__ = [
    "EntityType",
    "TaskStatus",
    "AttentionLevel",
    "ConfidenceLevel",
    "ExtractionAction",
    "Outcome",
    "coerce_enum",
    "ChatEvent",
    "ThreadMessage",
    "FocusEntry",
    "Decision",
    "TaskOrigin",
    "AttentionReason",
    "AttentionResult",
    "ScoredMessage",
    "RelativeTime",
    "Deadline",
    "Duration",
    "TimeContext",
    "MessagePatterns",
    "ConfidenceEntry",
    "render_thread_section",
    "render_focus_section",
    "render_decisions_section",
    "render_staleness_section",
    "render_task_origin_summary",
    "render_task_context",
    "render_project_summary",
    "render_decision_answers",
    "render_staleness_answers",
    "render_discussion_answer",
]
