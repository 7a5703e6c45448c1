"""
Context Text Templates

Renders engine state to the Markdown-ish text injected into extraction
prompts and returned to end-user context queries.
"""

from typing import TYPE_CHECKING, Dict, List, Optional

from ..timefmt import format_relative_time

if TYPE_CHECKING:
    from ...context.project_memory import CrossChannelContext
    from ...context.temporal import StalenessAlert
    from ...context.threads import ThreadSummary
    from .context_records import Decision, FocusEntry, TaskOrigin


ORIGIN_RECENT_MESSAGES = 3


def _focus_lines(focus: List["FocusEntry"], bullet: str = "  -") -> List[str]:
    return [f"{bullet} {entry.type.value}: {entry.label}" for entry in focus]


def render_thread_section(summary: "ThreadSummary", max_messages: int = 10) -> List[str]:
    lines = [
        f"**Current Discussion Topic:** {summary.topic or 'General'}",
        f"**Participants:** {', '.join(summary.participants)}",
        "**Recent Messages:**",
    ]
    recent = summary.recent_messages[-max_messages:] if max_messages > 0 else []
    lines.extend(f"  {m}" for m in recent)
    return lines


def render_focus_section(focus: List["FocusEntry"]) -> List[str]:
    if not focus:
        return []
    return ["\n**Currently Discussing:**", *_focus_lines(focus)]


def render_decisions_section(decisions: List["Decision"]) -> List[str]:
    if not decisions:
        return []
    lines = ["\n**Recent Decisions:**"]
    for d in decisions:
        lines.append(f"  - {d.what}" + (f" (because: {d.why})" if d.why else ""))
    return lines


def render_staleness_section(alerts: List["StalenessAlert"]) -> List[str]:
    if not alerts:
        return []
    lines = ["\n**Stale Tasks:**"]
    lines.extend(f'  - "{a.task}" - {a.hours_since_activity}h since last activity' for a in alerts)
    return lines


def render_task_origin_summary(origin: "TaskOrigin", now: Optional[float] = None) -> Dict:
    """
    Compact view of a task origin.

    Returns:
        Dict with task_id, message_count, the last three rendered messages,
        decision what/why/who (or None) and a relative age
    """
    decision = None
    if origin.decision is not None:
        decision = {
            "what": origin.decision.what,
            "why": origin.decision.why,
            "who": origin.decision.who,
        }
    return {
        "task_id": origin.task_id,
        "message_count": len(origin.messages),
        "recent_messages": [m.render() for m in origin.messages[-ORIGIN_RECENT_MESSAGES:]],
        "decision": decision,
        "age": format_relative_time(origin.created_at, now),
    }


def render_task_context(origin: "TaskOrigin", now: Optional[float] = None) -> str:
    """Prompt text describing where a ticket came from"""
    summary = render_task_origin_summary(origin, now)
    lines = [
        f"**Task #{origin.task_id} Origin:**",
        f"Created {summary['age']}",
    ]

    decision = summary["decision"]
    if decision:
        lines.append(f"**Decision:** {decision['what']}")
        if decision["why"]:
            lines.append(f"**Reason:** {decision['why']}")
        if decision["who"]:
            lines.append(f"**Decided by:** {decision['who']}")

    lines.append("\n**Origin Conversation:**")
    lines.extend(f"  {m}" for m in summary["recent_messages"])
    return "\n".join(lines)


def render_project_summary(project_name: str, context: "CrossChannelContext") -> str:
    lines = [f"**Project: {project_name}**\n", f"**Channels:** {len(context.channels)}"]
    lines.extend(f"  - {c.name}" for c in context.channels)

    lines.append(f"\n**Total Tasks:** {context.total_tasks}")
    lines.append("**Task Distribution:**")
    lines.extend(f"  - {channel}: {count} tasks" for channel, count in context.task_distribution.items())

    if context.trending_entities:
        lines.append("\n**Trending Topics:**")
        lines.extend(
            f"  - {e.entity}: {e.mentions} mentions across {e.channels} channel(s)"
            for e in context.trending_entities
        )
    return "\n".join(lines)


def render_decision_answers(decisions: List["Decision"]) -> str:
    return "\n".join(
        f"• {d.what}" + (f" (because {d.why})" if d.why else " (no reason recorded)")
        for d in decisions
    )


def render_staleness_answers(alerts: List["StalenessAlert"]) -> str:
    return "\n".join(f'• "{a.task}" ({a.hours_since_activity}h since last activity)' for a in alerts)


def render_discussion_answer(topic: Optional[str], focus: List["FocusEntry"]) -> str:
    response = ""
    if topic:
        response += f"**Topic:** {topic}\n"
    if focus:
        response += "**Focus:**\n"
        response += "".join(f"{line}\n" for line in _focus_lines(focus, bullet="•"))
    return response
