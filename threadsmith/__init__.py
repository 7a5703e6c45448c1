"""
Threadsmith

Conversation-context engine for a chat-to-ticket bot.

Turns a raw stream of short channel messages into thread-segmented,
entity-resolved, decision-annotated and temporally-aware context that
drives pronoun resolution and grounds ticket extraction prompts.

Philosophy:
- State is process-local and volatile
- Heuristics are best-effort regex rules, each one swappable
- The engine never raises on malformed input

Usage:
    from threadsmith.context import ContextEngine
    from threadsmith.common import load_config
    from threadsmith.common.schemas import Decision, TaskOrigin
"""

__version__ = "0.1.0"
