"""
Threadsmith Context Engine

Thread segmentation, entity resolution, attention scoring, decision
tracking, temporal analysis, task-origin linking, cross-channel project
memory and the confidence trail, composed by ContextEngine.
"""

from .attention import AttentionScorer, calculate_attention_score
from .confidence import ConfidenceAdjustment, ConfidenceAnalysis, ConfidenceTrail, extract_patterns
from .decisions import DecisionRecorder
from .engine import ContextEngine, EnrichedContext
from .entities import EntityMap, ExtractedEntities, extract_entities, resolve_pronouns
from .project_memory import CrossChannelContext, CrossChannelMemory, ProjectMemory
from .queries import QueryIntent, route_query
from .store import ContextStore
from .task_links import OriginMatch, TaskOriginLinker
from .temporal import TemporalAnalyzer, TemporalPatterns, extract_time_context
from .threads import Thread, ThreadSegmenter, detect_topic_change

__all__ = [
    "AttentionScorer",
    "calculate_attention_score",
    "ConfidenceAdjustment",
    "ConfidenceAnalysis",
    "ConfidenceTrail",
    "extract_patterns",
    "DecisionRecorder",
    "ContextEngine",
    "EnrichedContext",
    "EntityMap",
    "ExtractedEntities",
    "extract_entities",
    "resolve_pronouns",
    "CrossChannelContext",
    "CrossChannelMemory",
    "ProjectMemory",
    "QueryIntent",
    "route_query",
    "ContextStore",
    "OriginMatch",
    "TaskOriginLinker",
    "TemporalAnalyzer",
    "TemporalPatterns",
    "extract_time_context",
    "Thread",
    "ThreadSegmenter",
    "detect_topic_change",
]
