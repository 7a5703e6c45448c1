"""
Context Store

One container owning every per-channel, per-project and per-task sub-store
of the context engine. Components receive the store explicitly, so tests can
build isolated stores with their own clock and limits.

State is process-local and volatile by design.
"""

import time
from collections import deque
from typing import TYPE_CHECKING, Callable, Deque, Dict, List, Optional

from ..common.config import EngineConfig
from ..common.schemas import ConfidenceEntry, Decision, ScoredMessage, TaskOrigin
from .entities import EntityMap
from .project_memory import ProjectMemory

if TYPE_CHECKING:
    from .threads import Thread


class ContextStore:
    """
    In-memory arena for the context engine.

    Bounded: confidence trail and per-channel attention caches (deques).
    Unbounded until clear_channel(): threads, entity maps, decisions.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or EngineConfig()
        self._clock = clock

        self.threads: Dict[str, List["Thread"]] = {}
        self.entity_maps: Dict[str, EntityMap] = {}
        self.decisions: Dict[str, List[Decision]] = {}
        self.task_origins: Dict[str, TaskOrigin] = {}
        self.projects: Dict[str, ProjectMemory] = {}
        self.confidence_trail: Deque[ConfidenceEntry] = deque(maxlen=self.config.confidence_trail_size)
        self.attention_cache: Dict[str, Deque[ScoredMessage]] = {}

    def now(self) -> float:
        return self._clock()

    def entity_map(self, channel_id: str) -> EntityMap:
        entity_map = self.entity_maps.get(channel_id)
        if entity_map is None:
            entity_map = EntityMap(
                channel_id,
                focus_stack_size=self.config.focus_stack_size,
                clock=self._clock,
            )
            self.entity_maps[channel_id] = entity_map
        return entity_map

    def project(self, project_name: str) -> ProjectMemory:
        project = self.projects.get(project_name)
        if project is None:
            project = ProjectMemory(project_name, clock=self._clock)
            self.projects[project_name] = project
        return project

    def attention_cache_for(self, channel_id: str) -> Deque[ScoredMessage]:
        cache = self.attention_cache.get(channel_id)
        if cache is None:
            cache = deque(maxlen=self.config.attention_cache_size)
            self.attention_cache[channel_id] = cache
        return cache

    def channel_ids(self) -> List[str]:
        seen = dict.fromkeys([*self.threads, *self.entity_maps, *self.decisions, *self.attention_cache])
        return list(seen)

    def clear_channel(self, channel_id: str) -> None:
        """Drop threads, entities, decisions and attention cache of a channel"""
        self.threads.pop(channel_id, None)
        self.entity_maps.pop(channel_id, None)
        self.decisions.pop(channel_id, None)
        self.attention_cache.pop(channel_id, None)
