"""
Cross-Channel Project Memory

Aggregates entity and task activity across every channel that declares the
same project name, so "what's trending" can be answered project-wide.

Built incrementally: each sync folds one channel's EntityMap snapshot in.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Set

from ..common.schemas import TaskStatus, coerce_enum
from .entities import EntityMap

if TYPE_CHECKING:
    from .store import ContextStore

logger = logging.getLogger("threadsmith.context.project_memory")


@dataclass
class ChannelInfo:
    channel_id: str
    name: str
    purpose: Optional[str] = None
    registered_at: float = 0.0


@dataclass
class SharedEntity:
    channels: Set[str] = field(default_factory=set)
    mentions: int = 0


@dataclass
class ProjectTask:
    channel_id: str
    status: str
    added_at: float
    updated_at: Optional[float] = None


@dataclass
class TrendingEntity:
    entity: str
    mentions: int
    channels: int


@dataclass
class CrossChannelContext:
    channels: List[ChannelInfo] = field(default_factory=list)
    trending_entities: List[TrendingEntity] = field(default_factory=list)
    task_distribution: Dict[str, int] = field(default_factory=dict)
    total_tasks: int = 0


class ProjectMemory:
    """Shared memory for one declared project"""

    def __init__(self, project_name: str, clock: Callable[[], float]):
        self.project_name = project_name
        self.channels: Dict[str, ChannelInfo] = {}
        self.shared_entities: Dict[str, SharedEntity] = {}
        self.active_tasks: Dict[str, ProjectTask] = {}
        self._clock = clock
        self.last_synced = clock()

    def register_channel(self, channel_id: str, name: Optional[str] = None, purpose: Optional[str] = None) -> ChannelInfo:
        """Register a channel once; later calls may only fill in name/purpose"""
        info = self.channels.get(channel_id)
        if info is None:
            info = ChannelInfo(
                channel_id=channel_id,
                name=name or channel_id,
                purpose=purpose,
                registered_at=self._clock(),
            )
            self.channels[channel_id] = info
            logger.info("Project %s: registered channel %s", self.project_name, channel_id)
        else:
            if name:
                info.name = name
            if purpose:
                info.purpose = purpose
        return info

    def add_cross_channel_entity(self, entity_key: str, channel_id: str) -> None:
        shared = self.shared_entities.setdefault(entity_key, SharedEntity())
        shared.channels.add(channel_id)
        shared.mentions += 1

    def add_task(self, task_id: str, channel_id: str, status: Any = TaskStatus.MENTIONED) -> None:
        existing = self.active_tasks.get(task_id)
        if existing is not None:
            existing.channel_id = channel_id
            existing.status = _status_value(status)
            return
        self.active_tasks[task_id] = ProjectTask(
            channel_id=channel_id,
            status=_status_value(status),
            added_at=self._clock(),
        )

    def update_task_status(self, task_id: str, status: Any) -> bool:
        status = coerce_enum(TaskStatus, status)
        task = self.active_tasks.get(task_id)
        if task is None or status is None:
            return False
        task.status = _status_value(status)
        task.updated_at = self._clock()
        return True

    def get_task_distribution(self) -> Dict[str, int]:
        distribution: Dict[str, int] = {}
        for task in self.active_tasks.values():
            distribution[task.channel_id] = distribution.get(task.channel_id, 0) + 1
        return distribution

    def get_trending_entities(self, limit: int = 5) -> List[TrendingEntity]:
        # sorted() is stable: equal counts keep insertion order
        ranked = sorted(self.shared_entities.items(), key=lambda item: item[1].mentions, reverse=True)
        return [
            TrendingEntity(entity=key, mentions=shared.mentions, channels=len(shared.channels))
            for key, shared in ranked[:limit]
        ]


def _status_value(status: Any) -> str:
    return status.value if isinstance(status, TaskStatus) else str(status)


class CrossChannelMemory:
    """Project memory operations over the store's project table"""

    def __init__(self, store: "ContextStore"):
        self._store = store

    def get_project_memory(self, project_name: str) -> ProjectMemory:
        return self._store.project(project_name)

    def sync_channel_to_project(self, project_name: str, channel_id: str, entity_map: EntityMap) -> ProjectMemory:
        """
        Fold a channel's entities into the project's shared-entity table.

        Registering the channel is idempotent; entity mention counters grow
        on every sync.
        """
        project = self.get_project_memory(project_name)
        project.register_channel(channel_id)

        for name in entity_map.people:
            project.add_cross_channel_entity(f"person:{name}", channel_id)
        for title, record in entity_map.tasks.items():
            project.add_cross_channel_entity(f"task:{title}", channel_id)
            if record.task_id:
                project.add_task(record.task_id, channel_id, record.status or TaskStatus.MENTIONED)
        for name in entity_map.features:
            project.add_cross_channel_entity(f"feature:{name}", channel_id)

        project.last_synced = self._store.now()
        logger.debug(
            "Synced channel %s into project %s (%d shared entities)",
            channel_id, project_name, len(project.shared_entities),
        )
        return project

    def get_cross_channel_context(self, project_name: str) -> CrossChannelContext:
        project = self.get_project_memory(project_name)
        return CrossChannelContext(
            channels=list(project.channels.values()),
            trending_entities=project.get_trending_entities(self._store.config.trending_limit),
            task_distribution=project.get_task_distribution(),
            total_tasks=len(project.active_tasks),
        )

    def update_task_status(self, project_name: str, task_id: str, status: Any) -> bool:
        return self.get_project_memory(project_name).update_task_status(task_id, status)
