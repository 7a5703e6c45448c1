"""
Entity Resolver

Per-channel registry of people, tasks and features mentioned in conversation,
plus a recency-ranked focus stack used to resolve pronouns ("it", "they")
and vague references ("the bug") to the entity most recently discussed.

Extraction is regex-based (not a parser) and deliberately generous: every
candidate is a guess, and the focus stack only ever ranks by recency.
"""

import logging
import re
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple, Union

from ..common.patterns import PatternMatcher, PatternRule
from ..common.schemas import EntityType, FocusEntry, TaskStatus, coerce_enum

logger = logging.getLogger("threadsmith.context.entities")

DEFAULT_FOCUS_STACK_SIZE = 10
TASK_KEY_LENGTH = 50

# Function words that are never person candidates
STOP_WORDS = {
    "the", "and", "are", "was", "were", "been", "being", "have", "has", "had",
    "does", "did", "will", "would", "could", "should", "may", "might", "must",
    "shall", "can", "need", "for", "from", "with", "about", "into", "over",
    "after", "our", "you", "your", "its", "they", "them", "their", "this",
    "that", "these", "those", "what", "which", "who", "whom", "when", "where",
    "why", "how", "but", "because", "until", "while", "although", "though",
    "even", "just", "also", "not", "all", "any", "some", "then", "than",
    "there", "here", "she", "him", "her", "his", "let", "lets",
}

PERSON_RULES = PatternMatcher([
    PatternRule.compile("mention_or_word", r"@?(\w+)"),
])

TASK_RULES = PatternMatcher([
    PatternRule.compile("fix", r"\b(?:fix|fixing|fixes)\s+(?:the\s+)?(\w+(?:\s+\w+)?)"),
    PatternRule.compile("implement", r"\b(?:implement|implementing)\s+(?:the\s+)?(\w+(?:\s+\w+)?)"),
    PatternRule.compile("bug_in", r"\b(?:bug|issue)\s+(?:with\s+|in\s+)?(?:the\s+)?(\w+(?:\s+\w+)?)"),
])

FEATURE_RULES = PatternMatcher([
    PatternRule.compile("capitalized_run", r"\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)+", flags=0),
])

# Surface reference -> kind(s) of entity it can point at
REFERENCE_KINDS: Dict[str, Tuple[EntityType, ...]] = {
    "he": (EntityType.PERSON,),
    "she": (EntityType.PERSON,),
    "they": (EntityType.PERSON,),
    "it": (EntityType.TASK, EntityType.FEATURE),
    "that": (EntityType.TASK, EntityType.FEATURE),
    "this": (EntityType.TASK, EntityType.FEATURE),
    "the issue": (EntityType.TASK,),
    "the bug": (EntityType.TASK,),
    "the task": (EntityType.TASK,),
    "the feature": (EntityType.FEATURE,),
}

PRONOUNS = ("he", "she", "they", "it", "that", "this")
_PRONOUN_RES = {p: re.compile(rf"\b{p}\b", re.IGNORECASE) for p in PRONOUNS}


@dataclass
class ExtractedEntities:
    """Raw entity candidates found in a single message"""
    people: List[str] = field(default_factory=list)
    tasks: List[str] = field(default_factory=list)
    features: List[str] = field(default_factory=list)
    concepts: List[str] = field(default_factory=list)

    def all(self) -> List[str]:
        return [*self.people, *self.tasks, *self.features, *self.concepts]

    def is_empty(self) -> bool:
        return not self.all()


@dataclass
class EntityRecord:
    """Registry entry for one entity; kind-specific fields stay None elsewhere"""
    type: EntityType
    name: str
    mentions: int = 0
    last_mention: Optional[float] = None
    github: Optional[str] = None           # person
    title: Optional[str] = None            # task
    task_id: Optional[str] = None          # task
    status: Optional[Union[TaskStatus, str]] = None  # task; unknown tracker statuses kept verbatim
    related_tasks: List[str] = field(default_factory=list)  # feature


def _is_person_candidate(token: str) -> bool:
    return len(token) > 2 and not token.isdigit() and token.lower() not in STOP_WORDS


def extract_entities(content: str) -> ExtractedEntities:
    """
    Find entity candidates in a message. Pure: touches no registry.

    Args:
        content: Raw message text

    Returns:
        ExtractedEntities with people, tasks and features in textual order
        (per rule). Concepts are reserved and always empty.
    """
    if not content or not content.strip():
        return ExtractedEntities()

    people = [t for t in PERSON_RULES.find_all(content) if _is_person_candidate(t)]
    tasks = [t.strip() for t in TASK_RULES.find_all(content)]
    features = FEATURE_RULES.find_all(content)

    return ExtractedEntities(people=people, tasks=tasks, features=features)


class EntityMap:
    """
    Entity registry and focus stack for one channel.

    The focus stack is most-recent-first, capped, and never holds the same
    (type, name) twice: re-mentioning an entity moves it to the front.
    """

    def __init__(
        self,
        channel_id: str,
        focus_stack_size: int = DEFAULT_FOCUS_STACK_SIZE,
        clock: Callable[[], float] = time.time,
    ):
        self.channel_id = channel_id
        self.people: Dict[str, EntityRecord] = {}
        self.tasks: Dict[str, EntityRecord] = {}
        self.features: Dict[str, EntityRecord] = {}
        self.concepts: Dict[str, EntityRecord] = {}
        self.focus_stack: List[FocusEntry] = []
        self._focus_stack_size = focus_stack_size
        self._clock = clock
        self.last_updated = clock()

    def _touch(self, registry: Dict[str, EntityRecord], key: str, kind: EntityType) -> EntityRecord:
        now = self._clock()
        record = registry.get(key)
        if record is None:
            record = EntityRecord(type=kind, name=key)
            registry[key] = record
        record.mentions += 1
        record.last_mention = now
        self.last_updated = now
        return record

    def add_person(self, name: str, github: Optional[str] = None) -> EntityRecord:
        normalized = name.lower().replace("@", "")
        record = self._touch(self.people, normalized, EntityType.PERSON)
        if github:
            record.github = github
        self.push_to_focus_stack(EntityType.PERSON, normalized)
        return record

    def add_task(
        self,
        title: str,
        task_id: Optional[str] = None,
        status: Union[TaskStatus, str, None] = None,
    ) -> EntityRecord:
        normalized = title.lower()[:TASK_KEY_LENGTH]
        record = self._touch(self.tasks, normalized, EntityType.TASK)
        record.title = title
        if task_id:
            record.task_id = task_id
        status = coerce_enum(TaskStatus, status)
        if status is not None:
            record.status = status
        elif record.status is None:
            record.status = TaskStatus.MENTIONED
        self.push_to_focus_stack(EntityType.TASK, normalized, title=title)
        return record

    def add_feature(self, name: str) -> EntityRecord:
        record = self._touch(self.features, name, EntityType.FEATURE)
        self.push_to_focus_stack(EntityType.FEATURE, name)
        return record

    def register(self, entities: ExtractedEntities) -> None:
        """Register every candidate: people, then tasks, then features"""
        for person in entities.people:
            self.add_person(person)
        for task in entities.tasks:
            self.add_task(task)
        for feature in entities.features:
            self.add_feature(feature)

    def update_task_status(self, task_id: str, status: Union[TaskStatus, str]) -> bool:
        """Set the status of the task entity bound to task_id; False if unknown or blank"""
        status = coerce_enum(TaskStatus, status)
        record = self.find_task_by_id(task_id)
        if record is None or status is None:
            return False
        record.status = status
        self.last_updated = self._clock()
        return True

    def find_task_by_id(self, task_id: str) -> Optional[EntityRecord]:
        for record in self.tasks.values():
            if record.task_id == task_id:
                return record
        return None

    def push_to_focus_stack(self, kind: EntityType, name: str, title: Optional[str] = None) -> None:
        self.focus_stack = [
            e for e in self.focus_stack if not (e.type == kind and e.name == name)
        ]
        self.focus_stack.insert(0, FocusEntry(type=kind, name=name, title=title, timestamp=self._clock()))
        del self.focus_stack[self._focus_stack_size:]

    def resolve_reference(self, reference: str) -> Optional[FocusEntry]:
        """
        Resolve a pronoun or vague reference to the most recent matching entity.

        Args:
            reference: "he", "it", "the bug", ...

        Returns:
            First focus-stack entry of the referenced kind, or None
        """
        kinds = REFERENCE_KINDS.get(reference.strip().lower())
        if not kinds:
            return None
        for entry in self.focus_stack:
            if entry.type in kinds:
                return entry
        return None

    def get_current_focus(self, limit: int = 3) -> List[FocusEntry]:
        return self.focus_stack[:limit]

    def counts(self) -> Dict[str, int]:
        return {
            "people": len(self.people),
            "tasks": len(self.tasks),
            "features": len(self.features),
            "focus_stack_size": len(self.focus_stack),
        }


def resolve_pronouns(content: str, entity_map: EntityMap) -> Dict[str, FocusEntry]:
    """Map each pronoun used in the message to the entity it most likely means"""
    resolved: Dict[str, FocusEntry] = {}
    if not content:
        return resolved
    for pronoun in PRONOUNS:
        if _PRONOUN_RES[pronoun].search(content):
            entry = entity_map.resolve_reference(pronoun)
            if entry is not None:
                resolved[pronoun] = entry
    return resolved
