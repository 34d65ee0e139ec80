"""Data models for dumps, thoughts and their derived records."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

TRANSCRIBING_PLACEHOLDER = "[Transcribing...]"
TRANSCRIPTION_UNAVAILABLE = "[Voice recording - Transcription unavailable]"


class DumpSource(Enum):
    """How a mind dump was captured."""

    VOICE = "voice"
    TEXT = "text"
    IMPORTED = "imported"


class ThoughtType(Enum):
    """Tag of an extracted thought.

    The UI partitions on this value: task/reminder are shown in the task
    list, reflection/idea/question as notes.
    """

    TASK = "task"
    IDEA = "idea"
    REMINDER = "reminder"
    REFLECTION = "reflection"
    QUESTION = "question"
    EVENT = "event"

    @property
    def is_actionable(self) -> bool:
        return self in (ThoughtType.TASK, ThoughtType.REMINDER)

    @property
    def is_note(self) -> bool:
        return self in (ThoughtType.REFLECTION, ThoughtType.IDEA, ThoughtType.QUESTION)


class Importance(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ThoughtStatus(Enum):
    OPEN = "open"
    DONE = "done"
    SNOOZED = "snoozed"
    ARCHIVED = "archived"


@dataclass(frozen=True)
class MindDump:
    """One raw capture event.

    Attributes:
        user_id: Owner of the dump.
        source: voice, text or imported.
        raw_text: Transcript or typed text. A placeholder for voice dumps
            until transcription completes.
        audio_ref: URL or path of the recording, voice dumps only.
        processed: True once the pipeline reached its terminal state.
        model_version: Extraction model that processed the dump.
        id: Store-assigned id, None for new dumps.
        created_at: Capture time.
    """

    user_id: str
    source: DumpSource
    raw_text: str | None = None
    audio_ref: str | None = None
    processed: bool = False
    model_version: str | None = None
    id: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class SubtaskStub:
    """A model-suggested micro-step, not yet a persisted thought."""

    text: str
    order: int


@dataclass(frozen=True)
class RawThought:
    """One validated item from the model output, before resolution.

    `resurface_timing` is whatever the model suggested: an ISO timestamp or
    a relative phrase such as "tomorrow morning".
    """

    text: str
    type: ThoughtType
    importance: Importance | None
    deadline: datetime | None = None
    estimated_minutes: int | None = None
    category: str = ""
    next_action: str | None = None
    related: tuple[int, ...] = ()
    resurface_timing: str | None = None
    sentiment: str = "neutral"
    subtasks: tuple[SubtaskStub, ...] | None = None


@dataclass(frozen=True)
class DiscardedItem:
    """An item rejected during validation, kept for diagnostics."""

    index: int
    reason: str
    payload: Any = None


@dataclass
class AnalyzedContent:
    """Parsed extraction output for one dump."""

    summary: str = ""
    priorities: list[str] = field(default_factory=list)
    insights: str = ""
    thoughts: list[RawThought] = field(default_factory=list)
    discarded: list[DiscardedItem] = field(default_factory=list)


@dataclass(frozen=True)
class Thought:
    """A normalized unit extracted from a dump."""

    dump_id: str
    user_id: str
    text: str
    type: ThoughtType
    importance: Importance | None = None
    deadline: datetime | None = None
    estimated_minutes: int | None = None
    category: str = ""
    next_action: str | None = None
    sentiment: str = "neutral"
    resurface_at: datetime | None = None
    confidence: float = 0.5
    status: ThoughtStatus = ThoughtStatus.OPEN
    id: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class ThoughtRelation:
    """Directed edge between two thoughts."""

    parent_id: str
    child_id: str
    relation: str = "subtask"


@dataclass(frozen=True)
class ThoughtVector:
    """Embedding of a single thought's text."""

    thought_id: str
    embedding: list[float]
