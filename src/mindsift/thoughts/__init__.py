"""Thought records, scoring and storage."""

from .models import (
    AnalyzedContent,
    DiscardedItem,
    DumpSource,
    Importance,
    MindDump,
    RawThought,
    SubtaskStub,
    Thought,
    ThoughtRelation,
    ThoughtStatus,
    ThoughtType,
    ThoughtVector,
)
from .scoring import score
from .store import SQLiteThoughtStore, ThoughtStore

__all__ = [
    "AnalyzedContent",
    "DiscardedItem",
    "DumpSource",
    "Importance",
    "MindDump",
    "RawThought",
    "SQLiteThoughtStore",
    "SubtaskStub",
    "Thought",
    "ThoughtRelation",
    "ThoughtStatus",
    "ThoughtStore",
    "ThoughtType",
    "ThoughtVector",
    "score",
]
