"""Capture entry point: store the raw dump, hand it to the pipeline, reply fast."""

import asyncio
import logging
from dataclasses import dataclass

from ..thoughts.models import TRANSCRIBING_PLACEHOLDER, DumpSource, MindDump, ThoughtType
from ..thoughts.store import ThoughtStore
from .orchestrator import DumpPipeline, PipelineResult

logger = logging.getLogger(__name__)

ACKNOWLEDGEMENT = "Got it! Sorting through your thoughts now."
NOTHING_FOUND = "I saved your dump, but couldn't find any tasks or notes in it."


@dataclass
class CaptureReceipt:
    """What the caller gets back right after a capture.

    Attributes:
        dump: The stored dump (placeholder text for voice dumps).
        task: Background pipeline run for the dump.
        acknowledgement: Reply to show the user immediately.
    """

    dump: MindDump
    task: asyncio.Task[PipelineResult]
    acknowledgement: str = ACKNOWLEDGEMENT


class DumpCapture:
    """Creates dumps and schedules them without waiting for the pipeline.

    Must be used from a running event loop since every capture starts a
    background task.
    """

    def __init__(self, store: ThoughtStore, pipeline: DumpPipeline) -> None:
        self.store = store
        self.pipeline = pipeline

    def capture_text(
        self,
        user_id: str,
        text: str,
        source: DumpSource = DumpSource.TEXT,
        timezone: str | None = None,
    ) -> CaptureReceipt:
        """Store a typed (or imported) dump and start processing it."""
        if not text or not text.strip():
            raise ValueError("Nothing to capture: text is empty")
        if source is DumpSource.VOICE:
            raise ValueError("Use capture_voice for voice dumps")

        dump = self.store.create_dump(
            MindDump(user_id=user_id, source=source, raw_text=text.strip())
        )
        return self._schedule(dump, timezone)

    def capture_voice(
        self,
        user_id: str,
        audio_ref: str,
        timezone: str | None = None,
    ) -> CaptureReceipt:
        """Store a voice dump with a placeholder transcript and start processing it."""
        if not audio_ref:
            raise ValueError("Nothing to capture: audio reference is empty")

        dump = self.store.create_dump(
            MindDump(
                user_id=user_id,
                source=DumpSource.VOICE,
                raw_text=TRANSCRIBING_PLACEHOLDER,
                audio_ref=audio_ref,
            )
        )
        return self._schedule(dump, timezone)

    def _schedule(self, dump: MindDump, timezone: str | None) -> CaptureReceipt:
        logger.info(f"Captured {dump.source.value} dump {dump.id} for user {dump.user_id}")
        task = self.pipeline.schedule(dump, timezone=timezone)
        return CaptureReceipt(dump=dump, task=task)


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def summarize_result(result: PipelineResult) -> str:
    """Build the confirmation reply for a finished pipeline run.

    Tasks, reminders and events count as tasks; reflections, ideas and
    questions count as notes. Subtasks are not counted separately.
    """
    tasks = sum(
        1 for t in result.thoughts
        if t.type.is_actionable or t.type is ThoughtType.EVENT
    )
    notes = sum(1 for t in result.thoughts if t.type.is_note)

    if tasks == 0 and notes == 0:
        return NOTHING_FOUND

    parts = []
    if tasks:
        parts.append(_plural(tasks, "task"))
    if notes:
        parts.append(_plural(notes, "note"))

    return f"Got it! I've captured {' and '.join(parts)} for you. 💙"
