"""Pipeline orchestration: dump -> transcript -> thoughts -> storage.

Each dump moves through CREATED -> TRANSCRIBING (voice only) -> EXTRACTING ->
ITEMIZING -> PROCESSED. PROCESSED is always reached, whatever fails on the
way, so a dump is never picked up twice by the pipeline itself. The unit of
atomicity is the single thought (with its subtasks and embedding): one bad
item never blocks the rest of the dump.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, tzinfo
from enum import Enum
from typing import TYPE_CHECKING, Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..errors import ExtractionFailure, PersistenceFailure
from ..logging import JSONLLogger, get_logger
from ..thoughts.models import (
    TRANSCRIPTION_UNAVAILABLE,
    AnalyzedContent,
    DumpSource,
    MindDump,
    RawThought,
    SubtaskStub,
    Thought,
    ThoughtRelation,
    ThoughtType,
    ThoughtVector,
)
from ..thoughts.scoring import score
from ..timing import resolve, resurface_schedule_for_deadline

if TYPE_CHECKING:
    from ..extraction.extractor import ThoughtExtractor
    from ..thoughts.store import ThoughtStore

logger = logging.getLogger(__name__)

SUBTASK_RELATION = "subtask"


class DumpState(Enum):
    """Where a dump is in the pipeline."""

    CREATED = "created"
    TRANSCRIBING = "transcribing"
    EXTRACTING = "extracting"
    ITEMIZING = "itemizing"
    PROCESSED = "processed"


class Outcome(Enum):
    """How a pipeline run ended."""

    COMPLETE = "complete"
    TRANSCRIPTION_FAILED = "transcription_failed"
    EXTRACTION_FAILED = "extraction_failed"
    NO_THOUGHTS = "no_thoughts"
    ERROR = "error"


class Transcriber(Protocol):
    async def transcribe(self, audio_ref: str) -> str | None: ...


class Embedder(Protocol):
    async def embed(self, text: str) -> list[float] | None: ...


@dataclass
class SkippedItem:
    """An extracted item that did not become a thought."""

    index: int
    reason: str


@dataclass
class PipelineResult:
    """Result from processing one dump."""

    dump_id: str
    state: DumpState = DumpState.CREATED
    outcome: Outcome = Outcome.COMPLETE
    thoughts: list[Thought] = field(default_factory=list)
    subtasks: list[Thought] = field(default_factory=list)
    relations: list[ThoughtRelation] = field(default_factory=list)
    vectors: int = 0
    skipped: list[SkippedItem] = field(default_factory=list)
    analysis: AnalyzedContent | None = None
    error: str | None = None

    @property
    def all_thoughts(self) -> list[Thought]:
        """Top-level thoughts followed by their subtask thoughts."""
        return self.thoughts + self.subtasks


def utc_now() -> datetime:
    return datetime.now(UTC)


def materialize_subtask(parent: Thought, stub: SubtaskStub) -> Thought:
    """Build the child thought for a validated subtask stub.

    The child is always a task and shares owner, dump, importance, deadline
    and category with its parent.
    """
    as_item = RawThought(
        text=stub.text,
        type=ThoughtType.TASK,
        importance=parent.importance,
        deadline=parent.deadline,
        category=parent.category,
    )
    return Thought(
        dump_id=parent.dump_id,
        user_id=parent.user_id,
        text=stub.text,
        type=ThoughtType.TASK,
        importance=parent.importance,
        deadline=parent.deadline,
        category=parent.category,
        sentiment="neutral",
        confidence=score(as_item),
    )


class DumpPipeline:
    """Drives one dump at a time through transcription, extraction and storage.

    Collaborators are injected: the store, the extractor and optionally a
    transcriber (needed for voice dumps) and an embedder (vectors are skipped
    without one). The clock is injected too, and read once per run so every
    time-relative decision in a run agrees.
    """

    def __init__(
        self,
        store: ThoughtStore,
        extractor: ThoughtExtractor,
        transcriber: Transcriber | None = None,
        embedder: Embedder | None = None,
        *,
        timezone: str = "UTC",
        model_version: str | None = None,
        clock: Callable[[], datetime] = utc_now,
        event_logger: JSONLLogger | None = None,
    ) -> None:
        self.store = store
        self.extractor = extractor
        self.transcriber = transcriber
        self.embedder = embedder
        self.timezone = timezone
        self.model_version = model_version or extractor.model
        self.clock = clock
        self.events = event_logger or get_logger()
        self._tasks: set[asyncio.Task[PipelineResult]] = set()

    async def process(
        self,
        dump: MindDump,
        timezone: str | None = None,
        reference_now: datetime | None = None,
    ) -> PipelineResult:
        """Run the full pipeline for a persisted dump.

        Never raises for stage failures: they end up in the returned result
        and the dump is marked processed regardless.

        Args:
            dump: The dump, already stored (it must have an id).
            timezone: IANA timezone of the user. Defaults to the pipeline's.
            reference_now: The run's "now". Read from the clock if None.

        Returns:
            PipelineResult with the created records and the outcome.
        """
        if dump.id is None:
            raise ValueError("Dump must be stored before it can be processed")

        tz_name, zone = self._zone(timezone or self.timezone)
        now = (reference_now or self.clock()).astimezone(zone)

        result = PipelineResult(dump_id=dump.id)
        started = time.monotonic()
        self.events.log_pipeline_start(dump.id, dump.user_id, dump.source.value)

        try:
            transcript = await self._transcribe(dump, result)
            if transcript is not None:
                analysis = await self._extract(dump, transcript, tz_name, now, result)
                if analysis is not None:
                    result.state = DumpState.ITEMIZING
                    for index, item in enumerate(analysis.thoughts):
                        await self._itemize(dump, index, item, now, result)
        except Exception as e:
            logger.exception(f"Unexpected error processing dump {dump.id}")
            result.outcome = Outcome.ERROR
            result.error = str(e)

        self._finish(dump, result, started)
        return result

    def schedule(
        self,
        dump: MindDump,
        timezone: str | None = None,
        reference_now: datetime | None = None,
    ) -> asyncio.Task[PipelineResult]:
        """Start processing a dump in the background and return immediately.

        Must be called from a running event loop. The task is tracked until
        it finishes; `drain` waits for all tracked tasks.
        """
        task = asyncio.create_task(
            self.process(dump, timezone, reference_now),
            name=f"mindsift-dump-{dump.id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    @property
    def pending(self) -> int:
        """Number of scheduled runs still in flight."""
        return len(self._tasks)

    async def drain(self) -> list[PipelineResult]:
        """Wait for every scheduled run and return their results."""
        if not self._tasks:
            return []
        results = await asyncio.gather(*list(self._tasks), return_exceptions=True)
        return [r for r in results if isinstance(r, PipelineResult)]

    def _on_task_done(self, task: asyncio.Task[PipelineResult]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning(f"Pipeline task {task.get_name()} was cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Pipeline task {task.get_name()} failed: {exc!r}")

    def _zone(self, name: str) -> tuple[str, tzinfo]:
        try:
            return name, ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown timezone {name!r}, using UTC")
            return "UTC", UTC

    # Stages

    async def _transcribe(self, dump: MindDump, result: PipelineResult) -> str | None:
        """Return the text to extract from, transcribing voice dumps first."""
        if dump.source is not DumpSource.VOICE:
            return dump.raw_text or ""

        result.state = DumpState.TRANSCRIBING
        started = time.monotonic()
        transcript: str | None = None

        if self.transcriber is None:
            logger.warning(f"No transcriber configured for voice dump {dump.id}")
        elif not dump.audio_ref:
            logger.warning(f"Voice dump {dump.id} has no audio reference")
        else:
            try:
                transcript = await self.transcriber.transcribe(dump.audio_ref)
            except Exception as e:
                logger.warning(f"Transcriber raised for dump {dump.id}: {e}")

        if not transcript:
            result.outcome = Outcome.TRANSCRIPTION_FAILED
            result.error = "No usable transcript"
            self._update_dump(dump, raw_text=TRANSCRIPTION_UNAVAILABLE)
            self.events.log_stage(
                dump.id, DumpState.TRANSCRIBING.value,
                duration_ms=_elapsed_ms(started), error=result.error,
            )
            return None

        self._update_dump(dump, raw_text=transcript)
        self.events.log_stage(
            dump.id, DumpState.TRANSCRIBING.value, duration_ms=_elapsed_ms(started)
        )
        return transcript

    async def _extract(
        self,
        dump: MindDump,
        transcript: str,
        tz_name: str,
        now: datetime,
        result: PipelineResult,
    ) -> AnalyzedContent | None:
        result.state = DumpState.EXTRACTING
        started = time.monotonic()

        try:
            analysis = await self.extractor.extract(transcript, tz_name, now)
        except ExtractionFailure as e:
            logger.warning(f"Extraction failed for dump {dump.id}: {e}")
            result.outcome = Outcome.EXTRACTION_FAILED
            result.error = str(e)
            self.events.log_stage(
                dump.id, DumpState.EXTRACTING.value,
                duration_ms=_elapsed_ms(started), error=result.error,
            )
            return None

        result.analysis = analysis
        for discarded in analysis.discarded:
            self._skip(dump, result, discarded.index, discarded.reason)

        self.events.log_stage(
            dump.id, DumpState.EXTRACTING.value, duration_ms=_elapsed_ms(started)
        )

        if not analysis.thoughts:
            logger.info(f"No valid thoughts extracted from dump {dump.id}")
            result.outcome = Outcome.NO_THOUGHTS
            return None
        return analysis

    async def _itemize(
        self,
        dump: MindDump,
        index: int,
        item: RawThought,
        now: datetime,
        result: PipelineResult,
    ) -> None:
        """Persist one item with its subtasks and embedding."""
        deadline = item.deadline.astimezone(now.tzinfo) if item.deadline else None

        thought = Thought(
            dump_id=dump.id,  # type: ignore[arg-type]
            user_id=dump.user_id,
            text=item.text,
            type=item.type,
            importance=item.importance,
            deadline=deadline,
            estimated_minutes=item.estimated_minutes,
            category=item.category,
            next_action=item.next_action,
            sentiment=item.sentiment,
            resurface_at=self._resurface_at(item, deadline, now),
            confidence=score(item),
        )

        try:
            parent = self.store.insert_thought(thought)
        except PersistenceFailure as e:
            logger.warning(f"Failed to persist thought {index} of dump {dump.id}: {e}")
            self._skip(dump, result, index, f"persistence failed: {e}")
            return

        result.thoughts.append(parent)

        for stub in item.subtasks or ():
            self._persist_subtask(parent, stub, result)

        await self._embed(parent, result)

    def _resurface_at(
        self, item: RawThought, deadline: datetime | None, now: datetime
    ) -> datetime | None:
        if item.resurface_timing:
            return resolve(item.resurface_timing, now, deadline)
        if deadline is not None:
            schedule = resurface_schedule_for_deadline(deadline, now)
            return schedule[0] if schedule else None
        return None

    def _persist_subtask(
        self, parent: Thought, stub: SubtaskStub, result: PipelineResult
    ) -> None:
        try:
            child = self.store.insert_thought(materialize_subtask(parent, stub))
        except PersistenceFailure as e:
            logger.warning(f"Failed to persist subtask {stub.order} of thought {parent.id}: {e}")
            return

        result.subtasks.append(child)

        relation = ThoughtRelation(
            parent_id=parent.id,  # type: ignore[arg-type]
            child_id=child.id,  # type: ignore[arg-type]
            relation=SUBTASK_RELATION,
        )
        try:
            result.relations.append(self.store.insert_relation(relation))
        except PersistenceFailure as e:
            logger.warning(f"Failed to link subtask {child.id} to {parent.id}: {e}")

    async def _embed(self, thought: Thought, result: PipelineResult) -> None:
        if self.embedder is None:
            return

        try:
            vector = await self.embedder.embed(thought.text)
        except Exception as e:
            logger.debug(f"Embedding failed for thought {thought.id}: {e}")
            return

        if vector is None:
            return

        try:
            self.store.insert_vector(ThoughtVector(thought_id=thought.id, embedding=vector))  # type: ignore[arg-type]
            result.vectors += 1
        except PersistenceFailure as e:
            logger.warning(f"Failed to persist vector for thought {thought.id}: {e}")

    def _finish(self, dump: MindDump, result: PipelineResult, started: float) -> None:
        """Mark the dump processed and record the end of the run."""
        result.state = DumpState.PROCESSED
        self._update_dump(dump, processed=True, model_version=self.model_version)
        self.events.log_pipeline_end(
            dump.id,  # type: ignore[arg-type]
            result.outcome.value,
            thoughts=len(result.all_thoughts),
            skipped=len(result.skipped),
            duration_ms=_elapsed_ms(started),
        )

    def _update_dump(self, dump: MindDump, **fields: object) -> None:
        try:
            self.store.update_dump(dump.id, **fields)  # type: ignore[arg-type]
        except PersistenceFailure as e:
            logger.error(f"Failed to update dump {dump.id}: {e}")

    def _skip(self, dump: MindDump, result: PipelineResult, index: int, reason: str) -> None:
        result.skipped.append(SkippedItem(index=index, reason=reason))
        self.events.log_item_skipped(dump.id, index, reason)  # type: ignore[arg-type]


def _elapsed_ms(started: float) -> float:
    return round((time.monotonic() - started) * 1000, 2)
