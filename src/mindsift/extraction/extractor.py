"""Thought extraction from dump transcripts using an LLM."""

import json
import logging
from datetime import datetime, tzinfo
from typing import Any

from ..errors import ExtractionFailure, ItemValidationFailure
from ..thoughts.models import (
    AnalyzedContent,
    DiscardedItem,
    Importance,
    RawThought,
    SubtaskStub,
    ThoughtType,
)
from ..timing import parse_timestamp
from .llm_client import LLMClient
from .prompt import SYSTEM_PROMPT, build_user_prompt

logger = logging.getLogger(__name__)

MAX_PRIORITIES = 3
MAX_MINUTES = 7 * 24 * 60


class ThoughtExtractor:
    """Decomposes a transcript into validated raw thoughts."""

    def __init__(self, llm: LLMClient, temperature: float = 0.7) -> None:
        """Initialize the extractor.

        Args:
            llm: Client used for the completion call.
            temperature: Sampling temperature for extraction.
        """
        self.llm = llm
        self.temperature = temperature

    @property
    def model(self) -> str:
        """Model that produces the extractions."""
        return self.llm.model

    async def extract(
        self, transcript: str, timezone: str, reference_now: datetime
    ) -> AnalyzedContent:
        """Extract thoughts from a transcript.

        Args:
            transcript: The dump text.
            timezone: IANA timezone of the user.
            reference_now: The time relative dates are resolved against.

        Returns:
            Parsed content with valid items and a log of discarded ones.

        Raises:
            ExtractionFailure: If the call fails or the response is unusable.
        """
        if not transcript or not transcript.strip():
            raise ExtractionFailure("Empty transcript")

        user_prompt = build_user_prompt(transcript, timezone, reference_now)

        try:
            content = await self.llm.complete(
                SYSTEM_PROMPT,
                user_prompt,
                response_format="json",
                temperature=self.temperature,
            )
        except Exception as e:
            raise ExtractionFailure(f"Model call failed: {e}") from e

        return parse_response(content, reference_now.tzinfo)


def _strip_code_fence(content: str) -> str:
    """Remove a markdown code block wrapped around the JSON, if any."""
    text = content.strip()
    if not text.startswith("```"):
        return text
    lines = [line for line in text.split("\n") if not line.startswith("```")]
    return "\n".join(lines)


def parse_response(content: str, default_tz: tzinfo | None = None) -> AnalyzedContent:
    """Parse a raw model response into AnalyzedContent.

    Items are validated one by one: invalid items land in `discarded`
    instead of failing the whole response.

    Args:
        content: The raw LLM response.
        default_tz: Zone for deadlines given without an offset.

    Returns:
        The parsed content.

    Raises:
        ExtractionFailure: If the response is empty, not a JSON object, or
            has no `thoughts` list.
    """
    if not content or not content.strip():
        raise ExtractionFailure("No content in model response")

    try:
        data = json.loads(_strip_code_fence(content))
    except json.JSONDecodeError as e:
        raise ExtractionFailure(f"Failed to parse model response: {e}") from e

    if not isinstance(data, dict):
        raise ExtractionFailure("Invalid response structure: expected a JSON object")

    items = data.get("thoughts")
    if not isinstance(items, list):
        raise ExtractionFailure("Invalid response structure: missing 'thoughts' list")

    result = AnalyzedContent(
        summary=_as_text(data.get("summary")),
        priorities=_as_priorities(data.get("priorities")),
        insights=_as_text(data.get("insights")),
    )

    for index, item in enumerate(items):
        try:
            result.thoughts.append(validate_item(index, item, len(items), default_tz))
        except ItemValidationFailure as e:
            logger.warning(f"Skipping invalid thought: {e}")
            result.discarded.append(DiscardedItem(index=index, reason=e.reason, payload=item))

    return result


def validate_item(
    index: int,
    item: Any,
    item_count: int,
    default_tz: tzinfo | None = None,
) -> RawThought:
    """Validate one raw item from the model output.

    Args:
        index: Position of the item in the `thoughts` list.
        item: The decoded JSON value.
        item_count: Length of the list, bounds the `related` indices.
        default_tz: Zone for deadlines given without an offset.

    Returns:
        The validated RawThought.

    Raises:
        ItemValidationFailure: If a required field is missing or invalid.
    """
    if not isinstance(item, dict):
        raise ItemValidationFailure(index, "item is not an object")

    text = item.get("thought_text")
    if not isinstance(text, str) or not text.strip():
        raise ItemValidationFailure(index, "missing thought_text")

    thought_type = _as_enum(ThoughtType, item.get("type"))
    if thought_type is None:
        raise ItemValidationFailure(index, f"invalid type {item.get('type')!r}")
    # Reminders are always actionable
    if thought_type is ThoughtType.REMINDER:
        thought_type = ThoughtType.TASK

    importance = _as_enum(Importance, item.get("importance"))
    if importance is None:
        raise ItemValidationFailure(index, f"invalid importance {item.get('importance')!r}")

    timing = item.get("resurface_timing")

    return RawThought(
        text=text.strip(),
        type=thought_type,
        importance=importance,
        deadline=parse_timestamp(item.get("deadline"), default_tz),
        estimated_minutes=_as_minutes(item.get("time_needed_minutes")),
        category=_as_text(item.get("category")),
        next_action=_as_text(item.get("next_action")) or None,
        related=_as_related(item.get("related"), index, item_count),
        resurface_timing=timing.strip() if isinstance(timing, str) and timing.strip() else None,
        sentiment=_as_text(item.get("sentiment")) or "neutral",
        subtasks=_as_subtasks(item.get("subtasks"), index),
    )


def _as_enum(enum_cls: Any, value: Any) -> Any:
    if not isinstance(value, str):
        return None
    try:
        return enum_cls(value.strip().lower())
    except ValueError:
        return None


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _as_priorities(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    priorities = [str(p).strip() for p in value if p is not None and str(p).strip()]
    return priorities[:MAX_PRIORITIES]


def _as_minutes(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        minutes = int(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return minutes if 0 <= minutes <= MAX_MINUTES else None


def _as_related(value: Any, index: int, item_count: int) -> tuple[int, ...]:
    if not isinstance(value, list):
        return ()
    related = []
    for ref in value:
        try:
            ref = int(ref)
        except (TypeError, ValueError, OverflowError):
            continue
        if 0 <= ref < item_count and ref != index and ref not in related:
            related.append(ref)
    return tuple(related)


def _as_subtasks(value: Any, index: int) -> tuple[SubtaskStub, ...] | None:
    """Validate subtask stubs, dropping the malformed ones."""
    if not isinstance(value, list):
        return None

    stubs = []
    for stub in value:
        if not isinstance(stub, dict):
            logger.warning(f"Skipping invalid subtask on item {index}: {stub!r}")
            continue
        text = stub.get("text")
        order = stub.get("order")
        if (
            not isinstance(text, str)
            or not text.strip()
            or isinstance(order, bool)
            or not isinstance(order, int)
            or order < 1
        ):
            logger.warning(f"Skipping invalid subtask on item {index}: {stub!r}")
            continue
        stubs.append(SubtaskStub(text=text.strip(), order=order))

    if not stubs:
        return None
    return tuple(sorted(stubs, key=lambda s: s.order))
