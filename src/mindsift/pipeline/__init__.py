"""Pipeline orchestration and capture."""

from .capture import CaptureReceipt, DumpCapture, summarize_result
from .orchestrator import (
    DumpPipeline,
    DumpState,
    Outcome,
    PipelineResult,
    SkippedItem,
    materialize_subtask,
)

__all__ = [
    "CaptureReceipt",
    "DumpCapture",
    "DumpPipeline",
    "DumpState",
    "Outcome",
    "PipelineResult",
    "SkippedItem",
    "materialize_subtask",
    "summarize_result",
]
