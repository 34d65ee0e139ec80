"""Command-line interface for mindsift.

Provides subcommands for processing a dump end to end, inspecting the
thoughts extracted from a stored dump, and listing dumps that never reached
the processed state.
"""

import argparse
import asyncio
import logging
import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

from groq import AsyncGroq
from openai import AsyncOpenAI

from .clients import GroqTranscriber, OpenAIEmbedder
from .config import PipelineConfig, config_from_env, load_config
from .errors import PersistenceFailure
from .extraction import GroqLLMClient, ThoughtExtractor
from .logging import configure_logger
from .pipeline import DumpCapture, DumpPipeline, PipelineResult, summarize_result
from .thoughts import SQLiteThoughtStore, Thought

logger = logging.getLogger(__name__)

DEFAULT_USER = "local"


def _get_config(args: argparse.Namespace) -> PipelineConfig:
    """Config from --config if given, else from the environment."""
    if getattr(args, "config", None):
        return load_config(Path(args.config))
    return config_from_env()


def _open_store(config: PipelineConfig) -> SQLiteThoughtStore:
    store = SQLiteThoughtStore(config.db_path)
    store.init_db()
    return store


def build_pipeline(config: PipelineConfig, store: SQLiteThoughtStore) -> DumpPipeline:
    """Wire the Groq and OpenAI clients into a pipeline.

    Embeddings are disabled when OPENAI_API_KEY is not set.
    """
    groq_client = AsyncGroq(api_key=os.getenv("GROQ_API_KEY"))
    extractor = ThoughtExtractor(
        GroqLLMClient(groq_client, model=config.extraction_model),
        temperature=config.extraction_temperature,
    )
    transcriber = GroqTranscriber(
        groq_client,
        model=config.transcription_model,
        language=config.transcription_language,
    )

    embedder = None
    if os.getenv("OPENAI_API_KEY"):
        embedder = OpenAIEmbedder(
            AsyncOpenAI(),
            model=config.embedding_model,
            dimension=config.embedding_dimension,
        )
    else:
        logger.info("OPENAI_API_KEY not set, embeddings disabled")

    return DumpPipeline(
        store,
        extractor,
        transcriber=transcriber,
        embedder=embedder,
        timezone=config.default_timezone,
        event_logger=configure_logger(config.log_dir),
    )


def _format_time(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M %Z").strip() if value else "-"


def _format_thought(thought: Thought, indent: str = "") -> str:
    """One line per thought with its most useful metadata."""
    details = [thought.type.value]
    if thought.importance:
        details.append(thought.importance.value)
    if thought.deadline:
        details.append(f"due {_format_time(thought.deadline)}")
    if thought.resurface_at:
        details.append(f"resurface {_format_time(thought.resurface_at)}")
    return f"{indent}- {thought.text} [{', '.join(details)}]"


def _print_result(result: PipelineResult) -> None:
    children: dict[str, list[Thought]] = {}
    by_id = {t.id: t for t in result.subtasks}
    for relation in result.relations:
        child = by_id.get(relation.child_id)
        if child is not None:
            children.setdefault(relation.parent_id, []).append(child)

    for thought in result.thoughts:
        print(_format_thought(thought))
        for child in children.get(thought.id or "", []):
            print(_format_thought(child, indent="    "))

    if result.analysis and result.analysis.summary:
        print(f"\nSummary: {result.analysis.summary}")
    if result.skipped:
        print(f"Skipped items: {len(result.skipped)}")


async def _process(args: argparse.Namespace, config: PipelineConfig) -> int:
    store = _open_store(config)
    try:
        capture = DumpCapture(store, build_pipeline(config, store))
        if args.audio:
            receipt = capture.capture_voice(args.user, args.audio, timezone=args.timezone)
        else:
            receipt = capture.capture_text(args.user, args.text, timezone=args.timezone)

        print(receipt.acknowledgement)
        result = await receipt.task

        print(f"\nDump: {result.dump_id} ({result.outcome.value})")
        print(summarize_result(result))
        _print_result(result)
        return 0
    finally:
        store.close()


def cmd_process(args: argparse.Namespace) -> int:
    """Capture one dump and wait for the pipeline to finish."""
    if bool(args.text) == bool(args.audio):
        print("Error: Give either TEXT or --audio PATH.")
        return 1

    if not os.getenv("GROQ_API_KEY"):
        print("Error: GROQ_API_KEY is not set.")
        return 1

    config = _get_config(args)
    return asyncio.run(_process(args, config))


def cmd_show(args: argparse.Namespace) -> int:
    """Show a stored dump and the thoughts extracted from it."""
    config = _get_config(args)
    store = _open_store(config)
    try:
        dump = store.get_dump(args.dump_id)
        if dump is None:
            print(f"Error: Dump '{args.dump_id}' not found.")
            return 1

        print(f"\nDump: {dump.id}")
        print("-" * 40)
        print(f"Source: {dump.source.value}")
        print(f"Created: {_format_time(dump.created_at)}")
        print(f"Processed: {'yes' if dump.processed else 'no'}")
        if dump.model_version:
            print(f"Model: {dump.model_version}")
        print(f"Text: {dump.raw_text or ''}")

        thoughts = store.list_thoughts(dump.id)  # type: ignore[arg-type]
        if not thoughts:
            print("\nNo thoughts.")
            return 0

        children = {t.id: store.list_children(t.id) for t in thoughts}  # type: ignore[arg-type]
        child_ids = {c.id for kids in children.values() for c in kids}

        print()
        for thought in thoughts:
            if thought.id in child_ids:
                continue
            print(_format_thought(thought))
            for child in children[thought.id]:
                print(_format_thought(child, indent="    "))
        return 0
    finally:
        store.close()


def cmd_pending(args: argparse.Namespace) -> int:
    """List dumps that have not reached the processed state."""
    config = _get_config(args)
    store = _open_store(config)
    try:
        older_than = None
        if args.older_than is not None:
            older_than = datetime.now(timezone.utc) - timedelta(minutes=args.older_than)
        dumps = store.list_unprocessed_dumps(older_than=older_than)
    finally:
        store.close()

    if not dumps:
        print("No pending dumps.")
        return 0

    print(f"\n{'Id':<38} {'Source':<10} {'Created':<22} User")
    print("-" * 80)
    for dump in dumps:
        print(f"{dump.id:<38} {dump.source.value:<10} {_format_time(dump.created_at):<22} {dump.user_id}")

    print(f"\nTotal: {len(dumps)} dump(s)")
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the mindsift CLI."""
    parser = argparse.ArgumentParser(
        prog="mindsift",
        description="Turn mind dumps into structured thoughts",
    )
    parser.add_argument(
        "-c", "--config",
        help="Path to a JSON config file (default: environment variables)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Sub-command help")

    # process command
    process_parser = subparsers.add_parser("process", help="Process one dump end to end")
    process_parser.add_argument("text", nargs="?", help="Text of the dump")
    process_parser.add_argument("--audio", help="Path or URL of a voice recording")
    process_parser.add_argument("-u", "--user", default=DEFAULT_USER, help="Owner of the dump")
    process_parser.add_argument("-t", "--timezone", help="IANA timezone of the user")

    # show command
    show_parser = subparsers.add_parser("show", help="Show a dump and its thoughts")
    show_parser.add_argument("dump_id", help="Id of the dump")

    # pending command
    pending_parser = subparsers.add_parser("pending", help="List unprocessed dumps")
    pending_parser.add_argument(
        "--older-than",
        type=int,
        metavar="MINUTES",
        help="Only dumps created more than MINUTES ago",
    )

    return parser


def run_cli(argv: list[str] | None = None) -> int:
    """Run the CLI with given arguments.

    Args:
        argv: Command-line arguments. Uses sys.argv[1:] if None.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "process": cmd_process,
        "show": cmd_show,
        "pending": cmd_pending,
    }

    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    try:
        return handler(args)
    except ValueError as e:
        print(f"Error: {e}")
        return 1
    except PersistenceFailure as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(run_cli())
