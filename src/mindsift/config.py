"""Pipeline configuration.

Settings come from environment variables (see `config_from_env`) or from the
"pipeline" section of ~/.mindsift/config.json (see `load_config`).
"""

import json
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .clients.embeddings import DEFAULT_DIMENSION, DEFAULT_EMBEDDING_MODEL
from .clients.transcription import DEFAULT_TRANSCRIPTION_MODEL
from .extraction.llm_client import DEFAULT_MODEL

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".mindsift" / "config.json"
DEFAULT_DB_PATH = Path.home() / ".mindsift" / "mindsift.db"
DEFAULT_TIMEZONE = "America/New_York"


@dataclass
class PipelineConfig:
    """Configuration for the extraction pipeline.

    Attributes:
        extraction_model: Groq chat model; also stamped on processed dumps.
        extraction_temperature: Sampling temperature for extraction.
        transcription_model: Groq Whisper model for voice dumps.
        transcription_language: Spoken language hint for transcription.
        embedding_model: OpenAI embedding model.
        embedding_dimension: Expected embedding length.
        default_timezone: IANA timezone used when the caller gives none.
        db_path: SQLite database file.
        log_dir: Directory for the JSONL event log (None for the default).
    """

    extraction_model: str = DEFAULT_MODEL
    extraction_temperature: float = 0.7
    transcription_model: str = DEFAULT_TRANSCRIPTION_MODEL
    transcription_language: str = "en"
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    embedding_dimension: int = DEFAULT_DIMENSION
    default_timezone: str = DEFAULT_TIMEZONE
    db_path: Path = DEFAULT_DB_PATH
    log_dir: Path | None = None

    def __post_init__(self) -> None:
        """Validate config values."""
        self.db_path = Path(self.db_path).expanduser()
        if self.log_dir is not None:
            self.log_dir = Path(self.log_dir).expanduser()

        if not 0.0 <= self.extraction_temperature <= 2.0:
            raise ValueError("extraction_temperature must be between 0 and 2")

        if self.embedding_dimension < 1:
            raise ValueError("embedding_dimension must be at least 1")

        try:
            ZoneInfo(self.default_timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {self.default_timezone}") from e


def config_from_env() -> PipelineConfig:
    """Load configuration from environment variables."""
    return PipelineConfig(
        extraction_model=os.getenv("GROQ_MODEL", DEFAULT_MODEL),
        extraction_temperature=float(os.getenv("MINDSIFT_TEMPERATURE", "0.7")),
        transcription_model=os.getenv("MINDSIFT_TRANSCRIPTION_MODEL", DEFAULT_TRANSCRIPTION_MODEL),
        transcription_language=os.getenv("MINDSIFT_LANGUAGE", "en"),
        embedding_model=os.getenv("MINDSIFT_EMBEDDING_MODEL", DEFAULT_EMBEDDING_MODEL),
        embedding_dimension=int(os.getenv("MINDSIFT_EMBEDDING_DIMENSION", str(DEFAULT_DIMENSION))),
        default_timezone=os.getenv("MINDSIFT_TIMEZONE", DEFAULT_TIMEZONE),
        db_path=Path(os.getenv("MINDSIFT_DB_PATH", str(DEFAULT_DB_PATH))),
        log_dir=Path(os.environ["MINDSIFT_LOG_DIR"]) if os.getenv("MINDSIFT_LOG_DIR") else None,
    )


def load_config(config_path: Path | None = None) -> PipelineConfig:
    """Load PipelineConfig from a JSON file.

    The config file should have this structure:
    ```json
    {
      "pipeline": {
        "extraction_model": "llama-3.3-70b-versatile",
        "default_timezone": "Europe/Madrid",
        "db_path": "~/.mindsift/mindsift.db"
      }
    }
    ```

    Args:
        config_path: Path to config file. Uses DEFAULT_CONFIG_PATH if None.

    Returns:
        PipelineConfig instance with loaded values.
    """
    path = config_path or DEFAULT_CONFIG_PATH

    if not path.exists():
        logger.debug("No config file at %s, using defaults", path)
        return PipelineConfig()

    try:
        with open(path, "r") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        logger.warning("Invalid JSON in %s: %s. Using defaults.", path, e)
        return PipelineConfig()
    except OSError as e:
        logger.warning("Cannot read %s: %s. Using defaults.", path, e)
        return PipelineConfig()

    return _parse_config(data)


def _parse_config(data: dict[str, Any]) -> PipelineConfig:
    """Parse config dictionary into PipelineConfig.

    Unknown keys are ignored; values of the wrong shape fall back to the
    default with a warning.
    """
    section = data.get("pipeline", {}) if isinstance(data, dict) else {}
    if not isinstance(section, dict):
        section = {}

    known = {f.name for f in fields(PipelineConfig)}
    values = {k: v for k, v in section.items() if k in known}

    try:
        return PipelineConfig(**values)
    except (TypeError, ValueError) as e:
        logger.warning("Invalid pipeline config: %s. Using defaults.", e)
        return PipelineConfig()
