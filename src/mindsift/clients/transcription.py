"""Speech-to-text for voice dumps."""

import logging
from pathlib import Path
from urllib.parse import urlparse

import httpx
from groq import AsyncGroq

from ..errors import TranscriptionFailure

logger = logging.getLogger(__name__)

DEFAULT_TRANSCRIPTION_MODEL = "whisper-large-v3"
REMOTE_SCHEMES = {"http", "https"}


class GroqTranscriber:
    """Transcribes a recording with Groq's Whisper endpoint.

    A single attempt is made per call. Every failure is logged and reported
    as None; retry policy belongs to the caller.
    """

    def __init__(
        self,
        client: AsyncGroq,
        model: str = DEFAULT_TRANSCRIPTION_MODEL,
        language: str = "en",
        timeout: float = 30.0,
    ) -> None:
        self.client = client
        self.model = model
        self.language = language
        self._timeout = timeout

    async def transcribe(self, audio_ref: str) -> str | None:
        """Transcribe a recording.

        Args:
            audio_ref: http(s) URL or local path of the recording.

        Returns:
            The transcript, or None if nothing usable came back.
        """
        try:
            filename, audio = await self._load_audio(audio_ref)
            response = await self.client.audio.transcriptions.create(
                file=(filename, audio),
                model=self.model,
                language=self.language,
            )
        except TranscriptionFailure as e:
            logger.warning(f"Transcription failed: {e}")
            return None
        except Exception as e:
            logger.warning(f"Transcription failed for {audio_ref}: {e}")
            return None

        text = (getattr(response, "text", None) or "").strip()
        if not text:
            logger.warning(f"Empty transcript for {audio_ref}")
            return None
        return text

    async def _load_audio(self, audio_ref: str) -> tuple[str, bytes]:
        """Read the recording bytes from a URL or the local filesystem."""
        parsed = urlparse(audio_ref)

        if parsed.scheme.lower() in REMOTE_SCHEMES:
            async with httpx.AsyncClient(timeout=self._timeout, follow_redirects=True) as client:
                try:
                    response = await client.get(audio_ref)
                except httpx.HTTPError as e:
                    raise TranscriptionFailure(f"Could not download {audio_ref}: {e}") from e
            if not response.is_success:
                raise TranscriptionFailure(
                    f"Download of {audio_ref} returned HTTP {response.status_code}"
                )
            name = Path(parsed.path).name or "audio.m4a"
            return name, response.content

        path = Path(audio_ref).expanduser()
        if not path.is_file():
            raise TranscriptionFailure(f"Recording not found: {audio_ref}")
        return path.name, path.read_bytes()
