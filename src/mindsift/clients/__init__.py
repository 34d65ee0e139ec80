"""Clients for the speech-to-text and embedding models."""

from .embeddings import OpenAIEmbedder
from .transcription import GroqTranscriber

__all__ = ["GroqTranscriber", "OpenAIEmbedder"]
