"""LLM-backed extraction of thoughts from transcripts."""

from .extractor import ThoughtExtractor, parse_response, validate_item
from .llm_client import GroqLLMClient, LLMClient
from .prompt import SYSTEM_PROMPT, build_user_prompt

__all__ = [
    "GroqLLMClient",
    "LLMClient",
    "SYSTEM_PROMPT",
    "ThoughtExtractor",
    "build_user_prompt",
    "parse_response",
    "validate_item",
]
