"""LLM client implementations for thought extraction.

The extractor talks to the model through the LLMClient Protocol so the
provider can be swapped (or faked in tests) without touching parsing code.
"""

from typing import Any, Protocol

from groq import AsyncGroq

DEFAULT_MODEL = "llama-3.3-70b-versatile"


class LLMClient(Protocol):
    """A single text completion call."""

    @property
    def model(self) -> str: ...

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        response_format: str = "json",
        temperature: float = 0.7,
    ) -> str: ...


class GroqLLMClient:
    """LLMClient implementation that wraps AsyncGroq.

    Example:
        from groq import AsyncGroq
        from mindsift.extraction.llm_client import GroqLLMClient

        llm = GroqLLMClient(AsyncGroq(api_key="..."))
        text = await llm.complete("You are...", "RAW_DUMP: ...")
    """

    def __init__(
        self,
        client: AsyncGroq,
        model: str = DEFAULT_MODEL,
    ) -> None:
        """Initialize the Groq LLM client wrapper.

        Args:
            client: The AsyncGroq client instance to wrap.
            model: The model to use for completions.
        """
        self._client = client
        self._model = model

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        response_format: str = "json",
        temperature: float = 0.7,
    ) -> str:
        """Complete a prompt and return the text response.

        Args:
            system_prompt: Role and output rules for the model.
            user_prompt: The request itself.
            response_format: "json" forces a JSON object response,
                anything else leaves the format free.
            temperature: Sampling temperature.

        Returns:
            The LLM's text response, empty if it returned no content.
        """
        kwargs: dict[str, Any] = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
        }
        if response_format == "json":
            kwargs["response_format"] = {"type": "json_object"}

        response = await self._client.chat.completions.create(**kwargs)

        return response.choices[0].message.content or ""

    @property
    def model(self) -> str:
        """Return the model being used."""
        return self._model
