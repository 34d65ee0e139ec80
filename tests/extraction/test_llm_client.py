"""Tests for LLMClient implementations."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from mindsift.extraction import GroqLLMClient


def mock_groq_returning(content: str | None) -> MagicMock:
    mock_response = MagicMock()
    mock_response.choices = [MagicMock()]
    mock_response.choices[0].message.content = content

    mock_groq = MagicMock()
    mock_groq.chat.completions.create = AsyncMock(return_value=mock_response)
    return mock_groq


class TestGroqLLMClient:
    """Tests for GroqLLMClient wrapper."""

    def test_stores_model(self) -> None:
        """Should store the model name."""
        client = GroqLLMClient(MagicMock(), model="test-model")

        assert client.model == "test-model"

    def test_default_model(self) -> None:
        """Should use default model if not specified."""
        client = GroqLLMClient(MagicMock())

        assert client.model == "llama-3.3-70b-versatile"

    @pytest.mark.asyncio
    async def test_complete_json_mode(self) -> None:
        """Should send system and user messages and request a JSON object."""
        mock_groq = mock_groq_returning('{"thoughts": []}')

        client = GroqLLMClient(mock_groq, model="test-model")
        result = await client.complete("You are...", "RAW_DUMP: hi", temperature=0.2)

        assert result == '{"thoughts": []}'
        mock_groq.chat.completions.create.assert_called_once_with(
            model="test-model",
            messages=[
                {"role": "system", "content": "You are..."},
                {"role": "user", "content": "RAW_DUMP: hi"},
            ],
            temperature=0.2,
            response_format={"type": "json_object"},
        )

    @pytest.mark.asyncio
    async def test_complete_free_text(self) -> None:
        """Should leave the response format free when not asking for JSON."""
        mock_groq = mock_groq_returning("plain")

        client = GroqLLMClient(mock_groq)
        await client.complete("sys", "user", response_format="text")

        call_kwargs = mock_groq.chat.completions.create.call_args.kwargs
        assert "response_format" not in call_kwargs

    @pytest.mark.asyncio
    async def test_complete_returns_empty_on_none_content(self) -> None:
        """Should return empty string if content is None."""
        client = GroqLLMClient(mock_groq_returning(None))

        assert await client.complete("sys", "user") == ""

    @pytest.mark.asyncio
    async def test_complete_propagates_errors(self) -> None:
        """Errors from Groq reach the caller."""
        mock_groq = MagicMock()
        mock_groq.chat.completions.create = AsyncMock(side_effect=RuntimeError("boom"))

        client = GroqLLMClient(mock_groq)
        with pytest.raises(RuntimeError, match="boom"):
            await client.complete("sys", "user")
