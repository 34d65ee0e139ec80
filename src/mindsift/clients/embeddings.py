"""Embedding generation for semantic recall of thoughts."""

import logging

from openai import AsyncOpenAI

from ..errors import EmbeddingFailure

logger = logging.getLogger(__name__)

DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"
DEFAULT_DIMENSION = 1536


class OpenAIEmbedder:
    """Embeds thought text with the OpenAI embeddings endpoint.

    Embeddings are optional enrichment: failures are logged and reported as
    None so the caller never has to handle them.
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str = DEFAULT_EMBEDDING_MODEL,
        dimension: int = DEFAULT_DIMENSION,
    ) -> None:
        self.client = client
        self.model = model
        self.dimension = dimension

    async def embed(self, text: str) -> list[float] | None:
        """Embed a piece of text.

        Args:
            text: The thought text.

        Returns:
            The embedding vector, or None on empty input or any failure.
        """
        if not text or not text.strip():
            return None

        try:
            response = await self.client.embeddings.create(
                model=self.model,
                input=text,
                encoding_format="float",
            )
            return self._check_vector(list(response.data[0].embedding))
        except EmbeddingFailure as e:
            logger.warning(f"Discarding embedding: {e}")
            return None
        except Exception as e:
            logger.warning(f"Failed to generate embedding: {e}")
            return None

    def _check_vector(self, vector: list[float]) -> list[float]:
        if len(vector) != self.dimension:
            raise EmbeddingFailure(
                f"expected {self.dimension} dimensions, got {len(vector)}"
            )
        return vector
