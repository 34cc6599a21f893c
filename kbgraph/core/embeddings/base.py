"""
Abstract base class for embedding providers.
Handles text to vector embeddings for semantic search.
"""

from abc import ABC, abstractmethod

from pydantic import BaseModel


class EmbeddingResponse(BaseModel):
    """Vectors returned by one provider call, in input order."""

    embeddings: list[list[float]]
    total_tokens: int = 0
    model: str


class Embedder(ABC):
    """
    Abstract base for embedding providers.

    Responsibilities:
    - Generate vector embeddings for a list of texts in one call
    - Report token usage when the provider exposes it
    - Consistent vector dimensions
    """

    model: str
    timeout: float = 120.0

    @abstractmethod
    async def embed_texts(self, texts: list[str], **kwargs) -> EmbeddingResponse:
        """
        Generate embeddings for texts in a single provider request.

        Args:
            texts: Non-empty texts to embed
            **kwargs: Provider-specific parameters

        Returns:
            EmbeddingResponse with one vector per input text

        Raises:
            ValidationError: If texts are invalid
            EmbeddingError: If embedding generation fails or times out
        """
        pass

    async def embed(self, text: str, **kwargs) -> list[float]:
        """Embed a single text."""
        response = await self.embed_texts([text], **kwargs)
        return response.embeddings[0]

    async def get_dimension(self) -> int:
        """
        Get the dimension of embeddings produced by this provider.

        Default implementation embeds a test string.
        Override for efficiency if dimension is known.
        """
        test_embedding = await self.embed("test")
        return len(test_embedding)

    @abstractmethod
    async def close(self):
        """Close any open connections."""
        pass
