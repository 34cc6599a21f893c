"""
OpenAI embedder using official SDK.
"""

import asyncio

from openai import AsyncOpenAI

from kbgraph.core.embeddings.base import Embedder, EmbeddingResponse
from kbgraph.models.embedding import EMBEDDING_MODELS
from kbgraph.utils.exceptions import EmbeddingError, ValidationError
from kbgraph.utils.logger import get_logger

logger = get_logger(__name__)


class OpenAIEmbedder(Embedder):
    """
    OpenAI embedder for generating text embeddings.

    Sends every text of a call in one request and reports the usage the
    API returns. Dimensions of registered models are answered without a
    network round trip.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        organization: str | None = None,
        base_url: str | None = None,
        timeout: float = 120.0,
    ):
        """
        Initialize OpenAI embedder.

        Args:
            api_key: OpenAI API key
            model: Embedding model name (e.g., "text-embedding-3-small")
            organization: Optional organization ID
            base_url: Optional custom base URL
            timeout: Request deadline in seconds
        """
        self.model = model
        self.timeout = timeout

        self.client = AsyncOpenAI(
            api_key=api_key, organization=organization, base_url=base_url, timeout=timeout
        )

    async def embed_texts(self, texts: list[str], **kwargs) -> EmbeddingResponse:
        if not texts:
            raise ValidationError("Texts list cannot be empty")
        if any(not text or not text.strip() for text in texts):
            raise ValidationError("Text cannot be empty")

        try:
            response = await asyncio.wait_for(
                self.client.embeddings.create(model=self.model, input=texts, **kwargs),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise EmbeddingError(
                f"OpenAI embedding timed out after {self.timeout}s",
                context={"model": self.model, "num_texts": len(texts)},
            ) from e
        except Exception as e:
            logger.error(
                "OpenAI embedding error",
                extra={
                    "model": self.model,
                    "num_texts": len(texts),
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
            raise EmbeddingError(f"OpenAI embedding error: {e}") from e

        if not response.data or len(response.data) != len(texts):
            raise EmbeddingError(
                "OpenAI returned an incomplete embedding response",
                context={"expected": len(texts), "received": len(response.data or [])},
            )

        # The API may reorder items; index restores input order
        ordered = sorted(response.data, key=lambda item: item.index)
        usage = getattr(response, "usage", None)

        return EmbeddingResponse(
            embeddings=[item.embedding for item in ordered],
            total_tokens=usage.total_tokens if usage else 0,
            model=self.model,
        )

    async def get_dimension(self) -> int:
        """Known dimension for registered models, else a test embedding."""
        if self.model in EMBEDDING_MODELS:
            return EMBEDDING_MODELS[self.model].dimensions

        return await super().get_dimension()

    async def close(self):
        """Close OpenAI client."""
        await self.client.close()
