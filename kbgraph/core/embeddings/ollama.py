"""
Ollama embedder using native ollama-python SDK.
"""

import asyncio

import ollama

from kbgraph.core.embeddings.base import Embedder, EmbeddingResponse
from kbgraph.utils.exceptions import EmbeddingError, ValidationError
from kbgraph.utils.logger import get_logger

logger = get_logger(__name__)


class OllamaEmbedder(Embedder):
    """
    Ollama embedder for generating text embeddings.

    Uses the batch `embed` endpoint so a whole sub-batch is one request.
    Supports models like nomic-embed-text, mxbai-embed-large, etc.
    """

    def __init__(
        self,
        host: str = "http://localhost:11434",
        model: str = "nomic-embed-text",
        timeout: float = 120.0,
        dimension: int | None = None,
    ):
        """
        Initialize Ollama embedder.

        Args:
            host: Ollama server URL
            model: Embedding model name
            timeout: Request deadline in seconds
            dimension: Known vector dimension, skips the probe request
        """
        self.host = host
        self.model = model
        self.timeout = timeout
        self._dimension = dimension

        self.client = ollama.AsyncClient(host=host)

    async def embed_texts(self, texts: list[str], **kwargs) -> EmbeddingResponse:
        if not texts:
            raise ValidationError("Texts list cannot be empty")
        if any(not text or not text.strip() for text in texts):
            raise ValidationError("Text cannot be empty")

        try:
            response = await asyncio.wait_for(
                self.client.embed(model=self.model, input=texts, **kwargs),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise EmbeddingError(
                f"Ollama embedding timed out after {self.timeout}s",
                context={"model": self.model, "host": self.host},
            ) from e
        except Exception as e:
            logger.error(
                "Ollama embedding error",
                extra={"model": self.model, "host": self.host, "error": str(e)},
            )
            raise EmbeddingError(f"Ollama embedding error: {e}") from e

        embeddings = response.get("embeddings") if response else None
        if not embeddings or len(embeddings) != len(texts):
            raise EmbeddingError("Ollama returned invalid embedding response")

        return EmbeddingResponse(
            embeddings=[list(vector) for vector in embeddings],
            total_tokens=response.get("prompt_eval_count") or 0,
            model=self.model,
        )

    async def get_dimension(self) -> int:
        """Embedding dimension, probed once and cached."""
        if self._dimension is None:
            test_embedding = await self.embed("test")
            self._dimension = len(test_embedding)
        return self._dimension

    async def close(self):
        """Close client (Ollama SDK handles cleanup internally)."""
        pass
