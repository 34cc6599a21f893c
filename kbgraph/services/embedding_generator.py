"""
Embedding generation on top of an Embedder provider.

Adds what the raw provider does not do: input truncation to the model's
token limit, sub-batching with bounded linear-backoff retries, per-item
failure accounting, cost estimation and cache-backed query embeddings.
"""

import asyncio
import time

from kbgraph.config import EmbeddingGenerationConfig
from kbgraph.core.embeddings.base import Embedder
from kbgraph.core.embeddings.cache import EmbeddingCache
from kbgraph.core.tokenizer import estimate_token_count
from kbgraph.models.embedding import (
    EMBEDDING_MODELS,
    BatchEmbeddingResult,
    EmbeddingFailure,
    EmbeddingInput,
    EmbeddingModelConfig,
    EmbeddingResult,
)
from kbgraph.utils.exceptions import EmbeddingError, ValidationError
from kbgraph.utils.logger import get_logger

logger = get_logger(__name__)

# Provider limit on texts per request
MAX_BATCH_SIZE = 100

DEFAULT_MAX_TOKENS = 8191
CHARS_PER_TOKEN = 4


def get_model_config(model: str, dimension: int | None = None) -> EmbeddingModelConfig:
    """Registry entry for a model; unknown models get the given dimension and zero cost."""
    if model in EMBEDDING_MODELS:
        return EMBEDDING_MODELS[model]
    return EmbeddingModelConfig(
        name=model,
        dimensions=dimension or 0,
        max_tokens=DEFAULT_MAX_TOKENS,
        cost_per_1k_tokens=0.0,
    )


def truncate_to_token_limit(text: str, max_tokens: int) -> str:
    """Cut text to max_tokens * 4 characters when its estimated token count exceeds max_tokens."""
    if estimate_token_count(text) > max_tokens:
        return text[: max_tokens * CHARS_PER_TOKEN]
    return text


class EmbeddingGenerator:
    """
    Batch-aware embedding generation.

    Sub-batches are processed sequentially so token totals and cost
    estimates are deterministic. A sub-batch that keeps failing after
    max_retries attempts is recorded as per-item errors; it never raises.
    """

    def __init__(
        self,
        embedder: Embedder,
        config: EmbeddingGenerationConfig | None = None,
        cache: EmbeddingCache | None = None,
        model_config: EmbeddingModelConfig | None = None,
    ):
        """
        Initialize the generator.

        Args:
            embedder: Embedding provider
            config: Batch size and retry policy
            cache: Optional cache used by get_query_embedding
            model_config: Model limits and pricing (looked up from the registry if omitted)
        """
        self.embedder = embedder
        self.config = config or EmbeddingGenerationConfig()
        self.cache = cache
        self.model_config = model_config or get_model_config(embedder.model)

    @property
    def model(self) -> str:
        return self.embedder.model

    def estimate_cost(self, total_tokens: int) -> float:
        return total_tokens / 1000 * self.model_config.cost_per_1k_tokens

    async def generate_embedding(self, text: str) -> EmbeddingResult:
        """
        Embed one text, truncating it to the model's token limit first.

        Raises:
            ValidationError: If the text is empty
            EmbeddingError: If the provider call fails
        """
        if not text.strip():
            raise ValidationError("Empty text content")

        truncated = truncate_to_token_limit(text, self.model_config.max_tokens)
        if len(truncated) < len(text):
            logger.debug(
                f"Truncated embedding input from {len(text)} to {len(truncated)} characters"
            )

        response = await self.embedder.embed_texts([truncated])
        return EmbeddingResult(
            embedding=response.embeddings[0],
            token_count=response.total_tokens or estimate_token_count(truncated),
            model=self.model,
        )

    async def generate_batch_embeddings(self, inputs: list[EmbeddingInput]) -> BatchEmbeddingResult:
        """
        Embed many inputs with partial-failure accounting.

        Inputs are grouped into sub-batches of at most 100. Empty inputs are
        rejected up front with "Empty text content". Each sub-batch call is
        retried up to max_retries times, sleeping retry_delay * attempt
        seconds between attempts; once retries are exhausted every input of
        that sub-batch is reported as an error and processing moves on.

        Args:
            inputs: Texts to embed with caller-chosen ids

        Returns:
            BatchEmbeddingResult with results, errors, tokens, time and cost
        """
        start_time = time.time()
        batch_size = max(1, min(self.config.batch_size, MAX_BATCH_SIZE))
        max_retries = max(1, self.config.max_retries)

        results: list[EmbeddingResult] = []
        errors: list[EmbeddingFailure] = []
        total_tokens = 0

        for offset in range(0, len(inputs), batch_size):
            batch = inputs[offset : offset + batch_size]

            valid: list[tuple[EmbeddingInput, str]] = []
            for item in batch:
                text = truncate_to_token_limit(item.text, self.model_config.max_tokens).strip()
                if text:
                    valid.append((item, text))
                else:
                    errors.append(EmbeddingFailure(id=item.id, error="Empty text content"))

            if not valid:
                continue

            for attempt in range(1, max_retries + 1):
                try:
                    response = await self.embedder.embed_texts([text for _, text in valid])
                    if len(response.embeddings) != len(valid):
                        raise EmbeddingError(
                            f"Expected {len(valid)} embeddings, got {len(response.embeddings)}"
                        )
                except Exception as e:
                    if attempt >= max_retries:
                        logger.error(
                            "Embedding sub-batch failed after {} attempts",
                            attempt,
                            extra={"batch_offset": offset, "error": str(e)},
                        )
                        errors.extend(EmbeddingFailure(id=item.id, error=str(e)) for item, _ in valid)
                    else:
                        delay = self.config.retry_delay * attempt
                        logger.warning(
                            "Embedding sub-batch attempt {} failed, retrying in {:.1f}s",
                            attempt,
                            delay,
                            extra={"batch_offset": offset, "error": str(e)},
                        )
                        await asyncio.sleep(delay)
                    continue

                for (item, _), embedding in zip(valid, response.embeddings, strict=True):
                    results.append(
                        EmbeddingResult(
                            id=item.id,
                            embedding=embedding,
                            # Per-item usage is not reported for batched requests
                            token_count=0,
                            model=self.model,
                            metadata=dict(item.metadata),
                        )
                    )
                total_tokens += response.total_tokens
                break

        processing_time = (time.time() - start_time) * 1000
        logger.info(
            "Embedded {}/{} inputs in {:.0f}ms",
            len(results),
            len(inputs),
            processing_time,
            extra={"errors": len(errors), "total_tokens": total_tokens},
        )

        return BatchEmbeddingResult(
            results=results,
            errors=errors,
            total_tokens=total_tokens,
            processing_time=processing_time,
            estimated_cost=self.estimate_cost(total_tokens),
        )

    async def get_query_embedding(self, query: str) -> list[float]:
        """Embed a search query, reading and filling the cache when one is configured."""
        if self.cache is not None:
            cached = self.cache.get(query, self.model)
            if cached is not None:
                return cached

        result = await self.generate_embedding(query)

        if self.cache is not None:
            self.cache.set(query, self.model, result.embedding)
        return result.embedding
