"""
Knowledge base ingestion and search.

Turns a document into a knowledge base item with chunk embeddings, driving
the item's embedding_status through pending -> generating -> completed or
failed, and answers similarity queries against the stored chunks.
"""

import time
from datetime import datetime

from kbgraph.config import ChunkingSettings
from kbgraph.core.chunking import chunk_text, get_recommended_config, resolve_config
from kbgraph.core.embeddings.cache import EmbeddingCache
from kbgraph.core.knowledge_store.base import KnowledgeStore
from kbgraph.core.tokenizer import Tokenizer
from kbgraph.models.chunk import DEFAULT_CHUNKING_CONFIGS, ChunkingConfig, ChunkingInput, TextChunk
from kbgraph.models.embedding import EmbeddingInput
from kbgraph.models.knowledge import (
    EmbeddingStatus,
    KnowledgeBaseItem,
    KnowledgeEmbedding,
    ProcessingOptions,
    ProcessingResult,
    SimilaritySearchOptions,
    SimilaritySearchResult,
)
from kbgraph.services.embedding_generator import EmbeddingGenerator
from kbgraph.utils.exceptions import NotFoundError
from kbgraph.utils.id_generator import generate_embedding_id, generate_knowledge_item_id
from kbgraph.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_ENTITY_TYPE = "document"


class KnowledgeBasePipeline:
    """
    Chunk -> embed -> store pipeline for knowledge base items.

    Failure is scoped to one item: any error while generating embeddings
    marks that item failed (with the message) and is re-raised to the caller.
    """

    def __init__(
        self,
        store: KnowledgeStore,
        generator: EmbeddingGenerator,
        cache: EmbeddingCache | None = None,
        chunking: ChunkingSettings | None = None,
        tokenizer: Tokenizer | None = None,
        batch_size: int = 50,
    ):
        """
        Initialize the pipeline.

        Args:
            store: Knowledge store for items and embeddings
            generator: Embedding generator
            cache: Embedding cache consulted before calling the provider
            chunking: Profile selection (recommended or a named default)
            tokenizer: Token counter for chunks
            batch_size: Chunks sent to the generator per call
        """
        self.store = store
        self.generator = generator
        self.cache = cache
        self.chunking = chunking or ChunkingSettings()
        self.tokenizer = tokenizer or Tokenizer()
        self.batch_size = max(1, batch_size)

    async def process_document(
        self,
        workspace_id: str,
        content: str,
        document_name: str,
        options: ProcessingOptions | None = None,
    ) -> ProcessingResult:
        """
        Create a knowledge base item for a document and embed its chunks.

        Args:
            workspace_id: Owning workspace
            content: Document text
            document_name: Display name (also the item title)
            options: Entity type, content type, chunking overrides, cache use, metadata

        Returns:
            ProcessingResult with chunk/embedding counts, tokens, cost and timing

        Raises:
            Any error raised while generating or storing embeddings, after the
            item has been marked failed
        """
        start_time = time.time()
        options = options or ProcessingOptions()

        item = KnowledgeBaseItem(
            id=generate_knowledge_item_id(),
            workspace_id=workspace_id,
            title=document_name,
            content=content,
            entity_type=options.entity_type or DEFAULT_ENTITY_TYPE,
            metadata={
                **options.metadata,
                "document_name": document_name,
                "processed_at": datetime.now().isoformat(),
            },
        )
        await self.store.create_knowledge_item(item)
        logger.info(
            "Created knowledge item {}",
            item.id,
            extra={"workspace_id": workspace_id, "content_length": len(content)},
        )

        return await self._generate_embeddings(item, document_name, options, start_time)

    async def reprocess_knowledge_item(
        self, item_id: str, options: ProcessingOptions | None = None
    ) -> ProcessingResult:
        """
        Regenerate all embeddings of an existing item.

        Raises:
            NotFoundError: If the item does not exist
        """
        start_time = time.time()
        options = options or ProcessingOptions()

        item = await self.store.get_knowledge_item(item_id)
        if item is None:
            raise NotFoundError(f"Knowledge item not found: {item_id}")

        document_name = str(item.metadata.get("document_name") or item.title)
        return await self._generate_embeddings(
            item, document_name, options, start_time, replace_existing=True
        )

    async def search_knowledge_base(
        self,
        workspace_id: str,
        query: str,
        options: SimilaritySearchOptions | None = None,
    ) -> list[SimilaritySearchResult]:
        """
        Find the chunks most similar to a query.

        Requests twice the limit from the store so that item and entity-type
        filters still leave enough results, then sorts by similarity and
        truncates to the limit.
        """
        options = options or SimilaritySearchOptions()

        query_embedding = await self.generator.get_query_embedding(query)
        matches = await self.store.match_embeddings(
            workspace_id, query_embedding, options.threshold, options.limit * 2
        )
        if not matches:
            logger.debug(f"No embeddings above threshold {options.threshold}")
            return []

        similarity = {match.id: match.similarity for match in matches}
        records = await self.store.get_embeddings_by_ids(list(similarity))

        items: dict[str, KnowledgeBaseItem | None] = {}
        for record in records:
            if record.knowledge_item_id not in items:
                items[record.knowledge_item_id] = await self.store.get_knowledge_item(
                    record.knowledge_item_id
                )

        results = []
        for record in records:
            item = items[record.knowledge_item_id]
            if options.knowledge_item_ids and record.knowledge_item_id not in options.knowledge_item_ids:
                continue
            if options.entity_types and (item is None or item.entity_type not in options.entity_types):
                continue
            results.append(
                SimilaritySearchResult(
                    id=record.id,
                    knowledge_item_id=record.knowledge_item_id,
                    content=record.content,
                    similarity=similarity.get(record.id, 0.0),
                    chunk_index=record.chunk_index,
                    metadata=dict(item.metadata) if item else {},
                )
            )

        results.sort(key=lambda r: r.similarity, reverse=True)
        return results[: options.limit]

    # ═══════════════════════════════════════════════════════════
    # INTERNALS
    # ═══════════════════════════════════════════════════════════

    def _chunking_config(self, content: str, options: ProcessingOptions) -> ChunkingConfig:
        if self.chunking.use_recommended:
            base = get_recommended_config(content, options.content_type)
        else:
            base = DEFAULT_CHUNKING_CONFIGS.get(self.chunking.profile, DEFAULT_CHUNKING_CONFIGS["default"])
        return resolve_config(options.chunking, options.content_type, base)

    async def _generate_embeddings(
        self,
        item: KnowledgeBaseItem,
        document_name: str,
        options: ProcessingOptions,
        start_time: float,
        replace_existing: bool = False,
    ) -> ProcessingResult:
        await self.store.update_embedding_status(item.id, EmbeddingStatus.GENERATING)

        try:
            if replace_existing:
                deleted = await self.store.delete_embeddings_for_item(item.id)
                logger.debug("Deleted {} embeddings of {} before reprocessing", deleted, item.id)

            config = self._chunking_config(item.content, options)
            chunk_result = chunk_text(
                ChunkingInput(
                    document_id=item.id,
                    document_name=document_name,
                    content=item.content,
                    content_type=options.content_type,
                ),
                config,
                self.tokenizer,
            )
            chunks = chunk_result.chunks

            embeddings, cache_hits, total_tokens, errors = await self._embed_chunks(
                item, chunks, use_cache=options.use_cache
            )

            if embeddings:
                await self.store.store_embeddings(embeddings)

            await self.store.update_embedding_status(
                item.id, EmbeddingStatus.COMPLETED, embeddings_count=len(embeddings)
            )
        except Exception as e:
            logger.error(
                "Embedding generation failed for {}",
                item.id,
                extra={"error": str(e)},
            )
            await self.store.update_embedding_status(
                item.id, EmbeddingStatus.FAILED, error=str(e) or type(e).__name__
            )
            raise

        processing_time = (time.time() - start_time) * 1000
        logger.info(
            "Processed {}: {}/{} chunks embedded in {:.0f}ms",
            item.id,
            len(embeddings),
            len(chunks),
            processing_time,
            extra={"cache_hits": cache_hits, "total_tokens": total_tokens},
        )

        return ProcessingResult(
            knowledge_item_id=item.id,
            chunk_count=len(chunks),
            embedding_count=len(embeddings),
            total_tokens=total_tokens,
            estimated_cost=self.generator.estimate_cost(total_tokens),
            processing_time=processing_time,
            cache_hits=cache_hits,
            errors=errors,
            chunking_config=chunk_result.config,
        )

    async def _embed_chunks(
        self, item: KnowledgeBaseItem, chunks: list[TextChunk], use_cache: bool
    ) -> tuple[list[KnowledgeEmbedding], int, int, list[str]]:
        """Embed chunks, cached first; returns (embeddings, cache hits, tokens, errors)."""
        model = self.generator.model
        cache = self.cache if use_cache else None

        embeddings: list[KnowledgeEmbedding] = []
        pending: list[tuple[int, TextChunk]] = []
        cache_hits = 0
        total_tokens = 0
        errors: list[str] = []

        for index, chunk in enumerate(chunks):
            cached = cache.get(chunk.content, model) if cache else None
            if cached is not None:
                cache_hits += 1
                embeddings.append(self._to_embedding(item, index, chunk, cached, model))
            else:
                pending.append((index, chunk))

        for offset in range(0, len(pending), self.batch_size):
            batch = dict(pending[offset : offset + self.batch_size])
            inputs = [EmbeddingInput(id=str(index), text=chunk.content) for index, chunk in batch.items()]

            batch_result = await self.generator.generate_batch_embeddings(inputs)
            total_tokens += batch_result.total_tokens

            for result in batch_result.results:
                index = int(result.id)
                chunk = batch[index]
                if cache:
                    cache.set(chunk.content, model, result.embedding)
                embeddings.append(self._to_embedding(item, index, chunk, result.embedding, model))

            for failure in batch_result.errors:
                logger.error(
                    "Failed to embed chunk {} of {}",
                    failure.id,
                    item.id,
                    extra={"error": failure.error},
                )
                errors.append(f"chunk {failure.id}: {failure.error}")

        embeddings.sort(key=lambda e: e.chunk_index)
        return embeddings, cache_hits, total_tokens, errors

    @staticmethod
    def _to_embedding(
        item: KnowledgeBaseItem,
        index: int,
        chunk: TextChunk,
        vector: list[float],
        model: str,
    ) -> KnowledgeEmbedding:
        return KnowledgeEmbedding(
            id=generate_embedding_id(),
            workspace_id=item.workspace_id,
            knowledge_item_id=item.id,
            chunk_index=index,
            content=chunk.content,
            embedding=vector,
            token_count=chunk.token_count,
            model=model,
            metadata={
                "chunk_id": chunk.id,
                "start_index": chunk.metadata.start_index,
                "end_index": chunk.metadata.end_index,
                "content_type": chunk.metadata.content_type.value,
            },
        )
