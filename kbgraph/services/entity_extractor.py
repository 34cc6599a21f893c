"""
LLM-backed entity extraction and deduplication.
"""

import time
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from kbgraph.config import EntityExtractionConfig
from kbgraph.core.llm.base import LLMProvider
from kbgraph.models.entity import (
    BaseEntity,
    EntityExtractionOptions,
    EntityExtractionResult,
    EntityStats,
    EntityType,
    RawEntityCandidate,
    build_entity,
)
from kbgraph.services.prompts import (
    ENTITY_EXTRACTION_SYSTEM_PROMPT,
    build_entity_extraction_prompt,
)
from kbgraph.utils.id_generator import generate_entity_id
from kbgraph.utils.logger import get_logger

logger = get_logger(__name__)

CHUNK_SEPARATOR = "\n\n---\n\n"


class EntityExtractor:
    """
    Extract typed entities from text with an LLM.

    Candidates are filtered in a fixed order: below min_confidence, then
    unknown type, then construction; extraction stops at max_entities.
    Rejected candidates are logged and counted, never raised.
    """

    def __init__(self, llm: LLMProvider, config: EntityExtractionConfig | None = None):
        self.llm = llm
        self.config = config or EntityExtractionConfig()

    def default_options(self) -> EntityExtractionOptions:
        return EntityExtractionOptions(
            min_confidence=self.config.min_confidence,
            max_entities=self.config.max_entities,
            chunk_batch_size=self.config.chunk_batch_size,
        )

    async def extract_entities(
        self,
        content: str,
        chunk_ids: list[str],
        options: EntityExtractionOptions | None = None,
    ) -> EntityExtractionResult:
        """
        Extract entities from one piece of content.

        A failed LLM call (including timeouts and unparseable JSON) yields an
        empty result and a logged warning.

        Args:
            content: Text to analyze
            chunk_ids: IDs of the chunks the content came from
            options: Thresholds, limits and focus types

        Returns:
            EntityExtractionResult with validated entities
        """
        start_time = time.time()
        options = options or self.default_options()

        prompt = build_entity_extraction_prompt(
            content, chunk_ids, options.focus_types, options.additional_context
        )

        try:
            completion = await self.llm.complete_json(
                prompt,
                system_prompt=ENTITY_EXTRACTION_SYSTEM_PROMPT,
                max_tokens=self.config.max_tokens,
                temperature=0.0,
            )
        except Exception as e:
            logger.warning(
                "Entity extraction failed for {} chunks",
                len(chunk_ids),
                extra={"error": str(e)},
            )
            return EntityExtractionResult(processing_time=(time.time() - start_time) * 1000)

        data = completion.data if isinstance(completion.data, dict) else {}
        raw_entities = data.get("entities")
        if not isinstance(raw_entities, list):
            raw_entities = []

        entities: list[BaseEntity] = []
        skipped_low_confidence = 0
        skipped_invalid = 0

        for raw in raw_entities:
            candidate = _parse_candidate(raw)
            if candidate is None:
                skipped_invalid += 1
                continue

            if candidate.confidence < options.min_confidence:
                skipped_low_confidence += 1
                continue

            entity_type = EntityType.parse(candidate.type)
            if entity_type is None:
                logger.warning("Skipping entity with invalid type: {!r}", candidate.type)
                skipped_invalid += 1
                continue

            entity_id = candidate.id or generate_entity_id(entity_type.value)
            source_chunk_ids = candidate.source_chunk_ids or list(chunk_ids)
            try:
                entity = build_entity(entity_type, entity_id, candidate, source_chunk_ids)
            except PydanticValidationError as e:
                logger.warning(
                    "Skipping malformed {} entity",
                    entity_type.value,
                    extra={"error": str(e)},
                )
                skipped_invalid += 1
                continue

            entities.append(entity)
            if len(entities) >= options.max_entities:
                break

        processing_time = (time.time() - start_time) * 1000
        logger.debug(
            "Extracted {} entities in {:.0f}ms",
            len(entities),
            processing_time,
            extra={
                "skipped_low_confidence": skipped_low_confidence,
                "skipped_invalid": skipped_invalid,
                "tokens_used": completion.tokens_used,
            },
        )

        return EntityExtractionResult(
            entities=entities,
            summary=_optional_text(data.get("summary")),
            document_type=_optional_text(data.get("document_type") or data.get("documentType")),
            primary_topic=_optional_text(data.get("primary_topic") or data.get("primaryTopic")),
            tokens_used=completion.tokens_used,
            processing_time=processing_time,
            skipped_low_confidence=skipped_low_confidence,
            skipped_invalid=skipped_invalid,
        )

    async def extract_entities_from_chunks(
        self,
        chunks: list[tuple[str, str]],
        options: EntityExtractionOptions | None = None,
    ) -> EntityExtractionResult:
        """
        Extract entities from a document's chunks and deduplicate them.

        Chunks are processed in document order, chunk_batch_size at a time,
        each batch joined as "[Chunk <id>]" sections. Deduplication runs once
        after every batch has been processed.

        Args:
            chunks: (chunk_id, content) pairs in document order
            options: Extraction options applied to every batch

        Returns:
            Merged result with the first summary, document type and topic seen
        """
        start_time = time.time()
        options = options or self.default_options()
        batch_size = options.chunk_batch_size

        all_entities: list[BaseEntity] = []
        tokens_used = 0
        skipped_low_confidence = 0
        skipped_invalid = 0
        summary = document_type = primary_topic = None

        for offset in range(0, len(chunks), batch_size):
            batch = chunks[offset : offset + batch_size]
            combined = CHUNK_SEPARATOR.join(
                f"[Chunk {chunk_id}]\n{content}" for chunk_id, content in batch
            )
            result = await self.extract_entities(
                combined, [chunk_id for chunk_id, _ in batch], options
            )

            all_entities.extend(result.entities)
            tokens_used += result.tokens_used
            skipped_low_confidence += result.skipped_low_confidence
            skipped_invalid += result.skipped_invalid
            summary = summary or result.summary
            document_type = document_type or result.document_type
            primary_topic = primary_topic or result.primary_topic

        merged = deduplicate_entities(all_entities)
        processing_time = (time.time() - start_time) * 1000
        logger.info(
            "Extracted {} entities ({} before merge) from {} chunks in {:.0f}ms",
            len(merged),
            len(all_entities),
            len(chunks),
            processing_time,
            extra={"tokens_used": tokens_used},
        )

        return EntityExtractionResult(
            entities=merged,
            summary=summary,
            document_type=document_type,
            primary_topic=primary_topic,
            tokens_used=tokens_used,
            processing_time=processing_time,
            skipped_low_confidence=skipped_low_confidence,
            skipped_invalid=skipped_invalid,
        )


# ═══════════════════════════════════════════════════════════
# ENTITY LIST HELPERS
# ═══════════════════════════════════════════════════════════


def _parse_candidate(raw: Any) -> RawEntityCandidate | None:
    if not isinstance(raw, dict):
        return None
    data = dict(raw)
    # Accept camelCase from models that ignore the requested format
    if "source_chunk_ids" not in data and "sourceChunkIds" in data:
        data["source_chunk_ids"] = data["sourceChunkIds"]
    if not isinstance(data.get("metadata"), dict):
        data["metadata"] = {}
    if not isinstance(data.get("source_chunk_ids"), list):
        data.pop("source_chunk_ids", None)
    try:
        candidate = RawEntityCandidate.model_validate(data)
    except PydanticValidationError as e:
        logger.debug("Skipping unparseable entity candidate", extra={"error": str(e)})
        return None
    if not candidate.name.strip():
        return None
    return candidate


def _optional_text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _dedup_key(entity: BaseEntity) -> str:
    return f"{entity.type.value}:{entity.name.strip().lower()}"


def deduplicate_entities(entities: list[BaseEntity]) -> list[BaseEntity]:
    """
    Merge entities that share a type and normalized name.

    The first occurrence keeps its position and variant fields; merged copies
    take the max confidence, the union of source chunk ids, the first
    non-empty description and a shallow metadata merge where later keys win.
    """
    merged: dict[str, BaseEntity] = {}

    for entity in entities:
        key = _dedup_key(entity)
        existing = merged.get(key)
        if existing is None:
            merged[key] = entity
            continue

        merged[key] = existing.model_copy(
            update={
                "confidence": max(existing.confidence, entity.confidence),
                "source_chunk_ids": list(
                    dict.fromkeys([*existing.source_chunk_ids, *entity.source_chunk_ids])
                ),
                "description": existing.description or entity.description,
                "metadata": {**existing.metadata, **entity.metadata},
            }
        )

    return list(merged.values())


def filter_entities_by_type(
    entities: list[BaseEntity], entity_types: EntityType | list[EntityType]
) -> list[BaseEntity]:
    """Entities whose type is one of entity_types, in input order."""
    wanted = {entity_types} if isinstance(entity_types, EntityType) else set(entity_types)
    return [entity for entity in entities if entity.type in wanted]


def get_entity_stats(entities: list[BaseEntity]) -> EntityStats:
    """Counts by type, average confidence and high (>= 0.8) / low (< 0.6) confidence counts."""
    by_type: dict[str, int] = {}
    total_confidence = 0.0
    high = low = 0

    for entity in entities:
        by_type[entity.type.value] = by_type.get(entity.type.value, 0) + 1
        total_confidence += entity.confidence
        if entity.confidence >= 0.8:
            high += 1
        elif entity.confidence < 0.6:
            low += 1

    return EntityStats(
        total=len(entities),
        by_type=by_type,
        average_confidence=total_confidence / len(entities) if entities else 0.0,
        high_confidence=high,
        low_confidence=low,
    )
