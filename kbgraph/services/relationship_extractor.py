"""
LLM-backed relationship extraction between already extracted entities.
"""

import time

from pydantic import ValidationError as PydanticValidationError

from kbgraph.config import RelationshipExtractionConfig
from kbgraph.core.llm.base import LLMProvider
from kbgraph.models.entity import BaseEntity
from kbgraph.models.relationship import (
    EntityRelationship,
    RawRelationshipCandidate,
    RelationshipExtractionOptions,
    RelationshipExtractionResult,
    RelationshipType,
)
from kbgraph.services.prompts import (
    RELATIONSHIP_EXTRACTION_SYSTEM_PROMPT,
    build_relationship_extraction_prompt,
)
from kbgraph.utils.id_generator import generate_relationship_id
from kbgraph.utils.logger import get_logger

logger = get_logger(__name__)

_CAMEL_CASE_FIELDS = {
    "sourceEntityId": "source_entity_id",
    "targetEntityId": "target_entity_id",
    "relationshipType": "relationship_type",
}


class RelationshipExtractor:
    """Propose relationships with an LLM and keep only well-formed, confident, resolvable ones."""

    def __init__(self, llm: LLMProvider, config: RelationshipExtractionConfig | None = None):
        self.llm = llm
        self.config = config or RelationshipExtractionConfig()

    async def extract_relationships(
        self,
        entities: list[BaseEntity],
        options: RelationshipExtractionOptions | None = None,
    ) -> RelationshipExtractionResult:
        """
        Extract directed relationships among the given entities.

        Fewer than two entities short-circuits without calling the LLM.
        Candidates below min_confidence, with an unknown type, or whose
        endpoints are not in the entity set are dropped and counted. A failed
        LLM call yields an empty result and a logged warning.
        """
        start_time = time.time()
        if options is None:
            options = RelationshipExtractionOptions(min_confidence=self.config.min_confidence)

        if len(entities) < 2:
            return RelationshipExtractionResult()

        entity_list = [
            {
                "id": entity.id,
                "type": entity.type.value,
                "name": entity.name,
                "description": entity.description,
            }
            for entity in entities
        ]
        prompt = build_relationship_extraction_prompt(
            entity_list, options.min_confidence, options.additional_context
        )

        try:
            completion = await self.llm.complete_json(
                prompt,
                system_prompt=RELATIONSHIP_EXTRACTION_SYSTEM_PROMPT,
                max_tokens=self.config.max_tokens,
                temperature=0.0,
            )
        except Exception as e:
            logger.warning(
                "Relationship extraction failed for {} entities",
                len(entities),
                extra={"error": str(e)},
            )
            return RelationshipExtractionResult(processing_time=(time.time() - start_time) * 1000)

        data = completion.data if isinstance(completion.data, dict) else {}
        raw_relationships = data.get("relationships")
        if not isinstance(raw_relationships, list):
            raw_relationships = []

        entity_ids = {entity.id for entity in entities}
        relationships: list[EntityRelationship] = []
        dropped_low_confidence = 0
        dropped_dangling = 0
        dropped_invalid_type = 0

        for raw in raw_relationships:
            candidate = _parse_candidate(raw)
            if candidate is None:
                dropped_invalid_type += 1
                continue

            if candidate.confidence < options.min_confidence:
                dropped_low_confidence += 1
                continue

            if (
                candidate.source_entity_id not in entity_ids
                or candidate.target_entity_id not in entity_ids
            ):
                logger.debug(
                    "Dropping relationship with unknown endpoint: {} -> {}",
                    candidate.source_entity_id,
                    candidate.target_entity_id,
                )
                dropped_dangling += 1
                continue

            relationship_type = RelationshipType.parse(candidate.relationship_type)
            if relationship_type is None:
                logger.warning(
                    "Dropping relationship with invalid type: {!r}", candidate.relationship_type
                )
                dropped_invalid_type += 1
                continue

            relationships.append(
                EntityRelationship(
                    id=candidate.id or generate_relationship_id(),
                    source_entity_id=candidate.source_entity_id,
                    target_entity_id=candidate.target_entity_id,
                    relationship_type=relationship_type,
                    confidence=min(max(candidate.confidence, 0.0), 1.0),
                    metadata=dict(candidate.metadata),
                )
            )

        result = RelationshipExtractionResult(
            relationships=relationships,
            tokens_used=completion.tokens_used,
            processing_time=(time.time() - start_time) * 1000,
            dropped_low_confidence=dropped_low_confidence,
            dropped_dangling=dropped_dangling,
            dropped_invalid_type=dropped_invalid_type,
        )

        if result.dropped_count:
            logger.info(
                "Kept {} relationships, dropped {}",
                len(relationships),
                result.dropped_count,
                extra={
                    "dropped_low_confidence": dropped_low_confidence,
                    "dropped_dangling": dropped_dangling,
                    "dropped_invalid_type": dropped_invalid_type,
                },
            )

        return result


def _parse_candidate(raw: object) -> RawRelationshipCandidate | None:
    if not isinstance(raw, dict):
        return None
    data = dict(raw)
    for camel, snake in _CAMEL_CASE_FIELDS.items():
        if snake not in data and camel in data:
            data[snake] = data[camel]
    if not isinstance(data.get("metadata"), dict):
        data["metadata"] = {}
    try:
        return RawRelationshipCandidate.model_validate(data)
    except PydanticValidationError as e:
        logger.debug("Skipping unparseable relationship candidate", extra={"error": str(e)})
        return None
