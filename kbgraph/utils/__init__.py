"""Utility modules for kbgraph."""

from kbgraph.utils.exceptions import (
    ConfigurationError,
    EmbeddingError,
    GraphError,
    JSONParseError,
    KBGraphError,
    LLMError,
    NotFoundError,
    StoreError,
    ValidationError,
    VectorStoreError,
)
from kbgraph.utils.id_generator import (
    generate_chunk_id,
    generate_embedding_id,
    generate_entity_id,
    generate_knowledge_item_id,
    generate_relationship_id,
)
from kbgraph.utils.json_repair import (
    parse_json_response,
    repair_truncated_json,
    strip_code_fences,
)
from kbgraph.utils.logger import configure_logging, get_logger, setup_logging

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    "configure_logging",
    # ID Generators
    "generate_knowledge_item_id",
    "generate_chunk_id",
    "generate_embedding_id",
    "generate_entity_id",
    "generate_relationship_id",
    # JSON
    "parse_json_response",
    "repair_truncated_json",
    "strip_code_fences",
    # Exceptions
    "KBGraphError",
    "StoreError",
    "VectorStoreError",
    "ValidationError",
    "NotFoundError",
    "ConfigurationError",
    "EmbeddingError",
    "LLMError",
    "JSONParseError",
    "GraphError",
]
