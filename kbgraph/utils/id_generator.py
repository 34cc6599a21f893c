"""
ID generation utilities for kbgraph.

Provides consistent ID generation for all stored records:
- Knowledge items: kb_xxx
- Chunks: kb_xxx_chunk_N
- Embeddings: emb_xxx
- Entities: <entity_type>_xxxxxxxx
- Relationships: rel_xxxxxxxx
"""

from uuid import uuid4


def generate_knowledge_item_id() -> str:
    """
    Generate unique knowledge base item ID.

    Returns:
        ID in format "kb_xxx" where xxx is 12 hex characters
    """
    return f"kb_{uuid4().hex[:12]}"


def generate_chunk_id(document_id: str, chunk_index: int) -> str:
    """
    Generate Chunk ID based on parent document.

    Args:
        document_id: Parent document ID
        chunk_index: Zero-based chunk index

    Returns:
        ID in format "<document_id>_chunk_N"
    """
    return f"{document_id}_chunk_{chunk_index}"


def generate_embedding_id() -> str:
    """
    Generate unique stored embedding ID.

    Returns:
        ID in format "emb_xxx" where xxx is 12 hex characters
    """
    return f"emb_{uuid4().hex[:12]}"


def generate_entity_id(entity_type: str) -> str:
    """
    Generate an entity ID prefixed with its type.

    Args:
        entity_type: Entity type value (e.g. "product")

    Returns:
        ID in format "<entity_type>_xxxxxxxx"
    """
    return f"{entity_type}_{uuid4().hex[:8]}"


def generate_relationship_id() -> str:
    """Generate relationship ID in format "rel_xxxxxxxx"."""
    return f"rel_{uuid4().hex[:8]}"
