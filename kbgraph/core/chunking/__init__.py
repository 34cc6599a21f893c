"""
Text chunking: seven strategies behind a single chunk_text entry point.
"""

from kbgraph.core.chunking.chunker import (
    STRATEGIES,
    chunk_documents,
    chunk_text,
    get_recommended_config,
    resolve_config,
)
from kbgraph.core.chunking.splitters import (
    detect_content_type,
    recursive_split,
    split_by_markdown_headers,
    split_by_paragraphs,
    split_by_sentences,
)

__all__ = [
    "STRATEGIES",
    "chunk_text",
    "chunk_documents",
    "get_recommended_config",
    "resolve_config",
    "detect_content_type",
    "recursive_split",
    "split_by_markdown_headers",
    "split_by_paragraphs",
    "split_by_sentences",
]
