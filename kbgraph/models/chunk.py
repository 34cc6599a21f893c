"""
Chunking models: strategies, configuration profiles and chunk records.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, model_validator


class ChunkingStrategy(str, Enum):
    """Text segmentation strategies."""

    FIXED = "fixed"
    SENTENCE = "sentence"
    PARAGRAPH = "paragraph"
    SEMANTIC = "semantic"
    RECURSIVE = "recursive"
    MARKDOWN = "markdown"
    HYBRID = "hybrid"


class ChunkContentType(str, Enum):
    """Structural type inferred for a chunk."""

    HEADING = "heading"
    PARAGRAPH = "paragraph"
    LIST = "list"
    TABLE = "table"
    CODE = "code"
    QUOTE = "quote"
    UNKNOWN = "unknown"


class DocumentContentType(str, Enum):
    """Source document format hint used to pick a chunking profile."""

    TEXT = "text"
    MARKDOWN = "markdown"
    HTML = "html"
    CODE = "code"


DEFAULT_SEPARATORS = ["\n\n", "\n", ". ", ", ", " ", ""]

MARKDOWN_SEPARATORS = ["\n## ", "\n### ", "\n#### ", "\n\n", "\n", ". ", ", ", " "]


class ChunkingConfig(BaseModel):
    """Chunker configuration. chunk_overlap must stay below chunk_size."""

    strategy: ChunkingStrategy = ChunkingStrategy.RECURSIVE
    chunk_size: int = Field(default=1000, gt=0, description="Target chunk size in characters")
    chunk_overlap: int = Field(default=200, ge=0, description="Characters shared between chunks")
    min_chunk_size: int | None = Field(default=None, ge=0)
    max_chunk_size: int | None = Field(default=None, gt=0)
    separators: list[str] | None = None
    trim_whitespace: bool = True
    remove_empty: bool = True

    @model_validator(mode="after")
    def _check_overlap(self) -> "ChunkingConfig":
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"chunk_overlap ({self.chunk_overlap}) must be smaller than "
                f"chunk_size ({self.chunk_size})"
            )
        return self

    def merged(self, overrides: dict[str, Any] | None) -> "ChunkingConfig":
        """
        Return a validated copy with the given fields replaced.

        When chunk_size is overridden, the overlap and the min/max bounds that
        were not overridden are rescaled by the same ratio so the profile
        stays consistent (e.g. a 200-char overlap never outlives a 100-char
        chunk size). Explicitly passed values are used as given and still
        validated.
        """
        if not overrides:
            return self

        data = {**self.model_dump(), **overrides}
        new_size = overrides.get("chunk_size")
        if new_size and new_size != self.chunk_size:
            ratio = new_size / self.chunk_size
            if "chunk_overlap" not in overrides:
                data["chunk_overlap"] = int(self.chunk_overlap * ratio)
            if "min_chunk_size" not in overrides and self.min_chunk_size is not None:
                data["min_chunk_size"] = int(self.min_chunk_size * ratio)
            if "max_chunk_size" not in overrides and self.max_chunk_size is not None:
                data["max_chunk_size"] = max(int(self.max_chunk_size * ratio), 1)

        return ChunkingConfig.model_validate(data)


DEFAULT_CHUNKING_CONFIGS: dict[str, ChunkingConfig] = {
    "default": ChunkingConfig(
        strategy=ChunkingStrategy.RECURSIVE,
        chunk_size=1000,
        chunk_overlap=200,
        min_chunk_size=100,
        max_chunk_size=2000,
    ),
    # Marketing copy: keeps sections and headers together
    "marketing": ChunkingConfig(
        strategy=ChunkingStrategy.SEMANTIC,
        chunk_size=800,
        chunk_overlap=150,
        min_chunk_size=100,
        max_chunk_size=1500,
    ),
    "technical": ChunkingConfig(
        strategy=ChunkingStrategy.MARKDOWN,
        chunk_size=1500,
        chunk_overlap=300,
        min_chunk_size=200,
        max_chunk_size=3000,
    ),
    "precise": ChunkingConfig(
        strategy=ChunkingStrategy.SENTENCE,
        chunk_size=500,
        chunk_overlap=100,
        min_chunk_size=50,
        max_chunk_size=800,
    ),
    "contextual": ChunkingConfig(
        strategy=ChunkingStrategy.PARAGRAPH,
        chunk_size=2000,
        chunk_overlap=400,
        min_chunk_size=300,
        max_chunk_size=4000,
    ),
}


class ChunkMetadata(BaseModel):
    """Position and provenance of a chunk within its source document."""

    document_id: str
    document_name: str
    start_index: int = 0
    end_index: int = 0
    chunk_index: int = 0
    total_chunks: int = 1
    content_type: ChunkContentType = ChunkContentType.PARAGRAPH
    section_header: str | None = None


class TextChunk(BaseModel):
    """A bounded slice of document text."""

    id: str
    content: str
    token_count: int = Field(..., description="Estimated token count (~4 chars per token)")
    character_count: int
    metadata: ChunkMetadata


class ChunkingInput(BaseModel):
    """A document submitted for chunking."""

    document_id: str
    document_name: str
    content: str
    content_type: DocumentContentType | None = None


class ChunkingResult(BaseModel):
    """Chunks produced for one document plus timing/accounting."""

    chunks: list[TextChunk]
    original_length: int
    chunked_length: int
    processing_time: float = Field(..., description="Milliseconds spent chunking")
    strategy: ChunkingStrategy
    config: ChunkingConfig
