"""
Document chunking.

chunk_text is a pure function of its input and config (apart from the
timing it reports). Each strategy returns plain strings; chunk_text turns
them into TextChunk records with position metadata.
"""

import math
import re
import time
from collections.abc import Callable

from kbgraph.core.chunking.splitters import (
    detect_content_type,
    fixed_windows,
    recursive_split,
    split_by_markdown_headers,
    split_by_paragraphs,
    split_by_sentences,
)
from kbgraph.core.tokenizer import Tokenizer
from kbgraph.models.chunk import (
    DEFAULT_CHUNKING_CONFIGS,
    DEFAULT_SEPARATORS,
    MARKDOWN_SEPARATORS,
    ChunkingConfig,
    ChunkingInput,
    ChunkingResult,
    ChunkingStrategy,
    ChunkMetadata,
    DocumentContentType,
    TextChunk,
)
from kbgraph.utils.id_generator import generate_chunk_id
from kbgraph.utils.logger import get_logger

logger = get_logger(__name__)

HYBRID_MIN_AVERAGE = 100

_MARKDOWN_HINT = re.compile(r"^#{1,6}\s|```|\*\*|__|\[.*\]\(.*\)")
_CODE_HINT = re.compile(
    r"```"
    r"|\bfunction\s+\w+\s*\("
    r"|\bclass\s+\w+\s*[:({]"
    r"|\b(?:const|let|var)\s+\w+\s*="
    r"|^\s*(?:import|export|def)\s+\w",
    re.MULTILINE,
)


# ═══════════════════════════════════════════════════════════
# STRATEGIES
# ═══════════════════════════════════════════════════════════


def chunk_fixed(text: str, config: ChunkingConfig) -> list[str]:
    """Fixed-size windows; the last partial window is kept as-is."""
    chunks = []
    for window in fixed_windows(text, config.chunk_size, config.chunk_overlap):
        if config.trim_whitespace:
            window = window.strip()
        if window or not config.remove_empty:
            chunks.append(window)
    return chunks


def chunk_by_sentences(text: str, config: ChunkingConfig) -> list[str]:
    """
    Pack whole sentences up to chunk_size.

    A sealed chunk seeds the next one with its trailing sentences, the
    count proportional to chunk_overlap / chunk_size. The final chunk is
    always emitted when it is the only one.
    """
    min_size = config.min_chunk_size or 0
    sentences = split_by_sentences(text)
    if not sentences:
        return [text.strip()] if text.strip() else []

    overlap_ratio = config.chunk_overlap / config.chunk_size
    chunks: list[str] = []
    current = ""
    window: list[str] = []

    for sentence in sentences:
        sentence = sentence.strip()
        candidate = f"{current} {sentence}" if current else sentence

        if len(candidate) <= config.chunk_size:
            current = candidate
            window.append(sentence)
            continue

        if current and len(current) >= min_size:
            chunks.append(current)

        carry = math.ceil(len(window) * overlap_ratio)
        overlap_text = " ".join(window[-carry:]) if carry > 0 else ""
        current = f"{overlap_text} {sentence}" if overlap_text else sentence
        window = [sentence]

    if current and (not chunks or len(current) >= min_size):
        chunks.append(current)

    return chunks


def chunk_by_paragraphs(text: str, config: ChunkingConfig) -> list[str]:
    """
    Pack paragraphs up to chunk_size.

    Oversized paragraphs go through sentence chunking. The next chunk is
    prefixed with the last chunk_overlap characters of the previous one.
    """
    min_size = config.min_chunk_size or 0
    paragraphs = split_by_paragraphs(text)
    if not paragraphs:
        return [text.strip()] if text.strip() else []

    chunks: list[str] = []
    current = ""

    for paragraph in paragraphs:
        candidate = f"{current}\n\n{paragraph}" if current else paragraph

        if len(candidate) <= config.chunk_size:
            current = candidate
            continue

        if current and len(current) >= min_size:
            chunks.append(current)

        if len(paragraph) > config.chunk_size:
            chunks.extend(chunk_by_sentences(paragraph, config))
            current = ""
        else:
            overlap = current[-config.chunk_overlap :] if config.chunk_overlap > 0 else ""
            current = f"{overlap}\n\n{paragraph}" if overlap else paragraph

    if current and (not chunks or len(current) >= min_size):
        chunks.append(current)

    return chunks


def _add_overlap(chunks: list[str], overlap_size: int) -> list[str]:
    # Prefix every chunk but the first with the tail of its predecessor
    if overlap_size <= 0 or len(chunks) <= 1:
        return chunks
    return [chunks[0]] + [
        chunks[i - 1][-overlap_size:] + chunks[i] for i in range(1, len(chunks))
    ]


def chunk_semantic(text: str, config: ChunkingConfig) -> list[str]:
    """
    Keep markdown sections together.

    A section that fits becomes one chunk with its header prefixed; larger
    sections are paragraph-chunked and only their first chunk gets the header.
    """
    min_size = config.min_chunk_size or 0
    chunks: list[str] = []

    for content, header in split_by_markdown_headers(text):
        section_text = f"## {header}\n\n{content}" if header else content

        if len(section_text) <= config.chunk_size:
            if len(section_text) >= min_size:
                chunks.append(section_text)
            continue

        section_chunks = chunk_by_paragraphs(content, config)
        if header and section_chunks:
            section_chunks[0] = f"## {header}\n\n{section_chunks[0]}"
        chunks.extend(section_chunks)

    return _add_overlap(chunks, config.chunk_overlap)


def _finalize_split(raw_chunks: list[str], config: ChunkingConfig) -> list[str]:
    chunks = [c.strip() if config.trim_whitespace else c for c in raw_chunks]
    if config.remove_empty:
        chunks = [c for c in chunks if c.strip()]

    # A lone chunk is kept even when short
    if len(chunks) <= 1:
        return chunks

    min_size = config.min_chunk_size or 0
    return [c for c in chunks if len(c) >= min_size]


def chunk_recursive(text: str, config: ChunkingConfig) -> list[str]:
    separators = config.separators if config.separators is not None else DEFAULT_SEPARATORS
    raw = recursive_split(text, separators, config.chunk_size, config.chunk_overlap)
    return _finalize_split(raw, config)


def chunk_markdown(text: str, config: ChunkingConfig) -> list[str]:
    raw = recursive_split(text, MARKDOWN_SEPARATORS, config.chunk_size, config.chunk_overlap)
    return _finalize_split(raw, config)


def chunk_hybrid(text: str, config: ChunkingConfig) -> list[str]:
    """Semantic chunking, replaced by recursive when its chunks average too small."""
    semantic_chunks = chunk_semantic(text, config)
    threshold = config.min_chunk_size or HYBRID_MIN_AVERAGE

    if not semantic_chunks:
        return chunk_recursive(text, config)

    average = sum(len(c) for c in semantic_chunks) / len(semantic_chunks)
    if average < threshold:
        logger.debug(
            "Hybrid chunking fell back to recursive",
            extra={"average_size": average, "threshold": threshold},
        )
        return chunk_recursive(text, config)

    return semantic_chunks


STRATEGIES: dict[ChunkingStrategy, Callable[[str, ChunkingConfig], list[str]]] = {
    ChunkingStrategy.FIXED: chunk_fixed,
    ChunkingStrategy.SENTENCE: chunk_by_sentences,
    ChunkingStrategy.PARAGRAPH: chunk_by_paragraphs,
    ChunkingStrategy.SEMANTIC: chunk_semantic,
    ChunkingStrategy.RECURSIVE: chunk_recursive,
    ChunkingStrategy.MARKDOWN: chunk_markdown,
    ChunkingStrategy.HYBRID: chunk_hybrid,
}


# ═══════════════════════════════════════════════════════════
# PUBLIC API
# ═══════════════════════════════════════════════════════════


def resolve_config(
    overrides: ChunkingConfig | dict | None = None,
    content_type: DocumentContentType | None = None,
    base: ChunkingConfig | None = None,
) -> ChunkingConfig:
    """
    Merge caller overrides onto a base profile (the "default" profile if none).

    A markdown content type selects the markdown strategy unless the
    overrides name a strategy explicitly.
    """
    base = base or DEFAULT_CHUNKING_CONFIGS["default"]

    if isinstance(overrides, ChunkingConfig):
        override_dict = overrides.model_dump(exclude_unset=True)
    else:
        override_dict = dict(overrides or {})

    config = base.merged(override_dict)

    if "strategy" not in override_dict and content_type == DocumentContentType.MARKDOWN:
        config = config.model_copy(update={"strategy": ChunkingStrategy.MARKDOWN})

    return config


def chunk_text(
    document: ChunkingInput,
    config: ChunkingConfig | dict | None = None,
    tokenizer: Tokenizer | None = None,
) -> ChunkingResult:
    """
    Split a document into chunks.

    Args:
        document: Document id, name, content and optional content type
        config: Overrides merged onto the default profile
        tokenizer: Token counter (defaults to the 4-chars-per-token estimate)

    Returns:
        ChunkingResult with chunks in document order
    """
    start = time.perf_counter()
    tokenizer = tokenizer or Tokenizer()
    resolved = resolve_config(config, document.content_type)
    content = document.content

    raw_chunks = STRATEGIES[resolved.strategy](content, resolved)

    chunks: list[TextChunk] = []
    search_from = 0
    for index, chunk_content in enumerate(raw_chunks):
        # Search forward first so repeated passages map to successive positions
        position = content.find(chunk_content, search_from)
        if position < 0:
            position = content.find(chunk_content)

        if position >= 0:
            start_index, end_index = position, position + len(chunk_content)
            search_from = position + 1
        else:
            start_index, end_index = 0, len(chunk_content)

        chunks.append(
            TextChunk(
                id=generate_chunk_id(document.document_id, index),
                content=chunk_content,
                token_count=tokenizer.count_tokens(chunk_content),
                character_count=len(chunk_content),
                metadata=ChunkMetadata(
                    document_id=document.document_id,
                    document_name=document.document_name,
                    start_index=start_index,
                    end_index=end_index,
                    chunk_index=index,
                    total_chunks=len(raw_chunks),
                    content_type=detect_content_type(chunk_content),
                ),
            )
        )

    processing_time = (time.perf_counter() - start) * 1000

    logger.debug(
        "Chunked {} into {} chunks ({:.1f}ms)",
        document.document_id,
        len(chunks),
        processing_time,
        extra={"strategy": resolved.strategy.value, "original_length": len(content)},
    )

    return ChunkingResult(
        chunks=chunks,
        original_length=len(content),
        chunked_length=sum(c.character_count for c in chunks),
        processing_time=processing_time,
        strategy=resolved.strategy,
        config=resolved,
    )


def chunk_documents(
    documents: list[ChunkingInput],
    config: ChunkingConfig | dict | None = None,
    tokenizer: Tokenizer | None = None,
) -> list[ChunkingResult]:
    """Chunk several documents with the same configuration."""
    tokenizer = tokenizer or Tokenizer()
    return [chunk_text(document, config, tokenizer) for document in documents]


def get_recommended_config(
    content: str, content_type: DocumentContentType | None = None
) -> ChunkingConfig:
    """
    Pick a chunking profile from the content and an optional format hint.

    code -> technical; markdown -> technical with the markdown strategy;
    under 5,000 chars -> precise; over 50,000 chars -> contextual;
    otherwise default.
    """
    if content_type == DocumentContentType.CODE or _CODE_HINT.search(content):
        return DEFAULT_CHUNKING_CONFIGS["technical"]

    if content_type == DocumentContentType.MARKDOWN or _MARKDOWN_HINT.search(content):
        return DEFAULT_CHUNKING_CONFIGS["technical"].model_copy(
            update={"strategy": ChunkingStrategy.MARKDOWN}
        )

    if len(content) < 5000:
        return DEFAULT_CHUNKING_CONFIGS["precise"]

    if len(content) > 50000:
        return DEFAULT_CHUNKING_CONFIGS["contextual"]

    return DEFAULT_CHUNKING_CONFIGS["default"]
