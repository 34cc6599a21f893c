"""
Low-level text splitting primitives shared by the chunking strategies.
"""

import re

from kbgraph.models.chunk import ChunkContentType

_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+(?=[A-Z])|(?<=[.!?])$")
_PARAGRAPH_BOUNDARY = re.compile(r"\n\s*\n")
_MARKDOWN_HEADER = re.compile(r"^(#{1,6})\s+(.+)$", re.MULTILINE)

_HEADING = re.compile(r"^#{1,6}\s")
_LIST_ITEM = re.compile(r"^[-*+]\s|^\d+\.\s")
_CODE = re.compile(r"^```|^    |\t")
_QUOTE = re.compile(r"^>")
_TABLE_ROW = re.compile(r"\|.*\|")
_TABLE_RULE = re.compile(r"-{3,}")


def split_by_sentences(text: str) -> list[str]:
    """Split on terminal punctuation followed by whitespace and a capital letter."""
    return [s for s in _SENTENCE_BOUNDARY.split(text) if s.strip()]


def split_by_paragraphs(text: str) -> list[str]:
    """Split on blank lines."""
    return [p for p in _PARAGRAPH_BOUNDARY.split(text) if p.strip()]


def split_by_markdown_headers(text: str) -> list[tuple[str, str | None]]:
    """
    Split markdown into (content, header) sections.

    Content before the first header gets header None. Header lines themselves
    are not part of the content.
    """
    sections: list[tuple[str, str | None]] = []
    last_index = 0
    current_header: str | None = None

    for match in _MARKDOWN_HEADER.finditer(text):
        if match.start() > last_index:
            content = text[last_index : match.start()].strip()
            if content:
                sections.append((content, current_header))
        current_header = match.group(2).strip()
        last_index = match.end()

    remaining = text[last_index:].strip()
    if remaining:
        sections.append((remaining, current_header))

    return sections


def detect_content_type(text: str) -> ChunkContentType:
    """Infer the structural type of a chunk from its leading markup."""
    trimmed = text.strip()
    if not trimmed:
        return ChunkContentType.UNKNOWN
    if _HEADING.search(trimmed):
        return ChunkContentType.HEADING
    if _LIST_ITEM.search(trimmed):
        return ChunkContentType.LIST
    if _CODE.search(trimmed):
        return ChunkContentType.CODE
    if _QUOTE.search(trimmed):
        return ChunkContentType.QUOTE
    if _TABLE_ROW.search(trimmed) and _TABLE_RULE.search(trimmed):
        return ChunkContentType.TABLE
    return ChunkContentType.PARAGRAPH


def fixed_windows(text: str, chunk_size: int, chunk_overlap: int) -> list[str]:
    """Slide a chunk_size window over text, advancing chunk_size - chunk_overlap."""
    step = chunk_size - chunk_overlap
    if step <= 0:
        raise ValueError("chunk_overlap must be smaller than chunk_size")
    return [text[i : i + chunk_size] for i in range(0, len(text), step)]


def _split_on(text: str, separator: str) -> list[str]:
    # The empty separator means "split into characters"
    return list(text) if separator == "" else text.split(separator)


def recursive_split(
    text: str, separators: list[str], chunk_size: int, chunk_overlap: int
) -> list[str]:
    """
    Split text on the coarsest separator that divides it, packing parts greedily.

    Parts still larger than chunk_size are split again using only the finer
    separators that follow. When no separator divides a segment, it is cut
    into fixed windows. Runs on an explicit work stack; each level strictly
    shortens the separator list, so the work is bounded by
    len(separators) + 1 levels.
    """
    chunks: list[str] = []
    # Items are finished chunks (str) or pending (segment, separators) work
    stack: list[str | tuple[str, list[str]]] = [(text, list(separators))]

    while stack:
        item = stack.pop()
        if isinstance(item, str):
            chunks.append(item)
            continue

        segment, seps = item
        if len(segment) <= chunk_size:
            chunks.append(segment)
            continue

        pieces: list[str | tuple[str, list[str]]] | None = None
        for position, separator in enumerate(seps):
            splits = _split_on(segment, separator)
            if len(splits) <= 1:
                continue

            pieces = []
            finer = seps[position + 1 :]
            current = ""
            for split in splits:
                candidate = f"{current}{separator}{split}" if current else split
                if len(candidate) <= chunk_size:
                    current = candidate
                    continue
                if current:
                    pieces.append(current)
                if len(split) > chunk_size:
                    pieces.append((split, finer))
                    current = ""
                else:
                    current = split
            if current:
                pieces.append(current)
            break

        if pieces is None:
            pieces = list(fixed_windows(segment, chunk_size, chunk_overlap))

        # Reverse so the first piece is popped first and document order holds
        stack.extend(reversed(pieces))

    return chunks
