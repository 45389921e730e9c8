"""Adaptive chunking pipeline.

Splits extracted page text into retrieval-sized chunks. The splitting
strategy comes from the site detector, so documentation is cut along
sections, product pages stay whole and articles are cut on sentence
boundaries.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .site_types import DEFAULT_CHUNKING_STRATEGY, BoundaryMode, ChunkingStrategy

logger = logging.getLogger(__name__)

# Markdown headings or long ALL CAPS lines
HEADING_PATTERN = re.compile(r"^(#{1,6}\s+.+|[A-Z][A-Z\s]{10,})$")
SECTION_SEPARATOR = re.compile(r"\n\n+")


@dataclass(frozen=True)
class ContentChunk:
    """A chunk of page text ready for embedding."""
    text: str
    chunk_index: int
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.text or not self.text.strip():
            raise ValueError("chunk text cannot be empty")
        if self.chunk_index < 0:
            raise ValueError("chunk_index cannot be negative")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "text": self.text,
            "chunk_index": self.chunk_index,
            "metadata": dict(self.metadata),
        }


class AdaptiveChunker:
    """Chunks text according to a site-specific strategy."""

    def __init__(self, strategy: Optional[ChunkingStrategy] = None):
        self.strategy = strategy or DEFAULT_CHUNKING_STRATEGY

    def chunk(self, text: str) -> List[str]:
        """Split text using the strategy's boundary mode."""
        mode = self.strategy.boundary_mode
        size = self.strategy.preferred_size
        overlap = self.strategy.overlap

        if mode == BoundaryMode.PAGE:
            return [text]

        if mode == BoundaryMode.SECTION:
            chunks = self._chunk_by_sections(text, size, overlap)
        elif mode == BoundaryMode.HEADING:
            chunks = self._chunk_by_headings(text, size)
        else:
            chunks = self._chunk_by_paragraphs(text, size, overlap)

        if not chunks and text.strip():
            return [text]
        return chunks

    def _chunk_by_paragraphs(self, text: str, chunk_size: int, overlap: int) -> List[str]:
        """Sliding window that prefers to end on a sentence or line break."""
        chunks = []
        start = 0
        length = len(text)

        while start < length:
            end = min(start + chunk_size, length)
            piece = text[start:end]

            if end < length:
                last_period = piece.rfind(". ")
                last_newline = piece.rfind("\n")
                break_point = max(last_period, last_newline)

                if break_point > chunk_size * 0.5:
                    piece = piece[:break_point + 1]
                    start += break_point + 1
                else:
                    start += chunk_size - overlap
            else:
                start = length

            piece = piece.strip()
            if piece:
                chunks.append(piece)

        return chunks

    def _chunk_by_sections(self, text: str, chunk_size: int, overlap: int) -> List[str]:
        """Accumulate blank-line separated blocks up to the preferred size."""
        sections = SECTION_SEPARATOR.split(text)
        overlap_word_count = overlap // 5
        chunks = []
        current = ""

        for section in sections:
            if current and len(current) + len(section) > chunk_size:
                if current.strip():
                    chunks.append(current.strip())

                # Carry the trailing words of the previous chunk
                carried = current.split(" ")[-overlap_word_count:] if overlap_word_count else []
                carried_text = " ".join(carried).strip()
                current = f"{carried_text}\n\n{section}" if carried_text else section
            else:
                current = f"{current}\n\n{section}" if current else section

        if current.strip():
            chunks.append(current.strip())

        return chunks

    def _chunk_by_headings(self, text: str, chunk_size: int) -> List[str]:
        """Close chunks on headings, force-splitting chunks that grow too large."""
        chunks = []
        current = ""
        last_heading = ""

        for line in text.split("\n"):
            is_heading = bool(HEADING_PATTERN.match(line))

            if is_heading and len(current) >= chunk_size * 0.3:
                if current.strip():
                    chunks.append(current.strip())
                current = line
            else:
                current = f"{current}\n{line}" if current else line

            if is_heading:
                last_heading = line

            if len(current) > chunk_size * 1.5:
                if current.strip():
                    chunks.append(current.strip())
                current = last_heading

        if current.strip():
            chunks.append(current.strip())

        return chunks


def chunk_text(text: str, strategy: Optional[ChunkingStrategy] = None) -> List[str]:
    """Split text with the given strategy (or the default paragraph strategy)."""
    return AdaptiveChunker(strategy).chunk(text)


def build_content_chunks(text: str,
                         strategy: Optional[ChunkingStrategy] = None,
                         source_metadata: Optional[Dict[str, Any]] = None) -> List[ContentChunk]:
    """Chunk text and wrap every non-blank piece with its ordinal and metadata.

    Args:
        text: Extracted page text
        strategy: Chunking strategy chosen for the page
        source_metadata: Metadata copied onto every chunk

    Returns:
        List of ContentChunk in document order
    """
    pieces = [piece for piece in chunk_text(text, strategy) if piece and piece.strip()]
    base = dict(source_metadata or {})

    chunks = []
    for index, piece in enumerate(pieces):
        metadata = dict(base)
        metadata["chunk_index"] = index
        chunks.append(ContentChunk(text=piece, chunk_index=index, metadata=metadata))

    logger.debug(f"Split {len(text)} chars into {len(chunks)} chunks")
    return chunks
