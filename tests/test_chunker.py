import pytest

from pipelines.chunker import AdaptiveChunker, ContentChunk, build_content_chunks, chunk_text
from pipelines.site_types import (
    CHUNKING_STRATEGIES,
    BoundaryMode,
    ChunkingStrategy,
    SiteType,
    get_chunking_strategy,
)

PARAGRAPH = ChunkingStrategy(preferred_size=1000, overlap=200, boundary_mode=BoundaryMode.PARAGRAPH)


def test_chunker_without_breaks_uses_overlap_window():
    """Text with no sentence or line breaks is cut on a fixed window."""
    text = "a" * 2500
    chunks = chunk_text(text, PARAGRAPH)
    assert [len(c) for c in chunks] == [1000, 1000, 900]
    assert all(c.strip() for c in chunks)


def test_chunker_respects_size():
    text = "A" * 2500
    chunks = chunk_text(text, PARAGRAPH)
    assert all(len(c) <= 1000 for c in chunks)


def test_chunker_prefers_sentence_breaks():
    sentence = "This is a sentence of moderate length for testing. "
    text = sentence * 40
    chunks = chunk_text(text, PARAGRAPH)
    assert len(chunks) > 1
    for chunk in chunks[:-1]:
        assert chunk.endswith(".")
        assert len(chunk) <= 1000


def test_chunker_with_small_text():
    chunks = chunk_text("Short text", PARAGRAPH)
    assert chunks == ["Short text"]


def test_chunker_empty_text():
    assert chunk_text("", PARAGRAPH) == []
    assert chunk_text("   \n\n  ", PARAGRAPH) == []


def test_page_mode_returns_text_unchanged():
    strategy = get_chunking_strategy(SiteType.ECOMMERCE)
    text = "Product name\n\n" + "x" * 5000
    assert chunk_text(text, strategy) == [text]


def test_section_mode_groups_blocks():
    strategy = ChunkingStrategy(preferred_size=100, overlap=0, boundary_mode=BoundaryMode.SECTION)
    sections = ["Section %d " % i + "word " * 10 for i in range(6)]
    chunks = chunk_text("\n\n".join(sections), strategy)
    assert len(chunks) > 1
    assert all(c.strip() for c in chunks)
    # No section is split in the middle
    joined = "\n\n".join(chunks)
    for section in sections:
        assert section.strip() in joined


def test_section_mode_carries_overlap_words():
    strategy = ChunkingStrategy(preferred_size=60, overlap=10, boundary_mode=BoundaryMode.SECTION)
    text = "alpha beta gamma delta epsilon zeta eta theta\n\niota kappa lambda mu nu xi omicron pi"
    chunks = chunk_text(text, strategy)
    assert len(chunks) == 2
    # overlap // 5 = 2 trailing words are carried into the next chunk
    assert chunks[1].startswith("eta theta")


def test_heading_mode_splits_on_headings():
    strategy = ChunkingStrategy(preferred_size=100, overlap=0, boundary_mode=BoundaryMode.HEADING)
    text = (
        "# Introduction\n" + "Intro text line. " * 3 + "\n"
        "# Installation\n" + "Install text line. " * 3 + "\n"
        "# Usage\n" + "Usage text line. " * 3
    )
    chunks = chunk_text(text, strategy)
    assert len(chunks) == 3
    assert chunks[0].startswith("# Introduction")
    assert chunks[1].startswith("# Installation")
    assert chunks[2].startswith("# Usage")


def test_heading_mode_force_splits_long_sections():
    strategy = ChunkingStrategy(preferred_size=100, overlap=0, boundary_mode=BoundaryMode.HEADING)
    text = "# Reference\n" + "\n".join("line of reference text" for _ in range(30))
    chunks = chunk_text(text, strategy)
    assert len(chunks) > 1
    assert all(len(c) <= 150 + len("line of reference text") + 1 for c in chunks)


def test_every_chunk_is_non_empty_for_all_strategies():
    text = "\n\n".join(["## Heading %d\n\n" % i + "Body sentence. " * 30 for i in range(5)])
    for site_type, strategy in CHUNKING_STRATEGIES.items():
        chunks = AdaptiveChunker(strategy).chunk(text)
        assert chunks, site_type
        assert all(c and c.strip() for c in chunks), site_type


class TestChunkingStrategy:
    """Strategy validation."""

    def test_overlap_must_be_smaller_than_size(self):
        with pytest.raises(ValueError):
            ChunkingStrategy(preferred_size=100, overlap=100, boundary_mode=BoundaryMode.PARAGRAPH)

    def test_size_must_be_positive(self):
        with pytest.raises(ValueError):
            ChunkingStrategy(preferred_size=0, overlap=0, boundary_mode=BoundaryMode.PARAGRAPH)

    def test_boundary_mode_accepts_strings(self):
        strategy = ChunkingStrategy(preferred_size=100, overlap=10, boundary_mode="section")
        assert strategy.boundary_mode is BoundaryMode.SECTION

    def test_unknown_uses_default_strategy(self):
        strategy = get_chunking_strategy(SiteType.UNKNOWN)
        assert strategy.preferred_size == 1000
        assert strategy.overlap == 200
        assert strategy.boundary_mode is BoundaryMode.PARAGRAPH


class TestBuildContentChunks:
    """Chunk wrapping with metadata."""

    def test_chunks_carry_ordinals_and_metadata(self):
        chunks = build_content_chunks("a" * 2500, PARAGRAPH, {"url": "https://example.com/a"})
        assert [c.chunk_index for c in chunks] == [0, 1, 2]
        for chunk in chunks:
            assert chunk.metadata["url"] == "https://example.com/a"
            assert chunk.metadata["chunk_index"] == chunk.chunk_index

    def test_metadata_is_copied_per_chunk(self):
        source = {"url": "https://example.com"}
        chunks = build_content_chunks("a" * 2500, PARAGRAPH, source)
        chunks[0].metadata["extra"] = True
        assert "extra" not in chunks[1].metadata
        assert "extra" not in source

    def test_blank_text_gives_no_chunks(self):
        assert build_content_chunks("   ", PARAGRAPH) == []

    def test_content_chunk_rejects_empty_text(self):
        with pytest.raises(ValueError):
            ContentChunk(text="  ", chunk_index=0)
