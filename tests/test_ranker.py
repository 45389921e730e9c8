"""Tests for cosine similarity ranking."""

import pytest

from indexer.ranker import RetrievalResult, cosine_similarity, rank
from indexer.website_store import StoredChunk


def chunk(text, embedding, **metadata):
    return StoredChunk(text=text, embedding=list(embedding), chunk_index=0, metadata=metadata)


class TestCosineSimilarity:
    """Similarity of two vectors."""

    def test_orthogonal_vectors(self):
        assert cosine_similarity([1, 0, 0], [0, 1, 0]) == 0.0

    def test_identical_vectors(self):
        assert cosine_similarity([0.3, 0.4], [0.3, 0.4]) == pytest.approx(1.0)

    def test_opposite_vectors(self):
        assert cosine_similarity([1, 2], [-1, -2]) == pytest.approx(-1.0)

    def test_zero_vector(self):
        assert cosine_similarity([0, 0, 0], [1, 2, 3]) == 0.0

    def test_result_in_range(self):
        value = cosine_similarity([1e-3, 5.0, -2.0], [4.0, 1e-3, 7.5])
        assert -1.0 <= value <= 1.0

    def test_dimension_mismatch(self):
        with pytest.raises(ValueError):
            cosine_similarity([1, 0], [1, 0, 0])


class TestRank:
    """Top-K ranking over stored chunks."""

    def setup_method(self):
        self.candidates = [
            chunk("east", [1, 0], title="East"),
            chunk("north", [0, 1], title="North"),
            chunk("north-east", [1, 1], title="NE"),
        ]

    def test_most_similar_first(self):
        results = rank([1, 0.1], self.candidates, top_k=3)

        assert [r.text for r in results] == ["east", "north-east", "north"]
        similarities = [r.similarity for r in results]
        assert similarities == sorted(similarities, reverse=True)

    def test_top_k_limits_results(self):
        results = rank([1, 0], self.candidates, top_k=2)
        assert len(results) == 2

    def test_top_k_larger_than_candidates(self):
        assert len(rank([1, 0], self.candidates, top_k=10)) == 3

    def test_top_k_zero(self):
        assert rank([1, 0], self.candidates, top_k=0) == []

    def test_negative_top_k(self):
        with pytest.raises(ValueError):
            rank([1, 0], self.candidates, top_k=-1)

    def test_no_candidates(self):
        assert rank([1, 0], [], top_k=5) == []

    def test_ties_keep_insertion_order(self):
        candidates = [chunk(f"c{i}", [1, 0]) for i in range(5)]
        results = rank([1, 0], candidates, top_k=5)
        assert [r.text for r in results] == ["c0", "c1", "c2", "c3", "c4"]

    def test_zero_embedding_scores_zero(self):
        candidates = [chunk("empty", [0, 0]), chunk("match", [0, 1])]
        results = rank([0, 1], candidates, top_k=2)
        assert results[0].text == "match"
        assert results[1].similarity == 0.0

    def test_dimension_mismatch(self):
        with pytest.raises(ValueError):
            rank([1, 0, 0], self.candidates, top_k=2)

    def test_metadata_is_copied(self):
        result = rank([1, 0], self.candidates, top_k=1)[0]
        assert result.metadata == {"title": "East"}
        result.metadata["title"] = "Changed"
        assert self.candidates[0].metadata["title"] == "East"

    def test_result_to_dict(self):
        data = RetrievalResult(text="t", metadata={"a": 1}, similarity=0.5).to_dict()
        assert data == {"text": "t", "metadata": {"a": 1}, "similarity": 0.5}
