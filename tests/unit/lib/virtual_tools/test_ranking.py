"""Unit tests for embedding similarity ranking."""

from toolscope.lib.virtual_tools.ranking import (
    RankedEmbedding,
    _cosine_similarity,
    cosine_distance,
    rank_embeddings,
)


class TestCosineSimilarity:
    """Tests for cosine similarity helper function."""

    def test_identical_vectors(self) -> None:
        """Test cosine similarity of identical vectors is 1.0."""
        vec = [1.0, 2.0, 3.0]
        result = _cosine_similarity(vec, vec)
        assert abs(result - 1.0) < 1e-6

    def test_orthogonal_vectors(self) -> None:
        """Test cosine similarity of orthogonal vectors is 0.0."""
        result = _cosine_similarity([1.0, 0.0], [0.0, 1.0])
        assert abs(result) < 1e-6

    def test_different_lengths(self) -> None:
        """Test that different length vectors return 0.0."""
        assert _cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0]) == 0.0

    def test_zero_vector(self) -> None:
        """Test that zero vector returns 0.0."""
        assert _cosine_similarity([0.0, 0.0], [1.0, 2.0]) == 0.0


class TestCosineDistance:
    """Tests for cosine distance."""

    def test_identical_is_zero(self) -> None:
        """Test identical directions have zero distance."""
        assert abs(cosine_distance([2.0, 0.0], [5.0, 0.0])) < 1e-6

    def test_opposite_is_two(self) -> None:
        """Test opposite directions have distance 2."""
        assert abs(cosine_distance([1.0, 0.0], [-1.0, 0.0]) - 2.0) < 1e-6


class TestRankEmbeddings:
    """Tests for rank_embeddings."""

    def test_orders_closest_first(self) -> None:
        """Test results are sorted by ascending distance."""
        corpus = [
            ("far", [-1.0, 0.0]),
            ("near", [1.0, 0.1]),
            ("middle", [0.0, 1.0]),
        ]

        ranked = rank_embeddings([1.0, 0.0], corpus, 3)

        assert [r.key for r in ranked] == ["near", "middle", "far"]
        assert all(isinstance(r, RankedEmbedding) for r in ranked)

    def test_truncates_to_count(self) -> None:
        """Test at most count results are returned."""
        corpus = [(f"t{i}", [1.0, float(i)]) for i in range(5)]

        ranked = rank_embeddings([1.0, 0.0], corpus, 2)

        assert [r.key for r in ranked] == ["t0", "t1"]

    def test_count_larger_than_corpus(self) -> None:
        """Test a large count returns the whole corpus."""
        ranked = rank_embeddings([1.0], [("a", [1.0])], 10)

        assert [r.key for r in ranked] == ["a"]

    def test_non_positive_count(self) -> None:
        """Test zero or negative count returns nothing."""
        corpus = [("a", [1.0])]

        assert rank_embeddings([1.0], corpus, 0) == []
        assert rank_embeddings([1.0], corpus, -1) == []

    def test_ties_broken_by_key(self) -> None:
        """Test equal distances are ordered by key."""
        corpus = [("b", [1.0, 0.0]), ("a", [2.0, 0.0]), ("c", [3.0, 0.0])]

        ranked = rank_embeddings([1.0, 0.0], corpus, 3)

        assert [r.key for r in ranked] == ["a", "b", "c"]

    def test_custom_distance(self) -> None:
        """Test a custom distance function is used."""

        def by_first_component(a: list[float], b: list[float]) -> float:
            return abs(a[0] - b[0])

        corpus = [("x", [10.0]), ("y", [3.0])]

        ranked = rank_embeddings([2.0], corpus, 2, distance=by_first_component)

        assert ranked == [
            RankedEmbedding(key="y", distance=1.0),
            RankedEmbedding(key="x", distance=8.0),
        ]
