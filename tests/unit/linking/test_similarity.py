import numpy as np
import pytest

from ideagraph.services.linking.similarity import (
    batch_count,
    candidate_pairs,
    greedy_dedup,
    similarity_matrix,
)

A = [1.0, 0.0, 0.0]
B = [0.95, 0.3122499, 0.0]
C = [0.5, 0.0, 0.8660254]


def _symmetric(values, size):
    matrix = np.eye(size)
    for (i, j), value in values.items():
        matrix[i, j] = matrix[j, i] = value
    return matrix


class TestSimilarityMatrix:

    def test_cosine_values(self):
        matrix = similarity_matrix([A, B, C])
        assert matrix[0, 1] == pytest.approx(0.95, abs=1e-6)
        assert matrix[0, 2] == pytest.approx(0.5, abs=1e-6)
        assert matrix[1, 2] == pytest.approx(0.475, abs=1e-6)
        assert np.allclose(np.diag(matrix), 1.0)

    def test_zero_vector_compares_as_zero(self):
        matrix = similarity_matrix([[0.0, 0.0], [1.0, 0.0]])
        assert matrix[0, 1] == 0.0
        assert matrix[0, 0] == 0.0

    def test_empty(self):
        assert similarity_matrix([]).shape == (0, 0)


class TestGreedyDedup:

    def test_threshold_is_inclusive(self):
        matrix = _symmetric({(0, 1): 0.88}, 2)
        assert greedy_dedup(matrix, 0.88) == [1]

    def test_below_threshold_survives(self):
        matrix = _symmetric({(0, 1): 0.8799}, 2)
        assert greedy_dedup(matrix, 0.88) == []

    def test_chain_is_not_transitive(self):
        # 0~1 and 1~2, but 0 and 2 are far apart: only 1 is merged
        matrix = _symmetric({(0, 1): 0.9, (1, 2): 0.9, (0, 2): 0.5}, 3)
        assert greedy_dedup(matrix, 0.88) == [1]

    def test_earliest_index_survives(self):
        matrix = _symmetric({(0, 1): 0.95, (0, 2): 0.95, (1, 2): 0.95}, 3)
        assert greedy_dedup(matrix, 0.88) == [1, 2]

    def test_second_pass_over_survivors_merges_nothing(self):
        matrix = similarity_matrix([A, B, C, [0.0, 1.0, 0.0], [0.0, 0.99, 0.1]])
        merged = greedy_dedup(matrix, 0.88)
        keep = [i for i in range(matrix.shape[0]) if i not in set(merged)]

        assert merged == [1, 4]
        assert greedy_dedup(matrix[np.ix_(keep, keep)], 0.88) == []


class TestCandidatePairs:

    def test_threshold_is_exclusive(self):
        matrix = _symmetric({(0, 1): 0.4, (0, 2): 0.4001, (1, 2): 0.1}, 3)
        pairs = candidate_pairs(["a", "b", "c"], matrix, 0.4, 20)
        assert [(p.source_id, p.target_id) for p in pairs] == [("a", "c")]

    def test_ranked_descending_with_batch_index(self):
        matrix = _symmetric({(0, 1): 0.5, (0, 2): 0.9, (1, 2): 0.7}, 3)
        pairs = candidate_pairs(["a", "b", "c"], matrix, 0.4, 2)

        assert [(p.source_id, p.target_id) for p in pairs] == [("a", "c"), ("b", "c"), ("a", "b")]
        assert [p.batch_index for p in pairs] == [0, 0, 1]
        assert pairs[0].similarity == pytest.approx(0.9)

    def test_ties_keep_index_order(self):
        matrix = _symmetric({(0, 1): 0.6, (0, 2): 0.6, (1, 2): 0.6}, 3)
        pairs = candidate_pairs(["a", "b", "c"], matrix, 0.4, 20)
        assert [(p.source_id, p.target_id) for p in pairs] == [("a", "b"), ("a", "c"), ("b", "c")]

    def test_no_pairs(self):
        assert candidate_pairs(["a"], np.eye(1), 0.4, 20) == []


@pytest.mark.parametrize("pairs,size,expected", [(0, 20, 0), (1, 20, 1), (20, 20, 1), (41, 20, 3)])
def test_batch_count(pairs, size, expected):
    assert batch_count(pairs, size) == expected
