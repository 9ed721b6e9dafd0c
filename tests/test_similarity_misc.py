# tests/test_similarity_misc.py
import numpy as np
import pytest

from utils.similarity import find_most_similar, numpy_cosine_similarity


def test_numpy_cosine_similarity_basic():
    v1 = np.array([1.0, 0.0])
    v2 = np.array([1.0, 0.0])
    assert numpy_cosine_similarity(v1, v2) == 1.0


def test_numpy_cosine_similarity_none():
    assert numpy_cosine_similarity(None, None) == 0.0


def test_numpy_cosine_similarity_shape_mismatch():
    assert numpy_cosine_similarity(np.array([1.0, 0.0]), np.array([1.0])) == 0.0


def test_numpy_cosine_similarity_zero_norm():
    assert numpy_cosine_similarity(np.zeros(3), np.array([1.0, 2.0, 3.0])) == 0.0


def test_numpy_cosine_similarity_symmetric_and_bounded():
    rng = np.random.default_rng(7)
    for _ in range(20):
        a = rng.normal(size=16)
        b = rng.normal(size=16)
        ab = numpy_cosine_similarity(a, b)
        assert ab == pytest.approx(numpy_cosine_similarity(b, a))
        assert -1.0 <= ab <= 1.0


def test_numpy_cosine_similarity_opposite():
    assert numpy_cosine_similarity(
        np.array([1.0, 2.0]), np.array([-1.0, -2.0])
    ) == pytest.approx(-1.0)


def test_find_most_similar_picks_best():
    items = [("a", np.array([0.0, 1.0])), ("b", np.array([1.0, 0.1]))]
    best, sim = find_most_similar(np.array([1.0, 0.0]), items, lambda i: i[1])
    assert best[0] == "b"
    assert sim == pytest.approx(0.995, abs=1e-3)


def test_find_most_similar_empty():
    assert find_most_similar(np.array([1.0]), [], lambda i: i) == (None, 0.0)
