import numpy as np
import pytest

from brushsplat.eigen import compute_sorted_eigenvectors, find_eigenvector, solve_cubic


def _symmetric(seed):
    rng = np.random.default_rng(seed)
    base = rng.normal(size=(3, 3))
    return base + base.T


@pytest.mark.parametrize("coeffs", [(1.0, -6.0, 11.0, -6.0), (-1.0, 2.0, 5.0, -6.0), (2.0, 0.0, -8.0, 1.0)])
def test_solve_cubic_matches_numpy(coeffs):
    roots = solve_cubic(*coeffs)
    expected = sorted(np.roots(coeffs).real, reverse=True)
    assert np.allclose(roots, expected, atol=1e-9)


def test_solve_cubic_descending():
    roots = solve_cubic(1.0, -1.0, -4.0, 4.0)
    assert list(roots) == sorted(roots, reverse=True)


def test_solve_cubic_triple_root():
    # -(x - 2)^3
    roots = solve_cubic(-1.0, 6.0, -12.0, 8.0)
    assert np.allclose(roots, (2.0, 2.0, 2.0))


@pytest.mark.parametrize("seed", [0, 1, 2, 3])
def test_eigenvectors_satisfy_definition(seed):
    matrix = _symmetric(seed)
    vectors = compute_sorted_eigenvectors(matrix)
    values = sorted(np.linalg.eigvalsh(matrix), reverse=True)
    for vec, val in zip(vectors, values):
        assert np.isclose(np.linalg.norm(vec), 1.0)
        assert np.allclose(matrix @ vec, val * vec, atol=1e-6)


@pytest.mark.parametrize("seed", [4, 5])
def test_eigenvectors_orthogonal(seed):
    e0, e1, e2 = compute_sorted_eigenvectors(_symmetric(seed))
    assert abs(np.dot(e0, e1)) < 1e-6
    assert abs(np.dot(e1, e2)) < 1e-6
    assert abs(np.dot(e0, e2)) < 1e-6


def test_find_eigenvector_unit_and_correct():
    matrix = np.array([[2.0, 1.0, 0.5], [1.0, 3.0, 0.2], [0.5, 0.2, 1.0]])
    value = max(np.linalg.eigvalsh(matrix))
    vec = find_eigenvector(matrix, value)
    assert np.isclose(np.linalg.norm(vec), 1.0)
    assert np.allclose(matrix @ vec, value * vec, atol=1e-8)


def test_find_eigenvector_accepts_nested_lists():
    matrix = [[4.0, 1.0, 0.0], [1.0, 3.0, 1.0], [0.0, 1.0, 2.0]]
    value = min(np.linalg.eigvalsh(np.array(matrix)))
    vec = find_eigenvector(matrix, value)
    assert np.allclose(np.array(matrix) @ vec, value * vec, atol=1e-8)