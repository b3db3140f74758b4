"""Eigen decomposition of 3x3 symmetric matrices via the characteristic cubic."""

from __future__ import annotations

import math

import numpy as np

__all__ = ["solve_cubic", "find_eigenvector", "compute_sorted_eigenvectors"]

_PIVOT_EPS = 1e-10


def solve_cubic(a: float, b: float, c: float, d: float) -> tuple[float, float, float]:
    """Real roots of ``a x^3 + b x^2 + c x + d`` in descending order.

    Assumes three real roots, as is the case for the characteristic
    polynomial of a symmetric matrix.
    """
    p = (3.0 * a * c - b * b) / (3.0 * a * a)
    q = (2.0 * b**3 - 9.0 * a * b * c + 27.0 * a * a * d) / (27.0 * a**3)
    radius = math.sqrt(max(-(p**3) / 27.0, 0.0))
    if radius == 0.0:
        phi = 0.0
    else:
        phi = math.acos(min(1.0, max(-1.0, -q / (2.0 * radius))))
    amplitude = 2.0 * math.sqrt(max(-p / 3.0, 0.0))
    shift = b / (3.0 * a)
    roots = (
        amplitude * math.cos((phi + k * 2.0 * math.pi) / 3.0) - shift for k in range(3)
    )
    first, second, third = sorted(roots, reverse=True)
    return first, second, third


def find_eigenvector(matrix, eigenvalue: float) -> np.ndarray:
    """Unit eigenvector of ``matrix`` for ``eigenvalue``, with its z set to 1 before normalising."""
    m = np.array(matrix, dtype=float) - eigenvalue * np.eye(3)

    for i in range(2):
        pivot_row = i + int(np.argmax(np.abs(m[i:, i])))
        if abs(m[pivot_row, i]) > abs(m[i, i]):
            m[[i, pivot_row]] = m[[pivot_row, i]]
        if abs(m[i, i]) <= _PIVOT_EPS:
            continue
        for k in range(i + 1, 3):
            factor = -m[k, i] / m[i, i]
            m[k, i + 1 :] += factor * m[i, i + 1 :]
            m[k, i] = 0.0

    x = np.array([0.0, 0.0, 1.0])
    if abs(m[1, 1]) > _PIVOT_EPS:
        x[1] = -m[1, 2] / m[1, 1]
    if abs(m[0, 0]) > _PIVOT_EPS:
        x[0] = -(m[0, 1] * x[1] + m[0, 2] * x[2]) / m[0, 0]
    return x / np.linalg.norm(x)


def compute_sorted_eigenvectors(matrix) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Eigenvectors of a symmetric 3x3 matrix, ordered by descending eigenvalue."""
    m = np.array(matrix, dtype=float)
    a = -1.0
    b = m[0, 0] + m[1, 1] + m[2, 2]
    c = (
        m[2, 1] * m[1, 2]
        + m[2, 0] * m[0, 2]
        + m[1, 0] * m[0, 1]
        - m[0, 0] * m[1, 1]
        - m[1, 1] * m[2, 2]
        - m[0, 0] * m[2, 2]
    )
    d = float(np.linalg.det(m))
    first, second, third = solve_cubic(a, b, c, d)
    return (
        find_eigenvector(m, first),
        find_eigenvector(m, second),
        find_eigenvector(m, third),
    )