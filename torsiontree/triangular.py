"""Packed storage indices for upper-triangular matrices."""

from __future__ import annotations


def triangular_matrix_index(n: int, i: int, j: int) -> int:
    """Return the packed index of element (i, j) with i <= j < n."""
    if i < 0 or j < 0:
        raise ValueError(f"indices must be non-negative, got ({i}, {j})")
    if j >= n:
        raise ValueError(f"column {j} out of range for size {n}")
    if i > j:
        raise ValueError(f"row {i} exceeds column {j}; use the permissive form")
    return i + j * (j + 1) // 2


def triangular_matrix_index_permissive(n: int, i: int, j: int) -> int:
    """Return the packed index of (i, j), swapping the indices if i > j."""
    if i <= j:
        return triangular_matrix_index(n, i, j)
    return triangular_matrix_index(n, j, i)