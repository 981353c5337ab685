"""Fill matrices with uniform random values, sequentially or one task per row."""

from __future__ import annotations

from typing import Callable, Optional

import numpy as np
from numba import jit, prange

from numba_vj.config import FILL_HIGH, FILL_LOW, LENGTH
from numba_vj.matrix import new_matrix

NO_SEED = -1

# --- Fill Kernels ---


@jit(nopython=True, cache=True)
def numba_sequential_fill(matrix, low, high, seed):
    """Fill in row-major order from a single generator."""
    if seed >= 0:
        np.random.seed(seed)
    N = matrix.shape[0]
    for i in range(N):
        for j in range(matrix.shape[1]):
            matrix[i, j] = np.random.uniform(low, high)
    return matrix


@jit(nopython=True, cache=True, parallel=True)
def numba_parallel_fill(matrix, low, high, seed):
    """Fill one row per task; each worker thread draws from its own generator state."""
    N = matrix.shape[0]
    for i in prange(N):
        if seed >= 0:
            # Reseed per row so the row's values do not depend on which thread runs it.
            np.random.seed(seed + i)
        for j in range(matrix.shape[1]):
            matrix[i, j] = np.random.uniform(low, high)
    return matrix


# --- Public API ---


def _seed_arg(seed: Optional[int]) -> int:
    if seed is None:
        return NO_SEED
    if seed < 0:
        raise ValueError(f"seed must be non-negative, got {seed}")
    return int(seed)


def init_matrix_sequential(length: int = LENGTH, seed: Optional[int] = None) -> np.ndarray:
    matrix = new_matrix(length)
    return numba_sequential_fill(matrix, FILL_LOW, FILL_HIGH, _seed_arg(seed))


def init_matrix_parallel(length: int = LENGTH, seed: Optional[int] = None) -> np.ndarray:
    matrix = new_matrix(length)
    return numba_parallel_fill(matrix, FILL_LOW, FILL_HIGH, _seed_arg(seed))


def fill_benchmark(init: Callable[..., np.ndarray], repeats: int, length: int = LENGTH) -> None:
    """Run ``init`` ``repeats`` times, discarding the matrices. Used for fill timings."""
    for _ in range(repeats):
        init(length)
