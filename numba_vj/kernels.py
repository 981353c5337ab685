"""VJ accumulation kernels.

All three strategies compute, for every pair ``(jc, ic)`` in ``[0, K) x [0, K)``::

    dm_ij = DM[ic, jc] + DM[jc, ic]
    VJ += ERI * dm_ij

* :func:`sequential_calculate` runs the pairs and the element sweep in program
  order and serves as the reference result.
* :func:`parallel_calculate_rows` keeps the pair loop sequential and splits each
  element sweep into one task per row. Tasks own disjoint rows, so plain writes
  are safe, and each ``prange`` region joins before the next pair starts.
  Per-element addition order is unchanged, so the result is bit-identical to
  the sequential one.
* :func:`parallel_calculate_atomic` runs every pair as an independent task and
  adds into a shared :class:`~numba_vj.matrix.AtomicMatrix` with atomic
  fetch-add. Summation order varies between runs, so results match the
  sequential one only up to rounding.
"""

from __future__ import annotations

import numpy as np
from numba import jit, prange

from numba_vj.atomics import atomic_fetch_add
from numba_vj.config import ITERATION
from numba_vj.matrix import AtomicMatrix, check_matrix, flat_view

# --- Shared Helpers ---


@jit(nopython=True, cache=True)
def numba_dm_ij(dm, N, ic, jc):
    """Symmetrised density element for one index pair, ``dm`` given flat row-major."""
    return dm[ic * N + jc] + dm[jc * N + ic]


def dm_ij(matrix_dm: np.ndarray, ic: int, jc: int) -> float:
    N = check_matrix(matrix_dm, name="matrix_dm")
    if not (0 <= ic < N and 0 <= jc < N):
        raise ValueError(f"index pair ({ic}, {jc}) out of bounds for length {N}")
    return numba_dm_ij(flat_view(matrix_dm), N, ic, jc)


def _check_operands(matrix_vj, matrix_dm, reduce_ij, iteration) -> int:
    if isinstance(matrix_vj, AtomicMatrix):
        N = matrix_vj.length
    else:
        N = check_matrix(matrix_vj, name="matrix_vj")
    check_matrix(matrix_dm, N, name="matrix_dm")
    check_matrix(reduce_ij, N, name="reduce_ij")
    if not 0 <= iteration <= N:
        raise ValueError(f"iteration must satisfy 0 <= iteration <= {N}, got {iteration}")
    return N


# --- Jitted Kernels ---


@jit(nopython=True, cache=True)
def numba_sequential_accumulate(vj, dm, eri, N, iteration):
    """Sequential accumulation over flat row-major buffers."""
    size = vj.shape[0]
    for jc in range(iteration):
        for ic in range(iteration):
            dm_ij = numba_dm_ij(dm, N, ic, jc)
            for p in range(size):
                vj[p] += eri[p] * dm_ij
    return vj


@jit(nopython=True, cache=True, parallel=True)
def numba_row_parallel_accumulate(vj, dm, eri, iteration):
    """Row-partitioned accumulation; ``vj`` and ``eri`` are 2-D, ``dm`` is flat."""
    N = vj.shape[0]
    for jc in range(iteration):
        for ic in range(iteration):
            dm_ij = numba_dm_ij(dm, N, ic, jc)
            for row in prange(N):  # Each row owned by one worker
                for col in range(N):
                    vj[row, col] += eri[row, col] * dm_ij
    return vj


@jit(nopython=True, cache=True, parallel=True)
def numba_atomic_accumulate(cells, dm, eri, N, iteration):
    """Accumulation with both pair axes in parallel, adding atomically into ``cells``."""
    size = cells.shape[0]
    # numba only parallelises the outermost prange, so fan out over the flattened pair index
    for pair in prange(iteration * iteration):
        jc = pair // iteration
        ic = pair % iteration
        dm_ij = numba_dm_ij(dm, N, ic, jc)
        for p in range(size):
            atomic_fetch_add(cells, p, eri[p] * dm_ij)
    return cells


# --- Strategies ---


def sequential_calculate(matrix_vj: np.ndarray, matrix_dm: np.ndarray, reduce_ij: np.ndarray,
                         iteration: int = ITERATION) -> np.ndarray:
    """Accumulate into ``matrix_vj`` in place, strictly in program order."""
    N = _check_operands(matrix_vj, matrix_dm, reduce_ij, iteration)
    numba_sequential_accumulate(flat_view(matrix_vj), flat_view(matrix_dm), flat_view(reduce_ij),
                                N, iteration)
    return matrix_vj


def parallel_calculate_rows(matrix_vj: np.ndarray, matrix_dm: np.ndarray, reduce_ij: np.ndarray,
                            iteration: int = ITERATION) -> np.ndarray:
    """Accumulate into ``matrix_vj`` in place, one parallel task per row for each pair."""
    if isinstance(matrix_vj, AtomicMatrix):
        raise TypeError("parallel_calculate_rows needs a plain matrix, got AtomicMatrix")
    _check_operands(matrix_vj, matrix_dm, reduce_ij, iteration)
    numba_row_parallel_accumulate(matrix_vj, flat_view(matrix_dm), reduce_ij, iteration)
    return matrix_vj


def parallel_calculate_atomic(matrix_vj: AtomicMatrix, matrix_dm: np.ndarray, reduce_ij: np.ndarray,
                              iteration: int = ITERATION) -> AtomicMatrix:
    """Accumulate into the atomic ``matrix_vj``, one parallel task per index pair."""
    if not isinstance(matrix_vj, AtomicMatrix):
        raise TypeError(
            f"parallel_calculate_atomic needs an AtomicMatrix, got {type(matrix_vj).__name__}"
        )
    N = _check_operands(matrix_vj, matrix_dm, reduce_ij, iteration)
    numba_atomic_accumulate(matrix_vj.cells, flat_view(matrix_dm), flat_view(reduce_ij), N, iteration)
    return matrix_vj
