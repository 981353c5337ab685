"""Plain and atomic N x N float64 matrix containers and conversions between them."""

from __future__ import annotations

import numpy as np
from numba import jit, prange

from numba_vj.atomics import atomic_fetch_add, atomic_load, atomic_store

# --- Plain Matrix ---


def new_matrix(length: int) -> np.ndarray:
    """Allocate an uninitialised C-contiguous (length, length) float64 matrix."""
    if length < 1:
        raise ValueError(f"matrix length must be >= 1, got {length}")
    return np.empty((length, length), dtype=np.float64)


def check_matrix(matrix, length: int | None = None, name: str = "matrix") -> int:
    """Validate a plain matrix and return its dimension."""
    if not isinstance(matrix, np.ndarray):
        raise TypeError(f"{name} must be a numpy.ndarray, got {type(matrix).__name__}")
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise ValueError(f"{name} must be square, got shape {matrix.shape}")
    if matrix.dtype != np.float64:
        raise ValueError(f"{name} must be float64, got {matrix.dtype}")
    if not matrix.flags.c_contiguous:
        raise ValueError(f"{name} must be C-contiguous")
    if length is not None and matrix.shape[0] != length:
        raise ValueError(f"{name} must have length {length}, got {matrix.shape[0]}")
    return matrix.shape[0]


def flat_view(matrix: np.ndarray) -> np.ndarray:
    """Row-major 1-D view sharing memory with ``matrix``."""
    return matrix.reshape(-1)


# --- Atomic Matrix ---


@jit(nopython=True, cache=True)
def _cell_fetch_add(cells, idx, value):
    return atomic_fetch_add(cells, idx, value)


@jit(nopython=True, cache=True)
def _cell_load(cells, idx):
    return atomic_load(cells, idx)


@jit(nopython=True, cache=True)
def _cell_store(cells, idx, value):
    atomic_store(cells, idx, value)


class AtomicMatrix:
    """N x N matrix whose elements are only accessed with atomic operations.

    Jitted kernels receive the flat cell buffer through :attr:`cells` and must
    touch it exclusively via :mod:`numba_vj.atomics`.
    """

    def __init__(self, length: int):
        if length < 1:
            raise ValueError(f"matrix length must be >= 1, got {length}")
        self._length = length
        self._cells = np.zeros(length * length, dtype=np.float64)

    def __repr__(self) -> str:
        return f"AtomicMatrix(length={self._length})"

    @property
    def length(self) -> int:
        return self._length

    @property
    def shape(self) -> tuple[int, int]:
        return (self._length, self._length)

    @property
    def cells(self) -> np.ndarray:
        return self._cells

    def _index(self, row: int, col: int) -> int:
        if not (0 <= row < self._length and 0 <= col < self._length):
            raise IndexError(f"({row}, {col}) out of bounds for length {self._length}")
        return row * self._length + col

    def fetch_add(self, row: int, col: int, value: float) -> float:
        """Atomically add ``value`` to the element and return its previous value."""
        return _cell_fetch_add(self._cells, self._index(row, col), float(value))

    def load(self, row: int, col: int) -> float:
        return _cell_load(self._cells, self._index(row, col))

    def store(self, row: int, col: int, value: float) -> None:
        _cell_store(self._cells, self._index(row, col), float(value))


# --- Conversions ---


@jit(nopython=True, cache=True, parallel=True)
def numba_store_cells(cells, source):
    for p in prange(source.shape[0]):
        atomic_store(cells, p, source[p])


@jit(nopython=True, cache=True, parallel=True)
def numba_load_cells(target, cells):
    for p in prange(target.shape[0]):
        target[p] = atomic_load(cells, p)


def from_matrix_to_atomic(matrix: np.ndarray) -> AtomicMatrix:
    """Wrap every element of ``matrix`` in a fresh atomic cell."""
    length = check_matrix(matrix)
    res = AtomicMatrix(length)
    numba_store_cells(res.cells, flat_view(matrix))
    return res


def from_atomic_to_matrix(matrix: AtomicMatrix, length: int | None = None) -> np.ndarray:
    """Read every cell of ``matrix`` into a freshly allocated plain matrix."""
    if not isinstance(matrix, AtomicMatrix):
        raise TypeError(f"expected AtomicMatrix, got {type(matrix).__name__}")
    if length is not None and length != matrix.length:
        raise ValueError(f"atomic matrix has length {matrix.length}, expected {length}")
    res = new_matrix(matrix.length)
    numba_load_cells(flat_view(res), matrix.cells)
    return res
