"""Sequential, row-partitioned and atomic parallel VJ accumulation benchmarks."""

from numba_vj.config import FILL_HIGH, FILL_LOW, ITERATION, LENGTH, TOLERANCE, BenchConfig
from numba_vj.driver import EquivalenceError, check_equivalence, demo
from numba_vj.fill import init_matrix_parallel, init_matrix_sequential
from numba_vj.kernels import (dm_ij, parallel_calculate_atomic, parallel_calculate_rows,
                              sequential_calculate)
from numba_vj.matrix import AtomicMatrix, from_atomic_to_matrix, from_matrix_to_atomic

__all__ = [
    "FILL_HIGH",
    "FILL_LOW",
    "ITERATION",
    "LENGTH",
    "TOLERANCE",
    "AtomicMatrix",
    "BenchConfig",
    "EquivalenceError",
    "check_equivalence",
    "demo",
    "dm_ij",
    "from_atomic_to_matrix",
    "from_matrix_to_atomic",
    "init_matrix_parallel",
    "init_matrix_sequential",
    "parallel_calculate_atomic",
    "parallel_calculate_rows",
    "sequential_calculate",
]
