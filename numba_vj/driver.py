"""Benchmark runner: builds the matrices, times every strategy and checks they agree."""

from __future__ import annotations

import argparse
import sys
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

import numba
import numpy as np

from numba_vj.config import (ITERATION, LENGTH, MODES, TOLERANCE, WARMUP_ITERATION,
                             WARMUP_LENGTH, BenchConfig)
from numba_vj.fill import fill_benchmark, init_matrix_parallel, init_matrix_sequential
from numba_vj.kernels import (parallel_calculate_atomic, parallel_calculate_rows,
                              sequential_calculate)
from numba_vj.matrix import from_atomic_to_matrix, from_matrix_to_atomic

CSV_HEADER = "strategy,N,K,threads,rep,time_sec"


class EquivalenceError(AssertionError):
    """Two strategies produced VJ matrices that disagree."""

    def __init__(self, reference: str, candidate: str, max_diff: float, index: tuple, tolerance: float):
        self.reference = reference
        self.candidate = candidate
        self.max_diff = max_diff
        self.index = index
        self.tolerance = tolerance
        bound = "exact" if tolerance == 0.0 else f"tolerance {tolerance:g}"
        super().__init__(
            f"{candidate} diverged from {reference}: max |diff| = {max_diff:.6g} "
            f"at {index} ({bound})"
        )


# --- Timing & Checks ---


def get_run_time(f: Callable[[], object]) -> int:
    """Run ``f`` and return its wall-clock duration in whole milliseconds."""
    start = time.perf_counter()
    f()
    end = time.perf_counter()
    return int((end - start) * 1000)


def max_abs_diff(a: np.ndarray, b: np.ndarray) -> tuple[float, tuple]:
    if a.shape != b.shape:
        raise ValueError(f"cannot compare shapes {a.shape} and {b.shape}")
    if a.size == 0:
        return 0.0, ()
    diff = np.abs(a - b)
    flat = int(np.argmax(diff))
    index = tuple(int(i) for i in np.unravel_index(flat, a.shape))
    return float(diff.flat[flat]), index


def check_equivalence(reference: np.ndarray, candidate: np.ndarray, reference_label: str,
                      candidate_label: str, tolerance: float = 0.0) -> float:
    """Raise :class:`EquivalenceError` unless ``candidate`` matches ``reference``.

    ``tolerance == 0.0`` requires bit-identical arrays; otherwise every
    element must differ by strictly less than ``tolerance``. Returns the
    largest absolute difference.
    """
    max_diff, index = max_abs_diff(reference, candidate)
    if tolerance == 0.0:
        ok = np.array_equal(reference, candidate)
    else:
        ok = max_diff < tolerance
    if not ok:
        raise EquivalenceError(reference_label, candidate_label, max_diff, index, tolerance)
    return max_diff


# --- Demo ---


@dataclass
class DemoResult:
    timings_ms: Dict[str, int] = field(default_factory=dict)
    max_diffs: Dict[str, float] = field(default_factory=dict)


def warm_up() -> None:
    """Compile every kernel on a tiny problem so timed runs exclude JIT work."""
    vj = init_matrix_sequential(WARMUP_LENGTH, seed=0)
    dm = init_matrix_parallel(WARMUP_LENGTH, seed=1)
    eri = init_matrix_parallel(WARMUP_LENGTH, seed=2)
    atomic_vj = from_matrix_to_atomic(vj)
    sequential_calculate(vj.copy(), dm, eri, WARMUP_ITERATION)
    parallel_calculate_rows(vj.copy(), dm, eri, WARMUP_ITERATION)
    parallel_calculate_atomic(atomic_vj, dm, eri, WARMUP_ITERATION)
    from_atomic_to_matrix(atomic_vj)


def _seed_for(config: BenchConfig, offset: int) -> Optional[int]:
    return None if config.seed is None else config.seed + offset * config.length


def demo(config: BenchConfig) -> DemoResult:
    """Run the three strategies on the same inputs and verify their results agree."""
    result = DemoResult()
    N, K = config.length, config.iteration

    matrix_vj = init_matrix_parallel(N, _seed_for(config, 0))
    matrix_dm = init_matrix_parallel(N, _seed_for(config, 1))
    reduce_ij = init_matrix_parallel(N, _seed_for(config, 2))

    cloned_matrix_vj = matrix_vj.copy()
    matrix_vj_with_atomic_cell = from_matrix_to_atomic(matrix_vj)
    check_equivalence(matrix_vj, cloned_matrix_vj, "initial", "clone")

    result.timings_ms["sequential kernel"] = get_run_time(
        lambda: sequential_calculate(matrix_vj, matrix_dm, reduce_ij, K))
    result.timings_ms["row-parallel kernel"] = get_run_time(
        lambda: parallel_calculate_rows(cloned_matrix_vj, matrix_dm, reduce_ij, K))
    result.timings_ms["atomic-parallel kernel"] = get_run_time(
        lambda: parallel_calculate_atomic(matrix_vj_with_atomic_cell, matrix_dm, reduce_ij, K))
    atomic_result = from_atomic_to_matrix(matrix_vj_with_atomic_cell)

    result.max_diffs["row-parallel"] = check_equivalence(
        matrix_vj, cloned_matrix_vj, "sequential", "row-parallel")
    # Floating-point summation order differs, so only approximate equality is required
    result.max_diffs["atomic-parallel"] = check_equivalence(
        matrix_vj, atomic_result, "sequential", "atomic-parallel", config.tolerance)
    return result


def _print_verbose(config: BenchConfig, result: DemoResult) -> None:
    if not config.verbose:
        return
    for label, diff in result.max_diffs.items():
        print(f"{label} max |diff| vs sequential: {diff:.6g}", file=sys.stderr)


def run_single(config: BenchConfig) -> None:
    reps = config.effective_fill_reps
    run_time = get_run_time(lambda: fill_benchmark(init_matrix_sequential, reps, config.length))
    print(f"sequential fill run time: {run_time} ms")

    run_time = get_run_time(lambda: fill_benchmark(init_matrix_parallel, reps, config.length))
    print(f"parallel fill run time: {run_time} ms")

    holder: List[DemoResult] = []
    total = get_run_time(lambda: holder.append(demo(config)))
    result = holder[0]
    for label, ms in result.timings_ms.items():
        print(f"{label} run time: {ms} ms")
    print(f"total demo run time: {total} ms")
    _print_verbose(config, result)


def _timed_strategies(config: BenchConfig, rep: int):
    """Yield (strategy, seconds) for one repetition, checking equivalence afterwards."""
    N, K = config.length, config.iteration
    vj = init_matrix_parallel(N, _seed_for(config, 3 * rep))
    dm = init_matrix_parallel(N, _seed_for(config, 3 * rep + 1))
    eri = init_matrix_parallel(N, _seed_for(config, 3 * rep + 2))
    row_vj = vj.copy()
    atomic_vj = from_matrix_to_atomic(vj)

    start = time.perf_counter()
    sequential_calculate(vj, dm, eri, K)
    yield "sequential", time.perf_counter() - start

    start = time.perf_counter()
    parallel_calculate_rows(row_vj, dm, eri, K)
    yield "row_parallel", time.perf_counter() - start

    start = time.perf_counter()
    parallel_calculate_atomic(atomic_vj, dm, eri, K)
    yield "atomic_parallel", time.perf_counter() - start

    check_equivalence(vj, row_vj, "sequential", "row-parallel")
    check_equivalence(vj, from_atomic_to_matrix(atomic_vj), "sequential", "atomic-parallel",
                      config.tolerance)


def run_timing(config: BenchConfig) -> None:
    threads = numba.get_num_threads()
    print(CSV_HEADER)
    for i in range(config.reps):
        for strategy, seconds in _timed_strategies(config, i):
            print(f"{strategy},{config.length},{config.iteration},{threads},{i + 1},{seconds:.9f}")


# --- Main Runner ---


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="VJ accumulation benchmark runner")
    parser.add_argument("--length", type=int, default=LENGTH, help="Matrix dimension N")
    parser.add_argument("--iteration", type=int, default=ITERATION,
                        help="Index pairs per loop axis K (K <= N)")
    parser.add_argument("--threads", type=int, default=None,
                        help="Worker threads (default: NUMBA_NUM_THREADS)")
    parser.add_argument("--seed", type=int, default=None, help="Seed for reproducible matrices")
    parser.add_argument("--fill-reps", type=int, default=None,
                        help="Fills per fill timing (default: --iteration)")
    parser.add_argument("--tolerance", type=float, default=TOLERANCE,
                        help="Max |diff| accepted for the atomic kernel")
    parser.add_argument("--mode", type=str, default="single_run", choices=MODES)
    parser.add_argument("--reps", type=int, default=1, help="Repetitions in multi_run_timing mode")
    parser.add_argument("--verbose", action="store_true", help="Report divergence magnitudes")
    return parser


def config_from_args(args: argparse.Namespace) -> BenchConfig:
    return BenchConfig(
        length=args.length,
        iteration=args.iteration,
        threads=args.threads,
        seed=args.seed,
        fill_reps=args.fill_reps,
        tolerance=args.tolerance,
        mode=args.mode,
        reps=args.reps,
        verbose=args.verbose,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = config_from_args(args)
    except ValueError as e:
        parser.error(str(e))

    try:
        if config.threads is not None:
            numba.set_num_threads(config.threads)
        warm_up()
        if config.mode == "multi_run_timing":
            run_timing(config)
        else:
            run_single(config)
    except (EquivalenceError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    return 0


if __name__ == "__main__":
    sys.exit(main())
