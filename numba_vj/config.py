"""Benchmark constants and the run configuration built from the command line."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

# --- Configuration ---

# Length of each matrix dimension. Larger values show the parallel speedup better.
LENGTH = 4096

# Number of indices visited by each of the two outer loops. Must not exceed LENGTH.
ITERATION = 20

# Fill values are drawn uniformly from [FILL_LOW, FILL_HIGH).
FILL_LOW = 0.0
FILL_HIGH = 1000.0

# Largest element-wise difference accepted between the sequential result and the
# atomic kernel, whose summation order is unspecified.
TOLERANCE = 1.0

# Problem size used to compile every kernel before timing.
WARMUP_LENGTH = 4
WARMUP_ITERATION = 2

MODES = ("single_run", "multi_run_timing")


@dataclass(frozen=True)
class BenchConfig:
    length: int = LENGTH
    iteration: int = ITERATION
    threads: Optional[int] = None
    seed: Optional[int] = None
    fill_reps: Optional[int] = None
    tolerance: float = TOLERANCE
    mode: str = "single_run"
    reps: int = 1
    verbose: bool = False

    def __post_init__(self) -> None:
        if self.length < 1:
            raise ValueError(f"length must be >= 1, got {self.length}")
        if not 0 <= self.iteration <= self.length:
            raise ValueError(
                f"iteration must satisfy 0 <= iteration <= length ({self.length}), got {self.iteration}"
            )
        if self.threads is not None and self.threads < 1:
            raise ValueError(f"threads must be >= 1, got {self.threads}")
        if self.fill_reps is not None and self.fill_reps < 0:
            raise ValueError(f"fill_reps must be >= 0, got {self.fill_reps}")
        if self.tolerance <= 0.0:
            raise ValueError(f"tolerance must be positive, got {self.tolerance}")
        if self.mode not in MODES:
            raise ValueError(f"mode must be one of {MODES}, got {self.mode!r}")
        if self.reps < 1:
            raise ValueError(f"reps must be >= 1, got {self.reps}")

    @property
    def effective_fill_reps(self) -> int:
        """Fill repetitions to time; defaults to the iteration bound."""
        return self.iteration if self.fill_reps is None else self.fill_reps
