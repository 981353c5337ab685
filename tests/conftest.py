from __future__ import annotations

import numba
import pytest


@pytest.fixture
def thread_counts() -> list[int]:
    """Distinct thread counts available to this process, smallest first."""
    limit = numba.config.NUMBA_NUM_THREADS
    return sorted({1, min(2, limit), limit})


@pytest.fixture
def restore_threads():
    """Restore numba's active thread count after a test changes it."""
    before = numba.get_num_threads()
    yield numba.set_num_threads
    numba.set_num_threads(before)
