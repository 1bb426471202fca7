"""
Fractal Lattice Generator
=========================

Enumerates the integer cube [0, 3^n)^3 and keeps the points whose base-3
digits never place the middle digit (1) on two axes at the same level.
At n=1 this keeps 20 of the 27 sub-cubes, i.e. a Menger sponge.

Usage:
------
    from lattice_generator import generate_lattice_conc, keep_point

    keep_point(2, 2, 2)            # True
    keep_point(4, 5, 3)            # False
    points = generate_lattice_conc(2, workers=4)
    len(points)                    # 400 == 20**2

Theory:
-------
A point is tested digit by digit, least significant first. At each level
the exclusion predicate rejects the point if any pair of coordinates has
digit 1. Once fewer than two coordinates are still positive no pair can
carry a 1, so the point is accepted.

All arithmetic is integer (% and //), both in the scalar test and in the
numpy form that filters whole slabs of the cube at once.
"""

import operator
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from lattice_configs import (
    BASE,
    DEFAULT_MAX_LEVEL,
    GenerationCancelled,
    InvalidInputError,
    candidate_count,
    lattice_side,
    resolve_workers,
    validate_level,
)
from lattice_logging import get_logger, log_performance

logger = get_logger(__name__)

MIDDLE_DIGIT = 1

ProgressCallback = Callable[[int, int], None]


class LatticePoint(NamedTuple):
    """An integer point of the cube [0, 3^n)^3."""
    x: int
    y: int
    z: int


@dataclass(frozen=True)
class GenerationReport:
    """Counts and timing for one generator run."""
    level: int
    side: int
    candidates: int
    kept: int
    workers: int
    elapsed: float

    @property
    def rejected(self) -> int:
        return self.candidates - self.kept


# =============================================================================
# Membership test
# =============================================================================

def is_condition_met(i, j, k):
    """
    Exclusion predicate: True if any pair of i, j, k is 1 modulo 3.

    Works element-wise on numpy integer arrays as well as on ints.
    """
    a = i % BASE == MIDDLE_DIGIT
    b = j % BASE == MIDDLE_DIGIT
    c = k % BASE == MIDDLE_DIGIT
    return (a & b) | (a & c) | (b & c)


def are_at_least_two_positive(i, j, k):
    """
    Majority-positive guard: True if at least two of i, j, k are > 0.

    Works element-wise on numpy integer arrays as well as on ints.
    """
    a = i > 0
    b = j > 0
    c = k > 0
    return (a & b) | (a & c) | (b & c)


def keep_point(x: int, y: int, z: int) -> bool:
    """
    Decide whether a lattice point belongs to the fractal.

    Args:
        x, y, z: Non-negative integer coordinates

    Returns:
        True if no recursion level shows digit 1 on two axes

    Raises:
        InvalidInputError: a coordinate is not an integer or is negative
    """
    try:
        i, j, k = operator.index(x), operator.index(y), operator.index(z)
    except TypeError as e:
        raise InvalidInputError(f"Coordinates must be integers, got ({x!r}, {y!r}, {z!r})") from e
    if i < 0 or j < 0 or k < 0:
        raise InvalidInputError(f"Coordinates must be non-negative, got ({i}, {j}, {k})")

    while are_at_least_two_positive(i, j, k):
        if is_condition_met(i, j, k):
            return False
        i //= BASE
        j //= BASE
        k //= BASE
    return True


def as_integer_array(values) -> np.ndarray:
    """
    Convert coordinates to int64 without truncation.

    Raises:
        InvalidInputError: values are not of an integer dtype
    """
    arr = np.asarray(values)
    if arr.size and not np.issubdtype(arr.dtype, np.integer):
        raise InvalidInputError(f"Coordinates must be integers, got dtype {arr.dtype}")
    return arr.astype(np.int64)


def keep_mask(x, y, z) -> np.ndarray:
    """
    Vectorised keep_point over broadcastable integer arrays.

    Returns:
        Boolean array with keep_point evaluated at every element
    """
    arrays = np.broadcast_arrays(as_integer_array(x), as_integer_array(y), as_integer_array(z))
    i, j, k = (a.copy() for a in arrays)
    if (i < 0).any() or (j < 0).any() or (k < 0).any():
        raise InvalidInputError("Coordinates must be non-negative")

    keep = np.ones(i.shape, dtype=bool)
    active = are_at_least_two_positive(i, j, k)
    while active.any():
        excluded = active & is_condition_met(i, j, k)
        keep &= ~excluded
        active &= ~excluded
        i //= BASE
        j //= BASE
        k //= BASE
        active &= are_at_least_two_positive(i, j, k)
    return keep


# =============================================================================
# Parallel enumeration
# =============================================================================

def _filter_slab(x: int, axis: np.ndarray,
                 cancel_event: Optional[threading.Event]) -> np.ndarray:
    """Kept points of the plane at fixed x, as an (k, 3) int64 array."""
    if cancel_event is not None and cancel_event.is_set():
        raise GenerationCancelled(f"Lattice generation cancelled before slab x={x}")
    yy, zz = np.meshgrid(axis, axis, indexing='ij')
    xx = np.full_like(yy, x)
    mask = keep_mask(xx, yy, zz)
    return np.column_stack((xx[mask], yy[mask], zz[mask]))


def generate_lattice_array(
    n: int,
    workers: Optional[int] = None,
    cancel_event: Optional[threading.Event] = None,
    progress: Optional[ProgressCallback] = None,
    max_level: Optional[int] = DEFAULT_MAX_LEVEL,
) -> np.ndarray:
    """
    Filter the cube [0, 3^n)^3 in parallel, one x-slab per task.

    Args:
        n: Recursion level
        workers: Thread count (host CPU count when None)
        cancel_event: Checked by every slab before it starts
        progress: Called as progress(completed_slabs, total_slabs)
        max_level: Largest level accepted, or None for no bound

    Returns:
        (N, 3) int64 array of kept points in x, y, z scan order

    Raises:
        InvalidInputError: bad level or worker count
        UnsupportedScaleError: n above max_level
        GenerationCancelled: cancel_event was set
    """
    validate_level(n, max_level)
    workers = resolve_workers(workers)
    side = lattice_side(n)

    logger.info("Generating lattice with n = %d", n)
    logger.info("Number of threads in use: %d", workers)

    axis = np.arange(side, dtype=np.int64)
    slabs: List[np.ndarray] = []
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="LatticeSlab") as pool:
        futures = [pool.submit(_filter_slab, x, axis, cancel_event) for x in range(side)]
        try:
            for completed, future in enumerate(futures, start=1):
                slabs.append(future.result())
                if progress is not None:
                    progress(completed, side)
        except BaseException:
            for future in futures:
                future.cancel()
            raise

    points = np.concatenate(slabs)
    logger.info("Lattice size: %d", len(points))
    return points


def points_from_array(points: np.ndarray) -> List[LatticePoint]:
    """Convert an (N, 3) integer array to LatticePoints."""
    return [LatticePoint(*row) for row in np.asarray(points, dtype=np.int64).tolist()]


def points_to_array(points: Sequence[Tuple[int, int, int]]) -> np.ndarray:
    """Convert a sequence of points to an (N, 3) int64 array."""
    return as_integer_array(points).reshape(-1, 3)


def generate_lattice_conc(
    n: int,
    workers: Optional[int] = None,
    cancel_event: Optional[threading.Event] = None,
    progress: Optional[ProgressCallback] = None,
    max_level: Optional[int] = DEFAULT_MAX_LEVEL,
) -> List[LatticePoint]:
    """Kept lattice points at level n. See generate_lattice_array."""
    points = generate_lattice_array(n, workers, cancel_event, progress, max_level)
    return points_from_array(points)


def generate_lattice_report(
    n: int,
    workers: Optional[int] = None,
    cancel_event: Optional[threading.Event] = None,
    progress: Optional[ProgressCallback] = None,
    max_level: Optional[int] = DEFAULT_MAX_LEVEL,
) -> Tuple[List[LatticePoint], GenerationReport]:
    """Run generate_lattice_conc and time it."""
    workers = resolve_workers(workers)
    start = time.perf_counter()
    points = generate_lattice_conc(n, workers, cancel_event, progress, max_level)
    elapsed = time.perf_counter() - start

    report = GenerationReport(
        level=n,
        side=lattice_side(n),
        candidates=candidate_count(n),
        kept=len(points),
        workers=workers,
        elapsed=elapsed,
    )
    log_performance("Lattice generation", elapsed, n=n, kept=report.kept, workers=workers)
    return points, report
