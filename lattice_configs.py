"""
Lattice Level Catalogue
Run settings, per-level sizes and validation for the fractal lattice generator.
"""
from dataclasses import dataclass, field
from typing import Dict, Optional
import os


BASE = 3
KEPT_PER_LEVEL = 20  # 27 sub-cubes minus the 7 with two or more middle digits
DEFAULT_MAX_LEVEL = 5


# =============================================================================
# Errors
# =============================================================================

class LatticeError(Exception):
    """Base class for fractal lattice errors."""


class InvalidInputError(LatticeError, ValueError):
    """Raised for a bad level, a non-integer or negative coordinate, or a bad worker count."""


class UnsupportedScaleError(LatticeError):
    """Raised when a level is larger than the configured maximum."""


class GenerationCancelled(LatticeError):
    """Raised when a running generation is cancelled."""


# =============================================================================
# Level catalogue
# =============================================================================

@dataclass(frozen=True)
class LevelInfo:
    """Sizes for a single recursion level."""
    n: int
    side: int  # points per axis, 3^n
    candidates: int  # side^3
    expected_points: int  # 20^n

    @property
    def rejected_points(self) -> int:
        return self.candidates - self.expected_points

    @property
    def fill_ratio(self) -> float:
        return self.expected_points / self.candidates


def lattice_side(n: int) -> int:
    """Number of lattice points per axis at level n."""
    return BASE ** n


def candidate_count(n: int) -> int:
    """Size of the candidate cube [0, 3^n)^3."""
    return lattice_side(n) ** 3


def expected_point_count(n: int) -> int:
    """Regression oracle for the number of kept points at level n."""
    return KEPT_PER_LEVEL ** n


def _build_level(n: int) -> LevelInfo:
    return LevelInfo(n, lattice_side(n), candidate_count(n), expected_point_count(n))


# Levels that fit comfortably in memory
LEVEL_CATALOGUE: Dict[int, LevelInfo] = {
    n: _build_level(n) for n in range(DEFAULT_MAX_LEVEL + 1)
}


def validate_level(n, max_level: Optional[int] = DEFAULT_MAX_LEVEL) -> int:
    """
    Check a recursion level before any work is done.

    Args:
        n: Requested level
        max_level: Largest level accepted, or None for no upper bound

    Returns:
        The level as an int

    Raises:
        InvalidInputError: n is not a non-negative integer
        UnsupportedScaleError: n is above max_level
    """
    if isinstance(n, bool) or not isinstance(n, int):
        raise InvalidInputError(f"Level must be an integer, got {n!r}")
    if n < 0:
        raise InvalidInputError(f"Level must be non-negative, got {n}")
    if max_level is not None and n > max_level:
        raise UnsupportedScaleError(
            f"Level {n} implies {candidate_count(n):,} candidates; "
            f"the configured maximum is level {max_level}"
        )
    return n


def get_level_info(n: int, max_level: Optional[int] = None) -> LevelInfo:
    """Get sizes for level n, from the catalogue when available."""
    validate_level(n, max_level)
    if n in LEVEL_CATALOGUE:
        return LEVEL_CATALOGUE[n]
    return _build_level(n)


def default_workers() -> int:
    """Host parallelism, falling back to a single worker."""
    return os.cpu_count() or 1


def resolve_workers(workers: Optional[int]) -> int:
    """Use the host default for None, otherwise require a positive count."""
    if workers is None:
        return default_workers()
    if isinstance(workers, bool) or not isinstance(workers, int) or workers < 1:
        raise InvalidInputError(f"Worker count must be a positive integer, got {workers!r}")
    return workers


# =============================================================================
# Run settings
# =============================================================================

@dataclass
class GeneratorSettings:
    """Settings for one run of the lattice pipeline."""
    level: int = 2
    workers: Optional[int] = field(default_factory=default_workers)
    max_level: Optional[int] = DEFAULT_MAX_LEVEL
    expand_vertices: bool = True
    parallel_vertices: bool = False

    def __post_init__(self):
        if self.max_level is not None:
            validate_level(self.max_level, max_level=None)
        validate_level(self.level, self.max_level)
        self.workers = resolve_workers(self.workers)

    @property
    def level_info(self) -> LevelInfo:
        return get_level_info(self.level, self.max_level)
