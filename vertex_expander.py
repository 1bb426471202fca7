"""
Vertex Expander
Maps kept lattice points to the corners of their unit cubes.

Each point (x, y, z) owns the eight corners (x ± 0.5, y ± 0.5, z ± 0.5).
Neighbouring cells share corners, so the result is a set.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, NamedTuple, Optional, Sequence, Set, Tuple
import itertools

import numpy as np

from lattice_configs import resolve_workers
from lattice_generator import points_to_array
from lattice_logging import get_logger

logger = get_logger(__name__)

CORNER_OFFSETS: Tuple[Tuple[float, float, float], ...] = tuple(
    itertools.product((-0.5, 0.5), repeat=3)
)

# Same offsets in doubled coordinates, so deduplication stays in integers
_DOUBLED_OFFSETS = np.array(list(itertools.product((-1, 1), repeat=3)), dtype=np.int64)


class Vertex(NamedTuple):
    """A unit-cube corner; every coordinate is a half-integer."""
    x: float
    y: float
    z: float


def corners_of(point: Sequence[int]) -> List[Vertex]:
    """The eight corners of the unit cube centred on point."""
    x, y, z = point
    return [Vertex(x + dx, y + dy, z + dz) for dx, dy, dz in CORNER_OFFSETS]


def generate_vertices(lattice: Iterable[Sequence[int]]) -> Set[Vertex]:
    """Deduplicated corner set, built by plain set insertion."""
    vertices: Set[Vertex] = set()
    for point in lattice:
        vertices.update(corners_of(point))
    return vertices


# -----------------------------
# Array form
# -----------------------------

def _unique_doubled_corners(points: np.ndarray) -> np.ndarray:
    """Unique corners of an (N, 3) point chunk, in doubled coordinates."""
    doubled = (2 * points)[:, None, :] + _DOUBLED_OFFSETS[None, :, :]
    return np.unique(doubled.reshape(-1, 3), axis=0)


def generate_vertex_array(points, workers: Optional[int] = 1) -> np.ndarray:
    """
    Deduplicated corners of many points as a float array.

    Args:
        points: (N, 3) integer array or sequence of points
        workers: Thread count for the per-chunk pass (host CPU count when None)

    Returns:
        (M, 3) float64 array of unique vertices, sorted lexicographically

    Raises:
        InvalidInputError: points are not integer coordinates
    """
    points = points_to_array(points)
    if len(points) == 0:
        return np.empty((0, 3), dtype=np.float64)

    workers = resolve_workers(workers)
    if workers == 1:
        doubled = _unique_doubled_corners(points)
    else:
        chunks = [c for c in np.array_split(points, workers) if len(c)]
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="VertexChunk") as pool:
            partial = list(pool.map(_unique_doubled_corners, chunks))
        doubled = np.unique(np.concatenate(partial), axis=0)

    logger.debug("Expanded %d points into %d vertices", len(points), len(doubled))
    return doubled / 2.0


def generate_vertices_conc(lattice, workers: Optional[int] = None) -> Set[Vertex]:
    """Parallel generate_vertices, returning the same set."""
    vertices = generate_vertex_array(lattice, workers)
    return {Vertex(*row) for row in vertices.tolist()}
