"""
Fractal Lattice Explorer
Runs the generator and the vertex expander end to end and reports counts.

    fractal-lattice --level 3 --workers 8
"""

import argparse
import sys
import threading
import time
from dataclasses import dataclass
from typing import List, Optional, Set

from lattice_configs import DEFAULT_MAX_LEVEL, GeneratorSettings, LatticeError
from lattice_generator import (
    GenerationReport,
    LatticePoint,
    ProgressCallback,
    generate_lattice_report,
)
from lattice_logging import get_logger, log_performance, setup_logging
from vertex_expander import Vertex, generate_vertices, generate_vertices_conc

logger = get_logger(__name__)


@dataclass
class PipelineResult:
    """Output of one pipeline run."""
    settings: GeneratorSettings
    report: GenerationReport
    points: List[LatticePoint]
    vertices: Optional[Set[Vertex]] = None
    vertex_seconds: float = 0.0

    @property
    def point_count(self) -> int:
        return len(self.points)

    @property
    def vertex_count(self) -> Optional[int]:
        return None if self.vertices is None else len(self.vertices)


def run_pipeline(
    settings: GeneratorSettings,
    progress: Optional[ProgressCallback] = None,
    cancel_event: Optional[threading.Event] = None,
) -> PipelineResult:
    """Generate the lattice, then expand vertices once generation has finished."""
    points, report = generate_lattice_report(
        settings.level,
        workers=settings.workers,
        cancel_event=cancel_event,
        progress=progress,
        max_level=settings.max_level,
    )
    result = PipelineResult(settings=settings, report=report, points=points)

    if settings.expand_vertices:
        start = time.perf_counter()
        if settings.parallel_vertices:
            result.vertices = generate_vertices_conc(points, settings.workers)
        else:
            result.vertices = generate_vertices(points)
        result.vertex_seconds = time.perf_counter() - start
        logger.info("Vertices size: %d", len(result.vertices))
        log_performance("Vertex expansion", result.vertex_seconds,
                        vertices=len(result.vertices),
                        parallel=settings.parallel_vertices)

    return result


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fractal-lattice",
        description="Generate a Menger-style fractal lattice and its cube vertices.",
    )
    parser.add_argument("-n", "--level", type=int, default=2,
                        help="recursion level; the cube has side 3^n (default: 2)")
    parser.add_argument("-w", "--workers", type=int, default=None,
                        help="worker threads (default: CPU count)")
    parser.add_argument("--max-level", type=int, default=DEFAULT_MAX_LEVEL,
                        help="refuse levels above this (default: %(default)s)")
    parser.add_argument("--no-vertices", action="store_true",
                        help="skip vertex expansion")
    parser.add_argument("--parallel-vertices", action="store_true",
                        help="expand vertices with the thread pool")
    parser.add_argument("--debug", action="store_true",
                        help="log at DEBUG level")
    parser.add_argument("--log-file", default=None,
                        help="also write logs to this file")
    return parser


def print_summary(result: PipelineResult) -> None:
    info = result.settings.level_info
    report = result.report
    print("=" * 70)
    print(f"FRACTAL LATTICE  n = {info.n}")
    print("=" * 70)
    print(f"  Side:       {info.side}")
    print(f"  Candidates: {info.candidates:,}")
    print(f"  Kept:       {report.kept:,} (expected {info.expected_points:,})")
    print(f"  Rejected:   {report.rejected:,}")
    print(f"  Workers:    {report.workers}")
    print(f"  Generation: {report.elapsed:.3f}s")
    if result.vertices is not None:
        print("-" * 70)
        print(f"  Vertices:   {result.vertex_count:,}")
        print(f"  Expansion:  {result.vertex_seconds:.3f}s")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        setup_logging(debug_mode=args.debug, log_file=args.log_file)
    except OSError as e:
        print(f"Error: cannot open log file: {e}", file=sys.stderr)
        return 2

    try:
        settings = GeneratorSettings(
            level=args.level,
            workers=args.workers,
            max_level=args.max_level,
            expand_vertices=not args.no_vertices,
            parallel_vertices=args.parallel_vertices,
        )
        result = run_pipeline(settings)
    except LatticeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    print_summary(result)
    return 0


if __name__ == '__main__':
    sys.exit(main())
