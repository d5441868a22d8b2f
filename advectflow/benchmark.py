"""Timing of the parallel assembly strategies over a range of thread counts."""

from __future__ import annotations

import argparse
import math
import os
import sys
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from .equation_data import AdvectionField, BoundaryValues, RightHandSide
from .mesh import Cell, Mesh
from .workstream import Copier, Strategy, Worker, run

DEFAULT_RUNS = 5
_RULE = "----------------------------------------------------"


@dataclass(frozen=True)
class BenchmarkResult:
    """Wall times of repeated runs of one strategy with one thread limit.

    ``thread_limit`` is ``None`` when the number of threads was chosen
    automatically.
    """

    strategy: Strategy
    thread_limit: int | None
    times: tuple[float, ...]

    @property
    def average(self) -> float:
        """Mean of the measured times."""
        if not self.times:
            raise ValueError("no times were measured")
        return sum(self.times) / len(self.times)

    @property
    def label(self) -> str:
        """The thread limit as shown in reports."""
        return "auto" if self.thread_limit is None else str(self.thread_limit)


def thread_limits(n_phys_cores: int) -> list[int | None]:
    """Thread limits to try: automatic first, then the core count halved down to one."""
    if n_phys_cores < 1:
        raise ValueError(f"n_phys_cores must be at least 1, got {n_phys_cores}")
    limits: list[int | None] = []
    n_cores = 2 * n_phys_cores
    while n_cores > 0:
        limits.append(n_cores if n_cores <= n_phys_cores else None)
        n_cores //= 2
    return limits


def time_runs(func: Callable[[], Any], runs: int = DEFAULT_RUNS) -> list[float]:
    """Call ``func`` ``runs`` times and return the wall time of each call."""
    if runs < 1:
        raise ValueError(f"runs must be at least 1, got {runs}")
    times = []
    for _ in range(runs):
        start = time.perf_counter()
        func()
        times.append(time.perf_counter() - start)
    return times


def benchmark_strategy(
    strategy: Strategy | str,
    items: Iterable[Any],
    worker: Worker,
    copier: Copier,
    sample_scratch: Any,
    sample_copy: Any,
    n_phys_cores: int | None = None,
    runs: int = DEFAULT_RUNS,
) -> list[BenchmarkResult]:
    """Time ``strategy`` for every limit from :func:`thread_limits`."""
    strategy = Strategy(strategy)
    cores = n_phys_cores if n_phys_cores is not None else (os.cpu_count() or 1)
    item_list = list(items)
    results = []
    for limit in thread_limits(cores):
        times = time_runs(
            lambda: run(
                item_list,
                worker,
                copier,
                sample_scratch,
                sample_copy,
                strategy=strategy,
                n_threads=limit,
            ),
            runs,
        )
        results.append(BenchmarkResult(strategy, limit, tuple(times)))
    return results


def format_result(result: BenchmarkResult) -> str:
    """Render one result as a report line."""
    times = " ".join(format(t, "g") for t in result.times)
    return f"n_cores {result.label} {times}  avg: {format(result.average, 'g')}"


@dataclass
class _AssemblyScratch:
    advection_field: AdvectionField
    right_hand_side: RightHandSide
    boundary_values: BoundaryValues


@dataclass
class _CellContribution:
    index: int = -1
    value: float = 0.0


@dataclass
class _Assembler:
    """Cell-wise assembly of a streamline-diffusion right-hand side."""

    mesh: Mesh
    system_rhs: np.ndarray = field(init=False)

    def __post_init__(self) -> None:
        self.system_rhs = np.zeros(self.mesh.n_active_cells())

    def sample_scratch(self) -> _AssemblyScratch:
        dim = self.mesh.dim
        return _AssemblyScratch(AdvectionField(dim), RightHandSide(dim), BoundaryValues())

    def _gauss_points(self, cell: Cell) -> tuple[list[np.ndarray], float]:
        lower = np.asarray(cell.lower)
        upper = np.asarray(cell.upper)
        offsets = (0.5 - 0.5 / math.sqrt(3.0), 0.5 + 0.5 / math.sqrt(3.0))
        grids = np.meshgrid(*[offsets] * cell.dim, indexing="ij")
        refs = np.stack([g.reshape(-1) for g in grids], axis=1)
        points = [lower + r * (upper - lower) for r in refs]
        return points, cell.volume / len(points)

    def local_assemble(
        self, cell: Cell, scratch: _AssemblyScratch, copy_data: _CellContribution
    ) -> None:
        points, weight = self._gauss_points(cell)
        betas = scratch.advection_field.value_list(points)
        rhs = scratch.right_hand_side.value_list(points)
        delta = 0.1 * cell.diameter()
        value = float(np.sum(rhs * (1.0 + delta * np.linalg.norm(betas, axis=1)) * weight))

        if self.mesh.at_boundary(cell):
            n = self.mesh.subdivisions
            extent = np.asarray(cell.upper) - np.asarray(cell.lower)
            for axis in range(cell.dim):
                face_area = float(np.prod(np.delete(extent, axis)))
                for on_boundary, sign, coordinate in (
                    (cell.index[axis] == 0, -1.0, cell.lower[axis]),
                    (cell.index[axis] == n - 1, 1.0, cell.upper[axis]),
                ):
                    if not on_boundary:
                        continue
                    face_center = cell.center.copy()
                    face_center[axis] = coordinate
                    flux = sign * scratch.advection_field.value(face_center)[axis]
                    if flux < 0.0:
                        value -= flux * scratch.boundary_values.value(face_center) * face_area

        copy_data.index = cell.active_cell_index
        copy_data.value = value

    def copy_local_to_global(self, copy_data: _CellContribution) -> None:
        self.system_rhs[copy_data.index] += copy_data.value


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="advectflow-benchmark",
        description="Time parallel assembly strategies on a refined box mesh.",
    )
    parser.add_argument("--dim", type=int, default=2, choices=(1, 2, 3))
    parser.add_argument("--initial-refinements", type=int, default=5)
    parser.add_argument("--cycles", type=int, default=2)
    parser.add_argument("--runs", type=int, default=DEFAULT_RUNS)
    parser.add_argument("--cores", type=int, default=None)
    parser.add_argument(
        "--strategy",
        action="append",
        choices=[s.value for s in Strategy if s is not Strategy.SERIAL],
        help="strategy to time; may be given several times (default: all)",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the benchmark and print a report; return the exit status."""
    args = _parse_args(argv)
    try:
        strategies = (
            [Strategy(s) for s in args.strategy]
            if args.strategy
            else [s for s in Strategy if s is not Strategy.SERIAL]
        )
        n_phys_cores = args.cores if args.cores is not None else (os.cpu_count() or 1)
        mesh = Mesh([-1.0] * args.dim, [1.0] * args.dim)
        for cycle in range(args.cycles):
            print(f"Cycle {cycle}:", flush=True)
            if cycle == 0:
                mesh.refine_global(args.initial_refinements)
            else:
                mesh.refine_global(2)
            print(f"   Number of active cells:              {mesh.n_active_cells()}")

            assembler = _Assembler(mesh)
            cells = list(mesh.active_cells())
            print(f"n_cores={n_phys_cores}")
            print(f"n_threads={os.cpu_count() or 1}")

            for strategy in strategies:
                print(f"** {strategy.name} ({strategy.value}) **", flush=True)
                for result in benchmark_strategy(
                    strategy,
                    cells,
                    assembler.local_assemble,
                    assembler.copy_local_to_global,
                    assembler.sample_scratch(),
                    _CellContribution(),
                    n_phys_cores,
                    args.runs,
                ):
                    print(format_result(result), flush=True)
    except Exception as exc:  # noqa: BLE001 - report any failure and abort
        print(f"\n\n{_RULE}", file=sys.stderr)
        print(f"Exception on processing: \n{exc}\nAborting!\n{_RULE}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())