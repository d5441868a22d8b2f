"""Uniformly refined tensor-product mesh of a box in one to three dimensions."""

from __future__ import annotations

import itertools
import math
from collections.abc import Iterator, Sequence
from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class Cell:
    """One active cell of a :class:`Mesh`.

    ``index`` is the cell's integer position along each axis, ``level`` the
    number of global refinements of the mesh it was taken from.
    """

    index: tuple[int, ...]
    level: int
    lower: tuple[float, ...]
    upper: tuple[float, ...]
    active_cell_index: int

    @property
    def dim(self) -> int:
        """Space dimension of the cell."""
        return len(self.index)

    @property
    def center(self) -> np.ndarray:
        """Midpoint of the cell."""
        return (np.asarray(self.lower) + np.asarray(self.upper)) / 2.0

    @property
    def volume(self) -> float:
        """Measure of the cell."""
        return float(np.prod(np.asarray(self.upper) - np.asarray(self.lower)))

    def diameter(self) -> float:
        """Length of the cell's longest diagonal."""
        extent = np.asarray(self.upper) - np.asarray(self.lower)
        return float(math.sqrt(float(np.sum(extent**2))))


def _as_corner(value: float | Sequence[float]) -> np.ndarray:
    return np.atleast_1d(np.asarray(value, dtype=float)).reshape(-1)


class Mesh:
    """The box ``[lower, upper]`` split into ``2**level`` cells along each axis.

    Faces of a cell are numbered as pairs per axis: face ``2*k`` lies on the
    lower side of axis ``k`` and face ``2*k + 1`` on its upper side.
    """

    def __init__(self, lower: float | Sequence[float], upper: float | Sequence[float]) -> None:
        low = _as_corner(lower)
        high = _as_corner(upper)
        if low.size != high.size:
            raise ValueError(
                f"corners have different dimensions: {low.size} and {high.size}"
            )
        if low.size == 0:
            raise ValueError("corners must have at least one coordinate")
        if not np.all(low < high):
            raise ValueError("every coordinate of lower must be less than that of upper")
        self.lower = low
        self.upper = high
        self.level = 0

    @property
    def dim(self) -> int:
        """Space dimension of the mesh."""
        return int(self.lower.size)

    @property
    def subdivisions(self) -> int:
        """Number of cells along each axis."""
        return 2**self.level

    def refine_global(self, times: int = 1) -> None:
        """Split every cell into ``2**dim`` children, ``times`` times over."""
        if times < 0:
            raise ValueError(f"times must not be negative, got {times}")
        self.level += times

    def n_active_cells(self) -> int:
        """Number of active cells."""
        return self.subdivisions**self.dim

    def _cell(self, index: tuple[int, ...]) -> Cell:
        n = self.subdivisions
        width = (self.upper - self.lower) / n
        position = np.asarray(index, dtype=float)
        cell_lower = self.lower + position * width
        cell_upper = self.lower + (position + 1.0) * width
        active = sum(i * n**axis for axis, i in enumerate(index))
        return Cell(
            index=tuple(index),
            level=self.level,
            lower=tuple(float(x) for x in cell_lower),
            upper=tuple(float(x) for x in cell_upper),
            active_cell_index=active,
        )

    def active_cells(self) -> Iterator[Cell]:
        """Yield all active cells in order of their active cell index."""
        n = self.subdivisions
        for reversed_index in itertools.product(range(n), repeat=self.dim):
            yield self._cell(tuple(reversed(reversed_index)))

    def _check_cell(self, cell: Cell) -> None:
        n = self.subdivisions
        if (
            cell.level != self.level
            or len(cell.index) != self.dim
            or any(not 0 <= i < n for i in cell.index)
        ):
            raise ValueError(f"cell {cell.index} at level {cell.level} is not active in this mesh")

    def _face_neighbors(self, cell: Cell) -> Iterator[Cell | None]:
        self._check_cell(cell)
        n = self.subdivisions
        for axis in range(self.dim):
            for step in (-1, 1):
                position = cell.index[axis] + step
                if 0 <= position < n:
                    index = list(cell.index)
                    index[axis] = position
                    yield self._cell(tuple(index))
                else:
                    yield None

    def neighbors(self, cell: Cell) -> list[Cell]:
        """Return the active neighbours across every interior face, in face order."""
        return [other for other in self._face_neighbors(cell) if other is not None]

    def at_boundary(self, cell: Cell) -> bool:
        """Whether any face of ``cell`` lies on the boundary of the box."""
        return any(other is None for other in self._face_neighbors(cell))