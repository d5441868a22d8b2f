"""Finite-difference gradient estimate used as a refinement indicator.

For every active cell the gradient of a cell-wise field is approximated from
the differences to the values on its active neighbours.  With ``y`` the unit
vector from the cell's centre to a neighbour's centre and ``d`` their
distance, the estimate solves

    (sum y y^T) g = sum (u_neighbour - u_cell) / d * y

and the indicator is ``h**(1 + dim/2) * |g|`` with ``h`` the cell diameter.
"""

from __future__ import annotations

from collections.abc import Iterable, MutableSequence, Sequence

import numpy as np

from .mesh import Cell, Mesh
from .workstream import Strategy, run


class InsufficientDirectionsError(ArithmeticError):
    """A cell's neighbours do not span every space direction."""

    def __init__(self, cell_index: int | None = None) -> None:
        message = "The neighbours of the cell do not span all space directions."
        if cell_index is not None:
            message = (
                f"The neighbours of cell {cell_index} do not span all space directions."
            )
        super().__init__(message)
        self.cell_index = cell_index


class InvalidVectorLengthError(ValueError):
    """A vector does not have the length it should have."""

    def __init__(self, length: int, expected: int) -> None:
        super().__init__(f"Vector has length {length}, but should have {expected}")
        self.length = length
        self.expected = expected


def _midpoint_value(values: Sequence[float], cell: Cell) -> float:
    return float(values[cell.active_cell_index])


def estimate_cell(
    cell: Cell, neighbors: Iterable[Cell], values: Sequence[float]
) -> float:
    """Return the gradient-based error indicator of ``cell``.

    ``values`` holds one value per active cell, indexed by its active cell
    index.  Raises :class:`InsufficientDirectionsError` if the directions to
    the neighbours do not span the whole space.
    """
    dim = cell.dim
    this_center = cell.center
    this_value = _midpoint_value(values, cell)

    y_matrix = np.zeros((dim, dim))
    projected_gradient = np.zeros(dim)
    for neighbor in neighbors:
        y = neighbor.center - this_center
        distance = float(np.linalg.norm(y))
        y = y / distance
        y_matrix += np.outer(y, y)
        difference = _midpoint_value(values, neighbor) - this_value
        projected_gradient += difference / distance * y

    if np.linalg.det(y_matrix) == 0:
        raise InsufficientDirectionsError(cell.active_cell_index)

    gradient = np.linalg.inv(y_matrix) @ projected_gradient
    return float(cell.diameter() ** (1 + dim / 2) * np.linalg.norm(gradient))


def estimate(
    mesh: Mesh,
    values: Sequence[float],
    error_per_cell: MutableSequence[float],
    n_threads: int | None = None,
) -> MutableSequence[float]:
    """Fill ``error_per_cell`` with the indicator of every active cell of ``mesh``.

    The cells are processed in parallel; each writes only its own entry.
    The filled ``error_per_cell`` is returned as well.
    """
    n_cells = mesh.n_active_cells()
    if len(error_per_cell) != n_cells:
        raise InvalidVectorLengthError(len(error_per_cell), n_cells)
    if len(values) != n_cells:
        raise InvalidVectorLengthError(len(values), n_cells)

    def worker(cell: Cell, _scratch: object, _copy: object) -> None:
        error_per_cell[cell.active_cell_index] = estimate_cell(
            cell, mesh.neighbors(cell), values
        )

    run(
        mesh.active_cells(),
        worker,
        None,
        None,
        None,
        strategy=Strategy.PER_ITEM,
        n_threads=n_threads,
    )
    return error_per_cell