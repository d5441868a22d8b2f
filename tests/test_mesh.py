import math

import numpy as np
import pytest

from advectflow.mesh import Cell, Mesh


@pytest.fixture
def square():
    mesh = Mesh([-1.0, -1.0], [1.0, 1.0])
    mesh.refine_global(2)
    return mesh


def test_initial_mesh_has_single_cell_covering_box():
    mesh = Mesh([-1.0, -1.0], [1.0, 1.0])
    cells = list(mesh.active_cells())
    assert mesh.n_active_cells() == 1
    assert len(cells) == 1
    assert cells[0].lower == (-1.0, -1.0)
    assert cells[0].upper == (1.0, 1.0)
    assert cells[0].diameter() == pytest.approx(math.sqrt(8.0))


def test_refine_global_counts():
    mesh = Mesh([-1.0, -1.0], [1.0, 1.0])
    mesh.refine_global(5)
    assert mesh.n_active_cells() == 4**5
    mesh.refine_global(2)
    assert mesh.n_active_cells() == 4**7
    assert len(list(mesh.active_cells())) == mesh.n_active_cells()


def test_refine_global_in_three_dimensions():
    mesh = Mesh([0.0, 0.0, 0.0], [1.0, 1.0, 1.0])
    mesh.refine_global(2)
    assert mesh.n_active_cells() == 8**2


def test_refine_zero_times_changes_nothing(square):
    before = square.n_active_cells()
    square.refine_global(0)
    assert square.n_active_cells() == before


def test_refine_negative_raises(square):
    with pytest.raises(ValueError):
        square.refine_global(-1)


def test_active_cell_indices_are_consecutive(square):
    indices = [cell.active_cell_index for cell in square.active_cells()]
    assert indices == list(range(square.n_active_cells()))


def test_cells_tile_the_box(square):
    cells = list(square.active_cells())
    assert sum(cell.volume for cell in cells) == pytest.approx(4.0)
    for cell in cells:
        assert np.all(cell.center > -1.0)
        assert np.all(cell.center < 1.0)


def test_diameter_halves_with_refinement():
    mesh = Mesh([-1.0, -1.0], [1.0, 1.0])
    coarse = next(mesh.active_cells()).diameter()
    mesh.refine_global(1)
    fine = next(mesh.active_cells()).diameter()
    assert fine == pytest.approx(coarse / 2)


def test_neighbors_are_symmetric(square):
    for cell in square.active_cells():
        for other in square.neighbors(cell):
            assert cell in square.neighbors(other)


def test_neighbor_counts_and_boundary(square):
    for cell in square.active_cells():
        count = len(square.neighbors(cell))
        assert 2 <= count <= 4
        assert square.at_boundary(cell) == (count < 4)


def test_interior_cell_is_not_at_boundary(square):
    interior = [c for c in square.active_cells() if not square.at_boundary(c)]
    assert len(interior) == 4
    for cell in interior:
        assert len(square.neighbors(cell)) == 2 * square.dim


def test_neighbor_centers_differ_by_one_cell_width(square):
    cell = next(square.active_cells())
    width = cell.upper[0] - cell.lower[0]
    for other in square.neighbors(cell):
        distance = np.linalg.norm(other.center - cell.center)
        assert distance == pytest.approx(width)


def test_one_dimensional_mesh_from_scalars():
    mesh = Mesh(-1.0, 1.0)
    mesh.refine_global(3)
    cells = list(mesh.active_cells())
    assert mesh.dim == 1
    assert len(cells) == 2**3
    assert len(mesh.neighbors(cells[0])) == 1
    assert len(mesh.neighbors(cells[3])) == 2


def test_stale_cell_is_rejected(square):
    cell = next(square.active_cells())
    square.refine_global(1)
    with pytest.raises(ValueError):
        square.neighbors(cell)
    with pytest.raises(ValueError):
        square.at_boundary(cell)


def test_foreign_cell_is_rejected(square):
    bogus = Cell(index=(9, 9), level=square.level, lower=(0.0, 0.0),
                 upper=(1.0, 1.0), active_cell_index=0)
    with pytest.raises(ValueError):
        square.neighbors(bogus)


@pytest.mark.parametrize(
    "lower, upper",
    [
        ([0.0, 0.0], [1.0]),
        ([1.0, 0.0], [0.0, 1.0]),
        ([0.0, 0.0], [0.0, 1.0]),
    ],
)
def test_invalid_bounds_raise(lower, upper):
    with pytest.raises(ValueError):
        Mesh(lower, upper)