import numpy as np
import pytest

from advectflow.gradient import (
    InsufficientDirectionsError,
    InvalidVectorLengthError,
    estimate,
    estimate_cell,
)
from advectflow.mesh import Mesh


def _mesh(lower, upper, level):
    mesh = Mesh(lower, upper)
    mesh.refine_global(level)
    return mesh


def _linear_values(mesh, slope):
    slope = np.asarray(slope, dtype=float)
    values = np.zeros(mesh.n_active_cells())
    for cell in mesh.active_cells():
        values[cell.active_cell_index] = float(slope @ cell.center)
    return values


def test_constant_field_gives_zero_indicator():
    mesh = _mesh([-1.0, -1.0], [1.0, 1.0], 2)
    values = np.full(mesh.n_active_cells(), 3.5)
    errors = estimate(mesh, values, np.zeros(mesh.n_active_cells()), n_threads=2)
    assert np.allclose(errors, 0.0)


def test_linear_field_recovers_gradient_2d():
    mesh = _mesh([-1.0, -1.0], [1.0, 1.0], 2)
    slope = [3.0, -4.0]
    values = _linear_values(mesh, slope)
    for cell in mesh.active_cells():
        indicator = estimate_cell(cell, mesh.neighbors(cell), values)
        assert indicator / cell.diameter() ** 2 == pytest.approx(
            np.linalg.norm(slope)
        )


def test_linear_field_recovers_gradient_1d():
    mesh = _mesh(0.0, 1.0, 1)
    values = _linear_values(mesh, [2.0])
    errors = estimate(mesh, values, [0.0, 0.0], n_threads=1)
    for cell in mesh.active_cells():
        assert errors[cell.active_cell_index] / cell.diameter() ** 1.5 == pytest.approx(
            2.0
        )


def test_single_cell_has_insufficient_directions():
    mesh = Mesh([0.0, 0.0], [1.0, 1.0])
    with pytest.raises(InsufficientDirectionsError):
        estimate(mesh, [1.0], [0.0], n_threads=2)


def test_estimate_cell_without_neighbors_raises():
    mesh = _mesh([0.0, 0.0], [1.0, 1.0], 1)
    cell = next(mesh.active_cells())
    with pytest.raises(InsufficientDirectionsError) as info:
        estimate_cell(cell, [], np.zeros(mesh.n_active_cells()))
    assert info.value.cell_index == cell.active_cell_index


def test_wrong_error_vector_length():
    mesh = _mesh([0.0, 0.0], [1.0, 1.0], 1)
    with pytest.raises(InvalidVectorLengthError) as info:
        estimate(mesh, np.zeros(4), np.zeros(3))
    assert info.value.length == 3
    assert info.value.expected == 4


def test_wrong_values_length():
    mesh = _mesh([0.0, 0.0], [1.0, 1.0], 1)
    with pytest.raises(InvalidVectorLengthError):
        estimate(mesh, np.zeros(5), np.zeros(4))


def test_serial_and_threaded_agree():
    mesh = _mesh([-1.0, -1.0], [1.0, 1.0], 3)
    rng = np.random.default_rng(7)
    values = rng.normal(size=mesh.n_active_cells())
    serial = estimate(mesh, values, np.zeros(mesh.n_active_cells()), n_threads=1)
    threaded = estimate(mesh, values, np.zeros(mesh.n_active_cells()), n_threads=4)
    assert np.allclose(serial, threaded)
    assert np.all(serial >= 0.0)


def test_fills_given_vector_in_place():
    mesh = _mesh([0.0, 0.0, 0.0], [1.0, 1.0, 1.0], 1)
    values = _linear_values(mesh, [1.0, 0.0, 0.0])
    target = [0.0] * mesh.n_active_cells()
    result = estimate(mesh, values, target, n_threads=2)
    assert result is target
    assert all(value > 0.0 for value in target)


def test_indicator_scales_with_field():
    mesh = _mesh([-1.0, -1.0], [1.0, 1.0], 2)
    rng = np.random.default_rng(3)
    values = rng.normal(size=mesh.n_active_cells())
    base = estimate(mesh, values, np.zeros(mesh.n_active_cells()), n_threads=2)
    scaled = estimate(mesh, 5.0 * values, np.zeros(mesh.n_active_cells()), n_threads=2)
    assert np.allclose(scaled, 5.0 * base)