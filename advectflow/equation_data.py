"""Coefficient, source and boundary data for the stationary advection problem."""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence

import numpy as np

_SUPPORTED_DIMS = (1, 2, 3)
_SOURCE_DIAMETER = 0.1


class DimensionMismatchError(ValueError):
    """A vector does not have the number of elements it should have."""

    def __init__(self, size: int, expected: int) -> None:
        super().__init__(
            f"The vector has size {size} but should have {expected} elements."
        )
        self.size = size
        self.expected = expected


def _check_dim(dim: int) -> int:
    if dim not in _SUPPORTED_DIMS:
        raise ValueError(f"dimension must be one of {_SUPPORTED_DIMS}, got {dim}")
    return dim


def _check_component(component: int) -> None:
    if component != 0:
        raise IndexError(f"Index {component} is not in the half-open range [0,1).")


def _as_point(p: Sequence[float], dim: int | None = None) -> np.ndarray:
    point = np.asarray(p, dtype=float).reshape(-1)
    if dim is not None and point.size != dim:
        raise DimensionMismatchError(point.size, dim)
    return point


class AdvectionField:
    """Vector-valued advection direction beta(p)."""

    def __init__(self, dim: int) -> None:
        self.dim = _check_dim(dim)

    def value(self, p: Sequence[float]) -> np.ndarray:
        """Return the advection direction at point ``p``."""
        point = _as_point(p, self.dim)
        result = np.full(self.dim, 1.0 + 0.8 * math.sin(8.0 * math.pi * point[0]))
        result[0] = 2.0
        return result

    def value_list(self, points: Iterable[Sequence[float]]) -> np.ndarray:
        """Return the advection directions at all ``points`` as an (n, dim) array."""
        rows = [self.value(p) for p in points]
        if not rows:
            return np.empty((0, self.dim))
        return np.vstack(rows)


class RightHandSide:
    """Constant source concentrated in a small ball around a fixed centre point."""

    def __init__(self, dim: int) -> None:
        self.dim = _check_dim(dim)
        self.center_point = np.full(self.dim, -0.75)

    def value(self, p: Sequence[float], component: int = 0) -> float:
        """Return the source density at ``p``."""
        _check_component(component)
        point = _as_point(p, self.dim)
        distance_sq = float(np.sum((point - self.center_point) ** 2))
        if distance_sq < _SOURCE_DIAMETER * _SOURCE_DIAMETER:
            return 0.1 / _SOURCE_DIAMETER**self.dim
        return 0.0

    def value_list(
        self, points: Iterable[Sequence[float]], component: int = 0
    ) -> np.ndarray:
        """Return the source density at every point in ``points``."""
        _check_component(component)
        return np.array([self.value(p, component) for p in points], dtype=float)


class BoundaryValues:
    """Inflow boundary values g(p) = exp(5(1-|p|^2)) sin(16 pi |p|^2)."""

    def value(self, p: Sequence[float], component: int = 0) -> float:
        """Return the boundary value at ``p``."""
        _check_component(component)
        norm_sq = float(np.sum(_as_point(p) ** 2))
        sine_term = math.sin(16.0 * math.pi * norm_sq)
        weight = math.exp(5.0 * (1.0 - norm_sq))
        return weight * sine_term

    def value_list(
        self, points: Iterable[Sequence[float]], component: int = 0
    ) -> np.ndarray:
        """Return the boundary values at every point in ``points``."""
        _check_component(component)
        return np.array([self.value(p, component) for p in points], dtype=float)