"""Grids: uniform cell lattices that high precision entities are positioned on."""

from __future__ import annotations

import math

import numpy as np

from bigspace.cell import GridCell
from bigspace.local_origin import LocalFloatingOrigin
from bigspace.math3d import Affine3, GlobalTransform, Transform, _vec3


def _round_half_away(value: float) -> float:
    if not math.isfinite(value):
        return value
    truncated = float(math.trunc(value))
    if abs(value - truncated) >= 0.5:
        truncated += math.copysign(1.0, value)
    return truncated


def _saturating_index(value: float) -> int:
    if math.isnan(value):
        return 0
    if value >= float(GridCell.MAX_INDEX):
        return GridCell.MAX_INDEX
    if value <= float(GridCell.MIN_INDEX):
        return GridCell.MIN_INDEX
    return int(value)


class Grid:
    """A lattice of cubic cells that child entities are located on."""

    def __init__(
        self,
        cell_edge_length: float = 2000.0,
        switching_threshold: float = 100.0,
        local_floating_origin: LocalFloatingOrigin | None = None,
    ) -> None:
        length = np.float32(cell_edge_length)
        self._cell_edge_length = float(length)
        self._maximum_distance_from_origin = float(
            length / np.float32(2.0) + np.float32(switching_threshold)
        )
        self.local_floating_origin = (
            LocalFloatingOrigin() if local_floating_origin is None else local_floating_origin
        )

    @property
    def cell_edge_length(self) -> float:
        return self._cell_edge_length

    @property
    def maximum_distance_from_origin(self) -> float:
        """How far an entity may stray from its cell centre before being recentred."""
        return self._maximum_distance_from_origin

    def grid_position_double(self, pos: GridCell, transform: Transform) -> np.ndarray:
        cells = np.array([pos.x, pos.y, pos.z], dtype=np.float64)
        return cells * self._cell_edge_length + transform.translation.astype(np.float64)

    def grid_position(self, pos: GridCell, transform: Transform) -> np.ndarray:
        cells = np.array([pos.x, pos.y, pos.z], dtype=np.float64).astype(np.float32)
        return cells * np.float32(self._cell_edge_length) + transform.translation

    def cell_to_float(self, pos: GridCell) -> np.ndarray:
        return np.array([pos.x, pos.y, pos.z], dtype=np.float64) * self._cell_edge_length

    def translation_to_grid(self, input) -> tuple[GridCell, np.ndarray]:
        """Split a large translation into a cell and a small offset from its centre."""
        values = _vec3(input)
        if np.max(np.abs(values)) < self._maximum_distance_from_origin:
            return GridCell.ZERO, values.astype(np.float32)
        length = self._cell_edge_length
        rounded = [_round_half_away(float(v) / length) for v in values]
        cell = GridCell(*(_saturating_index(r) for r in rounded))
        offset = np.array(
            [float(v) - r * length for v, r in zip(values, rounded)], dtype=np.float64
        ).astype(np.float32)
        return cell, offset

    def imprecise_translation_to_grid(self, input) -> tuple[GridCell, np.ndarray]:
        return self.translation_to_grid(_vec3(input, np.float32).astype(np.float64))

    def global_transform(
        self, local_cell: GridCell, local_transform: Transform
    ) -> GlobalTransform:
        """The rendering transform of an entity in this grid, relative to the floating origin."""
        origin = self.local_floating_origin
        grid_offset = self.cell_to_float(local_cell - origin.cell)
        local = Affine3.from_scale_rotation_translation(
            local_transform.scale.astype(np.float64),
            local_transform.rotation,
            local_transform.translation.astype(np.float64) + grid_offset,
        )
        return GlobalTransform.from_affine(origin.grid_transform * local)

    def __repr__(self) -> str:
        return (
            f"Grid(cell_edge_length={self._cell_edge_length!r}, "
            f"maximum_distance_from_origin={self._maximum_distance_from_origin!r})"
        )