"""The floating origin's location as seen from a single grid."""

from __future__ import annotations

import copy

import numpy as np

from bigspace.cell import GridCell
from bigspace.math3d import Affine3, Quat, _vec3


def _view_transform(translation: np.ndarray, rotation: Quat) -> Affine3:
    return Affine3(rotation.to_matrix(), translation.astype(np.float64)).inverse()


class LocalFloatingOrigin:
    """Where the floating origin's cell lies within a local grid.

    ``grid_transform`` maps positions relative to ``cell`` in the local grid into the
    floating origin's grid.
    """

    def __init__(
        self,
        cell: GridCell | None = None,
        translation=(0.0, 0.0, 0.0),
        rotation: Quat | None = None,
    ) -> None:
        self._cell = GridCell.ZERO if cell is None else cell
        self._translation = _vec3(translation, np.float32)
        self._rotation = Quat.identity() if rotation is None else rotation
        self._grid_transform = _view_transform(self._translation, self._rotation)
        self._is_local_origin_unchanged = False

    @property
    def cell(self) -> GridCell:
        return self._cell

    @property
    def translation(self) -> np.ndarray:
        return self._translation.copy()

    @property
    def rotation(self) -> Quat:
        return self._rotation

    @property
    def grid_transform(self) -> Affine3:
        return self._grid_transform

    @property
    def is_local_origin_unchanged(self) -> bool:
        """True iff the last ``set`` left the origin where it was."""
        return self._is_local_origin_unchanged

    def set(self, cell: GridCell, translation, rotation: Quat) -> None:
        """Move the local origin and recompute its view transform."""
        previous = copy.copy(self)
        self._cell = cell
        self._translation = _vec3(translation, np.float32)
        self._rotation = rotation
        self._grid_transform = _view_transform(self._translation, self._rotation)
        self._is_local_origin_unchanged = previous == self

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LocalFloatingOrigin):
            return NotImplemented
        return (
            self._cell == other._cell
            and bool(np.array_equal(self._translation, other._translation))
            and self._rotation == other._rotation
            and self._grid_transform == other._grid_transform
            and self._is_local_origin_unchanged == other._is_local_origin_unchanged
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"LocalFloatingOrigin(cell={self._cell!r}, "
            f"translation={self._translation.tolist()!r}, rotation={self._rotation!r})"
        )