"""Integer grid cell coordinates with wrapping 64-bit arithmetic."""

from __future__ import annotations

import operator
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

import numpy as np

if TYPE_CHECKING:
    from bigspace.grid import Grid

_I64_MIN = -(1 << 63)
_I64_MAX = (1 << 63) - 1


def _wrap(value: int) -> int:
    return ((value - _I64_MIN) % (1 << 64)) + _I64_MIN


def _checked(value: int) -> int:
    if not _I64_MIN <= value <= _I64_MAX:
        raise OverflowError(f"grid index {value} is out of the 64-bit range")
    return value


def _components(other) -> tuple[int, int, int]:
    if isinstance(other, GridCell):
        return other.x, other.y, other.z
    values = tuple(operator.index(v) for v in other)
    if len(values) != 3:
        raise ValueError("a cell offset needs exactly 3 components")
    return values  # type: ignore[return-value]


@dataclass(frozen=True)
class GridCell:
    """The index of a cell within its parent grid."""

    x: int = 0
    y: int = 0
    z: int = 0

    MIN_INDEX: ClassVar[int] = _I64_MIN
    MAX_INDEX: ClassVar[int] = _I64_MAX
    ZERO: ClassVar[GridCell]
    ONE: ClassVar[GridCell]

    def __post_init__(self) -> None:
        for name in ("x", "y", "z"):
            object.__setattr__(self, name, _checked(operator.index(getattr(self, name))))

    def __iter__(self):
        yield self.x
        yield self.y
        yield self.z

    def as_dvec3(self, grid: Grid) -> np.ndarray:
        """This cell's position as a double precision translation within ``grid``."""
        length = float(grid.cell_edge_length)
        return np.array([self.x * length, self.y * length, self.z * length], dtype=np.float64)

    def min(self, rhs: GridCell) -> GridCell:
        return GridCell(min(self.x, rhs.x), min(self.y, rhs.y), min(self.z, rhs.z))

    def max(self, rhs: GridCell) -> GridCell:
        return GridCell(max(self.x, rhs.x), max(self.y, rhs.y), max(self.z, rhs.z))

    def __add__(self, other) -> GridCell:
        try:
            ox, oy, oz = _components(other)
        except TypeError:
            return NotImplemented
        return GridCell(_wrap(self.x + ox), _wrap(self.y + oy), _wrap(self.z + oz))

    def __sub__(self, other) -> GridCell:
        try:
            ox, oy, oz = _components(other)
        except TypeError:
            return NotImplemented
        return GridCell(_wrap(self.x - ox), _wrap(self.y - oy), _wrap(self.z - oz))

    def __mul__(self, factor) -> GridCell:
        try:
            k = operator.index(factor)
        except TypeError:
            return NotImplemented
        return GridCell(_checked(self.x * k), _checked(self.y * k), _checked(self.z * k))

    __rmul__ = __mul__


GridCell.ZERO = GridCell(0, 0, 0)
GridCell.ONE = GridCell(1, 1, 1)