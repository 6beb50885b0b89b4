"""Component bundles for spawning entities into a big space."""

from __future__ import annotations

from bigspace.cell import GridCell
from bigspace.floating_origins import BigSpace
from bigspace.grid import Grid
from bigspace.math3d import GlobalTransform, Transform


def big_spatial_bundle() -> tuple[Transform, GlobalTransform, GridCell]:
    """The minimal components that position an entity in floating origin space."""
    return Transform(), GlobalTransform(), GridCell.ZERO


def big_grid_bundle() -> tuple[Transform, GlobalTransform, GridCell, Grid]:
    """A spatial bundle that is also a grid other spatial entities can nest in."""
    return Transform(), GlobalTransform(), GridCell.ZERO, Grid()


def big_space_root_bundle() -> tuple[Grid, GlobalTransform, BigSpace]:
    """The components the root of every big space needs."""
    return Grid(), GlobalTransform(), BigSpace()