"""Navigation of a hierarchy of grids stored in a world."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from typing import TypeVar

from bigspace.cell import GridCell
from bigspace.grid import Grid
from bigspace.math3d import Transform
from bigspace.world import World

T = TypeVar("T")


class Grids:
    """Finds grids, their positions, parents, children and siblings within a world."""

    def __init__(self, world: World) -> None:
        self._world = world

    def _parent_of(self, entity: int) -> int | None:
        if entity not in self._world:
            return None
        return self._world.parent(entity)

    def position(self, grid_entity: int) -> tuple[GridCell, Transform]:
        """The grid's cell and transform; defaults for a root grid that has neither."""
        world = self._world
        cell = world.get(grid_entity, GridCell)
        transform = world.get(grid_entity, Transform)
        if world.has(grid_entity, Grid) and cell is not None and transform is not None:
            return cell, replace(transform)
        if self._parent_of(grid_entity) is not None:
            raise ValueError(
                f"grid entity {grid_entity!r} is missing a GridCell and Transform; "
                "this is valid only for a root grid, but this one has a parent"
            )
        return GridCell.ZERO, Transform()

    def get(self, grid_entity: int) -> tuple[Grid, GridCell, Transform]:
        """The grid together with its cell and transform."""
        cell, transform = self.position(grid_entity)
        grid = self._world.get(grid_entity, Grid)
        if grid is None:
            raise KeyError(f"grid entity {grid_entity!r} is missing a Grid component")
        return grid, cell, transform

    def update(self, grid_entity: int, func: Callable[[Grid, GridCell, Transform], T]) -> T:
        """Call ``func`` with the stored grid, its cell and transform, and return its result."""
        cell, transform = self.position(grid_entity)
        grid = self._world.get(grid_entity, Grid)
        if grid is None:
            raise KeyError(f"the grid entity {grid_entity!r} is no longer valid")
        return func(grid, cell, transform)

    def parent_grid_entity(self, this: int) -> int | None:
        """The entity of the grid that ``this`` is a child of, if there is one."""
        parent = self._parent_of(this)
        if parent is not None and self._world.has(parent, Grid):
            return parent
        return None

    def parent_grid(self, this: int) -> tuple[Grid, GridCell, Transform] | None:
        parent = self.parent_grid_entity(this)
        return None if parent is None else self.get(parent)

    def child_grids(self, this: int) -> list[int]:
        """Grid entities that are direct children of ``this``."""
        world = self._world
        return [entity for entity, _ in world.query(Grid) if world.parent(entity) == this]

    def sibling_grids(self, this_entity: int) -> list[int] | None:
        """Other grids sharing this grid's parent grid, or None if it has no parent grid."""
        parent = self.parent_grid_entity(this_entity)
        if parent is None:
            return None
        return [entity for entity in self.child_grids(parent) if entity != this_entity]