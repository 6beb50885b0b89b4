"""Builders for assembling big space hierarchies in a world."""

from __future__ import annotations

import copy
from collections.abc import Callable

from bigspace.bundles import big_space_root_bundle
from bigspace.cell import GridCell
from bigspace.grid import Grid
from bigspace.math3d import GlobalTransform, Transform
from bigspace.world import World


def _ensure_required(world: World, entity: int) -> None:
    """Add the components that a grid cell or a transform cannot work without."""
    if world.has(entity, GridCell) and not world.has(entity, Transform):
        world.insert(entity, Transform())
    if world.has(entity, Transform) and not world.has(entity, GlobalTransform):
        world.insert(entity, GlobalTransform())


class _ChildSpawner:
    """Spawns entities as children of one parent entity."""

    def __init__(self, world: World, parent: int) -> None:
        self._world = world
        self._parent = parent

    @property
    def parent(self) -> int:
        return self._parent

    def spawn(self, *args) -> int:
        child = self._world.spawn(*args)
        _ensure_required(self._world, child)
        self._world.add_child(self._parent, child)
        return child


class SpatialEntityCommands:
    """Operations on a single entity spawned into a grid."""

    def __init__(self, world: World, entity: int) -> None:
        self._world = world
        self._entity = entity

    @property
    def entity(self) -> int:
        return self._entity

    @property
    def world(self) -> World:
        return self._world

    def insert(self, *args) -> SpatialEntityCommands:
        """Add components to this entity."""
        self._world.insert(self._entity, *args)
        _ensure_required(self._world, self._entity)
        return self

    def remove(self, component_type: type) -> SpatialEntityCommands:
        """Remove a component from this entity."""
        self._world.remove(self._entity, component_type)
        return self

    def with_children(self, spawn_children: Callable[[_ChildSpawner], object]) -> SpatialEntityCommands:
        """Call ``spawn_children`` with a spawner whose entities become children of this one."""
        spawn_children(_ChildSpawner(self._world, self._entity))
        return self

    def with_child(self, *args) -> SpatialEntityCommands:
        """Spawn one child of this entity holding the given components."""
        _ChildSpawner(self._world, self._entity).spawn(*args)
        return self


class GridCommands:
    """Builds the contents of one grid.

    Spawned entities become children of the grid, and the grid value is stored on the
    entity, when :meth:`finish` is called or the ``with`` block ends.
    """

    def __init__(self, world: World, entity: int, grid: Grid) -> None:
        self._world = world
        self._entity = entity
        self._grid = grid
        self._children: list[int] = []
        self._finished = False

    @property
    def entity(self) -> int:
        return self._entity

    @property
    def world(self) -> World:
        return self._world

    @property
    def grid(self) -> Grid:
        """The grid being built, which is stored on the entity when finished."""
        return self._grid

    def __enter__(self) -> GridCommands:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.finish()

    def insert(self, *args) -> GridCommands:
        """Add components to the grid entity."""
        self._world.insert(self._entity, *args)
        _ensure_required(self._world, self._entity)
        return self

    def spawn(self, *args) -> SpatialEntityCommands:
        """Spawn an entity in this grid."""
        entity = self._world.spawn(*args)
        _ensure_required(self._world, entity)
        self._children.append(entity)
        return SpatialEntityCommands(self._world, entity)

    def spawn_spatial(self, *args) -> SpatialEntityCommands:
        """Spawn a high precision entity with a grid cell, then add the given components."""
        return self.spawn(Transform(), GridCell.ZERO).insert(*args)

    def with_spatial(self, spatial: Callable[[SpatialEntityCommands], object]) -> GridCommands:
        """Spawn a high precision entity and hand it to ``spatial``."""
        spatial(self.spawn_spatial())
        return self

    def with_grid(self, new_grid: Grid, builder: Callable[[GridCommands], object]) -> GridCommands:
        """Spawn a child grid and build its contents with ``builder``."""
        with self.spawn_grid(new_grid) as child:
            builder(child)
        return self

    def with_grid_default(self, builder: Callable[[GridCommands], object]) -> GridCommands:
        return self.with_grid(Grid(), builder)

    def spawn_grid(self, new_grid: Grid, *args) -> GridCommands:
        """Spawn a child grid; the returned builder must be finished to store ``new_grid``."""
        entity = self.spawn(Transform(), GridCell.ZERO, Grid()).insert(*args).entity
        return GridCommands(self._world, entity, new_grid)

    def spawn_grid_default(self, *args) -> GridCommands:
        return self.spawn_grid(Grid(), *args)

    def with_child(self, *args) -> GridCommands:
        """Spawn one child of the grid entity holding the given components."""
        _ChildSpawner(self._world, self._entity).spawn(*args)
        return self

    def finish(self) -> None:
        """Store the grid on its entity and attach the spawned children. Runs once."""
        if self._finished:
            return
        self._finished = True
        self._world.insert(self._entity, self._grid)
        self._world.add_children(self._entity, self._children)


def spawn_big_space(
    world: World, root_grid: Grid, child_builder: Callable[[GridCommands], object]
) -> int:
    """Spawn the root of a new big space and build its contents; returns the root entity."""
    entity = world.spawn(*big_space_root_bundle())
    with GridCommands(world, entity, root_grid) as commands:
        child_builder(commands)
    return entity


def spawn_big_space_default(
    world: World, child_builder: Callable[[GridCommands], object]
) -> int:
    return spawn_big_space(world, Grid(), child_builder)


def grid_commands(world: World, entity: int, grid: Grid) -> GridCommands:
    """A builder for an existing entity; ``grid`` is stored on it when finished."""
    return GridCommands(world, entity, grid)


def spawn_grid_commands(
    world: World, entity: int, builder: Callable[[GridCommands], object]
) -> None:
    """Build more contents into the existing grid held by ``entity``."""
    grid = world.get(entity, Grid)
    if grid is None:
        raise KeyError(f"grid entity {entity!r} is missing a Grid component")
    with GridCommands(world, entity, copy.deepcopy(grid)) as commands:
        builder(commands)