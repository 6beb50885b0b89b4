"""Propagating transforms through big space hierarchies of grids."""

from __future__ import annotations

import numpy as np

from bigspace.cell import GridCell
from bigspace.floating_origins import BigSpace, find_floating_origin
from bigspace.grid import Grid
from bigspace.math3d import GlobalTransform, Transform
from bigspace.origin_propagation import compute_all
from bigspace.world import World, propagate_parent_transforms


class LowPrecisionRoot:
    """Marks the root of a subtree of entities positioned by transforms alone.

    Such an entity has no :class:`GridCell`, and its parent is a high precision entity
    (one with a grid cell) that has children.
    """

    def __eq__(self, other: object) -> bool:
        return isinstance(other, LowPrecisionRoot)

    def __hash__(self) -> int:
        return hash(LowPrecisionRoot)

    def __repr__(self) -> str:
        return "LowPrecisionRoot()"


def _parent_grid(world: World, entity: int) -> Grid | None:
    parent = world.parent(entity)
    if parent is None:
        return None
    return world.get(parent, Grid)


def recenter_large_transforms(world: World) -> None:
    """Move entities that strayed too far from their cell centre into the nearest cell."""
    for entity, cell, transform in world.query(GridCell, Transform):
        grid = _parent_grid(world, entity)
        if grid is None:
            continue
        if float(np.max(np.abs(transform.translation))) <= grid.maximum_distance_from_origin:
            continue
        delta, translation = grid.imprecise_translation_to_grid(transform.translation)
        world.insert(entity, cell + delta)
        transform.translation = translation.astype(np.float32)


def propagate_high_precision(world: World) -> None:
    """Compute the global transform of every grid-cell entity and of every root grid."""
    for entity, cell, transform, _ in world.query(GridCell, Transform, GlobalTransform):
        grid = _parent_grid(world, entity)
        if grid is None:
            continue
        world.insert(entity, grid.global_transform(cell, transform))

    # A root grid has no cell or transform; its placement depends on the local origin alone.
    for entity, grid, _, _ in world.query(Grid, GlobalTransform, BigSpace):
        world.insert(entity, grid.global_transform(GridCell.ZERO, Transform()))


def _is_valid_low_precision_parent(world: World, entity: int) -> bool:
    return (
        world.has(entity, GridCell)
        and world.has(entity, GlobalTransform)
        and bool(world.children(entity))
    )


def tag_low_precision_roots(world: World) -> None:
    """Add or remove :class:`LowPrecisionRoot` markers to match the hierarchy."""
    for entity, _, _ in world.query(Transform, GlobalTransform):
        if world.has(entity, GridCell) or world.has(entity, LowPrecisionRoot):
            continue
        parent = world.parent(entity)
        if parent is not None and _is_valid_low_precision_parent(world, parent):
            world.insert(entity, LowPrecisionRoot)

    for entity, _ in world.query(LowPrecisionRoot):
        parent = world.parent(entity)
        invalid = (
            not world.has(entity, Transform)
            or not world.has(entity, GlobalTransform)
            or world.has(entity, GridCell)
            or parent is None
            or not _is_valid_low_precision_parent(world, parent)
        )
        if invalid:
            world.remove(entity, LowPrecisionRoot)


def _is_low_precision(world: World, entity: int) -> bool:
    return (
        world.has(entity, Transform)
        and world.has(entity, GlobalTransform)
        and not world.has(entity, GridCell)
        and not world.has(entity, Grid)
    )


def _propagate_subtree(world: World, parent_global: GlobalTransform, root: int) -> None:
    stack = [(parent_global, root)]
    while stack:
        parent_transform, entity = stack.pop()
        if not _is_low_precision(world, entity) or world.parent(entity) is None:
            continue
        own = parent_transform.mul_transform(world.get(entity, Transform))
        world.insert(entity, own)
        for child in reversed(world.children(entity)):
            if not _is_low_precision(world, child):
                continue
            if world.parent(child) != entity:
                raise RuntimeError(
                    "Malformed hierarchy. This probably means that your hierarchy has been "
                    "improperly maintained, or contains a cycle"
                )
            stack.append((own, child))


def propagate_low_precision(world: World) -> None:
    """Compute global transforms of transform-only subtrees below high precision entities."""
    for root, _ in world.query(LowPrecisionRoot):
        parent = world.parent(root)
        if parent is None:
            continue
        if not (world.has(parent, Grid) or world.has(parent, GridCell)):
            continue
        parent_global = world.get(parent, GlobalTransform)
        if parent_global is None:
            continue
        _propagate_subtree(world, parent_global, root)


def propagate_transforms(world: World) -> None:
    """Run one full update of cells, floating origins and global transforms."""
    recenter_large_transforms(world)
    find_floating_origin(world)
    compute_all(world)
    propagate_high_precision(world)
    tag_low_precision_roots(world)
    propagate_low_precision(world)
    propagate_parent_transforms(world)