"""Propagating the floating origin's position through a hierarchy of grids."""

from __future__ import annotations

import logging

import numpy as np

from bigspace.cell import GridCell
from bigspace.floating_origins import BigSpace
from bigspace.grids import Grids
from bigspace.math3d import Affine3, Quat, Transform
from bigspace.world import World

logger = logging.getLogger(__name__)

MAX_GRID_DEPTH = 1_000


def propagate_origin_to_parent(
    this_grid_entity: int, grids: Grids, parent_grid_entity: int
) -> None:
    """Set the parent grid's local floating origin from this grid's."""
    this_grid, this_cell, this_transform = grids.get(this_grid_entity)
    parent_grid, _, _ = grids.get(parent_grid_entity)

    # Work relative to this grid's cell to keep precision, adding the cell back at the end.
    this_affine = Affine3.from_rotation_translation(
        this_transform.rotation, this_transform.translation.astype(np.float64)
    )
    local = this_grid.local_floating_origin
    origin_translation = this_grid.grid_position_double(
        local.cell, Transform.from_translation(local.translation)
    )
    local_origin_affine = Affine3.from_rotation_translation(local.rotation, origin_translation)

    origin_affine = this_affine * local_origin_affine
    _, origin_rotation, origin_translation = origin_affine.to_scale_rotation_translation()
    relative_cell, remainder = parent_grid.translation_to_grid(origin_translation)
    parent_cell = relative_cell + this_cell

    grids.update(
        parent_grid_entity,
        lambda grid, _cell, _transform: grid.local_floating_origin.set(
            parent_cell, remainder, origin_rotation
        ),
    )


def propagate_origin_to_child(
    this_grid_entity: int, grids: Grids, child_grid_entity: int
) -> None:
    """Set a child grid's local floating origin from this grid's."""
    this_grid, _, _ = grids.get(this_grid_entity)
    child_grid, child_cell, child_transform = grids.get(child_grid_entity)

    local = this_grid.local_floating_origin
    relative_cell = local.cell - child_cell
    origin_translation = this_grid.grid_position_double(
        relative_cell, Transform.from_translation(local.translation)
    )
    origin_affine = Affine3.from_rotation_translation(local.rotation, origin_translation)

    child_view = Affine3.from_rotation_translation(
        child_transform.rotation, child_transform.translation.astype(np.float64)
    ).inverse()

    origin_in_child = child_view * origin_affine
    _, rotation, translation = origin_in_child.to_scale_rotation_translation()
    child_origin_cell, child_origin_offset = child_grid.translation_to_grid(translation)

    grids.update(
        child_grid_entity,
        lambda grid, _cell, _transform: grid.local_floating_origin.set(
            child_origin_cell, child_origin_offset, rotation
        ),
    )


def _propagate_tree(grids: Grids, this_grid: int) -> bool:
    """Walk out from the origin's grid over the whole tree; False if the depth limit hit."""
    stack = [this_grid]
    for _ in range(MAX_GRID_DEPTH):
        parent = grids.parent_grid_entity(this_grid)
        if parent is not None:
            propagate_origin_to_parent(this_grid, grids, parent)
            for sibling in grids.sibling_grids(this_grid) or []:
                propagate_origin_to_child(parent, grids, sibling)
                stack.append(sibling)

        while stack:
            current = stack.pop()
            for child in grids.child_grids(current):
                propagate_origin_to_child(current, grids, child)
                stack.append(child)

        parent = grids.parent_grid_entity(this_grid)
        if parent is None:
            return True
        this_grid = parent
    return False


def compute_all(world: World) -> None:
    """Update the local floating origin of every grid in every big space."""
    grids = Grids(world)
    for root_entity, space in world.query(BigSpace):
        origin = space.validate_floating_origin(root_entity, world)
        if origin is None:
            continue
        origin_cell = world.get(origin, GridCell)
        if origin_cell is None:
            continue
        this_grid = grids.parent_grid_entity(origin)
        if this_grid is None:
            logger.error(
                "The floating origin is not in a valid grid. The floating origin entity "
                "must be a child of an entity with the `Grid` component."
            )
            continue

        grids.update(
            this_grid,
            lambda grid, _cell, _transform: grid.local_floating_origin.set(
                origin_cell, np.zeros(3), Quat.identity()
            ),
        )

        if not _propagate_tree(grids, this_grid):
            logger.error(
                "Reached the maximum grid depth (%d), and exited early to prevent an "
                "infinite loop. This might be caused by a degenerate hierarchy.",
                MAX_GRID_DEPTH,
            )