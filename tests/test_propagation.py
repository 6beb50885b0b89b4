import numpy as np
import pytest

from bigspace.cell import GridCell
from bigspace.commands import spawn_big_space_default
from bigspace.floating_origins import FloatingOrigin
from bigspace.grid import Grid
from bigspace.math3d import GlobalTransform, Quat, Transform
from bigspace.propagation import (
    LowPrecisionRoot,
    propagate_high_precision,
    propagate_low_precision,
    propagate_transforms,
    recenter_large_transforms,
    tag_low_precision_roots,
)
from bigspace.world import World


class Marker:
    pass


def test_low_precision_in_big_space():
    world = World()

    def build(root):
        root.spawn_spatial(FloatingOrigin)
        root.spawn_spatial(
            Transform.from_xyz(3.0, 3.0, 3.0), GridCell(1, 1, 1)
        ).with_children(
            lambda spatial: spatial.spawn(Transform.from_xyz(1.0, 2.0, 3.0), Marker)
        )

    spawn_big_space_default(world, build)
    propagate_transforms(world)

    results = [g for _, g, _ in world.query(GlobalTransform, Marker)]
    assert len(results) == 1
    assert results[0] == GlobalTransform.from_xyz(2004.0, 2005.0, 2006.0)


def test_high_precision_relative_to_origin_cell():
    world = World()
    found = {}

    def build(root):
        root.spawn_spatial(FloatingOrigin, GridCell(1, 0, 0))
        found["obj"] = root.spawn_spatial(
            GridCell(2, 0, 0), Transform.from_xyz(5.0, 0.0, 0.0)
        ).entity

    root = spawn_big_space_default(world, build)
    propagate_transforms(world)

    obj_global = world.get(found["obj"], GlobalTransform)
    np.testing.assert_array_equal(obj_global.translation(), [2005.0, 0.0, 0.0])
    root_global = world.get(root, GlobalTransform)
    np.testing.assert_array_equal(root_global.translation(), [-2000.0, 0.0, 0.0])


def test_recenter_moves_entity_to_nearest_cell():
    world = World()
    grid = world.spawn(Grid())
    entity = world.spawn(GridCell(0, 0, 0), Transform.from_xyz(2500.0, 0.0, 0.0))
    world.add_child(grid, entity)

    recenter_large_transforms(world)

    assert world.get(entity, GridCell) == GridCell(1, 0, 0)
    np.testing.assert_array_equal(world.get(entity, Transform).translation, [500.0, 0.0, 0.0])


def test_recenter_leaves_small_translation():
    world = World()
    grid = world.spawn(Grid())
    entity = world.spawn(GridCell(3, 0, 0), Transform.from_xyz(1000.0, -50.0, 0.0))
    world.add_child(grid, entity)

    recenter_large_transforms(world)

    assert world.get(entity, GridCell) == GridCell(3, 0, 0)
    np.testing.assert_array_equal(
        world.get(entity, Transform).translation, [1000.0, -50.0, 0.0]
    )


def test_recenter_ignores_entity_without_parent_grid():
    world = World()
    entity = world.spawn(GridCell(0, 0, 0), Transform.from_xyz(9000.0, 0.0, 0.0))

    recenter_large_transforms(world)

    assert world.get(entity, GridCell) == GridCell(0, 0, 0)
    np.testing.assert_array_equal(world.get(entity, Transform).translation, [9000.0, 0.0, 0.0])


def test_propagate_high_precision_uses_parent_grid():
    world = World()
    grid = world.spawn(Grid())
    entity = world.spawn(GridCell(0, 1, 0), Transform.from_xyz(0.0, 2.0, 0.0), GlobalTransform())
    world.add_child(grid, entity)

    propagate_high_precision(world)

    np.testing.assert_array_equal(
        world.get(entity, GlobalTransform).translation(), [0.0, 2002.0, 0.0]
    )


def _spatial_with_child(world):
    grid = world.spawn(Grid())
    spatial = world.spawn(GridCell(0, 0, 0), Transform(), GlobalTransform())
    world.add_child(grid, spatial)
    child = world.spawn(Transform.from_xyz(1.0, 0.0, 0.0), GlobalTransform())
    world.add_child(spatial, child)
    return grid, spatial, child


def test_tag_marks_child_of_high_precision_entity():
    world = World()
    _, spatial, child = _spatial_with_child(world)

    tag_low_precision_roots(world)

    assert world.has(child, LowPrecisionRoot)
    assert not world.has(spatial, LowPrecisionRoot)


def test_tag_removes_marker_when_child_gains_cell():
    world = World()
    _, _, child = _spatial_with_child(world)
    tag_low_precision_roots(world)
    world.insert(child, GridCell(0, 0, 0))

    tag_low_precision_roots(world)

    assert not world.has(child, LowPrecisionRoot)


def test_tag_removes_marker_when_parent_loses_cell():
    world = World()
    _, spatial, child = _spatial_with_child(world)
    tag_low_precision_roots(world)
    world.remove(spatial, GridCell)

    tag_low_precision_roots(world)

    assert not world.has(child, LowPrecisionRoot)


def test_tag_skips_child_of_plain_entity():
    world = World()
    parent = world.spawn(Transform(), GlobalTransform())
    child = world.spawn(Transform(), GlobalTransform())
    world.add_child(parent, child)

    tag_low_precision_roots(world)

    assert not world.has(child, LowPrecisionRoot)


def test_propagate_low_precision_chain():
    world = World()
    _, spatial, child = _spatial_with_child(world)
    world.insert(spatial, GlobalTransform.from_xyz(10.0, 0.0, 0.0))
    grandchild = world.spawn(Transform.from_xyz(0.0, 4.0, 0.0), GlobalTransform())
    world.add_child(child, grandchild)

    tag_low_precision_roots(world)
    propagate_low_precision(world)

    np.testing.assert_array_equal(
        world.get(child, GlobalTransform).translation(), [11.0, 0.0, 0.0]
    )
    np.testing.assert_array_equal(
        world.get(grandchild, GlobalTransform).translation(), [11.0, 4.0, 0.0]
    )


def test_propagate_low_precision_applies_rotation():
    world = World()
    _, spatial, child = _spatial_with_child(world)
    world.insert(child, Transform.from_rotation(Quat.from_rotation_z(np.pi / 2)))
    grandchild = world.spawn(Transform.from_xyz(1.0, 0.0, 0.0), GlobalTransform())
    world.add_child(child, grandchild)

    tag_low_precision_roots(world)
    propagate_low_precision(world)

    np.testing.assert_allclose(
        world.get(grandchild, GlobalTransform).translation(), [0.0, 1.0, 0.0], atol=1e-6
    )


def test_propagate_low_precision_stops_at_grid_cell_entities():
    world = World()
    _, spatial, child = _spatial_with_child(world)
    world.insert(spatial, GlobalTransform.from_xyz(10.0, 0.0, 0.0))
    nested = world.spawn(GridCell(0, 0, 0), Transform.from_xyz(7.0, 0.0, 0.0), GlobalTransform())
    world.add_child(child, nested)

    tag_low_precision_roots(world)
    propagate_low_precision(world)

    np.testing.assert_array_equal(
        world.get(nested, GlobalTransform).translation(), [0.0, 0.0, 0.0]
    )


def test_propagate_low_precision_needs_marker():
    world = World()
    _, spatial, child = _spatial_with_child(world)
    world.insert(spatial, GlobalTransform.from_xyz(10.0, 0.0, 0.0))

    propagate_low_precision(world)

    np.testing.assert_array_equal(
        world.get(child, GlobalTransform).translation(), [0.0, 0.0, 0.0]
    )


def test_marker_equality():
    assert LowPrecisionRoot() == LowPrecisionRoot()
    assert LowPrecisionRoot() != FloatingOrigin()


@pytest.mark.parametrize("x", [1200.0, -1200.0])
def test_full_update_recenters_before_propagating(x):
    world = World()
    found = {}

    def build(root):
        root.spawn_spatial(FloatingOrigin)
        found["obj"] = root.spawn_spatial(Transform.from_xyz(x, 0.0, 0.0)).entity

    spawn_big_space_default(world, build)
    propagate_transforms(world)

    obj = found["obj"]
    expected_cell = GridCell(1, 0, 0) if x > 0 else GridCell(-1, 0, 0)
    assert world.get(obj, GridCell) == expected_cell
    np.testing.assert_array_equal(
        world.get(obj, GlobalTransform).translation(), [x, 0.0, 0.0]
    )