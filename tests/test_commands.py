import pytest

from bigspace.bundles import big_space_root_bundle
from bigspace.cell import GridCell
from bigspace.commands import (
    GridCommands,
    SpatialEntityCommands,
    grid_commands,
    spawn_big_space,
    spawn_big_space_default,
    spawn_grid_commands,
)
from bigspace.floating_origins import BigSpace, FloatingOrigin, find_floating_origin
from bigspace.grid import Grid
from bigspace.math3d import GlobalTransform, Transform
from bigspace.world import World


def test_spawn_big_space_inserts_root_grid_and_big_space():
    world = World()
    grid = Grid(10.0, 1.0)
    seen = []
    root = spawn_big_space(world, grid, lambda cmd: seen.append(cmd.entity))
    assert seen == [root]
    assert world.get(root, Grid) is grid
    assert world.get(root, BigSpace) == BigSpace()
    assert world.parent(root) is None


def test_spawn_big_space_default_uses_default_grid():
    world = World()
    root = spawn_big_space_default(world, lambda cmd: None)
    assert world.get(root, Grid).cell_edge_length == 2000.0


def test_builder_exposes_grid_before_it_is_stored():
    world = World()
    grid = Grid(7.0, 0.0)
    seen = []
    spawn_big_space(world, grid, lambda cmd: seen.append(cmd.grid))
    assert seen == [grid]


def test_spawn_spatial_children_are_high_precision():
    world = World()
    ids = []

    def build(root: GridCommands):
        ids.append(root.spawn_spatial(Transform.from_xyz(1.0, 2.0, 3.0)).entity)
        ids.append(root.spawn_spatial().entity)

    root = spawn_big_space_default(world, build)
    assert world.children(root) == ids
    assert world.get(ids[0], Transform) == Transform.from_xyz(1.0, 2.0, 3.0)
    assert world.get(ids[1], GridCell) == GridCell.ZERO
    assert world.get(ids[1], Transform) == Transform()
    assert world.has(ids[1], GlobalTransform)


def test_spawn_with_cell_adds_required_components():
    world = World()
    ids = []
    spawn_big_space_default(world, lambda root: ids.append(root.spawn(GridCell(1, 2, 3)).entity))
    assert world.get(ids[0], Transform) == Transform()
    assert world.has(ids[0], GlobalTransform)


def test_with_grid_nests_grids():
    world = World()
    inner = Grid(5.0, 0.0)
    record = {}

    def inner_build(g: GridCommands):
        record["grid"] = g.entity
        record["leaf"] = g.spawn_spatial().entity
        g.insert(GridCell(1, 2, 3))

    root = spawn_big_space_default(world, lambda root: root.with_grid(inner, inner_build))
    assert world.parent(record["grid"]) == root
    assert world.get(record["grid"], Grid) is inner
    assert world.get(record["grid"], GridCell) == GridCell(1, 2, 3)
    assert world.parent(record["leaf"]) == record["grid"]


def test_with_grid_default_spawns_default_grid():
    world = World()
    record = []
    root = spawn_big_space(world, Grid(1.0, 0.0), lambda r: r.with_grid_default(
        lambda g: record.append(g.entity)))
    assert world.children(root) == record
    assert world.get(record[0], Grid).cell_edge_length == Grid().cell_edge_length


def test_spawn_grid_stores_grid_on_finish():
    world = World()
    root = world.spawn(*big_space_root_bundle())
    cmd = grid_commands(world, root, Grid())
    new = Grid(3.0, 0.0)
    child = cmd.spawn_grid(new)
    assert world.get(child.entity, Grid) is not new
    assert world.has(child.entity, GridCell)
    child.finish()
    assert world.get(child.entity, Grid) is new
    cmd.finish()
    assert world.children(root) == [child.entity]


def test_spawn_grid_default_builder_has_default_grid():
    world = World()
    root = world.spawn(*big_space_root_bundle())
    with grid_commands(world, root, Grid()) as cmd:
        child = cmd.spawn_grid_default(FloatingOrigin)
        child.finish()
    assert world.has(child.entity, FloatingOrigin)
    assert world.get(child.entity, Grid) is child.grid


def test_context_manager_attaches_children_on_exit():
    world = World()
    root = world.spawn(*big_space_root_bundle())
    grid = Grid(4.0, 0.0)
    with grid_commands(world, root, grid) as cmd:
        leaf = cmd.spawn(Transform()).entity
        assert world.parent(leaf) is None
    assert world.parent(leaf) == root
    assert world.get(root, Grid) is grid


def test_finish_runs_once():
    world = World()
    root = world.spawn(*big_space_root_bundle())
    cmd = grid_commands(world, root, Grid())
    cmd.spawn_spatial()
    cmd.finish()
    cmd.finish()
    assert len(world.children(root)) == 1


def test_with_child_attaches_immediately():
    world = World()
    root = world.spawn(*big_space_root_bundle())
    cmd = grid_commands(world, root, Grid())
    assert cmd.with_child(Transform()) is cmd
    children = world.children(root)
    assert len(children) == 1
    assert world.has(children[0], GlobalTransform)


def test_spatial_entity_with_children_and_remove():
    world = World()
    record = {}

    def build(root: GridCommands):
        spatial = root.spawn_spatial()
        record["spatial"] = spatial.entity
        assert spatial.insert(FloatingOrigin) is spatial
        spatial.with_children(lambda b: record.setdefault("child", b.spawn(Transform.from_xyz(1.0, 0.0, 0.0))))
        spatial.with_child(Transform())
        spatial.remove(FloatingOrigin)

    spawn_big_space_default(world, build)
    spatial = record["spatial"]
    assert not world.has(spatial, FloatingOrigin)
    children = world.children(spatial)
    assert children[0] == record["child"]
    assert len(children) == 2
    assert world.has(record["child"], GlobalTransform)


def test_with_spatial_marks_floating_origin():
    world = World()
    record = []

    def mark(spatial: SpatialEntityCommands):
        spatial.insert(FloatingOrigin)
        record.append(spatial.entity)

    root = spawn_big_space_default(world, lambda r: r.with_spatial(mark))
    find_floating_origin(world)
    assert world.get(root, BigSpace).floating_origin == record[0]


def test_spawn_grid_commands_extends_existing_grid():
    world = World()
    root = spawn_big_space(world, Grid(50.0, 0.0), lambda r: r.spawn_spatial())
    added = []
    spawn_grid_commands(world, root, lambda g: added.append(g.spawn_spatial().entity))
    assert world.children(root)[-1] == added[0]
    assert len(world.children(root)) == 2
    assert world.get(root, Grid).cell_edge_length == 50.0


def test_spawn_grid_commands_requires_grid():
    world = World()
    plain = world.spawn(Transform())
    with pytest.raises(KeyError):
        spawn_grid_commands(world, plain, lambda g: None)