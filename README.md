# bigspace

Floating origin grids for positioning objects across enormous distances without
losing floating point precision.

Every high precision entity is located by a `GridCell` (three 64-bit integer cell
indices) plus a small single precision `Transform` relative to the centre of that
cell. Grids can be nested, so a moon can live in a planet's grid, which lives in a
star system's grid. Global transforms are computed relative to the cell of a single
`FloatingOrigin` entity, so whatever is near the origin keeps full precision.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Example

```python
from bigspace.world import World
from bigspace.math3d import Transform
from bigspace.floating_origins import FloatingOrigin
from bigspace.commands import spawn_big_space_default
from bigspace.propagation import propagate_transforms

world = World()
far = 1e18

def build(root):
    cell, offset = root.grid.translation_to_grid((far, far, far))
    root.spawn_spatial(FloatingOrigin(), cell, Transform.from_translation(offset))
    root.spawn_spatial(cell, Transform.from_translation(offset))

spawn_big_space_default(world, build)
propagate_transforms(world)
```

After `propagate_transforms`, every entity's `GlobalTransform` is expressed relative
to the floating origin's cell.

## Modules

- `bigspace.math3d`: `Quat`, `Affine3` (double precision), `Transform` (single
  precision translation, rotation and scale) and `GlobalTransform` (an affine rounded
  to single precision).
- `bigspace.cell`: `GridCell`. Addition and subtraction wrap around the 64-bit range;
  multiplication by an integer raises `OverflowError` if it leaves that range.
- `bigspace.grid`: `Grid`, with a cell edge length (default 2000) and a switching
  threshold (default 100). `translation_to_grid` splits a large translation into a
  cell and a small offset; `global_transform` places an entity relative to the
  floating origin.
- `bigspace.local_origin`: `LocalFloatingOrigin`, where the floating origin's cell
  sits as seen from one grid, and whether it moved on the last `set`.
- `bigspace.world`: `World`, a small entity store. Entities are integers holding at
  most one component per type; a class passed in place of an instance is
  instantiated, and tuples and lists are flattened. It keeps a parent/child hierarchy
  (`add_child`, `children`, `ancestors`, `descendants`, `despawn`) and refuses
  cycles. `propagate_parent_transforms` handles plain transform hierarchies outside
  any big space.
- `bigspace.grids`: `Grids`, navigation of nested grids: parent, child and sibling
  grids, and each grid's cell and transform.
- `bigspace.floating_origins`: `FloatingOrigin`, `BigSpace` and
  `find_floating_origin`, which logs an error for a big space with none or several
  floating origins and leaves it without one.
- `bigspace.origin_propagation`: `propagate_origin_to_parent`,
  `propagate_origin_to_child` and `compute_all`, which places the floating origin in
  every grid of every big space.
- `bigspace.propagation`: `recenter_large_transforms`, `propagate_high_precision`,
  `tag_low_precision_roots`, `propagate_low_precision`, and `propagate_transforms`,
  which runs them all (together with floating origin discovery and origin
  propagation) in order.
- `bigspace.commands`: `spawn_big_space`, `spawn_big_space_default`,
  `grid_commands` and `spawn_grid_commands`, and the builders `GridCommands` and
  `SpatialEntityCommands`. A `GridCommands` stores its grid and attaches its
  spawned children when `finish` is called or its `with` block ends.
- `bigspace.camera`: `BigSpaceCameraController` and `BigSpaceCameraInput`, a fly
  camera that moves through grid cells. `default_camera_inputs` maps key names
  (`"KeyW"`, `"KeyS"`, `"KeyA"`, `"KeyD"`, `"Space"`, `"ControlLeft"`, `"KeyQ"`,
  `"KeyE"`, `"ShiftLeft"`) and mouse deltas onto the input;
  `nearest_objects_in_grid` finds the nearest visible `Aabb` sharing the camera's
  `RenderLayers`; `camera_controller` moves the camera by the input over a time step.
- `bigspace.bundles`: default component sets for spatial entities, grids and roots.

## What it does not do

The package only computes positions and transforms. It does not render anything,
draw debug visuals, open windows, read keyboards or mice, or run a frame loop: the
caller supplies key names and mouse deltas to the camera functions and calls
`propagate_transforms` (and the camera functions) once per update.