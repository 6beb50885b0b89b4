"""A fly camera controller that moves through grids without losing precision."""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass, field, fields

import numpy as np

from bigspace.cell import GridCell
from bigspace.grids import Grids
from bigspace.math3d import GlobalTransform, Quat, Transform, _vec3
from bigspace.world import World


@dataclass(eq=False)
class Aabb:
    """An axis aligned bounding box given by its centre and half extents."""

    center: np.ndarray = field(default_factory=lambda: np.zeros(3, dtype=np.float32))
    half_extents: np.ndarray = field(default_factory=lambda: np.zeros(3, dtype=np.float32))

    def __post_init__(self) -> None:
        self.center = _vec3(self.center, np.float32)
        self.half_extents = _vec3(self.half_extents, np.float32)


@dataclass
class InheritedVisibility:
    """Whether an entity is visible once its ancestors are taken into account."""

    visible: bool = True


class RenderLayers:
    """The set of render layers an entity belongs to; layer 0 when none are given."""

    def __init__(self, *layers: int) -> None:
        self._layers = frozenset(layers) if layers else frozenset({0})

    @property
    def layers(self) -> frozenset[int]:
        return self._layers

    def intersects(self, other: RenderLayers) -> bool:
        return not self._layers.isdisjoint(other._layers)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RenderLayers):
            return NotImplemented
        return self._layers == other._layers

    def __hash__(self) -> int:
        return hash(self._layers)

    def __repr__(self) -> str:
        return f"RenderLayers({', '.join(map(str, sorted(self._layers)))})"


@dataclass
class BigSpaceCameraController:
    """Settings and motion state of the fly camera."""

    smoothness: float = 0.85
    rotational_smoothness: float = 0.8
    speed: float = 1.0
    speed_yaw: float = 2.0
    speed_pitch: float = 2.0
    speed_roll: float = 1.0
    speed_bounds: tuple[float, float] = (1e-17, 1e30)
    slow_near_objects: bool = True
    _nearest_object: tuple[int, float] | None = field(default=None, init=False, repr=False)
    _vel_translation: np.ndarray = field(
        default_factory=lambda: np.zeros(3), init=False, repr=False
    )
    _vel_rotation: Quat = field(default_factory=Quat.identity, init=False, repr=False)

    def with_smoothness(self, translation: float, rotation: float) -> BigSpaceCameraController:
        self.smoothness = translation
        self.rotational_smoothness = rotation
        return self

    def with_slowing(self, slow_near_objects: bool) -> BigSpaceCameraController:
        self.slow_near_objects = slow_near_objects
        return self

    def with_speed(self, speed: float) -> BigSpaceCameraController:
        self.speed = speed
        return self

    def with_speed_yaw(self, speed: float) -> BigSpaceCameraController:
        self.speed_yaw = speed
        return self

    def with_speed_pitch(self, speed: float) -> BigSpaceCameraController:
        self.speed_pitch = speed
        return self

    def with_speed_roll(self, speed: float) -> BigSpaceCameraController:
        self.speed_roll = speed
        return self

    def with_speed_bounds(self, speed_limits) -> BigSpaceCameraController:
        low, high = speed_limits
        self.speed_bounds = (float(low), float(high))
        return self

    def velocity(self) -> tuple[np.ndarray, Quat]:
        """The translational and rotational velocity of the camera."""
        return self._vel_translation.copy(), self._vel_rotation

    def nearest_object(self) -> tuple[int, float] | None:
        """The object nearest the camera and its distance, if one was found."""
        return self._nearest_object


@dataclass
class BigSpaceCameraInput:
    """Requested camera motion, using aircraft axis conventions; cleared after each use."""

    defaults_disabled: bool = False
    forward: float = 0.0
    up: float = 0.0
    right: float = 0.0
    roll: float = 0.0
    pitch: float = 0.0
    yaw: float = 0.0
    boost: bool = False

    def reset(self) -> None:
        """Clear all motion, keeping ``defaults_disabled``."""
        disabled = self.defaults_disabled
        for item in fields(self):
            setattr(self, item.name, item.default)
        self.defaults_disabled = disabled

    def target_velocity(
        self, controller: BigSpaceCameraController, speed: float, dt: float
    ) -> tuple[np.ndarray, Quat]:
        rotation = Quat.from_euler(
            self.pitch * dt * controller.speed_pitch,
            self.yaw * dt * controller.speed_yaw,
            self.roll * dt * controller.speed_roll,
        )
        translation = np.array([self.right, self.up, self.forward], dtype=np.float64) * speed * dt
        return translation, rotation


def default_camera_inputs(
    cam: BigSpaceCameraInput,
    pressed_keys: Iterable[str],
    mouse_deltas: Iterable = (),
) -> None:
    """Map WASD, Space, left Control, Q/E, left Shift and mouse motion onto ``cam``."""
    if cam.defaults_disabled:
        return
    keys = set(pressed_keys)
    if "KeyW" in keys:
        cam.forward -= 1.0
    if "KeyS" in keys:
        cam.forward += 1.0
    if "KeyA" in keys:
        cam.right -= 1.0
    if "KeyD" in keys:
        cam.right += 1.0
    if "Space" in keys:
        cam.up += 1.0
    if "ControlLeft" in keys:
        cam.up -= 1.0
    if "KeyQ" in keys:
        cam.roll += 2.0
    if "KeyE" in keys:
        cam.roll -= 2.0
    if "ShiftLeft" in keys:
        cam.boost = True
    deltas = [np.asarray(d, dtype=np.float32).reshape(2) for d in mouse_deltas]
    if deltas:
        total = np.sum(deltas, axis=0, dtype=np.float32)
        cam.pitch += float(total[1]) * -0.1
        cam.yaw += float(total[0]) * -0.1


def nearest_objects_in_grid(world: World) -> None:
    """Record on the single camera the nearest visible bounded object sharing its layers."""
    cameras = list(world.query(BigSpaceCameraController, GlobalTransform))
    if len(cameras) != 1:
        return
    cam_entity, controller, cam_global = cameras[0]
    if not controller.slow_near_objects:
        return
    cam_layers = world.get(cam_entity, RenderLayers)
    if cam_layers is None:
        cam_layers = RenderLayers()
    excluded = set(world.descendants(cam_entity))
    cam_pos = cam_global.translation().astype(np.float64)

    nearest: tuple[int, float] | None = None
    for entity, local, global_transform, aabb, visibility in world.query(
        Transform, GlobalTransform, Aabb, InheritedVisibility
    ):
        if entity in excluded:
            continue
        layers = world.get(entity, RenderLayers)
        if not cam_layers.intersects(RenderLayers() if layers is None else layers):
            continue
        if not visibility.visible:
            continue
        offset = global_transform.translation().astype(np.float64) - cam_pos
        extent = np.min(
            np.abs(aabb.half_extents.astype(np.float64) * local.scale.astype(np.float64))
        )
        distance = float(np.linalg.norm(offset) - extent)
        if not math.isfinite(distance):
            continue
        if nearest is None or distance < nearest[1]:
            nearest = (entity, distance)
    controller._nearest_object = nearest


def _as_f32(q: Quat) -> Quat:
    return Quat(*(float(np.float32(c)) for c in (q.x, q.y, q.z, q.w)))


def camera_controller(world: World, input: BigSpaceCameraInput, dt: float) -> None:
    """Move every controlled camera by the requested input over ``dt`` seconds."""
    grids = Grids(world)
    for camera, cell, transform, controller in world.query(
        GridCell, Transform, BigSpaceCameraController
    ):
        parent = grids.parent_grid(camera)
        if parent is None:
            continue
        grid = parent[0]

        nearest = controller._nearest_object
        if nearest is not None and controller.slow_near_objects:
            base = abs(nearest[1])
        else:
            base = controller.speed
        speed = base * (controller.speed + float(input.boost))
        low, high = controller.speed_bounds
        if low > high:
            raise ValueError(f"speed bounds are inverted: {low} > {high}")
        speed = min(max(speed, low), high)

        lerp_translation = 1.0 - min(max(controller.smoothness, 0.0), 0.999)
        lerp_rotation = 1.0 - min(max(controller.rotational_smoothness, 0.0), 0.999)

        current_t, current_r = controller._vel_translation, controller._vel_rotation
        target_t, target_r = input.target_velocity(controller, speed, dt)

        oriented = transform.rotation.rotate(target_t)
        next_t = current_t + (oriented - current_t) * lerp_translation
        cell_offset, offset = grid.translation_to_grid(next_t)
        world.insert(camera, cell + cell_offset)
        transform.translation = (transform.translation + offset).astype(np.float32)

        new_rotation = current_r.slerp(target_r, lerp_rotation)
        transform.rotation = _as_f32(transform.rotation * _as_f32(new_rotation))

        controller._vel_translation = next_t
        controller._vel_rotation = new_rotation

        input.reset()