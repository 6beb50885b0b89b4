"""Quaternions, affine transforms and entity transforms for 3D spatial math."""

from __future__ import annotations

import math
import sys
from dataclasses import dataclass, field, replace

import numpy as np

_DOT_THRESHOLD = 1.0 - sys.float_info.epsilon


def _vec3(values, dtype=np.float64) -> np.ndarray:
    """Coerce a scalar (splatted) or a 3-sequence into a 3-element array."""
    arr = np.array(values, dtype=np.float64).reshape(-1)
    if arr.shape == (1,):
        arr = np.repeat(arr, 3)
    if arr.shape != (3,):
        raise ValueError(f"expected 3 components, got {arr.shape[0]}")
    return arr.astype(dtype)


@dataclass(frozen=True)
class Quat:
    """A rotation quaternion with components (x, y, z, w)."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 1.0

    @classmethod
    def identity(cls) -> Quat:
        return cls(0.0, 0.0, 0.0, 1.0)

    @classmethod
    def from_rotation_x(cls, angle: float) -> Quat:
        half = 0.5 * angle
        return cls(math.sin(half), 0.0, 0.0, math.cos(half))

    @classmethod
    def from_rotation_y(cls, angle: float) -> Quat:
        half = 0.5 * angle
        return cls(0.0, math.sin(half), 0.0, math.cos(half))

    @classmethod
    def from_rotation_z(cls, angle: float) -> Quat:
        half = 0.5 * angle
        return cls(0.0, 0.0, math.sin(half), math.cos(half))

    @classmethod
    def from_euler(cls, x: float, y: float, z: float) -> Quat:
        """Rotation from intrinsic XYZ Euler angles."""
        return cls.from_rotation_x(x) * cls.from_rotation_y(y) * cls.from_rotation_z(z)

    @classmethod
    def from_matrix(cls, matrix) -> Quat:
        """Rotation from a 3x3 pure rotation matrix whose columns are the basis axes."""
        m = np.asarray(matrix, dtype=np.float64).reshape(3, 3)
        m00, m01, m02 = m[0, 0], m[1, 0], m[2, 0]
        m10, m11, m12 = m[0, 1], m[1, 1], m[2, 1]
        m20, m21, m22 = m[0, 2], m[1, 2], m[2, 2]
        if m22 <= 0.0:
            dif10 = m11 - m00
            omm22 = 1.0 - m22
            if dif10 <= 0.0:
                four_sq = omm22 - dif10
                inv = 0.5 / math.sqrt(four_sq)
                parts = (four_sq, m01 + m10, m02 + m20, m12 - m21)
            else:
                four_sq = omm22 + dif10
                inv = 0.5 / math.sqrt(four_sq)
                parts = (m01 + m10, four_sq, m12 + m21, m20 - m02)
        else:
            sum10 = m11 + m00
            opm22 = 1.0 + m22
            if sum10 <= 0.0:
                four_sq = opm22 - sum10
                inv = 0.5 / math.sqrt(four_sq)
                parts = (m02 + m20, m12 + m21, four_sq, m01 - m10)
            else:
                four_sq = opm22 + sum10
                inv = 0.5 / math.sqrt(four_sq)
                parts = (m12 - m21, m20 - m02, m01 - m10, four_sq)
        return cls(*(float(p * inv) for p in parts))

    def to_matrix(self) -> np.ndarray:
        x, y, z, w = self.x, self.y, self.z, self.w
        x2, y2, z2 = x + x, y + y, z + z
        xx, xy, xz = x * x2, x * y2, x * z2
        yy, yz, zz = y * y2, y * z2, z * z2
        wx, wy, wz = w * x2, w * y2, w * z2
        return np.array(
            [
                [1.0 - (yy + zz), xy - wz, xz + wy],
                [xy + wz, 1.0 - (xx + zz), yz - wx],
                [xz - wy, yz + wx, 1.0 - (xx + yy)],
            ],
            dtype=np.float64,
        )

    def rotate(self, vector) -> np.ndarray:
        return self.to_matrix() @ _vec3(vector)

    def inverse(self) -> Quat:
        return Quat(-self.x, -self.y, -self.z, self.w)

    def dot(self, other: Quat) -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z + self.w * other.w

    def normalize(self) -> Quat:
        length = math.sqrt(self.dot(self))
        return Quat(self.x / length, self.y / length, self.z / length, self.w / length)

    def slerp(self, other: Quat, t: float) -> Quat:
        """Spherical interpolation along the shortest arc."""
        end = other
        dot = self.dot(end)
        if dot < 0.0:
            end = -end
            dot = -dot
        if dot > _DOT_THRESHOLD:
            return Quat(
                self.x + (end.x - self.x) * t,
                self.y + (end.y - self.y) * t,
                self.z + (end.z - self.z) * t,
                self.w + (end.w - self.w) * t,
            ).normalize()
        theta = math.acos(dot)
        scale_start = math.sin(theta * (1.0 - t))
        scale_end = math.sin(theta * t)
        inv_sin = 1.0 / math.sin(theta)
        return Quat(
            (self.x * scale_start + end.x * scale_end) * inv_sin,
            (self.y * scale_start + end.y * scale_end) * inv_sin,
            (self.z * scale_start + end.z * scale_end) * inv_sin,
            (self.w * scale_start + end.w * scale_end) * inv_sin,
        )

    def angle_between(self, other: Quat) -> float:
        return 2.0 * math.acos(min(abs(self.dot(other)), 1.0))

    def __neg__(self) -> Quat:
        return Quat(-self.x, -self.y, -self.z, -self.w)

    def __mul__(self, other):
        if isinstance(other, Quat):
            x1, y1, z1, w1 = self.x, self.y, self.z, self.w
            x2, y2, z2, w2 = other.x, other.y, other.z, other.w
            return Quat(
                w1 * x2 + x1 * w2 + y1 * z2 - z1 * y2,
                w1 * y2 - x1 * z2 + y1 * w2 + z1 * x2,
                w1 * z2 + x1 * y2 - y1 * x2 + z1 * w2,
                w1 * w2 - x1 * x2 - y1 * y2 - z1 * z2,
            )
        if isinstance(other, (np.ndarray, tuple, list)):
            return self.rotate(other)
        return NotImplemented


@dataclass(frozen=True, eq=False)
class Affine3:
    """A double precision affine transform: a 3x3 linear part and a translation."""

    matrix3: np.ndarray = field(default_factory=lambda: np.eye(3))
    translation: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "matrix3", np.array(self.matrix3, dtype=np.float64).reshape(3, 3)
        )
        object.__setattr__(self, "translation", _vec3(self.translation))

    @classmethod
    def identity(cls) -> Affine3:
        return cls(np.eye(3), np.zeros(3))

    @classmethod
    def from_rotation_translation(cls, rotation: Quat, translation) -> Affine3:
        return cls(rotation.to_matrix(), _vec3(translation))

    @classmethod
    def from_scale_rotation_translation(cls, scale, rotation: Quat, translation) -> Affine3:
        return cls(rotation.to_matrix() * _vec3(scale)[np.newaxis, :], _vec3(translation))

    def inverse(self) -> Affine3:
        inv = np.linalg.inv(self.matrix3)
        return Affine3(inv, -(inv @ self.translation))

    def transform_point3(self, point) -> np.ndarray:
        return self.matrix3 @ _vec3(point) + self.translation

    def to_scale_rotation_translation(self) -> tuple[np.ndarray, Quat, np.ndarray]:
        det = float(np.linalg.det(self.matrix3))
        lengths = np.linalg.norm(self.matrix3, axis=0)
        scale = np.array(
            [lengths[0] * math.copysign(1.0, det), lengths[1], lengths[2]], dtype=np.float64
        )
        rotation = Quat.from_matrix(self.matrix3 / scale[np.newaxis, :])
        return scale, rotation, self.translation.copy()

    def __mul__(self, other: Affine3) -> Affine3:
        if not isinstance(other, Affine3):
            return NotImplemented
        return Affine3(
            self.matrix3 @ other.matrix3,
            self.matrix3 @ other.translation + self.translation,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Affine3):
            return NotImplemented
        return bool(
            np.array_equal(self.matrix3, other.matrix3)
            and np.array_equal(self.translation, other.translation)
        )

    __hash__ = None  # type: ignore[assignment]


@dataclass(eq=False)
class Transform:
    """A single precision local transform: translation, rotation and scale."""

    translation: np.ndarray = field(default_factory=lambda: np.zeros(3, dtype=np.float32))
    rotation: Quat = field(default_factory=Quat.identity)
    scale: np.ndarray = field(default_factory=lambda: np.ones(3, dtype=np.float32))

    def __post_init__(self) -> None:
        self.translation = _vec3(self.translation, np.float32)
        self.scale = _vec3(self.scale, np.float32)

    @classmethod
    def from_xyz(cls, x: float, y: float, z: float) -> Transform:
        return cls(translation=(x, y, z))

    @classmethod
    def from_translation(cls, translation) -> Transform:
        return cls(translation=translation)

    @classmethod
    def from_rotation(cls, rotation: Quat) -> Transform:
        return cls(rotation=rotation)

    @classmethod
    def from_scale(cls, scale) -> Transform:
        return cls(scale=scale)

    def with_translation(self, translation) -> Transform:
        return replace(self, translation=translation)

    def with_rotation(self, rotation: Quat) -> Transform:
        return replace(self, rotation=rotation)

    def with_scale(self, scale) -> Transform:
        return replace(self, scale=scale)

    def to_affine(self) -> Affine3:
        return Affine3.from_scale_rotation_translation(
            self.scale.astype(np.float64), self.rotation, self.translation.astype(np.float64)
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Transform):
            return NotImplemented
        return bool(
            np.array_equal(self.translation, other.translation)
            and self.rotation == other.rotation
            and np.array_equal(self.scale, other.scale)
        )

    __hash__ = None  # type: ignore[assignment]


@dataclass(frozen=True, eq=False)
class GlobalTransform:
    """A world-space transform, stored at single precision."""

    affine: Affine3 = field(default_factory=Affine3.identity)

    def __post_init__(self) -> None:
        rounded = Affine3(
            self.affine.matrix3.astype(np.float32).astype(np.float64),
            self.affine.translation.astype(np.float32).astype(np.float64),
        )
        object.__setattr__(self, "affine", rounded)

    @classmethod
    def from_xyz(cls, x: float, y: float, z: float) -> GlobalTransform:
        return cls(Affine3(np.eye(3), (x, y, z)))

    @classmethod
    def from_transform(cls, transform: Transform) -> GlobalTransform:
        return cls(transform.to_affine())

    @classmethod
    def from_affine(cls, affine: Affine3) -> GlobalTransform:
        return cls(affine)

    def translation(self) -> np.ndarray:
        return self.affine.translation.astype(np.float32)

    def mul_transform(self, transform: Transform) -> GlobalTransform:
        return GlobalTransform(self.affine * transform.to_affine())

    def to_scale_rotation_translation(self) -> tuple[np.ndarray, Quat, np.ndarray]:
        scale, rotation, translation = self.affine.to_scale_rotation_translation()
        return scale.astype(np.float32), rotation, translation.astype(np.float32)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GlobalTransform):
            return NotImplemented
        return self.affine == other.affine

    __hash__ = None  # type: ignore[assignment]