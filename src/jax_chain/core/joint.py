"""Joint, joint types, limits and mimic records.

A ``Joint`` is a single degree-of-freedom element (or a zero-DOF fixed
coupling). Its local transform is its fixed ``offset`` followed by the motion
produced by its current position about or along its axis.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

import jax
import jax.numpy as jnp
from flax import struct

from ..errors import NotMovable, OutOfLimits
from ..transforms import Transform3d, se3

Array = jax.Array

logger = logging.getLogger(__name__)


def _unit_axis(axis: Sequence[float]) -> Tuple[float, float, float]:
    x, y, z = (float(v) for v in axis)
    norm = math.sqrt(x * x + y * y + z * z)
    if norm == 0.0:
        raise ValueError("joint axis must be a non-zero 3-vector")
    return (x / norm, y / norm, z / norm)


@dataclass(frozen=True)
class Fixed:
    """Rigid coupling without a degree of freedom."""

    def twist(self) -> Array:
        return jnp.zeros(6)

    def __str__(self) -> str:
        return "fixed"


@dataclass(frozen=True)
class Rotational:
    """Rotation of ``position`` radians about ``axis``."""
    axis: Tuple[float, float, float] = (0.0, 0.0, 1.0)

    def __post_init__(self):
        object.__setattr__(self, "axis", _unit_axis(self.axis))

    def twist(self) -> Array:
        return jnp.concatenate([jnp.zeros(3), jnp.asarray(self.axis)])

    def __str__(self) -> str:
        return f"rotational{list(self.axis)}"


@dataclass(frozen=True)
class Linear:
    """Translation of ``position`` units along ``axis``."""
    axis: Tuple[float, float, float] = (0.0, 0.0, 1.0)

    def __post_init__(self):
        object.__setattr__(self, "axis", _unit_axis(self.axis))

    def twist(self) -> Array:
        return jnp.concatenate([jnp.asarray(self.axis), jnp.zeros(3)])

    def __str__(self) -> str:
        return f"linear{list(self.axis)}"


JointType = Union[Fixed, Rotational, Linear]

X_AXIS = (1.0, 0.0, 0.0)
Y_AXIS = (0.0, 1.0, 0.0)
Z_AXIS = (0.0, 0.0, 1.0)


def motion(joint_type: JointType, position: Optional[float]) -> Transform3d:
    """Position-dependent part of a joint's local transform."""
    if isinstance(joint_type, Fixed) or position is None:
        return Transform3d.identity()
    return Transform3d(se3.exp(joint_type.twist() * position))


@struct.dataclass
class Range:
    """Inclusive joint limits ``[min, max]``."""
    min: float
    max: float

    def __post_init__(self):
        if self.min > self.max:
            raise ValueError(f"invalid range [{self.min}, {self.max}]: min is greater than max")

    def is_valid(self, position: float) -> bool:
        return self.min <= position <= self.max

    def clamp(self, position: float) -> float:
        return max(self.min, min(self.max, position))

    @classmethod
    def from_tuple(cls, bounds: Tuple[float, float]) -> "Range":
        lo, hi = bounds
        return cls(float(lo), float(hi))


@struct.dataclass
class Mimic:
    """Affine coupling of a dependent joint to its driving joint."""
    multiplier: float = 1.0
    offset: float = 0.0

    def mimic_position(self, parent_position: float) -> float:
        return parent_position * self.multiplier + self.offset


class Joint:
    """A single joint: type, position, limits and fixed offset.

    The world transform is only a cache written by
    :meth:`jax_chain.chain.Chain.update_transforms`; reading it never
    recomputes anything.

    Attributes:
        name: Joint name, conventionally unique within a chain.
        limits: Optional inclusive ``Range``; ``None`` means unconstrained.
        offset: Fixed transform applied before the joint motion.
    """

    def __init__(
        self,
        name: str,
        joint_type: Optional[JointType] = None,
        limits: Optional[Range] = None,
        offset: Optional[Transform3d] = None,
    ):
        self.name = name
        self._joint_type = joint_type if joint_type is not None else Fixed()
        self._position: Optional[float] = None if isinstance(self._joint_type, Fixed) else 0.0
        self.limits = limits
        self.offset = offset if offset is not None else Transform3d.identity()
        self._world_transform_cache: Optional[Transform3d] = None

    @property
    def joint_type(self) -> JointType:
        return self._joint_type

    def is_movable(self) -> bool:
        return not isinstance(self._joint_type, Fixed)

    def position(self) -> Optional[float]:
        return self._position

    def set_position(self, position: float) -> None:
        """Store a new position.

        Raises:
            NotMovable: the joint is fixed.
            OutOfLimits: ``position`` falls outside ``limits``; the stored
                position is left unchanged.
        """
        if not self.is_movable():
            raise NotMovable(self.name)
        position = float(position)
        if self.limits is not None and not self.limits.is_valid(position):
            raise OutOfLimits(self.name, position, self.limits.min, self.limits.max)
        self._position = position

    def set_position_clamped(self, position: float) -> None:
        if not self.is_movable():
            raise NotMovable(self.name)
        position = float(position)
        if self.limits is not None:
            clamped = self.limits.clamp(position)
            if clamped != position:
                logger.debug("clamped %s from %s to %s", self.name, position, clamped)
            position = clamped
        self._position = position

    def set_offset(self, offset: Transform3d) -> None:
        self.offset = offset

    def local_transform(self) -> Transform3d:
        """``offset ∘ motion(position)``; just ``offset`` for fixed joints."""
        if not self.is_movable():
            return self.offset
        return self.offset.compose(motion(self._joint_type, self._position))

    def world_transform(self) -> Optional[Transform3d]:
        return self._world_transform_cache

    def _store_world_transform(self, transform: Transform3d) -> None:
        self._world_transform_cache = transform

    def __str__(self) -> str:
        if self._position is None:
            return f"{self.name} [{self._joint_type}]"
        return f"{self.name} [{self._joint_type}, position={self._position:.4f}]"

    def __repr__(self) -> str:
        return (f"Joint(name={self.name!r}, joint_type={self._joint_type!r}, "
                f"position={self._position!r}, limits={self.limits!r})")


class JointBuilder:
    """Fluent construction of a :class:`Joint`.

    Example:
        >>> joint = (JointBuilder()
        ...          .name("elbow")
        ...          .joint_type(Rotational(Y_AXIS))
        ...          .translation(0.0, 0.0, 0.2)
        ...          .limits(-1.0, 1.0)
        ...          .finalize())
    """

    def __init__(self):
        self._name = "noname"
        self._joint_type: JointType = Fixed()
        self._limits: Optional[Range] = None
        self._position = jnp.zeros(3)
        self._rotation = jnp.eye(3)

    def name(self, name: str) -> "JointBuilder":
        self._name = name
        return self

    def joint_type(self, joint_type: JointType) -> "JointBuilder":
        self._joint_type = joint_type
        return self

    def limits(self, min_limit: float, max_limit: float) -> "JointBuilder":
        self._limits = Range.from_tuple((min_limit, max_limit))
        return self

    def translation(self, x: float, y: float, z: float) -> "JointBuilder":
        self._position = jnp.array([x, y, z], dtype=float)
        return self

    def rotation(self, quaternion: Sequence[float]) -> "JointBuilder":
        """Offset rotation as a (w, x, y, z) quaternion."""
        self._rotation = Transform3d.from_pos_quat(jnp.zeros(3), quaternion).rotation_matrix
        return self

    def rpy(self, roll: float, pitch: float, yaw: float) -> "JointBuilder":
        self._rotation = Transform3d.from_rpy(jnp.zeros(3), [roll, pitch, yaw]).rotation_matrix
        return self

    def offset(self, offset: Transform3d) -> "JointBuilder":
        self._position = offset.translation
        self._rotation = offset.rotation_matrix
        return self

    def finalize(self) -> Joint:
        offset = Transform3d(se3.from_position_and_rotation(self._position, self._rotation))
        return Joint(self._name, self._joint_type, limits=self._limits, offset=offset)
