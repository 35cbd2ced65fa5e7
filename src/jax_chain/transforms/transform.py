"""Rigid transform value type used for joint offsets and cached world poses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import jax
import jax.numpy as jnp
from jax.tree_util import register_pytree_node_class

from . import se3, so3

Array = jax.Array


@register_pytree_node_class  # so a Transform3d can cross jit / vmap boundaries
@dataclass(frozen=True, eq=False)
class Transform3d:
    """Immutable homogeneous transform wrapping a ``(4, 4)`` matrix."""
    matrix: Array

    # Constructors
    @classmethod
    def from_matrix(cls, matrix) -> "Transform3d":
        matrix = jnp.asarray(matrix, dtype=float)
        if matrix.shape[-2:] != (4, 4):
            raise ValueError(f"matrix must have shape (...,4,4), got {matrix.shape}")
        return cls(matrix)

    @classmethod
    def identity(cls, *, dtype=None) -> "Transform3d":
        return cls(jnp.eye(4, dtype=dtype if dtype is not None else float))

    @classmethod
    def from_translation(cls, x: float = 0.0, y: float = 0.0, z: float = 0.0) -> "Transform3d":
        return cls(se3.from_position_and_rotation(jnp.array([x, y, z], dtype=float), jnp.eye(3)))

    @classmethod
    def from_pos_quat(cls, pos: Sequence[float], quat: Optional[Sequence[float]] = None) -> "Transform3d":
        """Build from a position and an optional (w, x, y, z) quaternion."""
        pos = jnp.asarray(pos, dtype=float)
        rot = jnp.eye(3) if quat is None else so3.from_quaternion(jnp.asarray(quat, dtype=float))
        return cls(se3.from_position_and_rotation(pos, rot))

    @classmethod
    def from_rpy(cls, pos: Sequence[float], rpy: Sequence[float]) -> "Transform3d":
        """Build from a position and fixed-axis roll-pitch-yaw angles."""
        return cls(se3.from_position_and_rotation(jnp.asarray(pos, dtype=float), so3.from_rpy(rpy)))

    # PyTree boiler-plate
    def tree_flatten(self):
        return (self.matrix,), None

    @classmethod
    def tree_unflatten(cls, aux, children):
        (matrix,) = children
        return cls(matrix)

    # Basic operations
    def compose(self, other: "Transform3d") -> "Transform3d":
        """Self ∘ other (apply *other* first, then self)."""
        return Transform3d(se3.multiply(self.matrix, other.matrix))

    def __matmul__(self, other: "Transform3d") -> "Transform3d":
        return self.compose(other)

    def inverse(self) -> "Transform3d":
        return Transform3d(se3.inverse(self.matrix))

    def transform_points(self, points) -> Array:
        """Apply the transform to a single (3,) point or to (N, 3) points."""
        points = jnp.asarray(points, dtype=self.matrix.dtype)
        if points.shape[-1] != 3:
            raise ValueError(f"points must have shape (3,) or (N,3), got {points.shape}")
        return se3.apply(self.matrix, points)

    def allclose(self, other: "Transform3d", atol: float = 1e-8) -> bool:
        return bool(jnp.allclose(self.matrix, other.matrix, atol=atol))

    # Convenience helpers
    @property
    def translation(self) -> Array:
        return se3.get_position(self.matrix)

    @property
    def rotation_matrix(self) -> Array:
        return se3.get_rotation(self.matrix)

    @property
    def quaternion(self) -> Array:
        return so3.to_quaternion(self.rotation_matrix)

    def __repr__(self) -> str:
        x, y, z = (float(v) for v in self.translation)
        w, qx, qy, qz = (float(v) for v in self.quaternion)
        return (f"Transform3d(translation=[{x:.4f}, {y:.4f}, {z:.4f}], "
                f"quaternion=[{w:.4f}, {qx:.4f}, {qy:.4f}, {qz:.4f}])")
