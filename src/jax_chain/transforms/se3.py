"""SE(3) rigid-body transforms as homogeneous matrices in JAX.

A joint's position-dependent motion is the exponential of its unit twist
scaled by the joint position: a pure rotation for revolute joints and a pure
translation for prismatic joints.
"""

import jax
import jax.numpy as jnp

from . import so3

Array = jax.Array


def from_position_and_rotation(p: Array, R: Array) -> Array:
    """
    Build homogeneous matrices from a translation and a rotation.

    Args:
        p: (..., 3) translation
        R: (..., 3, 3) rotation matrix

    Returns:
        (..., 4, 4) homogeneous transformation matrix
    """
    p = jnp.asarray(p)
    R = jnp.asarray(R)
    batch_shape = jnp.broadcast_shapes(p.shape[:-1], R.shape[:-2])
    dtype = jnp.result_type(p, R)

    T = jnp.broadcast_to(jnp.eye(4, dtype=dtype), batch_shape + (4, 4))
    T = T.at[..., :3, :3].set(jnp.broadcast_to(R, batch_shape + (3, 3)))
    T = T.at[..., :3, 3].set(jnp.broadcast_to(p, batch_shape + (3,)))
    return T


def exp(twist: Array) -> Array:
    """
    Exponential map from a twist ``[vx, vy, vz, wx, wy, wz]`` to SE(3).

    The coefficients of the left Jacobian ``V`` fall back to their Taylor
    expansions near zero rotation, so pure translations are exact.

    Args:
        twist: (..., 6) array of twists

    Returns:
        (..., 4, 4) array of transformation matrices
    """
    v, w = twist[..., :3], twist[..., 3:]
    angle = jnp.linalg.norm(w, axis=-1, keepdims=True)
    angle_sq = angle * angle
    small = angle < 1e-6
    safe_sq = jnp.where(small, 1.0, angle_sq)

    # A = (1 - cos t) / t^2, B = (t - sin t) / t^3
    A = jnp.where(small, 0.5 - angle_sq / 24.0, (1.0 - jnp.cos(angle)) / safe_sq)
    B = jnp.where(small, 1.0 / 6.0 - angle_sq / 120.0,
                  (angle - jnp.sin(angle)) / (safe_sq * jnp.where(small, 1.0, angle)))

    K = so3.skew_symmetric(w)
    identity = jnp.broadcast_to(jnp.eye(3, dtype=twist.dtype), K.shape)
    V = identity + A[..., None] * K + B[..., None] * jnp.matmul(K, K)

    t = jnp.einsum("...ij,...j->...i", V, v)
    return from_position_and_rotation(t, so3.exp(w))


def multiply(T1: Array, T2: Array) -> Array:
    """Compose two transforms: ``T1 @ T2`` applies ``T2`` first."""
    return jnp.matmul(T1, T2)


def inverse(T: Array) -> Array:
    """
    Invert a rigid transform using its block structure.

    ``T^-1 = [[R^T, -R^T t], [0, 1]]``
    """
    R_inv = so3.inverse(T[..., :3, :3])
    t_inv = -jnp.einsum("...ij,...j->...i", R_inv, T[..., :3, 3])
    return from_position_and_rotation(t_inv, R_inv)


def apply(T: Array, points: Array) -> Array:
    """Transform (..., 3) points."""
    return jnp.einsum("...ij,...j->...i", T[..., :3, :3], points) + T[..., :3, 3]


def get_position(T: Array) -> Array:
    return T[..., :3, 3]


def get_rotation(T: Array) -> Array:
    return T[..., :3, :3]
