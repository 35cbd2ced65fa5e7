"""SO(3) rotation helpers in JAX.

Rotations are plain ``(..., 3, 3)`` matrices. Joint axes and angles are turned
into matrices with the exponential map (Rodrigues' formula); quaternions and
roll-pitch-yaw triples are accepted for building fixed joint offsets.
"""

import jax
import jax.numpy as jnp

Array = jax.Array


def skew_symmetric(v: Array) -> Array:
    """
    Build the cross-product matrix ``[v]_x`` of a 3-vector.

    Args:
        v: (..., 3) vector

    Returns:
        (..., 3, 3) skew-symmetric matrix
    """
    x, y, z = v[..., 0], v[..., 1], v[..., 2]
    zeros = jnp.zeros_like(x)

    return jnp.stack([
        jnp.stack([zeros, -z, y], axis=-1),
        jnp.stack([z, zeros, -x], axis=-1),
        jnp.stack([-y, x, zeros], axis=-1),
    ], axis=-2)


def exp(axis_angle: Array) -> Array:
    """
    Exponential map from an axis-angle vector to a rotation matrix.

    The norm of ``axis_angle`` is the rotation angle in radians. A zero vector
    maps to the identity, which is what a revolute joint at position 0 needs.

    Args:
        axis_angle: (..., 3) array of axis-angle vectors

    Returns:
        (..., 3, 3) array of rotation matrices
    """
    angle = jnp.linalg.norm(axis_angle, axis=-1, keepdims=True)
    near_zero = angle < 1e-8

    # Taylor terms keep the small-angle case finite
    sin_angle = jnp.where(near_zero, angle - angle**3 / 6.0, jnp.sin(angle))
    one_minus_cos = jnp.where(near_zero, 0.5 * angle**2, 1.0 - jnp.cos(angle))

    safe_angle = jnp.where(near_zero, 1.0, angle)
    unit_axis = jnp.where(near_zero, axis_angle, axis_angle / safe_angle)
    K = skew_symmetric(unit_axis)

    identity = jnp.broadcast_to(jnp.eye(3, dtype=axis_angle.dtype), K.shape)
    return identity + sin_angle[..., None] * K + one_minus_cos[..., None] * jnp.matmul(K, K)


def inverse(R: Array) -> Array:
    """Inverse of a rotation matrix, i.e. its transpose."""
    return jnp.swapaxes(R, -1, -2)


def apply(R: Array, v: Array) -> Array:
    """Rotate a (..., 3) vector."""
    return jnp.einsum("...ij,...j->...i", R, v)


def from_rpy(rpy: Array) -> Array:
    """
    Rotation matrix from fixed-axis roll, pitch, yaw (``R = Rz @ Ry @ Rx``).

    Args:
        rpy: (..., 3) array of [roll, pitch, yaw] in radians

    Returns:
        (..., 3, 3) rotation matrix
    """
    rpy = jnp.asarray(rpy, dtype=float)
    cr, sr = jnp.cos(rpy[..., 0]), jnp.sin(rpy[..., 0])
    cp, sp = jnp.cos(rpy[..., 1]), jnp.sin(rpy[..., 1])
    cy, sy = jnp.cos(rpy[..., 2]), jnp.sin(rpy[..., 2])

    return jnp.stack([
        jnp.stack([cy * cp, cy * sp * sr - sy * cr, cy * sp * cr + sy * sr], axis=-1),
        jnp.stack([sy * cp, sy * sp * sr + cy * cr, sy * sp * cr - cy * sr], axis=-1),
        jnp.stack([-sp, cp * sr, cp * cr], axis=-1),
    ], axis=-2)


def from_quaternion(quaternions: Array) -> Array:
    """
    Rotation matrix from a quaternion in (w, x, y, z) order.

    The input does not need to be normalised.
    """
    q = quaternions / jnp.linalg.norm(quaternions, axis=-1, keepdims=True)
    w, x, y, z = jnp.moveaxis(q, -1, 0)

    return jnp.stack([
        jnp.stack([1 - 2 * (y * y + z * z), 2 * (x * y - w * z), 2 * (x * z + w * y)], axis=-1),
        jnp.stack([2 * (x * y + w * z), 1 - 2 * (x * x + z * z), 2 * (y * z - w * x)], axis=-1),
        jnp.stack([2 * (x * z - w * y), 2 * (y * z + w * x), 1 - 2 * (x * x + y * y)], axis=-1),
    ], axis=-2)


def to_quaternion(R: Array) -> Array:
    """
    Quaternion (w, x, y, z) of a rotation matrix, with ``w >= 0``.

    Each of the four candidate solutions is computed and the numerically
    largest one is selected, so this stays JIT-friendly.
    """
    m = R
    trace = m[..., 0, 0] + m[..., 1, 1] + m[..., 2, 2]
    eps = jnp.finfo(m.dtype).eps

    candidates = jnp.stack([
        jnp.stack([1.0 + trace, m[..., 2, 1] - m[..., 1, 2],
                   m[..., 0, 2] - m[..., 2, 0], m[..., 1, 0] - m[..., 0, 1]], axis=-1),
        jnp.stack([m[..., 2, 1] - m[..., 1, 2], 1.0 + m[..., 0, 0] - m[..., 1, 1] - m[..., 2, 2],
                   m[..., 0, 1] + m[..., 1, 0], m[..., 0, 2] + m[..., 2, 0]], axis=-1),
        jnp.stack([m[..., 0, 2] - m[..., 2, 0], m[..., 0, 1] + m[..., 1, 0],
                   1.0 - m[..., 0, 0] + m[..., 1, 1] - m[..., 2, 2], m[..., 1, 2] + m[..., 2, 1]], axis=-1),
        jnp.stack([m[..., 1, 0] - m[..., 0, 1], m[..., 0, 2] + m[..., 2, 0],
                   m[..., 1, 2] + m[..., 2, 1], 1.0 - m[..., 0, 0] - m[..., 1, 1] + m[..., 2, 2]], axis=-1),
    ], axis=-2)

    # the diagonal entry of each candidate is 4 * component^2
    pivots = jnp.diagonal(candidates, axis1=-2, axis2=-1)
    best = jnp.argmax(pivots, axis=-1)
    index = jnp.broadcast_to(best[..., None, None], best.shape + (1, 4))
    q = jnp.take_along_axis(candidates, index, axis=-2)[..., 0, :]
    q = q / jnp.maximum(jnp.linalg.norm(q, axis=-1, keepdims=True), eps)

    return jnp.where(q[..., 0:1] < 0, -q, q)
