"""Tests for the transforms module."""

import jax
import jax.numpy as jnp
import numpy as np
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from jax_chain.transforms import Transform3d, se3, so3


def test_so3_exp_zero_is_identity():
    """A zero axis-angle vector maps to the identity rotation."""
    np.testing.assert_allclose(so3.exp(jnp.zeros(3)), jnp.eye(3), atol=1e-12)


def test_so3_exp_quarter_turn_about_y():
    """Rotating +Z by 90° about Y yields +X."""
    R = so3.exp(jnp.array([0.0, jnp.pi / 2, 0.0]))
    np.testing.assert_allclose(so3.apply(R, jnp.array([0.0, 0.0, 1.0])), [1.0, 0.0, 0.0], atol=1e-12)


def test_quaternion_to_matrix_identity():
    matrix = so3.from_quaternion(jnp.array([1.0, 0.0, 0.0, 0.0]))
    np.testing.assert_allclose(matrix, jnp.eye(3), atol=1e-12)


def test_matrix_to_quaternion_about_y():
    matrix = jnp.array([[0.0, 0.0, 1.0], [0.0, 1.0, 0.0], [-1.0, 0.0, 0.0]])
    quat = so3.to_quaternion(matrix)
    np.testing.assert_allclose(quat, [0.7071068, 0.0, 0.7071068, 0.0], atol=1e-6)


def test_matrix_to_quaternion_half_turn():
    """A 180° rotation has w == 0, so a non-w pivot must be selected."""
    matrix = jnp.diag(jnp.array([1.0, -1.0, -1.0]))
    quat = so3.to_quaternion(matrix)
    np.testing.assert_allclose(jnp.abs(quat), [0.0, 1.0, 0.0, 0.0], atol=1e-9)


def test_from_rpy_yaw_only():
    R = so3.from_rpy(jnp.array([0.0, 0.0, jnp.pi / 2]))
    np.testing.assert_allclose(so3.apply(R, jnp.array([1.0, 0.0, 0.0])), [0.0, 1.0, 0.0], atol=1e-12)


def test_se3_exp_pure_translation():
    """A twist with no angular part is an exact translation."""
    T = se3.exp(jnp.array([0.0, 0.0, 0.3, 0.0, 0.0, 0.0]))
    np.testing.assert_allclose(se3.get_position(T), [0.0, 0.0, 0.3], atol=1e-12)
    np.testing.assert_allclose(se3.get_rotation(T), jnp.eye(3), atol=1e-12)


def test_se3_exp_pure_rotation_keeps_origin():
    T = se3.exp(jnp.array([0.0, 0.0, 0.0, 0.0, 0.0, 1.2]))
    np.testing.assert_allclose(se3.get_position(T), jnp.zeros(3), atol=1e-12)


def test_se3_exp_batched():
    twists = jnp.array([[0.0, 0.0, 1.0, 0.0, 0.0, 0.0], [0.0, 0.0, 0.0, 0.0, 1.0, 0.0]])
    T = se3.exp(twists)
    assert T.shape == (2, 4, 4)
    np.testing.assert_allclose(T[0, :3, 3], [0.0, 0.0, 1.0], atol=1e-12)
    np.testing.assert_allclose(T[1, :3, :3], so3.exp(jnp.array([0.0, 1.0, 0.0])), atol=1e-12)


def test_transform_compose():
    """Composition applies the right-hand transform first."""
    t1 = Transform3d.from_translation(1.0, 0.0, 0.0)
    t2 = Transform3d.from_pos_quat([0.0, 1.0, 0.0], [0.7071068, 0.0, 0.0, 0.7071068])

    result = t1 @ t2
    transformed = result.transform_points(jnp.array([1.0, 0.0, 0.0]))
    np.testing.assert_allclose(transformed, [1.0, 2.0, 0.0], atol=1e-6)


def test_transform_points_many():
    T = Transform3d.from_translation(1.0, 2.0, 3.0)
    points = jnp.array([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])
    np.testing.assert_allclose(T.transform_points(points), points + jnp.array([1.0, 2.0, 3.0]))


def test_transform_points_rejects_bad_shape():
    with pytest.raises(ValueError):
        Transform3d.identity().transform_points(jnp.zeros((2, 2)))


def test_from_matrix_rejects_bad_shape():
    with pytest.raises(ValueError, match="shape"):
        Transform3d.from_matrix(jnp.eye(3))


def test_transform_is_pytree():
    """Transform3d can be passed through jit."""
    T = Transform3d.from_translation(0.0, 0.0, 1.0)
    out = jax.jit(lambda t: t.compose(t))(T)
    np.testing.assert_allclose(out.translation, [0.0, 0.0, 2.0])


@given(
    st.lists(st.floats(min_value=-3.0, max_value=3.0), min_size=3, max_size=3),
    st.lists(st.floats(min_value=-2.0, max_value=2.0), min_size=3, max_size=3),
)
@settings(deadline=None, max_examples=25)
def test_inverse_composes_to_identity(rpy, pos):
    T = Transform3d.from_rpy(pos, rpy)
    assert (T @ T.inverse()).allclose(Transform3d.identity(), atol=1e-9)
