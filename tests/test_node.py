"""Tests for the joint tree, node handles and mimic propagation."""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from jax_chain import (
    Z_AXIS,
    Fixed,
    Joint,
    JointTree,
    Linear,
    Mimic,
    MimicConfigurationError,
    NotMovable,
    OutOfLimits,
    Range,
    Rotational,
    Transform3d,
)


def _slider(tree, name, limits=(0.0, 2.0)):
    return tree.add(Joint(name, Linear(Z_AXIS), limits=Range(*limits)))


@pytest.fixture
def tree():
    return JointTree()


def test_handles_share_state(tree):
    node = _slider(tree, "j0")
    other = tree.node(node.index)
    assert other == node
    assert hash(other) == hash(node)
    other.set_position(1.5)
    assert node.position() == 1.5
    assert node.joint is other.joint


def test_handles_of_different_trees_differ():
    a = JointTree().add(Joint("j"))
    b = JointTree().add(Joint("j"))
    assert a != b


def test_set_parent_wires_both_directions(tree):
    parent = _slider(tree, "parent")
    child = _slider(tree, "child")
    child.set_parent(parent)
    assert child.parent() == parent
    assert parent.children() == [child]
    assert not child.is_root()
    assert parent.is_root()
    assert child.is_end()
    assert not parent.is_end()


def test_reparent_detaches_from_old_parent(tree):
    a = _slider(tree, "a")
    b = _slider(tree, "b")
    c = _slider(tree, "c")
    c.set_parent(a)
    c.set_parent(b)
    assert a.children() == []
    assert b.children() == [c]


def test_set_parent_rejects_cycles(tree):
    a = _slider(tree, "a")
    b = _slider(tree, "b")
    b.set_parent(a)
    with pytest.raises(ValueError, match="cycle"):
        a.set_parent(b)
    with pytest.raises(ValueError, match="cycle"):
        a.set_parent(a)


def test_set_parent_rejects_other_tree(tree):
    node = _slider(tree, "a")
    stranger = JointTree().add(Joint("b"))
    with pytest.raises(ValueError, match="different joint trees"):
        node.set_parent(stranger)


def test_ancestors_and_descendants(tree):
    root = _slider(tree, "root")
    left = _slider(tree, "left")
    right = _slider(tree, "right")
    leaf = _slider(tree, "leaf")
    left.set_parent(root)
    right.set_parent(root)
    leaf.set_parent(left)
    assert [n.name() for n in root.iter_descendants()] == ["root", "left", "leaf", "right"]
    assert [n.name() for n in leaf.iter_ancestors()] == ["left", "root"]
    assert tree.roots() == [root]


def test_mimic_scenario(tree):
    j0 = _slider(tree, "j0")
    j1 = _slider(tree, "j1")
    j1.set_mimic_parent(j0, Mimic(1.5, 0.1))
    assert j0.position() == 0.0
    assert j1.position() == 0.0

    j0.set_position(1.0)
    assert j0.position() == 1.0
    assert j1.position() == pytest.approx(1.6)


def test_mimicking_node_ignores_direct_sets(tree):
    j0 = _slider(tree, "j0")
    j1 = _slider(tree, "j1")
    j1.set_mimic_parent(j0, Mimic(1.5, 0.1))
    j0.set_position(1.0)
    j1.set_position(0.2)
    assert j1.position() == pytest.approx(1.6)
    # out-of-range values are ignored too
    j1.set_position(100.0)
    assert j1.position() == pytest.approx(1.6)


@given(
    st.floats(min_value=-10.0, max_value=10.0),
    st.floats(min_value=-3.0, max_value=3.0),
    st.floats(min_value=-3.0, max_value=3.0),
)
@settings(deadline=None)
def test_mimic_formula(x, multiplier, offset):
    tree = JointTree()
    driver = tree.add(Joint("driver", Rotational(Z_AXIS)))
    follower = tree.add(Joint("follower", Rotational(Z_AXIS)))
    follower.set_mimic_parent(driver, Mimic(multiplier, offset))
    driver.set_position(x)
    assert follower.position() == pytest.approx(multiplier * x + offset)


def test_mimic_relation_is_independent_of_structure(tree):
    root = _slider(tree, "root")
    a = _slider(tree, "a")
    b = _slider(tree, "b")
    a.set_parent(root)
    b.set_parent(root)
    b.set_mimic_parent(a, Mimic(0.5, 0.0))
    assert b.parent() == root
    assert b.mimic_parent() == a
    assert a.mimic_children() == [(b, Mimic(0.5, 0.0))]
    assert root.mimic_children() == []


def test_mimic_rebind_removes_stale_entry(tree):
    a = _slider(tree, "a")
    b = _slider(tree, "b")
    c = _slider(tree, "c")
    c.set_mimic_parent(a, Mimic(1.0, 0.0))
    c.set_mimic_parent(b, Mimic(0.5, 0.0))
    assert a.mimic_children() == []
    assert b.mimic_children() == [(c, Mimic(0.5, 0.0))]
    assert c.mimic() == Mimic(0.5, 0.0)

    a.set_position(1.0)
    assert c.position() == 0.0
    b.set_position(1.0)
    assert c.position() == pytest.approx(0.5)


def test_mimic_self_rejected(tree):
    a = _slider(tree, "a")
    with pytest.raises(ValueError, match="itself"):
        a.set_mimic_parent(a, Mimic())


def test_mimic_children_updated_in_order_without_rollback(tree):
    driver = _slider(tree, "driver", limits=(0.0, 10.0))
    first = _slider(tree, "first", limits=(0.0, 10.0))
    second = _slider(tree, "second", limits=(0.0, 1.0))
    first.set_mimic_parent(driver, Mimic(1.0, 0.0))
    second.set_mimic_parent(driver, Mimic(1.0, 0.0))

    with pytest.raises(OutOfLimits) as excinfo:
        driver.set_position(5.0)
    assert excinfo.value.joint_name == "second"
    # partial propagation stays visible
    assert driver.position() == 5.0
    assert first.position() == 5.0
    assert second.position() == 0.0


def test_driver_failure_skips_mimic_children(tree):
    driver = _slider(tree, "driver")
    follower = _slider(tree, "follower")
    follower.set_mimic_parent(driver, Mimic(1.0, 0.0))
    with pytest.raises(OutOfLimits):
        driver.set_position(-1.0)
    assert follower.position() == 0.0


def test_missing_mimic_record_is_reported(tree):
    driver = _slider(tree, "driver")
    follower = _slider(tree, "follower")
    follower.set_mimic_parent(driver, Mimic())
    tree._mimics[follower.index] = None

    with pytest.raises(MimicConfigurationError) as excinfo:
        driver.set_position(1.0)
    assert excinfo.value.driver == "driver"
    assert excinfo.value.dependent == "follower"


def test_fixed_node_raises_not_movable(tree):
    node = tree.add(Joint("base", Fixed()))
    assert not node.has_position()
    with pytest.raises(NotMovable):
        node.set_position(0.0)


def test_set_position_clamped_propagates_to_mimic(tree):
    driver = _slider(tree, "driver")
    follower = _slider(tree, "follower")
    follower.set_mimic_parent(driver, Mimic(2.0, 0.0))
    driver.set_position_clamped(3.0)
    assert driver.position() == 2.0
    assert follower.position() == 2.0


def test_parent_world_transform(tree):
    root = _slider(tree, "root")
    child = _slider(tree, "child")
    child.set_parent(root)
    assert root.parent_world_transform().allclose(Transform3d.identity())
    assert child.parent_world_transform() is None


def test_node_accessors(tree):
    node = _slider(tree, "slider")
    assert node.name() == "slider"
    assert node.limits() == Range(0.0, 2.0)
    assert node.joint_type() == Linear(Z_AXIS)
    node.set_offset(Transform3d.from_translation(1.0, 0.0, 0.0))
    node.set_position(0.5)
    assert node.transform().allclose(Transform3d.from_translation(1.0, 0.0, 0.5))
    assert "slider" in str(node)
