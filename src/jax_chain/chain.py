"""Kinematic chain: fixed traversal order, bulk position setting and forward
kinematics.

A ``Chain`` flattens one or more root nodes of a ``JointTree`` into a
depth-first order. That single order is shared by ``set_joint_positions`` (the
positionable subset) and ``update_transforms`` (every node), so index ``i`` of
the returned poses always refers to node ``i`` of the chain.
"""

import logging
from typing import Dict, Iterator, List, Optional, Sequence

import jax
import jax.numpy as jnp
from jax import Array

from .core import JointNode
from .errors import LengthMismatch
from .transforms import Transform3d, se3

logger = logging.getLogger(__name__)


@jax.jit
def forward_kinematics_world(parent_slots: Array, offsets: Array, twists: Array, q: Array) -> Array:
    """World transforms of every node of a flattened tree.

    Args:
        parent_slots: Array of shape (num_nodes,). Slot 0 is the root frame
            (identity); node ``i`` lives in slot ``i + 1``. Nodes must appear
            after their parent.
        offsets: Array of shape (num_nodes, 4, 4) with each joint's fixed offset.
        twists: Array of shape (num_nodes, 6) with unit twists, zero for fixed joints.
        q: Array of shape (num_nodes,) with joint positions, zero for fixed joints.

    Returns:
        Array of shape (num_nodes, 4, 4) with world poses in traversal order.
    """
    num_nodes = offsets.shape[0]
    local_transforms = se3.multiply(offsets, se3.exp(twists * q[:, None]))

    slots = jnp.identity(4, dtype=offsets.dtype)[None].repeat(num_nodes + 1, axis=0)

    def scan_body(carry, i):
        """Processes node `i` using its parent's world pose from `carry`."""
        T_world_to_parent = carry[parent_slots[i]]
        carry = carry.at[i + 1].set(T_world_to_parent @ local_transforms[i])
        return carry, None

    final_slots, _ = jax.lax.scan(scan_body, slots, jnp.arange(num_nodes))
    return final_slots[1:]


class Chain:
    """Ordered view over the nodes reachable from a set of roots.

    Example:
        >>> tree = JointTree()
        >>> shoulder = tree.add(JointBuilder().name("shoulder")
        ...     .joint_type(Rotational(Y_AXIS)).translation(0.0, 0.0, 0.2).finalize())
        >>> slider = tree.add(JointBuilder().name("slider")
        ...     .joint_type(Linear(Z_AXIS)).translation(0.0, 0.0, 1.0).finalize())
        >>> slider.set_parent(shoulder)
        >>> chain = Chain.from_root(shoulder)
        >>> chain.set_joint_positions([jnp.pi / 2, 0.1])
        >>> poses = chain.update_transforms()
    """

    def __init__(self, roots: Sequence[JointNode]):
        roots = list(roots)
        if not roots:
            raise ValueError("a chain needs at least one root node")
        tree = roots[0].tree
        for root in roots:
            if root.tree is not tree:
                raise ValueError("all roots of a chain must belong to the same joint tree")
            if not root.is_root():
                raise ValueError(f"'{root.name()}' has a parent and cannot be a chain root")
        if len(set(roots)) != len(roots):
            raise ValueError("chain roots must be distinct")
        self._tree = tree
        self._roots = roots
        self.rebuild()

    @classmethod
    def from_root(cls, root: JointNode) -> "Chain":
        return cls([root])

    def rebuild(self) -> None:
        """Recompute the traversal order after the tree was restructured."""
        nodes: List[JointNode] = []
        for root in self._roots:
            if not root.is_root():
                raise ValueError(f"'{root.name()}' is no longer a root; build a new chain")
            nodes.extend(root.iter_descendants())
        self._nodes = nodes
        self._movable = [node for node in nodes if node.has_position()]

        position_of = {node.index: i for i, node in enumerate(nodes)}
        parent_slots = []
        for node in nodes:
            parent = node.parent()
            parent_slots.append(0 if parent is None else position_of[parent.index] + 1)
        self._parent_slots = jnp.array(parent_slots, dtype=jnp.int32)
        self._twists = jnp.stack([node.joint.joint_type.twist() for node in nodes])
        self._version = self._tree.version
        logger.debug("chain order fixed: %d nodes, %d positionable", len(nodes), len(self._movable))

    @property
    def is_stale(self) -> bool:
        """True when the tree changed structure since the order was fixed."""
        return self._tree.version != self._version

    @property
    def roots(self) -> List[JointNode]:
        return list(self._roots)

    def __iter__(self) -> Iterator[JointNode]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def iter(self) -> Iterator[JointNode]:
        return iter(self._nodes)

    def iter_joints(self) -> Iterator[JointNode]:
        """Positionable nodes in traversal order."""
        return iter(self._movable)

    def dof(self) -> int:
        return len(self._movable)

    def joint_names(self) -> List[str]:
        return [node.name() for node in self._movable]

    def find(self, name: str) -> Optional[JointNode]:
        for node in self._nodes:
            if node.name() == name:
                return node
        return None

    def joint_positions(self) -> Array:
        return jnp.array([node.position() for node in self._movable], dtype=float)

    def _check_fresh(self) -> None:
        if self.is_stale:
            raise ValueError(
                "joint tree was restructured since this chain was built; "
                "call rebuild() to refresh the traversal order"
            )

    def _check_length(self, values) -> None:
        if len(values) != len(self._movable):
            raise LengthMismatch(len(values), len(self._movable))

    def set_joint_positions(self, values: Sequence[float]) -> None:
        """Set every positionable node, in traversal order.

        Values for nodes that mimic another are accepted and ignored. The
        first failing node stops the assignment; nodes before it keep their
        new positions.

        Raises:
            LengthMismatch: ``len(values)`` differs from :meth:`dof`; nothing
                is applied.
            ValueError: the tree was restructured since the last :meth:`rebuild`.
            OutOfLimits, NotMovable, MimicConfigurationError: from the node
                that failed.
        """
        self._check_fresh()
        self._check_length(values)
        logger.debug("setting %d joint positions", len(values))
        for node, value in zip(self._movable, values):
            node.set_position(float(value))

    def set_joint_positions_clamped(self, values: Sequence[float]) -> None:
        """Like :meth:`set_joint_positions` but clamps each value into limits."""
        self._check_fresh()
        self._check_length(values)
        for node, value in zip(self._movable, values):
            node.set_position_clamped(float(value))

    def update_transforms(self) -> List[Transform3d]:
        """Recompute and cache the world transform of every node.

        Returns:
            World transforms index-aligned with the traversal order.

        Raises:
            ValueError: the tree was restructured since the last :meth:`rebuild`.
        """
        self._check_fresh()
        joints = [node.joint for node in self._nodes]
        offsets = jnp.stack([joint.offset.matrix for joint in joints])
        q = jnp.array([joint.position() or 0.0 for joint in joints], dtype=offsets.dtype)

        world = forward_kinematics_world(self._parent_slots, offsets, self._twists, q)

        poses = []
        for i, joint in enumerate(joints):
            pose = Transform3d(world[i])
            joint._store_world_transform(pose)
            poses.append(pose)
        logger.debug("updated %d world transforms", len(poses))
        return poses

    def __str__(self) -> str:
        lines = []
        for node in self._nodes:
            depth = sum(1 for _ in node.iter_ancestors())
            lines.append("    " * depth + str(node))
        return "\n".join(lines)


def forward_kinematics(chain: Chain, q: Sequence[float]) -> Dict[str, Transform3d]:
    """Set joint positions and compute forward kinematics for the whole chain.

    Args:
        chain: Chain whose positionable joints receive ``q``
        q: Joint positions in ``chain.iter_joints()`` order

    Returns:
        Dictionary mapping joint names to their world transforms

    Raises:
        ValueError: two nodes of the chain share a name, so poses cannot be
            keyed by name; use :meth:`Chain.update_transforms` instead.
    """
    names = [node.name() for node in chain]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise ValueError(f"joint names are not unique in this chain: {duplicates}")
    chain.set_joint_positions(q)
    poses = chain.update_transforms()
    return dict(zip(names, poses))
