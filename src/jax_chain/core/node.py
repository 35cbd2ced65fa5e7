"""Joint tree storage and the JointNode handle.

Nodes are stored in a ``JointTree`` arena and addressed by integer index, the
same flattened-tree idea as ``parent_indices``: every relation is an index
into the arena rather than an object reference. Two independent relations are
kept over the same node set:

* structural: parent index and ordered child indices, which drive world
  transforms;
* mimic: mimic-parent index and ordered mimic-child indices, which drive
  position propagation. The ``Mimic`` record lives on the dependent node.

A ``JointNode`` is only a ``(tree, index)`` handle, so any number of handles,
child lists and chains can refer to one node and all of them see the same
``Joint``.
"""

from __future__ import annotations

import logging
from typing import Iterator, List, Optional, Tuple

from ..errors import MimicConfigurationError
from ..transforms import Transform3d
from .joint import Joint, JointType, Mimic, Range

logger = logging.getLogger(__name__)


class JointTree:
    """Arena owning every joint plus its structural and mimic relations."""

    def __init__(self):
        self._joints: List[Joint] = []
        self._parents: List[Optional[int]] = []
        self._children: List[List[int]] = []
        self._mimic_parents: List[Optional[int]] = []
        self._mimics: List[Optional[Mimic]] = []
        self._mimic_children: List[List[int]] = []
        # bumped on every structural edit; chains compare against it
        self.version = 0

    def add(self, joint: Joint) -> "JointNode":
        """Add ``joint`` as a new unattached root and return its handle."""
        index = len(self._joints)
        self._joints.append(joint)
        self._parents.append(None)
        self._children.append([])
        self._mimic_parents.append(None)
        self._mimics.append(None)
        self._mimic_children.append([])
        return JointNode(self, index)

    def __len__(self) -> int:
        return len(self._joints)

    def node(self, index: int) -> "JointNode":
        if not 0 <= index < len(self._joints):
            raise IndexError(f"no node with index {index}")
        return JointNode(self, index)

    def roots(self) -> List["JointNode"]:
        return [JointNode(self, i) for i, p in enumerate(self._parents) if p is None]

    # Structural relation
    def set_parent(self, child: int, parent: int) -> None:
        """Attach ``child`` under ``parent``, detaching it from any old parent.

        Raises:
            ValueError: the edge would create a cycle.
        """
        if child == parent or parent in self.descendant_indices(child):
            raise ValueError(
                f"cannot parent '{self._joints[child].name}' to "
                f"'{self._joints[parent].name}': would create a cycle"
            )
        old = self._parents[child]
        if old == parent:
            return
        if old is not None:
            self._children[old].remove(child)
            logger.debug("detached %s from %s", self._joints[child].name, self._joints[old].name)
        self._parents[child] = parent
        self._children[parent].append(child)
        self.version += 1

    def descendant_indices(self, index: int) -> List[int]:
        """Depth-first pre-order of the subtree below ``index`` (excluded)."""
        order: List[int] = []
        stack = list(reversed(self._children[index]))
        while stack:
            current = stack.pop()
            order.append(current)
            stack.extend(reversed(self._children[current]))
        return order

    def ancestor_indices(self, index: int) -> List[int]:
        order: List[int] = []
        current = self._parents[index]
        while current is not None:
            order.append(current)
            current = self._parents[current]
        return order

    # Mimic relation
    def set_mimic_parent(self, child: int, parent: int, mimic: Mimic) -> None:
        """Make ``child`` follow ``parent`` through ``mimic``.

        Both sides are written together. Rebinding removes the reverse entry
        from the previous mimic parent.
        """
        if child == parent:
            raise ValueError(f"joint '{self._joints[child].name}' cannot mimic itself")
        old = self._mimic_parents[child]
        if old is not None:
            self._mimic_children[old].remove(child)
            logger.debug("unbound mimic %s -> %s", self._joints[old].name, self._joints[child].name)
        self._mimic_parents[child] = parent
        self._mimics[child] = mimic
        self._mimic_children[parent].append(child)
        logger.debug("bound mimic %s -> %s (%s)", self._joints[parent].name, self._joints[child].name, mimic)

    def set_position(self, index: int, position: float) -> None:
        """Set a position and propagate it to mimic children.

        A node that mimics another is a silent no-op: its position belongs
        to its driver. Propagation is not transactional; mimic children
        updated before a failing one keep their new value.
        """
        if self._mimic_parents[index] is not None:
            return
        joint = self._joints[index]
        joint.set_position(position)
        for child in self._mimic_children[index]:
            mimic = self._mimics[child]
            if mimic is None:
                raise MimicConfigurationError(
                    joint.name,
                    self._joints[child].name,
                    f"set_position for {joint.name} -> {self._joints[child].name} failed. "
                    f"Mimic instance not found. child = {self._joints[child]!r}",
                )
            self._joints[child].set_position(mimic.mimic_position(joint.position()))

    def set_position_clamped(self, index: int, position: float) -> None:
        if self._mimic_parents[index] is not None:
            return
        joint = self._joints[index]
        joint.set_position_clamped(position)
        for child in self._mimic_children[index]:
            mimic = self._mimics[child]
            if mimic is None:
                raise MimicConfigurationError(joint.name, self._joints[child].name)
            self._joints[child].set_position_clamped(mimic.mimic_position(joint.position()))

    def parent_world_transform(self, index: int) -> Optional[Transform3d]:
        parent = self._parents[index]
        if parent is None:
            return Transform3d.identity()
        return self._joints[parent].world_transform()


class JointNode:
    """Handle on one node of a :class:`JointTree`.

    Example:
        >>> tree = JointTree()
        >>> j0 = tree.add(Joint("j0", Linear(Z_AXIS), limits=Range(0.0, 2.0)))
        >>> j1 = tree.add(Joint("j1", Linear(Z_AXIS), limits=Range(0.0, 2.0)))
        >>> j1.set_mimic_parent(j0, Mimic(1.5, 0.1))
        >>> j0.set_position(1.0)
        >>> j1.position()
        1.6
    """

    __slots__ = ("_tree", "_index")

    def __init__(self, tree: JointTree, index: int):
        self._tree = tree
        self._index = index

    @property
    def tree(self) -> JointTree:
        return self._tree

    @property
    def index(self) -> int:
        return self._index

    @property
    def joint(self) -> Joint:
        return self._tree._joints[self._index]

    def __eq__(self, other) -> bool:
        if not isinstance(other, JointNode):
            return NotImplemented
        return self._tree is other._tree and self._index == other._index

    def __hash__(self) -> int:
        return hash((id(self._tree), self._index))

    def _check_same_tree(self, other: "JointNode") -> None:
        if other._tree is not self._tree:
            raise ValueError(
                f"'{other.name()}' and '{self.name()}' belong to different joint trees"
            )

    # Joint accessors
    def name(self) -> str:
        return self.joint.name

    def limits(self) -> Optional[Range]:
        return self.joint.limits

    def joint_type(self) -> JointType:
        return self.joint.joint_type

    def has_position(self) -> bool:
        return self.joint.is_movable()

    def position(self) -> Optional[float]:
        return self.joint.position()

    def set_position(self, position: float) -> None:
        self._tree.set_position(self._index, position)

    def set_position_clamped(self, position: float) -> None:
        self._tree.set_position_clamped(self._index, position)

    def set_offset(self, offset: Transform3d) -> None:
        self.joint.set_offset(offset)

    def transform(self) -> Transform3d:
        """Local transform from the current position."""
        return self.joint.local_transform()

    def world_transform(self) -> Optional[Transform3d]:
        """Cached world transform; call ``Chain.update_transforms()`` first."""
        return self.joint.world_transform()

    def parent_world_transform(self) -> Optional[Transform3d]:
        """Parent's cached world transform, or identity for a root."""
        return self._tree.parent_world_transform(self._index)

    # Structural relation
    def set_parent(self, parent: "JointNode") -> None:
        self._check_same_tree(parent)
        self._tree.set_parent(self._index, parent._index)

    def parent(self) -> Optional["JointNode"]:
        parent = self._tree._parents[self._index]
        return None if parent is None else JointNode(self._tree, parent)

    def children(self) -> List["JointNode"]:
        return [JointNode(self._tree, c) for c in self._tree._children[self._index]]

    def is_root(self) -> bool:
        return self._tree._parents[self._index] is None

    def is_end(self) -> bool:
        return not self._tree._children[self._index]

    def iter_ancestors(self) -> Iterator["JointNode"]:
        """Parent first, root last."""
        for index in self._tree.ancestor_indices(self._index):
            yield JointNode(self._tree, index)

    def iter_descendants(self) -> Iterator["JointNode"]:
        """This node followed by its subtree in depth-first order."""
        yield self
        for index in self._tree.descendant_indices(self._index):
            yield JointNode(self._tree, index)

    # Mimic relation
    def set_mimic_parent(self, parent: "JointNode", mimic: Mimic) -> None:
        self._check_same_tree(parent)
        self._tree.set_mimic_parent(self._index, parent._index, mimic)

    def mimic_parent(self) -> Optional["JointNode"]:
        parent = self._tree._mimic_parents[self._index]
        return None if parent is None else JointNode(self._tree, parent)

    def mimic(self) -> Optional[Mimic]:
        return self._tree._mimics[self._index]

    def mimic_children(self) -> List[Tuple["JointNode", Optional[Mimic]]]:
        return [
            (JointNode(self._tree, c), self._tree._mimics[c])
            for c in self._tree._mimic_children[self._index]
        ]

    def __str__(self) -> str:
        return str(self.joint)

    def __repr__(self) -> str:
        return f"JointNode({self.name()!r}, index={self._index})"
