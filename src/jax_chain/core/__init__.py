"""Core data structures: joints, joint types, limits, mimic records and the
joint tree that wires them together."""

from .joint import (
    X_AXIS,
    Y_AXIS,
    Z_AXIS,
    Fixed,
    Joint,
    JointBuilder,
    JointType,
    Linear,
    Mimic,
    Range,
    Rotational,
)
from .node import JointNode, JointTree

__all__ = [
    "X_AXIS",
    "Y_AXIS",
    "Z_AXIS",
    "Fixed",
    "Joint",
    "JointBuilder",
    "JointNode",
    "JointTree",
    "JointType",
    "Linear",
    "Mimic",
    "Range",
    "Rotational",
]
