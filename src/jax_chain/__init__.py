"""
JAX Chain: a kinematic-chain core built on JAX.

Joints are wired into a tree with structural and mimic relations, positions
are set per joint or in bulk, and forward kinematics caches the world pose of
every joint.
"""

import jax
jax.config.update("jax_enable_x64", True)

from . import transforms
from . import core
from .chain import Chain, forward_kinematics, forward_kinematics_world
from .core import (
    X_AXIS,
    Y_AXIS,
    Z_AXIS,
    Fixed,
    Joint,
    JointBuilder,
    JointNode,
    JointTree,
    Linear,
    Mimic,
    Range,
    Rotational,
)
from .errors import (
    JointError,
    LengthMismatch,
    MimicConfigurationError,
    NotMovable,
    OutOfLimits,
)
from .transforms import Transform3d

__version__ = "0.1.0"
__all__ = [
    "transforms",
    "core",
    "Chain",
    "forward_kinematics",
    "forward_kinematics_world",
    "X_AXIS",
    "Y_AXIS",
    "Z_AXIS",
    "Fixed",
    "Joint",
    "JointBuilder",
    "JointNode",
    "JointTree",
    "Linear",
    "Mimic",
    "Range",
    "Rotational",
    "JointError",
    "LengthMismatch",
    "MimicConfigurationError",
    "NotMovable",
    "OutOfLimits",
    "Transform3d",
]
