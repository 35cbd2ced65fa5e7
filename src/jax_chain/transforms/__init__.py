"""
JAX-based rigid transforms for kinematic chains.

This module provides:
- SO(3) rotations (so3 module)
- SE(3) rigid body transforms (se3 module)
- Transform3d, the immutable pose type stored on joints
"""

from . import so3
from . import se3
from .transform import Transform3d

__all__ = [
    "so3",
    "se3",
    "Transform3d",
]
