"""Exceptions raised by joints, joint nodes and chains."""

from typing import Optional


class JointError(ValueError):
    """Base class for all joint-related failures."""


class OutOfLimits(JointError):
    """A position outside the joint's configured range was requested."""

    def __init__(self, joint_name: str, position: float, min_limit: float, max_limit: float):
        self.joint_name = joint_name
        self.position = position
        self.min_limit = min_limit
        self.max_limit = max_limit
        super().__init__(
            f"joint '{joint_name}': position {position} is out of limits "
            f"[{min_limit}, {max_limit}]"
        )


class NotMovable(JointError):
    """A position was set on a fixed joint."""

    def __init__(self, joint_name: str):
        self.joint_name = joint_name
        super().__init__(f"joint '{joint_name}' is fixed and has no position")


class MimicConfigurationError(JointError):
    """A mimic child is listed without its Mimic record.

    This is an internal consistency fault in how the mimic relation was
    wired, not a bad user input.
    """

    def __init__(self, driver: str, dependent: str, message: Optional[str] = None):
        self.driver = driver
        self.dependent = dependent
        super().__init__(
            message or f"set_position for {driver} -> {dependent} failed: mimic record not found"
        )


class LengthMismatch(JointError):
    """A bulk position vector has the wrong number of elements."""

    def __init__(self, given: int, required: int):
        self.given = given
        self.required = required
        super().__init__(f"expected {required} joint positions, got {given}")
