"""Placement constraints for the assignment engine."""

from .base import ConstraintBase
from .hard import HardConstraints
from .soft import SoftConstraints

__all__ = [
    "ConstraintBase",
    "HardConstraints",
    "SoftConstraints",
]
