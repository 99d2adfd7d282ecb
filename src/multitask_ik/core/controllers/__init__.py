"""
Controllers package for joint-space control.

This package provides the abstract controller lifecycle and the
multi-task priority inverse kinematics controller.
"""

from .base import BaseJointController
from .multi_task_priority import MultiTaskPriorityController, solve_tick

__all__ = [
    'BaseJointController',
    'MultiTaskPriorityController',
    'solve_tick',
]
