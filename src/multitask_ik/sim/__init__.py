"""
MuJoCo collaborators for the controller.

Provides the kinematic chain and joint hardware abstraction used to run the
controller against a simulated arm.
"""

from .chain import MujocoChain
from .joints import MujocoJointHandle, make_joint_handles

__all__ = [
    'MujocoChain',
    'MujocoJointHandle',
    'make_joint_handles',
]
