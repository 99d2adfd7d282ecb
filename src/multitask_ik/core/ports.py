from __future__ import annotations
from typing import Protocol, Sequence
import numpy as np
from .contracts import Frame


class KinematicChain(Protocol):
    """
    Protocol for the chain/Jacobian/forward-kinematics provider.

    Standardizes how the controller queries kinematics, regardless of the
    underlying backend (MuJoCo, KDL, pinocchio, ...). Link identifiers are
    END_EFFECTOR (-1) or a 1-based link index in 1..n_joints.
    """
    @property
    def n_joints(self) -> int: ...

    @property
    def joint_names(self) -> Sequence[str]: ...

    def jacobian(self, q: np.ndarray, link: int) -> np.ndarray:
        """
        Geometric Jacobian of a link's frame origin.

        Args:
            q: (n,) joint positions
            link: Link identifier

        Returns:
            (6, n) Jacobian, linear rows first, expressed in the base frame
        """
        ...

    def forward(self, q: np.ndarray, link: int) -> Frame:
        """
        Pose of a link's frame in the base frame.

        Args:
            q: (n,) joint positions
            link: Link identifier

        Returns:
            Frame of the link
        """
        ...


class JointHandle(Protocol):
    """Protocol for one actuated joint of the hardware abstraction."""
    @property
    def name(self) -> str: ...

    def get_position(self) -> float: ...

    def get_velocity(self) -> float: ...

    def set_command(self, effort: float) -> None: ...
