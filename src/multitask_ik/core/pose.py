"""
Task-space error between spatial frames.

The error is the twist that carries the current frame onto the desired one
in unit time: linear part is the position difference, angular part is the
rotation vector of the relative rotation expressed in the base frame.
"""

import numpy as np
from scipy.spatial.transform import Rotation

from .contracts import Frame


def rotation_error(R_current: np.ndarray, R_desired: np.ndarray) -> np.ndarray:
    """
    Minimal rotation taking R_current to R_desired, as a base-frame rotation vector.

    Args:
        R_current: (3, 3) current orientation
        R_desired: (3, 3) desired orientation

    Returns:
        (3,) rotation vector, zero when the orientations are equal
    """
    R_rel = R_current.T @ R_desired
    # as_rotvec picks a consistent axis near pi, so this never degenerates
    omega_local = Rotation.from_matrix(R_rel).as_rotvec()
    return R_current @ omega_local


def pose_error(current: Frame, desired: Frame) -> np.ndarray:
    """
    6D error [dx, dy, dz, wx, wy, wz] from current to desired frame.

    Args:
        current: Frame the link is in now
        desired: Frame the link should reach

    Returns:
        (6,) twist difference, translation first
    """
    err = np.empty(6)
    err[:3] = desired.p - current.p
    err[3:] = rotation_error(current.R, desired.R)
    return err


def frames_equal(a: Frame, b: Frame,
                 position_tolerance: float = 0.01,
                 orientation_tolerance: float = 0.01) -> bool:
    """
    Component-wise frame comparison.

    Position components are compared against position_tolerance and the
    nine rotation-matrix entries against orientation_tolerance.
    """
    if not np.all(np.abs(a.p - b.p) <= position_tolerance):
        return False
    return bool(np.all(np.abs(a.R - b.R) <= orientation_tolerance))
