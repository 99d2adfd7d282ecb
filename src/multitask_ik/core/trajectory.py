"""
Euler integration of the joint-velocity command into a desired trajectory.
"""

import math

import numpy as np

from .contracts import JointTrajectoryPoint


def integrate(desired: JointTrajectoryPoint, qdot: np.ndarray, dt: float) -> JointTrajectoryPoint:
    """
    One explicit Euler step: q += qdot * dt, dq = qdot.

    Args:
        desired: Desired joint state before the step
        qdot: (n,) commanded joint velocity
        dt: Step duration (seconds)

    Returns:
        New desired joint state; the input one if dt is negative or not finite
    """
    if not math.isfinite(dt) or dt < 0.0:
        return desired
    qdot = np.asarray(qdot, dtype=float)
    return JointTrajectoryPoint(q=desired.q + qdot * dt, dq=qdot.copy())


def hold(measured_q: np.ndarray, measured_dq: np.ndarray) -> JointTrajectoryPoint:
    """Desired state equal to a measured one, used at controller start."""
    return JointTrajectoryPoint(
        q=np.array(measured_q, dtype=float),
        dq=np.array(measured_dq, dtype=float),
    )
