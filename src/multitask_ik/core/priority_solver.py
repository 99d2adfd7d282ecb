"""
Prioritized multi-task inverse kinematics.

Tasks are folded in one at a time in priority order. Each task contributes
the velocity that corrects its own error as far as the null space of all
higher-priority tasks allows, and then shrinks that null space.

    qdot_i = qdot_{i-1} + pinv_damped(J_i P_{i-1}) (e_i - J_i qdot_{i-1})
    P_i    = P_{i-1} - pinv_exact(J_i P_{i-1}) (J_i P_{i-1})

The damped inverse keeps the task's own velocity bounded near singularities.
The projector is built from the exact inverse so damping never lets a
lower-priority task leak into the space reserved for a higher-priority one.
"""

from dataclasses import dataclass, field
from typing import List, Tuple

import numpy as np

from .contracts import Frame, TaskList
from .ports import KinematicChain
from .pose import pose_error
from .pseudo_inverse import pseudo_inverse, DEFAULT_DAMPING, DEFAULT_RCOND


class NullSpaceProjector:
    """
    Running null-space projector of the tasks folded in so far.

    Starts as the identity; every update can only reduce its rank.
    """

    def __init__(self, n: int, rcond: float = DEFAULT_RCOND):
        self.n = n
        self.rcond = rcond
        self.P = np.eye(n)

    def reset(self) -> None:
        self.P = np.eye(self.n)

    def restrict(self, J: np.ndarray) -> np.ndarray:
        """Priority-weighted Jacobian J @ P."""
        return J @ self.P

    def update(self, J_star: np.ndarray) -> None:
        """Remove the row space of an already restricted Jacobian."""
        J_star_pinv = pseudo_inverse(J_star, damped=False, rcond=self.rcond)
        self.P = self.P - J_star_pinv @ J_star


@dataclass
class SolveResult:
    qdot: np.ndarray                                    # (n,) joint velocity command
    errors: List[np.ndarray] = field(default_factory=list)      # per task (6,)
    frames: List[Frame] = field(default_factory=list)           # per task current frame
    projectors: List[np.ndarray] = field(default_factory=list)  # P_i after each task
    contributions: List[np.ndarray] = field(default_factory=list)  # qdot_i - qdot_{i-1}

    def stacked_errors(self) -> np.ndarray:
        if not self.errors:
            return np.zeros(0)
        return np.concatenate(self.errors)


class PriorityTaskSolver:
    """
    Turns an ordered task list into one joint-velocity command per tick.

    The solver holds no state between calls; every solve starts from
    P = I and qdot = 0.

    Example:
        solver = PriorityTaskSolver(chain, damping=0.2)
        result = solver.solve(task_list, q_measured)
        qdot_cmd = result.qdot
    """

    def __init__(self, chain: KinematicChain,
                 damping: float = DEFAULT_DAMPING,
                 rcond: float = DEFAULT_RCOND):
        """
        Args:
            chain: Jacobian/forward-kinematics provider
            damping: Damping factor for the task velocity pseudo-inverse
            rcond: Singular value cutoff for the projector pseudo-inverse
        """
        if damping < 0.0:
            raise ValueError(f"damping must be non-negative, got {damping}")
        self.chain = chain
        self.n = chain.n_joints
        self.damping = damping
        self.rcond = rcond

    def solve(self, task_list: TaskList, q: np.ndarray) -> SolveResult:
        """
        Run one solve pass over all tasks.

        Args:
            task_list: Tasks in priority order (index 0 highest)
            q: (n,) measured joint positions

        Returns:
            SolveResult with the velocity command and per-task telemetry
        """
        projector = NullSpaceProjector(self.n, rcond=self.rcond)
        qdot = np.zeros(self.n)
        result = SolveResult(qdot=qdot)

        for task in task_list:
            J = self._jacobian(q, task.link)
            x = self.chain.forward(q, task.link)

            e = pose_error(x, task.target)

            J_star = projector.restrict(J)
            J_star_pinv = pseudo_inverse(J_star, damped=True, damping=self.damping)
            step = J_star_pinv @ (e - J @ qdot)
            qdot = qdot + step

            projector.update(J_star)

            result.errors.append(e)
            result.frames.append(x)
            result.contributions.append(step)
            result.projectors.append(projector.P.copy())

        result.qdot = qdot
        return result

    def _jacobian(self, q: np.ndarray, link: int) -> np.ndarray:
        J = np.asarray(self.chain.jacobian(q, link), dtype=float)
        if J.shape != (6, self.n):
            raise ValueError(
                f"Jacobian for link {link} has shape {J.shape}, expected (6, {self.n})"
            )
        return J


def projector_ranks(result: SolveResult, tol: float = 1e-8) -> Tuple[int, ...]:
    """Numerical rank of every projector in a solve, P_0 = I first."""
    if not result.projectors:
        return ()
    n = result.projectors[0].shape[0]
    ranks = [n]
    for P in result.projectors:
        ranks.append(int(np.linalg.matrix_rank(P, tol=tol)))
    return tuple(ranks)
