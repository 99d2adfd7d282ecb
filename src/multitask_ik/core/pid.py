"""
Per-joint PID feedback turning trajectory error into an effort command.
"""

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class PIDGains:
    p: float = 0.0
    i: float = 0.0
    d: float = 0.0
    i_clamp: float = math.inf  # bound on the integral term magnitude
    antiwindup: bool = False


class JointPID:
    """
    PID controller for a single joint.

    The command is p*e + clamp(i * integral(e dt)) + d*e_dot. The integral is
    carried across calls and cleared by reset().

    Example:
        pid = JointPID(PIDGains(p=100.0, i=1.0, d=10.0, i_clamp=5.0))
        effort = pid.compute_command(q_des - q, dq_des - dq, dt)
    """

    def __init__(self, gains: PIDGains):
        self.gains = gains
        self.i_error = 0.0
        self.last_command = 0.0

    def reset(self) -> None:
        self.i_error = 0.0
        self.last_command = 0.0

    def compute_command(self, error: float, error_dot: float, dt: float) -> float:
        """
        Args:
            error: Position error (desired - measured)
            error_dot: Velocity error (desired - measured)
            dt: Tick duration (seconds)

        Returns:
            Effort command; 0.0 when dt or an input is invalid
        """
        if dt <= 0.0 or not all(map(math.isfinite, (error, error_dot, dt))):
            return 0.0

        g = self.gains
        p_term = g.p * error

        self.i_error += dt * error
        if g.antiwindup and g.i != 0.0:
            bound = abs(g.i_clamp / g.i)
            self.i_error = min(max(self.i_error, -bound), bound)
        i_term = min(max(g.i * self.i_error, -g.i_clamp), g.i_clamp)

        d_term = g.d * error_dot

        self.last_command = p_term + i_term + d_term
        return self.last_command
