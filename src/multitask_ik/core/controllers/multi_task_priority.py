"""
Multi-task priority inverse kinematics joint-torque controller.

Tracks several Cartesian pose goals at once. Goals are ranked; every tick
the priority solver turns them into one joint velocity, which is integrated
into a desired joint trajectory and realized by one PID per joint.
"""

import logging
from typing import Mapping, Optional, Sequence, Tuple

import numpy as np

from .base import BaseJointController
from ..config import ConfigurationError, SolverConfig
from ..contracts import (
    JointTrajectoryPoint, RobotState, SolverState, TaskMarker, TickOutput, TimeStamp
)
from ..convergence import ConvergenceTolerance, update_convergence
from ..handlers import SolverStateSlot, TelemetryBuffer
from ..pid import JointPID, PIDGains
from ..ports import JointHandle, KinematicChain
from ..priority_solver import PriorityTaskSolver, SolveResult
from ..task_config import TaskConfigurationError, TaskConfigurationRequest, build_task_list
from ..trajectory import hold, integrate

logger = logging.getLogger(__name__)


def solve_tick(
    solver: PriorityTaskSolver,
    state: SolverState,
    desired: JointTrajectoryPoint,
    q: np.ndarray,
    dt: float,
    tolerance: ConvergenceTolerance,
) -> Tuple[JointTrajectoryPoint, SolverState, Optional[SolveResult]]:
    """
    Solve, check convergence and integrate for one tick.

    Pure with respect to its inputs. When the command flag is down the
    desired state is held and no solve happens.

    Returns:
        (new desired state, new solver state, solve result or None when idle)
    """
    if not state.active:
        return desired, state, None

    result = solver.solve(state.task_list, q)
    new_state, _ = update_convergence(state, result.frames, tolerance)

    # Integration still happens on the tick where the last task latches
    new_desired = integrate(desired, result.qdot, dt)
    return new_desired, new_state, result


class MultiTaskPriorityController(BaseJointController):
    """
    Joint-torque controller tracking prioritized Cartesian tasks.

    Task lists arrive through command_configuration(), possibly from another
    thread, and are installed atomically in a SolverStateSlot. The tick reads
    a snapshot of that slot and commits convergence results back only if no
    new list was installed meanwhile.

    Example:
        controller = MultiTaskPriorityController(chain, SolverConfig())
        controller.init(handles, config.gains)
        controller.on_start(TimeStamp(0.0))

        controller.command_configuration(
            TaskConfigurationRequest(links=[-1], poses=[0.4, 0.0, 0.5, 0.0, 3.14, 0.0])
        )
        output = controller.on_tick(TimeStamp(t), 0.002)
    """

    def __init__(
        self,
        chain: KinematicChain,
        solver_config: Optional[SolverConfig] = None,
        telemetry: Optional[TelemetryBuffer] = None,
    ):
        """
        Args:
            chain: Jacobian/forward-kinematics provider
            solver_config: Damping and on-target tolerances
            telemetry: Buffer receiving every tick output (created if None)
        """
        super().__init__()
        solver_config = solver_config or SolverConfig()

        self.chain = chain
        self.solver = PriorityTaskSolver(
            chain, damping=solver_config.damping, rcond=solver_config.rcond
        )
        self.tolerance = ConvergenceTolerance(
            position=solver_config.position_tolerance,
            orientation=solver_config.orientation_tolerance,
        )
        self.slot = SolverStateSlot()
        self.telemetry = telemetry or TelemetryBuffer()

        self.pids: Tuple[JointPID, ...] = ()
        self.desired: Optional[JointTrajectoryPoint] = None
        self.measured: Optional[RobotState] = None

        # Marker ids restart at 0 with every new task list
        self._marker_id = 0
        self._marker_generation = None
        self._marker_positions = ()

    @property
    def n_joints(self) -> int:
        return self.chain.n_joints

    @property
    def command_flag(self) -> bool:
        return self.slot.snapshot().active

    def init(self, handles: Sequence[JointHandle], gains: Mapping[str, PIDGains]) -> bool:
        try:
            self._bind(handles, gains)
        except ConfigurationError as e:
            logger.error("MultiTaskPriorityController: %s", e)
            return False
        self.initialized = True
        logger.debug("Number of joints in handle = %d", len(self.handles))
        return True

    def _bind(self, handles: Sequence[JointHandle], gains: Mapping[str, PIDGains]) -> None:
        n = self.chain.n_joints
        if n <= 0:
            raise ConfigurationError("kinematic chain has no joints")
        if len(handles) != n:
            raise ConfigurationError(f"got {len(handles)} joint handles for a chain of {n} joints")

        names = list(self.chain.joint_names)
        for handle, name in zip(handles, names):
            if handle.name != name:
                raise ConfigurationError(f"joint handle '{handle.name}' does not match chain joint '{name}'")

        pids = []
        for name in names:
            if name not in gains:
                raise ConfigurationError(f"error initializing the PID for joint '{name}': no gains")
            pids.append(JointPID(gains[name]))

        self.handles = tuple(handles)
        self.pids = tuple(pids)

    def on_start(self, time: TimeStamp) -> None:
        if not self.initialized:
            raise RuntimeError("on_start() called before a successful init()")

        self.measured = self._read_state(time)
        self.desired = hold(self.measured.q, self.measured.dq)
        for pid in self.pids:
            pid.reset()

        self.slot.deactivate()
        self._marker_id = 0
        self._marker_generation = None
        self._marker_positions = ()
        self.started = True

    def on_tick(self, time: TimeStamp, elapsed: float) -> TickOutput:
        if not self.started:
            raise RuntimeError("on_tick() called before on_start()")

        self.measured = self._read_state(time)
        state = self.slot.snapshot()

        self.desired, new_state, result = solve_tick(
            self.solver, state, self.desired, self.measured.q, elapsed, self.tolerance
        )
        if new_state is not state and not self.slot.compare_and_install(state, new_state):
            logger.debug("task list replaced during tick; dropping convergence update")

        effort = self._feedback(elapsed)

        if result is None:
            task_errors = np.zeros(0)
            markers = self._reissue_markers(state)
        else:
            task_errors = result.stacked_errors()
            markers = self._markers(state, [frame.p.copy() for frame in result.frames])

        output = TickOutput(
            stamp=time,
            effort=effort,
            desired=self.desired,
            task_errors=task_errors,
            markers=markers,
            active=self.slot.snapshot().active,
        )
        self.last_output = output
        self.telemetry.update(output)
        return output

    def command_configuration(self, request: TaskConfigurationRequest) -> bool:
        """
        Validate and install a new task list.

        Safe to call from any thread. A rejected request leaves the active
        task list and the command flag untouched.

        Returns:
            True if the request was accepted
        """
        try:
            task_list = build_task_list(request, self.chain.n_joints)
        except TaskConfigurationError as e:
            logger.warning("Rejected task configuration: %s", e)
            return False

        self.slot.install(task_list)
        logger.info("Number of tasks: %d", len(task_list))
        return True

    def _read_state(self, time: TimeStamp) -> RobotState:
        return RobotState(
            stamp=time,
            q=np.array([h.get_position() for h in self.handles], dtype=float),
            dq=np.array([h.get_velocity() for h in self.handles], dtype=float),
        )

    def _feedback(self, dt: float) -> np.ndarray:
        effort = np.zeros(len(self.handles))
        q_err = self.desired.q - self.measured.q
        dq_err = self.desired.dq - self.measured.dq
        for i, (handle, pid) in enumerate(zip(self.handles, self.pids)):
            effort[i] = pid.compute_command(float(q_err[i]), float(dq_err[i]), dt)
            handle.set_command(effort[i])
        return effort

    def _markers(self, state: SolverState, positions: Sequence[np.ndarray]) -> Tuple[TaskMarker, ...]:
        generation = state.task_list.generation
        if generation != self._marker_generation:
            self._marker_generation = generation
            self._marker_id = 0

        self._marker_positions = tuple(positions)
        markers = tuple(
            TaskMarker(label=task.label, position=p, marker_id=self._marker_id)
            for task, p in zip(state.task_list, self._marker_positions)
        )
        self._marker_id += 1
        return markers

    def _reissue_markers(self, state: SolverState) -> Tuple[TaskMarker, ...]:
        """Last markers of a converged list, with a fresh id."""
        if not state.task_list.tasks or state.task_list.generation != self._marker_generation:
            return ()
        return self._markers(state, self._marker_positions)
