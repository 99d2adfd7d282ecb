from __future__ import annotations
from dataclasses import dataclass, field
from typing import Tuple
import numpy as np
from scipy.spatial.transform import Rotation

'''
Separation of Concerns

- `RobotState` = measured joint state read from the hardware each tick
- `Frame` = a spatial pose (position + rotation matrix) in the chain base frame
- `Task` = where one link of the chain should go, with its priority given by its place in a `TaskList`
- `TaskList` = the whole ordered goal set installed by one configuration request
- `SolverState` = task list + convergence flags + command flag, swapped as one value
- `JointTrajectoryPoint` = desired joint position/velocity produced by the integrator
- `TickOutput` = what one control tick emits (efforts, error telemetry, markers)

Configuration request -> TaskList -> SolverState (slot) -> tick -> TickOutput
'''

# Link identifier meaning "the tip of the chain"
END_EFFECTOR = -1


@dataclass(frozen=True)
class TimeStamp:
    t: float  # seconds, monotonic


@dataclass(frozen=True)
class Frame:
    p: np.ndarray  # (3,) position
    R: np.ndarray  # (3, 3) rotation matrix

    @classmethod
    def identity(cls) -> Frame:
        return cls(p=np.zeros(3), R=np.eye(3))

    @classmethod
    def from_xyz_rpy(cls, x: float, y: float, z: float,
                     roll: float, pitch: float, yaw: float) -> Frame:
        """Build a frame from a position and fixed-axis roll/pitch/yaw.

        The rotation is Rz(yaw) @ Ry(pitch) @ Rx(roll).
        """
        R = Rotation.from_euler("xyz", [roll, pitch, yaw]).as_matrix()
        return cls(p=np.array([x, y, z], dtype=float), R=R)

    def rpy(self) -> np.ndarray:
        """Return (roll, pitch, yaw) of the rotation."""
        return Rotation.from_matrix(self.R).as_euler("xyz")


@dataclass(frozen=True)
class RobotState:
    """Measured joint state of the chain at one tick."""
    stamp: TimeStamp

    q: np.ndarray   # (n,) Joint positions [rad]
    dq: np.ndarray  # (n,) Joint velocities [rad/s]


@dataclass(frozen=True)
class JointTrajectoryPoint:
    q: np.ndarray   # (n,) desired joint positions
    dq: np.ndarray  # (n,) desired joint velocities


@dataclass(frozen=True)
class Task:
    link: int       # END_EFFECTOR or 1..n
    target: Frame

    @property
    def label(self) -> str:
        if self.link == END_EFFECTOR:
            return "end_effector"
        return f"link_{self.link}"


@dataclass(frozen=True)
class TaskList:
    tasks: Tuple[Task, ...]
    generation: int = 0

    def __len__(self) -> int:
        return len(self.tasks)

    def __iter__(self):
        return iter(self.tasks)


@dataclass(frozen=True)
class SolverState:
    """Everything the configuration path and the tick share.

    Never mutated in place: a new value is installed in the slot instead.
    """
    task_list: TaskList = field(default_factory=lambda: TaskList(tasks=()))
    on_target: Tuple[bool, ...] = ()
    active: bool = False  # command flag

    @classmethod
    def armed(cls, task_list: TaskList) -> SolverState:
        """Fresh state for a newly accepted task list: all tasks pending."""
        return cls(
            task_list=task_list,
            on_target=(False,) * len(task_list),
            active=len(task_list) > 0,
        )


@dataclass(frozen=True)
class TaskMarker:
    label: str
    position: np.ndarray  # (3,)
    marker_id: int


@dataclass(frozen=True)
class TickOutput:
    stamp: TimeStamp
    effort: np.ndarray                  # (n,) commanded joint efforts
    desired: JointTrajectoryPoint
    task_errors: np.ndarray             # (6 * k,) empty when idle
    markers: Tuple[TaskMarker, ...] = ()
    active: bool = False
