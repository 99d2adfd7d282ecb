"""
Per-task on-target latch and command flag termination.

Each task is either pending or on target. A task latches on target the first
time its current frame matches the desired one within tolerance and never
goes back. When the lowest-priority task latches, the command flag clears and
the whole solve freezes until a new task list is installed.
"""

import logging
from dataclasses import dataclass, replace
from typing import Sequence, Tuple

from .contracts import Frame, SolverState
from .pose import frames_equal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConvergenceTolerance:
    position: float = 0.01
    orientation: float = 0.01


def update_convergence(
    state: SolverState,
    frames: Sequence[Frame],
    tolerance: ConvergenceTolerance = ConvergenceTolerance(),
) -> Tuple[SolverState, Tuple[int, ...]]:
    """
    Latch tasks whose current frame reached the target.

    Args:
        state: Solver state the frames were computed for
        frames: Current frame of every task, in priority order
        tolerance: Position / rotation-matrix component tolerances

    Returns:
        (new state, indices of tasks that latched in this call)
    """
    tasks = state.task_list.tasks
    if len(frames) != len(tasks):
        raise ValueError(f"got {len(frames)} frames for {len(tasks)} tasks")

    on_target = list(state.on_target)
    active = state.active
    latched = []

    for index, (task, frame) in enumerate(zip(tasks, frames)):
        if on_target[index]:
            continue
        if frames_equal(frame, task.target, tolerance.position, tolerance.orientation):
            logger.info("Task %d on target (%s)", index, task.label)
            on_target[index] = True
            latched.append(index)
            if index == len(tasks) - 1:
                active = False

    if not latched:
        return state, ()

    return replace(state, on_target=tuple(on_target), active=active), tuple(latched)
