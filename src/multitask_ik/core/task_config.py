"""
Validation of task-list configuration requests.

A request carries a flat list of link identifiers and a flat list of pose
parameters, six per task: x, y, z, roll, pitch, yaw. Link identifiers are
END_EFFECTOR (-1) or a link index in 1..n.
"""

import itertools
import math
from dataclasses import dataclass
from typing import Sequence

from .contracts import END_EFFECTOR, Frame, Task, TaskList

POSE_SIZE = 6

_generations = itertools.count(1)


class TaskConfigurationError(ValueError):
    """A task configuration request was malformed and has been dropped."""


@dataclass(frozen=True)
class TaskConfigurationRequest:
    links: Sequence[int]
    poses: Sequence[float]  # [x, y, z, roll, pitch, yaw] per task


def build_task_list(request: TaskConfigurationRequest, n_joints: int) -> TaskList:
    """
    Validate a request and turn it into a new task list.

    Args:
        request: Incoming configuration request
        n_joints: Number of joints in the chain

    Returns:
        TaskList with a fresh generation number

    Raises:
        TaskConfigurationError: if link and pose counts disagree, a link
            identifier is out of range, or a pose value is not finite
    """
    try:
        links = list(request.links)
    except TypeError as e:
        raise TaskConfigurationError(f"link identifiers must be a sequence: {e}") from None
    try:
        poses = [float(v) for v in request.poses]
    except (TypeError, ValueError) as e:
        raise TaskConfigurationError(f"task parameters must be numbers: {e}") from None

    if len(poses) % POSE_SIZE != 0 or len(links) != len(poses) // POSE_SIZE:
        raise TaskConfigurationError(
            f"the number of links ({len(links)}) and tasks ({len(poses)} / {POSE_SIZE}) "
            "must be the same; task parameters are [x, y, z, roll, pitch, yaw]"
        )

    tasks = []
    for i, link in enumerate(links):
        if not _is_integral(link) or (link != END_EFFECTOR and not 1 <= link <= n_joints):
            raise TaskConfigurationError(
                f"link index must be within 1 and {n_joints} ({END_EFFECTOR} is end-effector), got {link}"
            )
        block = poses[i * POSE_SIZE:(i + 1) * POSE_SIZE]
        if not all(math.isfinite(v) for v in block):
            raise TaskConfigurationError(f"task {i} pose has non-finite values: {block}")
        tasks.append(Task(link=int(link), target=Frame.from_xyz_rpy(*block)))

    return TaskList(tasks=tuple(tasks), generation=next(_generations))


def _is_integral(value) -> bool:
    try:
        return math.isfinite(value) and int(value) == value
    except (TypeError, OverflowError):
        return False
