import math

import numpy as np
import pytest

from multitask_ik.core.contracts import END_EFFECTOR
from multitask_ik.core.task_config import (
    TaskConfigurationError, TaskConfigurationRequest, build_task_list
)

N = 7


def _request(links, poses):
    return TaskConfigurationRequest(links=links, poses=poses)


def test_valid_request_builds_ordered_tasks():
    task_list = build_task_list(_request(
        [3, END_EFFECTOR],
        [0.1, 0.2, 0.3, 0.0, 0.0, 0.0,
         0.4, 0.0, 0.5, 0.0, math.pi, 0.0],
    ), N)

    assert [task.link for task in task_list] == [3, END_EFFECTOR]
    assert [task.label for task in task_list] == ["link_3", "end_effector"]
    np.testing.assert_allclose(task_list.tasks[0].target.p, [0.1, 0.2, 0.3])
    np.testing.assert_allclose(task_list.tasks[1].target.R, np.diag([-1.0, 1.0, -1.0]), atol=1e-12)


def test_poses_are_fixed_axis_rpy():
    task_list = build_task_list(_request([1], [0, 0, 0, 0.0, 0.0, math.pi / 2]), N)
    # Pure yaw maps x onto y
    np.testing.assert_allclose(task_list.tasks[0].target.R @ [1, 0, 0], [0, 1, 0], atol=1e-12)


@pytest.mark.parametrize("links, n_values", [
    ([1, 2], 6),
    ([1], 12),
    ([1], 7),
    ([], 6),
])
def test_count_mismatch_is_rejected(links, n_values):
    with pytest.raises(TaskConfigurationError):
        build_task_list(_request(links, [0.0] * n_values), N)


@pytest.mark.parametrize("link", [0, N + 1, -2, 2.5, "1", None, 10**400])
def test_bad_link_identifier_is_rejected(link):
    with pytest.raises(TaskConfigurationError):
        build_task_list(_request([link], [0.0] * 6), N)


@pytest.mark.parametrize("link", [1, N, END_EFFECTOR])
def test_link_range_bounds_are_accepted(link):
    assert len(build_task_list(_request([link], [0.0] * 6), N)) == 1


@pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
def test_non_finite_pose_is_rejected(value):
    with pytest.raises(TaskConfigurationError):
        build_task_list(_request([1], [0.0, 0.0, value, 0.0, 0.0, 0.0]), N)


def test_non_numeric_pose_is_rejected():
    with pytest.raises(TaskConfigurationError):
        build_task_list(_request([1], [0.0, 0.0, "high", 0.0, 0.0, 0.0]), N)


def test_empty_request_gives_empty_list():
    assert len(build_task_list(_request([], []), N)) == 0


def test_every_accepted_request_gets_a_new_generation():
    a = build_task_list(_request([1], [0.0] * 6), N)
    b = build_task_list(_request([1], [0.0] * 6), N)
    assert b.generation > a.generation


@pytest.mark.parametrize("links", [None, 3])
def test_links_that_are_not_a_sequence_are_rejected(links):
    with pytest.raises(TaskConfigurationError):
        build_task_list(_request(links, [0.0] * 6), N)
