import numpy as np
import pytest

from multitask_ik.core.config import SolverConfig
from multitask_ik.core.contracts import END_EFFECTOR, TimeStamp
from multitask_ik.core.controllers import MultiTaskPriorityController
from multitask_ik.core.handlers import TelemetryBuffer
from multitask_ik.core.task_config import TaskConfigurationRequest

from conftest import JOINTS, Q0, KinematicJoint, xyz_rpy

DT = 0.01


@pytest.fixture
def controller(chain, joints, gains):
    controller = MultiTaskPriorityController(chain, SolverConfig())
    assert controller.init(joints, gains)
    controller.on_start(TimeStamp(0.0))
    return controller


def _ee_request(chain, dp=(0.0, 0.0, 0.0)):
    pose = xyz_rpy(chain.forward(Q0, END_EFFECTOR))
    pose[:3] = [a + b for a, b in zip(pose[:3], dp)]
    return TaskConfigurationRequest(links=[END_EFFECTOR], poses=pose)


def _tick(controller, k):
    return controller.on_tick(TimeStamp(k * DT), DT)


def test_init_rejects_missing_gains(chain, joints, gains):
    del gains["joint_4"]
    controller = MultiTaskPriorityController(chain)
    assert not controller.init(joints, gains)
    assert not controller.initialized


def test_init_rejects_mismatched_handles(chain, joints, gains):
    controller = MultiTaskPriorityController(chain)
    assert not controller.init(joints[:-1], gains)

    renamed = list(joints)
    renamed[2] = KinematicJoint("elbow")
    assert not controller.init(renamed, gains)


def test_lifecycle_order_is_enforced(chain, joints, gains):
    controller = MultiTaskPriorityController(chain)
    with pytest.raises(RuntimeError):
        controller.on_start(TimeStamp(0.0))

    assert controller.init(joints, gains)
    with pytest.raises(RuntimeError):
        controller.on_tick(TimeStamp(0.0), DT)


def test_idle_tick_holds_position(controller):
    output = _tick(controller, 1)

    assert not output.active
    assert output.task_errors.size == 0
    assert output.markers == ()
    np.testing.assert_allclose(output.desired.q, Q0)
    np.testing.assert_allclose(output.effort, np.zeros(7))


def test_task_already_on_target_clears_flag_on_first_tick(controller, chain):
    assert controller.command_configuration(_ee_request(chain))
    assert controller.command_flag

    output = _tick(controller, 1)

    assert output.task_errors.shape == (6,)
    np.testing.assert_allclose(output.task_errors, np.zeros(6), atol=1e-9)
    np.testing.assert_allclose(output.desired.dq, np.zeros(7), atol=1e-8)
    assert controller.slot.snapshot().on_target == (True,)
    assert not output.active
    assert not controller.command_flag


def test_rejected_request_leaves_active_list_untouched(controller, chain):
    assert controller.command_configuration(_ee_request(chain, dp=(0.1, 0.0, 0.0)))
    before = controller.slot.snapshot()

    bad = TaskConfigurationRequest(links=[0], poses=[0.0] * 6)
    assert not controller.command_configuration(bad)
    short = TaskConfigurationRequest(links=[1, 2], poses=[0.0] * 6)
    assert not controller.command_configuration(short)
    assert not controller.command_configuration(TaskConfigurationRequest(links=None, poses=[0.0] * 6))
    huge = TaskConfigurationRequest(links=[10**400], poses=[0.0] * 6)
    assert not controller.command_configuration(huge)

    assert controller.slot.snapshot() is before
    assert controller.command_flag


def test_empty_request_is_accepted_but_does_not_arm(controller):
    assert controller.command_configuration(TaskConfigurationRequest(links=[], poses=[]))
    assert not controller.command_flag
    assert _tick(controller, 1).task_errors.size == 0


def test_markers_follow_tasks_and_restart_ids(controller, chain):
    link3 = xyz_rpy(chain.forward(Q0, 3))
    far = _ee_request(chain, dp=(0.1, 0.0, 0.0))
    controller.command_configuration(TaskConfigurationRequest(
        links=[3, END_EFFECTOR], poses=[*link3, *far.poses],
    ))

    outputs = [_tick(controller, k) for k in range(1, 4)]

    assert [m.label for m in outputs[0].markers] == ["link_3", "end_effector"]
    assert [o.markers[0].marker_id for o in outputs] == [0, 1, 2]
    np.testing.assert_allclose(outputs[0].markers[1].position, chain.forward(Q0, END_EFFECTOR).p)

    controller.command_configuration(far)
    output = _tick(controller, 4)
    assert [m.marker_id for m in output.markers] == [0]


def test_new_list_resets_flags(controller, chain):
    controller.command_configuration(_ee_request(chain))
    _tick(controller, 1)
    assert not controller.command_flag

    controller.command_configuration(_ee_request(chain, dp=(0.05, 0.0, 0.0)))
    assert controller.command_flag
    assert controller.slot.snapshot().on_target == (False,)


def test_closed_loop_reaches_target_and_holds(controller, chain, joints):
    controller.command_configuration(_ee_request(chain, dp=(0.03, 0.0, -0.02)))

    converged_at = None
    for k in range(1, 2001):
        output = _tick(controller, k)
        # Perfect tracking: the arm follows the desired trajectory exactly
        for joint, q in zip(joints, output.desired.q):
            joint.position = q
        if not output.active:
            converged_at = k
            break

    assert converged_at is not None
    assert np.abs(output.task_errors).max() <= 0.011

    held = output.desired.q.copy()
    for k in range(converged_at + 1, converged_at + 20):
        output = _tick(controller, k)
    np.testing.assert_array_equal(output.desired.q, held)
    assert output.task_errors.size == 0


def test_effort_is_pid_on_joint_error(controller, joints, gains):
    joints[0].position = Q0[0] + 0.1
    joints[1].velocity = 0.5

    output = _tick(controller, 1)

    assert output.effort[0] == pytest.approx(gains[JOINTS[0]].p * -0.1)
    assert output.effort[1] == pytest.approx(gains[JOINTS[1]].d * -0.5)
    assert joints[0].command == output.effort[0]


def test_every_tick_output_reaches_telemetry(chain, joints, gains):
    telemetry = TelemetryBuffer()
    controller = MultiTaskPriorityController(chain, telemetry=telemetry)
    controller.init(joints, gains)
    controller.on_start(TimeStamp(0.0))

    output = _tick(controller, 1)
    assert telemetry.get_latest() is output
    assert controller.get_last_output() is output


def test_converged_list_keeps_reissuing_markers(controller, chain):
    controller.command_configuration(_ee_request(chain))
    first = _tick(controller, 1)
    assert not first.active

    later = [_tick(controller, k) for k in range(2, 5)]

    assert [o.markers[0].marker_id for o in [first, *later]] == [0, 1, 2, 3]
    assert all(o.markers[0].label == "end_effector" for o in later)
    np.testing.assert_allclose(later[-1].markers[0].position, first.markers[0].position)
    assert all(o.task_errors.size == 0 for o in later)
