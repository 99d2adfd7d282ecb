import math

import pytest

from multitask_ik.core.pid import JointPID, PIDGains


def test_proportional_and_derivative_terms():
    pid = JointPID(PIDGains(p=10.0, d=2.0))
    assert pid.compute_command(0.5, -1.0, 0.01) == pytest.approx(5.0 - 2.0)


def test_integral_accumulates_across_ticks():
    pid = JointPID(PIDGains(i=4.0))
    pid.compute_command(1.0, 0.0, 0.1)
    assert pid.compute_command(1.0, 0.0, 0.1) == pytest.approx(4.0 * 0.2)


def test_integral_term_is_clamped():
    pid = JointPID(PIDGains(i=10.0, i_clamp=0.5))
    for _ in range(100):
        command = pid.compute_command(1.0, 0.0, 0.1)
    assert command == pytest.approx(0.5)
    # Without anti-windup the accumulator keeps growing behind the clamp
    assert pid.i_error == pytest.approx(10.0)


def test_antiwindup_bounds_accumulator():
    pid = JointPID(PIDGains(i=10.0, i_clamp=0.5, antiwindup=True))
    for _ in range(100):
        pid.compute_command(1.0, 0.0, 0.1)
    assert pid.i_error == pytest.approx(0.05)
    # Recovers as soon as the error changes sign
    assert pid.compute_command(-1.0, 0.0, 0.1) == pytest.approx(-0.5)


def test_invalid_inputs_give_zero_command():
    pid = JointPID(PIDGains(p=1.0, i=1.0, d=1.0))
    assert pid.compute_command(1.0, 1.0, 0.0) == 0.0
    assert pid.compute_command(1.0, 1.0, -0.1) == 0.0
    assert pid.compute_command(math.nan, 1.0, 0.1) == 0.0
    assert pid.compute_command(1.0, math.inf, 0.1) == 0.0
    assert pid.i_error == 0.0


def test_reset_clears_integral():
    pid = JointPID(PIDGains(i=1.0))
    pid.compute_command(1.0, 0.0, 1.0)
    pid.reset()
    assert pid.i_error == 0.0
    assert pid.compute_command(0.0, 0.0, 1.0) == 0.0
