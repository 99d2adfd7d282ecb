"""Multi-task priority IK on a simulated 7-DOF arm.

This demo closes the multi-task priority controller around a MuJoCo arm:
- MujocoChain: Jacobians and link frames for the solver
- MultiTaskPriorityController: prioritized IK + Euler integration + joint PIDs
- SimulationControlLoop: controller at base rate, telemetry/viewer at a lower rate

Two task lists are sent. The first one is installed before the loop starts;
the second arrives asynchronously from another thread, like a configuration
message from a transport callback, and supersedes the first.

Usage:
    # Headless, as fast as possible
    python examples/run_multi_task_sim.py --duration 6

    # With viewer, in real time
    python examples/run_multi_task_sim.py --visualize --realtime --duration 10
"""

import argparse
import logging
import threading
from pathlib import Path

import mujoco
import numpy as np

from multitask_ik.core.config import load_config
from multitask_ik.core.contracts import END_EFFECTOR
from multitask_ik.core.task_config import TaskConfigurationRequest
from multitask_ik.sim.chain import MujocoChain
from multitask_ik.sim.loop import SimulationControlLoop

CONFIG_PATH = Path(__file__).parent.parent / "config" / "arm7.yaml"

INITIAL_Q = np.array([0.0, 0.5, 0.0, 1.2, 0.0, -0.6, 0.0])


def main():
    """Main entry point for the multi-task simulation demo."""
    parser = argparse.ArgumentParser(
        description='Multi-task priority inverse kinematics on a simulated arm'
    )
    parser.add_argument('--config', type=str, default=str(CONFIG_PATH),
                        help='Controller configuration YAML')
    parser.add_argument('--visualize', action='store_true',
                        help='Enable MuJoCo visualization')
    parser.add_argument('--realtime', action='store_true',
                        help='Run the loop at wall-clock controller rate')
    parser.add_argument('--duration', type=float, default=6.0,
                        help='Duration to run in seconds')
    parser.add_argument('--switch-at', type=float, default=3.0,
                        help='Wall-clock delay before sending the second task list (seconds)')
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s: %(message)s")

    config = load_config(args.config)
    model = mujoco.MjModel.from_xml_path(config.model_xml_path)

    # Pose of link 4 at the initial configuration
    chain = MujocoChain(model, config.joints, config.tip_body)
    link4 = chain.forward(INITIAL_Q, 4)

    loop = SimulationControlLoop(
        config,
        model=model,
        initial_q=INITIAL_Q,
        visualize=args.visualize,
        realtime=args.realtime,
    )

    # Task 0: hold link 4 where it is; task 1: move the end effector
    loop.request_configuration(TaskConfigurationRequest(
        links=[4, END_EFFECTOR],
        poses=[*link4.p, *link4.rpy(),
               0.35, 0.10, 0.55, 0.0, np.pi, 0.0],
    ))

    # Second list from another thread: end effector only
    second = TaskConfigurationRequest(
        links=[END_EFFECTOR],
        poses=[0.30, -0.15, 0.50, 0.0, np.pi, 0.0],
    )
    timer = threading.Timer(args.switch_at, loop.request_configuration, args=(second,))
    timer.daemon = True
    timer.start()

    loop.run(duration_s=args.duration)
    timer.cancel()

    if loop.telemetry_log:
        last = loop.telemetry_log[-1]
        print(f"Final task errors: {np.round(last.task_errors, 4)}")
        print(f"Command flag: {'ON' if last.active else 'OFF'}")


if __name__ == '__main__':
    main()
