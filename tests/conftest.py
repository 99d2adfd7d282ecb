from pathlib import Path

import mujoco
import numpy as np
import pytest

from multitask_ik.core.contracts import Frame
from multitask_ik.core.pid import PIDGains
from multitask_ik.sim.chain import MujocoChain

REPO_ROOT = Path(__file__).parent.parent
ARM7_XML = REPO_ROOT / "assets" / "arm7" / "arm7.xml"
ARM7_CONFIG = REPO_ROOT / "config" / "arm7.yaml"

JOINTS = [f"joint_{i}" for i in range(1, 8)]

# Bent-elbow configuration away from singularities
Q0 = np.array([0.0, 0.5, 0.0, 1.2, 0.0, -0.6, 0.0])


class KinematicJoint:
    """Joint handle whose state the test sets directly; commands are recorded."""

    def __init__(self, name, position=0.0, velocity=0.0):
        self.name = name
        self.position = position
        self.velocity = velocity
        self.command = None

    def get_position(self):
        return self.position

    def get_velocity(self):
        return self.velocity

    def set_command(self, effort):
        self.command = effort


class LinearChain:
    """Chain with a constant Jacobian: x(q) = J q (rotation via rotation vector)."""

    def __init__(self, J):
        self.J = np.asarray(J, dtype=float)
        self.n_joints = self.J.shape[1]
        self.joint_names = [f"j{i}" for i in range(self.n_joints)]

    def jacobian(self, q, link):
        return self.J

    def forward(self, q, link):
        from scipy.spatial.transform import Rotation
        twist = self.J @ np.asarray(q, dtype=float)
        return Frame(p=twist[:3], R=Rotation.from_rotvec(twist[3:]).as_matrix())


@pytest.fixture(scope="session")
def arm_model():
    return mujoco.MjModel.from_xml_path(str(ARM7_XML))


@pytest.fixture
def chain(arm_model):
    return MujocoChain(arm_model, JOINTS, "ee")


@pytest.fixture
def joints():
    return [KinematicJoint(name, position=q) for name, q in zip(JOINTS, Q0)]


@pytest.fixture
def gains():
    return {name: PIDGains(p=100.0, i=0.0, d=10.0) for name in JOINTS}


def xyz_rpy(frame):
    """Flatten a frame into the six numbers of a configuration request."""
    return [*frame.p, *frame.rpy()]
