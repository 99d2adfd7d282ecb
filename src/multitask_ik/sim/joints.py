"""
Joint handles on a MuJoCo simulation.

Implements the JointHandle protocol: positions and velocities are read from
MjData, effort commands are written to the joint's motor actuator.
"""

from typing import List, Sequence

import mujoco

from ..core.config import ConfigurationError


class MujocoJointHandle:
    """Hardware abstraction for one simulated torque-controlled joint."""

    def __init__(self, model: mujoco.MjModel, data: mujoco.MjData, joint_name: str):
        """
        Args:
            model: MuJoCo model
            data: Simulation data the handle reads from and writes to
            joint_name: Joint to bind; it must be driven by exactly one actuator
        """
        jid = mujoco.mj_name2id(model, mujoco.mjtObj.mjOBJ_JOINT, joint_name)
        if jid < 0:
            raise ConfigurationError(f"joint '{joint_name}' not found in model")

        actuators = [
            a for a in range(model.nu)
            if int(model.actuator_trntype[a]) == int(mujoco.mjtTrn.mjTRN_JOINT) and model.actuator_trnid[a, 0] == jid
        ]
        if len(actuators) != 1:
            raise ConfigurationError(
                f"joint '{joint_name}' needs exactly one actuator, found {len(actuators)}"
            )

        self._name = joint_name
        self.data = data
        self.qpos_adr = model.jnt_qposadr[jid]
        self._dof_adr = model.jnt_dofadr[jid]
        self._actuator = actuators[0]

    @property
    def name(self) -> str:
        return self._name

    def get_position(self) -> float:
        return float(self.data.qpos[self.qpos_adr])

    def get_velocity(self) -> float:
        return float(self.data.qvel[self._dof_adr])

    def set_command(self, effort: float) -> None:
        self.data.ctrl[self._actuator] = effort


def make_joint_handles(model: mujoco.MjModel, data: mujoco.MjData,
                       joint_names: Sequence[str]) -> List[MujocoJointHandle]:
    """Create one handle per chain joint, in chain order."""
    return [MujocoJointHandle(model, data, name) for name in joint_names]
