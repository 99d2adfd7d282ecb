"""
MuJoCo-backed kinematic chain.

Implements the KinematicChain protocol on a MuJoCo model: link i is the body
moved by the i-th chain joint, END_EFFECTOR is the tip body. Kinematics run
on a private MjData so queries never disturb a simulation's state.

Requirements:
    - mujoco: pip install mujoco
"""

from typing import Sequence

import mujoco
import numpy as np

from ..core.config import ConfigurationError
from ..core.contracts import END_EFFECTOR, Frame


class MujocoChain:
    """
    Jacobian and forward kinematics for a serial chain inside a MuJoCo model.

    Example:
        model = mujoco.MjModel.from_xml_path('arm7.xml')
        chain = MujocoChain(model, joint_names=['joint_1', ...], tip_body='ee')
        J = chain.jacobian(q, END_EFFECTOR)   # (6, n)
        x = chain.forward(q, 3)               # Frame of link_3
    """

    def __init__(self, model: mujoco.MjModel, joint_names: Sequence[str], tip_body: str):
        """
        Args:
            model: MuJoCo model containing the chain
            joint_names: Chain joints, base to tip (hinge or slide joints)
            tip_body: Body whose frame is the end effector
        """
        if not joint_names:
            raise ConfigurationError("kinematic chain is empty")

        self.model = model
        self.data = mujoco.MjData(model)
        self._joint_names = tuple(joint_names)

        qpos_adr, dof_adr, bodies = [], [], []
        for name in self._joint_names:
            jid = mujoco.mj_name2id(model, mujoco.mjtObj.mjOBJ_JOINT, name)
            if jid < 0:
                raise ConfigurationError(f"joint '{name}' not found in model")
            if int(model.jnt_type[jid]) not in (int(mujoco.mjtJoint.mjJNT_HINGE), int(mujoco.mjtJoint.mjJNT_SLIDE)):
                raise ConfigurationError(f"joint '{name}' is not a hinge or slide joint")
            qpos_adr.append(model.jnt_qposadr[jid])
            dof_adr.append(model.jnt_dofadr[jid])
            bodies.append(model.jnt_bodyid[jid])

        self.tip_id = mujoco.mj_name2id(model, mujoco.mjtObj.mjOBJ_BODY, tip_body)
        if self.tip_id < 0:
            raise ConfigurationError(f"tip body '{tip_body}' not found in model")

        self._qpos_adr = np.array(qpos_adr)
        self._dof_adr = np.array(dof_adr)
        self._link_bodies = tuple(int(b) for b in bodies)
        self._q_cached = None

        self._jacp = np.zeros((3, model.nv))
        self._jacr = np.zeros((3, model.nv))

    @property
    def n_joints(self) -> int:
        return len(self._joint_names)

    @property
    def joint_names(self) -> Sequence[str]:
        return self._joint_names

    def body_id(self, link: int) -> int:
        """MuJoCo body id for a link identifier."""
        if link == END_EFFECTOR:
            return self.tip_id
        if not 1 <= link <= self.n_joints:
            raise ValueError(f"link must be {END_EFFECTOR} or within 1 and {self.n_joints}, got {link}")
        return self._link_bodies[link - 1]

    def jacobian(self, q: np.ndarray, link: int) -> np.ndarray:
        body = self.body_id(link)
        self._update(q)
        mujoco.mj_jacBody(self.model, self.data, self._jacp, self._jacr, body)
        return np.vstack([self._jacp[:, self._dof_adr], self._jacr[:, self._dof_adr]])

    def forward(self, q: np.ndarray, link: int) -> Frame:
        body = self.body_id(link)
        self._update(q)
        return Frame(
            p=self.data.xpos[body].copy(),
            R=self.data.xmat[body].reshape(3, 3).copy(),
        )

    def _update(self, q: np.ndarray) -> None:
        q = np.asarray(q, dtype=float)
        if q.shape != (self.n_joints,):
            raise ValueError(f"expected {self.n_joints} joint positions, got shape {q.shape}")
        if self._q_cached is not None and np.array_equal(q, self._q_cached):
            return
        self.data.qpos[self._qpos_adr] = q
        mujoco.mj_kinematics(self.model, self.data)
        mujoco.mj_comPos(self.model, self.data)
        self._q_cached = q.copy()
