"""
Simulated control loop.

Runs the multi-task priority controller against a MuJoCo arm:
- Controller task at the base frequency: tick the controller, step physics
- Telemetry task at a lower frequency: consume tick output, update the viewer
"""

import logging
from collections import deque
from typing import Deque, List, Optional

import mujoco
import numpy as np

from ..core.base_multirate_loop import BaseMultiRateControlLoop
from ..core.config import ConfigurationError, ControllerConfig
from ..core.contracts import TickOutput, TimeStamp
from ..core.controllers import MultiTaskPriorityController
from ..core.handlers import TelemetryBuffer
from ..core.task_config import TaskConfigurationRequest
from .chain import MujocoChain
from .joints import make_joint_handles

logger = logging.getLogger(__name__)


class SimulationControlLoop(BaseMultiRateControlLoop):
    """
    Multi-rate loop closing the controller around a MuJoCo simulation.

    Example:
        config = load_config('config/arm7.yaml')
        loop = SimulationControlLoop(config, initial_q=q0)
        loop.request_configuration(TaskConfigurationRequest(links=[-1], poses=[...]))
        loop.run(duration_s=5.0)
    """

    def __init__(
        self,
        config: ControllerConfig,
        model: Optional[mujoco.MjModel] = None,
        initial_q: Optional[np.ndarray] = None,
        visualize: bool = False,
        camera_config: Optional[dict] = None,
        realtime: bool = False,
        telemetry_history: int = 500,
    ):
        """
        Args:
            config: Controller configuration
            model: MuJoCo model; loaded from config.model_xml_path if None
            initial_q: Initial joint positions of the chain (zeros if None)
            visualize: Open a MuJoCo viewer updated at telemetry rate
            camera_config: Viewer camera settings
            realtime: Hold the loop to the controller rate in wall-clock time
            telemetry_history: Number of recent tick outputs kept in telemetry_log
        """
        super().__init__(
            base_frequency_hz=config.controller_hz,
            task_frequencies_hz={
                'controller': config.controller_hz,
                'telemetry': config.telemetry_hz,
            },
            realtime=realtime,
            config=config,
        )
        self.model = model
        self.initial_q = initial_q
        self.visualize = visualize
        self.camera_config = camera_config
        self.visualizer = None

        self.data: Optional[mujoco.MjData] = None
        self.controller: Optional[MultiTaskPriorityController] = None
        self.telemetry = TelemetryBuffer()
        self.telemetry_log: Deque[TickOutput] = deque(maxlen=telemetry_history)
        self._pending: List[TaskConfigurationRequest] = []

    def initialize(self) -> bool:
        config = self.config
        try:
            if self.model is None:
                self.model = mujoco.MjModel.from_xml_path(config.model_xml_path)
            self.data = mujoco.MjData(self.model)
            chain = MujocoChain(self.model, config.joints, config.tip_body)
            handles = make_joint_handles(self.model, self.data, config.joints)
        except (ConfigurationError, ValueError) as e:
            logger.error("Cannot set up simulation for %s: %s", config.robot_name, e)
            return False

        if self.initial_q is not None:
            for handle, q in zip(handles, self.initial_q):
                self.data.qpos[handle.qpos_adr] = q
        mujoco.mj_forward(self.model, self.data)

        self.controller = MultiTaskPriorityController(chain, config.solver, telemetry=self.telemetry)
        if not self.controller.init(handles, config.gains):
            return False
        self.controller.on_start(TimeStamp(0.0))

        # Requests issued before the controller existed
        for request in self._pending:
            self.controller.command_configuration(request)
        self._pending.clear()

        self.physics_substeps = max(1, int(round(self.base_dt / self.model.opt.timestep)))

        if self.visualize:
            from ..visualization.mujoco_viewer import MuJoCoVisualizer
            self.visualizer = MuJoCoVisualizer(self.model, self.data, self.camera_config)
            if not self.visualizer.initialize():
                logger.warning("Visualizer failed to start; running headless")
                self.visualizer = None
        return True

    def request_configuration(self, request: TaskConfigurationRequest) -> bool:
        """
        Forward a task configuration request to the controller.

        Before initialize() the request is queued and its validation result
        is not known yet, so True is returned.
        """
        if self.controller is None:
            self._pending.append(request)
            return True
        return self.controller.command_configuration(request)

    def loop_iteration(self, elapsed: float):
        self.execute_task('controller', elapsed)
        self.execute_task('telemetry')

    def controller_tick(self, elapsed: float) -> TickOutput:
        output = self.controller.on_tick(TimeStamp(elapsed), self.task_period('controller'))
        for _ in range(self.physics_substeps):
            mujoco.mj_step(self.model, self.data)
        return output

    def telemetry_tick(self) -> Optional[TickOutput]:
        output = self.telemetry.get_latest()
        if output is None:
            return None
        self.telemetry_log.append(output)
        if self.visualizer is not None:
            self.visualizer.update(output)
        return output

    def should_continue(self, elapsed: float, duration_s: Optional[float]) -> bool:
        if self.visualizer is not None and not self.visualizer.is_running():
            return False
        return super().should_continue(elapsed, duration_s)

    def cleanup(self):
        if self.visualizer is not None:
            self.visualizer.shutdown()
