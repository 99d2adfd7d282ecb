"""
MuJoCo-specific visualizer.
Wraps MuJoCo viewer as optional component with asynchronous rendering.

The passive viewer runs in a separate thread and renders at display refresh rate (~60 Hz).
Task markers are drawn as small spheres in the viewer's user scene, one per
active task, at the current position of the task's link.
"""

from typing import Optional

import mujoco
import mujoco.viewer
import numpy as np

from ..core.contracts import TaskMarker, TickOutput
from .visualizer import Visualizer

MARKER_RADIUS = 0.01
MARKER_RGBA = np.array([0.0, 1.0, 0.0, 1.0])


class MuJoCoVisualizer(Visualizer):
    """
    MuJoCo visualization implementation with asynchronous rendering.

    Uses MuJoCo's passive viewer which runs rendering in a separate thread.
    The update() method is non-blocking and can be called at telemetry rate
    without impacting control loop performance.
    """

    def __init__(self, model, data, camera_config: Optional[dict] = None):
        """
        Args:
            model: MuJoCo model
            data: MuJoCo data
            camera_config: Camera position settings (dict with 'distance', 'elevation', 'azimuth', 'lookat')
        """
        self.model = model
        self.data = data
        self.camera_config = camera_config or {}
        self.viewer = None
        self.viewer_context = None
        self.last_marker_id = None

    def initialize(self) -> bool:
        """
        Launch MuJoCo passive viewer.

        Returns:
            True if successful, False otherwise
        """
        try:
            self.viewer_context = mujoco.viewer.launch_passive(
                self.model, self.data
            )
            self.viewer = self.viewer_context.__enter__()
            self._setup_camera()
            print("✓ MuJoCo viewer initialized (asynchronous rendering enabled)")
            return True
        except Exception as e:
            print(f"Failed to initialize MuJoCo viewer: {e}")
            return False

    def update(self, output: TickOutput) -> None:
        """
        Draw the output's task markers and sync the viewer (non-blocking).

        Args:
            output: Latest tick output
        """
        if self.viewer is None:
            return
        with self.viewer.lock():
            self.draw_markers(output.markers)
        self.viewer.sync()

    def draw_markers(self, markers) -> None:
        """Replace the user scene geoms with one sphere per marker."""
        scene = self.viewer.user_scn
        count = min(len(markers), scene.maxgeom)
        for i in range(count):
            marker: TaskMarker = markers[i]
            mujoco.mjv_initGeom(
                scene.geoms[i],
                type=mujoco.mjtGeom.mjGEOM_SPHERE,
                size=np.array([MARKER_RADIUS, 0.0, 0.0]),
                pos=np.asarray(marker.position, dtype=float),
                mat=np.eye(3).flatten(),
                rgba=MARKER_RGBA,
            )
            self.last_marker_id = marker.marker_id
        scene.ngeom = count

    def is_running(self) -> bool:
        """
        Check if viewer window is open.

        Returns:
            True if window is open, False otherwise
        """
        if self.viewer is None:
            return False
        return self.viewer.is_running()

    def shutdown(self) -> None:
        """Close viewer and clean up resources."""
        if self.viewer_context is not None:
            self.viewer_context.__exit__(None, None, None)
            self.viewer_context = None
            self.viewer = None
            print("✓ MuJoCo viewer closed")

    def _setup_camera(self):
        """Configure camera position from camera_config."""
        if self.viewer is not None:
            self.viewer.cam.distance = self.camera_config.get('distance', 2.0)
            self.viewer.cam.elevation = self.camera_config.get('elevation', -20)
            self.viewer.cam.azimuth = self.camera_config.get('azimuth', 135)

            lookat = self.camera_config.get('lookat', None)
            if lookat is not None and len(lookat) == 3:
                self.viewer.cam.lookat[:] = lookat
