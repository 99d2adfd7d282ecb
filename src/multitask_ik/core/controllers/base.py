"""
Abstract base class for periodic joint-space controllers.

This module defines the capability boundary every controller plugged into
the control loop implements: one-time init, start, and a periodic tick.
"""

from abc import ABC, abstractmethod
from typing import Mapping, Optional, Sequence

from ..contracts import TickOutput, TimeStamp
from ..pid import PIDGains
from ..ports import JointHandle


class BaseJointController(ABC):
    """
    Abstract base class for joint controllers driven by a periodic tick.

    Lifecycle:
    - init: bind joint handles and gains once; returns False to refuse activation
    - on_start: latch the measured state as the initial desired state
    - on_tick: read sensors, compute and send commands, return the tick output

    Example usage:
        controller = MultiTaskPriorityController(chain)
        if controller.init(handles, gains):
            controller.on_start(TimeStamp(0.0))
            output = controller.on_tick(TimeStamp(t), dt)
    """

    def __init__(self):
        self.handles: Sequence[JointHandle] = ()
        self.initialized = False
        self.started = False

        # Output of the last tick (set by on_tick)
        self.last_output: Optional[TickOutput] = None

    @abstractmethod
    def init(self, handles: Sequence[JointHandle], gains: Mapping[str, PIDGains]) -> bool:
        """
        Bind hardware handles and per-joint gains.

        Args:
            handles: One handle per joint, in chain order
            gains: PID gains keyed by joint name

        Returns:
            True if the controller can be started, False otherwise
        """
        pass

    @abstractmethod
    def on_start(self, time: TimeStamp) -> None:
        """
        Prepare for the first tick.

        Args:
            time: Start time
        """
        pass

    @abstractmethod
    def on_tick(self, time: TimeStamp, elapsed: float) -> TickOutput:
        """
        Run one control period.

        Args:
            time: Tick time
            elapsed: Duration of the period since the previous tick (seconds)

        Returns:
            TickOutput with commands and telemetry
        """
        pass

    def get_last_output(self) -> Optional[TickOutput]:
        """
        Get the output of the most recent tick.

        Returns:
            Last TickOutput or None before the first tick
        """
        return self.last_output
