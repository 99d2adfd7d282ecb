"""
handlers.py
Thread-safe data handlers between the control tick and other threads.

These handlers safely exchange data between:
- Configuration callbacks (running in a transport thread)
- Control loop tick (running in the real-time thread)
- Telemetry publishers (running in a transport thread)
"""

import threading
from typing import Optional

from .contracts import SolverState, TaskList, TickOutput


class SolverStateSlot:
    """
    Holds the single shared SolverState.

    The state is immutable; writers replace it whole under the lock, so a
    reader always sees either the old or the new task list, never a mix.
    """

    def __init__(self, state: Optional[SolverState] = None):
        self._lock = threading.Lock()
        self._state = state if state is not None else SolverState()

    def snapshot(self) -> SolverState:
        """Called by the control tick at the start of a solve."""
        with self._lock:
            return self._state

    def install(self, task_list: TaskList) -> SolverState:
        """
        Called by the configuration path to install a new task list.

        All tasks start pending and the command flag is armed.

        Returns:
            The installed state
        """
        state = SolverState.armed(task_list)
        with self._lock:
            self._state = state
        return state

    def compare_and_install(self, expected: SolverState, new: SolverState) -> bool:
        """
        Called by the control tick to commit convergence updates.

        Args:
            expected: State the tick solved against
            new: Updated state

        Returns:
            True if committed, False if another install happened in between
            (the update belonged to a superseded task list and is dropped)
        """
        with self._lock:
            if self._state is not expected:
                return False
            self._state = new
            return True

    def deactivate(self) -> None:
        """Clear the command flag and drop the active task list."""
        with self._lock:
            self._state = SolverState()


class TelemetryBuffer:
    """
    Thread-safe handler for publishing tick output.

    Control loop writes every tick output here, a publisher reads and publishes.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._latest: Optional[TickOutput] = None
        self._new_data_available = False

    def update(self, output: TickOutput) -> None:
        """Called by control loop to store the latest tick output."""
        with self._lock:
            self._latest = output
            self._new_data_available = True

    def get_latest(self) -> Optional[TickOutput]:
        """
        Called by publisher to get the latest output.

        Returns:
            Latest tick output if not yet consumed, None otherwise
        """
        with self._lock:
            if not self._new_data_available:
                return None
            self._new_data_available = False
            return self._latest

    def has_new_data(self) -> bool:
        """Check if new data is available for publishing."""
        with self._lock:
            return self._new_data_available
