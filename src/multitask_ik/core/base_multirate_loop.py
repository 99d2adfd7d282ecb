"""
base_multirate_loop.py
Base class for multi-rate control loops.

Provides generic infrastructure for:
- Decimation-based task scheduling
- Timing and rate limiting
- Statistics tracking
- Lifecycle management (initialization, run, cleanup)
"""

import time
from abc import ABC, abstractmethod
from typing import Optional, Dict, Any
from loop_rate_limiters import RateLimiter


class BaseMultiRateControlLoop(ABC):
    """
    Abstract base class for multi-rate control loops.

    Handles the generic multi-rate control infrastructure, allowing
    subclasses to focus on domain-specific initialization and task logic.

    The main loop runs at the base (fastest) frequency, with slower tasks
    scheduled using decimation factors. A task named 'controller' is run by
    calling the subclass method 'controller_tick'.
    """

    def __init__(
        self,
        base_frequency_hz: float,
        task_frequencies_hz: Dict[str, float],
        realtime: bool = True,
        config: Optional[Any] = None
    ):
        """
        Initialize multi-rate control loop.

        Args:
            base_frequency_hz: Base loop frequency (fastest rate)
            task_frequencies_hz: Dictionary mapping task names to frequencies
                e.g., {'controller': 500.0, 'telemetry': 50.0}
            realtime: Sleep to hold the base rate; False runs as fast as possible
            config: Optional configuration object
        """
        if base_frequency_hz <= 0:
            raise ValueError(f"base frequency must be positive, got {base_frequency_hz}")

        self.config = config
        self.realtime = realtime

        # Timing configuration
        self.base_frequency_hz = base_frequency_hz
        self.base_dt = 1.0 / self.base_frequency_hz

        # Task configuration
        self.task_frequencies_hz = task_frequencies_hz
        self.task_decimations = {}
        self.task_counters = {}

        # Calculate decimation factors for each task
        for task_name, freq_hz in task_frequencies_hz.items():
            if freq_hz <= 0 or freq_hz > base_frequency_hz:
                raise ValueError(
                    f"task '{task_name}' frequency must be in (0, {base_frequency_hz}] Hz, got {freq_hz}"
                )
            decimation = max(1, int(round(self.base_frequency_hz / freq_hz)))
            self.task_decimations[task_name] = decimation
            self.task_counters[task_name] = 0

        # Loop state
        self.iteration_counter = 0
        self.t_start = None
        self.should_stop = False

    def _print_configuration(self):
        """Print loop configuration."""
        print("="*60)
        print("Multi-Rate Control Loop Configuration")
        print("="*60)
        print(f"Base frequency: {self.base_frequency_hz} Hz")
        for task_name, freq_hz in self.task_frequencies_hz.items():
            decimation = self.task_decimations[task_name]
            print(f"  {task_name}: {freq_hz} Hz (every {decimation} iteration(s))")
        print("="*60)
        print()

    @abstractmethod
    def initialize(self) -> bool:
        """
        Initialize all control components.

        Returns:
            True if initialization successful, False otherwise
        """
        pass

    @abstractmethod
    def cleanup(self):
        """Cleanup resources before shutdown."""
        pass

    def should_continue(self, elapsed: float, duration_s: Optional[float]) -> bool:
        """
        Check if loop should continue running.

        Can be overridden to add custom termination conditions
        (e.g., check if visualizer window is closed).

        Args:
            elapsed: Loop time elapsed since start (seconds)
            duration_s: Target duration (None = run forever)

        Returns:
            True if loop should continue, False to stop
        """
        if self.should_stop:
            return False

        if duration_s is not None and elapsed >= duration_s:
            return False

        return True

    def execute_task(self, task_name: str, *args, **kwargs):
        """
        Execute a task if it's time based on decimation.

        Args:
            task_name: Name of the task (must be in task_frequencies_hz)
            *args, **kwargs: Arguments to pass to task method

        Returns:
            Result of task execution, or None if task not executed
        """
        if task_name not in self.task_decimations:
            raise ValueError(f"Unknown task: {task_name}")

        decimation = self.task_decimations[task_name]

        if self.iteration_counter % decimation == 0:
            # Call the task method (e.g., controller_tick, telemetry_tick)
            method_name = f"{task_name}_tick"
            if hasattr(self, method_name):
                result = getattr(self, method_name)(*args, **kwargs)
                self.task_counters[task_name] += 1
                return result
            else:
                raise NotImplementedError(
                    f"Task method '{method_name}' not implemented"
                )

        return None

    def task_period(self, task_name: str) -> float:
        """Nominal period of a task in seconds."""
        return self.task_decimations[task_name] * self.base_dt

    @abstractmethod
    def loop_iteration(self, elapsed: float):
        """
        Execute one iteration of the control loop.

        Subclasses must implement this to execute tasks based on decimation
        using execute_task().

        Args:
            elapsed: Loop time since start (seconds)
        """
        pass

    def run(self, duration_s: Optional[float] = None) -> bool:
        """
        Run the multi-rate control loop.

        Loop time advances by base_dt per iteration; with realtime=True a
        RateLimiter holds the iterations to the base frequency.

        Args:
            duration_s: Duration to run in seconds (None = run until stopped)

        Returns:
            False if initialization failed, True otherwise
        """
        if not self.initialize():
            print("✗ Initialization failed")
            return False

        self._print_configuration()

        rate = RateLimiter(frequency=self.base_frequency_hz, warn=False) if self.realtime else None
        self.t_start = time.monotonic()
        self.iteration_counter = 0
        self.should_stop = False

        try:
            while True:
                elapsed = self.iteration_counter * self.base_dt

                # Check termination conditions
                if not self.should_continue(elapsed, duration_s):
                    break

                self.loop_iteration(elapsed)
                self.iteration_counter += 1

                if rate is not None:
                    rate.sleep()

        except KeyboardInterrupt:
            print("\nKeyboard interrupt received...")
        finally:
            wall = time.monotonic() - self.t_start
            self.cleanup()
            self.print_statistics(wall)

        return True

    def print_statistics(self, elapsed: float):
        """
        Print execution statistics.

        Args:
            elapsed: Total wall-clock time (seconds)
        """
        print("\n" + "="*60)
        print("Execution Statistics:")
        print(f"  Total time: {elapsed:.2f}s")
        print(f"  Total iterations: {self.iteration_counter}")
        if elapsed > 0:
            print(f"  Average frequency: {self.iteration_counter/elapsed:.1f} Hz")
        print()

        for task_name in self.task_frequencies_hz:
            count = self.task_counters[task_name]
            expected = -(-self.iteration_counter // self.task_decimations[task_name])
            print(f"  {task_name} calls: {count} (expected: {expected})")

        print("="*60)

    def stop(self):
        """Request the loop to stop at the next iteration."""
        self.should_stop = True
