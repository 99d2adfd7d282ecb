"""
Abstract visualizer interface.
Control loop doesn't depend on visualization!
"""

from abc import ABC, abstractmethod

from ..core.contracts import TickOutput


class Visualizer(ABC):
    """Abstract base class for visualizers."""

    @abstractmethod
    def initialize(self) -> bool:
        """Initialize visualizer."""
        pass

    @abstractmethod
    def update(self, output: TickOutput) -> None:
        """Update visualization with the latest tick output."""
        pass

    @abstractmethod
    def is_running(self) -> bool:
        """Check if visualizer is still active."""
        pass

    @abstractmethod
    def shutdown(self) -> None:
        """Shutdown visualizer."""
        pass
