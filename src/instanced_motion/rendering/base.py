"""
Base frame consumer interface.

The display side of the shared buffer (a rasterizer, a recorder, a stats
probe) implements this interface. Consumers receive the buffer only while
the display side owns it and must never write to it.
"""

from abc import ABC, abstractmethod
import torch


class BaseFrameConsumer(ABC):
    """
    Abstract base class for display-side buffer consumers.

    Attributes:
        consumer_type: String identifier derived from the class name
    """

    def __init__(self):
        self.consumer_type = self.__class__.__name__.lower().replace('consumer', '')

    @abstractmethod
    def present(
        self,
        positions: torch.Tensor,
        indices: torch.Tensor,
        frame_index: int,
    ) -> None:
        """
        Consume one finished frame.

        Args:
            positions: (V, 4) read-only view of the shared buffer
            indices: (I,) Global Index Array on device
            frame_index: Index of the frame that produced the buffer
        """
        pass

    @abstractmethod
    def cleanup(self):
        """
        Release consumer resources.

        Called once when the run ends, before the buffer is freed.
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(type='{self.consumer_type}')"
