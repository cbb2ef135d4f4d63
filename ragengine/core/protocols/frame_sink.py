"""Frame sink protocol for dependency injection."""
from typing import Protocol, runtime_checkable

from ..models.frame import Frame


@runtime_checkable
class FrameSinkProtocol(Protocol):
    """Ordered downstream channel with a per-message byte ceiling."""

    async def send_frame(self, frame: Frame) -> None:
        """Send one frame.

        Raises:
            TransportError: The frame was rejected.
        """
        ...
