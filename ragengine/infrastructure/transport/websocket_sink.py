import asyncio
import logging
import time

import websocket

from ragengine.core.errors import FrameRejectedError, TransportError
from ragengine.core.models.frame import Frame

logger = logging.getLogger(__name__)


class WebSocketFrameSink:
    """Frame sink writing JSON envelopes to a WebSocket connection."""

    def __init__(self, url: str, max_frame_bytes: int = 950, connect_timeout: float = 30.0):
        """Initialize sink.

        Args:
            url: WebSocket URL.
            max_frame_bytes: Byte ceiling enforced per frame.
            connect_timeout: Seconds to keep retrying the initial connect.
        """
        self._url = url
        self._max_frame_bytes = max_frame_bytes
        self._connect_timeout = connect_timeout
        self._ws: websocket.WebSocket | None = None

    def connect(self) -> None:
        ws = websocket.WebSocket()
        deadline = time.time() + self._connect_timeout
        while True:
            try:
                ws.connect(self._url)
                break
            except OSError as e:
                if time.time() >= deadline:
                    raise TransportError(f"Cannot connect to {self._url}: {e}") from e
                time.sleep(1)
        self._ws = ws
        logger.info(f"Frame sink connected: {self._url}")

    def close(self) -> None:
        if self._ws is not None:
            self._ws.close()
            self._ws = None

    def _send(self, data: bytes) -> None:
        if self._ws is None:
            self.connect()
        try:
            self._ws.send(data.decode("utf-8"))
        except (websocket.WebSocketException, OSError) as e:
            self.close()
            raise FrameRejectedError(f"WebSocket send failed: {e}") from e

    async def send_frame(self, frame: Frame) -> None:
        data = frame.encode()
        if len(data) > self._max_frame_bytes:
            raise FrameRejectedError(
                f"Frame {frame.sequence_index} is {len(data)} bytes, limit {self._max_frame_bytes}"
            )
        await asyncio.to_thread(self._send, data)
