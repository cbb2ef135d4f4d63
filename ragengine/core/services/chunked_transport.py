"""Chunked transport - ordered, size-bounded, paced frame delivery."""

import asyncio
import logging
import time
import uuid
import weakref
from typing import Optional

from ..errors import TransportError
from ..models.frame import Frame, encode_envelope
from ..protocols.frame_sink import FrameSinkProtocol

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "\n\n[... response truncated]"


def new_message_id() -> str:
    return f"msg-{uuid.uuid4().hex[:16]}"


def truncate_utf8(text: str, max_bytes: int, marker: str = TRUNCATION_MARKER) -> str:
    """Cut text so that text + marker fits max_bytes, on a code-point boundary."""
    if len(text.encode("utf-8")) <= max_bytes:
        return text
    budget = max_bytes - len(marker.encode("utf-8"))
    if budget <= 0:
        raise ValueError("max_bytes is smaller than the truncation marker")
    head = text.encode("utf-8")[:budget].decode("utf-8", errors="ignore")
    return head + marker


class ChunkedTransport:
    """Splits a message into frames that fit the sink's byte ceiling.

    Each frame's serialized envelope is at most ``max_frame_bytes``. Frames go
    out in sequence order with fixed-rate pacing. If the sink rejects a frame
    the whole message is resent once, from frame 0, under a fresh message id.
    """

    def __init__(
        self,
        max_frame_bytes: int = 950,
        max_answer_bytes: int = 256 * 1024,
        bytes_per_second: int = 6000,
        max_attempts: int = 2,
    ):
        """Initialize transport.

        Args:
            max_frame_bytes: Ceiling for one serialized frame.
            max_answer_bytes: Payloads above this are truncated with a marker.
            bytes_per_second: Pacing rate; 0 disables pacing.
            max_attempts: Whole-message send attempts.
        """
        self._max_frame_bytes = max_frame_bytes
        self._max_answer_bytes = max_answer_bytes
        self._bytes_per_second = bytes_per_second
        self._max_attempts = max_attempts
        self._sink_locks: "weakref.WeakKeyDictionary[object, asyncio.Lock]" = (
            weakref.WeakKeyDictionary()
        )

    def _lock_for(self, sink: FrameSinkProtocol) -> asyncio.Lock:
        lock = self._sink_locks.get(sink)
        if lock is None:
            lock = asyncio.Lock()
            self._sink_locks[sink] = lock
        return lock

    def prepare_payload(self, payload: str) -> str:
        """Apply the total size ceiling."""
        size = len(payload.encode("utf-8"))
        if size <= self._max_answer_bytes:
            return payload
        logger.warning(
            f"Payload {size} bytes exceeds ceiling {self._max_answer_bytes}, truncating"
        )
        return truncate_utf8(payload, self._max_answer_bytes)

    def split(self, message_id: str, payload: str, max_frame_bytes: Optional[int] = None) -> list[Frame]:
        """Split payload into frames.

        Args:
            message_id: Message id carried by every frame.
            payload: Text to send.
            max_frame_bytes: Override of the frame ceiling.

        Returns:
            Frames in sequence order; the last one is final.

        Raises:
            ValueError: Ceiling too small for a single character.
        """
        limit = max_frame_bytes or self._max_frame_bytes
        pieces: list[str] = []
        pos = 0

        while pos < len(payload) or not pieces:
            index = len(pieces)
            if len(encode_envelope(message_id, index, False, "")) > limit:
                raise ValueError(f"Frame envelope alone exceeds {limit} bytes")
            if pos >= len(payload):
                pieces.append("")
                break

            # Largest prefix whose envelope fits; size is monotonic in length.
            lo, hi = 0, min(len(payload) - pos, limit)
            while lo < hi:
                mid = (lo + hi + 1) // 2
                encoded = encode_envelope(message_id, index, False, payload[pos : pos + mid])
                if len(encoded) <= limit:
                    lo = mid
                else:
                    hi = mid - 1
            if lo == 0:
                raise ValueError(f"Character at offset {pos} does not fit a {limit}-byte frame")

            pieces.append(payload[pos : pos + lo])
            pos += lo

        last = len(pieces) - 1
        return [
            Frame(
                message_id=message_id,
                sequence_index=i,
                is_final=i == last,
                payload=piece.encode("utf-8"),
            )
            for i, piece in enumerate(pieces)
        ]

    async def _send_frames(self, frames: list[Frame], sink: FrameSinkProtocol) -> None:
        for frame in frames:
            started = time.monotonic()
            await sink.send_frame(frame)
            logger.debug(
                f"Sent frame {frame.sequence_index + 1}/{len(frames)} of {frame.message_id}"
            )
            if frame.is_final or not self._bytes_per_second:
                continue
            minimum = len(frame.encode()) / self._bytes_per_second
            remaining = minimum - (time.monotonic() - started)
            if remaining > 0:
                await asyncio.sleep(remaining)

    async def send(
        self,
        message_id: str,
        payload: str,
        sink: FrameSinkProtocol,
        max_frame_bytes: Optional[int] = None,
    ) -> str:
        """Send payload as a sequence of frames.

        Args:
            message_id: Id for the first attempt.
            payload: UTF-8 text.
            sink: Ordered downstream channel.
            max_frame_bytes: Override of the frame ceiling.

        Returns:
            Message id of the successful attempt.

        Raises:
            TransportError: Every attempt was rejected.
        """
        payload = self.prepare_payload(payload)

        async with self._lock_for(sink):
            last_error: TransportError | None = None
            for attempt in range(1, self._max_attempts + 1):
                frames = self.split(message_id, payload, max_frame_bytes)
                try:
                    await self._send_frames(frames, sink)
                except TransportError as e:
                    last_error = e
                    logger.warning(
                        f"Send of {message_id} failed on attempt {attempt}/{self._max_attempts}: {e}"
                    )
                    message_id = new_message_id()
                    continue
                logger.info(f"Delivered {message_id} in {len(frames)} frame(s)")
                return message_id

        raise TransportError(
            f"Delivery failed after {self._max_attempts} attempts: {last_error}"
        ) from last_error


class FrameAssembler:
    """Receiver-side reassembly of frames into complete messages."""

    def __init__(self):
        self._pending: dict[str, dict[int, bytes]] = {}
        self._final_index: dict[str, int] = {}

    def accept(self, frame: Frame) -> Optional[str]:
        """Add a frame; return the full text once the message is complete."""
        parts = self._pending.setdefault(frame.message_id, {})
        parts[frame.sequence_index] = frame.payload
        if frame.is_final:
            self._final_index[frame.message_id] = frame.sequence_index

        last = self._final_index.get(frame.message_id)
        if last is None or len(parts) != last + 1 or any(i not in parts for i in range(last + 1)):
            return None

        del self._pending[frame.message_id]
        del self._final_index[frame.message_id]
        return b"".join(parts[i] for i in range(last + 1)).decode("utf-8")

    def discard(self, message_id: str) -> None:
        self._pending.pop(message_id, None)
        self._final_index.pop(message_id, None)
