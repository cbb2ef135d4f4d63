import json
import math

import pytest

from ragengine.core.errors import TransportError
from ragengine.core.models.frame import Frame
from ragengine.core.services import chunked_transport
from ragengine.core.services.chunked_transport import (
    TRUNCATION_MARKER,
    ChunkedTransport,
    FrameAssembler,
    truncate_utf8,
)

from conftest import FlakySink, RecordingSink


def reassemble(frames):
    return b"".join(f.payload for f in frames).decode("utf-8")


class TestSplit:

    @pytest.fixture
    def transport(self):
        return ChunkedTransport(max_frame_bytes=950, bytes_per_second=0)

    def test_large_answer(self, transport):
        payload = "".join(f"line {i:05d} of a long answer\n" for i in range(4000))[:100_000]
        assert len(payload) == 100_000

        frames = transport.split("msg-1", payload)

        assert len(frames) >= math.ceil(100_000 / 950)
        assert [f.sequence_index for f in frames] == list(range(len(frames)))
        assert [f.is_final for f in frames].count(True) == 1
        assert frames[-1].is_final
        assert all(len(f.encode()) <= 950 for f in frames)
        assert reassemble(frames) == payload

    def test_multibyte_characters_not_split(self, transport):
        payload = "héllo 世界 🎉 தமிழ் مرحبا " * 300

        frames = transport.split("msg-2", payload, max_frame_bytes=120)

        assert all(len(f.encode()) <= 120 for f in frames)
        for frame in frames:
            frame.payload.decode("utf-8")
        assert reassemble(frames) == payload

    def test_empty_payload_single_final_frame(self, transport):
        [frame] = transport.split("msg-3", "")
        assert frame.is_final
        assert frame.payload == b""
        assert frame.sequence_index == 0

    def test_envelope_format(self, transport):
        [frame] = transport.split("msg-4", "hi \"there\"")
        message = json.loads(frame.encode())
        assert message == {
            "v": 2,
            "type": "chat",
            "mid": "msg-4",
            "idx": 0,
            "fin": True,
            "pld": {"text": "hi \"there\""},
        }
        assert Frame.decode(frame.encode()) == frame

    def test_ceiling_too_small(self, transport):
        with pytest.raises(ValueError):
            transport.split("msg-5", "abc", max_frame_bytes=10)


class TestTruncation:

    def test_oversized_payload_truncated_with_marker(self):
        transport = ChunkedTransport(max_answer_bytes=100, bytes_per_second=0)
        payload = transport.prepare_payload("x" * 500)
        assert payload.endswith(TRUNCATION_MARKER)
        assert len(payload.encode("utf-8")) <= 100

    def test_truncation_keeps_whole_code_points(self):
        text = truncate_utf8("é" * 100, 51)
        assert text.endswith(TRUNCATION_MARKER)
        assert len(text.encode("utf-8")) <= 51

    def test_small_payload_untouched(self):
        assert truncate_utf8("fine", 100) == "fine"


class TestSend:

    async def test_frames_delivered_in_order(self):
        transport = ChunkedTransport(max_frame_bytes=100, bytes_per_second=0)
        sink = RecordingSink()
        payload = "The refund window is 30 days. " * 20

        message_id = await transport.send("msg-a", payload, sink)

        assert message_id == "msg-a"
        assert [f.sequence_index for f in sink.frames] == list(range(len(sink.frames)))
        assert reassemble(sink.frames) == payload

    async def test_retry_restarts_with_fresh_id(self):
        transport = ChunkedTransport(max_frame_bytes=100, bytes_per_second=0)
        sink = FlakySink(failures=1, fail_at_index=2)
        payload = "The refund window is 30 days. " * 20

        message_id = await transport.send("msg-b", payload, sink)

        assert message_id != "msg-b"
        retried = [f for f in sink.frames if f.message_id == message_id]
        assert [f.sequence_index for f in retried] == list(range(len(retried)))
        assert reassemble(retried) == payload

    async def test_second_failure_raises(self):
        transport = ChunkedTransport(max_frame_bytes=100, bytes_per_second=0)
        sink = FlakySink(failures=2)

        with pytest.raises(TransportError):
            await transport.send("msg-c", "hello", sink)

    async def test_pacing_skips_final_frame(self, monkeypatch):
        delays = []

        async def fake_sleep(seconds):
            delays.append(seconds)

        monkeypatch.setattr(chunked_transport.asyncio, "sleep", fake_sleep)
        transport = ChunkedTransport(max_frame_bytes=100, bytes_per_second=100)
        sink = RecordingSink()

        await transport.send("msg-d", "abcdefghij" * 20, sink)

        assert len(sink.frames) > 1
        assert len(delays) == len(sink.frames) - 1
        assert all(0 < d <= 1.0 for d in delays)


class TestFrameAssembler:

    def test_out_of_order_frames(self):
        transport = ChunkedTransport(max_frame_bytes=80, bytes_per_second=0)
        frames = transport.split("msg-e", "ordered delivery " * 10)
        assembler = FrameAssembler()

        results = [assembler.accept(f) for f in reversed(frames)]

        assert results[:-1] == [None] * (len(frames) - 1)
        assert results[-1] == "ordered delivery " * 10
