from unittest.mock import Mock

import pytest
import websocket

from ragengine.core.errors import FrameRejectedError
from ragengine.core.models.frame import Frame
from ragengine.infrastructure.transport.websocket_sink import WebSocketFrameSink


def frame(text: str) -> Frame:
    return Frame(message_id="msg-1", sequence_index=0, is_final=True, payload=text.encode("utf-8"))


class TestWebSocketFrameSink:

    @pytest.fixture
    def sink(self):
        sink = WebSocketFrameSink("ws://localhost:9000/chat", max_frame_bytes=200)
        sink._ws = Mock()
        return sink

    async def test_sends_envelope_text(self, sink):
        ws = sink._ws
        await sink.send_frame(frame("30 days"))

        sent = ws.send.call_args.args[0]
        assert Frame.decode(sent) == frame("30 days")

    async def test_oversize_frame_rejected(self, sink):
        with pytest.raises(FrameRejectedError):
            await sink.send_frame(frame("x" * 500))
        sink._ws.send.assert_not_called()

    async def test_send_failure_mapped(self, sink):
        ws = sink._ws
        ws.send.side_effect = websocket.WebSocketConnectionClosedException("closed")

        with pytest.raises(FrameRejectedError):
            await sink.send_frame(frame("30 days"))
        ws.close.assert_called_once()
        assert sink._ws is None
