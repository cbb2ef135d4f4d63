"""Frame model for chunked delivery."""
import json
from dataclasses import dataclass

ENVELOPE_VERSION = 2


def encode_envelope(message_id: str, sequence_index: int, is_final: bool, text: str) -> bytes:
    """Serialize one frame envelope as compact UTF-8 JSON."""
    message = {
        "v": ENVELOPE_VERSION,
        "type": "chat",
        "mid": message_id,
        "idx": sequence_index,
        "fin": is_final,
        "pld": {"text": text},
    }
    return json.dumps(message, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


@dataclass(frozen=True)
class Frame:
    """One size-bounded piece of a message.

    ``payload`` always holds complete UTF-8 code points.
    """
    message_id: str
    sequence_index: int
    is_final: bool
    payload: bytes

    @property
    def text(self) -> str:
        return self.payload.decode("utf-8")

    def encode(self) -> bytes:
        return encode_envelope(self.message_id, self.sequence_index, self.is_final, self.text)

    @classmethod
    def decode(cls, data: bytes | str) -> "Frame":
        message = json.loads(data)
        if message.get("v") != ENVELOPE_VERSION or message.get("type") != "chat":
            raise ValueError(f"Unexpected frame envelope: v={message.get('v')} type={message.get('type')}")
        return cls(
            message_id=message["mid"],
            sequence_index=int(message["idx"]),
            is_final=bool(message["fin"]),
            payload=message["pld"]["text"].encode("utf-8"),
        )
