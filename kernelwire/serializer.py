"""Wire framing and signing of kernel protocol messages."""

from __future__ import annotations

import hashlib
import hmac
import json
from collections import deque
from typing import Any, Iterable

from kernelwire.messages import Message, PubMessage

DELIMITER = b"<IDS|MSG>"

_Frame = bytes


class DeserializationError(ValueError):
    """Raised when a list of wire frames cannot be turned into a message."""


def _as_bytes(value: bytes | bytearray | memoryview | str) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


class Authenticator:
    """Signs and verifies messages with an HMAC over their four JSON parts.

    With an empty key, messages are neither signed nor checked: the signature
    is empty and every signature verifies.
    """

    def __init__(self, scheme: str = "hmac-sha256", key: str | bytes = "") -> None:
        prefix, _, digest = scheme.partition("-")
        if prefix != "hmac" or not digest:
            raise ValueError(f"unsupported signature scheme: {scheme!r}")
        try:
            hashlib.new(digest)
        except ValueError as exc:
            raise ValueError(f"unsupported signature scheme: {scheme!r}") from exc
        self.scheme = scheme
        self._digest = digest
        self._key = _as_bytes(key)

    def sign(self, header: bytes, parent_header: bytes, metadata: bytes, content: bytes) -> str:
        """Return the hexadecimal signature of the four message parts."""
        if not self._key:
            return ""
        mac = hmac.new(self._key, digestmod=self._digest)
        for part in (header, parent_header, metadata, content):
            mac.update(_as_bytes(part))
        return mac.hexdigest()

    def verify(
        self,
        signature: bytes | str,
        header: bytes,
        parent_header: bytes,
        metadata: bytes,
        content: bytes,
    ) -> bool:
        """Return True if ``signature`` matches the four message parts."""
        if not self._key:
            return True
        expected = self.sign(header, parent_header, metadata, content).encode("ascii")
        return hmac.compare_digest(expected, _as_bytes(signature))


def _encode_json(value: Any) -> bytes:
    text = json.dumps(value, separators=(",", ":"), sort_keys=True, ensure_ascii=False)
    return text.encode("utf-8")


def _decode_json(frame: bytes, part: str) -> Any:
    try:
        return json.loads(frame.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise DeserializationError(f"invalid JSON in message {part}") from exc


def _serialize_base(msg: Message | PubMessage, auth: Authenticator) -> list[_Frame]:
    parts = [
        _encode_json(msg.header),
        _encode_json(msg.parent_header),
        _encode_json(msg.metadata),
        _encode_json(msg.content),
    ]
    signature = auth.sign(*parts).encode("ascii")
    return [signature, *parts, *(_as_bytes(buffer) for buffer in msg.buffers)]


def _deserialize_base(frames: deque[_Frame], auth: Authenticator) -> dict[str, Any]:
    if len(frames) < 5:
        raise DeserializationError("message is missing signature or JSON frames")
    signature, header, parent_header, metadata, content = (frames.popleft() for _ in range(5))
    data = {
        "header": _decode_json(header, "header"),
        "parent_header": _decode_json(parent_header, "parent header"),
        "metadata": _decode_json(metadata, "metadata"),
        "content": _decode_json(content, "content"),
        "buffers": list(frames),
    }
    frames.clear()
    if not auth.verify(signature, header, parent_header, metadata, content):
        raise DeserializationError("Signatures don't match")
    return data


def serialize(msg: Message, auth: Authenticator) -> list[bytes]:
    """Turn a message into wire frames: identities, delimiter, signature, parts, buffers."""
    frames = [_as_bytes(identity) for identity in msg.identities]
    frames.append(DELIMITER)
    frames.extend(_serialize_base(msg, auth))
    return frames


def deserialize(frames: Iterable[bytes], auth: Authenticator) -> Message:
    """Rebuild a message from wire frames, checking its signature."""
    queue = deque(_as_bytes(frame) for frame in frames)
    if not queue:
        raise DeserializationError("Delimiter not present in message")
    identities: list[bytes] = []
    frame = queue.popleft()
    while frame != DELIMITER and queue:
        identities.append(frame)
        frame = queue.popleft()
    if not queue:
        raise DeserializationError("Delimiter not present in message")
    return Message(identities=identities, **_deserialize_base(queue, auth))


def serialize_iopub(msg: PubMessage, auth: Authenticator) -> list[bytes]:
    """Turn an iopub message into wire frames: topic, delimiter, signature, parts, buffers."""
    return [msg.topic.encode("utf-8"), DELIMITER, *_serialize_base(msg, auth)]


def deserialize_iopub(frames: Iterable[bytes], auth: Authenticator) -> PubMessage:
    """Rebuild an iopub message from wire frames, checking its signature."""
    queue = deque(_as_bytes(frame) for frame in frames)
    if len(queue) < 2:
        raise DeserializationError("iopub message is missing its topic or delimiter")
    topic = queue.popleft().decode("utf-8", errors="replace")
    queue.popleft()
    return PubMessage(topic=topic, **_deserialize_base(queue, auth))