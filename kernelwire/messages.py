"""Kernel protocol messages and header construction."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

VERSION = (2, 1, 0)
KERNEL_PROTOCOL_VERSION_MAJOR = 5
KERNEL_PROTOCOL_VERSION_MINOR = 3
KERNEL_PROTOCOL_VERSION = f"{KERNEL_PROTOCOL_VERSION_MAJOR}.{KERNEL_PROTOCOL_VERSION_MINOR}"

Json = Any


@dataclass
class Message:
    """A message exchanged on the shell, control or stdin channel."""

    identities: list[bytes] = field(default_factory=list)
    header: Json = field(default_factory=dict)
    parent_header: Json = field(default_factory=dict)
    metadata: Json = field(default_factory=dict)
    content: Json = field(default_factory=dict)
    buffers: list[bytes] = field(default_factory=list)


@dataclass
class PubMessage:
    """A message broadcast on the iopub channel under a topic."""

    topic: str = ""
    header: Json = field(default_factory=dict)
    parent_header: Json = field(default_factory=dict)
    metadata: Json = field(default_factory=dict)
    content: Json = field(default_factory=dict)
    buffers: list[bytes] = field(default_factory=list)


def _format_iso8601(moment: datetime) -> str:
    # The fractional part is the raw microsecond count, without zero padding.
    moment = moment.astimezone(timezone.utc)
    return f"{moment.strftime('%Y-%m-%dT%H:%M:%S')}.{moment.microsecond}Z"


def iso8601_now() -> str:
    """Return the current UTC time as an ISO 8601 string with microseconds."""
    return _format_iso8601(datetime.now(timezone.utc))


def get_protocol_version() -> str:
    """Return the kernel protocol version implemented by this package."""
    return KERNEL_PROTOCOL_VERSION


def _new_guid() -> str:
    return str(uuid.uuid4())


def make_header(msg_type: str, user_name: str, session_id: str) -> dict[str, Any]:
    """Build a fresh message header for the given message type."""
    return {
        "msg_id": _new_guid(),
        "username": user_name,
        "session": session_id,
        "date": iso8601_now(),
        "msg_type": msg_type,
        "version": get_protocol_version(),
    }