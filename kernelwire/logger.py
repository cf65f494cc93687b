"""Chainable loggers for kernel protocol traffic."""

from __future__ import annotations

import json
import sys
import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import IO, Any

from kernelwire.messages import Message, PubMessage

_INVALID_ID = "invalid UTF8"


class LogChannel(Enum):
    """Channel a logged message travelled on."""

    SHELL = "shell"
    CONTROL = "control"
    STDIN = "stdin"
    HEARTBEAT = "heartbeat"


class LogLevel(Enum):
    """How much of a message is written to the log."""

    MSG_TYPE = 0
    CONTENT = 1
    FULL = 2


def is_utf8_valid(data: bytes | str) -> bool:
    """Return True if ``data`` is a complete, well-formed UTF-8 sequence."""
    if isinstance(data, str):
        try:
            data.encode("utf-8")
        except UnicodeEncodeError:
            return False
        return True
    try:
        bytes(data).decode("utf-8")
    except UnicodeDecodeError:
        return False
    return True


def _identity_text(identity: bytes | str) -> str:
    if not is_utf8_valid(identity):
        return _INVALID_ID
    if isinstance(identity, str):
        return identity
    return bytes(identity).decode("utf-8")


def _dump(value: Any) -> str:
    return json.dumps(value, indent=4, sort_keys=True, ensure_ascii=False)


class Logger(ABC):
    """Interface of every logger."""

    @abstractmethod
    def log_received_message(self, message: Message, channel: LogChannel) -> None:
        """Log a message received on ``channel``."""

    @abstractmethod
    def log_sent_message(self, message: Message, channel: LogChannel) -> None:
        """Log a message sent on ``channel``."""

    @abstractmethod
    def log_iopub_message(self, message: PubMessage) -> None:
        """Log a message published on iopub."""

    @abstractmethod
    def log_message(
        self,
        socket_info: str,
        header: Any,
        parent_header: Any,
        metadata: Any,
        content: Any,
    ) -> None:
        """Log the parts of a message under a description of its socket."""


class NullLogger(Logger):
    """A logger that discards everything."""

    def log_received_message(self, message: Message, channel: LogChannel) -> None:
        return None

    def log_sent_message(self, message: Message, channel: LogChannel) -> None:
        return None

    def log_iopub_message(self, message: PubMessage) -> None:
        return None

    def log_message(self, socket_info, header, parent_header, metadata, content) -> None:
        return None


class CommonLogger(Logger):
    """Formats messages by level, writes them, then forwards to the next logger."""

    def __init__(self, level: LogLevel, next_logger: Logger | None = None) -> None:
        self.level = level
        self.next_logger: Logger = next_logger if next_logger is not None else NullLogger()
        self._lock = threading.Lock()

    def _log_direction(self, direction: str, message: Message, channel: LogChannel) -> None:
        identity = _identity_text(message.identities[0])
        socket_info = f"KERNEL: {direction} message on {channel.value} - {identity}"
        self.log_message(
            socket_info,
            message.header,
            message.parent_header,
            message.metadata,
            message.content,
        )

    def log_received_message(self, message: Message, channel: LogChannel) -> None:
        self._log_direction("received", message, channel)

    def log_sent_message(self, message: Message, channel: LogChannel) -> None:
        self._log_direction("sent", message, channel)

    def log_iopub_message(self, message: PubMessage) -> None:
        socket_info = f"KERNEL: sent message on iopub - {message.topic}"
        self.log_message(
            socket_info,
            message.header,
            message.parent_header,
            message.metadata,
            message.content,
        )

    def log_message(self, socket_info, header, parent_header, metadata, content) -> None:
        if not isinstance(header, dict):
            raise TypeError("message header must be a JSON object")
        entry: dict[str, Any] = {"msg_type": header.get("msg_type", "")}
        if self.level is LogLevel.CONTENT:
            entry["content"] = content
        elif self.level is not LogLevel.MSG_TYPE:
            entry["header"] = header
            entry["parent_header"] = parent_header
            entry["metadata"] = metadata
            entry["content"] = content
        self.write(socket_info, entry)
        self.next_logger.log_message(socket_info, header, parent_header, metadata, content)

    @abstractmethod
    def write(self, socket_info: str, message: dict[str, Any]) -> None:
        """Write one formatted log entry."""


class ConsoleLogger(CommonLogger):
    """Writes log entries to a text stream, standard output by default."""

    def __init__(
        self,
        level: LogLevel,
        next_logger: Logger | None = None,
        stream: IO[str] | None = None,
    ) -> None:
        super().__init__(level, next_logger)
        self.stream = stream

    def write(self, socket_info: str, message: dict[str, Any]) -> None:
        stream = self.stream if self.stream is not None else sys.stdout
        with self._lock:
            stream.write(f"{socket_info}\n{_dump(message)}\n")
            stream.flush()


class FileLogger(CommonLogger):
    """Appends log entries as JSON documents to a file."""

    def __init__(self, level: LogLevel, file_name: str, next_logger: Logger | None = None) -> None:
        super().__init__(level, next_logger)
        self.file_name = file_name

    def write(self, socket_info: str, message: dict[str, Any]) -> None:
        record = {"info": socket_info, "message": message}
        with self._lock, open(self.file_name, "a", encoding="utf-8") as out:
            out.write(_dump(record) + "\n")


def make_console_logger(log_level: LogLevel, next_logger: Logger | None = None) -> Logger:
    """Build a logger writing to standard output."""
    return ConsoleLogger(log_level, next_logger)


def make_file_logger(
    log_level: LogLevel, file_name: str, next_logger: Logger | None = None
) -> Logger:
    """Build a logger appending to ``file_name``."""
    return FileLogger(log_level, file_name, next_logger)