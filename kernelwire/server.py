"""Abstract kernel server, its configuration and control messengers."""

from __future__ import annotations

import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from kernelwire.messages import VERSION, Message, PubMessage

Listener = Callable[[Message], None]
InternalListener = Callable[[Any], Any]


class Channel(Enum):
    """Channel a request arrived on and its replies go back on."""

    SHELL = 0
    CONTROL = 1


@dataclass
class Configuration:
    """Connection settings of a kernel."""

    transport: str = "tcp"
    ip: str = "127.0.0.1"
    control_port: str = ""
    shell_port: str = ""
    stdin_port: str = ""
    iopub_port: str = ""
    hb_port: str = ""
    signature_scheme: str = "hmac-sha256"
    key: str = ""


class ControlMessenger(ABC):
    """Sends internal requests from the control side to the shell side."""

    @abstractmethod
    def send_to_shell(self, message: Any) -> Any:
        """Send a JSON request to the shell side and return its JSON reply."""


class TrivialMessenger(ControlMessenger):
    """Messenger for servers where control and shell share one thread."""

    def __init__(self, server: Server) -> None:
        self.server = server

    def send_to_shell(self, message: Any) -> Any:
        return self.server.notify_internal_listener(message)


class Server(ABC):
    """Transport-independent part of a kernel server.

    Subclasses move messages over the wire; the kernel registers listeners
    that the server notifies when messages arrive.
    """

    def __init__(self) -> None:
        self._shell_listener: Listener | None = None
        self._control_listener: Listener | None = None
        self._stdin_listener: Listener | None = None
        self._internal_listener: InternalListener | None = None

    @abstractmethod
    def get_control_messenger(self) -> ControlMessenger:
        """Return the messenger the control side uses to reach the shell."""

    @abstractmethod
    def send_shell(self, message: Message) -> None:
        """Send a reply on the shell channel."""

    @abstractmethod
    def send_control(self, message: Message) -> None:
        """Send a reply on the control channel."""

    @abstractmethod
    def send_stdin(self, message: Message) -> None:
        """Send an input request on the stdin channel."""

    @abstractmethod
    def publish(self, message: PubMessage, channel: Channel) -> None:
        """Broadcast a message on iopub on behalf of ``channel``."""

    def start(self, message: PubMessage) -> None:
        """Announce the version, then run the server with its start message."""
        version = ".".join(str(part) for part in VERSION)
        print(f"Run with kernelwire {version}", file=sys.stderr)
        self._start(message)

    @abstractmethod
    def _start(self, message: PubMessage) -> None:
        """Run the server, publishing ``message`` first."""

    @abstractmethod
    def abort_queue(self, listener: Listener, polling_interval: int) -> None:
        """Hand every pending shell request to ``listener`` without running it."""

    @abstractmethod
    def stop(self) -> None:
        """Ask the server to stop."""

    @abstractmethod
    def update_config(self, config: Configuration) -> None:
        """Write the ports actually bound into ``config``."""

    def register_shell_listener(self, listener: Listener) -> None:
        self._shell_listener = listener

    def register_control_listener(self, listener: Listener) -> None:
        self._control_listener = listener

    def register_stdin_listener(self, listener: Listener) -> None:
        self._stdin_listener = listener

    def register_internal_listener(self, listener: InternalListener) -> None:
        self._internal_listener = listener

    @staticmethod
    def _require(listener: Callable | None, name: str) -> Callable:
        if listener is None:
            raise RuntimeError(f"no {name} listener registered")
        return listener

    def notify_shell_listener(self, msg: Message) -> None:
        self._require(self._shell_listener, "shell")(msg)

    def notify_control_listener(self, msg: Message) -> None:
        self._require(self._control_listener, "control")(msg)

    def notify_stdin_listener(self, msg: Message) -> None:
        self._require(self._stdin_listener, "stdin")(msg)

    def notify_internal_listener(self, msg: Any) -> Any:
        return self._require(self._internal_listener, "internal")(msg)