"""Request dispatching core of a kernel: routes protocol messages to handlers."""

from __future__ import annotations

import copy
import sys
from typing import Any, Callable, Protocol

from kernelwire.logger import LogChannel, Logger, NullLogger
from kernelwire.messages import (
    Message,
    PubMessage,
    get_protocol_version,
    iso8601_now,
    make_header,
)
from kernelwire.server import Channel, Server

ABORT_POLLING_INTERVAL_MS = 50

_NO_DEFAULT = object()


class CommManager(Protocol):
    """What the core needs from a comm registry.

    ``comms`` maps comm ids to comm objects whose ``target.name`` gives the
    name of the target they were opened on.
    """

    comms: dict[Any, Any]

    def comm_open(self, request: Message) -> None: ...

    def comm_close(self, request: Message) -> None: ...

    def comm_msg(self, request: Message) -> None: ...


def _value(document: Any, key: str, default: Any) -> Any:
    """Read ``key`` from a JSON object, falling back to ``default``."""
    if not isinstance(document, dict):
        raise TypeError(f"cannot read {key!r} from a non-object JSON value")
    return document.get(key, default)


def _reply_type(msg_type: str) -> str:
    """Turn ``foo_request`` into ``foo_reply``."""
    position = msg_type.rfind("_")
    if position < 0:
        raise ValueError(f"message type {msg_type!r} has no '_' to replace")
    return msg_type[:position] + "_reply" + msg_type[position + 8:]


def _log_channel(channel: Channel) -> LogChannel:
    return LogChannel.SHELL if channel is Channel.SHELL else LogChannel.CONTROL


class KernelCore:
    """Receives requests from the server, runs them and sends the replies."""

    def __init__(
        self,
        kernel_id: str,
        user_name: str,
        session_id: str,
        logger: Logger | None,
        server: Server,
        interpreter: Any,
        history_manager: Any,
        debugger: Any = None,
        comm_manager: CommManager | None = None,
    ) -> None:
        self.kernel_id = kernel_id
        self.user_name = user_name
        self.session_id = session_id
        self.logger: Logger = logger if logger is not None else NullLogger()
        self.server = server
        self.interpreter = interpreter
        self.history_manager = history_manager
        self.debugger = debugger
        self.comm_manager = comm_manager

        self._parent_id: dict[Channel, list[bytes]] = {c: [] for c in Channel}
        self._parent_header: dict[Channel, Any] = {c: {} for c in Channel}

        self._handlers: dict[str, Callable[[Message, Channel], None]] = {
            "execute_request": self._execute_request,
            "complete_request": self._complete_request,
            "inspect_request": self._inspect_request,
            "history_request": self._history_request,
            "is_complete_request": self._is_complete_request,
            "comm_info_request": self._comm_info_request,
            "comm_open": self._comm_open,
            "comm_close": self._comm_close,
            "comm_msg": self._comm_msg,
            "kernel_info_request": self._kernel_info_request,
            "shutdown_request": self._shutdown_request,
            "interrupt_request": self._interrupt_request,
            "debug_request": self._debug_request,
        }

        server.register_shell_listener(self.dispatch_shell)
        server.register_control_listener(self.dispatch_control)
        server.register_stdin_listener(self.dispatch_stdin)
        server.register_internal_listener(self.dispatch_internal)

        interpreter.register_publisher(
            lambda msg_type, metadata, content, buffers: self.publish_message(
                msg_type, metadata, content, buffers, Channel.SHELL
            )
        )
        interpreter.register_stdin_sender(self.send_stdin)
        interpreter.register_comm_manager(comm_manager)
        interpreter.register_parent_header(lambda: self.parent_header(Channel.SHELL))

    # ------------------------------------------------------------------
    # Public entry points

    def build_start_msg(self) -> PubMessage:
        """Build the status message announcing that the kernel is starting."""
        return PubMessage(
            topic=f"kernel_core.{self.kernel_id}.status",
            header=make_header("status", self.user_name, self.session_id),
            parent_header={},
            metadata={},
            content={"execution_state": "starting"},
            buffers=[],
        )

    def dispatch_shell(self, msg: Message) -> None:
        """Handle a request received on the shell channel."""
        self._dispatch(msg, Channel.SHELL)

    def dispatch_control(self, msg: Message) -> None:
        """Handle a request received on the control channel."""
        self._dispatch(msg, Channel.CONTROL)

    def dispatch_stdin(self, msg: Message) -> None:
        """Forward an input reply to the interpreter."""
        try:
            self.logger.log_received_message(msg, LogChannel.STDIN)
            value = _value(msg.content, "value", "")
            self.interpreter.input_reply(value)
        except Exception as exc:
            print("ERROR: could not handle stdin message", file=sys.stderr)
            print(exc, file=sys.stderr)

    def dispatch_internal(self, msg: Any) -> Any:
        """Pass an internal request to the interpreter and return its reply."""
        return self.interpreter.internal_request(msg)

    def publish_message(
        self,
        msg_type: str,
        metadata: Any,
        content: Any,
        buffers: list[bytes] | None,
        channel: Channel,
    ) -> None:
        """Broadcast a message on iopub, parented to the current request of ``channel``."""
        msg = PubMessage(
            topic=self._topic(msg_type),
            header=make_header(msg_type, self.user_name, self.session_id),
            parent_header=self._get_parent_header(channel),
            metadata=metadata,
            content=content,
            buffers=list(buffers or []),
        )
        self.logger.log_iopub_message(msg)
        self.server.publish(msg, channel)

    def send_stdin(self, msg_type: str, metadata: Any, content: Any) -> None:
        """Send a request on the stdin channel to the client of the current shell request."""
        msg = Message(
            identities=list(self._parent_id[Channel.SHELL]),
            header=make_header(msg_type, self.user_name, self.session_id),
            parent_header=self._get_parent_header(Channel.SHELL),
            metadata=metadata,
            content=content,
            buffers=[],
        )
        self.logger.log_sent_message(msg, LogChannel.STDIN)
        self.server.send_stdin(msg)

    def parent_header(self, channel: Channel) -> Any:
        """Return the header of the request being handled on ``channel``."""
        return self._parent_header[channel]

    # ------------------------------------------------------------------
    # Dispatching

    def _dispatch(self, msg: Message, channel: Channel) -> None:
        self.logger.log_received_message(msg, _log_channel(channel))
        header = msg.header
        self._set_parent(msg.identities, header, channel)
        self._publish_status("busy", channel)

        msg_type = _value(header, "msg_type", "")
        handler = self._handlers.get(msg_type)
        if handler is None:
            print("ERROR: received unknown message", file=sys.stderr)
            print(f"Message type: {msg_type}", file=sys.stderr)
        else:
            try:
                handler(msg, channel)
            except Exception as exc:
                print(f"ERROR: received bad message: {exc}", file=sys.stderr)
                print(f"Message content: {msg.content}", file=sys.stderr)

        self._publish_status("idle", channel)

    # ------------------------------------------------------------------
    # Request handlers

    def _execute_request(self, request: Message, channel: Channel) -> None:
        try:
            content = request.content
            code = _value(content, "code", "")
            silent = _value(content, "silent", False)
            store_history = _value(content, "store_history", True)
            execution_count = _value(content, "execution_count", 1)
            store_history = store_history and not silent
            user_expressions = _value(content, "user_expressions", {})
            allow_stdin = _value(content, "allow_stdin", True)
            stop_on_error = _value(content, "stop_on_error", False)

            metadata = self._get_metadata()
            reply = self.interpreter.execute_request(
                code, silent, store_history, user_expressions, allow_stdin
            )
            status = _value(reply, "status", "error")
            self._send_reply("execute_reply", metadata, reply, channel)

            if not silent and store_history:
                self.history_manager.store_inputs(0, execution_count, code)

            if not silent and status == "error" and stop_on_error:
                self.server.abort_queue(self._abort_request, ABORT_POLLING_INTERVAL_MS)
        except Exception as exc:
            print("ERROR: during execute_request", file=sys.stderr)
            print(exc, file=sys.stderr)

    def _complete_request(self, request: Message, channel: Channel) -> None:
        content = request.content
        code = _value(content, "code", "")
        cursor_pos = _value(content, "cursor_pos", -1)
        reply = self.interpreter.complete_request(code, cursor_pos)
        self._send_reply("complete_reply", {}, reply, channel)

    def _inspect_request(self, request: Message, channel: Channel) -> None:
        content = request.content
        code = _value(content, "code", "")
        cursor_pos = _value(content, "cursor_pos", -1)
        detail_level = _value(content, "detail_level", 0)
        reply = self.interpreter.inspect_request(code, cursor_pos, detail_level)
        self._send_reply("inspect_reply", {}, reply, channel)

    def _history_request(self, request: Message, channel: Channel) -> None:
        history = self.history_manager.process_request(request.content)
        self._send_reply("history_reply", {}, history, channel)

    def _is_complete_request(self, request: Message, channel: Channel) -> None:
        code = _value(request.content, "code", "")
        reply = self.interpreter.is_complete_request(code)
        self._send_reply("is_complete_reply", {}, reply, channel)

    def _comm_info_request(self, request: Message, channel: Channel) -> None:
        content = request.content
        target_name = "" if content is None else _value(content, "target_name", "")
        registered = self.comm_manager.comms if self.comm_manager is not None else {}
        comms = {}
        for comm_id in sorted(registered):
            name = registered[comm_id].target.name
            if not target_name or name == target_name:
                comms[comm_id] = {"target_name": name}
        self._send_reply("comm_info_reply", {}, {"comms": comms, "status": "ok"}, channel)

    def _kernel_info_request(self, request: Message, channel: Channel) -> None:
        reply = self.interpreter.kernel_info_request()
        if reply is None:
            reply = {}
        elif not isinstance(reply, dict):
            raise TypeError("kernel info reply must be a JSON object")
        reply["protocol_version"] = get_protocol_version()
        self._send_reply("kernel_info_reply", {}, reply, channel)

    def _shutdown_request(self, request: Message, channel: Channel) -> None:
        restart = _value(request.content, "restart", False)
        self.interpreter.shutdown_request()
        self.server.stop()
        reply = {"restart": restart}
        self.publish_message("shutdown", {}, dict(reply), [], Channel.CONTROL)
        self._send_reply("shutdown_reply", {}, reply, channel)

    def _interrupt_request(self, request: Message, channel: Channel) -> None:
        self.publish_message("interrupt", {}, {}, [], Channel.CONTROL)
        self._send_reply("interrupt_reply", {}, {}, channel)

    def _debug_request(self, request: Message, channel: Channel) -> None:
        if self.debugger is not None:
            reply = self.debugger.process_request(request.header, request.content)
            self._send_reply("debug_reply", self._get_metadata(), reply, channel)

    def _require_comm_manager(self) -> CommManager:
        if self.comm_manager is None:
            raise RuntimeError("no comm manager registered")
        return self.comm_manager

    def _comm_open(self, request: Message, channel: Channel) -> None:
        self._require_comm_manager().comm_open(request)

    def _comm_close(self, request: Message, channel: Channel) -> None:
        self._require_comm_manager().comm_close(request)

    def _comm_msg(self, request: Message, channel: Channel) -> None:
        self._require_comm_manager().comm_msg(request)

    # ------------------------------------------------------------------
    # Helpers

    def _publish_status(self, status: str, channel: Channel) -> None:
        self.publish_message("status", {}, {"execution_state": status}, [], channel)

    def _publish_execute_input(self, code: str, execution_count: int) -> None:
        self.publish_message(
            "execute_input",
            {},
            {"code": code, "execution_count": execution_count},
            [],
            Channel.SHELL,
        )

    def _send_reply(self, reply_type: str, metadata: Any, content: Any, channel: Channel) -> None:
        self._send_reply_to(
            list(self._parent_id[channel]),
            reply_type,
            self._get_parent_header(channel),
            metadata,
            content,
            channel,
        )

    def _send_reply_to(
        self,
        identities: list[bytes],
        reply_type: str,
        parent_header: Any,
        metadata: Any,
        content: Any,
        channel: Channel,
    ) -> None:
        reply = Message(
            identities=identities,
            header=make_header(reply_type, self.user_name, self.session_id),
            parent_header=parent_header,
            metadata=metadata,
            content=content,
            buffers=[],
        )
        self.logger.log_sent_message(reply, _log_channel(channel))
        if channel is Channel.SHELL:
            self.server.send_shell(reply)
        else:
            self.server.send_control(reply)

    def _abort_request(self, msg: Message) -> None:
        header = msg.header
        msg_type = _reply_type(_value(header, "msg_type", ""))
        self._send_reply_to(
            list(msg.identities),
            msg_type,
            copy.deepcopy(header),
            {},
            {"status": "error"},
            Channel.SHELL,
        )

    def _topic(self, msg_type: str) -> str:
        return f"kernel_core.{self.kernel_id}.{msg_type}"

    @staticmethod
    def _get_metadata() -> dict[str, str]:
        return {"started": iso8601_now()}

    def _set_parent(self, identities: list[bytes], header: Any, channel: Channel) -> None:
        self._parent_id[channel] = list(identities)
        self._parent_header[channel] = copy.deepcopy(header)

    def _get_parent_header(self, channel: Channel) -> Any:
        return copy.deepcopy(self._parent_header[channel])