"""A do-nothing interpreter and the process-wide interpreter registry."""

from __future__ import annotations

import functools
from dataclasses import dataclass, field
from typing import Any, Callable

Json = Any
Publisher = Callable[[str, Json, Json, list], None]
StdinSender = Callable[[str, Json, Json], None]
ParentHeaderGetter = Callable[[], Json]


@dataclass(frozen=True)
class Request:
    """One request received by the mock interpreter."""

    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


class MockInterpreter:
    """An interpreter that accepts every request and answers with null.

    It stands in when no real interpreter has been registered, so that a
    kernel can still be wired together and driven. Every request it gets
    is kept in ``requests``, oldest first.
    """

    def __init__(self) -> None:
        self.publisher: Publisher | None = None
        self.stdin_sender: StdinSender | None = None
        self.comm_manager: Any = None
        self._parent_header: ParentHeaderGetter | None = None
        self.execution_count = 0
        self.configured = False
        self.shut_down = False
        self.requests: list[Request] = []

    # Wiring done by the kernel core.

    def register_publisher(self, publisher: Publisher | None) -> None:
        """Set the callable used to publish iopub messages."""
        self.publisher = publisher

    def register_stdin_sender(self, sender: StdinSender | None) -> None:
        """Set the callable used to send stdin requests."""
        self.stdin_sender = sender

    def register_comm_manager(self, manager: Any) -> None:
        """Set the comm registry used by this interpreter."""
        self.comm_manager = manager

    def register_parent_header(self, getter: ParentHeaderGetter | None) -> None:
        """Set the callable returning the header of the current request."""
        self._parent_header = getter

    def parent_header(self) -> Json:
        """Return the header of the request being executed, or an empty object."""
        if self._parent_header is None:
            return {}
        return self._parent_header()

    def _record(self, name: str, **arguments: Any) -> Json:
        """Keep a request in the log; the reply to every request is null."""
        self.requests.append(Request(name, arguments))
        reply: Json = None
        return reply

    # Requests: every one of them is accepted and answered with null.

    def configure(self) -> None:
        """Prepare the interpreter and mark it as configured."""
        self.configured = True
        self._record("configure")

    def execute_request(
        self,
        code: str,
        silent: bool,
        store_history: bool,
        user_expressions: Json,
        allow_stdin: bool,
    ) -> Json:
        """Count the execution, run nothing and return null."""
        self.execution_count += 1
        return self._record(
            "execute_request",
            execution_count=self.execution_count,
            code=code,
            silent=silent,
            store_history=store_history,
            user_expressions=user_expressions,
            allow_stdin=allow_stdin,
        )

    def complete_request(self, code: str, cursor_pos: int) -> Json:
        """Offer no completion and return null."""
        return self._record("complete_request", code=code, cursor_pos=cursor_pos)

    def inspect_request(self, code: str, cursor_pos: int, detail_level: int) -> Json:
        """Inspect nothing and return null."""
        return self._record(
            "inspect_request",
            code=code,
            cursor_pos=cursor_pos,
            detail_level=detail_level,
        )

    def is_complete_request(self, code: str) -> Json:
        """Judge nothing and return null."""
        return self._record("is_complete_request", code=code)

    def kernel_info_request(self) -> Json:
        """Describe nothing and return null."""
        return self._record("kernel_info_request")

    def shutdown_request(self) -> None:
        """Mark the interpreter as shut down."""
        self.shut_down = True
        self._record("shutdown_request")


_registered: Any = None


@functools.lru_cache(maxsize=None)
def get_mock_interpreter() -> MockInterpreter:
    """Return the process-wide mock interpreter."""
    return MockInterpreter()


def register_interpreter(interpreter: Any) -> bool:
    """Register the process-wide interpreter.

    Returns False, leaving the registry untouched, if one is already registered.
    """
    global _registered
    if _registered is not None:
        return False
    _registered = interpreter
    return True


def get_interpreter() -> Any:
    """Return the registered interpreter, or the mock one if none is registered."""
    if _registered is not None:
        return _registered
    return get_mock_interpreter()


def clear_registered_interpreter() -> Any:
    """Forget the registered interpreter and return it, or None if there was none."""
    global _registered
    previous, _registered = _registered, None
    return previous