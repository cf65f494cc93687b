# kernelwire

Building blocks for an interactive computing kernel that speaks version 5.3
of the kernel messaging protocol. The package has no dependencies outside
the standard library.

## What is in it

- **`kernelwire.messages`**: `Message` (identities, header, parent header,
  metadata, content, buffers) and `PubMessage` (the same, with a `topic`
  in place of identities). `make_header(msg_type, user_name, session_id)`
  builds a header with a fresh `msg_id`, a UTC `date` and the protocol
  version. `iso8601_now()` and `get_protocol_version()` (returns `"5.3"`)
  are also here.
- **`kernelwire.serializer`**: `serialize` / `deserialize` and
  `serialize_iopub` / `deserialize_iopub` turn messages into lists of byte
  frames and back. The frame order is identities (or topic), the
  `<IDS|MSG>` delimiter, signature, header, parent header, metadata,
  content, then buffers. `Authenticator(scheme, key)` signs with an HMAC
  (for example `"hmac-sha256"`). With an empty key it signs with an empty
  string and accepts any signature. An unsupported scheme raises
  `ValueError`. `DeserializationError` is raised for a missing delimiter,
  missing frames, invalid JSON or a signature that does not match.
- **`kernelwire.server`**: the abstract `Server` base class. It holds shell,
  control, stdin and internal listeners and notifies them. It raises
  `RuntimeError` when no listener is registered. The module also has the
  `Configuration` dataclass (transport, ip, ports, signature scheme, key),
  the `Channel` enum (`SHELL`, `CONTROL`), the abstract `ControlMessenger`
  and `TrivialMessenger`, which passes requests to a server's internal
  listener.
- **`kernelwire.kernel_core`**: `KernelCore` registers itself as the
  listener of a `Server` and wires itself into an interpreter. It
  dispatches execute, complete, inspect, history, is_complete, comm_info,
  comm open/close/msg, kernel_info, shutdown, interrupt and debug requests.
  It publishes `busy` / `idle` status around each request and sends the
  replies. After a failed execution with `stop_on_error`, it answers queued
  requests with error replies. `build_start_msg()` gives the `starting`
  status message.
- **`kernelwire.logger`**: `NullLogger`, `ConsoleLogger` (writes to standard
  output or a given stream) and `FileLogger` (appends JSON records). You
  can chain them through `next_logger`. `LogLevel` controls how much gets
  logged: `MSG_TYPE`, `CONTENT` or `FULL`. The factories are
  `make_console_logger` and `make_file_logger`. `is_utf8_valid` checks
  client identities before they are logged.
- **`kernelwire.middleware`**: end point helpers. These are
  `get_end_point`, `get_controller_end_point`, `get_publisher_end_point`,
  `get_end_point_port` and `get_socket_linger`.
- **`kernelwire.system`**: temporary-directory and process helpers. These
  are `get_temp_directory_path`, `create_directory`, `get_current_pid` and
  `get_tmp_prefix`. There are also cell file names derived from a 32-bit
  MurmurHash2 of the code (`murmur2_x86`, `get_cell_tmp_file`) or from an
  execution count (`get_numbered_cell_tmp_file`).
- **`kernelwire.mock_interpreter`**: `MockInterpreter` answers every request
  with `None` and records the requests it receives. It also holds a
  process-wide registry: `register_interpreter`, `get_interpreter` (falls
  back to the shared mock), `get_mock_interpreter` and
  `clear_registered_interpreter`.

## Example

```python
from kernelwire.messages import Message, make_header
from kernelwire.serializer import Authenticator, deserialize, serialize

auth = Authenticator("hmac-sha256", "secret")
header = make_header("kernel_info_request", "user", "session-1")
msg = Message([b"client"], header, {}, {}, {})

frames = serialize(msg, auth)
again = deserialize(frames, auth)
assert again.header["msg_type"] == "kernel_info_request"
assert again.identities == [b"client"]
```

## What it does not do

- **No transport.** There are no sockets, no heartbeat and no publisher
  thread. To move frames over a network, subclass `Server` and implement
  its abstract methods (`send_shell`, `send_control`, `send_stdin`,
  `publish`, `_start`, `abort_queue`, `stop`, `update_config`,
  `get_control_messenger`).
- **No connection-file loading and no command-line entry point.**
- **Only the mock interpreter.** The only interpreter is
  `MockInterpreter`. `KernelCore` also needs a history manager providing
  `store_inputs` and `process_request`. It can optionally take a comm
  manager (`comms`, `comm_open`, `comm_close`, `comm_msg`) and a debugger
  (`process_request`). The package provides none of these; the caller
  supplies them.

## Running the tests

```
pip install "kernelwire[test]"
pytest
```