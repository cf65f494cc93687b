"""Messages, wire framing, logging and request dispatch for interactive kernels."""

__version__ = "2.1.0"

__all__ = [
    "kernel_core",
    "logger",
    "messages",
    "middleware",
    "mock_interpreter",
    "serializer",
    "server",
    "system",
]