"""End point naming helpers for the kernel sockets."""

SOCKET_LINGER_MS = 1000


def get_controller_end_point(channel: str) -> str:
    """Return the in-process end point controlling the given channel."""
    return f"inproc://{channel}_controller"


def get_publisher_end_point() -> str:
    """Return the in-process end point of the publisher."""
    return "inproc://publisher"


def get_end_point(transport: str, ip: str, port: str) -> str:
    """Compose an end point; tcp uses ':' before the port, others use '-'."""
    separator = ":" if transport == "tcp" else "-"
    return f"{transport}://{ip}{separator}{port}"


def get_socket_linger() -> int:
    """Return the socket linger period in milliseconds."""
    return SOCKET_LINGER_MS


def get_end_point_port(end_point: str) -> str:
    """Return the port part of an end point: everything after the last ':'."""
    return end_point.rpartition(":")[2]