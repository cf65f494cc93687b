"""Process and temporary-file helpers."""

from __future__ import annotations

import functools
import os
import tempfile

_TMP_HASH_SEED = 0xC70F6907
_MASK32 = 0xFFFFFFFF


def _remove_ending_separator(path: str) -> str:
    return path[:-1] if path.endswith("/") else path


def _temp_directory_path_impl() -> str:
    if os.name == "nt":
        path = tempfile.gettempdir().replace("\\", "/")
        return _remove_ending_separator(path)
    for name in ("TMPDIR", "TMP", "TEMPDIR", "TEMP"):
        value = os.environ.get(name)
        if value is not None:
            return _remove_ending_separator(value)
    return "/tmp"


@functools.lru_cache(maxsize=None)
def get_temp_directory_path() -> str:
    """Return the temporary directory, computed once per process."""
    return _temp_directory_path_impl()


def create_directory(path: str) -> bool:
    """Create a directory and its parents with mode 0700.

    Returns True if the directory exists afterwards, False if it could not
    be created.
    """
    pos = path.rfind("/")
    if pos > 0:
        create_directory(path[:pos])
    if os.path.exists(path):
        return True
    try:
        os.mkdir(path, 0o700)
    except OSError:
        return False
    return True


def get_current_pid() -> int:
    """Return the id of the current process."""
    return os.getpid()


def get_tmp_hash_seed() -> int:
    """Return the seed used to hash cell contents into file names."""
    return _TMP_HASH_SEED


def get_tmp_prefix(process_name: str) -> str:
    """Return the per-process temporary directory prefix, ending with '/'."""
    return f"{get_temp_directory_path()}/{process_name}_{get_current_pid()}/"


def murmur2_x86(data: bytes, seed: int) -> int:
    """Compute the 32-bit MurmurHash2 of ``data``."""
    factor = 0x5BD1E995
    length = len(data)
    h = (seed ^ length) & _MASK32
    body_end = length - length % 4
    for offset in range(0, body_end, 4):
        k = int.from_bytes(data[offset:offset + 4], "little")
        k = (k * factor) & _MASK32
        k ^= k >> 24
        k = (k * factor) & _MASK32
        h = (h * factor) & _MASK32
        h ^= k
    tail = data[body_end:]
    if tail:
        for position, byte in reversed(list(enumerate(tail))):
            h ^= byte << (8 * position)
        h = (h * factor) & _MASK32
    h ^= h >> 13
    h = (h * factor) & _MASK32
    h ^= h >> 15
    return h


def get_cell_tmp_file(prefix: str, content: str, suffix: str) -> str:
    """Return a temporary file name derived from the hash of a cell's content."""
    digest = murmur2_x86(content.encode("utf-8"), get_tmp_hash_seed() & _MASK32)
    return f"{prefix}{digest}{suffix}"


def get_numbered_cell_tmp_file(prefix: str, execution_count: int, extension: str) -> str:
    """Return a temporary file name derived from an execution count."""
    return f"{prefix}/[{execution_count}]{extension}"