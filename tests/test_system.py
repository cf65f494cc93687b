import os

import pytest

from kernelwire.system import (
    create_directory,
    get_cell_tmp_file,
    get_current_pid,
    get_numbered_cell_tmp_file,
    get_temp_directory_path,
    get_tmp_hash_seed,
    get_tmp_prefix,
    murmur2_x86,
)

TEMP_VARS = ("TMPDIR", "TMP", "TEMPDIR", "TEMP")


@pytest.fixture
def clean_temp_env(monkeypatch):
    for name in TEMP_VARS:
        monkeypatch.delenv(name, raising=False)
    get_temp_directory_path.cache_clear()
    yield monkeypatch
    get_temp_directory_path.cache_clear()


def test_temp_directory_strips_trailing_separator(clean_temp_env):
    clean_temp_env.setenv("TMPDIR", "/some/dir/")
    assert get_temp_directory_path() == "/some/dir"


def test_temp_directory_precedence(clean_temp_env):
    clean_temp_env.setenv("TEMP", "/from/temp")
    clean_temp_env.setenv("TMP", "/from/tmp")
    assert get_temp_directory_path() == "/from/tmp"


def test_temp_directory_default(clean_temp_env):
    assert get_temp_directory_path() == "/tmp"


def test_temp_directory_is_cached(clean_temp_env):
    clean_temp_env.setenv("TMPDIR", "/first")
    first = get_temp_directory_path()
    clean_temp_env.setenv("TMPDIR", "/second")
    assert get_temp_directory_path() == first


def test_tmp_prefix(clean_temp_env):
    clean_temp_env.setenv("TMPDIR", "/base")
    assert get_tmp_prefix("proc") == f"/base/proc_{os.getpid()}/"


def test_current_pid():
    assert get_current_pid() == os.getpid()


def test_hash_seed():
    assert get_tmp_hash_seed() == 0xC70F6907


def test_create_nested_directory(tmp_path):
    target = tmp_path / "a" / "b" / "c"
    assert create_directory(str(target)) is True
    assert target.is_dir()


def test_create_existing_directory(tmp_path):
    assert create_directory(str(tmp_path)) is True


def test_create_directory_under_file_fails(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    assert create_directory(str(blocker / "sub")) is False


def test_murmur_empty_seed_zero():
    assert murmur2_x86(b"", 0) == 0


def test_murmur_is_deterministic_and_32bit():
    for data in (b"a", b"ab", b"abc", b"abcd", b"abcde", "x = 1\n".encode()):
        value = murmur2_x86(data, 42)
        assert value == murmur2_x86(data, 42)
        assert 0 <= value < 2**32


def test_murmur_depends_on_seed_and_data():
    assert murmur2_x86(b"hello", 1) != murmur2_x86(b"hello", 2)
    assert murmur2_x86(b"hello", 1) != murmur2_x86(b"hellp", 1)


def test_murmur_high_bytes_in_tail():
    values = {murmur2_x86(bytes([b]), 7) for b in (0x01, 0x7F, 0x80, 0xFF)}
    assert len(values) == 4


def test_cell_tmp_file():
    name = get_cell_tmp_file("/tmp/k_1/", "print(1)", ".py")
    digest = murmur2_x86(b"print(1)", get_tmp_hash_seed())
    assert name == f"/tmp/k_1/{digest}.py"


def test_cell_tmp_file_same_content_same_name():
    assert get_cell_tmp_file("p/", "code", ".x") == get_cell_tmp_file("p/", "code", ".x")
    assert get_cell_tmp_file("p/", "code", ".x") != get_cell_tmp_file("p/", "other", ".x")


def test_numbered_cell_tmp_file():
    assert get_numbered_cell_tmp_file("/tmp/k", 3, ".py") == "/tmp/k/[3].py"