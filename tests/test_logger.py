import io
import json

import pytest

from kernelwire.logger import (
    ConsoleLogger,
    FileLogger,
    LogChannel,
    LogLevel,
    is_utf8_valid,
    make_console_logger,
    make_file_logger,
)
from kernelwire.messages import Message, PubMessage


def _read_records(path):
    text = path.read_text(encoding="utf-8")
    decoder = json.JSONDecoder()
    records = []
    pos = 0
    while True:
        while pos < len(text) and text[pos].isspace():
            pos += 1
        if pos >= len(text):
            return records
        obj, pos = decoder.raw_decode(text, pos)
        records.append(obj)


def _message(identity=b"client-1"):
    return Message(
        identities=[identity],
        header={"msg_type": "execute_request", "msg_id": "abc"},
        parent_header={"msg_id": "parent"},
        metadata={"started": "now"},
        content={"code": "1 + 1"},
    )


@pytest.mark.parametrize(
    "data, expected",
    [
        (b"abc", True),
        ("é".encode("utf-8"), True),
        (b"", True),
        (b"\xff", False),
        (b"\xc3", False),
        (b"\xc0\xaf", False),
        (b"\xed\xa0\x80", False),
        (b"\xf4\x90\x80\x80", False),
    ],
)
def test_is_utf8_valid(data, expected):
    assert is_utf8_valid(data) is expected


def test_file_logger_full_level(tmp_path):
    path = tmp_path / "log.json"
    logger = FileLogger(LogLevel.FULL, str(path))
    msg = _message()
    logger.log_received_message(msg, LogChannel.SHELL)
    [record] = _read_records(path)
    assert record["info"].endswith(f"received message on {LogChannel.SHELL.value} - client-1")
    assert record["message"] == {
        "msg_type": "execute_request",
        "header": msg.header,
        "parent_header": msg.parent_header,
        "metadata": msg.metadata,
        "content": msg.content,
    }


def test_file_logger_content_level(tmp_path):
    path = tmp_path / "log.json"
    logger = make_file_logger(LogLevel.CONTENT, str(path))
    logger.log_sent_message(_message(), LogChannel.CONTROL)
    [record] = _read_records(path)
    assert record["message"] == {"msg_type": "execute_request", "content": {"code": "1 + 1"}}
    assert f"sent message on {LogChannel.CONTROL.value}" in record["info"]


def test_file_logger_msg_type_level(tmp_path):
    path = tmp_path / "log.json"
    logger = FileLogger(LogLevel.MSG_TYPE, str(path))
    logger.log_message("info", {}, {}, {}, {"x": 1})
    [record] = _read_records(path)
    assert record == {"info": "info", "message": {"msg_type": ""}}


def test_file_logger_appends(tmp_path):
    path = tmp_path / "log.json"
    logger = FileLogger(LogLevel.MSG_TYPE, str(path))
    logger.log_received_message(_message(), LogChannel.SHELL)
    logger.log_received_message(_message(), LogChannel.STDIN)
    records = _read_records(path)
    assert len(records) == 2
    assert LogChannel.STDIN.value in records[1]["info"]


def test_invalid_identity_is_reported(tmp_path):
    path = tmp_path / "log.json"
    logger = FileLogger(LogLevel.MSG_TYPE, str(path))
    logger.log_received_message(_message(b"\xff\xfe"), LogChannel.SHELL)
    [record] = _read_records(path)
    assert record["info"].endswith(" - invalid UTF8")


def test_iopub_message_uses_topic(tmp_path):
    path = tmp_path / "log.json"
    logger = FileLogger(LogLevel.MSG_TYPE, str(path))
    pub = PubMessage(topic="kernel_core.k1.status", header={"msg_type": "status"})
    logger.log_iopub_message(pub)
    [record] = _read_records(path)
    assert record["info"].endswith("iopub - kernel_core.k1.status")
    assert record["message"] == {"msg_type": "status"}


def test_chained_loggers_both_write(tmp_path):
    first = tmp_path / "first.json"
    second = tmp_path / "second.json"
    chain = FileLogger(LogLevel.MSG_TYPE, str(first), FileLogger(LogLevel.FULL, str(second)))
    msg = _message()
    chain.log_sent_message(msg, LogChannel.SHELL)
    [a] = _read_records(first)
    [b] = _read_records(second)
    assert a["info"] == b["info"]
    assert "header" not in a["message"]
    assert b["message"]["content"] == msg.content


def test_console_logger_writes_to_stream():
    stream = io.StringIO()
    logger = ConsoleLogger(LogLevel.CONTENT, stream=stream)
    logger.log_received_message(_message(), LogChannel.SHELL)
    first_line, _, rest = stream.getvalue().partition("\n")
    assert first_line.endswith("client-1")
    assert json.loads(rest) == {"msg_type": "execute_request", "content": {"code": "1 + 1"}}


def test_make_console_logger_prints_to_stdout(capsys):
    logger = make_console_logger(LogLevel.MSG_TYPE)
    logger.log_message("socket", {"msg_type": "status"}, {}, {}, {})
    out = capsys.readouterr().out
    first_line, _, rest = out.partition("\n")
    assert first_line == "socket"
    assert json.loads(rest) == {"msg_type": "status"}


def test_missing_identity_raises(tmp_path):
    logger = FileLogger(LogLevel.MSG_TYPE, str(tmp_path / "log.json"))
    with pytest.raises(IndexError):
        logger.log_received_message(Message(identities=[]), LogChannel.SHELL)


def test_non_object_header_raises(tmp_path):
    logger = FileLogger(LogLevel.MSG_TYPE, str(tmp_path / "log.json"))
    with pytest.raises(TypeError):
        logger.log_message("info", [1, 2], {}, {}, {})