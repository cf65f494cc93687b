import re
from datetime import datetime, timedelta, timezone

from kernelwire.messages import (
    Message,
    PubMessage,
    _format_iso8601,
    get_protocol_version,
    iso8601_now,
    make_header,
)

ISO_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{1,6}Z$")


def test_protocol_version():
    assert get_protocol_version() == "5.3"


def test_iso8601_now_shape():
    before = datetime.now(timezone.utc).replace(microsecond=0)
    value = iso8601_now()
    after = datetime.now(timezone.utc)
    assert value.endswith("Z")
    assert ISO_PATTERN.fullmatch(value)[0] == value
    moment = datetime.strptime(value[:19], "%Y-%m-%dT%H:%M:%S").replace(
        tzinfo=timezone.utc
    )
    assert before - timedelta(seconds=1) <= moment <= after


def test_format_iso8601_unpadded_fraction():
    moment = datetime(2020, 1, 2, 3, 4, 5, 7, tzinfo=timezone.utc)
    assert _format_iso8601(moment) == "2020-01-02T03:04:05.7Z"


def test_format_iso8601_full_fraction():
    moment = datetime(2021, 12, 31, 23, 59, 58, 123456, tzinfo=timezone.utc)
    assert _format_iso8601(moment) == "2021-12-31T23:59:58.123456Z"


def test_make_header_fields():
    header = make_header("execute_request", "alice", "session-1")
    assert set(header) == {"msg_id", "username", "session", "date", "msg_type", "version"}
    assert header["msg_type"] == "execute_request"
    assert header["username"] == "alice"
    assert header["session"] == "session-1"
    assert header["version"] == get_protocol_version()
    assert ISO_PATTERN.match(header["date"])


def test_make_header_unique_ids():
    ids = {make_header("status", "u", "s")["msg_id"] for _ in range(50)}
    assert len(ids) == 50


def test_message_defaults():
    msg = Message()
    assert msg.identities == []
    assert msg.header == {}
    assert msg.content == {}
    assert msg.buffers == []


def test_message_fields_kept():
    msg = Message([b"id"], {"msg_type": "x"}, {}, {"m": 1}, {"c": 2}, [b"\x00"])
    assert msg.identities == [b"id"]
    assert msg.header["msg_type"] == "x"
    assert msg.metadata == {"m": 1}
    assert msg.content == {"c": 2}
    assert msg.buffers == [b"\x00"]


def test_defaults_not_shared():
    first = Message()
    second = Message()
    first.buffers.append(b"a")
    assert second.buffers == []


def test_pub_message_topic():
    msg = PubMessage("kernel_core.k.status", content={"execution_state": "idle"})
    assert msg.topic == "kernel_core.k.status"
    assert msg.content["execution_state"] == "idle"
    assert msg.parent_header == {}