import queue
import time
from collections import deque

import pytest

from blegatt.att import (
    ATTR_APPEARANCE_UUID,
    ATTR_DEVICE_NAME_UUID,
    ATTR_GAP_UUID,
    ATTR_GATT_UUID,
    parse_uuid,
)
from blegatt.attr import generate_attributes
from blegatt.model import STATUS_SUCCESS, Service
from blegatt.server import Central, Notifier, ResponseWriter

LONG = "A really long characteristic"


class FakeConn:
    def __init__(self, reads=()):
        self.reads = deque(reads)
        self.written = queue.Queue()
        self.closed = False

    def read(self, size):
        return self.reads.popleft() if self.reads else b""

    def write(self, data):
        self.written.put(bytes(data))
        return len(data)

    def close(self):
        self.closed = True


def _build(conn):
    state = {"wrote": None, "notifiers": []}
    svc = Service(parse_uuid("09fc95c0-c111-11e3-9904-0002a5d5c51b"))

    svc.add_characteristic(parse_uuid("11fac9e0-c111-11e3-9246-0002a5d5c51b")).handle_read(
        lambda rsp, req: rsp.write(b"count: 1")
    )

    def on_write(req, data):
        state["wrote"] = data
        return STATUS_SUCCESS

    svc.add_characteristic(parse_uuid("16fe0d80-c111-11e3-b8c8-0002a5d5c51b")).handle_write(on_write)

    def on_notify(req, n):
        state["notifiers"].append(n)
        count = 0
        while not n.done():
            try:
                n.write(f"Count: {count}".encode())
            except RuntimeError:
                break
            count += 1
            time.sleep(0.01)

    svc.add_characteristic(parse_uuid("1c927b50-c116-11e3-8a33-0800200c9a66")).handle_notify(on_notify)

    def read_long(rsp, req):
        start = min(req.offset, len(LONG))
        end = min(req.offset + req.cap, len(LONG))
        rsp.write(LONG[start:end].encode())

    svc.add_characteristic(parse_uuid("11fac9e0-c111-11e3-9246-0002a5d5c51c")).handle_read(read_long)
    svc.add_characteristic(parse_uuid("11fac9e0-c111-11e3-9246-0002a5d5c51d")).set_value(LONG.encode())

    gap = Service(ATTR_GAP_UUID)
    gap.add_characteristic(ATTR_DEVICE_NAME_UUID).set_value(b"Gopher")
    gap.add_characteristic(ATTR_APPEARANCE_UUID).set_value(b"\x00\x80")
    gatt = Service(ATTR_GATT_UUID)

    attrs = generate_attributes([gap, gatt, svc], 1)
    central = Central(attrs, bytes(6), conn)
    return central, state


@pytest.fixture
def served():
    conn = FakeConn()
    central, state = _build(conn)
    return central, state, conn


def _ask(central, hex_request):
    rsp = central.handle_request(bytes.fromhex(hex_request))
    return None if rsp is None else rsp.hex()


@pytest.mark.parametrize(
    "send,want",
    [
        ("FF1234567890", "01ff000006"),
        ("0401000A00", "050101000028020003280300002a040003280500012a"),
        ("0401000200", "05010100002802000328"),
        ("0601000B0000281bc5d5a502000499e31111c1c095fc09", "070700ffff"),
        ("10010003001bc5d5a502000499e31111c1c095fc09", "0110010010"),
        ("10010003000028", "1106010005000018"),
        ("1001000E000028", "1106010005000018060006000118"),
        ("0801000500002a", "09080300476f70686572"),
        ("0804000500002a", "010804000a"),
        ("08060006000328", "010806000a"),
        ("0a0900", "0b636f756e743a2031"),
        ("0a1000", "0b41207265616c6c79206c6f6e67206368617261637465"),
        ("0c10001700", "0d6973746963"),
        ("0a1200", "0b41207265616c6c79206c6f6e67206368617261637465"),
        ("0c12001700", "0d6973746963"),
    ],
)
def test_request_responses(served, send, want):
    central, _, _ = served
    assert _ask(central, send) == want


def test_mtu_exchange(served):
    central, _, _ = served
    assert _ask(central, "028700") == "038700"
    assert central.mtu == 135
    assert _ask(central, "021700") == "031700"
    assert central.mtu == 23


def test_mtu_is_clamped(served):
    central, _, _ = served
    assert _ask(central, "021000") == "031700"
    assert _ask(central, "020002") == "030001"
    assert central.mtu == 256


def test_write_characteristic(served):
    central, state, _ = served
    assert _ask(central, "120b00616263646566") == "13"
    assert state["wrote"] == b"abcdef"


def test_write_command_has_no_response(served):
    central, state, _ = served
    assert _ask(central, "520b00787977") is None
    assert state["wrote"] == b"xyw"


def test_read_errors(served):
    central, _, _ = served
    assert _ask(central, "0a6400") == "010a640001"
    assert _ask(central, "0a0b00") == "010a0b0002"


def test_read_blob_past_end(served):
    central, _, _ = served
    assert _ask(central, "0c12001e00") == "010c120007"


def test_write_errors(served):
    central, _, _ = served
    assert _ask(central, "126400aa") == "0112640001"
    assert _ask(central, "120900aa") == "0112090003"
    assert _ask(central, "120e0001") == "01120e000d"


def test_malformed_request(served):
    central, _, _ = served
    assert _ask(central, "0a") == "010a000004"


def test_empty_request_raises(served):
    central, _, _ = served
    with pytest.raises(ValueError):
        central.handle_request(b"")


def test_notifications(served):
    central, state, conn = served
    assert _ask(central, "120e000100") == "13"
    got = [conn.written.get(timeout=2).hex() for _ in range(4)]
    assert got == [
        "1b0d00436f756e743a2030",
        "1b0d00436f756e743a2031",
        "1b0d00436f756e743a2032",
        "1b0d00436f756e743a2033",
    ]
    assert _ask(central, "120e000000") == "13"
    notifier = state["notifiers"][0]
    assert notifier.done()
    assert notifier.cap() == 20


def test_close_stops_notifiers(served):
    central, state, conn = served
    _ask(central, "120e000100")
    conn.written.get(timeout=2)
    central.close()
    assert conn.closed
    assert state["notifiers"][0].done()


def test_loop_serves_until_connection_ends():
    conn = FakeConn([bytes.fromhex("028700"), bytes.fromhex("0a0900"), b""])
    central, _ = _build(conn)
    central.loop()
    written = []
    while not conn.written.empty():
        written.append(conn.written.get().hex())
    assert written == ["038700", "0b636f756e743a2031"]
    assert conn.closed


def test_central_id():
    central, _ = _build(FakeConn())
    central.addr = bytes.fromhex("0a0b0c0d0e0f")
    assert central.id() == "0a:0b:0c:0d:0e:0f"
    assert central.mtu == 23


def test_response_writer_capacity():
    w = ResponseWriter(4)
    assert w.write(b"ab") == 2
    assert w.write("cd") == 2
    assert w.getvalue() == b"abcd"
    with pytest.raises(ValueError):
        w.write(b"e")
    w.set_status(2)
    assert w.status == 2


def test_notifier_write_after_stop():
    conn = FakeConn()
    central, _ = _build(conn)
    cccd_attr = central.attrs.at(0x0E)
    n = Notifier(central, cccd_attr, 20)
    assert n.write(b"hi") == 5
    assert conn.written.get(timeout=1).hex() == "1b0d006869"
    n.stop()
    assert n.done()
    with pytest.raises(RuntimeError):
        n.write(b"again")