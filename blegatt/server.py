"""Serving the ATT protocol to a connected central."""

from __future__ import annotations

import logging
import threading
from enum import IntEnum
from functools import partial
from typing import Callable, Optional, Protocol, Union

from .att import (
    ATT_OP_FIND_BY_TYPE_VALUE_REQ,
    ATT_OP_FIND_BY_TYPE_VALUE_RSP,
    ATT_OP_FIND_INFO_REQ,
    ATT_OP_FIND_INFO_RSP,
    ATT_OP_HANDLE_NOTIFY,
    ATT_OP_MTU_REQ,
    ATT_OP_MTU_RSP,
    ATT_OP_READ_BLOB_REQ,
    ATT_OP_READ_BLOB_RSP,
    ATT_OP_READ_BY_GROUP_REQ,
    ATT_OP_READ_BY_GROUP_RSP,
    ATT_OP_READ_BY_TYPE_REQ,
    ATT_OP_READ_BY_TYPE_RSP,
    ATT_OP_READ_REQ,
    ATT_OP_READ_RSP,
    ATT_OP_WRITE_CMD,
    ATT_OP_WRITE_REQ,
    ATT_OP_WRITE_RSP,
    ATTR_CLIENT_CHARACTERISTIC_CONFIG_UUID,
    ATTR_PRIMARY_SERVICE_UUID,
    GATT_CCC_INDICATE_FLAG,
    GATT_CCC_NOTIFY_FLAG,
    UUID,
    AttEcode,
    att_error_rsp,
)
from .attr import Attr, AttrRange
from .l2cap import L2capWriter
from .model import (
    STATUS_SUCCESS,
    Characteristic,
    Descriptor,
    Property,
    ReadRequest,
    Request,
)

__all__ = ["Security", "ResponseWriter", "Notifier", "Central"]

log = logging.getLogger(__name__)

# L2CAP must support at least 48 bytes; 672 is the default MTU.
_READ_SIZE = 672
_MIN_MTU = 23
_MAX_MTU = 256


class Connection(Protocol):
    def read(self, size: int) -> bytes: ...

    def write(self, data: bytes) -> Optional[int]: ...

    def close(self) -> None: ...


class Security(IntEnum):
    LOW = 0
    MED = 1
    HIGH = 2


class _MalformedRequest(Exception):
    """A request PDU too short for its opcode."""


def _u16(data: bytes, offset: int) -> int:
    if len(data) < offset + 2:
        raise _MalformedRequest
    return int.from_bytes(data[offset:offset + 2], "little")


def _handle_range(data: bytes) -> tuple[int, int]:
    return _u16(data, 0), _u16(data, 2)


class ResponseWriter:
    """Collects a read response of at most ``capacity`` bytes."""

    def __init__(self, capacity: int) -> None:
        self.capacity = capacity
        self._buf = bytearray()
        self.status = STATUS_SUCCESS

    def write(self, data: Union[bytes, str]) -> int:
        """Append ``data`` (str is UTF-8 encoded); raise ValueError if it does not fit."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        avail = self.capacity - len(self._buf)
        if avail < len(data):
            raise ValueError(f"requested write {len(data)} bytes, {avail} available")
        self._buf += data
        return len(data)

    def set_status(self, status: int) -> None:
        """Report the result of the read operation."""
        self.status = status

    def getvalue(self) -> bytes:
        return bytes(self._buf)


class Notifier:
    """Sends notifications of one attribute to a central until stopped."""

    def __init__(self, central: "Central", attr: Attr, maxlen: int) -> None:
        self.central = central
        self.attr = attr
        self.maxlen = maxlen
        self._lock = threading.Lock()
        self._done = False

    def write(self, data: Union[bytes, str]) -> int:
        """Send ``data`` as a notification; raise RuntimeError once stopped."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        with self._lock:
            if self._done:
                raise RuntimeError("central stopped notifications")
            return self.central.send_notification(self.attr, data)

    def done(self) -> bool:
        """Whether the central asked to receive no more notifications."""
        with self._lock:
            return self._done

    def cap(self) -> int:
        """Maximum number of bytes in a single notification."""
        return self.maxlen

    def stop(self) -> None:
        with self._lock:
            self._done = True


class Central:
    """A connected central, served from the attribute table ``attrs``."""

    def __init__(self, attrs: AttrRange, addr: bytes, conn: Connection) -> None:
        self.attrs = attrs
        self.mtu = _MIN_MTU
        self.addr = bytes(addr)
        self.security = Security.LOW
        self._conn = conn
        self._notifiers: dict[int, Notifier] = {}
        self._notifiers_lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._handlers: dict[int, Callable[[bytes], Optional[bytes]]] = {
            ATT_OP_MTU_REQ: self._handle_mtu,
            ATT_OP_FIND_INFO_REQ: self._handle_find_info,
            ATT_OP_FIND_BY_TYPE_VALUE_REQ: self._handle_find_by_type_value,
            ATT_OP_READ_BY_TYPE_REQ: self._handle_read_by_type,
            ATT_OP_READ_REQ: self._handle_read,
            ATT_OP_READ_BLOB_REQ: self._handle_read_blob,
            ATT_OP_READ_BY_GROUP_REQ: self._handle_read_by_group,
            ATT_OP_WRITE_REQ: partial(self._handle_write, ATT_OP_WRITE_REQ),
            ATT_OP_WRITE_CMD: partial(self._handle_write, ATT_OP_WRITE_CMD),
        }

    def id(self) -> str:
        """The central's hardware address, as colon-separated hex."""
        return ":".join(f"{b:02x}" for b in self.addr)

    def close(self) -> None:
        """Stop every notifier and close the connection."""
        with self._notifiers_lock:
            for notifier in self._notifiers.values():
                notifier.stop()
        self._conn.close()

    def loop(self) -> None:
        """Serve requests until the connection ends, then close it."""
        while True:
            try:
                data = self._conn.read(_READ_SIZE)
            except OSError as exc:
                log.debug("read failed: %s", exc)
                data = b""
            if not data:
                self.close()
                break
            rsp = self.handle_request(data)
            if rsp is not None:
                self._write(rsp)

    def _write(self, data: bytes) -> int:
        with self._write_lock:
            written = self._conn.write(data)
        return len(data) if written is None else written

    def handle_request(self, data: bytes) -> Optional[bytes]:
        """Answer one ATT request PDU; None means no response is due."""
        if not data:
            raise ValueError("empty ATT request")
        op, req = data[0], bytes(data[1:])
        handler = self._handlers.get(op)
        if handler is None:
            return att_error_rsp(op, 0x0000, AttEcode.REQ_NOT_SUPP)
        try:
            return handler(req)
        except _MalformedRequest:
            return att_error_rsp(op, 0x0000, AttEcode.INVALID_PDU)

    def _serve_read(self, a: Attr, offset: int) -> bytes:
        cap = self.mtu - 1
        rsp = ResponseWriter(cap)
        req = ReadRequest(central=self, cap=cap, offset=offset)
        owner = a.pvt
        if isinstance(owner, (Characteristic, Descriptor)) and owner.read_handler is not None:
            owner.read_handler(rsp, req)
        return rsp.getvalue()

    def _handle_mtu(self, data: bytes) -> bytes:
        self.mtu = min(max(_u16(data, 0), _MIN_MTU), _MAX_MTU)
        return bytes([ATT_OP_MTU_RSP, self.mtu & 0xFF, self.mtu >> 8])

    def _handle_find_info(self, data: bytes) -> bytes:
        start, end = _handle_range(data)
        w = L2capWriter(self.mtu)
        w.write_byte_fit(ATT_OP_FIND_INFO_RSP)

        uuid_len = None
        for a in self.attrs.subrange(start, end):
            if uuid_len is None:
                uuid_len = len(a.typ)
                w.write_byte_fit(0x01 if uuid_len == 2 else 0x02)
            if len(a.typ) != uuid_len:
                break
            w.chunk()
            w.write_uint16_fit(a.handle)
            w.write_uuid_fit(a.typ)
            if not w.commit():
                break

        if uuid_len is None:
            return att_error_rsp(ATT_OP_FIND_INFO_REQ, start, AttEcode.ATTR_NOT_FOUND)
        return w.getvalue()

    def _handle_find_by_type_value(self, data: bytes) -> bytes:
        start, end = _handle_range(data)
        if len(data) < 6:
            raise _MalformedRequest
        typ = UUID(data[4:6])
        wanted = UUID(data[6:])

        # Only "Discover Primary Services By Service UUID" is supported.
        if typ != ATTR_PRIMARY_SERVICE_UUID:
            return att_error_rsp(ATT_OP_FIND_BY_TYPE_VALUE_REQ, start, AttEcode.ATTR_NOT_FOUND)

        w = L2capWriter(self.mtu)
        w.write_byte_fit(ATT_OP_FIND_BY_TYPE_VALUE_RSP)
        wrote = False
        for a in self.attrs.subrange(start, end):
            if a.typ != ATTR_PRIMARY_SERVICE_UUID or UUID(a.value or b"") != wanted:
                continue
            service = a.pvt
            w.chunk()
            w.write_uint16_fit(service.handle)
            w.write_uint16_fit(service.end_handle)
            if not w.commit():
                break
            wrote = True

        if not wrote:
            return att_error_rsp(ATT_OP_FIND_BY_TYPE_VALUE_REQ, start, AttEcode.ATTR_NOT_FOUND)
        return w.getvalue()

    def _handle_read_by_type(self, data: bytes) -> bytes:
        start, end = _handle_range(data)
        typ = UUID(data[4:])

        w = L2capWriter(self.mtu)
        w.write_byte_fit(ATT_OP_READ_BY_TYPE_RSP)
        value_len = None
        for a in self.attrs.subrange(start, end):
            if a.typ != typ:
                continue
            if a.secure & Property.READ and self.security > Security.LOW:
                return att_error_rsp(ATT_OP_READ_BY_TYPE_REQ, start, AttEcode.AUTHENTICATION)
            value = a.value if a.value is not None else self._serve_read(a, 0)
            if value_len is None:
                value_len = len(value)
                w.write_byte_fit(value_len + 2)
            if len(value) != value_len:
                break
            w.chunk()
            w.write_uint16_fit(a.handle)
            w.write_fit(value)
            if not w.commit():
                break

        if value_len is None:
            return att_error_rsp(ATT_OP_READ_BY_TYPE_REQ, start, AttEcode.ATTR_NOT_FOUND)
        return w.getvalue()

    def _readable_attr(self, op: int, handle: int) -> Union[Attr, bytes]:
        a = self.attrs.at(handle)
        if a is None:
            return att_error_rsp(op, handle, AttEcode.INVALID_HANDLE)
        if not a.props & Property.READ:
            return att_error_rsp(op, handle, AttEcode.READ_NOT_PERM)
        if a.secure & Property.READ and self.security > Security.LOW:
            return att_error_rsp(op, handle, AttEcode.AUTHENTICATION)
        return a

    def _handle_read(self, data: bytes) -> bytes:
        handle = _u16(data, 0)
        a = self._readable_attr(ATT_OP_READ_REQ, handle)
        if isinstance(a, bytes):
            return a
        value = a.value if a.value is not None else self._serve_read(a, 0)

        w = L2capWriter(self.mtu)
        w.write_byte_fit(ATT_OP_READ_RSP)
        w.chunk()
        w.write_fit(value)
        w.commit_fit()
        return w.getvalue()

    def _handle_read_blob(self, data: bytes) -> bytes:
        handle = _u16(data, 0)
        offset = _u16(data, 2)
        a = self._readable_attr(ATT_OP_READ_BLOB_REQ, handle)
        if isinstance(a, bytes):
            return a
        value = a.value
        if value is None:
            value = self._serve_read(a, offset)
            offset = 0  # the handler has already applied the offset

        w = L2capWriter(self.mtu)
        w.write_byte_fit(ATT_OP_READ_BLOB_RSP)
        w.chunk()
        w.write_fit(value)
        if not w.chunk_seek(offset):
            return att_error_rsp(ATT_OP_READ_BLOB_REQ, handle, AttEcode.INVALID_OFFSET)
        w.commit_fit()
        return w.getvalue()

    def _handle_read_by_group(self, data: bytes) -> bytes:
        start, end = _handle_range(data)
        typ = UUID(data[4:])

        # Only "Discover All Primary Services" is supported.
        if typ != ATTR_PRIMARY_SERVICE_UUID:
            return att_error_rsp(ATT_OP_READ_BY_GROUP_REQ, start, AttEcode.UNSUPP_GRP_TYPE)

        w = L2capWriter(self.mtu)
        w.write_byte_fit(ATT_OP_READ_BY_GROUP_RSP)
        uuid_len = None
        for a in self.attrs.subrange(start, end):
            if a.typ != ATTR_PRIMARY_SERVICE_UUID:
                continue
            value = a.value or b""
            if uuid_len is None:
                uuid_len = len(value)
                w.write_byte_fit(uuid_len + 4)
            if len(value) != uuid_len:
                break
            service = a.pvt
            w.chunk()
            w.write_uint16_fit(service.handle)
            w.write_uint16_fit(service.end_handle)
            w.write_fit(value)
            if not w.commit():
                break

        if uuid_len is None:
            return att_error_rsp(ATT_OP_READ_BY_GROUP_REQ, start, AttEcode.ATTR_NOT_FOUND)
        return w.getvalue()

    def _handle_write(self, op: int, data: bytes) -> Optional[bytes]:
        handle = _u16(data, 0)
        value = data[2:]

        a = self.attrs.at(handle)
        if a is None:
            return att_error_rsp(op, handle, AttEcode.INVALID_HANDLE)

        no_rsp = op == ATT_OP_WRITE_CMD
        flag = Property.WRITE_NR if no_rsp else Property.WRITE
        if not a.props & flag:
            return att_error_rsp(op, handle, AttEcode.WRITE_NOT_PERM)
        if not a.secure & flag and self.security > Security.LOW:
            return att_error_rsp(op, handle, AttEcode.AUTHENTICATION)

        if a.typ != ATTR_CLIENT_CHARACTERISTIC_CONFIG_UUID:
            owner = a.pvt
            if isinstance(owner, (Characteristic, Descriptor)) and owner.write_handler is not None:
                owner.write_handler(Request(central=self), value)
            return None if no_rsp else bytes([ATT_OP_WRITE_RSP])

        if len(value) != 2:
            return att_error_rsp(op, handle, AttEcode.INVAL_ATTR_VALUE_LEN)
        ccc = int.from_bytes(value, "little")
        if ccc & (GATT_CCC_NOTIFY_FLAG | GATT_CCC_INDICATE_FLAG):
            self._start_notify(a, self.mtu - 3)
        else:
            self._stop_notify(a)
        return None if no_rsp else bytes([ATT_OP_WRITE_RSP])

    def send_notification(self, attr: Attr, data: bytes) -> int:
        """Send a Handle Value Notification for the characteristic owning ``attr``."""
        w = L2capWriter(self.mtu)
        w.write_byte_fit(ATT_OP_HANDLE_NOTIFY)
        w.write_uint16_fit(attr.pvt.characteristic.value_handle)
        w.write_fit(bytes(data))
        return self._write(w.getvalue())

    def _start_notify(self, a: Attr, maxlen: int) -> None:
        with self._notifiers_lock:
            if a.handle in self._notifiers:
                return
            char = a.pvt.characteristic
            notifier = Notifier(self, a, maxlen)
            self._notifiers[a.handle] = notifier
            handler = char.notify_handler
        if handler is not None:
            threading.Thread(
                target=handler, args=(Request(central=self), notifier), daemon=True
            ).start()

    def _stop_notify(self, a: Attr) -> None:
        with self._notifiers_lock:
            notifier = self._notifiers.pop(a.handle, None)
            if notifier is not None:
                notifier.stop()