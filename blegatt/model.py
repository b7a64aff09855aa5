"""GATT server data model: services, characteristics and descriptors."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntFlag
from typing import Any, Callable, Optional

from .att import ATTR_CLIENT_CHARACTERISTIC_CONFIG_UUID, UUID
from .known import characteristic_name, descriptor_name, service_name

__all__ = [
    "STATUS_SUCCESS",
    "STATUS_INVALID_OFFSET",
    "STATUS_UNEXPECTED_ERROR",
    "Property",
    "Request",
    "ReadRequest",
    "Service",
    "Characteristic",
    "Descriptor",
]

# Statuses for characteristic read/write operations (ATT error codes).
STATUS_SUCCESS = 0
STATUS_INVALID_OFFSET = 1
STATUS_UNEXPECTED_ERROR = 2

ReadHandler = Callable[[Any, "ReadRequest"], None]
WriteHandler = Callable[["Request", bytes], int]
NotifyHandler = Callable[["Request", Any], None]


class Property(IntFlag):
    """Characteristic property flags."""

    BROADCAST = 0x01
    READ = 0x02
    WRITE_NR = 0x04
    WRITE = 0x08
    NOTIFY = 0x10
    INDICATE = 0x20
    SIGNED_WRITE = 0x40
    EXTENDED = 0x80

    def __str__(self) -> str:
        names = (
            (Property.BROADCAST, "broadcast "),
            (Property.READ, "read "),
            (Property.WRITE_NR, "writeWithoutResponse "),
            (Property.WRITE, "write "),
            (Property.NOTIFY, "notify "),
            (Property.INDICATE, "indicate "),
            (Property.SIGNED_WRITE, "authenticateSignedWrites "),
            (Property.EXTENDED, "extendedProperties "),
        )
        return "".join(text for flag, text in names if int(self) & int(flag))


@dataclass
class Request:
    """Context of a request from a connected central."""

    central: Any = None


@dataclass
class ReadRequest(Request):
    """A read request: ``cap`` is the maximum reply length."""

    cap: int = 0
    offset: int = 0


class Service:
    """A BLE service."""

    def __init__(self, uuid: UUID) -> None:
        self.uuid = uuid
        self.characteristics: list[Characteristic] = []
        self.handle = 0
        self.end_handle = 0

    def __repr__(self) -> str:
        return f"Service({self.uuid})"

    def add_characteristic(self, uuid: UUID) -> Characteristic:
        """Add and return a characteristic; its UUID must be new to the service."""
        if any(c.uuid == uuid for c in self.characteristics):
            raise ValueError(f"service already contains a characteristic with uuid {uuid}")
        char = Characteristic(uuid, self)
        self.characteristics.append(char)
        return char

    def name(self) -> str:
        """Assigned name of the service, or "" if its UUID is not known."""
        return service_name(self.uuid)


class Characteristic:
    """A BLE characteristic."""

    def __init__(
        self,
        uuid: UUID,
        service: Optional[Service] = None,
        props: Property = Property(0),
        handle: int = 0,
        value_handle: int = 0,
    ) -> None:
        self.uuid = uuid
        self.service = service
        self.props = Property(props)
        self.secure = Property(0)
        self.cccd: Optional[Descriptor] = None
        self.descriptors: list[Descriptor] = []
        self.value: Optional[bytes] = None
        self.read_handler: Optional[ReadHandler] = None
        self.write_handler: Optional[WriteHandler] = None
        self.notify_handler: Optional[NotifyHandler] = None
        self.handle = handle
        self.value_handle = value_handle
        self.end_handle = 0

    def __repr__(self) -> str:
        return f"Characteristic({self.uuid})"

    def name(self) -> str:
        """Assigned name of the characteristic, or "" if unknown."""
        return characteristic_name(self.uuid)

    def add_descriptor(self, uuid: UUID) -> Descriptor:
        """Add and return a descriptor; its UUID must be new to the characteristic."""
        if any(d.uuid == uuid for d in self.descriptors):
            raise ValueError(f"characteristic already contains a descriptor with uuid {uuid}")
        desc = Descriptor(uuid, characteristic=self)
        self.descriptors.append(desc)
        return desc

    def set_value(self, value: bytes) -> None:
        """Serve reads with a static value."""
        if self.read_handler is not None:
            raise ValueError("characteristic has been configured with a read handler")
        self.props |= Property.READ
        self.value = bytes(value)

    def handle_read(self, handler: ReadHandler) -> None:
        """Route read requests to ``handler(response_writer, read_request)``."""
        if self.value is not None:
            raise ValueError("characteristic has been configured with a static value")
        self.props |= Property.READ
        self.read_handler = handler

    def handle_write(self, handler: WriteHandler) -> None:
        """Route write and write-without-response requests to ``handler(request, data)``."""
        self.props |= Property.WRITE | Property.WRITE_NR
        self.write_handler = handler

    def handle_notify(self, handler: NotifyHandler) -> None:
        """Route subscriptions to ``handler(request, notifier)`` and add a CCC descriptor."""
        if self.cccd is not None:
            return
        notify = Property.NOTIFY | Property.INDICATE
        self.props |= notify
        self.notify_handler = handler
        secure = Property(0)
        if self.secure & notify:
            secure = Property.READ | Property.WRITE
        cccd = Descriptor(ATTR_CLIENT_CHARACTERISTIC_CONFIG_UUID, characteristic=self)
        cccd.props = Property.READ | Property.WRITE | Property.WRITE_NR
        cccd.secure = secure
        cccd.value = b"\x00\x00"
        self.cccd = cccd
        self.descriptors.append(cccd)


class Descriptor:
    """A BLE descriptor."""

    def __init__(
        self,
        uuid: UUID,
        handle: int = 0,
        characteristic: Optional[Characteristic] = None,
    ) -> None:
        self.uuid = uuid
        self.handle = handle
        self.characteristic = characteristic
        self.props = Property(0)
        self.secure = Property(0)
        self.value: Optional[bytes] = None
        self.read_handler: Optional[ReadHandler] = None
        self.write_handler: Optional[WriteHandler] = None

    def __repr__(self) -> str:
        return f"Descriptor({self.uuid})"

    def name(self) -> str:
        """Assigned name of the descriptor, or "" if unknown."""
        return descriptor_name(self.uuid)

    def set_value(self, value: bytes) -> None:
        """Serve reads with a static value."""
        if self.read_handler is not None:
            raise ValueError("descriptor has been configured with a read handler")
        self.props |= Property.READ
        self.value = bytes(value)

    def handle_read(self, handler: ReadHandler) -> None:
        """Route read requests to ``handler(response_writer, read_request)``."""
        if self.value is not None:
            raise ValueError("descriptor has been configured with a static value")
        self.props |= Property.READ
        self.read_handler = handler

    def handle_write(self, handler: WriteHandler) -> None:
        """Route write requests to ``handler(request, data)``."""
        self.props |= Property.WRITE | Property.WRITE_NR
        self.write_handler = handler