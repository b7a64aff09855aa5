"""Ready-made sample services: GAP, GATT, battery and a counter."""

from __future__ import annotations

import logging
import time

from .att import (
    ATTR_APPEARANCE_UUID,
    ATTR_DEVICE_NAME_UUID,
    ATTR_GAP_UUID,
    ATTR_GATT_UUID,
    ATTR_PERIPHERAL_PRIVACY_UUID,
    ATTR_PREFERRED_PARAMS_UUID,
    ATTR_RECONNECTION_ADDR_UUID,
    ATTR_SERVICE_CHANGED_UUID,
    parse_uuid,
    uuid16,
)
from .model import STATUS_SUCCESS, ReadRequest, Request, Service

__all__ = [
    "new_gap_service",
    "new_gatt_service",
    "new_battery_service",
    "new_count_service",
]

log = logging.getLogger(__name__)

# Appearance: generic computer.
GAP_APPEARANCE_GENERIC_COMPUTER = bytes([0x00, 0x80])

COUNT_SERVICE_UUID = parse_uuid("09fc95c0-c111-11e3-9904-0002a5d5c51b")
COUNT_READ_UUID = parse_uuid("11fac9e0-c111-11e3-9246-0002a5d5c51b")
COUNT_WRITE_UUID = parse_uuid("16fe0d80-c111-11e3-b8c8-0002a5d5c51b")
COUNT_NOTIFY_UUID = parse_uuid("1c927b50-c116-11e3-8a33-0800200c9a66")


def new_gap_service(name: str) -> Service:
    """Generic Access service advertising ``name`` as the device name."""
    s = Service(ATTR_GAP_UUID)
    s.add_characteristic(ATTR_DEVICE_NAME_UUID).set_value(name.encode("utf-8"))
    s.add_characteristic(ATTR_APPEARANCE_UUID).set_value(GAP_APPEARANCE_GENERIC_COMPUTER)
    s.add_characteristic(ATTR_PERIPHERAL_PRIVACY_UUID).set_value(bytes([0x00]))
    s.add_characteristic(ATTR_RECONNECTION_ADDR_UUID).set_value(bytes(6))
    s.add_characteristic(ATTR_PREFERRED_PARAMS_UUID).set_value(
        bytes([0x06, 0x00, 0x06, 0x00, 0x00, 0x00, 0xD0, 0x07])
    )
    return s


def new_gatt_service() -> Service:
    """Generic Attribute service with a Service Changed characteristic."""
    s = Service(ATTR_GATT_UUID)

    def on_subscribe(request: Request, notifier) -> None:
        log.info("service changed indications are not sent")

    s.add_characteristic(ATTR_SERVICE_CHANGED_UUID).handle_notify(on_subscribe)
    return s


def new_battery_service() -> Service:
    """Battery service whose level starts at 100 and drops by one per read."""
    level = 100
    s = Service(uuid16(0x180F))
    c = s.add_characteristic(uuid16(0x2A19))

    def read_level(rsp, req: ReadRequest) -> None:
        nonlocal level
        rsp.write(bytes([level]))
        level = (level - 1) & 0xFF

    c.handle_read(read_level)
    # Characteristic Presentation Format.
    c.add_descriptor(uuid16(0x2904)).set_value(bytes([4, 1, 39, 173, 1, 0, 0]))
    return s


def new_count_service() -> Service:
    """Demo service: a read counter, a logged write and a one-per-second notifier."""
    n = 0
    s = Service(COUNT_SERVICE_UUID)

    def read_count(rsp, req: ReadRequest) -> None:
        nonlocal n
        rsp.write(f"count: {n}")
        n += 1

    def write_data(request: Request, data: bytes) -> int:
        log.info("Wrote: %s", bytes(data).decode("utf-8", errors="replace"))
        return STATUS_SUCCESS

    def notify_count(request: Request, notifier) -> None:
        count = 0
        while not notifier.done():
            try:
                notifier.write(f"Count: {count}")
            except RuntimeError:
                break
            count += 1
            time.sleep(1)

    s.add_characteristic(COUNT_READ_UUID).handle_read(read_count)
    s.add_characteristic(COUNT_WRITE_UUID).handle_write(write_data)
    s.add_characteristic(COUNT_NOTIFY_UUID).handle_notify(notify_count)
    return s