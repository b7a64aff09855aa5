"""Advertising and scan response packets (EIR data)."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .att import ATTR_GAP_UUID, ATTR_GATT_UUID, UUID

__all__ = [
    "MAX_EIR_PACKET_LENGTH",
    "AdvertisingDataError",
    "ServiceData",
    "Advertisement",
    "AdvPacket",
]

log = logging.getLogger(__name__)

MAX_EIR_PACKET_LENGTH = 31

TYPE_FLAGS = 0x01
TYPE_SOME_UUID16 = 0x02
TYPE_ALL_UUID16 = 0x03
TYPE_SOME_UUID32 = 0x04
TYPE_ALL_UUID32 = 0x05
TYPE_SOME_UUID128 = 0x06
TYPE_ALL_UUID128 = 0x07
TYPE_SHORT_NAME = 0x08
TYPE_COMPLETE_NAME = 0x09
TYPE_TX_POWER = 0x0A
TYPE_CLASS_OF_DEVICE = 0x0D
TYPE_SIMPLE_PAIRING_C192 = 0x0E
TYPE_SIMPLE_PAIRING_R192 = 0x0F
TYPE_SEC_MANAGER_TK = 0x10
TYPE_SEC_MANAGER_OOB = 0x11
TYPE_SLAVE_CONN_INT = 0x12
TYPE_SERVICE_SOL16 = 0x14
TYPE_SERVICE_SOL128 = 0x15
TYPE_SERVICE_DATA16 = 0x16
TYPE_PUB_TARGET_ADDR = 0x17
TYPE_RAND_TARGET_ADDR = 0x18
TYPE_APPEARANCE = 0x19
TYPE_ADV_INTERVAL = 0x1A
TYPE_LE_DEVICE_ADDR = 0x1B
TYPE_LE_ROLE = 0x1C
TYPE_SERVICE_SOL32 = 0x1F
TYPE_SERVICE_DATA32 = 0x20
TYPE_SERVICE_DATA128 = 0x21
TYPE_LE_SEC_CONFIRM = 0x22
TYPE_LE_SEC_RANDOM = 0x23
TYPE_MANUFACTURER_DATA = 0xFF

FLAG_LIMITED_DISCOVERABLE = 0x01
FLAG_GENERAL_DISCOVERABLE = 0x02
FLAG_LE_ONLY = 0x04
FLAG_BOTH_CONTROLLER = 0x08
FLAG_BOTH_HOST = 0x10

_SERVICE_WIDTHS = {
    TYPE_SOME_UUID16: 2,
    TYPE_ALL_UUID16: 2,
    TYPE_SOME_UUID32: 4,
    TYPE_ALL_UUID32: 4,
    TYPE_SOME_UUID128: 16,
    TYPE_ALL_UUID128: 16,
}

_SOLICITED_WIDTHS = {
    TYPE_SERVICE_SOL16: 2,
    TYPE_SERVICE_SOL32: 4,
    TYPE_SERVICE_SOL128: 16,
}


class AdvertisingDataError(ValueError):
    """Raised for malformed or oversized advertising data."""


@dataclass
class ServiceData:
    uuid: UUID
    data: bytes


def _uuid_list(data: bytes, width: int) -> list[UUID]:
    if len(data) % width:
        raise AdvertisingDataError("invalid advertise data")
    return [UUID(data[i:i + width]) for i in range(0, len(data), width)]


@dataclass
class Advertisement:
    """Decoded contents of an advertising report."""

    local_name: str = ""
    manufacturer_data: Optional[bytes] = None
    service_data: list[ServiceData] = field(default_factory=list)
    services: list[UUID] = field(default_factory=list)
    overflow_service: list[UUID] = field(default_factory=list)
    tx_power_level: int = 0
    connectable: bool = False
    solicited_service: list[UUID] = field(default_factory=list)

    def unmarshal(self, data: bytes) -> None:
        """Merge the fields of raw advertising data into this advertisement."""
        rest = bytes(data)
        while rest:
            if len(rest) < 2:
                raise AdvertisingDataError("invalid advertise data")
            length, typ = rest[0], rest[1]
            if length == 0 or len(rest) < 1 + length:
                raise AdvertisingDataError("invalid advertise data")
            body = rest[2:1 + length]
            if typ in _SERVICE_WIDTHS:
                self.services.extend(_uuid_list(body, _SERVICE_WIDTHS[typ]))
            elif typ in _SOLICITED_WIDTHS:
                self.solicited_service.extend(_uuid_list(body, _SOLICITED_WIDTHS[typ]))
            elif typ in (TYPE_SHORT_NAME, TYPE_COMPLETE_NAME):
                self.local_name = body.decode("utf-8", errors="replace")
            elif typ == TYPE_TX_POWER:
                if not body:
                    raise AdvertisingDataError("invalid advertise data")
                self.tx_power_level = body[0]
            elif typ == TYPE_MANUFACTURER_DATA:
                self.manufacturer_data = bytes(body)
            elif typ != TYPE_FLAGS:
                log.debug("DATA: [ %s ]", body.hex(" ").upper())
            rest = rest[1 + length:]


class AdvPacket:
    """Builder for advertising or scan response data."""

    def __init__(self, data: bytes = b"") -> None:
        self._buf = bytearray(data)

    def to_bytes(self) -> bytes:
        """Return the packet as exactly 31 bytes, zero padded."""
        return bytes(self._buf[:MAX_EIR_PACKET_LENGTH]).ljust(MAX_EIR_PACKET_LENGTH, b"\x00")

    def __len__(self) -> int:
        return min(len(self._buf), MAX_EIR_PACKET_LENGTH)

    def append_field(self, typ: int, data: bytes) -> AdvPacket:
        """Append a field, truncating its data to fit the packet."""
        data = bytes(data)
        if len(self._buf) + 2 + len(data) > MAX_EIR_PACKET_LENGTH:
            room = MAX_EIR_PACKET_LENGTH - len(self._buf) - 2
            if room < 0:
                raise AdvertisingDataError("max packet length is 31")
            data = data[:room]
        self._buf.append((len(data) + 1) & 0xFF)
        self._buf.append(typ & 0xFF)
        self._buf += data
        return self

    def append_flags(self, flags: int) -> AdvPacket:
        """Append a flags field."""
        return self.append_field(TYPE_FLAGS, bytes([flags & 0xFF]))

    def append_name(self, name: str) -> AdvPacket:
        """Append the name, as a complete name if it fits, else shortened."""
        raw = name.encode("utf-8")
        typ = TYPE_COMPLETE_NAME
        if len(self._buf) + 2 + len(raw) > MAX_EIR_PACKET_LENGTH:
            typ = TYPE_SHORT_NAME
        return self.append_field(typ, raw)

    def append_manufacturer_data(self, company_id: int, data: bytes) -> AdvPacket:
        """Append manufacturer data prefixed by the little-endian company id."""
        return self.append_field(
            TYPE_MANUFACTURER_DATA, (company_id & 0xFFFF).to_bytes(2, "little") + bytes(data)
        )

    def append_uuid_fit(self, uuids: Iterable[UUID]) -> bool:
        """Append service UUID fields while they fit; report whether all fit.

        The GAP and GATT service UUIDs are skipped.
        """
        wanted = [u for u in uuids if u != ATTR_GAP_UUID and u != ATTR_GATT_UUID]
        total = len(self._buf)
        fit = True
        for u in wanted:
            total += 2 + len(u)
            if total > MAX_EIR_PACKET_LENGTH:
                fit = False
                break

        for u in wanted:
            if len(self._buf) + 2 + len(u) > MAX_EIR_PACKET_LENGTH:
                break
            if len(u) == 2:
                self.append_field(TYPE_ALL_UUID16 if fit else TYPE_SOME_UUID16, u.raw)
            elif len(u) == 16:
                self.append_field(TYPE_ALL_UUID128 if fit else TYPE_SOME_UUID128, u.raw)
        return fit