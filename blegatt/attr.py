"""The attribute table a GATT server exposes, and its generation from services."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from .att import ATTR_CHARACTERISTIC_UUID, ATTR_PRIMARY_SERVICE_UUID, UUID
from .model import Characteristic, Descriptor, Property, Service

__all__ = ["Attr", "AttrRange", "generate_attributes"]

log = logging.getLogger(__name__)


@dataclass
class Attr:
    """A single ATT attribute.

    ``pvt`` points at the service, characteristic or descriptor that owns it.
    A ``value`` of None means reads are served by the owner's read handler.
    """

    handle: int
    typ: UUID
    props: Property = Property(0)
    secure: Property = Property(0)
    value: Optional[bytes] = None
    pvt: Any = None


@dataclass
class AttrRange:
    """A contiguous run of attributes whose first handle is ``base``."""

    attrs: list[Attr]
    base: int

    def _index(self, handle: int) -> Optional[int]:
        if handle < self.base:
            return None
        if handle >= self.base + len(self.attrs):
            return len(self.attrs)
        return handle - self.base

    def at(self, handle: int) -> Optional[Attr]:
        """Return the attribute with ``handle``, or None if it is out of range."""
        if self.base <= handle < self.base + len(self.attrs):
            return self.attrs[handle - self.base]
        return None

    def subrange(self, start: int, end: int) -> list[Attr]:
        """Return the attributes with handles in ``[start, end]``, possibly none."""
        if start >= self.base + len(self.attrs):
            return []
        start_idx = max(start - self.base, 0)
        end_idx = self._index(end + 1)
        if end_idx is None:
            return []
        return self.attrs[start_idx:end_idx]


def _dump_attributes(attrs: list[Attr]) -> None:
    log.debug("Generating attribute table:")
    log.debug("handle\ttype\tprops\tsecure\tpvt\tvalue")
    for a in attrs:
        value = a.value.hex(" ").upper() if a.value else ""
        log.debug(
            "0x%04X\t0x%s\t0x%02X\t0x%02x\t%s\t[ %s ]",
            a.handle,
            a.typ,
            int(a.props),
            int(a.secure),
            type(a.pvt).__name__,
            value,
        )


def _descriptor_attribute(d: Descriptor, handle: int) -> Attr:
    d.handle = handle
    return Attr(handle=handle, typ=d.uuid, props=d.props, value=d.value, pvt=d)


def _characteristic_attributes(c: Characteristic, handle: int) -> tuple[int, list[Attr]]:
    c.handle = handle
    c.value_handle = handle + 1
    vh = c.value_handle
    declaration = Attr(
        handle=c.handle,
        typ=ATTR_CHARACTERISTIC_UUID,
        props=c.props,
        value=bytes([int(c.props) & 0xFF, vh & 0xFF, (vh >> 8) & 0xFF]) + c.uuid.raw,
        pvt=c,
    )
    value_attr = Attr(handle=vh, typ=c.uuid, props=c.props, value=c.value, pvt=c)
    handle += 2

    attrs = [declaration, value_attr]
    for d in c.descriptors:
        attrs.append(_descriptor_attribute(d, handle))
        handle += 1
    return handle, attrs


def _service_attributes(s: Service, handle: int, last: bool) -> tuple[int, list[Attr]]:
    s.handle = handle
    attrs = [
        Attr(
            handle=handle,
            typ=ATTR_PRIMARY_SERVICE_UUID,
            props=Property.READ,
            value=s.uuid.raw,
            pvt=s,
        )
    ]
    handle += 1

    for c in s.characteristics:
        handle, char_attrs = _characteristic_attributes(c, handle)
        attrs.extend(char_attrs)

    s.end_handle = handle - 1
    if last:
        handle = 0xFFFF
        s.end_handle = handle
    return handle, attrs


def generate_attributes(services: Iterable[Service], base: int) -> AttrRange:
    """Assign handles to ``services`` starting at ``base`` and build their table.

    The last service's group is extended to the end of the handle space.
    """
    services = list(services)
    attrs: list[Attr] = []
    handle = base
    for i, service in enumerate(services):
        handle, service_attrs = _service_attributes(service, handle, i == len(services) - 1)
        attrs.extend(service_attrs)
    _dump_attributes(attrs)
    return AttrRange(attrs=attrs, base=base)