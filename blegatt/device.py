"""Device state, and the handlers and options that configure a device."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable, Optional

__all__ = [
    "State",
    "DeviceHandlers",
    "Handler",
    "Option",
    "central_connected",
    "central_disconnected",
    "peripheral_discovered",
    "peripheral_connected",
    "peripheral_disconnected",
]


class State(IntEnum):
    """Power and availability state of a BLE device."""

    UNKNOWN = 0
    RESETTING = 1
    UNSUPPORTED = 2
    UNAUTHORIZED = 3
    POWERED_OFF = 4
    POWERED_ON = 5

    def __str__(self) -> str:
        return _STATE_NAMES[self]


_STATE_NAMES = {
    State.UNKNOWN: "Unknown",
    State.RESETTING: "Resetting",
    State.UNSUPPORTED: "Unsupported",
    State.UNAUTHORIZED: "Unauthorized",
    State.POWERED_OFF: "PoweredOff",
    State.POWERED_ON: "PoweredOn",
}

Handler = Callable[["DeviceHandlers"], None]
Option = Callable[["DeviceHandlers"], Any]


@dataclass
class DeviceHandlers:
    """Callbacks a device invokes on events.

    on_state_changed(device, state) runs when the device state changes;
    on_central_connected(central) / on_central_disconnected(central) when a
    remote central connects or disconnects; on_peripheral_discovered(
    peripheral, advertisement, rssi) when a scan finds a peripheral; and
    on_peripheral_connected(peripheral, error) / on_peripheral_disconnected(
    peripheral, error) when a remote peripheral connects or disconnects.
    """

    on_state_changed: Optional[Callable[[Any, State], None]] = None
    on_central_connected: Optional[Callable[[Any], None]] = None
    on_central_disconnected: Optional[Callable[[Any], None]] = None
    on_peripheral_discovered: Optional[Callable[[Any, Any, int], None]] = None
    on_peripheral_connected: Optional[Callable[[Any, Optional[BaseException]], None]] = None
    on_peripheral_disconnected: Optional[Callable[[Any, Optional[BaseException]], None]] = None

    def handle(self, *args: Handler) -> None:
        """Register the given handlers, in order."""
        for handler in args:
            handler(self)

    def option(self, *args: Option) -> None:
        """Apply the given options, in order; an option that fails raises."""
        for opt in args:
            opt(self)


def central_connected(func: Callable[[Any], None]) -> Handler:
    """Handler that calls ``func(central)`` when a central connects."""

    def register(device: DeviceHandlers) -> None:
        device.on_central_connected = func

    return register


def central_disconnected(func: Callable[[Any], None]) -> Handler:
    """Handler that calls ``func(central)`` when a central disconnects."""

    def register(device: DeviceHandlers) -> None:
        device.on_central_disconnected = func

    return register


def peripheral_discovered(func: Callable[[Any, Any, int], None]) -> Handler:
    """Handler that calls ``func(peripheral, advertisement, rssi)`` on discovery."""

    def register(device: DeviceHandlers) -> None:
        device.on_peripheral_discovered = func

    return register


def peripheral_connected(func: Callable[[Any, Optional[BaseException]], None]) -> Handler:
    """Handler that calls ``func(peripheral, error)`` when a peripheral connects."""

    def register(device: DeviceHandlers) -> None:
        device.on_peripheral_connected = func

    return register


def peripheral_disconnected(func: Callable[[Any, Optional[BaseException]], None]) -> Handler:
    """Handler that calls ``func(peripheral, error)`` when a peripheral disconnects."""

    def register(device: DeviceHandlers) -> None:
        device.on_peripheral_disconnected = func

    return register