import pytest

from blegatt.device import (
    DeviceHandlers,
    State,
    central_connected,
    central_disconnected,
    peripheral_connected,
    peripheral_disconnected,
    peripheral_discovered,
)


@pytest.mark.parametrize(
    "state, text",
    [
        (State.UNKNOWN, "Unknown"),
        (State.RESETTING, "Resetting"),
        (State.UNSUPPORTED, "Unsupported"),
        (State.UNAUTHORIZED, "Unauthorized"),
        (State.POWERED_OFF, "PoweredOff"),
        (State.POWERED_ON, "PoweredOn"),
    ],
)
def test_state_str(state, text):
    assert str(state) == text


def test_state_values_match_numbers():
    assert State(5) is State.POWERED_ON
    assert State(0) is State.UNKNOWN


def test_handle_registers_every_handler():
    d = DeviceHandlers()

    def on_cc(c):
        pass

    def on_cd(c):
        pass

    def on_pd(p, a, rssi):
        pass

    def on_pc(p, err):
        pass

    def on_pdc(p, err):
        pass

    d.handle(
        central_connected(on_cc),
        central_disconnected(on_cd),
        peripheral_discovered(on_pd),
        peripheral_connected(on_pc),
        peripheral_disconnected(on_pdc),
    )
    assert d.on_central_connected is on_cc
    assert d.on_central_disconnected is on_cd
    assert d.on_peripheral_discovered is on_pd
    assert d.on_peripheral_connected is on_pc
    assert d.on_peripheral_disconnected is on_pdc
    assert d.on_state_changed is None


def test_later_handler_replaces_earlier():
    d = DeviceHandlers()
    first, second = (lambda c: 1), (lambda c: 2)
    d.handle(central_connected(first), central_connected(second))
    assert d.on_central_connected is second


def test_option_applies_in_order():
    d = DeviceHandlers()
    seen = []
    d.option(lambda dev: seen.append(("a", dev)), lambda dev: seen.append(("b", dev)))
    assert seen == [("a", d), ("b", d)]


def test_option_failure_raises():
    d = DeviceHandlers()

    def bad(dev):
        raise ValueError("bad option")

    with pytest.raises(ValueError, match="bad option"):
        d.option(bad)