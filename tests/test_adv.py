import pytest

from blegatt.adv import (
    TYPE_COMPLETE_NAME,
    TYPE_SHORT_NAME,
    AdvertisingDataError,
    Advertisement,
    AdvPacket,
)
from blegatt.att import parse_uuid, uuid16


@pytest.mark.parametrize(
    "curr, name, want_bytes, want_len",
    [
        (b"", "ABCDE", bytes([0x06, TYPE_COMPLETE_NAME]) + b"ABCDE", 7),
        (
            b"111111111122222222223333",
            "ABCDE",
            b"111111111122222222223333" + bytes([0x06, TYPE_COMPLETE_NAME]) + b"ABCDE",
            31,
        ),
        (
            b"1111111111222222222233333",
            "ABCDE",
            b"1111111111222222222233333" + bytes([0x05, TYPE_SHORT_NAME]) + b"ABCD",
            31,
        ),
    ],
)
def test_append_name(curr, name, want_bytes, want_len):
    packet = AdvPacket(curr).append_name(name)
    assert packet.to_bytes() == want_bytes.ljust(31, b"\x00")
    assert len(packet) == want_len


AB = parse_uuid("ABABABABABABABABABABABABABABABAB")
CD = parse_uuid("CDCDCDCDCDCDCDCDCDCDCDCDCDCDCDCD")


@pytest.mark.parametrize(
    "uuids, want, fit",
    [
        ([uuid16(0xFAFE)], "0201060303fefa", True),
        ([uuid16(0xFAFE), uuid16(0xFAF9)], "0201060303fefa0303f9fa", True),
        ([AB], "0201061107" + "ab" * 16, True),
        ([AB, CD], "0201061106" + "ab" * 16, False),
        (
            [uuid16(v) for v in (0xAAAA, 0xBBBB, 0xCCCC, 0xDDDD, 0xEEEE, 0xFFFF, 0xAAAA, 0xBBBB)],
            "0201060302aaaa0302bbbb0302cccc0302dddd0302eeee0302ffff0302aaaa",
            False,
        ),
    ],
)
def test_append_uuid_fit(uuids, want, fit):
    packet = AdvPacket().append_flags(0x06)
    assert packet.append_uuid_fit(uuids) is fit
    assert packet.to_bytes()[: len(packet)].hex() == want


def test_append_uuid_fit_skips_gap_and_gatt():
    packet = AdvPacket()
    assert packet.append_uuid_fit([uuid16(0x1800), uuid16(0x1801)]) is True
    assert len(packet) == 0


def test_append_manufacturer_data_little_endian_id():
    packet = AdvPacket().append_manufacturer_data(0x004C, b"\x02\x15")
    assert packet.to_bytes()[: len(packet)] == bytes([0x05, 0xFF, 0x4C, 0x00, 0x02, 0x15])


def test_append_field_truncates_to_fit():
    packet = AdvPacket(b"x" * 25).append_field(0xFF, b"abcdefgh")
    assert len(packet) == 31
    assert packet.to_bytes()[25:] == bytes([5, 0xFF]) + b"abcd"


def test_append_field_with_no_room_raises():
    with pytest.raises(AdvertisingDataError):
        AdvPacket(b"x" * 30).append_field(0x09, b"a")


def test_unmarshal_solicited_tx_power_and_128bit():
    raw = (
        bytes([3, 0x14, 0x0D, 0x18])
        + bytes([2, 0x0A, 0xF4])
        + bytes([17, 0x07]) + AB.raw
        + bytes([3, 0x16, 0x01, 0x02])
    )
    adv = Advertisement()
    adv.unmarshal(raw)
    assert adv.solicited_service == [uuid16(0x180D)]
    assert adv.tx_power_level == 0xF4
    assert adv.services == [AB]
    assert adv.service_data == []


@pytest.mark.parametrize(
    "raw",
    [b"\x02", b"\x05\x09ab", b"\x00\x01", b"\x04\x03\x01\x02\x03"],
)
def test_unmarshal_rejects_malformed(raw):
    with pytest.raises(AdvertisingDataError):
        Advertisement().unmarshal(raw)