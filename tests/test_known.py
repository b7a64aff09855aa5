from blegatt.att import parse_uuid, uuid16
from blegatt.known import (
    KNOWN_ATTRIBUTES,
    KNOWN_CHARACTERISTICS,
    KNOWN_DESCRIPTORS,
    KNOWN_SERVICES,
    attribute_name,
    characteristic_name,
    descriptor_name,
    register_attribute,
    register_characteristic,
    register_descriptor,
    register_service,
    service_name,
)


def test_service_names():
    assert service_name("180f") == "Battery Service"
    assert service_name(uuid16(0x1800)) == "Generic Access"


def test_characteristic_names():
    assert characteristic_name(uuid16(0x2A19)) == "Battery Level"
    assert characteristic_name("2a00") == "Device Name"


def test_descriptor_and_attribute_names():
    assert descriptor_name(uuid16(0x2902)) == "Client Characteristic Configuration"
    assert attribute_name(uuid16(0x2803)) == "Characteristic"


def test_unknown_names_are_empty():
    u = parse_uuid("09fc95c0-c111-11e3-9904-0002a5d5c51b")
    assert service_name(u) == ""
    assert characteristic_name(u) == ""
    assert descriptor_name(u) == ""
    assert attribute_name(u) == ""


def test_register_service_round_trip():
    u = parse_uuid("09fc95c0-c111-11e3-9904-0002a5d5c51b")
    try:
        register_service(str(u), "Counter", "com.example.counter")
        assert service_name(u) == "Counter"
        assert KNOWN_SERVICES[str(u)].type == "com.example.counter"
    finally:
        KNOWN_SERVICES.pop(str(u), None)


def test_register_characteristic_round_trip():
    try:
        register_characteristic("ffe1", "Custom", "com.example.custom")
        assert characteristic_name(uuid16(0xFFE1)) == "Custom"
    finally:
        KNOWN_CHARACTERISTICS.pop("ffe1", None)


def test_register_descriptor_and_attribute_round_trip():
    try:
        register_descriptor("ffe2", "Desc", "com.example.desc")
        register_attribute("ffe3", "Attr", "com.example.attr")
        assert descriptor_name("ffe2") == "Desc"
        assert attribute_name("ffe3") == "Attr"
    finally:
        KNOWN_DESCRIPTORS.pop("ffe2", None)
        KNOWN_ATTRIBUTES.pop("ffe3", None)


def test_register_replaces_existing():
    original = KNOWN_SERVICES["1800"]
    try:
        register_service("1800", "Renamed", "com.example.renamed")
        assert service_name("1800") == "Renamed"
    finally:
        KNOWN_SERVICES["1800"] = original
    assert service_name("1800") == "Generic Access"