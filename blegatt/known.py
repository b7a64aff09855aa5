"""Registry of assigned names for services, attributes, descriptors and characteristics."""

from __future__ import annotations

from typing import NamedTuple

__all__ = [
    "KnownEntry",
    "register_service",
    "register_attribute",
    "register_descriptor",
    "register_characteristic",
    "service_name",
    "attribute_name",
    "descriptor_name",
    "characteristic_name",
]


class KnownEntry(NamedTuple):
    name: str
    type: str


def _table(entries: dict[str, tuple[str, str]]) -> dict[str, KnownEntry]:
    return {key: KnownEntry(*value) for key, value in entries.items()}


KNOWN_SERVICES = _table({
    "1800": ("Generic Access", "org.bluetooth.service.generic_access"),
    "1801": ("Generic Attribute", "org.bluetooth.service.generic_attribute"),
    "1802": ("Immediate Alert", "org.bluetooth.service.immediate_alert"),
    "1803": ("Link Loss", "org.bluetooth.service.link_loss"),
    "1804": ("Tx Power", "org.bluetooth.service.tx_power"),
    "1805": ("Current Time Service", "org.bluetooth.service.current_time"),
    "1806": ("Reference Time Update Service", "org.bluetooth.service.reference_time_update"),
    "1807": ("Next DST Change Service", "org.bluetooth.service.next_dst_change"),
    "1808": ("Glucose", "org.bluetooth.service.glucose"),
    "1809": ("Health Thermometer", "org.bluetooth.service.health_thermometer"),
    "180a": ("Device Information", "org.bluetooth.service.device_information"),
    "180d": ("Heart Rate", "org.bluetooth.service.heart_rate"),
    "180e": ("Phone Alert Status Service", "org.bluetooth.service.phone_alert_service"),
    "180f": ("Battery Service", "org.bluetooth.service.battery_service"),
    "1810": ("Blood Pressure", "org.bluetooth.service.blood_pressuer"),
    "1811": ("Alert Notification Service", "org.bluetooth.service.alert_notification"),
    "1812": ("Human Interface Device", "org.bluetooth.service.human_interface_device"),
    "1813": ("Scan Parameters", "org.bluetooth.service.scan_parameters"),
    "1814": ("Running Speed and Cadence", "org.bluetooth.service.running_speed_and_cadence"),
    "1815": ("Cycling Speed and Cadence", "org.bluetooth.service.cycling_speed_and_cadence"),
})

KNOWN_ATTRIBUTES = _table({
    "2800": ("Primary Service", "org.bluetooth.attribute.gatt.primary_service_declaration"),
    "2801": ("Secondary Service", "org.bluetooth.attribute.gatt.secondary_service_declaration"),
    "2802": ("Include", "org.bluetooth.attribute.gatt.include_declaration"),
    "2803": ("Characteristic", "org.bluetooth.attribute.gatt.characteristic_declaration"),
})

KNOWN_DESCRIPTORS = _table({
    "2900": ("Characteristic Extended Properties", "org.bluetooth.descriptor.gatt.characteristic_extended_properties"),
    "2901": ("Characteristic User Description", "org.bluetooth.descriptor.gatt.characteristic_user_description"),
    "2902": ("Client Characteristic Configuration", "org.bluetooth.descriptor.gatt.client_characteristic_configuration"),
    "2903": ("Server Characteristic Configuration", "org.bluetooth.descriptor.gatt.server_characteristic_configuration"),
    "2904": ("Characteristic Presentation Format", "org.bluetooth.descriptor.gatt.characteristic_presentation_format"),
    "2905": ("Characteristic Aggregate Format", "org.bluetooth.descriptor.gatt.characteristic_aggregate_format"),
    "2906": ("Valid Range", "org.bluetooth.descriptor.valid_range"),
    "2907": ("External Report Reference", "org.bluetooth.descriptor.external_report_reference"),
    "2908": ("Report Reference", "org.bluetooth.descriptor.report_reference"),
})

KNOWN_CHARACTERISTICS = _table({
    "2a00": ("Device Name", "org.bluetooth.characteristic.gap.device_name"),
    "2a01": ("Appearance", "org.bluetooth.characteristic.gap.appearance"),
    "2a02": ("Peripheral Privacy Flag", "org.bluetooth.characteristic.gap.peripheral_privacy_flag"),
    "2a03": ("Reconnection Address", "org.bluetooth.characteristic.gap.reconnection_address"),
    "2a04": ("Peripheral Preferred Connection Parameters", "org.bluetooth.characteristic.gap.peripheral_preferred_connection_parameters"),
    "2a05": ("Service Changed", "org.bluetooth.characteristic.gatt.service_changed"),
    "2a06": ("Alert Level", "org.bluetooth.characteristic.alert_level"),
    "2a07": ("Tx Power Level", "org.bluetooth.characteristic.tx_power_level"),
    "2a08": ("Date Time", "org.bluetooth.characteristic.date_time"),
    "2a09": ("Day of Week", "org.bluetooth.characteristic.day_of_week"),
    "2a0a": ("Day Date Time", "org.bluetooth.characteristic.day_date_time"),
    "2a0c": ("Exact Time 256", "org.bluetooth.characteristic.exact_time_256"),
    "2a0d": ("DST Offset", "org.bluetooth.characteristic.dst_offset"),
    "2a0e": ("Time Zone", "org.bluetooth.characteristic.time_zone"),
    "2a0f": ("Local Time Information", "org.bluetooth.characteristic.local_time_information"),
    "2a11": ("Time with DST", "org.bluetooth.characteristic.time_with_dst"),
    "2a12": ("Time Accuracy", "org.bluetooth.characteristic.time_accuracy"),
    "2a13": ("Time Source", "org.bluetooth.characteristic.time_source"),
    "2a14": ("Reference Time Information", "org.bluetooth.characteristic.reference_time_information"),
    "2a16": ("Time Update Control Point", "org.bluetooth.characteristic.time_update_control_point"),
    "2a17": ("Time Update State", "org.bluetooth.characteristic.time_update_state"),
    "2a18": ("Glucose Measurement", "org.bluetooth.characteristic.glucose_measurement"),
    "2a19": ("Battery Level", "org.bluetooth.characteristic.battery_level"),
    "2a1c": ("Temperature Measurement", "org.bluetooth.characteristic.temperature_measurement"),
    "2a1d": ("Temperature Type", "org.bluetooth.characteristic.temperature_type"),
    "2a1e": ("Intermediate Temperature", "org.bluetooth.characteristic.intermediate_temperature"),
    "2a21": ("Measurement Interval", "org.bluetooth.characteristic.measurement_interval"),
    "2a22": ("Boot Keyboard Input Report", "org.bluetooth.characteristic.boot_keyboard_input_report"),
    "2a23": ("System ID", "org.bluetooth.characteristic.system_id"),
    "2a24": ("Model Number String", "org.bluetooth.characteristic.model_number_string"),
    "2a25": ("Serial Number String", "org.bluetooth.characteristic.serial_number_string"),
    "2a26": ("Firmware Revision String", "org.bluetooth.characteristic.firmware_revision_string"),
    "2a27": ("Hardware Revision String", "org.bluetooth.characteristic.hardware_revision_string"),
    "2a28": ("Software Revision String", "org.bluetooth.characteristic.software_revision_string"),
    "2a29": ("Manufacturer Name String", "org.bluetooth.characteristic.manufacturer_name_string"),
    "2a2a": ("IEEE 11073-20601 Regulatory Certification Data List", "org.bluetooth.characteristic.ieee_11073-20601_regulatory_certification_data_list"),
    "2a2b": ("Current Time", "org.bluetooth.characteristic.current_time"),
    "2a31": ("Scan Refresh", "org.bluetooth.characteristic.scan_refresh"),
    "2a32": ("Boot Keyboard Output Report", "org.bluetooth.characteristic.boot_keyboard_output_report"),
    "2a33": ("Boot Mouse Input Report", "org.bluetooth.characteristic.boot_mouse_input_report"),
    "2a34": ("Glucose Measurement Context", "org.bluetooth.characteristic.glucose_measurement_context"),
    "2a35": ("Blood Pressure Measurement", "org.bluetooth.characteristic.blood_pressure_measurement"),
    "2a36": ("Intermediate Cuff Pressure", "org.bluetooth.characteristic.intermediate_blood_pressure"),
    "2a37": ("Heart Rate Measurement", "org.bluetooth.characteristic.heart_rate_measurement"),
    "2a38": ("Body Sensor Location", "org.bluetooth.characteristic.body_sensor_location"),
    "2a39": ("Heart Rate Control Point", "org.bluetooth.characteristic.heart_rate_control_point"),
    "2a3f": ("Alert Status", "org.bluetooth.characteristic.alert_status"),
    "2a40": ("Ringer Control Point", "org.bluetooth.characteristic.ringer_control_point"),
    "2a41": ("Ringer Setting", "org.bluetooth.characteristic.ringer_setting"),
    "2a42": ("Alert Category ID Bit Mask", "org.bluetooth.characteristic.alert_category_id_bit_mask"),
    "2a43": ("Alert Category ID", "org.bluetooth.characteristic.alert_category_id"),
    "2a44": ("Alert Notification Control Point", "org.bluetooth.characteristic.alert_notification_control_point"),
    "2a45": ("Unread Alert Status", "org.bluetooth.characteristic.unread_alert_status"),
    "2a46": ("New Alert", "org.bluetooth.characteristic.new_alert"),
    "2a47": ("Supported New Alert Category", "org.bluetooth.characteristic.supported_new_alert_category"),
    "2a48": ("Supported Unread Alert Category", "org.bluetooth.characteristic.supported_unread_alert_category"),
    "2a49": ("Blood Pressure Feature", "org.bluetooth.characteristic.blood_pressure_feature"),
    "2a4a": ("HID Information", "org.bluetooth.characteristic.hid_information"),
    "2a4b": ("Report Map", "org.bluetooth.characteristic.report_map"),
    "2a4c": ("HID Control Point", "org.bluetooth.characteristic.hid_control_point"),
    "2a4d": ("Report", "org.bluetooth.characteristic.report"),
    "2a4e": ("Protocol Mode", "org.bluetooth.characteristic.protocol_mode"),
    "2a4f": ("Scan Interval Window", "org.bluetooth.characteristic.scan_interval_window"),
    "2a50": ("PnP ID", "org.bluetooth.characteristic.pnp_id"),
    "2a51": ("Glucose Feature", "org.bluetooth.characteristic.glucose_feature"),
    "2a52": ("Record Access Control Point", "org.bluetooth.characteristic.record_access_control_point"),
    "2a53": ("RSC Measurement", "org.bluetooth.characteristic.rsc_measurement"),
    "2a54": ("RSC Feature", "org.bluetooth.characteristic.rsc_feature"),
    "2a55": ("SC Control Point", "org.bluetooth.characteristic.sc_control_point"),
    "2a5b": ("CSC Measurement", "org.bluetooth.characteristic.csc_measurement"),
    "2a5c": ("CSC Feature", "org.bluetooth.characteristic.csc_feature"),
    "2a5d": ("Sensor Location", "org.bluetooth.characteristic.sensor_location"),
})


def register_service(uuid, name: str, type_: str) -> None:
    """Register (or replace) the name and type of a service UUID."""
    KNOWN_SERVICES[str(uuid)] = KnownEntry(name, type_)


def register_attribute(uuid, name: str, type_: str) -> None:
    """Register (or replace) the name and type of an attribute UUID."""
    KNOWN_ATTRIBUTES[str(uuid)] = KnownEntry(name, type_)


def register_descriptor(uuid, name: str, type_: str) -> None:
    """Register (or replace) the name and type of a descriptor UUID."""
    KNOWN_DESCRIPTORS[str(uuid)] = KnownEntry(name, type_)


def register_characteristic(uuid, name: str, type_: str) -> None:
    """Register (or replace) the name and type of a characteristic UUID."""
    KNOWN_CHARACTERISTICS[str(uuid)] = KnownEntry(name, type_)


def _name(table: dict[str, KnownEntry], uuid) -> str:
    entry = table.get(str(uuid))
    return entry.name if entry else ""


def service_name(uuid) -> str:
    """Assigned name of a service UUID, or "" if unknown."""
    return _name(KNOWN_SERVICES, uuid)


def attribute_name(uuid) -> str:
    """Assigned name of an attribute UUID, or "" if unknown."""
    return _name(KNOWN_ATTRIBUTES, uuid)


def descriptor_name(uuid) -> str:
    """Assigned name of a descriptor UUID, or "" if unknown."""
    return _name(KNOWN_DESCRIPTORS, uuid)


def characteristic_name(uuid) -> str:
    """Assigned name of a characteristic UUID, or "" if unknown."""
    return _name(KNOWN_CHARACTERISTICS, uuid)