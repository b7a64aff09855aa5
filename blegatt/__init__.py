"""Bluetooth Low Energy GATT server toolkit: attributes, ATT handling and advertising data."""

__version__ = "0.1.0"

__all__ = ["adv", "att", "attr", "device", "known", "l2cap", "model", "server", "services"]