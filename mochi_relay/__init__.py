"""
Mochi Relay - mood arbitration for a desktop companion device.

This package decides, from several independently polling monitors, which
expression the Mochi device should display and sends it over a serial or
HTTP transport using the device's text command protocol.
"""

__version__ = "0.1.0"
