"""Decoders for the vendor-specific attestation certificate extensions.

YubiKey attestation certificates carry proprietary extensions rooted at
``1.3.6.1.4.1.41482.3``. Most of them are raw byte strings stored directly in
the extension value, the serial number is the exception and holds a DER
INTEGER.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum, unique
from typing import Mapping, Optional, Tuple, Union

from .base import InvalidExtensionEncoding, catch_builtins

logger = logging.getLogger(__name__)

YUBICO_OID_PIV_ROOT = "1.3.6.1.4.1.41482.3"
YUBICO_OID_FIRMWARE_VERSION = "1.3.6.1.4.1.41482.3.3"
YUBICO_OID_SERIAL_NUMBER = "1.3.6.1.4.1.41482.3.7"
YUBICO_OID_PIN_TOUCH_POLICY = "1.3.6.1.4.1.41482.3.8"
YUBICO_OID_FORM_FACTOR = "1.3.6.1.4.1.41482.3.9"
YUBICO_OID_FIPS_VALIDATED = "1.3.6.1.4.1.41482.3.10"

_DER_INTEGER_TAG = 0x02
# ASN.1 tag, primitive, context-specific.
_CONTEXT_SPECIFIC_MARKER = 0x80


@unique
class PinPolicy(IntEnum):
    NEVER = 0x01
    ONCE_PER_SESSION = 0x02
    ALWAYS = 0x03

    def __str__(self):
        return {
            PinPolicy.NEVER: "never required",
            PinPolicy.ONCE_PER_SESSION: "required once per session",
            PinPolicy.ALWAYS: "always required",
        }[self]


@unique
class TouchPolicy(IntEnum):
    NEVER = 0x01
    ALWAYS = 0x02
    CACHED_FOR_15S = 0x03

    def __str__(self):
        return {
            TouchPolicy.NEVER: "never required",
            TouchPolicy.ALWAYS: "always required",
            TouchPolicy.CACHED_FOR_15S: "cached for 15 seconds after touch",
        }[self]


@unique
class FormFactor(IntEnum):
    UNDEFINED = 0x00
    USB_A_KEYCHAIN = 0x01
    USB_A_NANO = 0x02
    USB_C_KEYCHAIN = 0x03
    USB_C_NANO = 0x04
    USB_C_LIGHTNING = 0x05


# Unrecognised codes are kept as plain integers.
PinPolicyCode = Union[PinPolicy, int]
TouchPolicyCode = Union[TouchPolicy, int]
FormFactorCode = Union[FormFactor, int]


def _lookup(enum_cls, code: int):
    try:
        return enum_cls(code)
    except ValueError:
        return code


def has_vendor_extension(extensions: Mapping[str, bytes]) -> bool:
    """Return True if any extension OID starts with the vendor root OID.

    The comparison is a literal string prefix match on the dotted OID.
    """

    return any(oid.startswith(YUBICO_OID_PIV_ROOT) for oid in extensions)


def decode_firmware_version(data: bytes, strict: bool = False) -> Tuple[int, ...]:
    """Decode the firmware version extension into its integer components.

    Every byte is read as an unsigned 8-bit component. The payload should be
    exactly three bytes (major, minor, patch); other lengths are only rejected
    when *strict* is set.
    """

    data = bytes(data)
    if strict and len(data) != 3:
        raise InvalidExtensionEncoding(
            f"Firmware version must be 3 bytes, got {len(data)}"
        )
    return tuple(data)


def format_firmware_version(version: Tuple[int, ...]) -> str:
    return ".".join(str(component) for component in version)


@catch_builtins
def decode_serial_number(data: bytes) -> int:
    """Decode the serial number extension, a DER INTEGER TLV."""

    data = bytes(data)
    if not data:
        raise InvalidExtensionEncoding("Serial number extension is empty")
    if data[0] != _DER_INTEGER_TAG:
        raise InvalidExtensionEncoding(
            f"Serial number must be a DER INTEGER, got tag 0x{data[0]:02x}"
        )
    length = data[1]
    if length != len(data) - 2:
        raise InvalidExtensionEncoding(
            f"Serial number length {length} does not match payload size {len(data) - 2}"
        )
    return int.from_bytes(data[2:], "big")


def decode_pin_touch_policy(data: bytes) -> Tuple[PinPolicyCode, TouchPolicyCode]:
    data = bytes(data)
    if len(data) != 2:
        raise InvalidExtensionEncoding(
            f"PIN/touch policy must be 2 bytes, got {len(data)}"
        )
    return _lookup(PinPolicy, data[0]), _lookup(TouchPolicy, data[1])


def decode_form_factor(data: bytes) -> FormFactorCode:
    data = bytes(data)
    if len(data) != 1:
        raise InvalidExtensionEncoding(f"Form factor must be 1 byte, got {len(data)}")
    return _lookup(FormFactor, data[0] & ~_CONTEXT_SPECIFIC_MARKER)


def is_fips_validated(extensions: Mapping[str, bytes]) -> bool:
    # Presence alone marks the token as FIPS validated, the payload is ignored.
    return YUBICO_OID_FIPS_VALIDATED in extensions


@dataclass
class VendorExtensions:
    """The decoded vendor extensions of a single certificate.

    Extensions that are absent leave the corresponding attribute as ``None``.
    """

    firmware_version: Optional[Tuple[int, ...]] = None
    serial_number: Optional[int] = None
    pin_policy: Optional[PinPolicyCode] = None
    touch_policy: Optional[TouchPolicyCode] = None
    form_factor: Optional[FormFactorCode] = None
    is_fips_validated: bool = False

    @classmethod
    def decode(
        cls, extensions: Mapping[str, bytes], strict_firmware_version: bool = False
    ) -> "VendorExtensions":
        decoded = cls(is_fips_validated=is_fips_validated(extensions))

        if YUBICO_OID_FIRMWARE_VERSION in extensions:
            decoded.firmware_version = decode_firmware_version(
                extensions[YUBICO_OID_FIRMWARE_VERSION], strict=strict_firmware_version
            )
        if YUBICO_OID_SERIAL_NUMBER in extensions:
            decoded.serial_number = decode_serial_number(
                extensions[YUBICO_OID_SERIAL_NUMBER]
            )
        if YUBICO_OID_PIN_TOUCH_POLICY in extensions:
            decoded.pin_policy, decoded.touch_policy = decode_pin_touch_policy(
                extensions[YUBICO_OID_PIN_TOUCH_POLICY]
            )
        if YUBICO_OID_FORM_FACTOR in extensions:
            decoded.form_factor = decode_form_factor(extensions[YUBICO_OID_FORM_FACTOR])

        logger.debug("Decoded vendor extensions: %r", decoded)
        return decoded
