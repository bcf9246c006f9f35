"""Verification of YubiKey PIV attestation certificates."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, ClassVar, Dict, Optional, Tuple, Union

from .base import (
    CertificateMissingExtensions,
    CertificateType,
    InvalidKeyReference,
    NotYubikeyCertificate,
)
from .ca import CaRegistry
from .certificate import ParsedCertificate, parse_certificate
from .chain import verify_chain
from .classifier import classify
from .extensions import (
    FormFactor,
    FormFactorCode,
    PinPolicyCode,
    TouchPolicyCode,
    VendorExtensions,
    format_firmware_version,
    has_vendor_extension,
)
from .piv import ATTESTATION_KEY_REFERENCE, KEY_REFERENCES, describe_key_reference

logger = logging.getLogger(__name__)

CertificateInput = Union[bytes, bytearray, memoryview, str, ParsedCertificate]

_USB_A = {FormFactor.USB_A_KEYCHAIN, FormFactor.USB_A_NANO}
_USB_C = {FormFactor.USB_C_KEYCHAIN, FormFactor.USB_C_NANO, FormFactor.USB_C_LIGHTNING}
_KEYCHAIN = {FormFactor.USB_A_KEYCHAIN, FormFactor.USB_C_KEYCHAIN}
_NANO = {FormFactor.USB_A_NANO, FormFactor.USB_C_NANO}


@dataclass(frozen=True)
class AttestationRecord:
    """The verified contents of a YubiKey attestation certificate.

    Optional fields are ``None`` when the certificate does not carry the
    corresponding extension. Unrecognised policy and form factor codes are
    kept as plain integers.
    """

    certificate_type: ClassVar[CertificateType]

    key_reference: int
    firmware_version: Optional[Tuple[int, ...]] = None
    serial_number: Optional[int] = None
    pin_policy: Optional[PinPolicyCode] = None
    touch_policy: Optional[TouchPolicyCode] = None
    form_factor: Optional[FormFactorCode] = None
    is_fips_validated: bool = False

    def __post_init__(self):
        if self.key_reference not in KEY_REFERENCES:
            raise InvalidKeyReference(
                f"Invalid key reference specified: {self.key_reference!r}"
            )

    @property
    def firmware_version_string(self) -> Optional[str]:
        if self.firmware_version is None:
            return None
        return format_firmware_version(self.firmware_version)

    @property
    def key_reference_name(self) -> str:
        return describe_key_reference(self.key_reference)

    def describe(self) -> str:
        """Summarise the record as a single descriptive sentence."""

        ret = f"YubiKey Attestation Cert for slot {self.key_reference:02x}"

        if self.is_fips_validated:
            ret += " from a FIPS-validated YubiKey"
        else:
            ret += " from a non-FIPS YubiKey"

        if self.form_factor is not None:
            if self.form_factor in _USB_A:
                ret += " USB Type A"
            elif self.form_factor in _USB_C:
                ret += " USB Type C"

            if self.form_factor in _KEYCHAIN:
                ret += " Keychain"
            elif self.form_factor in _NANO:
                ret += " Nano"
            elif self.form_factor == FormFactor.USB_C_LIGHTNING:
                ret += " and Lightning"
            elif self.form_factor == FormFactor.UNDEFINED:
                ret += " of unknown form factor"

        if self.serial_number is not None:
            ret += f", Serial Number {self.serial_number}"

        if self.firmware_version is not None:
            ret += f", Firmware version {self.firmware_version_string}"

        if self.pin_policy is not None:
            ret += f", PIN Policy: {_describe_code(self.pin_policy)}"

        if self.touch_policy is not None:
            ret += f", Touch Policy: {_describe_code(self.touch_policy)}"

        return ret

    def __str__(self):
        return self.describe()

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-safe representation of the record."""

        return {
            "certificateType": str(self.certificate_type),
            "keyReference": f"{self.key_reference:02x}",
            "keyReferenceName": self.key_reference_name,
            "firmwareVersion": self.firmware_version_string,
            "serialNumber": self.serial_number,
            "pinPolicy": _code_name(self.pin_policy),
            "touchPolicy": _code_name(self.touch_policy),
            "formFactor": _code_name(self.form_factor),
            "isFipsValidated": self.is_fips_validated,
        }


@dataclass(frozen=True)
class EndEntityAttestation(AttestationRecord):
    """Attestation of a key held in one of the PIV slots."""

    certificate_type: ClassVar[CertificateType] = CertificateType.END_ENTITY


@dataclass(frozen=True)
class IntermediateAttestation(AttestationRecord):
    """The token's own attestation ("F9") certificate."""

    certificate_type: ClassVar[CertificateType] = CertificateType.INTERMEDIATE_CA

    key_reference: int = ATTESTATION_KEY_REFERENCE


_RECORD_TYPES = {
    CertificateType.END_ENTITY: EndEntityAttestation,
    CertificateType.INTERMEDIATE_CA: IntermediateAttestation,
}


def _describe_code(code) -> str:
    if not isinstance(code, IntEnum):
        return "unknown or invalid"
    return str(code)


def _code_name(code) -> Optional[str]:
    if code is None:
        return None
    if not isinstance(code, IntEnum):
        return f"unknown:{code}"
    return code.name


def _require_extensions(certificate: ParsedCertificate) -> None:
    if not certificate.extensions:
        raise CertificateMissingExtensions()


def build_attestation(
    leaf: CertificateInput,
    intermediate: CertificateInput,
    registry: CaRegistry,
    *,
    strict_firmware_version: bool = False,
) -> AttestationRecord:
    """Verify an attestation certificate and decode its vendor extensions.

    :param leaf: The attestation certificate, PEM or DER.
    :param intermediate: The intermediate ("F9") certificate that issued it.
    :param registry: Trust anchors the intermediate must chain to.
    :param strict_firmware_version: Reject firmware payloads that are not
        exactly three bytes.
    :return: An :class:`EndEntityAttestation` or
        :class:`IntermediateAttestation`.
    """

    leaf_cert = parse_certificate(leaf)
    intermediate_cert = parse_certificate(intermediate)

    _require_extensions(leaf_cert)
    _require_extensions(intermediate_cert)
    if not has_vendor_extension(leaf_cert.extensions):
        raise NotYubikeyCertificate()

    verify_chain(leaf_cert, intermediate_cert, registry)

    extensions = VendorExtensions.decode(
        leaf_cert.extensions, strict_firmware_version=strict_firmware_version
    )
    certificate_type, key_reference = classify(leaf_cert.subject_common_name)

    record = _RECORD_TYPES[certificate_type](
        key_reference=key_reference,
        firmware_version=extensions.firmware_version,
        serial_number=extensions.serial_number,
        pin_policy=extensions.pin_policy,
        touch_policy=extensions.touch_policy,
        form_factor=extensions.form_factor,
        is_fips_validated=extensions.is_fips_validated,
    )
    logger.debug("Verified attestation: %s", record)
    return record
