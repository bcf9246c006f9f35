from __future__ import annotations

from enum import Enum, IntEnum, unique
from functools import wraps
from typing import Optional


class AttestationError(Exception):
    """Base exception for attestation-related errors."""

    code = "attestation_error"
    default_message = "The attestation could not be verified."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)


class CaNotFound(AttestationError):
    """The requested trust anchor is not part of the registry."""

    code = "ca_not_found"
    default_message = "The YubiKey CA specified is invalid."


class InvalidCertificate(AttestationError):
    """The certificate supplied could not be parsed."""

    code = "invalid_certificate"
    default_message = "The certificate supplied is invalid."


class CertificateMissingExtensions(AttestationError):
    """The certificate carries no X.509 extensions at all."""

    code = "certificate_missing_extensions"
    default_message = "The certificate supplied is missing the required extensions."


class NotYubikeyCertificate(CertificateMissingExtensions):
    """None of the certificate extensions live under the vendor OID arc."""

    code = "certificate_missing_yubikey_extensions"
    default_message = "The certificate supplied is missing any YubiKey extensions."


class InvalidExtensionEncoding(AttestationError):
    """A vendor extension payload is malformed."""

    code = "invalid_extension_encoding"
    default_message = "A YubiKey extension in the certificate is malformed."


class UnknownCertificateType(AttestationError):
    code = "certificate_unknown_type"
    default_message = "The certificate has an unknown type."


class InvalidKeyReference(AttestationError):
    code = "invalid_key_reference"
    default_message = "Invalid key reference specified."


@unique
class ChainLink(Enum):
    """The link of the root -> intermediate -> leaf chain that failed."""

    LEAF_NOT_ISSUED_BY_INTERMEDIATE = "LeafNotIssuedByIntermediate"
    INTERMEDIATE_NOT_SIGNED_BY_ROOT = "IntermediateNotSignedByRoot"
    LEAF_NOT_SIGNED_BY_INTERMEDIATE = "LeafNotSignedByIntermediate"


_CHAIN_LINK_MESSAGES = {
    ChainLink.LEAF_NOT_ISSUED_BY_INTERMEDIATE: (
        "Intermediate certificate did not issue this attestation certificate."
    ),
    ChainLink.INTERMEDIATE_NOT_SIGNED_BY_ROOT: (
        "Intermediate CA was not signed by the root CA it names as issuer."
    ),
    ChainLink.LEAF_NOT_SIGNED_BY_INTERMEDIATE: (
        "Attestation certificate was not signed by the intermediate CA."
    ),
}


class ChainVerificationFailed(AttestationError):
    """One of the three chain checks did not hold."""

    code = "chain_verification_failed"

    def __init__(self, link: ChainLink, message: Optional[str] = None):
        super().__init__(message or _CHAIN_LINK_MESSAGES[link])
        self.link = link


@unique
class CertificateType(IntEnum):
    """Role of a vendor certificate in the attestation chain."""

    END_ENTITY = 1
    INTERMEDIATE_CA = 2

    def __str__(self):
        return {
            CertificateType.END_ENTITY: "EndEntity",
            CertificateType.INTERMEDIATE_CA: "IntermediateCa",
        }[self]


def catch_builtins(f):
    """Utility decorator to wrap byte handling errors as InvalidExtensionEncoding."""

    @wraps(f)
    def inner(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except (ValueError, KeyError, IndexError) as e:
            raise InvalidExtensionEncoding(str(e) or None) from e

    return inner
