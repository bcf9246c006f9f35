"""Verification of YubiKey PIV attestation certificates."""
from __future__ import annotations

from .attestation import (
    AttestationRecord,
    EndEntityAttestation,
    IntermediateAttestation,
    build_attestation,
)
from .base import (
    AttestationError,
    CaNotFound,
    CertificateMissingExtensions,
    CertificateType,
    ChainLink,
    ChainVerificationFailed,
    InvalidCertificate,
    InvalidExtensionEncoding,
    InvalidKeyReference,
    NotYubikeyCertificate,
    UnknownCertificateType,
)
from .ca import CaId, CaRegistry, TrustedCa, default_registry
from .certificate import ParsedCertificate, parse_certificate, verify_signature
from .chain import verify_chain
from .classifier import classify
from .extensions import FormFactor, PinPolicy, TouchPolicy

__version__ = "0.1.0"

__all__ = [
    "AttestationError",
    "AttestationRecord",
    "CaId",
    "CaNotFound",
    "CaRegistry",
    "CertificateMissingExtensions",
    "CertificateType",
    "ChainLink",
    "ChainVerificationFailed",
    "EndEntityAttestation",
    "FormFactor",
    "IntermediateAttestation",
    "InvalidCertificate",
    "InvalidExtensionEncoding",
    "InvalidKeyReference",
    "NotYubikeyCertificate",
    "ParsedCertificate",
    "PinPolicy",
    "TouchPolicy",
    "TrustedCa",
    "UnknownCertificateType",
    "build_attestation",
    "classify",
    "default_registry",
    "parse_certificate",
    "verify_chain",
    "verify_signature",
]
