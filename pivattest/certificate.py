"""Certificate loading and signature verification.

Thin adapter around ``cryptography`` and ``asn1crypto`` exposing the handful of
fields the attestation checks need: subject, issuer common name, the raw
extension values keyed by dotted OID, and issuer signature verification.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional

from asn1crypto import x509 as asn1_x509
from cryptography import x509
from cryptography.exceptions import InvalidSignature as _InvalidSignature
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.serialization import Encoding
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, padding, rsa
from cryptography.x509.oid import NameOID
from fido2.utils import ByteBuffer

from .base import InvalidCertificate

logger = logging.getLogger(__name__)

_PEM_MARKER = b"-----BEGIN"

RSA_SIGNATURE_HASHES = {
    "1.2.840.113549.1.1.5": hashes.SHA1,
    "1.2.840.113549.1.1.11": hashes.SHA256,
    "1.2.840.113549.1.1.12": hashes.SHA384,
    "1.2.840.113549.1.1.13": hashes.SHA512,
}

EC_SIGNATURE_HASHES = {
    "1.2.840.10045.4.3.2": hashes.SHA256,
    "1.2.840.10045.4.3.3": hashes.SHA384,
    "1.2.840.10045.4.3.4": hashes.SHA512,
}

SIGNATURE_ALGORITHM_OIDS = {
    "1.2.840.113549.1.1.5": "RSA",  # sha1WithRSAEncryption
    "1.2.840.113549.1.1.11": "RSA",  # sha256WithRSAEncryption
    "1.2.840.113549.1.1.12": "RSA",  # sha384WithRSAEncryption
    "1.2.840.113549.1.1.13": "RSA",  # sha512WithRSAEncryption
    "1.2.840.10045.4.3.2": "EC",  # ecdsa-with-SHA256
    "1.2.840.10045.4.3.3": "EC",  # ecdsa-with-SHA384
    "1.2.840.10045.4.3.4": "EC",  # ecdsa-with-SHA512
    "1.3.101.112": "ED25519",
}


@dataclass(frozen=True)
class ParsedCertificate:
    """Read-only view of an X.509 certificate."""

    der: bytes
    subject: Mapping[str, str]
    subject_common_name: Optional[str]
    issuer_common_name: Optional[str]
    extensions: Mapping[str, bytes]
    signature_algorithm_oid: str
    tbs_certificate: bytes
    signature_value: bytes
    certificate: x509.Certificate = field(repr=False, compare=False)

    @property
    def subject_string(self) -> str:
        """The subject rendered as ``"CN = ..., O = ..."`` in RDN order."""

        return format_name(self.subject)

    def public_key(self):
        return self.certificate.public_key()


def format_name(name: Mapping[str, str]) -> str:
    return ", ".join(f"{key} = {value}" for key, value in name.items())


def _coerce_bytes(value: Any) -> bytes:
    if isinstance(value, ByteBuffer):
        return value.getvalue()
    if isinstance(value, str):
        try:
            return value.encode("ascii")
        except UnicodeEncodeError as exc:
            raise InvalidCertificate() from exc
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    raise TypeError(
        "Certificates must be PEM or DER encoded bytes, "
        f"not {type(value).__name__}"
    )


def _common_name(name: x509.Name) -> Optional[str]:
    attributes = name.get_attributes_for_oid(NameOID.COMMON_NAME)
    if not attributes:
        return None
    return str(attributes[0].value)


def _name_mapping(name: x509.Name) -> Mapping[str, str]:
    mapping = {}
    for attribute in name:
        mapping[attribute.rfc4514_attribute_name] = str(attribute.value)
    return MappingProxyType(mapping)


def _raw_extensions(asn1_cert: asn1_x509.Certificate) -> Mapping[str, bytes]:
    extensions = {}
    for extension in asn1_cert["tbs_certificate"]["extensions"] or []:
        # The OCTET STRING contents, undecoded, as issued.
        extensions[extension["extn_id"].dotted] = bytes(extension["extn_value"].contents)
    return MappingProxyType(extensions)


def load_certificate(data: Any) -> x509.Certificate:
    """Load a PEM or DER encoded certificate."""

    raw = _coerce_bytes(data)
    try:
        if raw.lstrip().startswith(_PEM_MARKER):
            return x509.load_pem_x509_certificate(raw.strip(), default_backend())
        return x509.load_der_x509_certificate(raw, default_backend())
    except ValueError as exc:
        raise InvalidCertificate() from exc


def parse_certificate(data: Any) -> ParsedCertificate:
    """Parse PEM or DER certificate bytes into a :class:`ParsedCertificate`."""

    if isinstance(data, ParsedCertificate):
        return data

    certificate = load_certificate(data)
    der = certificate.public_bytes(Encoding.DER)
    try:
        # Names are decoded lazily, so malformed subjects surface here.
        subject = _name_mapping(certificate.subject)
        subject_common_name = _common_name(certificate.subject)
        issuer_common_name = _common_name(certificate.issuer)
        asn1_cert = asn1_x509.Certificate.load(der)
        extensions = _raw_extensions(asn1_cert)
        signature_algorithm_oid = asn1_cert["signature_algorithm"]["algorithm"].dotted
    except (ValueError, TypeError) as exc:
        raise InvalidCertificate() from exc

    return ParsedCertificate(
        der=der,
        subject=subject,
        subject_common_name=subject_common_name,
        issuer_common_name=issuer_common_name,
        extensions=extensions,
        signature_algorithm_oid=signature_algorithm_oid,
        tbs_certificate=certificate.tbs_certificate_bytes,
        signature_value=certificate.signature,
        certificate=certificate,
    )


def _hash_for_signature_oid(signature_oid: str):
    if signature_oid in RSA_SIGNATURE_HASHES:
        return RSA_SIGNATURE_HASHES[signature_oid]()
    if signature_oid in EC_SIGNATURE_HASHES:
        return EC_SIGNATURE_HASHES[signature_oid]()
    raise ValueError(f"Unsupported hash mapping for signature OID: {signature_oid}")


def verify_signature(certificate: ParsedCertificate, issuer: ParsedCertificate) -> bool:
    """Return True if *certificate* carries a valid signature by *issuer*'s key."""

    signature_oid = certificate.signature_algorithm_oid
    signature_class = SIGNATURE_ALGORITHM_OIDS.get(signature_oid)
    if signature_class is None:
        logger.warning("Unsupported signature algorithm OID: %s", signature_oid)
        return False

    try:
        pub = issuer.public_key()
    except (UnsupportedAlgorithm, ValueError) as exc:
        logger.warning("Unable to load issuer public key: %s", exc)
        return False

    try:
        if signature_class == "RSA":
            if not isinstance(pub, rsa.RSAPublicKey):
                logger.debug("Issuer public key is not RSA: %s", type(pub).__name__)
                return False
            pub.verify(
                certificate.signature_value,
                certificate.tbs_certificate,
                padding.PKCS1v15(),
                _hash_for_signature_oid(signature_oid),
            )
        elif signature_class == "EC":
            if not isinstance(pub, ec.EllipticCurvePublicKey):
                logger.debug("Issuer public key is not EC: %s", type(pub).__name__)
                return False
            pub.verify(
                certificate.signature_value,
                certificate.tbs_certificate,
                ec.ECDSA(_hash_for_signature_oid(signature_oid)),
            )
        else:
            if not isinstance(pub, ed25519.Ed25519PublicKey):
                logger.debug("Issuer public key is not Ed25519: %s", type(pub).__name__)
                return False
            pub.verify(certificate.signature_value, certificate.tbs_certificate)
    except _InvalidSignature:
        return False
    return True
