from __future__ import annotations

import datetime
from typing import Iterable, Optional, Tuple

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa
from cryptography.x509.oid import NameOID

from pivattest.ca import YUBICO_CA_FILENAMES, CaId, CaRegistry
from pivattest.extensions import (
    YUBICO_OID_FIRMWARE_VERSION,
    YUBICO_OID_FORM_FACTOR,
    YUBICO_OID_PIN_TOUCH_POLICY,
    YUBICO_OID_SERIAL_NUMBER,
)

ROOT_COMMON_NAMES = {
    CaId.PIV_V2: "Yubico PIV Root CA Serial 263751",
    CaId.PIV_PREVIEW: "Yubico PIV Preview CA",
    CaId.U2F: "Yubico U2F Root CA Serial 457200631",
}

INTERMEDIATE_COMMON_NAME = "Yubico PIV Attestation"

SERIAL_NUMBER = 13083825

_NOT_BEFORE = datetime.datetime(2020, 1, 1, tzinfo=datetime.timezone.utc)
_NOT_AFTER = datetime.datetime(2050, 1, 1, tzinfo=datetime.timezone.utc)


def der_integer(value: int) -> bytes:
    """Minimal DER INTEGER TLV for a non-negative value below 128 bytes."""

    body = value.to_bytes(value.bit_length() // 8 + 1, "big")
    return bytes([0x02, len(body)]) + body


DEFAULT_LEAF_EXTENSIONS = (
    (YUBICO_OID_FIRMWARE_VERSION, bytes([5, 4, 2])),
    (YUBICO_OID_SERIAL_NUMBER, der_integer(SERIAL_NUMBER)),
    (YUBICO_OID_PIN_TOUCH_POLICY, bytes([0x02, 0x03])),
    (YUBICO_OID_FORM_FACTOR, bytes([0x81])),
)


class CertificateFactory:
    """Builds vendor-shaped certificates for the tests."""

    @staticmethod
    def name(common_name: Optional[str]) -> x509.Name:
        if common_name is None:
            return x509.Name([x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Yubico")])
        return x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])

    def make(
        self,
        subject_cn: Optional[str],
        issuer_cn: Optional[str],
        public_key,
        signing_key,
        extensions: Iterable[Tuple[str, bytes]] = (),
        ca: bool = False,
    ) -> x509.Certificate:
        builder = (
            x509.CertificateBuilder()
            .subject_name(self.name(subject_cn))
            .issuer_name(self.name(issuer_cn))
            .public_key(public_key)
            .serial_number(x509.random_serial_number())
            .not_valid_before(_NOT_BEFORE)
            .not_valid_after(_NOT_AFTER)
        )
        if ca:
            builder = builder.add_extension(
                x509.BasicConstraints(ca=True, path_length=None), critical=True
            )
        for oid, value in extensions:
            builder = builder.add_extension(
                x509.UnrecognizedExtension(x509.ObjectIdentifier(oid), value),
                critical=False,
            )
        if isinstance(signing_key, ed25519.Ed25519PrivateKey):
            return builder.sign(signing_key, None)
        return builder.sign(signing_key, hashes.SHA256())

    @staticmethod
    def pem(certificate: x509.Certificate) -> bytes:
        return certificate.public_bytes(serialization.Encoding.PEM)

    @staticmethod
    def der(certificate: x509.Certificate) -> bytes:
        return certificate.public_bytes(serialization.Encoding.DER)

    @staticmethod
    def ec_key():
        return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="session")
def cert_factory():
    return CertificateFactory()


@pytest.fixture(scope="session")
def root_keys():
    return {
        CaId.PIV_V2: rsa.generate_private_key(public_exponent=65537, key_size=2048),
        CaId.PIV_PREVIEW: ec.generate_private_key(ec.SECP256R1()),
        CaId.U2F: ec.generate_private_key(ec.SECP256R1()),
    }


@pytest.fixture(scope="session")
def root_certificates(cert_factory, root_keys):
    return {
        ca_id: cert_factory.make(
            ROOT_COMMON_NAMES[ca_id],
            ROOT_COMMON_NAMES[ca_id],
            key.public_key(),
            key,
            ca=True,
        )
        for ca_id, key in root_keys.items()
    }


@pytest.fixture(scope="session")
def anchor_directory(tmp_path_factory, cert_factory, root_certificates):
    directory = tmp_path_factory.mktemp("anchors")
    for ca_id, certificate in root_certificates.items():
        (directory / YUBICO_CA_FILENAMES[ca_id]).write_bytes(
            cert_factory.pem(certificate)
        )
    return directory


@pytest.fixture(scope="session")
def registry(anchor_directory):
    return CaRegistry.from_directory(anchor_directory)


@pytest.fixture(scope="session")
def intermediate_key():
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="session")
def intermediate_certificate(cert_factory, root_keys, intermediate_key):
    return cert_factory.make(
        INTERMEDIATE_COMMON_NAME,
        ROOT_COMMON_NAMES[CaId.PIV_V2],
        intermediate_key.public_key(),
        root_keys[CaId.PIV_V2],
        extensions=[(YUBICO_OID_FIRMWARE_VERSION, bytes([5, 4, 2]))],
        ca=True,
    )


@pytest.fixture(scope="session")
def make_leaf(cert_factory, intermediate_key):
    """Return a builder for leaf attestation certificates."""

    def _make_leaf(
        subject_cn: Optional[str] = "YubiKey PIV Attestation 9a",
        extensions: Iterable[Tuple[str, bytes]] = DEFAULT_LEAF_EXTENSIONS,
        issuer_cn: Optional[str] = INTERMEDIATE_COMMON_NAME,
        signing_key=None,
    ) -> x509.Certificate:
        leaf_key = cert_factory.ec_key()
        return cert_factory.make(
            subject_cn,
            issuer_cn,
            leaf_key.public_key(),
            signing_key or intermediate_key,
            extensions=extensions,
        )

    return _make_leaf


@pytest.fixture(scope="session")
def leaf_certificate(make_leaf):
    return make_leaf()
