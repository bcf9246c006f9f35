import pytest
from fido2.utils import websafe_encode

from pivattest.server.app import app


@pytest.fixture
def client(monkeypatch, registry):
    monkeypatch.setitem(app.config, "PIVATTEST_REGISTRY", registry)
    monkeypatch.setitem(app.config, "PIVATTEST_STRICT_FIRMWARE_VERSION", False)
    monkeypatch.setitem(app.config, "TESTING", True)
    with app.test_client() as client:
        yield client


def test_verify_pem(client, cert_factory, intermediate_certificate, leaf_certificate):
    response = client.post(
        "/api/attestation/verify",
        json={
            "attestationCertificate": cert_factory.pem(leaf_certificate).decode("ascii"),
            "intermediateCertificate": cert_factory.pem(intermediate_certificate).decode("ascii"),
        },
    )

    assert response.status_code == 200
    body = response.get_json()
    assert body["valid"] is True
    assert body["attestation"]["serialNumber"] == 13083825
    assert body["attestation"]["keyReference"] == "9a"
    assert body["description"].startswith("YubiKey Attestation Cert for slot 9a")


def test_verify_base64url_der(client, cert_factory, intermediate_certificate, leaf_certificate):
    response = client.post(
        "/api/attestation/verify",
        json={
            "attestationCertificate": websafe_encode(cert_factory.der(leaf_certificate)),
            "intermediateCertificate": websafe_encode(cert_factory.der(intermediate_certificate)),
        },
    )

    assert response.status_code == 200
    assert response.get_json()["attestation"]["certificateType"] == "EndEntity"


def test_verify_reports_failed_link(client, cert_factory, intermediate_certificate, make_leaf):
    leaf = make_leaf(signing_key=cert_factory.ec_key())
    response = client.post(
        "/api/attestation/verify",
        json={
            "attestationCertificate": websafe_encode(cert_factory.der(leaf)),
            "intermediateCertificate": websafe_encode(cert_factory.der(intermediate_certificate)),
        },
    )

    assert response.status_code == 422
    body = response.get_json()
    assert body["valid"] is False
    assert body["error"] == "chain_verification_failed"
    assert body["link"] == "LeafNotSignedByIntermediate"


def test_verify_reports_invalid_certificate(client, cert_factory, intermediate_certificate):
    response = client.post(
        "/api/attestation/verify",
        json={
            "attestationCertificate": websafe_encode(b"not a certificate"),
            "intermediateCertificate": websafe_encode(cert_factory.der(intermediate_certificate)),
        },
    )

    assert response.status_code == 422
    body = response.get_json()
    assert body["error"] == "invalid_certificate"
    assert "link" not in body


def test_verify_rejects_malformed_subject(client, cert_factory, intermediate_certificate, make_leaf):
    der = cert_factory.der(make_leaf(subject_cn="Broken YubiKey PIV Attestation 9a"))
    response = client.post(
        "/api/attestation/verify",
        json={
            "attestationCertificate": websafe_encode(der.replace(b"Broken", b"\xffroken", 1)),
            "intermediateCertificate": websafe_encode(cert_factory.der(intermediate_certificate)),
        },
    )

    assert response.status_code == 422
    assert response.get_json()["error"] == "invalid_certificate"


def test_verify_requires_both_certificates(client, cert_factory, leaf_certificate):
    response = client.post(
        "/api/attestation/verify",
        json={"attestationCertificate": websafe_encode(cert_factory.der(leaf_certificate))},
    )
    assert response.status_code == 400


def test_verify_requires_json_object(client):
    assert client.post("/api/attestation/verify", data="nope").status_code == 400
    assert client.post("/api/attestation/verify", json=["a", "b"]).status_code == 400


def test_verify_rejects_undecodable_field(client):
    response = client.post(
        "/api/attestation/verify",
        json={"attestationCertificate": "*not base64*", "intermediateCertificate": "!!"},
    )
    assert response.status_code == 400


def test_health_lists_trust_anchors(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    body = response.get_json()
    assert body["status"] == "ok"
    assert [entry["id"] for entry in body["trustedCas"]] == [1, 2, 3]
    assert body["trustedCas"][0] == {
        "id": 1,
        "name": "PIV_V2",
        "subject": "CN = Yubico PIV Root CA Serial 263751",
    }


def test_server_package_exports_app():
    import pivattest.server

    assert pivattest.server.app is app
    assert callable(pivattest.server.main)
