"""Attestation verification routes."""
from __future__ import annotations

import binascii
from typing import Any, Dict

from flask import abort, jsonify, request
from fido2.utils import websafe_decode

from ..attestation import build_attestation
from ..base import AttestationError, ChainVerificationFailed
from .config import app, get_registry

_PEM_PREFIX = "-----BEGIN"


def _decode_certificate_field(payload: Dict[str, Any], name: str) -> bytes:
    value = payload.get(name)
    if not isinstance(value, str) or not value.strip():
        abort(400, description=f"Missing certificate field: {name}")

    value = value.strip()
    if value.startswith(_PEM_PREFIX):
        return value.encode("ascii", errors="replace")

    try:
        return websafe_decode(value)
    except (binascii.Error, ValueError):
        abort(400, description=f"Certificate field {name} is neither PEM nor base64url")


def _error_response(exc: AttestationError):
    body: Dict[str, Any] = {"valid": False, "error": exc.code, "message": str(exc)}
    if isinstance(exc, ChainVerificationFailed):
        body["link"] = exc.link.value
    return jsonify(body), 422


@app.route("/api/attestation/verify", methods=["POST"])
def verify_attestation():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        abort(400, description="Request body must be a JSON object")

    leaf = _decode_certificate_field(payload, "attestationCertificate")
    intermediate = _decode_certificate_field(payload, "intermediateCertificate")

    try:
        record = build_attestation(
            leaf,
            intermediate,
            get_registry(),
            strict_firmware_version=app.config["PIVATTEST_STRICT_FIRMWARE_VERSION"],
        )
    except AttestationError as exc:
        app.logger.warning("Attestation rejected: %s (%s)", exc, exc.code)
        return _error_response(exc)

    app.logger.info("Attestation verified: %s", record)
    return jsonify(
        {"valid": True, "attestation": record.to_dict(), "description": record.describe()}
    )


@app.route("/api/health", methods=["GET"])
def health():
    registry = get_registry()
    return jsonify(
        {
            "status": "ok",
            "trustedCas": [
                {"id": int(entry.id), "name": entry.id.name, "subject": entry.subject}
                for entry in registry
            ],
        }
    )
