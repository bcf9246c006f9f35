"""Certificate role classification from the subject common name."""
from __future__ import annotations

import logging
from typing import Optional, Tuple

from .base import CertificateType, InvalidKeyReference, UnknownCertificateType
from .piv import ATTESTATION_KEY_REFERENCE, PIV_KEY_REFERENCES

logger = logging.getLogger(__name__)

# Subject CN of the per-token intermediate CA, which has no slot in its name.
YUBICO_INTERMEDIATE_COMMON_NAME = "Yubico PIV Attestation"


def classify(common_name: Optional[str]) -> Tuple[CertificateType, int]:
    """Return the certificate type and key reference named by *common_name*.

    End-entity attestation certificates end their CN with
    ``"Attestation <slot>"``, e.g. ``"YubiKey PIV Attestation 9a"``.
    """

    if common_name is None:
        raise UnknownCertificateType()

    words = common_name.split()
    if len(words) > 1 and len(words[-1]) == 2 and words[-2] == "Attestation":
        try:
            key_reference = int(words[-1], 16)
        except ValueError:
            raise InvalidKeyReference(f"Invalid key reference specified: {words[-1]!r}")
        if key_reference not in PIV_KEY_REFERENCES:
            raise InvalidKeyReference(f"Invalid key reference specified: {words[-1]!r}")
        logger.debug("Classified %r as end entity for slot %02x", common_name, key_reference)
        return CertificateType.END_ENTITY, key_reference

    if common_name == YUBICO_INTERMEDIATE_COMMON_NAME:
        logger.debug("Classified %r as intermediate CA", common_name)
        return CertificateType.INTERMEDIATE_CA, ATTESTATION_KEY_REFERENCE

    raise UnknownCertificateType()
