"""PIV key and authentication-data references (SP 800-73-4, Part 1, Table 4b)."""
from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

PIV_AUTHENTICATION_DATA_REFERENCES: Mapping[int, str] = MappingProxyType(
    {
        0x00: "Global PIN",
        0x80: "PIV Card Application PIN",
        0x81: "PIN Unblocking Key",
        0x96: "Primary Finger OCC",
        0x97: "Secondary Finger OCC",
        0x98: "Pairing Code",
    }
)

PIV_KEY_REFERENCES: Mapping[int, str] = MappingProxyType(
    {
        0x04: "PIV Secure Messaging Key",
        0x9A: "PIV Authentication Key",
        0x9B: "PIV Card Application Administration Key",
        0x9C: "Digital Signature Key",
        0x9D: "Key Management Key",
        0x9E: "Card Authentication Key",
        **{
            0x82 + index: f"Retired Key Management Key {index + 1}"
            for index in range(20)
        },
    }
)

# The intermediate ("F9") certificate attests the token's own attestation key.
ATTESTATION_KEY_REFERENCE = 0xF9

YUBICO_KEY_REFERENCES: Mapping[int, str] = MappingProxyType(
    {ATTESTATION_KEY_REFERENCE: "Attestation Key"}
)

KEY_REFERENCES: Mapping[int, str] = MappingProxyType(
    {**PIV_KEY_REFERENCES, **YUBICO_KEY_REFERENCES}
)


def is_valid_key_reference(key_reference: int) -> bool:
    return key_reference in KEY_REFERENCES


def describe_key_reference(key_reference: int) -> str:
    """Return a human readable name for *key_reference*."""

    name = KEY_REFERENCES.get(key_reference)
    if name is None:
        return f"Unknown key reference {key_reference:02x}"
    return name
