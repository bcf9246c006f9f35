"""Registry of the vendor trust anchors attestation chains terminate in."""
from __future__ import annotations

import logging
import pathlib
from dataclasses import dataclass
from enum import IntEnum, unique
from functools import lru_cache
from types import MappingProxyType
from typing import Iterator, Mapping, Optional, Union

from .base import CaNotFound
from .certificate import ParsedCertificate, parse_certificate
from .config import load_settings

logger = logging.getLogger(__name__)


@unique
class CaId(IntEnum):
    """Identifiers of the YubiKey attestation CAs."""

    PIV_V2 = 0x01
    PIV_PREVIEW = 0x02
    U2F = 0x03


YUBICO_CA_SUBJECTS: Mapping[CaId, str] = MappingProxyType(
    {
        CaId.PIV_V2: "CN = Yubico PIV Root CA Serial 263751",
        CaId.PIV_PREVIEW: "CN = Yubico PIV Preview CA",
        CaId.U2F: "CN = Yubico U2F Root CA Serial 457200631",
    }
)

YUBICO_CA_FILENAMES: Mapping[CaId, str] = MappingProxyType(
    {
        CaId.PIV_V2: "yubico-piv-ca-v2.pem",
        CaId.PIV_PREVIEW: "yubico-piv-preview.pem",
        CaId.U2F: "yubico-u2f-ca.pem",
    }
)


@dataclass(frozen=True)
class TrustedCa:
    id: CaId
    subject: str
    certificate: ParsedCertificate


class CaRegistry:
    """Immutable table of trust anchors, addressed by id or subject.

    Built once, then shared read-only between verifications.
    """

    def __init__(self, anchors: Mapping[CaId, ParsedCertificate]):
        missing = [ca_id for ca_id in CaId if ca_id not in anchors]
        if missing:
            raise CaNotFound(
                "Missing trust anchors for: " + ", ".join(ca_id.name for ca_id in missing)
            )

        entries = {}
        for ca_id in CaId:
            subject = YUBICO_CA_SUBJECTS[ca_id]
            certificate = anchors[ca_id]
            if certificate.subject_string != subject:
                logger.warning(
                    "Trust anchor %s has subject %r, expected %r",
                    ca_id.name,
                    certificate.subject_string,
                    subject,
                )
            entries[ca_id] = TrustedCa(ca_id, subject, certificate)

        self._by_id: Mapping[CaId, TrustedCa] = MappingProxyType(entries)
        self._by_subject: Mapping[str, TrustedCa] = MappingProxyType(
            {entry.subject: entry for entry in entries.values()}
        )

    @classmethod
    def from_pem(cls, pem_data: Mapping[CaId, Union[bytes, str]]) -> "CaRegistry":
        return cls(
            {CaId(ca_id): parse_certificate(data) for ca_id, data in pem_data.items()}
        )

    @classmethod
    def from_directory(cls, directory: Union[str, pathlib.Path]) -> "CaRegistry":
        """Load every anchor from its bundled PEM file in *directory*."""

        directory = pathlib.Path(directory)
        pem_data = {}
        for ca_id, filename in YUBICO_CA_FILENAMES.items():
            path = directory / filename
            try:
                pem_data[ca_id] = path.read_bytes()
            except FileNotFoundError as exc:
                raise CaNotFound(f"Trust anchor file not found: {path}") from exc

        registry = cls.from_pem(pem_data)
        logger.info(
            "Loaded %d trust anchors from %s", len(registry._by_id), directory
        )
        return registry

    def load_by_id(self, ca_id: int) -> TrustedCa:
        try:
            return self._by_id[CaId(ca_id)]
        except ValueError:
            raise CaNotFound(f"The YubiKey CA ID specified is invalid: {ca_id!r}")

    def load_by_name(self, subject: str) -> TrustedCa:
        entry = self._by_subject.get(subject)
        if entry is None:
            raise CaNotFound(f"The YubiKey CA name specified is invalid: {subject!r}")
        return entry

    def handles_subject(self, subject: str) -> bool:
        return subject in self._by_subject

    def __iter__(self) -> Iterator[TrustedCa]:
        return iter(self._by_id.values())

    def __len__(self) -> int:
        return len(self._by_id)


@lru_cache(maxsize=None)
def _registry_for_directory(directory: pathlib.Path) -> CaRegistry:
    return CaRegistry.from_directory(directory)


def default_registry(directory: Optional[Union[str, pathlib.Path]] = None) -> CaRegistry:
    """Return the process-wide registry, built on first use.

    The anchor directory defaults to the configured ``PIVATTEST_CA_DIRECTORY``.
    """

    if directory is None:
        directory = load_settings().ca_directory
    return _registry_for_directory(pathlib.Path(directory).resolve())
