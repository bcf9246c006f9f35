"""Root -> intermediate -> leaf verification of attestation chains."""
from __future__ import annotations

import logging

from .base import ChainLink, ChainVerificationFailed
from .ca import CaRegistry
from .certificate import ParsedCertificate, verify_signature

logger = logging.getLogger(__name__)


def _fail(link: ChainLink) -> ChainVerificationFailed:
    logger.warning("Attestation chain verification failed: %s", link.value)
    return ChainVerificationFailed(link)


def verify_chain(
    leaf: ParsedCertificate, intermediate: ParsedCertificate, registry: CaRegistry
) -> None:
    """Verify that *leaf* chains through *intermediate* to a registry anchor.

    Exactly two hops are checked: the intermediate against the root anchor
    named by its issuer, then the leaf against the intermediate. The first
    failing link raises :class:`ChainVerificationFailed`, an issuer unknown to
    the registry raises :class:`CaNotFound`.
    """

    if (
        leaf.issuer_common_name is None
        or leaf.issuer_common_name != intermediate.subject_common_name
    ):
        raise _fail(ChainLink.LEAF_NOT_ISSUED_BY_INTERMEDIATE)

    root = registry.load_by_name(f"CN = {intermediate.issuer_common_name}")
    logger.debug("Resolved root anchor %s for %r", root.id.name, root.subject)

    if not verify_signature(intermediate, root.certificate):
        raise _fail(ChainLink.INTERMEDIATE_NOT_SIGNED_BY_ROOT)
    logger.debug("Intermediate %r is signed by %r", intermediate.subject_string, root.subject)

    if not verify_signature(leaf, intermediate):
        raise _fail(ChainLink.LEAF_NOT_SIGNED_BY_INTERMEDIATE)
    logger.debug("Leaf %r is signed by %r", leaf.subject_string, intermediate.subject_string)
