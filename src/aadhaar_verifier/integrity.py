"""
Document-shape checks for Aadhaar Offline eKYC XML.

The report is informational and orthogonal to trust and signature checks:
a genuinely signed document can still be structurally atypical, and that
shows up as status "suspicious" rather than a failed verification.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from lxml import etree

from .config import DEFAULT_TRUST_CONFIG, TrustConfig
from .document import ParsedDocument

logger = logging.getLogger(__name__)


class IntegrityStatus(str, Enum):
    INTACT = "intact"
    SUSPICIOUS = "suspicious"
    UNKNOWN = "unknown"
    COMPROMISED = "compromised"


@dataclass(frozen=True)
class IntegrityReport:
    """
    Missing mandatory elements (in configured order) and payload presence.

    `error` is set instead when the check itself could not run.
    """
    missing_elements: tuple[str, ...] = ()
    has_encrypted_payload: bool = False
    error: str | None = None

    @property
    def has_required_elements(self) -> bool:
        return not self.missing_elements

    @property
    def structure_compliant(self) -> bool:
        return self.has_required_elements and self.has_encrypted_payload

    @property
    def status(self) -> IntegrityStatus:
        if self.error is not None:
            return IntegrityStatus.UNKNOWN
        if self.missing_elements:
            return IntegrityStatus.SUSPICIOUS
        return IntegrityStatus.INTACT

    def to_dict(self) -> dict[str, Any]:
        if self.error is not None:
            return {"error": self.error}
        return {
            "hasRequiredElements": self.has_required_elements,
            "missingElements": list(self.missing_elements),
            "hasEncryptedData": self.has_encrypted_payload,
            "structureCompliant": self.structure_compliant,
        }


def _local_names(document: ParsedDocument) -> set[str]:
    return {etree.QName(el).localname for el in document.root.iter(tag=etree.Element)}


def check_integrity(document: ParsedDocument, config: TrustConfig = DEFAULT_TRUST_CONFIG) -> IntegrityReport:
    """
    Check for the mandatory Aadhaar elements and an encrypted payload.

    Elements are matched by local name anywhere in the tree.
    """
    try:
        present = _local_names(document)
    except Exception as exc:
        logger.warning("Integrity check failed: %s", exc)
        return IntegrityReport(error=str(exc))

    missing = tuple(name for name in config.required_elements if name not in present)
    if missing:
        logger.info("Document is missing expected elements: %s", ", ".join(missing))

    return IntegrityReport(
        missing_elements=missing,
        has_encrypted_payload=any(name in present for name in config.encrypted_markers),
    )
