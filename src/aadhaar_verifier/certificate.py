"""
Certificate extraction and trust evaluation.

The signing certificate is taken from the signature's own KeyInfo block and
judged against a TrustConfig. Validity-period expiry is reported but never
causes rejection: Aadhaar documents are signed at issuance time, so a
certificate that has since expired still vouches for an old document whose
signature verifies.
"""

import logging
import textwrap
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from cryptography import x509
from cryptography.x509.oid import NameOID

from .config import DEFAULT_TRUST_CONFIG, TrustConfig
from .document import SignatureNode

logger = logging.getLogger(__name__)

PEM_HEADER = "-----BEGIN CERTIFICATE-----"
PEM_FOOTER = "-----END CERTIFICATE-----"

EXPIRED_NOTE = "Certificate expired but signature remains valid (XML was signed when cert was active)"

# Short names for attributes RFC 4514 leaves as dotted OIDs
_SHORT_NAMES = {
    NameOID.EMAIL_ADDRESS: "E",
    NameOID.SERIAL_NUMBER: "serialNumber",
    NameOID.SURNAME: "SN",
    NameOID.GIVEN_NAME: "GN",
    NameOID.TITLE: "title",
    NameOID.POSTAL_CODE: "postalCode",
    NameOID.PSEUDONYM: "pseudonym",
}


class CertificateType(str, Enum):
    DIRECT_UIDAI = "Direct UIDAI"
    AUTHORIZED_CA = "Authorized CA"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class CertificateMaterial:
    """Decoded signing certificate plus the fields trust evaluation needs."""
    pem: str
    certificate: x509.Certificate
    issuer: str
    subject: str
    not_before: datetime
    not_after: datetime
    serial_number: str
    signature_algorithm: str

    @property
    def public_key(self):
        return self.certificate.public_key()


@dataclass(frozen=True)
class TrustDecision:
    """
    Outcome of the trust policy for one certificate.

    `accepted` is derived, so it always equals
    is_direct_uidai or (is_authorized_ca and is_indian_jurisdiction).
    """
    is_direct_uidai: bool
    is_authorized_ca: bool
    is_indian_jurisdiction: bool

    @property
    def accepted(self) -> bool:
        return self.is_direct_uidai or (self.is_authorized_ca and self.is_indian_jurisdiction)

    @property
    def certificate_type(self) -> CertificateType:
        if self.is_direct_uidai:
            return CertificateType.DIRECT_UIDAI
        if self.is_authorized_ca:
            return CertificateType.AUTHORIZED_CA
        return CertificateType.UNKNOWN

    def to_dict(self) -> dict[str, Any]:
        return {
            "isDirectUidai": self.is_direct_uidai,
            "isAuthorizedCA": self.is_authorized_ca,
            "isIndianJurisdiction": self.is_indian_jurisdiction,
            "accepted": self.accepted,
            "certificateType": self.certificate_type.value,
        }


@dataclass(frozen=True)
class CertificateDetails:
    """Informational certificate fields surfaced in the verification result."""
    valid_from: str
    valid_to: str
    is_valid_period: bool
    is_expired: bool
    serial_number: str
    signature_algorithm: str
    certificate_type: CertificateType
    note: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "validFrom": self.valid_from,
            "validTo": self.valid_to,
            "isValidPeriod": self.is_valid_period,
            "isExpired": self.is_expired,
            "serialNumber": self.serial_number,
            "signatureAlgorithm": self.signature_algorithm,
            "certificateType": self.certificate_type.value,
            "note": self.note,
        }


@dataclass(frozen=True)
class CertificateValidation:
    """
    Result of validating the signing certificate.

    `material`, `decision` and `details` are None when the certificate could
    not be decoded; `error` then carries the decode failure.
    """
    issuer: str
    subject: str | None = None
    material: CertificateMaterial | None = None
    decision: TrustDecision | None = None
    details: CertificateDetails | None = None
    error: str | None = None

    @property
    def accepted(self) -> bool:
        return self.decision is not None and self.decision.accepted


def extract_certificate(signature: SignatureNode) -> str | None:
    """
    Pull the embedded X.509 certificate out of ds:KeyInfo/ds:X509Data.

    Returns:
        The certificate as PEM text, or None if the signature carries no
        certificate element
    """
    cert_node = signature.child("KeyInfo", "X509Data", "X509Certificate")
    if cert_node is None or not (cert_node.text or "").strip():
        logger.debug("Signature has no embedded X509Certificate")
        return None
    return to_pem(cert_node.text)


def to_pem(base64_body: str) -> str:
    """Wrap base64 certificate text in PEM markers with 64-column lines."""
    body = "".join(base64_body.split())
    lines = textwrap.wrap(body, 64)
    return "\n".join([PEM_HEADER, *lines, PEM_FOOTER]) + "\n"


def format_name(name: x509.Name) -> str:
    """
    Render a Name as "key=value" pairs joined by ", ".

    Attributes keep their encoded order, so "C=IN, O=UIDAI" style fragments
    in the trust lists match the way such names are usually issued.
    """
    parts = []
    for attribute in name:
        key = _SHORT_NAMES.get(attribute.oid) or attribute.rfc4514_attribute_name
        value = attribute.value
        if isinstance(value, bytes):
            value = value.decode("utf-8", errors="replace")
        parts.append(f"{key}={value}")
    return ", ".join(parts)


def serial_hex(serial_number: int) -> str:
    """Lowercase hex of the DER INTEGER content octets, leading zero octets included."""
    length = serial_number.bit_length() // 8 + 1
    return serial_number.to_bytes(length, "big", signed=True).hex()


def decode_certificate(pem: str) -> CertificateMaterial:
    """
    Decode a PEM certificate into CertificateMaterial.

    Raises:
        ValueError: If the PEM text is not a decodable X.509 certificate
    """
    try:
        cert = x509.load_pem_x509_certificate(pem.encode("ascii"))
    except ValueError as exc:
        raise ValueError(f"invalid certificate encoding ({exc})") from exc

    # Field accessors parse lazily and can still fail on malformed DER
    try:
        return CertificateMaterial(
            pem=pem,
            certificate=cert,
            issuer=format_name(cert.issuer),
            subject=format_name(cert.subject),
            not_before=cert.not_valid_before_utc,
            not_after=cert.not_valid_after_utc,
            serial_number=serial_hex(cert.serial_number),
            signature_algorithm=cert.signature_algorithm_oid.dotted_string,
        )
    except Exception as exc:
        raise ValueError(f"invalid certificate fields ({exc})") from exc


def evaluate_trust(issuer: str, subject: str, config: TrustConfig = DEFAULT_TRUST_CONFIG) -> TrustDecision:
    """
    Apply the trust policy to an issuer/subject DN pair.

    A CA-name match alone is not enough: the DN must also carry the Indian
    jurisdiction marker, so unrelated foreign entities sharing a CA's common
    name are rejected. Direct UIDAI matches need no jurisdiction marker.
    """
    def matches(candidates: tuple[str, ...]) -> bool:
        return any(c in issuer or c in subject for c in candidates)

    marker = config.jurisdiction_marker
    return TrustDecision(
        is_direct_uidai=matches(config.uidai_issuers),
        is_authorized_ca=matches(config.authorized_cas),
        is_indian_jurisdiction=marker in issuer or marker in subject,
    )


def describe_certificate(
    material: CertificateMaterial,
    decision: TrustDecision,
    now: datetime | None = None,
) -> CertificateDetails:
    """Build the informational validity-period summary for a certificate."""
    now = now or datetime.now(timezone.utc)
    is_expired = now > material.not_after
    return CertificateDetails(
        valid_from=material.not_before.isoformat(),
        valid_to=material.not_after.isoformat(),
        is_valid_period=material.not_before <= now <= material.not_after,
        is_expired=is_expired,
        serial_number=material.serial_number,
        signature_algorithm=material.signature_algorithm,
        certificate_type=decision.certificate_type,
        note=EXPIRED_NOTE if is_expired else None,
    )


class CertificateValidator:
    """
    Decodes a signing certificate and evaluates it against a TrustConfig.

    Args:
        config: Trust lists to evaluate against. Default: DEFAULT_TRUST_CONFIG
    """

    def __init__(self, config: TrustConfig = DEFAULT_TRUST_CONFIG):
        self.config = config

    def validate(self, pem: str, now: datetime | None = None) -> CertificateValidation:
        """
        Validate a PEM certificate. Never raises for bad certificate input.

        Args:
            pem: PEM-encoded certificate
            now: Reference time for the validity-period check (default: now, UTC)

        Returns:
            CertificateValidation; decode failures come back untrusted with
            `error` set
        """
        try:
            material = decode_certificate(pem)
        except ValueError as exc:
            logger.warning("Certificate decode failed: %s", exc)
            return CertificateValidation(issuer="Unknown", error=str(exc))

        decision = evaluate_trust(material.issuer, material.subject, self.config)
        details = describe_certificate(material, decision, now)
        if details.is_expired:
            logger.info("Signing certificate expired at %s", details.valid_to)

        return CertificateValidation(
            issuer=material.issuer,
            subject=material.subject,
            material=material,
            decision=decision,
            details=details,
        )

