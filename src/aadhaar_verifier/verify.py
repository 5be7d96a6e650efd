"""
Offline verification of Aadhaar eKYC XML documents.

Stages run in strict order and the first failure ends the run:

    parse -> locate signature -> extract certificate -> certificate trust
          -> signature check -> integrity report

Trust is decided before the signature is checked, so a cryptographically
sound signature from an unrecognized issuer is still rejected. Nothing
escapes verify(): unexpected faults come back as an unverified result.
"""

import logging
from pathlib import Path

from .certificate import CertificateType, CertificateValidator, extract_certificate
from .config import DEFAULT_TRUST_CONFIG, TrustConfig
from .document import find_signature, parse_document, to_bytes
from .errors import ErrorCode, ParseFailure
from .integrity import IntegrityStatus, check_integrity
from .result import VerificationResult
from .signature import SignatureVerifier, VerificationContext

logger = logging.getLogger(__name__)

MSG_PARSE_FAILED = "Failed to parse XML file"
MSG_UNSIGNED = "XML is not digitally signed - possibly manually created"
MSG_NO_CERTIFICATE = "Digital signature lacks certificate information"
MSG_UNTRUSTED = "Certificate issuer is not recognized as UIDAI or authorized CA - possibly forged"
MSG_TAMPERED = "Data has been tampered - signature mismatch"

_SUCCESS_MESSAGES = {
    CertificateType.DIRECT_UIDAI: "XML is authentic and directly signed by UIDAI - Data integrity verified",
    CertificateType.AUTHORIZED_CA: "XML is authentic and signed by UIDAI authorized CA - Data integrity verified",
}
_DEFAULT_SUCCESS_MESSAGE = "XML is authentic and signed by UIDAI - Data integrity verified"


class AadhaarVerifier:
    """
    Verifies Aadhaar Offline eKYC XML documents.

    Holds no per-call state, so one instance may be shared across threads.

    Args:
        config: Trust lists and expected document shape.
            Default: DEFAULT_TRUST_CONFIG
        signature_verifier: Signature strategies to run.
            Default: structured (signxml) then manual (cryptography)

    Example:
        >>> verifier = AadhaarVerifier()
        >>> result = verifier.verify(xml_text)
        >>> result.verified, result.message
    """

    def __init__(
        self,
        config: TrustConfig = DEFAULT_TRUST_CONFIG,
        signature_verifier: SignatureVerifier | None = None,
    ):
        self.config = config
        self.certificate_validator = CertificateValidator(config)
        self.signature_verifier = signature_verifier or SignatureVerifier()

    def verify(self, xml: str | bytes) -> VerificationResult:
        """
        Verify one document held in memory.

        Args:
            xml: Decrypted XML text (str) or its raw bytes

        Returns:
            A fully populated VerificationResult; never raises
        """
        result = VerificationResult()
        try:
            return self._run(xml, result)
        except Exception as exc:
            logger.exception("Unexpected verification fault")
            return result.fail(
                ErrorCode.UNEXPECTED_ERROR,
                str(exc),
                f"Verification error: {exc}",
            )

    def verify_file(self, path: str | Path) -> VerificationResult:
        """Read `path` fully as UTF-8 text, then verify it."""
        try:
            xml = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Failed to read %s: %s", path, exc)
            return VerificationResult().fail(
                ErrorCode.FILE_READ_FAILED,
                str(exc),
                f"Failed to read file: {exc}",
                path=str(path),
            )
        return self.verify(xml)

    def _run(self, xml: str | bytes, result: VerificationResult) -> VerificationResult:
        details = result.details

        try:
            document = parse_document(xml)
        except ParseFailure as exc:
            logger.debug("XML parse failed: %s", exc)
            return result.fail(ErrorCode.STRUCTURE_INVALID, "Invalid XML structure", MSG_PARSE_FAILED, reason=str(exc))
        details.structure_valid = True

        signature = find_signature(document)
        if signature is None:
            return result.fail(ErrorCode.SIGNATURE_MISSING, "No digital signature found in XML", MSG_UNSIGNED)
        details.has_signature = True

        pem = extract_certificate(signature)
        if pem is None:
            return result.fail(ErrorCode.CERTIFICATE_MISSING, "No certificate found in signature", MSG_NO_CERTIFICATE)

        validation = self.certificate_validator.validate(pem)
        details.certificate_issuer = validation.issuer
        details.certificate_valid = validation.accepted
        details.certificate_details = validation.details

        if validation.error is not None:
            return result.fail(
                ErrorCode.CERTIFICATE_DECODE_FAILED,
                f"Certificate could not be decoded: {validation.error}",
                MSG_UNTRUSTED,
            )
        if not validation.accepted:
            logger.info("Untrusted certificate issuer=%r subject=%r", validation.issuer, validation.subject)
            return result.fail(
                ErrorCode.CERTIFICATE_UNTRUSTED,
                "Certificate is not issued by UIDAI or authorized CA",
                MSG_UNTRUSTED,
                issuer=validation.issuer,
                subject=validation.subject,
            )
        details.certificate_type = validation.decision.certificate_type

        check = self.signature_verifier.check(VerificationContext(
            xml_bytes=to_bytes(xml),
            document=document,
            signature=signature,
            certificate=validation.material,
        ))
        details.signature_valid = check.valid
        if not check.valid:
            details.data_integrity = IntegrityStatus.COMPROMISED
            return result.fail(
                ErrorCode.SIGNATURE_MISMATCH,
                "Digital signature verification failed",
                MSG_TAMPERED,
                strategies=[o.to_dict() for o in check.outcomes],
            )

        report = check_integrity(document, self.config)
        details.data_integrity = report.status
        details.integrity_details = report

        logger.info(
            "Document verified (%s, strategy=%s, integrity=%s)",
            details.certificate_type.value, check.strategy, report.status.value,
        )
        return result.succeed(_SUCCESS_MESSAGES.get(details.certificate_type, _DEFAULT_SUCCESS_MESSAGE))


def verify(xml: str | bytes, config: TrustConfig = DEFAULT_TRUST_CONFIG) -> VerificationResult:
    """Verify one in-memory document with a fresh AadhaarVerifier."""
    return AadhaarVerifier(config).verify(xml)


def verify_file(path: str | Path, config: TrustConfig = DEFAULT_TRUST_CONFIG) -> VerificationResult:
    """Read `path` as text and verify it with a fresh AadhaarVerifier."""
    return AadhaarVerifier(config).verify_file(path)
