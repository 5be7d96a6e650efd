"""
aadhaar-xml-verifier: Offline authenticity checks for Aadhaar eKYC XML.

Answers one question: does this document carry an XML digital signature
that matches its content and was produced by a certificate UIDAI, or a
CA authorized by UIDAI, controls?
"""

from .certificate import (
    CertificateDetails,
    CertificateMaterial,
    CertificateType,
    CertificateValidation,
    CertificateValidator,
    TrustDecision,
    decode_certificate,
    evaluate_trust,
    extract_certificate,
)
from .config import (
    DEFAULT_TRUST_CONFIG,
    TrustConfig,
    load_trust_config,
)
from .document import (
    DSIG_NS,
    ParsedDocument,
    SignatureNode,
    find_signature,
    parse_document,
)
from .errors import (
    ErrorCode,
    ParseFailure,
    Stage,
    VerificationError,
)
from .integrity import (
    IntegrityReport,
    IntegrityStatus,
    check_integrity,
)
from .result import (
    VerificationDetails,
    VerificationResult,
)
from .signature import (
    ManualStrategy,
    SignatureCheck,
    SignatureVerifier,
    StrategyOutcome,
    StructuredStrategy,
    VerificationContext,
)
from .verify import (
    AadhaarVerifier,
    verify,
    verify_file,
)

__version__ = "0.1.0"
__all__ = [
    # Verification entry points
    "AadhaarVerifier",
    "verify",
    "verify_file",
    # Configuration
    "DEFAULT_TRUST_CONFIG",
    "TrustConfig",
    "load_trust_config",
    # Document
    "DSIG_NS",
    "ParsedDocument",
    "SignatureNode",
    "find_signature",
    "parse_document",
    # Certificate
    "CertificateDetails",
    "CertificateMaterial",
    "CertificateType",
    "CertificateValidation",
    "CertificateValidator",
    "TrustDecision",
    "decode_certificate",
    "evaluate_trust",
    "extract_certificate",
    # Signature
    "ManualStrategy",
    "SignatureCheck",
    "SignatureVerifier",
    "StrategyOutcome",
    "StructuredStrategy",
    "VerificationContext",
    # Integrity
    "IntegrityReport",
    "IntegrityStatus",
    "check_integrity",
    # Results and errors
    "ErrorCode",
    "ParseFailure",
    "Stage",
    "VerificationDetails",
    "VerificationError",
    "VerificationResult",
]
