"""
The verification result: the only artifact callers see.

to_dict() produces the interop shape (camelCase keys, errors as plain
strings); the dataclasses keep typed errors for Python callers.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from .certificate import CertificateDetails, CertificateType
from .errors import ErrorCode, VerificationError
from .integrity import IntegrityReport, IntegrityStatus


@dataclass
class VerificationDetails:
    structure_valid: bool = False
    has_signature: bool = False
    signature_valid: bool = False
    certificate_valid: bool = False
    certificate_issuer: str | None = None
    certificate_type: CertificateType | None = None
    data_integrity: IntegrityStatus = IntegrityStatus.UNKNOWN
    certificate_details: CertificateDetails | None = None
    integrity_details: IntegrityReport | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "structureValid": self.structure_valid,
            "hasSignature": self.has_signature,
            "signatureValid": self.signature_valid,
            "certificateValid": self.certificate_valid,
            "certificateIssuer": self.certificate_issuer,
            "dataIntegrity": self.data_integrity.value,
        }
        if self.certificate_type is not None:
            data["certificateType"] = self.certificate_type.value
        if self.certificate_details is not None:
            data["certificateDetails"] = self.certificate_details.to_dict()
        if self.integrity_details is not None:
            data["integrityDetails"] = self.integrity_details.to_dict()
        return data


@dataclass
class VerificationResult:
    """
    Result of verifying one document.

    `valid` and `verified` always agree; they are only set by succeed().
    """
    valid: bool = False
    verified: bool = False
    details: VerificationDetails = field(default_factory=VerificationDetails)
    message: str = ""
    errors: list[VerificationError] = field(default_factory=list)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def fail(self, code: ErrorCode, error: str, message: str, **details: Any) -> "VerificationResult":
        """Record the single root-cause error and mark the result unverified."""
        self.valid = False
        self.verified = False
        self.errors.append(VerificationError(code=code, message=error, details=details))
        self.message = message
        return self

    def succeed(self, message: str) -> "VerificationResult":
        self.valid = True
        self.verified = True
        self.message = message
        return self

    @property
    def error_codes(self) -> list[ErrorCode]:
        return [e.code for e in self.errors]

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "verified": self.verified,
            "details": self.details.to_dict(),
            "message": self.message,
            "timestamp": self.timestamp,
            "errors": [e.message for e in self.errors],
        }

    def to_json(self, **kwargs: Any) -> str:
        return json.dumps(self.to_dict(), **kwargs)
