"""
Error codes and types for aadhaar-xml-verifier.

Every failure the verification pipeline can report maps onto exactly one
code below, and every code belongs to the pipeline stage that detects it.
A call to verify() reports a single root cause, never a cascade of
downstream symptoms.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Stage(str, Enum):
    """Verification pipeline stages, in the order they run."""
    INPUT = "input"
    PARSE = "parse"
    SIGNATURE_LOOKUP = "signature_lookup"
    CERTIFICATE = "certificate"
    TRUST = "trust"
    SIGNATURE = "signature"
    INTERNAL = "internal"


class ErrorCode(str, Enum):
    """
    Verification error codes, one per pipeline failure kind.
    """
    STRUCTURE_INVALID = "STRUCTURE_INVALID"
    SIGNATURE_MISSING = "SIGNATURE_MISSING"
    CERTIFICATE_MISSING = "CERTIFICATE_MISSING"
    CERTIFICATE_UNTRUSTED = "CERTIFICATE_UNTRUSTED"
    CERTIFICATE_DECODE_FAILED = "CERTIFICATE_DECODE_FAILED"
    SIGNATURE_MISMATCH = "SIGNATURE_MISMATCH"
    UNEXPECTED_ERROR = "UNEXPECTED_ERROR"
    FILE_READ_FAILED = "FILE_READ_FAILED"

    @property
    def stage(self) -> Stage:
        return _STAGES[self]


_STAGES = {
    ErrorCode.FILE_READ_FAILED: Stage.INPUT,
    ErrorCode.STRUCTURE_INVALID: Stage.PARSE,
    ErrorCode.SIGNATURE_MISSING: Stage.SIGNATURE_LOOKUP,
    ErrorCode.CERTIFICATE_MISSING: Stage.CERTIFICATE,
    ErrorCode.CERTIFICATE_DECODE_FAILED: Stage.CERTIFICATE,
    ErrorCode.CERTIFICATE_UNTRUSTED: Stage.TRUST,
    ErrorCode.SIGNATURE_MISMATCH: Stage.SIGNATURE,
    ErrorCode.UNEXPECTED_ERROR: Stage.INTERNAL,
}


class ParseFailure(ValueError):
    """Raised when the input is not well-formed XML."""


@dataclass
class VerificationError:
    """
    The root cause of a rejected document.

    `message` is the short human-readable error; `details` carries stage
    diagnostics such as the certificate DNs or per-strategy outcomes.
    """
    code: ErrorCode
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def stage(self) -> Stage:
        return self.code.stage

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "stage": self.stage.value,
            "message": self.message,
            "details": self.details,
        }
