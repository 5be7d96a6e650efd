"""
XML-Signature verification against the embedded certificate.

Verification runs an ordered sequence of strategies and stops at the first
one that reports success:

1. StructuredStrategy - signxml's XMLVerifier, pinned to the certificate key
2. ManualStrategy - direct canonicalize/digest/verify with cryptography

XML-DSig libraries sometimes reject documents whose signature is still
checkable by hand, so the manual path keeps such documents verifiable. It
recomputes every Reference digest as well as checking SignatureValue, so it
is no weaker than the structured path.
"""

import abc
import base64
import hmac
import logging
from dataclasses import dataclass, field
from typing import Sequence

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa, utils
from lxml import etree
from signxml import DigestAlgorithm, SignatureConfiguration, SignatureMethod, XMLVerifier

from .canonical import apply_transforms, canonicalize_signed_info
from .certificate import CertificateMaterial
from .document import DSIG_NS, ParsedDocument, SignatureNode, dsig

logger = logging.getLogger(__name__)

_XMLDSIG_MORE = "http://www.w3.org/2001/04/xmldsig-more#"
_XMLENC = "http://www.w3.org/2001/04/xmlenc#"

DIGEST_ALGORITHMS: dict[str, type[hashes.HashAlgorithm]] = {
    DSIG_NS + "sha1": hashes.SHA1,
    _XMLDSIG_MORE + "sha224": hashes.SHA224,
    _XMLENC + "sha256": hashes.SHA256,
    _XMLDSIG_MORE + "sha384": hashes.SHA384,
    _XMLENC + "sha512": hashes.SHA512,
}

SIGNATURE_ALGORITHMS: dict[str, type[hashes.HashAlgorithm]] = {
    DSIG_NS + "rsa-sha1": hashes.SHA1,
    _XMLDSIG_MORE + "rsa-sha224": hashes.SHA224,
    _XMLDSIG_MORE + "rsa-sha256": hashes.SHA256,
    _XMLDSIG_MORE + "rsa-sha384": hashes.SHA384,
    _XMLDSIG_MORE + "rsa-sha512": hashes.SHA512,
    _XMLDSIG_MORE + "ecdsa-sha1": hashes.SHA1,
    _XMLDSIG_MORE + "ecdsa-sha224": hashes.SHA224,
    _XMLDSIG_MORE + "ecdsa-sha256": hashes.SHA256,
    _XMLDSIG_MORE + "ecdsa-sha384": hashes.SHA384,
    _XMLDSIG_MORE + "ecdsa-sha512": hashes.SHA512,
}

# SignedInfo hash when SignatureMethod is absent or unrecognized
DEFAULT_SIGNATURE_HASH = hashes.SHA256


@dataclass(frozen=True)
class VerificationContext:
    """Everything a strategy needs; shared read-only between strategies."""
    xml_bytes: bytes
    document: ParsedDocument
    signature: SignatureNode
    certificate: CertificateMaterial


@dataclass(frozen=True)
class StrategyOutcome:
    strategy: str
    valid: bool
    error: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {"strategy": self.strategy, "valid": self.valid, "error": self.error}


@dataclass(frozen=True)
class SignatureCheck:
    """All strategy outcomes in the order they were attempted."""
    outcomes: tuple[StrategyOutcome, ...] = field(default_factory=tuple)

    @property
    def valid(self) -> bool:
        return any(outcome.valid for outcome in self.outcomes)

    @property
    def strategy(self) -> str | None:
        """Name of the strategy that succeeded, if any."""
        for outcome in self.outcomes:
            if outcome.valid:
                return outcome.strategy
        return None


class VerificationStrategy(abc.ABC):
    """One way of checking a signature. Subclasses return, never raise."""
    name = "abstract"

    @abc.abstractmethod
    def verify(self, context: VerificationContext) -> StrategyOutcome:
        """Check the signature in `context` and report the outcome."""

    def _fail(self, error: str) -> StrategyOutcome:
        logger.debug("%s verification failed: %s", self.name, error)
        return StrategyOutcome(strategy=self.name, valid=False, error=error)


class StructuredStrategy(VerificationStrategy):
    """
    Full XML-DSig processing via signxml.

    The certificate taken from KeyInfo is passed as the pinned key, so
    signxml checks the signature cryptographically without building a chain
    of its own. SHA-1 methods are allowed because Aadhaar documents are
    signed with rsa-sha1.
    """
    name = "structured"

    def __init__(self, expect_config: SignatureConfiguration | None = None):
        self.expect_config = expect_config or SignatureConfiguration(
            signature_methods=frozenset(SignatureMethod),
            digest_algorithms=frozenset(DigestAlgorithm),
        )

    def verify(self, context: VerificationContext) -> StrategyOutcome:
        try:
            XMLVerifier().verify(
                context.xml_bytes,
                x509_cert=context.certificate.pem,
                expect_config=self.expect_config,
            )
        except Exception as exc:
            return self._fail(f"{type(exc).__name__}: {exc}")
        return StrategyOutcome(strategy=self.name, valid=True)


class ManualStrategy(VerificationStrategy):
    """
    Direct verification: canonical SignedInfo, digest, public-key check.

    Steps:
    1. Canonicalize ds:SignedInfo with its CanonicalizationMethod
    2. Hash it with the hash implied by SignatureMethod
    3. Verify the base64-decoded SignatureValue over that digest
    4. Recompute each ds:Reference digest and compare with DigestValue
    """
    name = "manual"

    def verify(self, context: VerificationContext) -> StrategyOutcome:
        signature = context.signature
        signed_info = signature.child("SignedInfo")
        signature_value = signature.child("SignatureValue")
        if signed_info is None or signature_value is None:
            return self._fail("Signature lacks SignedInfo or SignatureValue")

        try:
            signature_bytes = base64.b64decode("".join((signature_value.text or "").split()), validate=True)
        except ValueError:
            return self._fail("SignatureValue is not valid base64")

        method = signed_info.find(dsig("SignatureMethod"))
        method_uri = method.get("Algorithm") if method is not None else None
        hash_cls = SIGNATURE_ALGORITHMS.get(method_uri or "", DEFAULT_SIGNATURE_HASH)

        try:
            digest = _digest(hash_cls(), canonicalize_signed_info(signed_info))
            _verify_digest(context.certificate.public_key, signature_bytes, digest, hash_cls())
        except InvalidSignature:
            return self._fail("SignatureValue does not verify against SignedInfo")
        except (ValueError, etree.LxmlError) as exc:
            return self._fail(str(exc))

        references = signed_info.findall(dsig("Reference"))
        if not references:
            return self._fail("SignedInfo has no Reference elements")

        root = context.document.root
        for reference in references:
            error = _check_reference(root, signature.element, reference)
            if error:
                return self._fail(error)

        return StrategyOutcome(strategy=self.name, valid=True)


def _digest(algorithm: hashes.HashAlgorithm, data: bytes) -> bytes:
    h = hashes.Hash(algorithm)
    h.update(data)
    return h.finalize()


def _verify_digest(public_key, signature: bytes, digest: bytes, algorithm: hashes.HashAlgorithm) -> None:
    """
    Verify a signature over a precomputed digest.

    Raises:
        InvalidSignature: If the signature does not match
        ValueError: If the key type is not supported
    """
    prehashed = utils.Prehashed(algorithm)
    if isinstance(public_key, rsa.RSAPublicKey):
        public_key.verify(signature, digest, padding.PKCS1v15(), prehashed)
        return
    if isinstance(public_key, ec.EllipticCurvePublicKey):
        # XML-DSig carries ECDSA signatures as raw r || s
        if len(signature) % 2:
            raise InvalidSignature()
        half = len(signature) // 2
        r = int.from_bytes(signature[:half], "big")
        s = int.from_bytes(signature[half:], "big")
        public_key.verify(utils.encode_dss_signature(r, s), digest, ec.ECDSA(prehashed))
        return
    raise ValueError(f"Unsupported public key type: {type(public_key).__name__}")


def _check_reference(root, signature_element, reference) -> str | None:
    """Return an error message if the reference digest does not match, else None."""
    uri = reference.get("URI")
    digest_method = reference.find(dsig("DigestMethod"))
    digest_value = reference.find(dsig("DigestValue"))
    if digest_method is None or digest_value is None:
        return f"Reference {uri!r} lacks DigestMethod or DigestValue"

    hash_cls = DIGEST_ALGORITHMS.get(digest_method.get("Algorithm") or "")
    if hash_cls is None:
        return f"Unsupported digest algorithm: {digest_method.get('Algorithm')}"

    try:
        expected = base64.b64decode("".join((digest_value.text or "").split()), validate=True)
        actual = _digest(hash_cls(), apply_transforms(root, signature_element, reference))
    except (ValueError, etree.LxmlError) as exc:
        return f"Reference {uri!r}: {exc}"

    if not hmac.compare_digest(expected, actual):
        return f"Digest mismatch for reference {uri!r}"
    return None


class SignatureVerifier:
    """
    Runs verification strategies in order until one succeeds.

    Args:
        strategies: Ordered strategies to try.
            Default: (StructuredStrategy(), ManualStrategy())

    Example:
        >>> verifier = SignatureVerifier()
        >>> check = verifier.check(context)
        >>> check.valid, check.strategy
        (True, 'structured')
    """

    def __init__(self, strategies: Sequence[VerificationStrategy] | None = None):
        if strategies is None:
            strategies = (StructuredStrategy(), ManualStrategy())
        self.strategies = tuple(strategies)

    def check(self, context: VerificationContext) -> SignatureCheck:
        outcomes: list[StrategyOutcome] = []
        for strategy in self.strategies:
            try:
                outcome = strategy.verify(context)
            except Exception as exc:
                logger.warning("Strategy %s raised: %s", strategy.name, exc)
                outcome = StrategyOutcome(strategy=strategy.name, valid=False, error=str(exc))
            outcomes.append(outcome)
            if outcome.valid:
                break
        return SignatureCheck(outcomes=tuple(outcomes))

    def verify(self, context: VerificationContext) -> bool:
        return self.check(context).valid
