"""Shared fixtures: throwaway keys, certificates and signed documents."""

import base64
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from xml.sax.saxutils import escape

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.x509.oid import NameOID
from lxml import etree
from signxml import XMLSigner, methods

# Add parent src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

DSIG = "http://www.w3.org/2000/09/xmldsig#"
C14N = "http://www.w3.org/TR/2001/REC-xml-c14n-20010315"

UIDAI_NAME = [
    (NameOID.COUNTRY_NAME, "IN"),
    (NameOID.ORGANIZATION_NAME, "UIDAI"),
    (NameOID.COMMON_NAME, "DS Unique Identification Authority of India"),
]
INDIAN_CA_NAME = [
    (NameOID.COUNTRY_NAME, "IN"),
    (NameOID.ORGANIZATION_NAME, "eMudhra Limited"),
    (NameOID.COMMON_NAME, "e-Mudhra Sub CA for Class 3 Document Signer"),
]
FOREIGN_CA_NAME = [
    (NameOID.COUNTRY_NAME, "US"),
    (NameOID.ORGANIZATION_NAME, "eMudhra Inc"),
    (NameOID.COMMON_NAME, "eMudhra Document Signer"),
]
UNTRUSTED_NAME = [
    (NameOID.COUNTRY_NAME, "US"),
    (NameOID.ORGANIZATION_NAME, "Example Corp"),
    (NameOID.COMMON_NAME, "Example Signer"),
]

AADHAAR_XML = (
    '<OfflinePaperlessKyc referenceId="123420190101120000000">'
    "<UidData>"
    '<Poi dob="01-01-1990" e="" gender="M" m="" name="Test Resident"/>'
    '<Poa careof="" country="India" dist="Bengaluru" house="12" pc="560001" state="Karnataka" street="MG Road"/>'
    "<Pht>/9j/4AAQSkZJRgABAQAAAQABAAD/</Pht>"
    "</UidData>"
    "<Data>ZW5jcnlwdGVkLXBheWxvYWQ=</Data>"
    "</OfflinePaperlessKyc>"
)


def _name(attributes) -> x509.Name:
    return x509.Name([x509.NameAttribute(oid, value) for oid, value in attributes])


def build_certificate(
    key,
    subject,
    issuer=None,
    not_before: datetime | None = None,
    not_after: datetime | None = None,
    serial_number: int | None = None,
) -> x509.Certificate:
    now = datetime.now(timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(_name(subject))
        .issuer_name(_name(issuer or subject))
        .public_key(key.public_key())
        .serial_number(serial_number or x509.random_serial_number())
        .not_valid_before(not_before or now - timedelta(days=1))
        .not_valid_after(not_after or now + timedelta(days=365))
        .sign(key, hashes.SHA256())
    )


def certificate_pem(cert: x509.Certificate) -> str:
    return cert.public_bytes(serialization.Encoding.PEM).decode("ascii")


# Canonical SignedInfo of a UIDAI-style signature. `ns` is the default
# namespace declaration C14N writes when SignedInfo is the output apex and
# is empty inside the document, where SignedInfo inherits it from Signature.
SIGNED_INFO = (
    "<SignedInfo{ns}>"
    '<CanonicalizationMethod Algorithm="{c14n}"></CanonicalizationMethod>'
    '<SignatureMethod Algorithm="{dsig}rsa-sha1"></SignatureMethod>'
    '<Reference URI="">'
    '<Transforms><Transform Algorithm="{dsig}enveloped-signature"></Transform></Transforms>'
    '<DigestMethod Algorithm="{dsig}sha1"></DigestMethod>'
    "<DigestValue>{digest}</DigestValue>"
    "</Reference>"
    "</SignedInfo>"
)


def sign_aadhaar_style(xml_text: str, key, cert: x509.Certificate) -> str:
    """
    Enveloped rsa-sha1 signature laid out the way UIDAI signs eKYC XML:
    C14N 1.0, a single URI="" reference, and a Signature element declaring
    the XML-DSig namespace as its default namespace.

    The signed SignedInfo octets are written out literally, and the
    reference digest covers the canonical form of the unsigned document.
    """
    unsigned = etree.fromstring(xml_text.encode("utf-8"))
    digest = hashes.Hash(hashes.SHA1())
    digest.update(etree.tostring(unsigned, method="c14n"))
    digest_value = base64.b64encode(digest.finalize()).decode("ascii")

    def signed_info(ns: str) -> str:
        return SIGNED_INFO.format(ns=ns, c14n=C14N, dsig=DSIG, digest=digest_value)

    canonical = signed_info(f' xmlns="{DSIG}"').encode("utf-8")
    raw = key.sign(canonical, padding.PKCS1v15(), hashes.SHA1())
    certificate_b64 = base64.b64encode(cert.public_bytes(serialization.Encoding.DER)).decode("ascii")

    signature = (
        f'<Signature xmlns="{DSIG}">'
        + signed_info("")
        + f"<SignatureValue>{base64.b64encode(raw).decode('ascii')}</SignatureValue>"
        + "<KeyInfo><X509Data>"
        + f"<X509SubjectName>{escape(cert.subject.rfc4514_string())}</X509SubjectName>"
        + f"<X509Certificate>{certificate_b64}</X509Certificate>"
        + "</X509Data></KeyInfo>"
        + "</Signature>"
    )
    close = xml_text.rindex("</")
    return xml_text[:close] + signature + xml_text[close:]


def sign_with_signxml(xml_text: str, key, cert: x509.Certificate) -> str:
    root = etree.fromstring(xml_text.encode("utf-8"))
    signed = XMLSigner(method=methods.enveloped).sign(root, key=key, cert=certificate_pem(cert))
    return etree.tostring(signed, encoding="unicode")


@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def uidai_cert(rsa_key):
    return build_certificate(rsa_key, UIDAI_NAME)


@pytest.fixture(scope="session")
def signed_xml(rsa_key, uidai_cert):
    """A UIDAI-signed, structurally complete document."""
    return sign_aadhaar_style(AADHAAR_XML, rsa_key, uidai_cert)


@pytest.fixture(scope="session")
def signxml_signed_xml(rsa_key, uidai_cert):
    """The same document signed by signxml with its default rsa-sha256 profile."""
    return sign_with_signxml(AADHAAR_XML, rsa_key, uidai_cert)


@pytest.fixture
def sign(rsa_key):
    """Factory: sign AADHAAR_XML (or given XML) with a certificate for `subject`."""
    def _sign(subject, xml_text=AADHAAR_XML, **cert_kwargs):
        cert = build_certificate(rsa_key, subject, **cert_kwargs)
        return sign_aadhaar_style(xml_text, rsa_key, cert)
    return _sign
