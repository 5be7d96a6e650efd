"""Document-shape report tests."""

from aadhaar_verifier import (
    IntegrityReport,
    IntegrityStatus,
    TrustConfig,
    check_integrity,
    parse_document,
)
from conftest import AADHAAR_XML


class TestCheckIntegrity:

    def test_complete_document_is_intact(self):
        report = check_integrity(parse_document(AADHAAR_XML))
        assert report.status is IntegrityStatus.INTACT
        assert report.has_required_elements
        assert report.has_encrypted_payload
        assert report.structure_compliant

    def test_missing_poa_is_suspicious(self):
        xml = AADHAAR_XML.replace(AADHAAR_XML[AADHAAR_XML.index("<Poa "):AADHAAR_XML.index("<Pht>")], "")
        report = check_integrity(parse_document(xml))
        assert report.missing_elements == ("Poa",)
        assert report.status is IntegrityStatus.SUSPICIOUS
        assert not report.structure_compliant

    def test_missing_elements_keep_configured_order(self):
        report = check_integrity(parse_document("<OfflinePaperlessKyc/>"))
        assert report.missing_elements == ("UidData", "Poi", "Poa")

    def test_no_encrypted_payload(self):
        """Missing payload leaves status intact but the structure non-compliant."""
        xml = AADHAAR_XML.replace("<Data>ZW5jcnlwdGVkLXBheWxvYWQ=</Data>", "")
        report = check_integrity(parse_document(xml))
        assert not report.has_encrypted_payload
        assert not report.structure_compliant
        assert report.status is IntegrityStatus.INTACT

    def test_encrypted_data_marker(self):
        report = check_integrity(parse_document("<r><UidData><Poi/><Poa/></UidData><EncryptedData/></r>"))
        assert report.structure_compliant

    def test_namespaced_elements_match_by_local_name(self):
        xml = '<k:r xmlns:k="urn:kyc"><k:UidData><k:Poi/><k:Poa/></k:UidData><k:Data/></k:r>'
        assert check_integrity(parse_document(xml)).structure_compliant

    def test_comments_are_ignored(self):
        xml = "<r><!-- Poa --><UidData><Poi/></UidData></r>"
        assert check_integrity(parse_document(xml)).missing_elements == ("Poa",)

    def test_synthetic_config(self):
        config = TrustConfig(required_elements=("Header",), encrypted_markers=("Blob",))
        report = check_integrity(parse_document("<r><Header/><Blob/></r>"), config)
        assert report.structure_compliant


class TestIntegrityReport:

    def test_error_is_unknown(self):
        report = IntegrityReport(error="boom")
        assert report.status is IntegrityStatus.UNKNOWN
        assert report.to_dict() == {"error": "boom"}

    def test_to_dict(self):
        report = IntegrityReport(missing_elements=("Poa",), has_encrypted_payload=True)
        assert report.to_dict() == {
            "hasRequiredElements": False,
            "missingElements": ["Poa"],
            "hasEncryptedData": True,
            "structureCompliant": False,
        }
