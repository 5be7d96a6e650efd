"""
Trust configuration for aadhaar-xml-verifier.

The name lists below are matched as exact, case-sensitive substrings of the
assembled "key=value, key=value" distinguished-name strings of the signing
certificate. They are held in an immutable object that is handed to the
validator at construction, so tests can substitute synthetic lists.
"""

import json
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any


UIDAI_ISSUERS = (
    "UIDAI",
    "Unique Identification Authority of India",
    "UID",
    "C=IN, O=UIDAI",
    "CN=UIDAI",
)

# Certificate authorities known to sign Aadhaar documents on UIDAI's behalf
AUTHORIZED_CAS = (
    "(n)Code Solutions",
    "nCode Solutions",
    "Certifying Authority",
    "Gujarat Narmada Valley Fertilizers",
    "GNFC",
    "Sify",
    "eMudhra",
    "National Informatics Centre",
    "NIC",
    "C-DAC",
    "CDAC",
    "TCS",
    "Tata Consultancy Services",
)

INDIA_JURISDICTION_MARKER = "C=IN"

REQUIRED_ELEMENTS = ("UidData", "Poi", "Poa")

ENCRYPTED_MARKERS = ("Data", "EncryptedData")


@dataclass(frozen=True)
class TrustConfig:
    """
    Static, read-only trust policy and document-shape expectations.

    Attributes:
        uidai_issuers: DN fragments identifying UIDAI itself
        authorized_cas: DN fragments identifying delegated CAs
        jurisdiction_marker: DN fragment required alongside a CA match
        required_elements: Element local names every document must contain
        encrypted_markers: Element local names indicating an encrypted payload
    """
    uidai_issuers: tuple[str, ...] = UIDAI_ISSUERS
    authorized_cas: tuple[str, ...] = AUTHORIZED_CAS
    jurisdiction_marker: str = INDIA_JURISDICTION_MARKER
    required_elements: tuple[str, ...] = REQUIRED_ELEMENTS
    encrypted_markers: tuple[str, ...] = ENCRYPTED_MARKERS

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TrustConfig":
        """
        Build a config from a plain mapping, using defaults for absent keys.

        Raises:
            ValueError: If the mapping has unknown keys or wrongly typed values
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown trust config keys: {', '.join(unknown)}")

        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            if key == "jurisdiction_marker":
                if not isinstance(value, str):
                    raise ValueError("jurisdiction_marker must be a string")
                kwargs[key] = value
                continue
            if isinstance(value, str) or not all(isinstance(v, str) for v in value):
                raise ValueError(f"{key} must be a list of strings")
            kwargs[key] = tuple(value)
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        return {
            "uidai_issuers": list(self.uidai_issuers),
            "authorized_cas": list(self.authorized_cas),
            "jurisdiction_marker": self.jurisdiction_marker,
            "required_elements": list(self.required_elements),
            "encrypted_markers": list(self.encrypted_markers),
        }


DEFAULT_TRUST_CONFIG = TrustConfig()


def load_trust_config(path: str | Path) -> TrustConfig:
    """Read a TrustConfig from a JSON object stored at `path`."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError("Trust config file must contain a JSON object")
    return TrustConfig.from_dict(data)
