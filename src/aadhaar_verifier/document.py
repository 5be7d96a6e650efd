"""
XML parsing and XML-Signature location.

The parser is locked down (no entity resolution, no network access) and does
no schema validation: any well-formed document is accepted here, whatever
its root element.
"""

import logging
from dataclasses import dataclass

from lxml import etree

from .errors import ParseFailure

logger = logging.getLogger(__name__)

DSIG_NS = "http://www.w3.org/2000/09/xmldsig#"


def dsig(local_name: str) -> str:
    """Clark-notation name of an XML-DSig element."""
    return f"{{{DSIG_NS}}}{local_name}"


def secure_parser() -> etree.XMLParser:
    """Parser with entity expansion and network access disabled."""
    return etree.XMLParser(
        resolve_entities=False,
        no_network=True,
        huge_tree=True,
        remove_blank_text=False,
        recover=False,
    )


@dataclass(frozen=True)
class ParsedDocument:
    """A parsed XML document, owned by the verification call that built it."""
    tree: etree._ElementTree

    @property
    def root(self) -> etree._Element:
        return self.tree.getroot()


@dataclass(frozen=True)
class SignatureNode:
    """Read-only reference to a ds:Signature element inside a ParsedDocument."""
    element: etree._Element

    def child(self, *path: str) -> etree._Element | None:
        """
        Follow a chain of ds: child names and return the first match.

        Example:
            >>> node.child("KeyInfo", "X509Data", "X509Certificate")
        """
        current: etree._Element | None = self.element
        for local_name in path:
            if current is None:
                return None
            current = current.find(dsig(local_name))
        return current


def to_bytes(xml: str | bytes) -> bytes:
    """Encode text input as UTF-8; byte input is passed through untouched."""
    if isinstance(xml, bytes):
        return xml
    return xml.encode("utf-8")


def parse_document(xml: str | bytes) -> ParsedDocument:
    """
    Parse raw XML into a navigable tree.

    Raises:
        ParseFailure: If the input is not well-formed XML
    """
    data = to_bytes(xml)
    if not data.strip():
        raise ParseFailure("Document is empty")

    try:
        root = etree.fromstring(data, secure_parser())
    except etree.XMLSyntaxError as exc:
        raise ParseFailure(str(exc)) from exc
    except ValueError as exc:
        # lxml rejects some undecodable inputs with ValueError
        raise ParseFailure(str(exc)) from exc

    if root is None:
        raise ParseFailure("Document has no root element")
    return ParsedDocument(tree=root.getroottree())


def find_signature(document: ParsedDocument) -> SignatureNode | None:
    """
    Return the first ds:Signature element in document order, or None.

    The search covers the whole tree, not only children of the root.
    """
    for element in document.root.iter(dsig("Signature")):
        return SignatureNode(element=element)
    logger.debug("No %s element in document", dsig("Signature"))
    return None
