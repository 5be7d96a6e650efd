"""
XML canonicalization for XML-DSig digests.

Rules:
- Canonicalization URIs map onto lxml's C14N serializer (inclusive or
  exclusive, with or without comments)
- C14N 1.1 is serialized as C14N 1.0; the two differ only for xml:id and
  xml:base fix-ups that Aadhaar documents do not use
- Reference transforms run on a deep copy, never on the caller's tree
- Subtrees are canonicalized from a standalone copy that declares every
  namespace inherited from its ancestors
- A reference without a canonicalization transform defaults to inclusive
  C14N 1.0, as XML-DSig requires for node-set to octet-stream conversion
"""

import copy

from lxml import etree

from .document import DSIG_NS, dsig, secure_parser

C14N_1_0 = "http://www.w3.org/TR/2001/REC-xml-c14n-20010315"
C14N_1_0_WITH_COMMENTS = C14N_1_0 + "#WithComments"
C14N_1_1 = "http://www.w3.org/2006/12/xml-c14n11"
C14N_1_1_WITH_COMMENTS = C14N_1_1 + "#WithComments"
EXC_C14N = "http://www.w3.org/2001/10/xml-exc-c14n#"
EXC_C14N_WITH_COMMENTS = EXC_C14N + "WithComments"

ENVELOPED_SIGNATURE = DSIG_NS + "enveloped-signature"

# algorithm -> (exclusive, with_comments)
C14N_MODES = {
    C14N_1_0: (False, False),
    C14N_1_0_WITH_COMMENTS: (False, True),
    C14N_1_1: (False, False),
    C14N_1_1_WITH_COMMENTS: (False, True),
    EXC_C14N: (True, False),
    EXC_C14N_WITH_COMMENTS: (True, True),
}

ID_ATTRIBUTES = ("Id", "ID", "id")


def _detached(element: etree._Element) -> etree._Element:
    """
    Standalone copy of a subtree, carrying every in-scope namespace declaration.

    libxml2 emits xmlns="" on descendants when a subtree whose default
    namespace is declared on an ancestor is canonicalized in place.
    Serializing and reparsing gives C14N a root element with the inherited
    declarations written out.
    """
    if element.getparent() is None:
        return element
    data = etree.tostring(element, with_tail=False)
    return etree.fromstring(data, secure_parser())


def canonicalize(
    element: etree._Element,
    algorithm: str = C14N_1_0,
    inclusive_ns_prefixes: list[str] | None = None,
) -> bytes:
    """
    Serialize an element subtree to canonical XML.

    Args:
        element: Subtree root; in-scope namespaces of its ancestors are kept
        algorithm: XML-DSig canonicalization URI
        inclusive_ns_prefixes: PrefixList for exclusive canonicalization

    Returns:
        Canonical UTF-8 bytes

    Raises:
        ValueError: If the algorithm URI is not supported
    """
    if algorithm not in C14N_MODES:
        raise ValueError(f"Unsupported canonicalization algorithm: {algorithm}")

    exclusive, with_comments = C14N_MODES[algorithm]
    return etree.tostring(
        _detached(element),
        method="c14n",
        exclusive=exclusive,
        with_comments=with_comments,
        inclusive_ns_prefixes=inclusive_ns_prefixes if exclusive else None,
    )


def inclusive_prefixes(method_element: etree._Element | None) -> list[str] | None:
    """Read the ec:InclusiveNamespaces PrefixList under a method/transform element."""
    if method_element is None:
        return None
    child = method_element.find(f"{{{EXC_C14N}}}InclusiveNamespaces")
    if child is None:
        return None
    return (child.get("PrefixList") or "").split() or None


def canonicalize_signed_info(signed_info: etree._Element) -> bytes:
    """Canonicalize ds:SignedInfo with its own declared CanonicalizationMethod."""
    method = signed_info.find(dsig("CanonicalizationMethod"))
    algorithm = method.get("Algorithm") if method is not None else None
    return canonicalize(
        signed_info,
        algorithm or C14N_1_0,
        inclusive_prefixes(method),
    )


def _remove_preserving_tail(element: etree._Element) -> None:
    """Detach an element, handing its tail text to the preceding node."""
    parent = element.getparent()
    if parent is None:
        raise ValueError("Cannot remove the document root")
    if element.tail:
        previous = element.getprevious()
        if previous is not None:
            previous.tail = (previous.tail or "") + element.tail
        else:
            parent.text = (parent.text or "") + element.tail
    parent.remove(element)


def _child_indexes(root: etree._Element, element: etree._Element) -> list[int] | None:
    """Child positions leading from `root` down to `element`, or None if unrelated."""
    indexes = []
    node = element
    while node is not root:
        parent = node.getparent()
        if parent is None:
            return None
        indexes.append(parent.index(node))
        node = parent
    return indexes[::-1]


def _follow(root: etree._Element, indexes: list[int] | None) -> etree._Element | None:
    if indexes is None:
        return None
    node = root
    for index in indexes:
        node = node[index]
    return node


def resolve_reference(root: etree._Element, uri: str | None) -> etree._Element:
    """
    Resolve a same-document Reference URI against `root`.

    Supports "" and "#xpointer(/)" (whole document) and "#id" /
    "#xpointer(id('id'))" (element carrying a matching Id, ID or id
    attribute).

    Raises:
        ValueError: If the URI is external or no element matches
    """
    if not uri or uri == "#xpointer(/)":
        return root

    if not uri.startswith("#"):
        raise ValueError(f"External reference URIs are not supported: {uri}")

    target_id = uri[1:]
    if target_id.startswith("xpointer(id(") and target_id.endswith("))"):
        target_id = target_id[len("xpointer(id("):-2].strip("'\"")

    for element in root.iter(tag=etree.Element):
        if any(element.get(attr) == target_id for attr in ID_ATTRIBUTES):
            return element
    raise ValueError(f"No element with id {target_id!r} for reference")


def apply_transforms(
    root: etree._Element,
    signature: etree._Element,
    reference: etree._Element,
) -> bytes:
    """
    Produce the octets a ds:Reference digest is computed over.

    Args:
        root: Root element of the signed document
        signature: The ds:Signature element the reference belongs to
        reference: The ds:Reference element

    Returns:
        Canonical bytes of the referenced content after all transforms

    Raises:
        ValueError: On unsupported transforms or unresolvable references
    """
    root_copy = copy.deepcopy(root)
    signature_copy = _follow(root_copy, _child_indexes(root, signature))

    target = resolve_reference(root_copy, reference.get("URI"))

    algorithm = C14N_1_0
    prefixes = None
    transforms = reference.find(dsig("Transforms"))
    if transforms is not None:
        for transform in transforms.findall(dsig("Transform")):
            transform_algorithm = transform.get("Algorithm")
            if transform_algorithm == ENVELOPED_SIGNATURE:
                if signature_copy is not None and signature_copy is not target:
                    _remove_preserving_tail(signature_copy)
            elif transform_algorithm in C14N_MODES:
                algorithm = transform_algorithm
                prefixes = inclusive_prefixes(transform)
            else:
                raise ValueError(f"Unsupported transform: {transform_algorithm}")

    return canonicalize(target, algorithm, prefixes)
