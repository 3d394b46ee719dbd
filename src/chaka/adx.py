"""ADX document handling: find the orgUnit references and rewrite them.

Only the ``orgUnit`` attribute of ``adx:group`` elements directly under
the ``adx:adx`` root is read or written. Everything else in the
document is passed through as parsed.
"""

from __future__ import annotations

from lxml import etree

from chaka.errors import DocumentParseError
from chaka.models import Mapping

ADX_NS = "urn:ihe:qrph:adx:2015"

_NAMESPACES = {"adx": ADX_NS}
_ORG_UNITS = etree.XPath("//adx:adx/adx:group/@orgUnit", namespaces=_NAMESPACES)
_GROUPS_FOR_ORG_UNIT = etree.XPath(
    "//adx:adx/adx:group[@orgUnit = $local_id]", namespaces=_NAMESPACES
)


def _parser() -> etree.XMLParser:
    return etree.XMLParser(resolve_entities=False, no_network=True)


def parse_document(adx: bytes) -> etree._ElementTree:
    """Parse an ADX payload, raising DocumentParseError if it is not XML."""
    try:
        root = etree.fromstring(adx, parser=_parser())
    except etree.XMLSyntaxError as exc:
        raise DocumentParseError(f"Failed to parse ADX document: {exc}") from exc
    return root.getroottree()


def extract_org_unit_ids(adx: bytes) -> set[str]:
    """Return the distinct orgUnit ids referenced by the document."""
    tree = parse_document(adx)
    return {str(value) for value in _ORG_UNITS(tree)}


def replace_mapped_ids(mapping: Mapping, adx: bytes) -> bytes:
    """Return a copy of the document with each mapped orgUnit replaced.

    Identifiers mapped to None are left as they are.
    """
    tree = parse_document(adx)
    # All groups are selected before any is rewritten: a canonical id equal
    # to another local id must not be rewritten a second time.
    targets = [
        (_GROUPS_FOR_ORG_UNIT(tree, local_id=local_id), canonical_id)
        for local_id, canonical_id in mapping.items()
        if canonical_id is not None
    ]
    for groups, canonical_id in targets:
        for group in groups:
            group.set("orgUnit", canonical_id)
    return etree.tostring(tree, xml_declaration=True, encoding="UTF-8")
