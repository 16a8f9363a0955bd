"""XML helpers shared by the XML-RPC value model and envelopes."""

from __future__ import annotations

from lxml import etree


def _strict_parser() -> etree.XMLParser:
    # No DTDs, entity expansion or network access; drop comments, PIs and blank text.
    return etree.XMLParser(
        resolve_entities=False,
        load_dtd=False,
        dtd_validation=False,
        no_network=True,
        remove_comments=True,
        remove_pis=True,
        remove_blank_text=True,
        huge_tree=False,
    )


def parse_document(content: bytes | str) -> etree._Element:
    """
    Parse a complete XML document strictly.

    Args:
        content: Document bytes (or text without an encoding declaration).

    Returns:
        Root element.

    Raises:
        ValueError: If the content is empty, not well-formed, or declares a DTD.
    """
    if not content:
        raise ValueError("XML content is empty")

    try:
        root = etree.fromstring(content, parser=_strict_parser())
    except (etree.XMLSyntaxError, ValueError) as e:
        raise ValueError(f"Invalid XML document: {e}") from e

    if root.getroottree().docinfo.doctype:
        raise ValueError("XML documents with a DTD are not accepted")
    return root


def render(element: etree._Element) -> str:
    """Render an element tree as a compact XML string."""
    return etree.tostring(element, encoding="unicode")


def local_name(element: etree._Element) -> str:
    """Tag name without namespace."""
    return etree.QName(element).localname


def element_text(element: etree._Element) -> str:
    """Concatenated text of an element and its descendants."""
    return "".join(element.itertext())


def child_elements(element: etree._Element) -> list[etree._Element]:
    """Child elements, skipping comments and processing instructions."""
    return [child for child in element if isinstance(child.tag, str)]


def start_element(parent: etree._Element | None, tag: str) -> etree._Element:
    """Create ``tag`` under parent, or as a new root when parent is None."""
    if parent is None:
        return etree.Element(tag)
    return etree.SubElement(parent, tag)
