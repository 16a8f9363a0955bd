"""
XML-RPC method response envelope.

A response carries either a single returned value or a fault structure with
``faultCode`` and ``faultString`` members.
"""

from __future__ import annotations

from typing import Any

import httpx
from lxml import etree

from .values import (
    XmlRpcScalarValue,
    XmlRpcStructureMember,
    XmlRpcStructureValue,
    XmlRpcValue,
    XmlSerializable,
    try_parse_value,
)
from .xml_utils import child_elements, parse_document, start_element

XML_CONTENT_TYPE = "text/xml"


class XmlRpcResponse(XmlSerializable):
    """XML-RPC method response."""

    def __init__(self, parameter: XmlRpcValue | None = None) -> None:
        """
        Initialize response.

        Args:
            parameter: Returned value for a successful call; omit for an
                empty response to be populated by ``load``.
        """
        self._parameter: XmlRpcValue | None = parameter
        self._fault: XmlRpcStructureValue | None = None

    @classmethod
    def from_fault(cls, fault: XmlRpcStructureValue) -> XmlRpcResponse:
        """Create a fault response from a fault structure."""
        if fault is None:
            raise ValueError("fault must not be None")
        response = cls()
        response._fault = fault
        return response

    @classmethod
    def from_fault_code(cls, fault_code: int, fault_message: str) -> XmlRpcResponse:
        """
        Create a fault response from a code and message.

        Args:
            fault_code: Machine-readable fault code.
            fault_message: Human-readable fault description.

        Returns:
            Response whose fault has ``faultCode`` and ``faultString`` members.
        """
        structure = XmlRpcStructureValue(
            [
                XmlRpcStructureMember("faultCode", XmlRpcScalarValue.from_integer(fault_code)),
                XmlRpcStructureMember("faultString", XmlRpcScalarValue.from_string(fault_message)),
            ]
        )
        return cls.from_fault(structure)

    @classmethod
    def from_http_response(
        cls, response: httpx.Response, *, allow_content_type_parameters: bool = False
    ) -> XmlRpcResponse:
        """
        Create a response from an HTTP response.

        Args:
            response: Transport response whose body is a methodResponse document.
            allow_content_type_parameters: Accept parameters such as
                ``; charset=utf-8`` after the media type. By default the
                header must be exactly ``text/xml`` (case-insensitive).

        Returns:
            Parsed response; empty when the document has no methodResponse root.

        Raises:
            ValueError: If the content type is not text/xml, the content
                length is not positive, or the body is not well-formed XML.
        """
        if response is None:
            raise ValueError("response must not be None")

        content_type = response.headers.get("content-type", "")
        media_type = content_type.strip()
        if allow_content_type_parameters:
            media_type = media_type.split(";", 1)[0].strip()
        if media_type.lower() != XML_CONTENT_TYPE:
            raise ValueError(
                f"The HTTP response content type is invalid. "
                f"Content type of the response was {content_type!r}"
            )

        content_length = _content_length(response)
        if content_length <= 0:
            raise ValueError(
                f"The HTTP response content length is invalid. "
                f"Content length was {content_length}."
            )

        result = cls()
        root = parse_document(response.content)
        if root.tag == "methodResponse":
            result.load(root)
        return result

    @classmethod
    def from_bytes(cls, content: bytes | str) -> XmlRpcResponse:
        """Parse a methodResponse document."""
        root = parse_document(content)
        if root.tag != "methodResponse":
            raise ValueError(f"Expected methodResponse document, found <{root.tag}>")
        response = cls()
        response.load(root)
        return response

    @property
    def parameter(self) -> XmlRpcValue | None:
        return self._parameter

    @property
    def fault(self) -> XmlRpcStructureValue | None:
        return self._fault

    @property
    def is_fault(self) -> bool:
        return self._fault is not None

    @property
    def fault_code(self) -> int | None:
        """The ``faultCode`` member's integer, when present."""
        value = self._fault.get_value("faultCode") if self._fault is not None else None
        if isinstance(value, XmlRpcScalarValue) and isinstance(value.value, int):
            return value.value
        return None

    @property
    def fault_string(self) -> str | None:
        """The ``faultString`` member's text, when present."""
        value = self._fault.get_value("faultString") if self._fault is not None else None
        if isinstance(value, XmlRpcScalarValue) and value.value is not None:
            return str(value.value)
        return None

    def load(self, source: etree._Element) -> bool:
        """
        Load from a <methodResponse> element.

        The params and fault blocks are each attempted; a malformed response
        may populate both or neither.

        Returns:
            True if a parameter or fault was loaded.
        """
        if source is None:
            raise ValueError("source must not be None")

        was_loaded = False
        if len(child_elements(source)) == 0:
            return was_loaded

        params = source.find("params")
        if params is not None:
            value_element = params.find("param/value")
            if value_element is not None:
                ok, value = try_parse_value(value_element)
                if ok and value is not None:
                    self._parameter = value
                    was_loaded = True

        fault = source.find("fault")
        if fault is not None:
            struct_element = fault.find("value")
            if struct_element is not None:
                structure = XmlRpcStructureValue()
                if structure.load(struct_element):
                    self._fault = structure
                    was_loaded = True

        return was_loaded

    def write_to(self, parent: etree._Element | None = None) -> etree._Element:
        element = start_element(parent, "methodResponse")
        if self._parameter is not None:
            param = etree.SubElement(etree.SubElement(element, "params"), "param")
            self._parameter.write_to(param)
        if self._fault is not None:
            self._fault.write_to(etree.SubElement(element, "fault"))
        return element

    def to_bytes(self, encoding: str = "utf-8") -> bytes:
        """Serialize as a complete document with XML declaration."""
        return etree.tostring(
            self.write_to(), encoding=encoding, xml_declaration=True, pretty_print=True
        )

    def compare_to(self, other: Any) -> int:
        if other is None:
            return 1
        if not isinstance(other, XmlRpcResponse):
            return super().compare_to(other)

        result = 0
        if self._fault is not None:
            result |= self._fault.compare_to(other._fault) if other._fault is not None else 1
        elif other._fault is not None:
            result |= -1

        if self._parameter is not None:
            if other._parameter is not None:
                mine, theirs = str(self._parameter), str(other._parameter)
                result |= (mine > theirs) - (mine < theirs)
            else:
                result |= 1
        elif other._parameter is not None:
            result |= -1
        return result

    def __repr__(self) -> str:
        if self._fault is not None:
            return f"XmlRpcResponse(fault_code={self.fault_code!r}, fault_string={self.fault_string!r})"
        return f"XmlRpcResponse({self._parameter!r})"


def _content_length(response: httpx.Response) -> int:
    header = response.headers.get("content-length")
    if header is not None:
        try:
            return int(header)
        except ValueError:
            return -1
    # Chunked or decoded bodies carry no length header; fall back to the body itself.
    return len(response.content)
