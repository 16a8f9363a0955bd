"""
XML-RPC method call envelope.

A message is a method name plus ordered parameters, serialized as
``<methodCall>`` in the message's character encoding.
"""

from __future__ import annotations

import codecs
from collections.abc import Iterable
from typing import Any

from lxml import etree

from .values import XmlRpcValue, XmlSerializable, compare_sequence, try_parse_value
from .xml_utils import child_elements, element_text, parse_document, start_element

DEFAULT_ENCODING = "utf-8"


class XmlRpcMessage(XmlSerializable):
    """XML-RPC method call."""

    def __init__(
        self,
        method_name: str | None = None,
        parameters: Iterable[XmlRpcValue] | None = None,
        encoding: str = DEFAULT_ENCODING,
    ) -> None:
        """
        Initialize message.

        Args:
            method_name: Remote method to invoke.
            parameters: Ordered call parameters.
            encoding: Character encoding of the serialized payload.
        """
        self._method_name = ""
        self._parameters: list[XmlRpcValue] | None = None
        self.encoding = encoding
        if method_name is not None:
            self.method_name = method_name
        if parameters is not None:
            for parameter in parameters:
                if parameter is None:
                    raise ValueError("parameters must not contain None")
                self.parameters.append(parameter)

    @property
    def method_name(self) -> str:
        return self._method_name

    @method_name.setter
    def method_name(self, value: str) -> None:
        if not value or not value.strip():
            raise ValueError("method_name must be a non-empty string")
        self._method_name = value.strip()

    @property
    def encoding(self) -> str:
        """Codec name, e.g. ``utf-8``."""
        return self._encoding

    @encoding.setter
    def encoding(self, value: str) -> None:
        if not value:
            raise ValueError("encoding must be a non-empty string")
        try:
            self._encoding = codecs.lookup(value).name
        except LookupError as e:
            raise ValueError(f"Unknown encoding: {value}") from e

    @property
    def parameters(self) -> list[XmlRpcValue]:
        if self._parameters is None:
            self._parameters = []
        return self._parameters

    def load(self, source: etree._Element) -> bool:
        """
        Load from a <methodCall> element.

        Args:
            source: The <methodCall> element.

        Returns:
            True if the method name or any parameter was loaded.
        """
        if source is None:
            raise ValueError("source must not be None")

        was_loaded = False
        if len(child_elements(source)) == 0:
            return was_loaded

        name_element = source.find("methodName")
        if name_element is not None:
            name = element_text(name_element)
            if name and name.strip():
                self.method_name = name
                was_loaded = True

        params = source.find("params")
        if params is not None:
            for element in params.findall("param/value"):
                ok, value = try_parse_value(element)
                if ok and value is not None:
                    self.parameters.append(value)
                    was_loaded = True
        return was_loaded

    def write_to(self, parent: etree._Element | None = None) -> etree._Element:
        element = start_element(parent, "methodCall")
        etree.SubElement(element, "methodName").text = self.method_name
        if self.parameters:
            params = etree.SubElement(element, "params")
            for value in self.parameters:
                value.write_to(etree.SubElement(params, "param"))
        return element

    def to_bytes(self) -> bytes:
        """Serialize as a complete document (with XML declaration) in the message encoding."""
        return etree.tostring(
            self.write_to(),
            encoding=self.encoding,
            xml_declaration=True,
            pretty_print=True,
        )

    @classmethod
    def from_bytes(cls, content: bytes | str) -> XmlRpcMessage:
        """
        Parse a <methodCall> document.

        Raises:
            ValueError: If the content is not well-formed or has another root.
        """
        root = parse_document(content)
        if root.tag != "methodCall":
            raise ValueError(f"Expected methodCall document, found <{root.tag}>")
        message = cls()
        message.load(root)
        return message

    def compare_to(self, other: Any) -> int:
        if other is None:
            return 1
        if not isinstance(other, XmlRpcMessage):
            return super().compare_to(other)

        # Results are OR-ed together; only zero versus non-zero is meaningful.
        result = _compare_ignore_case(self.encoding, other.encoding)
        result |= _compare_ignore_case(self.method_name, other.method_name)
        result |= compare_sequence(self.parameters, other.parameters)
        return result

    def __repr__(self) -> str:
        return f"XmlRpcMessage({self.method_name!r}, {self.parameters!r}, encoding={self.encoding!r})"


def _compare_ignore_case(first: str, second: str) -> int:
    a, b = first.lower(), second.lower()
    return (a > b) - (a < b)
