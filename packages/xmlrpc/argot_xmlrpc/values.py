"""
XML-RPC value model.

Scalars, arrays and structures form a small recursive value model. Arrays and
structures parse their children through ``try_parse_value``, which in turn
builds arrays and structures, so every variant lives in this module.
"""

from __future__ import annotations

import base64
import binascii
import math
import re
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Sequence
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from lxml import etree

from .datetime_utils import format_rfc3339, try_parse_rfc3339
from .xml_utils import child_elements, element_text, local_name, render, start_element

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1

_INTEGER_PATTERN = re.compile(r"^\s*[+-]?\d+\s*$")
_DOUBLE_PATTERN = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?\s*$")


class XmlRpcScalarValueType(str, Enum):
    """Scalar kinds; each member's value is its XML-RPC wire tag."""

    NONE = ""  # Untyped, payload renders as bare text
    BASE64 = "base64"
    BOOLEAN = "boolean"
    DATETIME = "dateTime.iso8601"
    DOUBLE = "double"
    INTEGER = "int"
    STRING = "string"


_SCALAR_TYPES_BY_NAME: dict[str, XmlRpcScalarValueType] = {
    member.value.lower(): member for member in XmlRpcScalarValueType if member.value
}


def scalar_type_as_string(value_type: XmlRpcScalarValueType) -> str:
    """Return the wire tag for a scalar kind (empty for NONE)."""
    return XmlRpcScalarValueType(value_type).value


def scalar_type_by_name(name: str) -> XmlRpcScalarValueType:
    """
    Look up a scalar kind by its wire tag.

    Args:
        name: Tag name, compared case-insensitively.

    Returns:
        Matching kind, or NONE when the tag is not a scalar tag.

    Raises:
        ValueError: If name is empty.
    """
    if not name:
        raise ValueError("name must be a non-empty string")
    return _SCALAR_TYPES_BY_NAME.get(name.lower(), XmlRpcScalarValueType.NONE)


def parse_boolean(text: str | None) -> tuple[bool, bool]:
    """
    Parse XML-RPC boolean text.

    Accepts exactly "1", "0", "true" and "false", case-insensitive.

    Returns:
        Tuple of (success, parsed value).
    """
    if text is None:
        return False, False
    lowered = text.lower()
    if lowered in ("1", "true"):
        return True, True
    if lowered in ("0", "false"):
        return True, False
    return False, False


def parse_integer(text: str | None) -> tuple[bool, int]:
    """Parse base-10 signed 32-bit integer text."""
    if not text or not _INTEGER_PATTERN.match(text):
        return False, 0
    result = int(text.strip())
    if result < INT32_MIN or result > INT32_MAX:
        return False, 0
    return True, result


def parse_double(text: str | None) -> tuple[bool, float]:
    """Parse invariant floating-point text (no inf/nan, no digit separators)."""
    if not text or not _DOUBLE_PATTERN.match(text):
        return False, 0.0
    result = float(text.strip())
    if not math.isfinite(result):
        return False, 0.0
    return True, result


def parse_base64(text: str | None) -> tuple[bool, bytes]:
    """Decode standard base64 text; embedded whitespace is ignored."""
    if not text:
        return False, b""
    try:
        return True, base64.b64decode("".join(text.split()), validate=True)
    except (binascii.Error, ValueError):
        return False, b""


class XmlSerializable(ABC):
    """
    Something that loads from and writes to an XML-RPC element.

    Textual rendering, equality and ordering are derived from ``compare_to``,
    which by default compares rendered XML ordinally.
    """

    @abstractmethod
    def load(self, source: etree._Element) -> bool:
        """Load state from source; returns whether anything was loaded."""

    @abstractmethod
    def write_to(self, parent: etree._Element | None = None) -> etree._Element:
        """Write under parent (or as a new root) and return the written element."""

    def compare_to(self, other: Any) -> int:
        if other is None:
            return 1
        if not isinstance(other, type(self)) and not isinstance(self, type(other)):
            raise TypeError(
                f"obj is not of type {type(self).__name__}, "
                f"type was found to be '{type(other).__name__}'."
            )
        mine, theirs = str(self), str(other)
        return (mine > theirs) - (mine < theirs)

    def __str__(self) -> str:
        return render(self.write_to())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, type(self)):
            return NotImplemented
        return self.compare_to(other) == 0

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, type(self)):
            return NotImplemented
        return self.compare_to(other) < 0

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, type(self)):
            return NotImplemented
        return self.compare_to(other) > 0

    __hash__ = None  # type: ignore[assignment]


class XmlRpcValue(XmlSerializable):
    """Marker base for anything that can appear inside <value>."""


def compare_sequence(source: Sequence[Any], target: Sequence[Any]) -> int:
    """
    Compare two sequences by length, then by containment.

    The longer sequence sorts greater. For equal lengths the result is 0 when
    every element of source is found (by equality, not position) in target,
    otherwise -1.

    Raises:
        ValueError: If either sequence is None.
    """
    if source is None or target is None:
        raise ValueError("source and target must not be None")

    if len(source) > len(target):
        return 1
    if len(source) < len(target):
        return -1
    for item in source:
        if item not in target:
            return -1
    return 0


_PAYLOAD_TYPES: dict[XmlRpcScalarValueType, tuple[type, ...]] = {
    XmlRpcScalarValueType.BASE64: (bytes, bytearray, memoryview),
    XmlRpcScalarValueType.BOOLEAN: (bool,),
    XmlRpcScalarValueType.DATETIME: (datetime,),
    XmlRpcScalarValueType.DOUBLE: (int, float),
    XmlRpcScalarValueType.INTEGER: (int,),
    XmlRpcScalarValueType.STRING: (str,),
}


def _check_payload(value_type: XmlRpcScalarValueType, value: Any) -> Any:
    """Validate a payload against its kind and return the normalized payload."""
    if value is None:
        raise ValueError("value must not be None")

    accepted = _PAYLOAD_TYPES.get(value_type)
    if accepted is None:
        return value

    is_bool = isinstance(value, bool)
    if not isinstance(value, accepted) or (is_bool and value_type is not XmlRpcScalarValueType.BOOLEAN):
        raise TypeError(
            f"{value_type.name.title()} scalar cannot hold a {type(value).__name__} payload"
        )

    if value_type is XmlRpcScalarValueType.BASE64:
        return bytes(value)
    if value_type is XmlRpcScalarValueType.DOUBLE:
        if not math.isfinite(value):
            raise ValueError("Double scalar must be finite")
        return float(value)
    if value_type is XmlRpcScalarValueType.DATETIME and value.utcoffset() is not None:
        return value.astimezone(UTC)
    if value_type is XmlRpcScalarValueType.INTEGER and not INT32_MIN <= value <= INT32_MAX:
        raise ValueError(f"Integer scalar out of 32-bit range: {value}")
    return value


def _infer_type(value: Any) -> XmlRpcScalarValueType:
    # bool before int, since bool is an int subclass
    if isinstance(value, bool):
        return XmlRpcScalarValueType.BOOLEAN
    if isinstance(value, int):
        return XmlRpcScalarValueType.INTEGER
    if isinstance(value, float):
        return XmlRpcScalarValueType.DOUBLE
    if isinstance(value, datetime):
        return XmlRpcScalarValueType.DATETIME
    if isinstance(value, (bytes, bytearray, memoryview)):
        return XmlRpcScalarValueType.BASE64
    if isinstance(value, str):
        return XmlRpcScalarValueType.STRING
    raise TypeError(f"Unsupported scalar payload type: {type(value).__name__}")


def _parse_string(text: str) -> tuple[bool, str]:
    return True, text.strip()


_TEXT_PARSERS: dict[XmlRpcScalarValueType, Callable[[str], tuple[bool, Any]]] = {
    XmlRpcScalarValueType.BASE64: parse_base64,
    XmlRpcScalarValueType.BOOLEAN: parse_boolean,
    XmlRpcScalarValueType.DATETIME: try_parse_rfc3339,
    XmlRpcScalarValueType.DOUBLE: parse_double,
    XmlRpcScalarValueType.INTEGER: parse_integer,
    XmlRpcScalarValueType.STRING: _parse_string,
}


def _string_as_value(value_type: XmlRpcScalarValueType, text: str) -> tuple[bool, Any]:
    parser = _TEXT_PARSERS.get(value_type)
    if parser is None:
        return True, text
    return parser(text)


def _value_as_string(value_type: XmlRpcScalarValueType, value: Any) -> str:
    if value is None:
        return ""

    if value_type is XmlRpcScalarValueType.BASE64:
        if isinstance(value, (bytes, bytearray, memoryview)):
            return base64.b64encode(bytes(value)).decode("ascii")
        return str(value)
    if value_type is XmlRpcScalarValueType.BOOLEAN:
        return "1" if value else "0"
    if value_type is XmlRpcScalarValueType.DATETIME:
        return format_rfc3339(value)
    if value_type is XmlRpcScalarValueType.DOUBLE:
        return repr(float(value))
    if value_type is XmlRpcScalarValueType.INTEGER:
        return str(int(value))
    if value_type is XmlRpcScalarValueType.STRING:
        return str(value).strip()
    return str(value)


class XmlRpcScalarValue(XmlRpcValue):
    """
    A single typed scalar.

    The kind is inferred from the payload's Python type unless given
    explicitly; use the ``from_*`` constructors to pin a kind.
    """

    def __init__(
        self,
        value: Any = None,
        value_type: XmlRpcScalarValueType | None = None,
    ) -> None:
        self._value: Any = None
        self.value_type = XmlRpcScalarValueType.NONE

        if value is None:
            if value_type is not None:
                raise ValueError("value must not be None")
            return

        kind = _infer_type(value) if value_type is None else XmlRpcScalarValueType(value_type)
        self._value = _check_payload(kind, value)
        self.value_type = kind

    @classmethod
    def from_base64(cls, value: bytes) -> XmlRpcScalarValue:
        return cls(value, XmlRpcScalarValueType.BASE64)

    @classmethod
    def from_boolean(cls, value: bool) -> XmlRpcScalarValue:
        return cls(value, XmlRpcScalarValueType.BOOLEAN)

    @classmethod
    def from_datetime(cls, value: datetime) -> XmlRpcScalarValue:
        return cls(value, XmlRpcScalarValueType.DATETIME)

    @classmethod
    def from_double(cls, value: float) -> XmlRpcScalarValue:
        return cls(value, XmlRpcScalarValueType.DOUBLE)

    @classmethod
    def from_integer(cls, value: int) -> XmlRpcScalarValue:
        return cls(value, XmlRpcScalarValueType.INTEGER)

    @classmethod
    def from_string(cls, value: str | None) -> XmlRpcScalarValue:
        return cls(value or "", XmlRpcScalarValueType.STRING)

    @property
    def value(self) -> Any:
        """Scalar payload; its Python type matches ``value_type``."""
        return self._value

    @value.setter
    def value(self, value: Any) -> None:
        self._value = _check_payload(self.value_type, value)

    def load(self, source: etree._Element) -> bool:
        """
        Load a single scalar from a <value> element.

        Typed children (``i4`` maps to Integer) set the kind. An empty
        ``<string/>`` loads as "", other empty typed elements keep the
        current payload when it fits the kind and fail otherwise. Bare text
        loads untyped.

        Args:
            source: The <value> element.

        Returns:
            True if a scalar was recognized and converted.
        """
        if source is None:
            raise ValueError("source must not be None")

        children = child_elements(source)
        if children:
            child = children[0]
            name = local_name(child)
            if name.lower() == "i4":
                value_type = XmlRpcScalarValueType.INTEGER
            else:
                value_type = scalar_type_by_name(name)
            if value_type is XmlRpcScalarValueType.NONE:
                return False

            text = element_text(child)
            if text or value_type is XmlRpcScalarValueType.STRING:
                ok, converted = _string_as_value(value_type, text)
                if not ok:
                    return False
                self._value = converted
            else:
                # An empty typed element keeps the payload only when it suits the kind.
                try:
                    self._value = _check_payload(value_type, self._value)
                except (TypeError, ValueError):
                    return False
            self.value_type = value_type
            return True

        text = source.text or ""
        if text:
            self._value = text
            return True
        return False

    def write_to(self, parent: etree._Element | None = None) -> etree._Element:
        element = start_element(parent, "value")
        if self.value_type is not XmlRpcScalarValueType.NONE:
            child = etree.SubElement(element, self.value_type.value)
            child.text = _value_as_string(self.value_type, self._value)
        else:
            element.text = str(self._value) if self._value is not None else ""
        return element

    def __repr__(self) -> str:
        return f"XmlRpcScalarValue({self._value!r}, {self.value_type.name})"


class XmlRpcArrayValue(XmlRpcValue):
    """Ordered sequence of values wrapped in <array><data>."""

    def __init__(self, values: Iterable[XmlRpcValue] | None = None) -> None:
        self._values: list[XmlRpcValue] | None = None
        if values is not None:
            self.values.extend(values)

    @classmethod
    def from_elements(cls, elements: Iterable[etree._Element]) -> XmlRpcArrayValue:
        """Build from <value> elements, keeping the ones that parse."""
        if elements is None:
            raise ValueError("elements must not be None")
        array = cls()
        for element in elements:
            ok, value = try_parse_value(element)
            if ok and value is not None:
                array.values.append(value)
        return array

    @property
    def values(self) -> list[XmlRpcValue]:
        if self._values is None:
            self._values = []
        return self._values

    def load(self, source: etree._Element) -> bool:
        """
        Load elements from a <value> wrapping <array><data>.

        Elements that fail to parse are dropped.

        Returns:
            True if at least one element was loaded.
        """
        if source is None:
            raise ValueError("source must not be None")

        was_loaded = False
        data = source.find("array/data")
        if data is not None and len(child_elements(data)) > 0:
            for element in data.findall("value"):
                ok, value = try_parse_value(element)
                if ok and value is not None:
                    self.values.append(value)
                    was_loaded = True
        return was_loaded

    def write_to(self, parent: etree._Element | None = None) -> etree._Element:
        element = start_element(parent, "value")
        data = etree.SubElement(etree.SubElement(element, "array"), "data")
        for value in self.values:
            value.write_to(data)
        return element

    def compare_to(self, other: Any) -> int:
        if other is None:
            return 1
        if not isinstance(other, XmlRpcArrayValue):
            return super().compare_to(other)
        return compare_sequence(self.values, other.values)

    def __repr__(self) -> str:
        return f"XmlRpcArrayValue({self.values!r})"


class XmlRpcStructureMember(XmlSerializable):
    """Name/value pair inside a structure."""

    def __init__(self, name: str | None = None, value: XmlRpcValue | None = None) -> None:
        self._name = ""
        self._value: XmlRpcValue | None = None
        if name is not None:
            self.name = name
        if value is not None:
            self.value = value

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, name: str) -> None:
        if not name or not name.strip():
            raise ValueError("name must be a non-empty string")
        self._name = name.strip()

    @property
    def value(self) -> XmlRpcValue | None:
        return self._value

    @value.setter
    def value(self, value: XmlRpcValue) -> None:
        if value is None:
            raise ValueError("value must not be None")
        self._value = value

    def load(self, source: etree._Element) -> bool:
        if source is None:
            raise ValueError("source must not be None")

        was_loaded = False
        if len(child_elements(source)) == 0:
            return was_loaded

        name_element = source.find("name")
        if name_element is not None:
            name = element_text(name_element)
            if name and name.strip():
                self.name = name
                was_loaded = True

        value_element = source.find("value")
        if value_element is not None:
            ok, value = try_parse_value(value_element)
            if ok and value is not None:
                self.value = value
                was_loaded = True
        return was_loaded

    def write_to(self, parent: etree._Element | None = None) -> etree._Element:
        element = start_element(parent, "member")
        etree.SubElement(element, "name").text = self.name
        if self.value is not None:
            self.value.write_to(element)
        else:
            etree.SubElement(element, "value").text = ""
        return element

    def __repr__(self) -> str:
        return f"XmlRpcStructureMember({self.name!r}, {self.value!r})"


class XmlRpcStructureValue(XmlRpcValue):
    """
    Ordered collection of named members wrapped in <struct>.

    Indexing by name is case-insensitive and returns the first match, or
    None when no member has that name. Assigning by name replaces the first
    match in place and does nothing when there is no match.
    """

    def __init__(self, members: Iterable[XmlRpcStructureMember] | None = None) -> None:
        self._members: list[XmlRpcStructureMember] | None = None
        if members is not None:
            self.members.extend(members)

    @classmethod
    def from_elements(cls, elements: Iterable[etree._Element]) -> XmlRpcStructureValue:
        """Build from <member> elements, keeping the ones that load."""
        if elements is None:
            raise ValueError("elements must not be None")
        structure = cls()
        for element in elements:
            member = XmlRpcStructureMember()
            if member.load(element):
                structure.members.append(member)
        return structure

    @property
    def members(self) -> list[XmlRpcStructureMember]:
        if self._members is None:
            self._members = []
        return self._members

    def __getitem__(self, name: str) -> XmlRpcStructureMember | None:
        if not name:
            raise ValueError("name must be a non-empty string")
        lowered = name.lower()
        for member in self.members:
            if member.name.lower() == lowered:
                return member
        return None

    def __setitem__(self, name: str, member: XmlRpcStructureMember) -> None:
        if not name:
            raise ValueError("name must be a non-empty string")
        if member is None:
            raise ValueError("member must not be None")
        lowered = name.lower()
        for index, existing in enumerate(self.members):
            if existing.name.lower() == lowered:
                self.members[index] = member
                break

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and bool(name) and self[name] is not None

    def get_value(self, name: str) -> XmlRpcValue | None:
        """Value of the first member named ``name``, or None."""
        member = self[name]
        return member.value if member is not None else None

    def load(self, source: etree._Element) -> bool:
        """
        Load members from a <value> wrapping <struct>.

        Returns:
            True if at least one member was loaded.
        """
        if source is None:
            raise ValueError("source must not be None")

        was_loaded = False
        if len(child_elements(source)) == 0:
            return was_loaded

        for element in source.findall("struct/member"):
            member = XmlRpcStructureMember()
            if member.load(element):
                self.members.append(member)
                was_loaded = True
        return was_loaded

    def write_to(self, parent: etree._Element | None = None) -> etree._Element:
        element = start_element(parent, "value")
        struct = etree.SubElement(element, "struct")
        for member in self.members:
            member.write_to(struct)
        return element

    def compare_to(self, other: Any) -> int:
        if other is None:
            return 1
        if not isinstance(other, XmlRpcStructureValue):
            return super().compare_to(other)
        return compare_sequence(self.members, other.members)

    def __repr__(self) -> str:
        return f"XmlRpcStructureValue({self.members!r})"


def try_parse_value(source: etree._Element | None) -> tuple[bool, XmlRpcValue | None]:
    """
    Parse a <value> element into the matching value variant.

    Bare text inside <value> is a string. Otherwise the first child's tag
    (case-insensitive) selects the variant; struct and array recurse through
    their own loaders with the outer <value> element. Malformed input is
    reported as failure, never raised.

    Args:
        source: Element expected to be named ``value``.

    Returns:
        Tuple of (success, parsed value or None).
    """
    if source is None or not isinstance(source.tag, str) or local_name(source).lower() != "value":
        return False, None

    children = child_elements(source)
    if not children:
        text = source.text or ""
        if text:
            return True, XmlRpcScalarValue.from_string(text)
        return False, None

    child = children[0]
    name = local_name(child).lower()
    text = element_text(child)

    if name in ("i4", "int"):
        ok, integer = parse_integer(text)
        if ok:
            return True, XmlRpcScalarValue.from_integer(integer)
    elif name == "boolean":
        ok, boolean = parse_boolean(text)
        if ok:
            return True, XmlRpcScalarValue.from_boolean(boolean)
    elif name == "string":
        return True, XmlRpcScalarValue.from_string(text)
    elif name == "double":
        ok, double = parse_double(text)
        if ok:
            return True, XmlRpcScalarValue.from_double(double)
    elif name == "datetime.iso8601":
        ok, timestamp = try_parse_rfc3339(text)
        if ok and timestamp is not None:
            return True, XmlRpcScalarValue.from_datetime(timestamp)
    elif name == "base64":
        # Empty base64 text falls through to failure rather than an empty blob.
        if text:
            ok, data = parse_base64(text)
            if not ok:
                return False, None
            return True, XmlRpcScalarValue.from_base64(data)
    elif name == "struct":
        structure = XmlRpcStructureValue()
        if structure.load(source):
            return True, structure
    elif name == "array":
        array = XmlRpcArrayValue()
        if array.load(source):
            return True, array

    return False, None
