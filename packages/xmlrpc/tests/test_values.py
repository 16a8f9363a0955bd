"""Tests for the XML-RPC value model and value dispatcher."""

from datetime import UTC, datetime, timedelta, timezone
from typing import Any

import pytest
from lxml import etree

from argot_xmlrpc.values import (
    XmlRpcArrayValue,
    XmlRpcScalarValue,
    XmlRpcScalarValueType,
    XmlRpcStructureMember,
    XmlRpcStructureValue,
    compare_sequence,
    parse_base64,
    parse_boolean,
    parse_double,
    parse_integer,
    scalar_type_as_string,
    scalar_type_by_name,
    try_parse_value,
)


def _element(xml: str) -> etree._Element:
    return etree.fromstring(xml)


class TestScalarTypeNames:
    def test_wire_tags(self) -> None:
        assert scalar_type_as_string(XmlRpcScalarValueType.DATETIME) == "dateTime.iso8601"
        assert scalar_type_as_string(XmlRpcScalarValueType.INTEGER) == "int"
        assert scalar_type_as_string(XmlRpcScalarValueType.NONE) == ""

    def test_lookup_is_case_insensitive(self) -> None:
        assert scalar_type_by_name("DOUBLE") is XmlRpcScalarValueType.DOUBLE
        assert scalar_type_by_name("datetime.ISO8601") is XmlRpcScalarValueType.DATETIME

    def test_unknown_tag_is_none(self) -> None:
        assert scalar_type_by_name("nil") is XmlRpcScalarValueType.NONE

    def test_empty_name_raises(self) -> None:
        with pytest.raises(ValueError):
            scalar_type_by_name("")


class TestTextParsers:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [("1", (True, True)), ("TRUE", (True, True)), ("0", (True, False)), ("yes", (False, False))],
    )
    def test_boolean(self, text: str, expected: tuple[bool, bool]) -> None:
        assert parse_boolean(text) == expected

    def test_integer_range(self) -> None:
        assert parse_integer(" -12 ") == (True, -12)
        assert parse_integer("2147483647") == (True, 2147483647)
        assert parse_integer("2147483648") == (False, 0)
        assert parse_integer("1.0") == (False, 0)

    def test_double(self) -> None:
        assert parse_double("1e3") == (True, 1000.0)
        assert parse_double("-.5") == (True, -0.5)
        assert parse_double("nan") == (False, 0.0)
        assert parse_double("1,000") == (False, 0.0)

    def test_base64_ignores_whitespace(self) -> None:
        assert parse_base64("aGVs\n bG8=") == (True, b"hello")
        assert parse_base64("!!!") == (False, b"")


class TestScalarValue:
    def test_infers_kind_from_payload(self) -> None:
        assert XmlRpcScalarValue(True).value_type is XmlRpcScalarValueType.BOOLEAN
        assert XmlRpcScalarValue(7).value_type is XmlRpcScalarValueType.INTEGER
        assert XmlRpcScalarValue(1.5).value_type is XmlRpcScalarValueType.DOUBLE
        assert XmlRpcScalarValue(b"\x00").value_type is XmlRpcScalarValueType.BASE64
        assert XmlRpcScalarValue("x").value_type is XmlRpcScalarValueType.STRING

    def test_default_is_untyped(self) -> None:
        value = XmlRpcScalarValue()
        assert value.value is None
        assert value.value_type is XmlRpcScalarValueType.NONE

    def test_rejects_mismatched_payload(self) -> None:
        with pytest.raises(TypeError):
            XmlRpcScalarValue.from_integer(True)
        with pytest.raises(TypeError):
            XmlRpcScalarValue(object())
        with pytest.raises(ValueError):
            XmlRpcScalarValue(None, XmlRpcScalarValueType.STRING)

    def test_rejects_out_of_range_numbers(self) -> None:
        with pytest.raises(ValueError):
            XmlRpcScalarValue.from_integer(2**31)
        with pytest.raises(ValueError):
            XmlRpcScalarValue.from_double(float("inf"))

    def test_double_accepts_int_payload(self) -> None:
        value = XmlRpcScalarValue.from_double(3)
        assert value.value == 3.0
        assert isinstance(value.value, float)

    def test_value_setter_validates_against_kind(self) -> None:
        value = XmlRpcScalarValue.from_integer(1)
        value.value = 2
        assert value.value == 2
        with pytest.raises(TypeError):
            value.value = "two"

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (XmlRpcScalarValue.from_integer(42), "<value><int>42</int></value>"),
            (XmlRpcScalarValue.from_boolean(False), "<value><boolean>0</boolean></value>"),
            (XmlRpcScalarValue.from_double(1.5), "<value><double>1.5</double></value>"),
            (XmlRpcScalarValue.from_string(" hi "), "<value><string>hi</string></value>"),
            (XmlRpcScalarValue.from_base64(b"hello"), "<value><base64>aGVsbG8=</base64></value>"),
            (
                XmlRpcScalarValue.from_datetime(datetime(2024, 1, 2, 3, 4, 5, 670000, tzinfo=UTC)),
                "<value><dateTime.iso8601>2024-01-02T03:04:05.67Z</dateTime.iso8601></value>",
            ),
        ],
    )
    def test_renders_typed_element(self, value: XmlRpcScalarValue, expected: str) -> None:
        assert str(value) == expected

    def test_escapes_markup_in_strings(self) -> None:
        assert str(XmlRpcScalarValue.from_string("a < b & c")) == (
            "<value><string>a &lt; b &amp; c</string></value>"
        )

    def test_load_maps_i4_to_integer(self) -> None:
        value = XmlRpcScalarValue()
        assert value.load(_element("<value><i4>5</i4></value>")) is True
        assert value.value_type is XmlRpcScalarValueType.INTEGER
        assert value.value == 5

    def test_load_rejects_unknown_tag(self) -> None:
        assert XmlRpcScalarValue().load(_element("<value><nil/></value>")) is False

    def test_failed_conversion_leaves_value_unchanged(self) -> None:
        value = XmlRpcScalarValue.from_integer(3)
        assert value.load(_element("<value><int>three</int></value>")) is False
        assert value.value == 3

    def test_aware_datetime_is_stored_as_utc(self) -> None:
        value = XmlRpcScalarValue.from_datetime(datetime(2024, 1, 2, 12, tzinfo=timezone(timedelta(hours=2))))

        assert value.value == datetime(2024, 1, 2, 10, tzinfo=UTC)
        assert value.value.utcoffset() == timedelta(0)
        assert str(value) == "<value><dateTime.iso8601>2024-01-02T10:00:00.00Z</dateTime.iso8601></value>"

    def test_empty_typed_element_rejects_unsuitable_payload(self) -> None:
        value = XmlRpcScalarValue.from_string("abc")

        assert value.load(_element("<value><int/></value>")) is False
        assert value.value_type is XmlRpcScalarValueType.STRING
        assert value.value == "abc"
        assert str(value) == "<value><string>abc</string></value>"

    def test_empty_typed_element_keeps_suitable_payload(self) -> None:
        value = XmlRpcScalarValue.from_integer(5)

        assert value.load(_element("<value><double/></value>")) is True
        assert value.value_type is XmlRpcScalarValueType.DOUBLE
        assert value.value == 5.0
        assert isinstance(value.value, float)

    def test_empty_typed_element_on_fresh_scalar(self) -> None:
        assert XmlRpcScalarValue().load(_element("<value><int/></value>")) is False

        value = XmlRpcScalarValue()
        assert value.load(_element("<value><string/></value>")) is True
        assert value.value == ""
        assert value.value_type is XmlRpcScalarValueType.STRING

    def test_load_bare_text_is_untyped(self) -> None:
        value = XmlRpcScalarValue()
        assert value.load(_element("<value>plain</value>")) is True
        assert value.value == "plain"
        assert value.value_type is XmlRpcScalarValueType.NONE

    def test_equality_uses_rendered_xml(self) -> None:
        assert XmlRpcScalarValue.from_integer(1) == XmlRpcScalarValue.from_integer(1)
        assert XmlRpcScalarValue.from_integer(1) != XmlRpcScalarValue.from_string("1")
        assert XmlRpcScalarValue.from_integer(1) < XmlRpcScalarValue.from_integer(2)

    def test_compare_to_other_variant_raises(self) -> None:
        with pytest.raises(TypeError):
            XmlRpcScalarValue.from_integer(1).compare_to(XmlRpcArrayValue())
        assert XmlRpcScalarValue.from_integer(1).compare_to(None) == 1

    def test_values_are_unhashable(self) -> None:
        with pytest.raises(TypeError):
            hash(XmlRpcScalarValue.from_integer(1))


class TestArrayValue:
    def test_renders_nested_values(self) -> None:
        array = XmlRpcArrayValue([XmlRpcScalarValue.from_integer(1), XmlRpcScalarValue.from_string("a")])
        assert str(array) == (
            "<value><array><data>"
            "<value><int>1</int></value><value><string>a</string></value>"
            "</data></array></value>"
        )

    def test_equality_ignores_order(self) -> None:
        one, two = XmlRpcScalarValue.from_integer(1), XmlRpcScalarValue.from_integer(2)
        assert XmlRpcArrayValue([one, two]) == XmlRpcArrayValue([two, one])
        assert XmlRpcArrayValue([one]) < XmlRpcArrayValue([one, two])
        assert XmlRpcArrayValue([one, two]) != XmlRpcArrayValue([one, XmlRpcScalarValue.from_integer(3)])

    def test_load_drops_unparseable_elements(self) -> None:
        array = XmlRpcArrayValue()
        loaded = array.load(
            _element(
                "<value><array><data>"
                "<value><int>1</int></value><value><int>x</int></value>"
                "</data></array></value>"
            )
        )
        assert loaded is True
        assert array.values == [XmlRpcScalarValue.from_integer(1)]

    def test_load_empty_data_reports_nothing_loaded(self) -> None:
        assert XmlRpcArrayValue().load(_element("<value><array><data/></array></value>")) is False

    def test_from_elements(self) -> None:
        array = XmlRpcArrayValue.from_elements(
            [_element("<value><boolean>1</boolean></value>"), _element("<value><nil/></value>")]
        )
        assert array.values == [XmlRpcScalarValue.from_boolean(True)]


class TestStructureValue:
    def _structure(self) -> XmlRpcStructureValue:
        return XmlRpcStructureValue(
            [
                XmlRpcStructureMember("Title", XmlRpcScalarValue.from_string("Hello")),
                XmlRpcStructureMember("postid", XmlRpcScalarValue.from_integer(9)),
            ]
        )

    def test_member_validation(self) -> None:
        assert XmlRpcStructureMember("  title ").name == "title"
        with pytest.raises(ValueError):
            XmlRpcStructureMember("   ")
        with pytest.raises(ValueError):
            XmlRpcStructureMember("title").value = None

    def test_lookup_is_case_insensitive(self) -> None:
        structure = self._structure()
        member = structure["title"]
        assert member is not None
        assert member.value == XmlRpcScalarValue.from_string("Hello")
        assert structure["missing"] is None
        assert "POSTID" in structure
        assert structure.get_value("postid") == XmlRpcScalarValue.from_integer(9)

    def test_lookup_with_empty_name_raises(self) -> None:
        with pytest.raises(ValueError):
            self._structure()[""]

    def test_assignment_replaces_first_match_only(self) -> None:
        structure = self._structure()
        replacement = XmlRpcStructureMember("title", XmlRpcScalarValue.from_string("Bye"))

        structure["TITLE"] = replacement
        structure["unknown"] = XmlRpcStructureMember("unknown", XmlRpcScalarValue.from_integer(1))

        assert structure.members[0] is replacement
        assert len(structure.members) == 2

    def test_renders_members(self) -> None:
        structure = XmlRpcStructureValue([XmlRpcStructureMember("a", XmlRpcScalarValue.from_integer(1))])
        assert str(structure) == (
            "<value><struct><member><name>a</name><value><int>1</int></value></member></struct></value>"
        )

    def test_equality_ignores_member_order(self) -> None:
        structure = self._structure()
        reordered = XmlRpcStructureValue(list(reversed(structure.members)))
        assert structure == reordered

    def test_from_elements_skips_empty_members(self) -> None:
        structure = XmlRpcStructureValue.from_elements(
            [
                _element("<member><name>a</name><value><int>1</int></value></member>"),
                _element("<member/>"),
            ]
        )
        assert [member.name for member in structure.members] == ["a"]


class TestCompareSequence:
    def test_length_then_containment(self) -> None:
        assert compare_sequence([1, 2], [1]) == 1
        assert compare_sequence([1], [1, 2]) == -1
        assert compare_sequence([1, 2], [2, 1]) == 0
        assert compare_sequence([1, 2], [1, 3]) == -1

    def test_none_raises(self) -> None:
        with pytest.raises(ValueError):
            compare_sequence(None, [])  # type: ignore[arg-type]


class TestTryParseValue:
    @pytest.mark.parametrize(
        ("xml", "expected"),
        [
            ("<value><i4>7</i4></value>", XmlRpcScalarValue.from_integer(7)),
            ("<value><int>-3</int></value>", XmlRpcScalarValue.from_integer(-3)),
            ("<value><boolean>true</boolean></value>", XmlRpcScalarValue.from_boolean(True)),
            ("<value><string>text</string></value>", XmlRpcScalarValue.from_string("text")),
            ("<value><double>2.5</double></value>", XmlRpcScalarValue.from_double(2.5)),
            ("<value><base64>aGVsbG8=</base64></value>", XmlRpcScalarValue.from_base64(b"hello")),
            ("<value>bare</value>", XmlRpcScalarValue.from_string("bare")),
        ],
    )
    def test_scalars(self, xml: str, expected: XmlRpcScalarValue) -> None:
        ok, value = try_parse_value(_element(xml))
        assert ok is True
        assert value == expected

    def test_datetime(self) -> None:
        ok, value = try_parse_value(
            _element("<value><dateTime.iso8601>20240102T03:04:05</dateTime.iso8601></value>")
        )
        assert ok is True
        assert isinstance(value, XmlRpcScalarValue)
        assert value.value == datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)

    def test_tag_match_is_case_insensitive(self) -> None:
        ok, value = try_parse_value(_element("<value><Boolean>0</Boolean></value>"))
        assert ok is True
        assert value == XmlRpcScalarValue.from_boolean(False)

    def test_nested_struct_and_array(self) -> None:
        ok, value = try_parse_value(
            _element(
                "<value><struct>"
                "<member><name>tags</name><value><array><data>"
                "<value><string>python</string></value>"
                "</data></array></value></member>"
                "</struct></value>"
            )
        )
        assert ok is True
        assert isinstance(value, XmlRpcStructureValue)
        tags = value.get_value("tags")
        assert isinstance(tags, XmlRpcArrayValue)
        assert tags.values == [XmlRpcScalarValue.from_string("python")]

    @pytest.mark.parametrize(
        "xml",
        [
            "<value/>",
            "<value><int>abc</int></value>",
            "<value><boolean>2</boolean></value>",
            "<value><base64></base64></value>",
            "<value><nil/></value>",
            "<value><array><data/></array></value>",
            "<param><int>1</int></param>",
        ],
    )
    def test_failures(self, xml: str) -> None:
        assert try_parse_value(_element(xml)) == (False, None)

    def test_none_source(self) -> None:
        assert try_parse_value(None) == (False, None)


def _nested_array() -> XmlRpcArrayValue:
    return XmlRpcArrayValue(
        [
            XmlRpcScalarValue.from_integer(1),
            XmlRpcArrayValue([XmlRpcScalarValue.from_string("inner")]),
            XmlRpcStructureValue(
                [XmlRpcStructureMember("flag", XmlRpcScalarValue.from_boolean(False))]
            ),
        ]
    )


def _nested_structure() -> XmlRpcStructureValue:
    return XmlRpcStructureValue(
        [
            XmlRpcStructureMember("title", XmlRpcScalarValue.from_string("Release notes")),
            XmlRpcStructureMember("categories", _nested_array()),
            XmlRpcStructureMember(
                "author",
                XmlRpcStructureValue(
                    [XmlRpcStructureMember("id", XmlRpcScalarValue.from_integer(7))]
                ),
            ),
        ]
    )


class TestRoundTrip:
    @pytest.mark.parametrize(
        "value",
        [
            pytest.param(XmlRpcScalarValue.from_integer(-42), id="integer"),
            pytest.param(XmlRpcScalarValue.from_integer(2**31 - 1), id="integer-max"),
            pytest.param(XmlRpcScalarValue.from_boolean(True), id="boolean-true"),
            pytest.param(XmlRpcScalarValue.from_boolean(False), id="boolean-false"),
            pytest.param(XmlRpcScalarValue.from_double(3.25), id="double"),
            pytest.param(XmlRpcScalarValue.from_double(-1e-7), id="double-exponent"),
            pytest.param(
                XmlRpcScalarValue.from_datetime(datetime(2024, 1, 2, 3, 4, 5, 670000)),
                id="datetime-naive",
            ),
            pytest.param(
                XmlRpcScalarValue.from_datetime(datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)),
                id="datetime-utc",
            ),
            pytest.param(
                XmlRpcScalarValue.from_datetime(
                    datetime(2024, 1, 2, 12, 0, 0, 250000, tzinfo=timezone(timedelta(hours=5, minutes=30)))
                ),
                id="datetime-offset",
            ),
            pytest.param(XmlRpcScalarValue.from_base64(b"\x00\xffbinary"), id="base64"),
            pytest.param(XmlRpcScalarValue.from_string("a < b & c"), id="string"),
            pytest.param(XmlRpcScalarValue.from_string(""), id="string-empty"),
            pytest.param(_nested_array(), id="array-nested"),
            pytest.param(_nested_structure(), id="struct-nested"),
        ],
    )
    def test_parse_of_written_value_is_equal(self, value: Any) -> None:
        ok, parsed = try_parse_value(_element(str(value)))

        assert ok is True
        assert type(parsed) is type(value)
        assert parsed == value
        assert str(parsed) == str(value)
