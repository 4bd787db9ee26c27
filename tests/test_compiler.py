"""
Tests for the document compiler: to_map, Document and the to_* helpers.
"""

import io
import json
import logging
from datetime import date, datetime, timedelta, timezone

import pytest

from search_do import (
    Document,
    DocumentCompileError,
    Encoding,
    SerializationIOError,
    UnsupportedEncodingKind,
    UnsupportedOperation,
    UnsupportedValueKind,
    as_bytes,
    as_string,
    configure,
    decode,
    to_bytes,
    to_document,
    to_map,
    to_string,
)


class TestToMap:
    """Tests for to_map()."""

    def test_term_query(self):
        """Test the canonical term query in all three spellings."""
        expected = '{"query":{"term":{"test":"value"}}}'

        assert as_string(lambda b: b.query(lambda q: q.term(lambda t: t.test("value")))) == expected
        assert as_string(lambda b: b.query(lambda q: q.term(test="value"))) == expected
        assert as_string({"query": {"term": {"test": "value"}}}) == expected

    def test_search_body(self, search_body):
        """Test a mixed body of nested blocks, scalars and lists."""
        assert to_map(search_body) == {
            "query": {"term": {"test": "value"}},
            "size": 10,
            "tags": ["a", "b"],
        }

    def test_mapping_input(self):
        """Test that plain mappings compile unchanged."""
        assert to_map({"a": {"b": [1, {"c": None}]}}) == {"a": {"b": [1, {"c": None}]}}

    def test_mapping_values_may_be_blocks(self):
        """Test that blocks inside mappings are evaluated."""
        assert to_map({"query": lambda q: q.match_all()}) == {"query": {"match_all": {}}}

    @pytest.mark.parametrize("tree", [[1, 2], "text", 3, None])
    def test_root_must_be_an_object(self, tree):
        """Test that a document root must be a block or a mapping."""
        with pytest.raises(UnsupportedValueKind):
            to_map(tree)

    def test_compile_error_keeps_cause(self):
        """Test that a failing body raises DocumentCompileError with the cause."""
        def body(b):
            b.ok = 1
            raise ValueError("bad input")

        with pytest.raises(DocumentCompileError) as exc_info:
            to_map(body)

        error = exc_info.value
        assert isinstance(error.__cause__, ValueError)
        assert error.cause is error.__cause__
        assert "body" in error.message

    def test_each_call_reevaluates(self):
        """Test that blocks are evaluated afresh on every compile."""
        counter = {"n": 0}

        def body(b):
            counter["n"] += 1
            b.n = counter["n"]

        assert to_map(body) == {"n": 1}
        assert to_map(body) == {"n": 2}


class TestProperties:
    """Tests for properties every compile must satisfy."""

    def test_deterministic(self, search_body):
        """Test that compiling the same tree twice gives identical bytes."""
        for encoding in Encoding:
            assert to_bytes(search_body, encoding) == to_bytes(search_body, encoding)

    def test_json_round_trip(self, search_body):
        """Test that decoding the JSON payload gives back to_map()."""
        assert decode(as_bytes(search_body)) == to_map(search_body)

    def test_keyword_sugar_equivalence(self):
        """Test that keyword sugar and nested blocks serialize identically."""
        def nested(b):
            b.field(lambda f: f.key1("v1").key2("v2"))

        assert as_bytes(lambda b: b.field(key1="v1", key2="v2")) == as_bytes(nested)

    def test_dotted_keys_both_directions(self):
        """Test that a dotted key stays flat and a nested block stays nested."""
        def flat(b):
            b["user.name"] = "kimchy"

        def nested(b):
            b.user(lambda u: u.name("kimchy"))

        assert as_string(flat) == '{"user.name":"kimchy"}'
        assert as_string(nested) == '{"user":{"name":"kimchy"}}'
        assert decode(as_bytes(flat)) == {"user.name": "kimchy"}

    def test_order_under_reassignment(self):
        """Test that re-assignment keeps the original position."""
        def body(b):
            b.a = 1
            b.b = 2
            b.c = 3
            b.a = 4

        assert as_string(body) == '{"a":4,"b":2,"c":3}'


class TestDates:
    """Tests for date and datetime output."""

    def test_naive_datetime(self):
        """Test ISO-8601 output with millisecond precision."""
        when = datetime(2014, 11, 1, 12, 30, 5, 123456)
        assert as_string({"when": when}) == '{"when":"2014-11-01T12:30:05.123"}'

    def test_aware_datetime_is_utc(self):
        """Test that aware datetimes are normalized to UTC with a Z suffix."""
        when = datetime(2014, 11, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))
        assert as_string({"when": when}) == '{"when":"2014-11-01T12:00:00.000Z"}'

    def test_date(self):
        """Test plain dates."""
        assert as_string({"day": date(2014, 11, 1)}) == '{"day":"2014-11-01"}'

    @pytest.mark.parametrize("encoding", list(Encoding))
    def test_dates_are_strings_in_every_encoding(self, encoding):
        """Test that dates decode back as ISO strings whatever the encoding."""
        payload = to_bytes({"day": date(2014, 11, 1)}, encoding)
        assert decode(payload, encoding) == {"day": "2014-11-01"}


class TestDocument:
    """Tests for the Document builder."""

    def test_map_and_field(self):
        """Test merging trees and setting single fields."""
        doc = Document("json").map(lambda b: b.a(1).b(2)).field("c", [1, 2]).map({"a": 3})

        assert doc.as_map() == {"a": 3, "b": 2, "c": [1, 2]}
        assert doc.to_string() == '{"a":3,"b":2,"c":[1,2]}'

    def test_field_accepts_blocks(self):
        """Test that field() evaluates nested blocks."""
        doc = Document().field("query", lambda q: q.match_all())
        assert doc.as_map() == {"query": {"match_all": {}}}

    def test_field_name_must_be_a_string(self):
        """Test that non-string field names are rejected."""
        with pytest.raises(UnsupportedValueKind):
            Document().field(1, "x")

    def test_as_map_is_a_copy(self):
        """Test that as_map() does not expose internal state."""
        doc = Document().map({"a": {"b": 1}})
        doc.as_map()["a"]["b"] = 2
        assert doc.as_map() == {"a": {"b": 1}}

    def test_finalize_is_cached(self):
        """Test that to_bytes() returns the same payload every time."""
        doc = Document().map({"a": 1})
        assert not doc.closed

        first = doc.to_bytes()
        assert doc.closed
        assert doc.to_bytes() is first
        assert doc.to_string() == '{"a":1}'

    def test_mutation_after_finalize(self):
        """Test that a finalized document rejects changes."""
        doc = Document().map({"a": 1})
        doc.to_bytes()

        with pytest.raises(SerializationIOError):
            doc.map({"b": 2})
        with pytest.raises(SerializationIOError):
            doc.field("b", 2)

    def test_failed_map_merges_nothing(self):
        """Test that a failing tree leaves the document unchanged."""
        def body(b):
            b.partial = 1
            raise KeyError("missing")

        doc = Document().map({"a": 1})
        with pytest.raises(DocumentCompileError):
            doc.map(body)

        assert doc.as_map() == {"a": 1}

    def test_content_type(self):
        """Test media types per encoding."""
        assert Document("json").content_type == "application/json"
        assert Document("yaml").content_type == "application/yaml"
        assert Document("cbor").content_type == "application/cbor"
        assert Document("msgpack").content_type == "application/x-msgpack"

    def test_binary_to_string(self):
        """Test that binary documents cannot be rendered as text."""
        doc = Document(Encoding.CBOR).map({"a": 1})

        with pytest.raises(UnsupportedOperation):
            doc.to_string()
        assert decode(doc.to_bytes(), Encoding.CBOR) == {"a": 1}

    def test_write_to(self):
        """Test writing the payload to a binary stream."""
        stream = io.BytesIO()
        doc = Document().map({"a": 1})

        assert doc.write_to(stream) == 7
        assert stream.getvalue() == b'{"a":1}'
        assert doc.closed

    def test_write_to_closed_stream(self):
        """Test that stream failures become SerializationIOError."""
        stream = io.BytesIO()
        stream.close()

        with pytest.raises(SerializationIOError) as exc_info:
            Document().map({"a": 1}).write_to(stream)

        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_unknown_encoding(self):
        """Test that unknown encodings fail at construction."""
        with pytest.raises(UnsupportedEncodingKind):
            Document("smile")

    def test_repr(self):
        """Test Document string representation."""
        doc = Document("yaml").map({"a": 1})
        assert repr(doc) == "Document(yaml, 1 fields, open)"

    def test_finalize_is_logged(self, caplog):
        """Test that finalizing emits a debug record."""
        with caplog.at_level(logging.DEBUG, logger="search_do.compiler"):
            Document().map({"a": 1}).to_bytes()

        assert "Finalized json document with 1 fields" in caplog.text


class TestHelpers:
    """Tests for the module-level helpers."""

    def test_to_document(self):
        """Test that to_document() returns an open builder."""
        doc = to_document({"a": 1}, "yaml")
        assert doc.encoding is Encoding.YAML
        assert not doc.closed

    def test_to_string_yaml(self):
        """Test YAML text output."""
        assert to_string({"a": 1, "b": ["x"]}, "yaml") == "---\na: 1\nb:\n- x\n"

    def test_to_string_binary_does_not_evaluate(self):
        """Test that to_string() rejects binary encodings before compiling."""
        calls = []

        with pytest.raises(UnsupportedOperation):
            to_string(lambda b: calls.append(b), "msgpack")

        assert calls == []

    def test_as_bytes(self):
        """Test JSON bytes output."""
        assert as_bytes({"a": "é"}) == '{"a":"é"}'.encode("utf-8")

    def test_configured_default_encoding(self):
        """Test that to_bytes() without an encoding uses the configured default."""
        configure(default_encoding="yaml")
        assert to_bytes({"a": 1}) == b"---\na: 1\n"
        assert as_string({"a": 1}) == '{"a":1}'

    def test_configured_pretty(self):
        """Test that pretty output indents JSON."""
        configure(pretty=True)
        text = to_string({"a": {"b": 1}})
        assert text == json.dumps({"a": {"b": 1}}, indent=2)

    def test_non_finite_float_in_mapping(self):
        """Test that NaN is rejected before reaching the encoder."""
        with pytest.raises(UnsupportedValueKind):
            as_bytes({"score": float("nan")})
