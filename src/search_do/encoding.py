"""
Document encodings.

The compiler can emit a document in a closed set of encodings: JSON and
YAML as text, CBOR and MessagePack as compact binary. This module owns
the per-encoding writers and readers plus the conversion of scalar kinds
that have no native representation (dates).
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Callable

import cbor2
import msgpack
import yaml

from .errors import DocumentParseError, SerializationIOError, UnsupportedEncodingKind, UnsupportedValueKind
from .tree import scalar_kind
from .types import ScalarKind

__all__ = ["Encoding", "encode", "decode"]

logger = logging.getLogger(__name__)


class Encoding(str, Enum):
    """Supported document encodings."""

    JSON = "json"
    YAML = "yaml"
    CBOR = "cbor"
    MSGPACK = "msgpack"

    @property
    def binary(self) -> bool:
        """Whether the encoding can only be rendered as bytes."""
        return self in (Encoding.CBOR, Encoding.MSGPACK)

    @property
    def media_type(self) -> str:
        """Canonical media type for the encoding."""
        return _MEDIA_TYPES[self][0]

    @classmethod
    def parse(cls, value: Any) -> Encoding:
        """
        Resolve an encoding from a member, a name or a media type.

        Args:
            value: e.g. Encoding.JSON, "json", "YAML", "application/cbor",
                "application/json; charset=UTF-8"

        Returns:
            The matching Encoding

        Raises:
            UnsupportedEncodingKind: If nothing matches
        """
        if isinstance(value, cls):
            return value

        if isinstance(value, str):
            text = value.split(";", 1)[0].strip().lower()
            for encoding in cls:
                if text == encoding.value or text in _MEDIA_TYPES[encoding]:
                    return encoding

        raise UnsupportedEncodingKind(
            f"Unsupported encoding: {value!r} (expected one of "
            f"{', '.join(e.value for e in cls)})",
            encoding=value,
        )

    @classmethod
    def detect(cls, data: bytes | str) -> Encoding:
        """
        Guess the encoding of a serialized document from its first bytes.

        Args:
            data: A payload produced by encode()

        Returns:
            The detected Encoding

        Raises:
            UnsupportedEncodingKind: If the payload is empty or unrecognized
        """
        if isinstance(data, str):
            data = data.encode("utf-8")

        if not data:
            raise UnsupportedEncodingKind("Cannot detect the encoding of an empty payload")

        first = data[0]
        # CBOR major type 5 (map), or the self-describe tag 55799
        if 0xA0 <= first <= 0xBF or data[:3] == b"\xd9\xd9\xf7":
            return cls.CBOR
        # MessagePack fixmap, map16, map32
        if 0x80 <= first <= 0x8F or first in (0xDE, 0xDF):
            return cls.MSGPACK

        text = data.lstrip(b"\xef\xbb\xbf").lstrip()
        if text.startswith((b"{", b"[")):
            return cls.JSON
        if text.startswith(b"---"):
            return cls.YAML

        raise UnsupportedEncodingKind(
            f"Unable to detect the encoding of payload starting with {data[:8]!r}"
        )


_MEDIA_TYPES: dict[Encoding, tuple[str, ...]] = {
    Encoding.JSON: ("application/json", "text/json"),
    Encoding.YAML: ("application/yaml", "application/x-yaml", "text/yaml"),
    Encoding.CBOR: ("application/cbor",),
    Encoding.MSGPACK: ("application/x-msgpack", "application/msgpack", "application/vnd.msgpack"),
}


# ============================================================================
# Scalar conversion
# ============================================================================


def _identity(value: Any) -> Any:
    return value


def _write_date(value: date) -> str:
    return value.isoformat()


def _write_datetime(value: datetime) -> str:
    """ISO-8601 with millisecond precision; aware values are normalized to UTC."""
    if value.utcoffset() is not None:
        utc = value.astimezone(timezone.utc).replace(tzinfo=None)
        return utc.isoformat(timespec="milliseconds") + "Z"
    return value.isoformat(timespec="milliseconds")


_SCALAR_WRITERS: dict[ScalarKind, Callable[[Any], Any]] = {
    ScalarKind.NULL: _identity,
    ScalarKind.BOOLEAN: _identity,
    ScalarKind.INTEGER: _identity,
    ScalarKind.FLOAT: _identity,
    ScalarKind.STRING: _identity,
    ScalarKind.DATE: _write_date,
    ScalarKind.DATETIME: _write_datetime,
}


def _prepare(value: Any) -> Any:
    """Convert resolved document content into encoder-ready data."""
    if isinstance(value, dict):
        return {name: _prepare(item) for name, item in value.items()}
    if isinstance(value, list):
        return [_prepare(item) for item in value]

    kind = scalar_kind(value)
    if kind is None:
        raise UnsupportedValueKind(
            f"Unsupported value of type {type(value).__name__} in document content",
            value_type=type(value).__name__,
        )
    return _SCALAR_WRITERS[kind](value)


# ============================================================================
# Writers and readers
# ============================================================================


def _write_json(content: Any, pretty: bool) -> bytes:
    if pretty:
        text = json.dumps(content, ensure_ascii=False, allow_nan=False, indent=2)
    else:
        text = json.dumps(content, ensure_ascii=False, allow_nan=False, separators=(",", ":"))
    return text.encode("utf-8")


def _write_yaml(content: Any, pretty: bool) -> bytes:
    text = yaml.safe_dump(
        content,
        sort_keys=False,
        allow_unicode=True,
        explicit_start=True,
        default_flow_style=False,
    )
    return text.encode("utf-8")


def _write_cbor(content: Any, pretty: bool) -> bytes:
    return cbor2.dumps(content)


def _write_msgpack(content: Any, pretty: bool) -> bytes:
    return msgpack.packb(content, use_bin_type=True)


_WRITERS: dict[Encoding, Callable[[Any, bool], bytes]] = {
    Encoding.JSON: _write_json,
    Encoding.YAML: _write_yaml,
    Encoding.CBOR: _write_cbor,
    Encoding.MSGPACK: _write_msgpack,
}

_READERS: dict[Encoding, Callable[[bytes], Any]] = {
    Encoding.JSON: json.loads,
    Encoding.YAML: yaml.safe_load,
    Encoding.CBOR: cbor2.loads,
    Encoding.MSGPACK: lambda data: msgpack.unpackb(data, raw=False),
}


def encode(content: dict[str, Any], encoding: Encoding | str, *, pretty: bool = False) -> bytes:
    """
    Serialize resolved document content.

    Args:
        content: Plain data as returned by to_map()
        encoding: Target encoding (anything Encoding.parse() accepts)
        pretty: Indent JSON output

    Returns:
        The serialized payload

    Raises:
        UnsupportedEncodingKind: If the encoding is unknown
        UnsupportedValueKind: If content holds a value with no representation
        SerializationIOError: If the encoder fails
    """
    encoding = Encoding.parse(encoding)
    prepared = _prepare(content)

    try:
        return _WRITERS[encoding](prepared, pretty)
    except (ValueError, TypeError, OverflowError, yaml.YAMLError, cbor2.CBOREncodeError) as e:
        logger.debug("Encoder for %s failed: %s", encoding.value, e)
        raise SerializationIOError(
            f"Failed to serialize document as {encoding.value}: {e}", cause=e
        ) from e


def decode(data: bytes | str, encoding: Encoding | str | None = None) -> Any:
    """
    Parse a serialized document back into plain data.

    Args:
        data: The payload
        encoding: Encoding of the payload; detected when omitted

    Returns:
        The decoded document (dates come back as ISO-8601 strings)

    Raises:
        UnsupportedEncodingKind: If the encoding is unknown or undetectable
        DocumentParseError: If the payload is malformed
    """
    encoding = Encoding.detect(data) if encoding is None else Encoding.parse(encoding)

    if isinstance(data, str):
        if encoding.binary:
            raise DocumentParseError(f"A {encoding.value} payload must be bytes, not str")
        data = data.encode("utf-8")

    try:
        return _READERS[encoding](data)
    except (ValueError, TypeError, yaml.YAMLError, cbor2.CBORDecodeError, msgpack.UnpackException) as e:
        raise DocumentParseError(f"Failed to parse {encoding.value} document: {e}", cause=e) from e
