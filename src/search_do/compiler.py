"""
Document compiler - turns value trees into serialized documents.

Example:
    from search_do import as_string

    as_string(lambda b: b.query(lambda q: q.term(lambda t: t.test("value"))))
    # '{"query":{"term":{"test":"value"}}}'
"""

from __future__ import annotations

import copy
import logging
from typing import IO, Any

from .config import get_config
from .encoding import Encoding, encode
from .errors import SerializationIOError, UnsupportedOperation, UnsupportedValueKind
from .tree import Mapping, NestedBlock, resolve, to_node

__all__ = [
    "Document",
    "to_map",
    "to_document",
    "to_bytes",
    "to_string",
    "as_bytes",
    "as_string",
]

logger = logging.getLogger(__name__)


def to_map(tree: Any) -> dict[str, Any]:
    """
    Evaluate a value tree into an ordered dict.

    Args:
        tree: A block body (callable taking a Block), a mapping, or a
            Mapping / NestedBlock node

    Returns:
        Field names to plain values, in assignment order. Nested blocks
        become nested dicts; dotted field names stay single keys.

    Raises:
        UnsupportedValueKind: If the tree is not a block or mapping, or
            holds a value with no document representation
        DocumentCompileError: If a block body raises

    Example:
        to_map(lambda b: b.user(lambda u: u.name("kimchy")))
        # {"user": {"name": "kimchy"}}
    """
    node = to_node(tree)
    if not isinstance(node, (Mapping, NestedBlock)):
        raise UnsupportedValueKind(
            f"A document must be built from a block or a mapping, got {type(tree).__name__}",
            value_type=type(tree).__name__,
        )
    return resolve(node)


class Document:
    """
    Structured document builder for one encoding.

    Content is collected with map() and field(), then finalized once with
    to_bytes(). After that the document is closed: further mutation
    raises SerializationIOError, while to_bytes() and to_string() keep
    returning the same payload.

    Example:
        doc = Document("yaml").map(lambda b: b.id(1)).field("tags", ["a", "b"])
        doc.to_string()
        # '---\\nid: 1\\ntags:\\n- a\\n- b\\n'
    """

    __slots__ = ("_encoding", "_pretty", "_content", "_payload")

    def __init__(self, encoding: Encoding | str | None = None, *, pretty: bool | None = None) -> None:
        """
        Initialize an empty document.

        Args:
            encoding: Target encoding (default: the configured default encoding)
            pretty: Indent JSON output (default: the configured value)

        Raises:
            UnsupportedEncodingKind: If the encoding is unknown
        """
        config = get_config()
        self._encoding = Encoding.parse(config.default_encoding if encoding is None else encoding)
        self._pretty = config.pretty if pretty is None else pretty
        self._content: dict[str, Any] = {}
        self._payload: bytes | None = None

    @property
    def encoding(self) -> Encoding:
        """The encoding this document is written in."""
        return self._encoding

    @property
    def content_type(self) -> str:
        """Media type of the payload."""
        return self._encoding.media_type

    @property
    def closed(self) -> bool:
        """Whether the document has been finalized."""
        return self._payload is not None

    def _ensure_open(self) -> None:
        if self._payload is not None:
            raise SerializationIOError("Document is already finalized")

    def map(self, tree: Any) -> Document:
        """
        Merge the fields of a value tree into the document.

        Fields already present keep their position and take the new value.
        Nothing is merged if the tree fails to compile.
        """
        self._ensure_open()
        self._content.update(to_map(tree))
        return self

    def field(self, name: str, tree: Any) -> Document:
        """Set one field to a block, mapping, sequence or scalar."""
        self._ensure_open()
        if not isinstance(name, str):
            raise UnsupportedValueKind(
                f"Field name must be a string, got {type(name).__name__}",
                value_type=type(name).__name__,
            )
        self._content[name] = resolve(to_node(tree, name))
        return self

    def as_map(self) -> dict[str, Any]:
        """A copy of the content collected so far."""
        return copy.deepcopy(self._content)

    def to_bytes(self) -> bytes:
        """Finalize the document and return its payload."""
        if self._payload is None:
            self._payload = encode(self._content, self._encoding, pretty=self._pretty)
            logger.debug(
                "Finalized %s document with %d fields (%d bytes)",
                self._encoding.value,
                len(self._content),
                len(self._payload),
            )
        return self._payload

    def to_string(self) -> str:
        """
        Finalize the document and return its payload as text.

        Raises:
            UnsupportedOperation: If the encoding is binary
        """
        if self._encoding.binary:
            raise UnsupportedOperation(
                f"{self._encoding.value} is a binary encoding and cannot be rendered as a string"
            )
        return self.to_bytes().decode("utf-8")

    def write_to(self, stream: IO[bytes]) -> int:
        """
        Finalize the document and write its payload to a binary stream.

        Returns:
            Number of bytes written

        Raises:
            SerializationIOError: If the stream cannot be written
        """
        payload = self.to_bytes()
        try:
            stream.write(payload)
            stream.flush()
        except (OSError, ValueError) as e:
            raise SerializationIOError(f"Failed to write document: {e}", cause=e) from e
        return len(payload)

    def __repr__(self) -> str:
        status = "closed" if self.closed else "open"
        return f"Document({self._encoding.value}, {len(self._content)} fields, {status})"


def to_document(tree: Any, encoding: Encoding | str | None = None) -> Document:
    """
    Compile a value tree into a Document builder.

    Args:
        tree: Block body, mapping, or Mapping / NestedBlock node
        encoding: Target encoding (default: the configured default encoding)

    Raises:
        UnsupportedEncodingKind: If the encoding is unknown
    """
    return Document(encoding).map(tree)


def to_bytes(tree: Any, encoding: Encoding | str | None = None) -> bytes:
    """Compile a value tree straight to a payload."""
    return to_document(tree, encoding).to_bytes()


def to_string(tree: Any, encoding: Encoding | str | None = None) -> str:
    """
    Compile a value tree straight to text.

    Raises:
        UnsupportedOperation: If the encoding is binary; the tree is not
            evaluated in that case
    """
    encoding = Encoding.parse(get_config().default_encoding if encoding is None else encoding)
    if encoding.binary:
        raise UnsupportedOperation(
            f"{encoding.value} is a binary encoding and cannot be rendered as a string"
        )
    return to_document(tree, encoding).to_string()


def as_bytes(tree: Any) -> bytes:
    """Compile a value tree to JSON bytes."""
    return to_bytes(tree, Encoding.JSON)


def as_string(tree: Any) -> str:
    """Compile a value tree to a JSON string."""
    return to_string(tree, Encoding.JSON)
