"""
Value tree nodes.

A value tree is what the document compiler consumes. Every Python value
handed to the compiler is first classified into one of four node kinds:

- Scalar: str, int, float, bool, None, date, datetime
- Sequence: lists, tuples, sets and other non-string iterables
- Mapping: any mapping with string keys
- NestedBlock: a callable that records fields on a Block

Anything else is rejected with UnsupportedValueKind instead of being
coerced to a string.
"""

from __future__ import annotations

import math
from collections import abc
from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Callable, Union

from .errors import UnsupportedValueKind
from .types import ScalarKind

if TYPE_CHECKING:
    from .block import Block

__all__ = [
    "Scalar",
    "Sequence",
    "Mapping",
    "NestedBlock",
    "Node",
    "BlockHandle",
    "scalar_kind",
    "to_node",
    "resolve",
]


class BlockHandle:
    """Marker for recorder objects that may never appear as values."""

    __slots__ = ()


@dataclass(frozen=True)
class Scalar:
    """A leaf value together with its kind."""

    value: Any
    kind: ScalarKind


@dataclass(frozen=True)
class Sequence:
    """An ordered list of nodes."""

    items: tuple[Node, ...] = ()


@dataclass(frozen=True)
class Mapping:
    """
    Ordered field name to node pairs.

    Attributes:
        entries: (name, node) pairs in insertion order. A repeated name
            keeps its first position and takes the last value.
    """

    entries: tuple[tuple[str, Node], ...] = ()

    @classmethod
    def of(cls, **fields: Any) -> Mapping:
        """Build a Mapping from keyword arguments, classifying each value."""
        return cls(tuple((name, to_node(value, name)) for name, value in fields.items()))

    def keys(self) -> list[str]:
        """Field names in emission order."""
        return list(dict(self.entries))


@dataclass(frozen=True)
class NestedBlock:
    """
    A block body evaluated against a fresh Block when resolved.

    Attributes:
        body: Callable receiving the Block to record fields on
    """

    body: Callable[[Block], Any]


Node = Union[Scalar, Sequence, Mapping, NestedBlock]

_NODE_TYPES = (Scalar, Sequence, Mapping, NestedBlock)


def scalar_kind(value: Any) -> ScalarKind | None:
    """
    Classify a scalar value.

    Returns:
        The ScalarKind, or None when value is not a scalar
    """
    if value is None:
        return ScalarKind.NULL
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return ScalarKind.BOOLEAN
    if isinstance(value, int):
        return ScalarKind.INTEGER
    if isinstance(value, float):
        return ScalarKind.FLOAT
    if isinstance(value, str):
        return ScalarKind.STRING
    # datetime before date: datetime is a date subclass
    if isinstance(value, datetime):
        return ScalarKind.DATETIME
    if isinstance(value, date):
        return ScalarKind.DATE
    return None


def _plain(value: Any, kind: ScalarKind) -> Any:
    """Strip int/float/str subclasses (IntEnum, str mixins) down to the builtin."""
    if kind is ScalarKind.INTEGER and type(value) is not int:
        return int(value)
    if kind is ScalarKind.FLOAT and type(value) is not float:
        return float(value)
    if kind is ScalarKind.STRING and type(value) is not str:
        return str.__str__(value)
    return value


def _child(path: str, key: str | int) -> str:
    if isinstance(key, int):
        return f"{path}[{key}]"
    return f"{path}.{key}" if path else key


def to_node(value: Any, path: str = "") -> Node:
    """
    Classify a Python value into a value tree node.

    Nested blocks are not evaluated here; resolve() does that.

    Args:
        value: Any value assigned to a field
        path: Location of the value, used in error messages

    Returns:
        The node for value

    Raises:
        UnsupportedValueKind: If value has no document representation
    """
    if isinstance(value, _NODE_TYPES):
        return value

    if isinstance(value, BlockHandle):
        raise UnsupportedValueKind(
            f"Field reference cannot be used as a value at '{path or '<root>'}'; "
            "assign the value itself or read it back with block['name']",
            value_type=type(value).__name__,
            path=path,
        )

    kind = scalar_kind(value)
    if kind is not None:
        if kind is ScalarKind.FLOAT and not math.isfinite(value):
            raise UnsupportedValueKind(
                f"Non-finite float {value!r} at '{path or '<root>'}'",
                value_type="float",
                path=path,
            )
        return Scalar(_plain(value, kind), kind)

    if isinstance(value, abc.Mapping):
        entries = []
        for key, item in value.items():
            if not isinstance(key, str):
                raise UnsupportedValueKind(
                    f"Mapping keys must be strings, got {type(key).__name__} "
                    f"at '{path or '<root>'}'",
                    value_type=type(key).__name__,
                    path=path,
                )
            entries.append((key, to_node(item, _child(path, key))))
        return Mapping(tuple(entries))

    if isinstance(value, (bytes, bytearray, memoryview)):
        raise UnsupportedValueKind(
            f"Binary values are not supported at '{path or '<root>'}'",
            value_type=type(value).__name__,
            path=path,
        )

    if callable(value) and not isinstance(value, type):
        return NestedBlock(value)

    if isinstance(value, abc.Iterable):
        return Sequence(tuple(to_node(item, _child(path, i)) for i, item in enumerate(value)))

    raise UnsupportedValueKind(
        f"Unsupported value of type {type(value).__name__} at '{path or '<root>'}'",
        value_type=type(value).__name__,
        path=path,
    )


def resolve(node: Node) -> Any:
    """
    Evaluate a node depth-first into plain data.

    Mappings and nested blocks become dicts, sequences become lists and
    scalars are returned unchanged (dates stay date objects).

    Args:
        node: The node to evaluate

    Returns:
        dict, list or scalar

    Raises:
        DocumentCompileError: If a nested block body raises
    """
    if isinstance(node, Scalar):
        return node.value
    if isinstance(node, Sequence):
        return [resolve(item) for item in node.items]
    if isinstance(node, Mapping):
        result: dict[str, Any] = {}
        for name, item in node.entries:
            result[name] = resolve(item)
        return result
    if isinstance(node, NestedBlock):
        from .block import evaluate_block

        return evaluate_block(node.body)
    raise UnsupportedValueKind(
        f"Not a value tree node: {type(node).__name__}",
        value_type=type(node).__name__,
    )
