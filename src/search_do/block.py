"""
Block - records field assignments made by a block body.

A block body is any callable taking one argument. The compiler calls it
with a Block, and every assignment the body makes is recorded, in order,
as a field of the resulting document:

    def body(b):
        b.query(lambda q: q.term(test="value"))
        b.size = 10

    to_map(body)  # {"query": {"term": {"test": "value"}}, "size": 10}
"""

from __future__ import annotations

import keyword
from typing import Any, Callable

from .errors import DocumentCompileError, SearchDoError
from .tree import BlockHandle, resolve, to_node

__all__ = ["Block", "evaluate_block", "field_name"]


def field_name(name: str) -> str:
    """
    Map a Python attribute name to a field name.

    A single trailing underscore after a Python keyword is dropped, so
    ``b.from_`` records the field ``from``. Every other name is kept as-is.
    """
    if name.endswith("_") and keyword.iskeyword(name[:-1]):
        return name[:-1]
    return name


def _call_value(args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any:
    """Turn method-style call arguments into the assigned value."""
    if args and kwargs:
        raise TypeError("Cannot mix positional and keyword arguments in a field call")
    if kwargs:
        return {field_name(key): value for key, value in kwargs.items()}
    if not args:
        return {}
    if len(args) == 1:
        return args[0]
    return list(args)


class Block(BlockHandle):
    """
    Ordered recorder for one level of a document.

    Supported forms inside a block body:

        b.name = value               # property-style assignment
        b.name(value)                # method-style, returns b for chaining
        b.name(v1, v2)               # several values become a list
        b.name(key1=v1, key2=v2)     # keyword sugar for a nested mapping
        b.name()                     # empty object
        b.name(lambda n: ...)        # nested block
        b.a.b.c = value              # one flat key "a.b.c"
        b["a.b"] = value             # explicit literal key
        b("from", 10)                # method-style with any name
        b["name"]                    # read an assigned value back

    The first assignment of a name fixes its position; later assignments
    replace the value in place. Dotted names are never split into nested
    objects.
    """

    __slots__ = ("_entries",)

    def __init__(self) -> None:
        object.__setattr__(self, "_entries", {})

    def _assign(self, name: str, value: Any) -> None:
        self._entries[name] = resolve(to_node(value, name))

    def _as_dict(self) -> dict[str, Any]:
        return self._entries

    def __getattr__(self, name: str) -> _FieldRef:
        """
        Start a field reference.

        Args:
            name: The attribute being accessed

        Returns:
            A reference that assigns the field when called or set
        """
        if name.startswith("_"):
            raise AttributeError(f"'{type(self).__name__}' has no attribute '{name}'")

        return _FieldRef(self, (field_name(name),))

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_"):
            raise AttributeError(
                f"Cannot set attribute '{name}' on Block. "
                "Use block['_name'] = value for fields starting with an underscore."
            )
        self._assign(field_name(name), value)

    def __call__(self, name: str, *args: Any, **kwargs: Any) -> Block:
        """Method-style assignment for names that are not valid attributes."""
        if not isinstance(name, str):
            raise TypeError(f"Field name must be a string, got {type(name).__name__}")
        self._assign(name, _call_value(args, kwargs))
        return self

    def __setitem__(self, name: str, value: Any) -> None:
        if not isinstance(name, str):
            raise TypeError(f"Field name must be a string, got {type(name).__name__}")
        self._assign(name, value)

    def __getitem__(self, name: str) -> Any:
        return self._entries[name]

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"Block({', '.join(self._entries)})"


class _FieldRef(BlockHandle):
    """
    Pending reference to a field of a Block.

    Attribute access extends the dotted name; calling it or setting an
    attribute on it assigns the field on the owning block.
    """

    __slots__ = ("_block", "_path")

    def __init__(self, block: Block, path: tuple[str, ...]) -> None:
        object.__setattr__(self, "_block", block)
        object.__setattr__(self, "_path", path)

    def __getattr__(self, name: str) -> _FieldRef:
        if name.startswith("_"):
            raise AttributeError(f"'{type(self).__name__}' has no attribute '{name}'")

        return _FieldRef(self._block, self._path + (field_name(name),))

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_"):
            raise AttributeError(f"Cannot set attribute '{name}' on a field reference")
        self._block._assign(".".join(self._path + (field_name(name),)), value)

    def __call__(self, *args: Any, **kwargs: Any) -> Block:
        self._block._assign(".".join(self._path), _call_value(args, kwargs))
        return self._block

    def __repr__(self) -> str:
        return f"FieldRef({'.'.join(self._path)})"


def evaluate_block(body: Callable[[Block], Any]) -> dict[str, Any]:
    """
    Run a block body against a fresh Block.

    Args:
        body: Callable receiving the Block

    Returns:
        The recorded fields in assignment order

    Raises:
        DocumentCompileError: If the body raises anything other than a
            search-do error, which propagate unchanged
    """
    block = Block()
    try:
        body(block)
    except SearchDoError:
        raise
    except Exception as e:
        name = getattr(body, "__qualname__", None) or repr(body)
        raise DocumentCompileError(
            f"Failed to evaluate block {name}: {type(e).__name__}: {e}", cause=e
        ) from e
    return block._as_dict()
