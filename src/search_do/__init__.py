"""
search-do - Declarative documents and action futures for search clients.

This package provides:
- A document compiler that turns nested Python blocks into JSON, YAML,
  CBOR or MessagePack request bodies, keeping field order
- ActionFuture, a single-assignment future with blocking get(), timeouts
  and success/failure listeners

Example usage:
    from search_do import ActionFuture, as_string, to_bytes

    def search(b):
        b.query(lambda q: q.term(test="value"))
        b.size = 10

    as_string(search)
    # '{"query":{"term":{"test":"value"}},"size":10}'

    payload = to_bytes(search, "cbor")

    future = ActionFuture.submit(executor, client.search, payload)
    future.on_success(print).on_failure(log_error)
    response = future.get("30s")
"""

from __future__ import annotations

__version__ = "0.1.0"

from .block import Block
from .compiler import Document, as_bytes, as_string, to_bytes, to_document, to_map, to_string
from .config import configure, configure_from_env, get_config
from .encoding import Encoding, decode
from .errors import (
    ActionFailedError,
    CancelledError,
    DocumentCompileError,
    DocumentParseError,
    ErrorCode,
    IllegalStateError,
    SearchDoError,
    SerializationIOError,
    TimeoutError,
    UnsupportedEncodingKind,
    UnsupportedOperation,
    UnsupportedValueKind,
    is_error_code,
    unwrap_cause,
)
from .future import ActionFuture, parse_timeout
from .tree import Mapping, NestedBlock, Scalar, Sequence, resolve, to_node
from .types import CompilerConfig, FutureState, ScalarKind

__all__ = [
    # Document compiler
    "to_map",
    "to_document",
    "to_bytes",
    "to_string",
    "as_bytes",
    "as_string",
    "Document",
    "Block",
    "Encoding",
    "decode",
    # Value tree
    "Scalar",
    "Sequence",
    "Mapping",
    "NestedBlock",
    "to_node",
    "resolve",
    "ScalarKind",
    # Futures
    "ActionFuture",
    "FutureState",
    "parse_timeout",
    # Configuration
    "configure",
    "configure_from_env",
    "get_config",
    "CompilerConfig",
    # Errors
    "ErrorCode",
    "SearchDoError",
    "UnsupportedValueKind",
    "UnsupportedEncodingKind",
    "UnsupportedOperation",
    "DocumentCompileError",
    "SerializationIOError",
    "DocumentParseError",
    "TimeoutError",
    "ActionFailedError",
    "IllegalStateError",
    "CancelledError",
    "is_error_code",
    "unwrap_cause",
    # Version
    "__version__",
]
