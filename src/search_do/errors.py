"""
Standardized Error Codes for search-do.

Every error raised by the document compiler or by ActionFuture extends
SearchDoError and carries a numeric code.

Error Code Ranges:
- 1xxx: Value tree errors
- 2xxx: Encoding errors
- 3xxx: Compile errors
- 4xxx: Serialization errors
- 5xxx: Action future errors
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any


# ============================================================================
# Standard Error Codes
# ============================================================================


class ErrorCode(IntEnum):
    """Standard error codes used across search-do."""

    # A value in the tree has no serializable form
    UNSUPPORTED_VALUE_KIND = 1001

    # Unknown encoding requested
    UNSUPPORTED_ENCODING_KIND = 2001

    # Operation not available for the chosen encoding
    UNSUPPORTED_OPERATION = 2002

    # A block body raised while it was evaluated
    DOCUMENT_COMPILE_ERROR = 3001

    # Finalizing or writing the serialized output failed
    SERIALIZATION_IO_ERROR = 4001

    # Decoding a serialized payload failed
    DOCUMENT_PARSE_ERROR = 4002

    # Bounded wait exceeded
    TIMEOUT_ERROR = 5001

    # The asynchronous action failed
    ACTION_FAILED = 5002

    # Future resolved twice
    ILLEGAL_STATE = 5003

    # Future cancelled before it resolved
    CANCELLED = 5004


# Maps error codes to their string names
ERROR_CODE_NAMES: dict[ErrorCode, str] = {code: code.name for code in ErrorCode}


# ============================================================================
# Base Error Class
# ============================================================================


class SearchDoError(Exception):
    """
    Base error class for all search-do errors.

    Error Hierarchy:
    - SearchDoError (base)
      - UnsupportedValueKind: value outside the value tree model
      - UnsupportedEncodingKind: unknown encoding
      - UnsupportedOperation: text output of a binary encoding
      - DocumentCompileError: a block body raised
      - SerializationIOError: output could not be finalized
      - DocumentParseError: payload could not be decoded
      - TimeoutError: bounded wait exceeded
      - ActionFailedError: the asynchronous action failed
      - IllegalStateError: future resolved twice
      - CancelledError: future cancelled

    Example:
        ```python
        try:
            payload = to_bytes(body, "cbor")
        except SearchDoError as error:
            print(f"[{error.code_name}] {error.message}")
        ```

    Attributes:
        message: Human-readable error message.
        code: Numeric error code (e.g., 1001, 3001).
        code_name: String name of the error code (e.g., 'DOCUMENT_COMPILE_ERROR').
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        code_name: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.code_name = code_name or ERROR_CODE_NAMES.get(code, "UNKNOWN_ERROR")

    def __str__(self) -> str:
        return f"{self.code_name}({self.code}): {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, code={self.code})"

    def to_dict(self) -> dict[str, Any]:
        """Return a dictionary representation of the error."""
        return {
            "name": self.__class__.__name__,
            "message": self.message,
            "code": int(self.code),
            "code_name": self.code_name,
        }


# ============================================================================
# Document Compiler Errors
# ============================================================================


class UnsupportedValueKind(SearchDoError):
    """
    Error raised when a value cannot be represented in a document.

    Error Code: 1001 (UNSUPPORTED_VALUE_KIND)

    Common causes:
    - Arbitrary objects (sockets, enums, custom classes) assigned to a field
    - Mapping keys that are not strings
    - Non-finite floats (NaN, Infinity)
    - A short-hand field reference (``b.a.b``) used as a value

    Attributes:
        value_type: Name of the offending value's type.
        path: Dotted location of the value inside the tree, when known.
    """

    def __init__(
        self,
        message: str,
        value_type: str | None = None,
        path: str | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.UNSUPPORTED_VALUE_KIND)
        self.value_type = value_type
        self.path = path


class UnsupportedEncodingKind(SearchDoError):
    """
    Error raised when an encoding name or media type is not recognized.

    Error Code: 2001 (UNSUPPORTED_ENCODING_KIND)

    Attributes:
        encoding: The value that was requested.
    """

    def __init__(self, message: str, encoding: Any = None) -> None:
        super().__init__(message, ErrorCode.UNSUPPORTED_ENCODING_KIND)
        self.encoding = encoding


class UnsupportedOperation(SearchDoError):
    """
    Error raised when an operation is not available for an encoding.

    Error Code: 2002 (UNSUPPORTED_OPERATION)

    Binary encodings (CBOR, MessagePack) cannot be rendered as text.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message, ErrorCode.UNSUPPORTED_OPERATION)


class DocumentCompileError(SearchDoError):
    """
    Error raised when evaluating a block body fails.

    Error Code: 3001 (DOCUMENT_COMPILE_ERROR)

    The original exception is kept as ``__cause__`` and as ``cause``.
    Nothing compiled before the failure is returned.

    Example:
        ```python
        try:
            to_map(lambda b: b.total(b["missing"]))
        except DocumentCompileError as error:
            assert isinstance(error.cause, KeyError)
        ```
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message, ErrorCode.DOCUMENT_COMPILE_ERROR)
        self.cause = cause
        self.__cause__ = cause


class SerializationIOError(SearchDoError):
    """
    Error raised when serialized output cannot be finalized or written.

    Error Code: 4001 (SERIALIZATION_IO_ERROR)

    Common causes:
    - The document builder was already finalized
    - The target stream is closed
    - The encoder rejected the content
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message, ErrorCode.SERIALIZATION_IO_ERROR)
        self.__cause__ = cause


class DocumentParseError(SearchDoError):
    """
    Error raised when a serialized payload cannot be decoded.

    Error Code: 4002 (DOCUMENT_PARSE_ERROR)
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message, ErrorCode.DOCUMENT_PARSE_ERROR)
        self.__cause__ = cause


# ============================================================================
# Action Future Errors
# ============================================================================


class TimeoutError(SearchDoError):
    """
    Error raised when waiting on a future exceeds its timeout.

    Error Code: 5001 (TIMEOUT_ERROR)

    The future is left untouched; waiting again may still succeed.

    Attributes:
        timeout_ms: The timeout duration in milliseconds.
    """

    def __init__(
        self, message: str = "Timed out waiting for action", timeout_ms: int | None = None
    ) -> None:
        super().__init__(message, ErrorCode.TIMEOUT_ERROR)
        self.timeout_ms = timeout_ms


class ActionFailedError(SearchDoError):
    """
    Error raised by ActionFuture.get() when the action failed.

    Error Code: 5002 (ACTION_FAILED)

    The error the action was rejected with is kept as ``__cause__``.

    Attributes:
        root_failure: The originating error behind any wrapper errors.
    """

    def __init__(self, message: str, cause: BaseException) -> None:
        super().__init__(message, ErrorCode.ACTION_FAILED)
        self.root_failure = unwrap_cause(cause)
        self.__cause__ = cause


class IllegalStateError(SearchDoError):
    """
    Error raised when a future is resolved or rejected a second time.

    Error Code: 5003 (ILLEGAL_STATE)
    """

    def __init__(self, message: str) -> None:
        super().__init__(message, ErrorCode.ILLEGAL_STATE)


class CancelledError(SearchDoError):
    """
    Failure stored in a future that was cancelled before it resolved.

    Error Code: 5004 (CANCELLED)
    """

    def __init__(self, message: str = "Action was cancelled") -> None:
        super().__init__(message, ErrorCode.CANCELLED)


# ============================================================================
# Error Utilities
# ============================================================================


_WRAPPER_TYPES: tuple[type[SearchDoError], ...] = (ActionFailedError, DocumentCompileError)


def is_error_code(error: BaseException, code: ErrorCode) -> bool:
    """
    Check if an error is a SearchDoError with a specific error code.

    Args:
        error: The error to check.
        code: The error code to match.

    Returns:
        True if the error matches the code.
    """
    return isinstance(error, SearchDoError) and error.code == code


def unwrap_cause(error: BaseException) -> BaseException:
    """
    Return the innermost error behind this package's wrapper errors.

    ActionFailedError and DocumentCompileError are followed through
    ``__cause__``; any other error is returned as-is.

    Args:
        error: Any error or exception.

    Returns:
        The originating error.
    """
    seen: set[int] = set()
    while isinstance(error, _WRAPPER_TYPES) and error.__cause__ is not None:
        if id(error) in seen:
            break
        seen.add(id(error))
        error = error.__cause__
    return error
