"""
Type definitions for search-do

This module contains the enums and the configuration model shared across
the search_do package.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, field_validator


class ScalarKind(str, Enum):
    """Closed set of scalar kinds a value tree may contain."""
    NULL = "null"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"
    STRING = "string"
    DATE = "date"
    DATETIME = "datetime"


class FutureState(str, Enum):
    """Lifecycle of an ActionFuture."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class CompilerConfig(BaseModel):
    """Validated compiler configuration.

    ``default_encoding`` accepts anything Encoding.parse() accepts and is
    normalized to the encoding's canonical name.
    """

    default_encoding: str = "json"
    pretty: bool = False

    model_config = {
        "frozen": True,
        "extra": "ignore",
    }

    @field_validator("default_encoding", mode="before")
    @classmethod
    def normalize_encoding(cls, v: object) -> str:
        """Reject unknown encodings early instead of at compile time."""
        from .encoding import Encoding

        if v is None:
            return Encoding.JSON.value
        return Encoding.parse(v).value
