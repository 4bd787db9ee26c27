"""
Configuration management for search-do

This module provides global configuration for the document compiler.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .encoding import Encoding
    from .types import CompilerConfig


def _get_env(key: str) -> str | None:
    """Get environment variable value."""
    return os.environ.get(key)


# Global configuration
_global_config: dict[str, Any] = {
    "default_encoding": _get_env("SEARCH_DO_DEFAULT_ENCODING") or "json",
    "pretty": _get_env("SEARCH_DO_PRETTY") or False,
}


def configure(
    *,
    default_encoding: "str | Encoding | None" = None,
    pretty: bool | None = None,
) -> None:
    """
    Configure compiler settings.

    Args:
        default_encoding: Encoding used by to_bytes()/to_string() when none is
            given (default: json)
        pretty: Indent JSON output (default: False)

    Raises:
        UnsupportedEncodingKind: If default_encoding is not a known encoding

    Example::

        from search_do import configure

        configure(default_encoding="yaml", pretty=True)
    """
    global _global_config

    if default_encoding is not None:
        from .encoding import Encoding

        _global_config["default_encoding"] = Encoding.parse(default_encoding).value
    if pretty is not None:
        _global_config["pretty"] = pretty


def get_config() -> "CompilerConfig":
    """
    Get current compiler configuration.

    Returns:
        Current CompilerConfig object

    Example::

        from search_do import get_config

        config = get_config()
        print(f"Default encoding: {config.default_encoding}")
    """
    from .types import CompilerConfig

    return CompilerConfig(
        default_encoding=_global_config["default_encoding"] or "json",
        pretty=_global_config["pretty"] or False,
    )


def configure_from_env() -> None:
    """
    Configure the compiler from environment variables.

    Reads from:
        - SEARCH_DO_DEFAULT_ENCODING
        - SEARCH_DO_PRETTY
    """
    from .types import CompilerConfig

    env = CompilerConfig(
        default_encoding=_get_env("SEARCH_DO_DEFAULT_ENCODING"),
        pretty=_get_env("SEARCH_DO_PRETTY") or False,
    )
    configure(default_encoding=env.default_encoding, pretty=env.pretty)
