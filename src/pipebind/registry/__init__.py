# topmark:header:start
#
#   project      : PipeBind
#   file         : __init__.py
#   file_relpath : src/pipebind/registry/__init__.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Registries bundled with PipeBind (error code messages)."""

from __future__ import annotations

from pipebind.registry.messages import DEFAULT_UNKNOWN_ERROR, ErrorMessageRegistry

__all__: list[str] = ["DEFAULT_UNKNOWN_ERROR", "ErrorMessageRegistry"]
