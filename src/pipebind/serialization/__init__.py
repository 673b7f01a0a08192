# topmark:header:start
#
#   project      : PipeBind
#   file         : __init__.py
#   file_relpath : src/pipebind/serialization/__init__.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Serialization settings for output ports."""

from __future__ import annotations

from pipebind.serialization.settings import (
    ENGINE_DEFAULTS,
    SerializationKey,
    SerializationSettings,
    apply_overrides,
    resolve,
)

__all__: list[str] = [
    "ENGINE_DEFAULTS",
    "SerializationKey",
    "SerializationSettings",
    "apply_overrides",
    "resolve",
]
