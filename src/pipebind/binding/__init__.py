# topmark:header:start
#
#   project      : PipeBind
#   file         : __init__.py
#   file_relpath : src/pipebind/binding/__init__.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Port binding: binding tables, the two-pass resolver and output routing."""

from __future__ import annotations

from pipebind.binding.types import (
    DEFAULT,
    InputSource,
    Named,
    PortMeta,
    PortRef,
    Sink,
    SinkKind,
    SourceKind,
    port_ref,
)

__all__: list[str] = [
    "DEFAULT",
    "InputSource",
    "Named",
    "PortMeta",
    "PortRef",
    "Sink",
    "SinkKind",
    "SourceKind",
    "port_ref",
]
