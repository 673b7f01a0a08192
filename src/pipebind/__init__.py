# topmark:header:start
#
#   project      : PipeBind
#   file         : __init__.py
#   file_relpath : src/pipebind/__init__.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""PipeBind: a command-line and library driver for XML pipeline engines.

PipeBind binds a loaded pipeline's declared ports to documents, files and the
standard streams, passes parameters and options, runs it, and routes every output
port to a sink. The engine itself is pluggable (see `pipebind.engines`).
"""

from __future__ import annotations
