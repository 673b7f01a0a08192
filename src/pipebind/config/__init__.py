# topmark:header:start
#
#   project      : PipeBind
#   file         : __init__.py
#   file_relpath : src/pipebind/config/__init__.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Configuration handling for the PipeBind driver.

Layered loading: the bundled `pipebind-default.toml`, then an optional project
file (``--config``), then CLI scalar overrides. See `pipebind.config.model`.
"""

from __future__ import annotations

from pipebind.config.model import DriverConfig, MutableDriverConfig

__all__: list[str] = ["DriverConfig", "MutableDriverConfig"]
