# topmark:header:start
#
#   project      : PipeBind
#   file         : constants.py
#   file_relpath : src/pipebind/constants.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""PipeBind Constants."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version

try:
    PIPEBIND_VERSION: str = get_version("pipebind")
except PackageNotFoundError:  # running from a source checkout
    PIPEBIND_VERSION = "0.0.0"

# Literal that stands for the process standard streams in bindings ("-" = stdin/stdout).
STDIO_SENTINEL: str = "-"

# Parameter port key that addresses every parameter port of the pipeline.
WILDCARD_PORT: str = "*"

# Bundled resources.
ERROR_TABLE_PACKAGE: str = "pipebind.registry"
ERROR_TABLE_NAME: str = "error-list.toml"

DEFAULT_ENGINE_SPEC: str = "pipebind.engines.declarative:DeclarativeEngine"

# Name of the bundled default config inside the package `pipebind.config`:
DEFAULT_TOML_CONFIG_PACKAGE: str = "pipebind.config"
DEFAULT_TOML_CONFIG_NAME: str = "pipebind-default.toml"
