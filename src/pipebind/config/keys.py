# topmark:header:start
#
#   project      : PipeBind
#   file         : keys.py
#   file_relpath : src/pipebind/config/keys.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Canonical TOML section and key names for PipeBind configuration.

Keys defined here are the external configuration API of ``pipebind.toml``;
renaming or removing one is a breaking change.
"""

from __future__ import annotations

from typing import Final


class Toml:
    """TOML section names and keys used by PipeBind configuration.

    The ordering mirrors `pipebind-default.toml`.
    """

    # Root
    KEY_DEBUG: Final[str] = "debug"

    # [engine]
    SECTION_ENGINE: Final[str] = "engine"

    KEY_ENGINE_SPEC: Final[str] = "spec"

    # [pipeline]
    SECTION_PIPELINE: Final[str] = "pipeline"

    KEY_PIPELINE_SOURCE: Final[str] = "source"

    # [inputs] and [outputs]: port name -> URI(s); "" is the default port
    SECTION_INPUTS: Final[str] = "inputs"
    SECTION_OUTPUTS: Final[str] = "outputs"

    KEY_DEFAULT_PORT: Final[str] = ""

    # [params.<port>]: "*" addresses every parameter port
    SECTION_PARAMS: Final[str] = "params"

    # [options]
    SECTION_OPTIONS: Final[str] = "options"

    # [serialization]
    SECTION_SERIALIZATION: Final[str] = "serialization"

    # [errors]
    SECTION_ERRORS: Final[str] = "errors"

    KEY_UNKNOWN_MESSAGE: Final[str] = "unknown_message"
