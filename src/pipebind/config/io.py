# topmark:header:start
#
#   project      : PipeBind
#   file         : io.py
#   file_relpath : src/pipebind/config/io.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Lightweight TOML I/O helpers for PipeBind configuration.

Pure helpers for reading and writing the TOML used by the configuration layer.
Keeping them apart from `pipebind.config.model` avoids import cycles and keeps the
model focused on merge policy.

Typical flow:
    1. Load defaults from the packaged resource (``load_defaults_dict``).
    2. Load the project/user TOML file (``load_toml_dict``).
    3. Inspect values using the typed helpers (``get_table_value``, ``get_string_value``,
       ``get_binding_values``...).
    4. Serialize back to TOML when needed (``to_toml``), e.g. for tracing the
       effective configuration.
"""

from __future__ import annotations

from importlib.resources import files
from typing import TYPE_CHECKING, Any, TypeGuard

import toml

from pipebind.config.logging import get_logger
from pipebind.constants import DEFAULT_TOML_CONFIG_NAME, DEFAULT_TOML_CONFIG_PACKAGE
from pipebind.core.errors import ConfigError

if TYPE_CHECKING:
    import sys

    if sys.version_info >= (3, 14):
        from importlib.resources.abc import Traversable
    else:
        from importlib.abc import Traversable

    from pathlib import Path

    from pipebind.config.logging import PipebindLogger

logger: PipebindLogger = get_logger(__name__)

TomlTable = dict[str, Any]

__all__: list[str] = [
    "TomlTable",
    "is_toml_table",
    "get_table_value",
    "get_string_value",
    "get_string_value_or_none",
    "get_bool_value_or_none",
    "get_string_map",
    "get_binding_values",
    "load_defaults_dict",
    "load_toml_dict",
    "to_toml",
]


def is_toml_table(val: Any) -> TypeGuard[TomlTable]:
    """Type guard for a TOML table-like mapping."""
    return isinstance(val, dict)


def _scalar_to_str(value: Any) -> str | None:
    # TOML booleans render the way the engine expects them ("true"/"false")
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return None


def get_table_value(table: TomlTable, key: str) -> TomlTable:
    """Extract a sub-table from a TOML table.

    Args:
        table (TomlTable): Parent table mapping.
        key (str): Sub-table key.

    Returns:
        TomlTable: The sub-table if present and a mapping, otherwise an empty dict.
    """
    value: Any | None = table.get(key)
    return value if is_toml_table(value) else {}


def get_string_value(table: TomlTable, key: str, default: str = "") -> str:
    """Extract a string value, coercing ``int``/``float``/``bool`` scalars.

    Returns:
        str: The extracted or coerced value, or ``default``.
    """
    coerced: str | None = _scalar_to_str(table.get(key))
    return default if coerced is None else coerced


def get_string_value_or_none(table: TomlTable, key: str) -> str | None:
    """Extract an optional string value; ``None`` when absent or not coercible."""
    return _scalar_to_str(table.get(key))


def get_bool_value_or_none(table: TomlTable, key: str) -> bool | None:
    """Extract an optional boolean value, coercing integers via ``bool(value)``.

    Returns:
        bool | None: The value, or ``None`` when absent or not coercible.
    """
    value: Any | None = table.get(key)
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return bool(value)
    return None


def get_string_map(table: TomlTable, *, section: str) -> dict[str, str]:
    """Return a ``key -> string`` mapping from a flat TOML table.

    Scalars are coerced (booleans become ``"true"``/``"false"``).

    Args:
        table (TomlTable): Flat table such as ``[options]`` or ``[serialization]``.
        section (str): Section name used in error messages.

    Returns:
        dict[str, str]: Coerced entries in document order.

    Raises:
        ConfigError: If a value is not a scalar.
    """
    out: dict[str, str] = {}
    for key, value in table.items():
        coerced: str | None = _scalar_to_str(value)
        if coerced is None:
            raise ConfigError(f"[{section}] {key!r}: expected a scalar value, got {value!r}")
        out[str(key)] = coerced
    return out


def get_binding_values(table: TomlTable, key: str, *, section: str) -> list[str]:
    """Return the URI(s) bound to ``key`` in an ``[inputs]``/``[outputs]`` table.

    A single string is promoted to a one-element list.

    Raises:
        ConfigError: If the value is neither a string nor a list of strings.
    """
    value: Any = table[key]
    if isinstance(value, str):
        return [value]
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return [str(v) for v in value]
    raise ConfigError(f"[{section}] {key!r}: expected a URI or a list of URIs, got {value!r}")


def load_defaults_dict() -> TomlTable:
    """Return the packaged default configuration as a Python dict.

    Reads the bundled TOML resource from the ``pipebind.config`` package using
    ``importlib.resources.files`` and parses it into a dictionary.

    Raises:
        RuntimeError: If the bundled default config resource cannot be read or
            parsed as TOML.
    """
    resource: Traversable = files(DEFAULT_TOML_CONFIG_PACKAGE).joinpath(DEFAULT_TOML_CONFIG_NAME)
    logger.debug("Loading defaults from package resource: %s", resource)
    try:
        text: str = resource.read_text(encoding="utf8")
    except OSError as exc:
        raise RuntimeError(
            f"Cannot read bundled default config {DEFAULT_TOML_CONFIG_PACKAGE!r}/"
            f"{DEFAULT_TOML_CONFIG_NAME!r}: {exc}"
        ) from exc

    try:
        data: TomlTable = toml.loads(text)
    except toml.TomlDecodeError as exc:
        raise RuntimeError(
            f"Bundled default config {DEFAULT_TOML_CONFIG_PACKAGE!r}/"
            f"{DEFAULT_TOML_CONFIG_NAME!r} is invalid TOML: {exc}"
        ) from exc

    return data


def load_toml_dict(path: Path) -> TomlTable:
    """Load and parse a TOML file from the filesystem.

    An explicitly requested configuration file that cannot be used is fatal for
    the run, so failures are raised rather than logged.

    Args:
        path (Path): Path to a TOML document (e.g., ``pipebind.toml``).

    Returns:
        TomlTable: The parsed TOML content.

    Raises:
        ConfigError: If the file cannot be read or is not valid TOML.
    """
    try:
        return toml.load(path)
    except OSError as exc:
        raise ConfigError(f"Cannot read configuration file {path}: {exc}") from exc
    except toml.TomlDecodeError as exc:
        raise ConfigError(f"Invalid TOML in configuration file {path}: {exc}") from exc


def to_toml(toml_dict: TomlTable) -> str:
    """Serialize a TOML mapping to a string."""
    return toml.dumps(toml_dict)
