# topmark:header:start
#
#   project      : PipeBind
#   file         : messages.py
#   file_relpath : src/pipebind/registry/messages.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Registry that ties error codes to human-readable error messages.

The bundled table ``error-list.toml`` maps error code local names (``XD0011``) to
messages. It is loaded once; a missing or malformed table is fatal because every
error report depends on it.

The fallback message for unregistered codes is an attribute of the registry
instance, so a run can override it without touching process-wide state.
"""

from __future__ import annotations

from importlib.resources import files
from typing import TYPE_CHECKING, Any, Final

import tomlkit
from tomlkit.exceptions import ParseError as TomlkitParseError

from pipebind.config.logging import get_logger
from pipebind.constants import ERROR_TABLE_NAME, ERROR_TABLE_PACKAGE
from pipebind.core.errors import ErrorTableError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from pipebind.config.logging import PipebindLogger
    from pipebind.core.qname import QName

logger: PipebindLogger = get_logger(__name__)

DEFAULT_UNKNOWN_ERROR: Final[str] = "Unknown error"

# Name of the table holding `code = "message"` pairs inside error-list.toml.
ERROR_TABLE_SECTION: Final[str] = "errors"


class ErrorMessageRegistry:
    """Read-only lookup of error messages by error code.

    Args:
        messages (Mapping[str, str]): Error code local name -> message.
        unknown_message (str): Fallback returned for absent or unregistered codes.

    Attributes:
        unknown_message (str): Fallback message; may be reassigned at any time.
    """

    def __init__(
        self,
        messages: Mapping[str, str],
        *,
        unknown_message: str = DEFAULT_UNKNOWN_ERROR,
    ) -> None:
        self._messages: dict[str, str] = dict(messages)
        self.unknown_message = unknown_message

    @classmethod
    def from_resource(
        cls,
        *,
        package: str = ERROR_TABLE_PACKAGE,
        name: str = ERROR_TABLE_NAME,
        unknown_message: str = DEFAULT_UNKNOWN_ERROR,
    ) -> ErrorMessageRegistry:
        """Load the registry from a bundled TOML table.

        Args:
            package (str): Package that ships the table.
            name (str): Resource name of the table.
            unknown_message (str): Fallback message for unregistered codes.

        Returns:
            ErrorMessageRegistry: The loaded registry.

        Raises:
            ErrorTableError: If the table is missing, unreadable or malformed.
        """
        try:
            text: str = files(package).joinpath(name).read_text(encoding="utf-8")
        except (OSError, ModuleNotFoundError) as exc:
            raise ErrorTableError(f"Failed to load {name} from package {package}: {exc}") from exc
        messages: dict[str, str] = parse_error_table(text, source=name)
        logger.debug("Loaded %d error messages from %s", len(messages), name)
        return cls(messages, unknown_message=unknown_message)

    def __len__(self) -> int:
        return len(self._messages)

    def __contains__(self, local_name: object) -> bool:
        return local_name in self._messages

    def lookup(self, code: QName | None) -> str:
        """Return the registered message for ``code``, or the fallback message."""
        if code is not None:
            msg: str | None = self._messages.get(code.local_name)
            if msg is not None:
                return msg
        return self.unknown_message

    def format(self, code: QName | None, raw_message: str | None = "") -> str:
        """Combine a raw engine message with the registered message for ``code``.

        Returns ``"<localName>: <message>"`` when ``raw_message`` is empty and
        ``"<raw> (<localName>: <message>)"`` otherwise. Without a code the
        ``"<localName>: "`` prefix is omitted.
        """
        registered: str = self.lookup(code)
        code_and_message: str = (
            registered if code is None else f"{code.local_name}: {registered}"
        )
        if not raw_message:
            return code_and_message
        return f"{raw_message} ({code_and_message})"

    def code_and_message(self, code: QName | None) -> str:
        """Return ``"<localName>: <message>"`` (just the message without a code)."""
        return self.format(code, "")


def parse_error_table(text: str, *, source: str = "<string>") -> dict[str, str]:
    """Parse the TOML text of an error table into a ``code -> message`` dict.

    Raises:
        ErrorTableError: If the text is not TOML or the ``[errors]`` table is
            missing or holds non-string messages.
    """
    try:
        data: Any = tomlkit.parse(text).unwrap()
    except TomlkitParseError as exc:
        raise ErrorTableError(f"Error parsing {source}: {exc}") from exc

    table: Any = data.get(ERROR_TABLE_SECTION)
    if not isinstance(table, dict):
        raise ErrorTableError(f"Error parsing {source}: missing [{ERROR_TABLE_SECTION}] table")

    messages: dict[str, str] = {}
    for code, message in table.items():
        if not isinstance(message, str):
            raise ErrorTableError(
                f"Error parsing {source}: message for {code!r} is not a string"
            )
        messages[str(code)] = " ".join(message.split())
    return messages
