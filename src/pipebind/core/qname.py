# topmark:header:start
#
#   project      : PipeBind
#   file         : qname.py
#   file_relpath : src/pipebind/core/qname.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Qualified names for options, parameters, serialization methods and error codes.

Names are written either as a bare local name (``indent``) or in Clark notation
(``{http://example.com/ns}indent``). Prefixed names are not resolved here because
the driver has no namespace context of its own.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Final

NS_XPROC_ERROR: Final[str] = "http://www.w3.org/ns/xproc-error"

_NCNAME_RE: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z_][\w.\-]*$")


@dataclass(frozen=True, slots=True)
class QName:
    """A namespace-qualified name.

    Attributes:
        namespace (str): Namespace URI; the empty string means "no namespace".
        local_name (str): The local part of the name.
    """

    namespace: str
    local_name: str

    @classmethod
    def parse(cls, text: str, *, default_namespace: str = "") -> QName:
        """Parse a bare local name or a Clark-notation name.

        Args:
            text (str): ``local`` or ``{uri}local``.
            default_namespace (str): Namespace used for bare local names.

        Returns:
            QName: The parsed name.

        Raises:
            ValueError: If the text is not a usable name.
        """
        raw: str = text.strip()
        namespace: str = default_namespace
        local: str = raw
        if raw.startswith("{"):
            end: int = raw.find("}")
            if end < 0:
                raise ValueError(f"Unterminated namespace in name: {text!r}")
            namespace = raw[1:end]
            local = raw[end + 1 :]
        if not _NCNAME_RE.match(local):
            raise ValueError(f"Not a valid name: {text!r}")
        return cls(namespace=namespace, local_name=local)

    @property
    def clark(self) -> str:
        """Return the Clark-notation form (bare local name when unqualified)."""
        if not self.namespace:
            return self.local_name
        return f"{{{self.namespace}}}{self.local_name}"

    def __str__(self) -> str:
        return self.clark


def error_code(local_name: str) -> QName:
    """Return an XProc error code name (``err:`` namespace) for ``local_name``."""
    return QName(NS_XPROC_ERROR, local_name)
