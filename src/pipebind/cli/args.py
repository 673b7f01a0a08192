# topmark:header:start
#
#   project      : PipeBind
#   file         : args.py
#   file_relpath : src/pipebind/cli/args.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Parsers for the binding arguments of the command line.

Forms:
    - input / output binding: ``[PORT=]URI`` (no port: the unnamed default port)
    - parameter: ``[PORT@]NAME=VALUE`` (no port: every parameter port, ``"*"``)
    - option: ``NAME=VALUE``
    - serialization default: ``KEY=VALUE``

``NAME`` is a bare local name or a Clark-notation name (``{uri}local``). A binding
is only split at ``=`` when the text before it is a valid port name, so URIs with
query strings bind the default port.

The parsers raise ``ValueError``; `click_callback` turns that into a Click
``BadParameter`` for the offending option.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Callable, Final, TypeVar

import click

from pipebind.binding.types import InputSource, Sink, port_ref
from pipebind.constants import WILDCARD_PORT
from pipebind.core.qname import QName

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from pipebind.binding.types import PortRef

T = TypeVar("T")

_PORT_RE: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z_][\w.\-]*$")


def split_port(text: str) -> tuple[str | None, str]:
    """Split ``[PORT=]VALUE``; the port is None when absent."""
    head, sep, tail = text.partition("=")
    if sep and _PORT_RE.match(head):
        return head, tail
    return None, text


def _split_name_value(text: str) -> tuple[QName, str]:
    # Skip a Clark namespace so '=' inside the URI does not split the name
    start: int = text.find("}") + 1 if text.startswith("{") else 0
    eq: int = text.find("=", start)
    if eq < 0:
        raise ValueError(f"expected NAME=VALUE, got {text!r}")
    return QName.parse(text[:eq]), text[eq + 1 :]


def parse_input_binding(text: str) -> tuple[str | None, InputSource]:
    port, uri = split_port(text)
    if not uri:
        raise ValueError(f"missing URI in input binding {text!r}")
    return port, InputSource.from_uri(uri)


def parse_output_binding(text: str) -> tuple[str | None, Sink]:
    port, uri = split_port(text)
    if not uri:
        raise ValueError(f"missing URI in output binding {text!r}")
    return port, Sink.from_uri(uri)


def parse_parameter(text: str) -> tuple[str, QName, str]:
    """Parse ``[PORT@]NAME=VALUE`` into ``(port or "*", name, value)``."""
    port: str = WILDCARD_PORT
    at: int = text.find("@")
    if at > 0 and not text.startswith("{") and _PORT_RE.match(text[:at]):
        port, text = text[:at], text[at + 1 :]
    name, value = _split_name_value(text)
    return port, name, value


def parse_option(text: str) -> tuple[QName, str]:
    return _split_name_value(text)


def parse_serialization(text: str) -> tuple[str, str]:
    key, sep, value = text.partition("=")
    if not sep or not key.strip():
        raise ValueError(f"expected KEY=VALUE, got {text!r}")
    return key.strip(), value


def click_callback(
    parser: Callable[[str], T],
) -> Callable[[click.Context, click.Parameter, Sequence[str]], list[T]]:
    """Return a Click callback applying ``parser`` to every value of a multiple option."""

    def callback(
        _ctx: click.Context, param: click.Parameter, values: Sequence[str]
    ) -> list[T]:
        parsed: list[T] = []
        for value in values:
            try:
                parsed.append(parser(value))
            except ValueError as exc:
                raise click.BadParameter(str(exc), param=param) from exc
        return parsed

    return callback


# --- table builders ---


def build_input_table(
    bindings: Iterable[tuple[str | None, InputSource]],
) -> dict[PortRef, list[InputSource]]:
    """Group input bindings by port, keeping command line order within a port."""
    table: dict[PortRef, list[InputSource]] = {}
    for port, source in bindings:
        table.setdefault(port_ref(port), []).append(source)
    return table


def build_output_table(bindings: Iterable[tuple[str | None, Sink]]) -> dict[PortRef, Sink]:
    """Map output bindings by port; a later binding for the same port wins."""
    return {port_ref(port): sink for port, sink in bindings}


def build_parameter_table(
    params: Iterable[tuple[str, QName, str]],
) -> dict[str, dict[QName, str]]:
    table: dict[str, dict[QName, str]] = {}
    for port, name, value in params:
        table.setdefault(port, {})[name] = value
    return table


def build_option_table(options: Iterable[tuple[QName, str]]) -> dict[QName, str]:
    return dict(options)
