# topmark:header:start
#
#   project      : PipeBind
#   file         : resolver.py
#   file_relpath : src/pipebind/binding/resolver.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Port binding resolver: reconcile declared ports with binding tables.

Two binding tables take part in every run: one from structured configuration
and one from ad-hoc user (command line) input. Both map a `PortRef` to sources
(inputs) or a sink (outputs). The resolver merges them against the ports the
pipeline declares and produces plans; it never mutates the tables.

Input pass (`plan_inputs`, then `apply_input_plan`):
    1. Collect every named port bound in either table.
    2. Retarget a binding for the unnamed default port to the pipeline's primary
       non-parameter input port, but only when exactly one such port exists and it
       is not bound by name already. Otherwise the default binding stays unresolved
       (no error).
    3. Reject bindings for undeclared ports (`BindingError`, before any write). For
       each bound port the user table's sources replace the configured ones
       entirely; the port is cleared and the sources are written in order.
    4. If the primary non-parameter input port is still unbound and holds no
       documents, bind one document read from standard input.

Output pass (`plan_outputs`):
    For each declared output port the sink is, in priority order: the user
    table's entry for the port, the configured entry, and for the primary port
    the user's default-port entry, else standard output. A default-port entry in
    the configured table is ignored. Other unbound ports are discarded. A ``"-"``
    URI sink means standard output. Bindings for undeclared output ports are
    rejected before the run.

Parameters and options:
    Configured entries are applied first and user entries after, so the user
    wins for identical ``(port, name)`` pairs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from pipebind.binding.types import DEFAULT, InputSource, Named, Sink, SinkKind
from pipebind.config.logging import get_logger
from pipebind.constants import STDIO_SENTINEL, WILDCARD_PORT
from pipebind.core.errors import BindingError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from pipebind.binding.types import (
        InputTable,
        OptionTable,
        OutputTable,
        ParameterTable,
        PortMeta,
        PortRef,
    )
    from pipebind.config.logging import PipebindLogger
    from pipebind.core.qname import QName
    from pipebind.pipeline.session import PipelineSession

logger: PipebindLogger = get_logger(__name__)


class BindingOrigin(str, Enum):
    """Where the binding of a port came from."""

    USER = "user"
    CONFIG = "config"
    IMPLICIT = "implicit"  # stdin / stdout fallback for a primary port
    NONE = "none"  # unbound output port (discarded)


@dataclass(frozen=True, slots=True)
class InputBinding:
    """Sources to write on one input port.

    Attributes:
        port (str): Declared input port name.
        sources (tuple[InputSource, ...]): Sources in binding order.
        origin (BindingOrigin): Table the sources were taken from.
        from_default (bool): Whether the binding was addressed to the default port.
    """

    port: str
    sources: tuple[InputSource, ...]
    origin: BindingOrigin
    from_default: bool = False


@dataclass(frozen=True, slots=True)
class InputPlan:
    """Result of the input pass, ready to be applied to a session.

    Attributes:
        bindings (tuple[InputBinding, ...]): Explicit and implicit bindings, in order.
        implicit_port (str | None): Port the default-port binding was routed to.
        unresolved_default (bool): A default-port binding exists but no unique
            primary input port could take it.
        stdin_port (str | None): Primary input port that falls back to standard input
            when it holds no documents after the bindings are applied.
    """

    bindings: tuple[InputBinding, ...] = ()
    implicit_port: str | None = None
    unresolved_default: bool = False
    stdin_port: str | None = None

    @property
    def bound_ports(self) -> tuple[str, ...]:
        return tuple(b.port for b in self.bindings)

    def binding_for(self, port: str) -> InputBinding | None:
        for binding in self.bindings:
            if binding.port == port:
                return binding
        return None


@dataclass(frozen=True, slots=True)
class OutputPlan:
    """Result of the output pass: one normalized sink per declared output port.

    Attributes:
        sinks (Mapping[str, Sink]): Port -> sink, in declaration order.
        origins (Mapping[str, BindingOrigin]): Port -> where its sink came from.
    """

    sinks: Mapping[str, Sink] = field(default_factory=dict)
    origins: Mapping[str, BindingOrigin] = field(default_factory=dict)

    @property
    def stdout_ports(self) -> tuple[str, ...]:
        return tuple(p for p, s in self.sinks.items() if s.kind is SinkKind.STDOUT)

    @property
    def routes_to_stdout(self) -> bool:
        """Whether any port writes to standard output (trailing-newline signal)."""
        return bool(self.stdout_ports)


def _named_keys(*tables: Mapping[PortRef, object]) -> list[str]:
    """Return the named ports of ``tables`` in first-seen order (default key excluded)."""
    seen: dict[str, None] = {}
    for table in tables:
        for ref in table:
            if isinstance(ref, Named):
                seen.setdefault(ref.name, None)
    return list(seen)


def primary_input_candidates(declared: Mapping[str, PortMeta]) -> list[str]:
    """Return the declared primary non-parameter input ports, in declaration order."""
    return [port for port, meta in declared.items() if meta.primary and not meta.parameters]


def _check_declared(ports: Iterable[str], declared: Mapping[str, PortMeta], direction: str) -> None:
    for port in ports:
        if port not in declared:
            raise BindingError(port, direction=direction)


def plan_inputs(
    declared: Mapping[str, PortMeta],
    configured: InputTable,
    user: InputTable,
) -> InputPlan:
    """Compute the input binding plan.

    Args:
        declared (Mapping[str, PortMeta]): Declared input ports and their flags.
        configured (InputTable): Bindings from structured configuration.
        user (InputTable): Bindings from user (command line) input.

    Returns:
        InputPlan: Bindings to apply, plus the implicit and stdin ports.

    Raises:
        BindingError: If either table names a port the pipeline does not declare.
    """
    bound: list[str] = _named_keys(user, configured)
    _check_declared(bound, declared, "input")

    bindings: list[InputBinding] = []
    for port in bound:
        ref = Named(port)
        if ref in user:
            bindings.append(InputBinding(port, tuple(user[ref]), BindingOrigin.USER))
        else:
            bindings.append(InputBinding(port, tuple(configured[ref]), BindingOrigin.CONFIG))

    implicit_port: str | None = None
    unresolved_default: bool = False
    if DEFAULT in user or DEFAULT in configured:
        candidates: list[str] = primary_input_candidates(declared)
        if len(candidates) == 1 and candidates[0] not in bound:
            implicit_port = candidates[0]
            if DEFAULT in user:
                sources, origin = user[DEFAULT], BindingOrigin.USER
            else:
                sources, origin = configured[DEFAULT], BindingOrigin.CONFIG
            bindings.append(
                InputBinding(implicit_port, tuple(sources), origin, from_default=True)
            )
            bound.append(implicit_port)
            logger.debug("Unnamed input bound to primary input port %s", implicit_port)
        else:
            unresolved_default = True
            logger.warning(
                "Unnamed input binding left unbound: %d primary input port(s) available (%s)",
                len(candidates),
                ", ".join(candidates) or "none",
            )

    stdin_port: str | None = None
    for port in primary_input_candidates(declared):
        if port not in bound:
            stdin_port = port
            break

    return InputPlan(
        bindings=tuple(bindings),
        implicit_port=implicit_port,
        unresolved_default=unresolved_default,
        stdin_port=stdin_port,
    )


def apply_input_plan(session: PipelineSession, plan: InputPlan) -> str | None:
    """Write the planned bindings to ``session`` and apply the stdin fallback.

    Returns:
        str | None: The port that received a document from standard input, if any.
    """
    for binding in plan.bindings:
        session.clear_inputs(binding.port)
        for source in binding.sources:
            logger.debug("Bind %s to input port %s", source.describe(), binding.port)
            session.write_input(binding.port, source)

    port: str | None = plan.stdin_port
    if port is not None and session.bound_count(port) == 0:
        logger.debug("Bind stdin to primary input port %s", port)
        session.write_input(port, InputSource.from_uri(STDIO_SENTINEL))
        return port
    return None


def plan_outputs(
    declared: Mapping[str, PortMeta],
    configured: OutputTable,
    user: OutputTable,
) -> OutputPlan:
    """Compute the output sink for every declared output port.

    Args:
        declared (Mapping[str, PortMeta]): Declared output ports and their flags.
        configured (OutputTable): Sinks from structured configuration.
        user (OutputTable): Sinks from user (command line) input.

    Returns:
        OutputPlan: One normalized sink per declared output port.

    Raises:
        BindingError: If either table names a port the pipeline does not declare.
    """
    _check_declared(_named_keys(user, configured), declared, "output")
    if DEFAULT in configured:
        logger.warning(
            "Configured unnamed output binding ignored: %s", configured[DEFAULT].describe()
        )

    sinks: dict[str, Sink] = {}
    origins: dict[str, BindingOrigin] = {}
    for port, meta in declared.items():
        ref = Named(port)
        sink: Sink
        origin: BindingOrigin
        if ref in user:
            sink, origin = user[ref], BindingOrigin.USER
        elif ref in configured:
            sink, origin = configured[ref], BindingOrigin.CONFIG
        elif meta.primary and DEFAULT in user:
            sink, origin = user[DEFAULT], BindingOrigin.USER
        elif meta.primary:
            sink, origin = Sink.stdout(), BindingOrigin.IMPLICIT
        else:
            sink, origin = Sink.discard(), BindingOrigin.NONE
        sinks[port] = sink.normalized()
        origins[port] = origin
    return OutputPlan(sinks=sinks, origins=origins)


def merge_parameters(
    configured: ParameterTable,
    user: ParameterTable,
) -> dict[tuple[str, QName], str]:
    """Merge parameter tables; later (user) writes win for identical pairs.

    Returns:
        dict[tuple[str, QName], str]: ``(port or "*", name) -> value`` in apply order.
    """
    merged: dict[tuple[str, QName], str] = {}
    for table in (configured, user):
        for port, params in table.items():
            for name, value in params.items():
                merged[(port, name)] = str(value)
    return merged


def apply_parameters(session: PipelineSession, merged: Mapping[tuple[str, QName], str]) -> None:
    """Set merged parameters on ``session`` (``"*"`` targets every parameter port)."""
    for (port, name), value in merged.items():
        session.set_parameter(name, value, port=None if port == WILDCARD_PORT else port)


def merge_options(configured: OptionTable, user: OptionTable) -> dict[QName, str]:
    """Merge option tables; user values override configured ones."""
    merged: dict[QName, str] = {name: str(value) for name, value in configured.items()}
    merged.update((name, str(value)) for name, value in user.items())
    return merged


def apply_options(session: PipelineSession, merged: Mapping[QName, str]) -> None:
    for name, value in merged.items():
        session.set_option(name, value)
