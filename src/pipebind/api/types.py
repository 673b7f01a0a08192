# topmark:header:start
#
#   project      : PipeBind
#   file         : types.py
#   file_relpath : src/pipebind/api/types.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Public result and request types for the PipeBind API."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pipebind.binding.types import SinkKind

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from pipebind.binding.types import InputTable, OptionTable, OutputTable, ParameterTable, Sink


@dataclass(frozen=True)
class RunRequest:
    """User (ad-hoc) side of a full-binding run.

    The configured side comes from the driver's `pipebind.config.DriverConfig`.

    Attributes:
        pipeline (str | None): Pipeline source; falls back to ``[pipeline] source``.
        inputs (InputTable): User input bindings.
        outputs (OutputTable): User output bindings.
        params (ParameterTable): User parameters, by port (``"*"`` = all parameter ports).
        options (OptionTable): User options.
    """

    pipeline: str | None = None
    inputs: InputTable = field(default_factory=dict)
    outputs: OutputTable = field(default_factory=dict)
    params: ParameterTable = field(default_factory=dict)
    options: OptionTable = field(default_factory=dict)


@dataclass(frozen=True)
class RunReport:
    """Outcome of a successful full-binding run.

    Attributes:
        pipeline (str): Pipeline source that ran.
        sinks (Mapping[str, Sink]): Resolved sink of every declared output port.
        counts (Mapping[str, int]): Documents written (or drained) per output port.
        implicit_input (str | None): Port the unnamed input binding was routed to.
        stdin_input (str | None): Port that read its document from standard input.
    """

    pipeline: str
    sinks: Mapping[str, Sink]
    counts: Mapping[str, int]
    implicit_input: str | None = None
    stdin_input: str | None = None

    @property
    def stdout_written(self) -> bool:
        """Whether any output port was routed to standard output.

        Used by the CLI to end the output with a newline.
        """
        return any(sink.kind is SinkKind.STDOUT for sink in self.sinks.values())


@dataclass(frozen=True)
class PipelineOutputs:
    """In-memory outputs of a pipeline run.

    Attributes:
        primary_port (str | None): The primary output port, if one is declared.
        outputs (Mapping[str, Sequence[Any]]): Documents per output port, in order.
    """

    primary_port: str | None
    outputs: Mapping[str, Sequence[Any]]

    @property
    def primary(self) -> Sequence[Any]:
        """Documents of the primary output port (empty when there is none)."""
        if self.primary_port is None:
            return ()
        return self.outputs.get(self.primary_port, ())
