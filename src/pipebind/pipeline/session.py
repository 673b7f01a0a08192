# topmark:header:start
#
#   project      : PipeBind
#   file         : session.py
#   file_relpath : src/pipebind/pipeline/session.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""A pipeline session: one loaded pipeline bound to one engine instance.

The session exposes the narrow operations the binding resolver and the run
orchestrator need (parameters, options, inputs, run, outputs) and guarantees
that the engine instance is released exactly once.

Typical usage:

    with PipelineSession.open(engine_factory(), "pipe.toml") as session:
        session.write_input("source", InputSource.from_uri("doc.xml"))
        session.run()
        session.copy_outputs("result", Sink.stdout())

The session is **not** safe for concurrent use. Callers that run pipelines
concurrently create one session (and so one engine instance) per run.
"""

from __future__ import annotations

import sys
from typing import IO, TYPE_CHECKING, Any

from pipebind.binding.router import copy_port
from pipebind.binding.types import InputSource, SourceKind
from pipebind.config.logging import get_logger
from pipebind.core.errors import UnsupportedOperationError

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping, Set
    from types import TracebackType

    from pipebind.binding.types import PortMeta, Sink
    from pipebind.config.logging import PipebindLogger
    from pipebind.core.qname import QName
    from pipebind.pipeline.contracts import Document, Engine, PipelineHandle

logger: PipebindLogger = get_logger(__name__)


class PipelineSession:
    """Owns one pipeline handle and the engine instance that loaded it.

    Args:
        engine (Engine): The engine instance; released by `close`.
        handle (PipelineHandle): The loaded pipeline.
        source (str | None): Where the pipeline was loaded from (diagnostics only).
        stdin (IO[bytes] | None): Binary stream read for ``"-"`` input sources.
            Defaults to the process standard input at read time.
        stdout (IO[bytes] | None): Binary stream written for standard-output sinks.
            Defaults to the process standard output at write time.
    """

    def __init__(
        self,
        engine: Engine,
        handle: PipelineHandle,
        *,
        source: str | None = None,
        stdin: IO[bytes] | None = None,
        stdout: IO[bytes] | None = None,
    ) -> None:
        self.engine = engine
        self.handle = handle
        self.source = source
        self._stdin = stdin
        self._stdout = stdout
        self._ran = False
        self._closed = False

    @classmethod
    def open(
        cls,
        engine: Engine,
        source: str,
        *,
        stdin: IO[bytes] | None = None,
        stdout: IO[bytes] | None = None,
    ) -> PipelineSession:
        """Load ``source`` with ``engine`` and wrap the result in a session.

        The engine is closed if loading fails, so the caller only owns it on success.
        """
        try:
            handle: PipelineHandle = engine.load(source)
        except BaseException:
            engine.close()
            raise
        logger.debug("Loaded pipeline %s", source)
        return cls(engine, handle, source=source, stdin=stdin, stdout=stdout)

    # --- context manager ---

    def __enter__(self) -> PipelineSession:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def has_run(self) -> bool:
        return self._ran

    def close(self) -> None:
        """Release the engine instance. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        logger.trace("Closing engine for pipeline %s", self.source)
        self.engine.close()

    # --- declared ports ---

    def declared_inputs(self) -> Set[str]:
        return self.handle.declared_inputs()

    def declared_outputs(self) -> Set[str]:
        return self.handle.declared_outputs()

    def port_meta(self, port: str) -> PortMeta:
        return self.handle.port_meta(port)

    def input_metadata(self) -> dict[str, PortMeta]:
        """Return ``{port: meta}`` for every declared input port, in declaration order."""
        return {port: self.handle.port_meta(port) for port in self.handle.declared_inputs()}

    def output_metadata(self) -> dict[str, PortMeta]:
        """Return ``{port: meta}`` for every declared output port, in declaration order."""
        return {port: self.handle.port_meta(port) for port in self.handle.declared_outputs()}

    def find_primary_input_port(self) -> str | None:
        """Return the primary non-parameter input port, or None if there is none."""
        for port, meta in self.input_metadata().items():
            if meta.primary and not meta.parameters:
                return port
        return None

    def find_primary_output_port(self) -> str | None:
        """Return the primary output port, or None if there is none."""
        for port, meta in self.output_metadata().items():
            if meta.primary:
                return port
        return None

    # --- parameters, options, inputs ---

    def set_parameter(self, name: QName, value: str, *, port: str | None = None) -> None:
        """Set a parameter on ``port``, or on every parameter port when ``port`` is None."""
        self._check_open()
        logger.trace("Parameter %s=%r on %s", name, value, port or "*")
        self.handle.set_parameter(port, name, str(value))

    def set_option(self, name: QName, value: str) -> None:
        self._check_open()
        logger.trace("Option %s=%r", name, value)
        self.handle.set_option(name, str(value))

    def clear_inputs(self, port: str) -> None:
        self._check_open()
        self.handle.clear_inputs(port)

    def write_input(self, port: str, source: InputSource | Document) -> None:
        """Parse ``source`` (unless it already is a document) and bind it on ``port``."""
        self._check_open()
        document: Document = self.parse(source) if isinstance(source, InputSource) else source
        self.handle.bind_input(port, document)

    def parse(self, source: InputSource) -> Document:
        """Parse an input source with the session's engine (``"-"`` reads stdin)."""
        if source.kind is SourceKind.DOCUMENT:
            return source.document
        if source.is_stdin:
            source = InputSource.from_stream(self.stdin)
        logger.trace("Parsing input from %s", source.describe())
        return self.engine.parse(source)

    def bound_count(self, port: str) -> int:
        return self.handle.bound_count(port)

    @property
    def stdin(self) -> IO[bytes]:
        return self._stdin if self._stdin is not None else sys.stdin.buffer

    @property
    def stdout(self) -> IO[bytes]:
        return self._stdout if self._stdout is not None else sys.stdout.buffer

    # --- execution and outputs ---

    def run(self) -> None:
        """Run the pipeline. A session runs at most once.

        Raises:
            UnsupportedOperationError: If the session already ran or was closed.
            ExecutionError: On any pipeline failure.
        """
        self._check_open()
        if self._ran:
            raise UnsupportedOperationError(f"Pipeline {self.source or ''} has already run")
        self._ran = True
        logger.info("Running pipeline %s", self.source or "<unnamed>")
        self.handle.run()

    def read_outputs(self, port: str) -> Iterator[Document]:
        """Lazily yield the documents produced on ``port``."""
        return iter(self.handle.read_outputs(port))

    def copy_outputs(
        self,
        port: str,
        sink: Sink,
        serialization_defaults: Mapping[str, str] | None = None,
    ) -> int:
        """Serialize every document of ``port`` to ``sink``.

        Args:
            port (str): Output port to drain.
            sink (Sink): Destination; a ``"-"`` URI means standard output.
            serialization_defaults (Mapping[str, str] | None): Global serialization
                options used when the pipeline declares none for ``port``.

        Returns:
            int: Number of documents written (or drained, for a discard sink).
        """
        self._check_open()
        return copy_port(self, port, sink, serialization_defaults or {})

    def _check_open(self) -> None:
        if self._closed:
            raise UnsupportedOperationError("Pipeline session is closed")

    def __repr__(self) -> str:
        state: str = "closed" if self._closed else ("ran" if self._ran else "open")
        return f"PipelineSession(source={self.source!r}, state={state})"


def describe_ports(meta: Mapping[str, Any]) -> str:
    """Return ``"a, b (primary)"`` style text for debug logs."""
    parts: list[str] = []
    for port, m in meta.items():
        flags: list[str] = []
        if getattr(m, "primary", False):
            flags.append("primary")
        if getattr(m, "parameters", False):
            flags.append("parameters")
        parts.append(f"{port} ({', '.join(flags)})" if flags else port)
    return ", ".join(parts) or "<none>"
