# topmark:header:start
#
#   project      : PipeBind
#   file         : contracts.py
#   file_relpath : src/pipebind/pipeline/contracts.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Type contracts for pipeline engines (driver-facing).

The driver never looks inside a pipeline. It talks to an engine and to the
pipelines that engine loads through the two small protocols below.

Lifecycle
---------
1) The driver creates one `Engine` per run and calls ``engine.load(source)``.
2) It binds parameters, inputs and options on the returned `PipelineHandle`.
3) It calls ``handle.run()`` exactly once.
4) It drains ``handle.read_outputs(port)`` for the ports it routes and serializes
   each document with ``engine.serialize``.
5) It calls ``engine.close()`` on every exit path.

Documents are opaque to the driver; it only hands them from ``engine.parse`` to
``handle.bind_input`` and from ``handle.read_outputs`` to ``engine.serialize``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Iterator, Set

    from pipebind.binding.types import InputSource, PortMeta
    from pipebind.core.qname import QName
    from pipebind.serialization.settings import SerializationSettings

# Engine-specific document object (parsed tree, node, ...).
Document = Any


class PipelineHandle(Protocol):
    """A loaded pipeline, as seen by the driver."""

    def declared_inputs(self) -> Set[str]:
        """Return the names of the declared input ports."""
        ...

    def declared_outputs(self) -> Set[str]:
        """Return the names of the declared output ports."""
        ...

    def port_meta(self, port: str) -> PortMeta:
        """Return the primary/parameter flags of a declared input or output port."""
        ...

    def bind_input(self, port: str, document: Document) -> None:
        """Append ``document`` to the documents bound on input ``port``."""
        ...

    def clear_inputs(self, port: str) -> None:
        """Drop every document bound on input ``port``."""
        ...

    def bound_count(self, port: str) -> int:
        """Return how many documents are currently bound on input ``port``."""
        ...

    def set_parameter(self, port: str | None, name: QName, value: str) -> None:
        """Set a parameter on ``port``, or on every parameter port when ``port`` is None."""
        ...

    def set_option(self, name: QName, value: str) -> None:
        """Pass an option value to the pipeline."""
        ...

    def run(self) -> None:
        """Execute the pipeline (blocking).

        Raises:
            ExecutionError: On any pipeline failure.
        """
        ...

    def read_outputs(self, port: str) -> Iterator[Document]:
        """Yield the documents produced on output ``port``, in order."""
        ...

    def serialization_settings_for(self, port: str) -> SerializationSettings | None:
        """Return the serialization settings declared for ``port``, if any."""
        ...


class Engine(Protocol):
    """One underlying engine instance; owned by exactly one pipeline session."""

    def load(self, source: str) -> PipelineHandle:
        """Load the pipeline found at ``source``.

        Raises:
            ExecutionError: If the pipeline cannot be loaded.
        """
        ...

    def parse(self, source: InputSource) -> Document:
        """Parse an input source into a document.

        Raises:
            ExecutionError: If the source cannot be read or is not well-formed.
        """
        ...

    def serialize(self, document: Document, settings: SerializationSettings) -> bytes:
        """Render ``document`` to bytes according to ``settings``."""
        ...

    def close(self) -> None:
        """Release the resources held by this engine instance."""
        ...


