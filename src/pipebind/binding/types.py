# topmark:header:start
#
#   project      : PipeBind
#   file         : types.py
#   file_relpath : src/pipebind/binding/types.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Data shapes for port bindings: port references, sources, sinks and tables.

Port references:
    A binding is addressed either to a named port (`Named`) or to the unnamed
    default (`DEFAULT`), which the resolver maps to the pipeline's primary port.
    Nullable strings from outer layers are converted once with `port_ref`.

Sources and sinks:
    `InputSource` describes where input documents come from (a URI, an open binary
    stream or an already parsed document). `Sink` describes where output documents
    go (discard, standard output, a URI or an open binary stream).
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import IO, Any, Final, Union

from pipebind.constants import STDIO_SENTINEL
from pipebind.core.qname import QName


@dataclass(frozen=True, slots=True)
class Named:
    """A reference to a port by name."""

    name: str

    def __str__(self) -> str:
        return self.name


class _DefaultPort(Enum):
    """Singleton marker type for the unnamed default port."""

    DEFAULT = "default"

    def __str__(self) -> str:
        return "<default>"


DEFAULT: Final = _DefaultPort.DEFAULT

PortRef = Union[Named, _DefaultPort]


def port_ref(name: str | None) -> PortRef:
    """Convert a nullable port name into a `PortRef`.

    ``None`` and the empty string both denote the unnamed default port.
    """
    if name is None or name == "":
        return DEFAULT
    return Named(name)


@dataclass(frozen=True, slots=True)
class PortMeta:
    """Declared flags of a pipeline port.

    Attributes:
        primary (bool): Whether the port is the primary input or output port.
        parameters (bool): Whether the input port carries parameters rather than content.
    """

    primary: bool = False
    parameters: bool = False


class SourceKind(str, Enum):
    """How an input source is addressed."""

    URI = "uri"
    STREAM = "stream"
    DOCUMENT = "document"


@dataclass(frozen=True, slots=True)
class InputSource:
    """One input document source.

    Attributes:
        kind (SourceKind): Source addressing kind.
        uri (str | None): The URI or file path for `SourceKind.URI`; ``"-"`` means stdin.
        stream (IO[bytes] | None): Open binary stream for `SourceKind.STREAM`.
        document (Any): A parsed document for `SourceKind.DOCUMENT`.
    """

    kind: SourceKind
    uri: str | None = None
    stream: IO[bytes] | None = None
    document: Any = None

    @classmethod
    def from_uri(cls, uri: str) -> InputSource:
        return cls(kind=SourceKind.URI, uri=uri)

    @classmethod
    def from_stream(cls, stream: IO[bytes]) -> InputSource:
        return cls(kind=SourceKind.STREAM, stream=stream)

    @classmethod
    def from_document(cls, document: Any) -> InputSource:
        return cls(kind=SourceKind.DOCUMENT, document=document)

    @property
    def is_stdin(self) -> bool:
        """Whether this source reads the process standard input."""
        return self.kind is SourceKind.URI and self.uri == STDIO_SENTINEL

    def describe(self) -> str:
        """Return a short human-readable description for logs and messages."""
        if self.kind is SourceKind.URI:
            return "stdin" if self.is_stdin else str(self.uri)
        if self.kind is SourceKind.STREAM:
            return f"{type(self.stream).__name__} stream"
        return "document"


class SinkKind(str, Enum):
    """Destination kinds for output documents."""

    DISCARD = "discard"
    STDOUT = "stdout"
    URI = "uri"
    STREAM = "stream"


@dataclass(frozen=True, slots=True)
class Sink:
    """A destination for the documents of one output port.

    Attributes:
        kind (SinkKind): Destination kind.
        uri (str | None): File path or ``file:`` URI for `SinkKind.URI`.
        stream (IO[bytes] | None): Caller-owned binary stream for `SinkKind.STREAM`.
    """

    kind: SinkKind
    uri: str | None = None
    stream: IO[bytes] | None = None

    @classmethod
    def discard(cls) -> Sink:
        return cls(kind=SinkKind.DISCARD)

    @classmethod
    def stdout(cls) -> Sink:
        return cls(kind=SinkKind.STDOUT)

    @classmethod
    def from_uri(cls, uri: str) -> Sink:
        return cls(kind=SinkKind.URI, uri=uri)

    @classmethod
    def from_stream(cls, stream: IO[bytes]) -> Sink:
        return cls(kind=SinkKind.STREAM, stream=stream)

    def normalized(self) -> Sink:
        """Return the routing-equivalent sink (a ``"-"`` URI is standard output)."""
        if self.kind is SinkKind.URI and self.uri == STDIO_SENTINEL:
            return Sink.stdout()
        return self

    def describe(self) -> str:
        """Return a short human-readable description for logs and messages."""
        if self.kind is SinkKind.URI:
            return str(self.uri)
        if self.kind is SinkKind.STREAM:
            return f"{type(self.stream).__name__} stream"
        return self.kind.value


# Binding tables are built fresh for each run and never mutated by the resolver.
InputTable = Mapping[PortRef, Sequence[InputSource]]
OutputTable = Mapping[PortRef, Sink]

# Port name (or "*" for every parameter port) -> qualified name -> value.
ParameterTable = Mapping[str, Mapping[QName, str]]
OptionTable = Mapping[QName, str]
