# topmark:header:start
#
#   project      : PipeBind
#   file         : router.py
#   file_relpath : src/pipebind/binding/router.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Output routing: copy the documents of output ports to their sinks.

For each routed port the router:
  1. resolves the effective serialization settings (pipeline-declared settings
     win, otherwise the global defaults are applied to the engine defaults);
  2. opens a writer for the sink kind (file path: create/truncate; caller stream:
     used as-is; standard output: the process stdout binary stream);
  3. drains the port's documents in order through the engine serializer;
  4. releases the writer on every exit path and only then lets the first
     writing error propagate.

Ports whose sink is `SinkKind.DISCARD` are drained and dropped.
"""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import IO, TYPE_CHECKING
from urllib.parse import unquote, urlsplit
from urllib.request import url2pathname

from pipebind.binding.types import SinkKind
from pipebind.config.logging import get_logger
from pipebind.core.errors import ResourceError, UnsupportedOperationError
from pipebind.serialization.settings import resolve

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from pipebind.binding.resolver import OutputPlan
    from pipebind.binding.types import Sink
    from pipebind.config.logging import PipebindLogger
    from pipebind.pipeline.contracts import Document
    from pipebind.pipeline.session import PipelineSession
    from pipebind.serialization.settings import SerializationSettings

logger: PipebindLogger = get_logger(__name__)


def sink_path(sink: Sink) -> Path:
    """Return the filesystem path addressed by a URI sink.

    Plain paths and ``file:`` URIs are accepted.

    Raises:
        ResourceError: If the URI is malformed or uses an unsupported scheme.
    """
    raw: str = sink.uri or ""
    if not raw:
        raise ResourceError("Output URI is empty", sink=sink)
    try:
        parts = urlsplit(raw)
    except ValueError as exc:
        raise ResourceError(f"Malformed output URI {raw!r}: {exc}", sink=sink) from exc

    # A single-letter scheme is a Windows drive ("C:\\out.xml"), not a URI scheme.
    if parts.scheme == "" or len(parts.scheme) == 1:
        return Path(raw)
    if parts.scheme == "file":
        if parts.netloc not in ("", "localhost"):
            raise ResourceError(f"Unsupported file URI host in {raw!r}", sink=sink)
        return Path(url2pathname(unquote(parts.path)))
    raise ResourceError(f"Unsupported output URI scheme {parts.scheme!r} in {raw!r}", sink=sink)


def _release(stream: IO[bytes], *, owned: bool, pending_error: bool) -> None:
    """Close an owned stream (flush a borrowed one).

    A failure while releasing is propagated, unless another error is already on
    its way out; then it is logged so the first error stays the reported one.
    """
    try:
        if owned:
            stream.close()
        else:
            stream.flush()
    except (OSError, ValueError) as exc:
        if not pending_error:
            raise
        logger.warning("Error closing output stream: %s", exc)


@contextmanager
def open_sink(sink: Sink, *, stdout: IO[bytes]) -> Iterator[IO[bytes]]:
    """Open a binary writer for ``sink`` and release it on every exit path.

    Args:
        sink (Sink): A non-discard sink.
        stdout (IO[bytes]): Stream used for standard-output sinks.

    Yields:
        IO[bytes]: The stream to write serialized documents to.

    Raises:
        ResourceError: If the file behind a URI sink cannot be created.
        UnsupportedOperationError: For sink kinds the router does not write to.
    """
    stream: IO[bytes]
    owned: bool = False
    if sink.kind is SinkKind.STDOUT:
        stream = stdout
    elif sink.kind is SinkKind.STREAM:
        if sink.stream is None:
            raise ResourceError("Output stream sink has no stream", sink=sink)
        stream = sink.stream
    elif sink.kind is SinkKind.URI:
        path: Path = sink_path(sink)
        try:
            stream = path.open("wb")
        except OSError as exc:
            raise ResourceError(f"Cannot create output file {path}: {exc}", sink=sink) from exc
        owned = True
    else:
        raise UnsupportedOperationError(f"Unsupported output kind '{sink.kind.value}'")

    try:
        yield stream
    except BaseException:
        _release(stream, owned=owned, pending_error=True)
        raise
    else:
        _release(stream, owned=owned, pending_error=False)


def copy_port(
    session: PipelineSession,
    port: str,
    sink: Sink,
    serialization_defaults: Mapping[str, str],
) -> int:
    """Copy the documents of output ``port`` to ``sink``.

    Returns:
        int: Number of documents written (or drained for a discard sink).
    """
    sink = sink.normalized()
    documents: Iterator[Document] = session.read_outputs(port)

    if sink.kind is SinkKind.DISCARD:
        dropped: int = sum(1 for _ in documents)
        logger.debug("Discarded %d document(s) from %s", dropped, port)
        return dropped

    settings: SerializationSettings = resolve(
        port,
        session.handle.serialization_settings_for(port),
        serialization_defaults,
    )
    logger.debug("Copy output from %s to %s", port, sink.describe())

    written: int = 0
    with open_sink(sink, stdout=session.stdout) as stream:
        for document in documents:
            stream.write(session.engine.serialize(document, settings))
            written += 1
    logger.trace("Wrote %d document(s) from %s", written, port)
    return written


def route_outputs(
    session: PipelineSession,
    plan: OutputPlan,
    serialization_defaults: Mapping[str, str],
) -> dict[str, int]:
    """Route every output port of an executed pipeline according to ``plan``.

    Ports are routed in plan order. The first failure stops routing and
    propagates; sinks already written are closed by then.

    Returns:
        dict[str, int]: Port name -> number of documents written or drained.
    """
    counts: dict[str, int] = {}
    for port, sink in plan.sinks.items():
        counts[port] = copy_port(session, port, sink, serialization_defaults)
    return counts
