# topmark:header:start
#
#   project      : PipeBind
#   file         : errors.py
#   file_relpath : src/pipebind/core/errors.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Exception taxonomy for the PipeBind driver (CLI-free).

Usage:
    Raise these exceptions from the binding, session and routing layers. They carry
    structured context (port names, sinks, error codes) so the CLI layer can format
    them without parsing message text.

Propagation:
    All errors surface to the immediate caller. Only the CLI entry point catches
    them, formats them through the error message registry, and maps them to a
    process exit code.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pipebind.binding.types import Sink
    from pipebind.core.qname import QName


class PipebindError(Exception):
    """Base class for all PipeBind errors."""


class BindingError(PipebindError):
    """A binding names a port the pipeline does not declare.

    Detected before the pipeline runs, so no partial execution takes place.

    Attributes:
        port (str): The offending port name.
        direction (str): ``"input"`` or ``"output"``.
    """

    def __init__(self, port: str, *, direction: str = "input") -> None:
        self.port = port
        self.direction = direction
        super().__init__(
            f"There is a binding for the {direction} port '{port}' "
            "but the pipeline declares no such port."
        )


class ResourceError(PipebindError):
    """A sink could not be constructed (bad URI, file cannot be created or opened).

    Attributes:
        sink (Sink): The sink descriptor that failed.
    """

    def __init__(self, message: str, *, sink: Sink) -> None:
        self.sink = sink
        super().__init__(message)


class ExecutionError(PipebindError):
    """An error raised by the pipeline engine.

    Attributes:
        code (QName | None): Optional error code, looked up in the message registry.
        message (str): The raw engine message (may be empty).
    """

    def __init__(self, message: str = "", *, code: QName | None = None) -> None:
        self.code = code
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        if self.code is None:
            return self.message
        if not self.message:
            return self.code.local_name
        return f"{self.code.local_name}: {self.message}"


class UnsupportedOperationError(PipebindError):
    """No loadable pipeline source was given, or a sink kind is not implemented."""


class ErrorTableError(PipebindError):
    """The bundled error message table is missing or malformed."""


class ConfigError(PipebindError):
    """A configuration value is malformed (bad binding, name or engine spec)."""


def underlying_cause(exc: BaseException) -> BaseException | None:
    """Return the first cause of ``exc`` that is not an `ExecutionError`.

    Wrapping execution-error layers are skipped; the explicit ``__cause__`` is
    preferred over the implicit ``__context__`` at every step.

    Args:
        exc (BaseException): The exception that was caught.

    Returns:
        BaseException | None: The first non-execution cause, or ``None``.
    """
    seen: set[int] = {id(exc)}
    cause: BaseException | None = exc.__cause__ or exc.__context__
    while cause is not None and isinstance(cause, ExecutionError):
        if id(cause) in seen:
            return None
        seen.add(id(cause))
        cause = cause.__cause__ or cause.__context__
    return cause
