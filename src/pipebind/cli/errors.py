# topmark:header:start
#
#   project      : PipeBind
#   file         : errors.py
#   file_relpath : src/pipebind/cli/errors.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Exceptions for the PipeBind CLI.

Usage:
    Raise these exceptions in the command to signal errors with standardized
    messages and exit codes.

Styling:
    `PipebindCliError` prefers the project console if available (see `show()`); if
    no console is present in the Click context, it falls back to Click's styling.
"""

from __future__ import annotations

from typing import IO, Any

import click

from pipebind.core.exit_codes import ExitCode


class PipebindCliError(click.ClickException):
    """Base class for PipeBind CLI errors."""

    exit_code = ExitCode.FAILURE

    def format_message(self) -> str:  # pragma: no cover - trivial
        """Return the plain error message text (colorized in `show()`)."""
        return str(getattr(self, "message", ""))

    def show(self, file: IO[Any] | None = None) -> None:  # pragma: no cover - Click prints errors
        """Display the error using the project console if available."""
        ctx: click.Context | None = click.get_current_context(silent=True)
        if ctx is not None and isinstance(ctx.obj, dict):
            console: Any = ctx.obj.get("console")
            if console is not None:
                console.error(console.styled(self.format_message(), fg="bright_red"))
                return
        super().show(file)


class PipebindUsageError(click.UsageError):
    """Unusable command line: prints the usage text and exits with `ExitCode.FAILURE`."""

    exit_code = ExitCode.FAILURE
