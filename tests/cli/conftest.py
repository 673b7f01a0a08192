# topmark:header:start
#
#   project      : PipeBind
#   file         : conftest.py
#   file_relpath : tests/cli/conftest.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""CLI test helpers for running PipeBind in a controlled working directory.

`run_cli_in()` changes the process working directory to the given `tmp_path`
before invoking the Click CLI, so relative pipeline, document and output paths
resolve against the temporary test directory.

Pipeline documents are written to the binary standard output and diagnostics to
standard error; tests read them separately through ``Result.stdout`` and
``Result.stderr``.
"""

from __future__ import annotations

import os
from typing import IO, TYPE_CHECKING, Any, Sequence

from click.testing import CliRunner, Result

from pipebind.cli.main import cli
from pipebind.core.exit_codes import ExitCode

if TYPE_CHECKING:
    from pathlib import Path

# Keep the developer's color settings out of captured output.
_CLEAN_ENV: dict[str, str | None] = {"FORCE_COLOR": None, "PIPEBIND_LOG_LEVEL": None}


def run_cli_in(
    tmp_path: Path,
    argv: str | Sequence[str] | None,
    *,
    input_text: str | bytes | IO[Any] | None = None,
    env: dict[str, str | None] | None = None,
) -> Result:
    """Invoke the CLI with `tmp_path` as the working directory.

    Args:
        tmp_path (Path): Directory used as the CWD for the command invocation.
        argv (str | Sequence[str] | None): CLI argument vector, e.g. `["pipeline.toml"]`.
        input_text (str | bytes | IO[Any] | None): Optional standard input.
        env (dict[str, str | None] | None): Extra environment overrides.

    Returns:
        Result: The `click.testing.Result` produced by `CliRunner.invoke`.
    """
    cwd: str = os.getcwd()
    try:
        os.chdir(tmp_path)
        return run_cli(argv, input_text=input_text, env=env)
    finally:
        os.chdir(cwd)


def run_cli(
    argv: str | Sequence[str] | None,
    *,
    input_text: str | bytes | IO[Any] | None = None,
    env: dict[str, str | None] | None = None,
) -> Result:
    """Invoke the CLI without changing the working directory.

    Use this helper when the test does **not** depend on relative paths (e.g.,
    ``--help`` / ``--version``) or when all provided paths are absolute.

    Example:
        ```python
        result = run_cli(["--version"])
        assert_SUCCESS(result)
        ```
    """
    runner = CliRunner()
    return runner.invoke(cli, argv, input=input_text, env={**_CLEAN_ENV, **(env or {})})


def assert_SUCCESS(result: Result) -> None:
    """Assert that the command exited successfully (code 0)."""
    assert result.exit_code == ExitCode.SUCCESS, result.output


def assert_FAILURE(result: Result) -> None:
    """Assert that the command exited with FAILURE (code 1) without crashing."""
    assert result.exit_code == ExitCode.FAILURE, result.output
    # Failures are reported, not raised out of the command.
    assert result.exception is None or isinstance(result.exception, SystemExit), result.exception
