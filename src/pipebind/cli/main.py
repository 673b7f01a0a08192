# topmark:header:start
#
#   project      : PipeBind
#   file         : main.py
#   file_relpath : src/pipebind/cli/main.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""The ``pipebind`` command.

``pipebind [OPTIONS] [PIPELINE] [NAME=VALUE]...`` loads a pipeline, binds inputs,
outputs, parameters and options from the configuration file and the command line,
runs it, and routes every output port. Pipeline documents go to standard output
(binary); log records and error reports go to standard error.

Error reporting:
    - engine errors with a code are explained through the error message registry;
    - the first non-engine cause is reported as ``Underlying exception: ...``;
    - any other failure is reported as ``Pipeline failed: ...``;
    - ``--debug`` adds the traceback;
    - an unusable command line prints the usage text.
All failures exit with status 1.
"""

from __future__ import annotations

import traceback
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

from pipebind.api.driver import Driver
from pipebind.api.types import RunRequest
from pipebind.cli.args import (
    build_input_table,
    build_option_table,
    build_output_table,
    build_parameter_table,
    click_callback,
    parse_input_binding,
    parse_option,
    parse_output_binding,
    parse_parameter,
    parse_serialization,
)
from pipebind.cli.console import ClickConsole
from pipebind.cli.errors import PipebindUsageError
from pipebind.cli.options import (
    ColorMode,
    common_color_options,
    common_verbose_options,
    resolve_color_mode,
    resolve_verbosity,
)
from pipebind.config.logging import get_logger, resolve_env_log_level, setup_logging
from pipebind.config.model import MutableDriverConfig
from pipebind.constants import PIPEBIND_VERSION
from pipebind.core.errors import (
    ExecutionError,
    UnsupportedOperationError,
    underlying_cause,
)
from pipebind.core.exit_codes import ExitCode

if TYPE_CHECKING:
    from collections.abc import Sequence

    from pipebind.api.types import RunReport
    from pipebind.binding.types import InputSource, Sink
    from pipebind.cli.console_api import ConsoleLike
    from pipebind.config.logging import PipebindLogger
    from pipebind.config.model import DriverConfig
    from pipebind.core.qname import QName

logger: PipebindLogger = get_logger(__name__)


class PipebindCommand(click.Command):
    """Click command whose usage errors exit with `ExitCode.FAILURE`."""

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        try:
            return super().parse_args(ctx, args)
        except PipebindUsageError:
            raise
        except click.UsageError as exc:
            raise PipebindUsageError(exc.format_message(), ctx=exc.ctx or ctx) from exc


def init_common_state(
    ctx: click.Context,
    *,
    verbose: int,
    quiet: int,
    color_mode: ColorMode | None,
    no_color: bool,
) -> ConsoleLike:
    """Initialize logging and the console on the Click context.

    ``PIPEBIND_LOG_LEVEL`` takes precedence over ``-v``/``-q``.
    """
    ctx.obj = ctx.obj or {}

    level: int = resolve_env_log_level() or resolve_verbosity(verbose, quiet)
    ctx.obj["log_level"] = level
    setup_logging(level=level)

    effective_mode: ColorMode = ColorMode.NEVER if no_color else (color_mode or ColorMode.AUTO)
    enable_color: bool = resolve_color_mode(cli_mode=effective_mode)
    ctx.obj["color_enabled"] = enable_color
    ctx.color = enable_color

    console = ClickConsole(enable_color=enable_color)
    ctx.obj["console"] = console
    return console


def split_pipeline_argument(
    pipeline: str | None,
    option_args: Sequence[str],
) -> tuple[str | None, list[str]]:
    """Treat a ``NAME=VALUE`` first argument as an option when it is not a file.

    This lets the pipeline come from the configuration while options are still
    given on the command line.
    """
    if pipeline is not None and "=" in pipeline and not Path(pipeline).exists():
        return None, [pipeline, *option_args]
    return pipeline, list(option_args)


def report_failure(
    console: ConsoleLike,
    driver: Driver | None,
    exc: Exception,
    *,
    debug: bool,
) -> None:
    """Print a failed run the way the driver has always reported it."""
    if isinstance(exc, ExecutionError):
        if exc.code is not None and driver is not None:
            console.error(driver.formatted_error_message(exc))
        else:
            console.error(str(exc))
        cause: BaseException | None = underlying_cause(exc)
    else:
        console.error(f"Pipeline failed: {exc}")
        cause = exc.__cause__
    if cause is not None:
        console.error(f"Underlying exception: {cause}")
    if debug:
        console.error("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))


@click.command(
    cls=PipebindCommand,
    context_settings={"help_option_names": ["-h", "--help"]},
    help="Run an XProc-style pipeline, binding its ports to files and standard streams.",
)
@click.argument("pipeline", required=False)
@click.argument("option_args", nargs=-1, metavar="[NAME=VALUE]...")
@click.option(
    "-i",
    "--input",
    "inputs",
    multiple=True,
    metavar="[PORT=]URI",
    callback=click_callback(parse_input_binding),
    help="Bind a document to an input port (default: the primary input port). Repeatable.",
)
@click.option(
    "-o",
    "--output",
    "outputs",
    multiple=True,
    metavar="[PORT=]URI",
    callback=click_callback(parse_output_binding),
    help="Bind an output port to a file, or '-' for stdout (default: the primary output port).",
)
@click.option(
    "-p",
    "--param",
    "params",
    multiple=True,
    metavar="[PORT@]NAME=VALUE",
    callback=click_callback(parse_parameter),
    help="Set a parameter on one parameter port (default: all parameter ports).",
)
@click.option(
    "-S",
    "--serialization",
    "serialization",
    multiple=True,
    metavar="KEY=VALUE",
    callback=click_callback(parse_serialization),
    help="Default serialization option for outputs that declare none (e.g. indent=true).",
)
@click.option(
    "-c",
    "--config",
    "config_path",
    metavar="FILE",
    type=click.Path(exists=True, file_okay=True, dir_okay=False, readable=True, path_type=Path),
    help="Configuration file merged over the bundled defaults.",
)
@click.option(
    "-E",
    "--engine",
    "engine",
    metavar="SPEC",
    default=None,
    help="Engine factory as 'module:attribute' or a 'pipebind.engines' entry point name.",
)
@click.option("--debug", is_flag=True, help="Print tracebacks for failed runs.")
@common_verbose_options
@common_color_options
@click.version_option(PIPEBIND_VERSION, "--version", prog_name="pipebind")
@click.pass_context
def cli(
    ctx: click.Context,
    pipeline: str | None,
    option_args: tuple[str, ...],
    inputs: list[tuple[str | None, InputSource]],
    outputs: list[tuple[str | None, Sink]],
    params: list[tuple[str, QName, str]],
    serialization: list[tuple[str, str]],
    config_path: Path | None,
    engine: str | None,
    debug: bool,
    verbose: int,
    quiet: int,
    color_mode: str | None,
    no_color: bool,
) -> None:
    """Entry point for the PipeBind CLI."""
    console: ConsoleLike = init_common_state(
        ctx,
        verbose=verbose,
        quiet=quiet,
        color_mode=ColorMode(color_mode) if color_mode else None,
        no_color=no_color,
    )

    pipeline, raw_options = split_pipeline_argument(pipeline, option_args)
    options: list[tuple[QName, str]] = []
    for text in raw_options:
        try:
            options.append(parse_option(text))
        except ValueError as exc:
            raise PipebindUsageError(f"Invalid option argument: {exc}", ctx=ctx) from exc

    driver: Driver | None = None
    config: DriverConfig | None = None
    try:
        draft: MutableDriverConfig = MutableDriverConfig.load_merged(config_file=config_path)
        draft.apply_cli_args(
            {"engine": engine, "debug": debug, "serialization": dict(serialization)}
        )
        config = draft.freeze()
        driver = Driver(config)
        report: RunReport = driver.run_bound(
            RunRequest(
                pipeline=pipeline,
                inputs=build_input_table(inputs),
                outputs=build_output_table(outputs),
                params=build_parameter_table(params),
                options=build_option_table(options),
            )
        )
    except UnsupportedOperationError as exc:
        raise PipebindUsageError(str(exc), ctx=ctx) from exc
    except Exception as exc:
        report_failure(console, driver, exc, debug=debug or bool(config and config.debug))
        ctx.exit(ExitCode.FAILURE)

    logger.info(
        "Pipeline %s finished: %s",
        report.pipeline,
        ", ".join(f"{p}={n}" for p, n in report.counts.items()) or "no outputs",
    )
    if report.stdout_written:
        # Pipeline output rarely ends with a newline of its own
        console.print()


def main(args: list[str] | None = None, **extra: Any) -> Any:
    """Console-script entry point."""
    return cli.main(args=args, prog_name="pipebind", **extra)


if __name__ == "__main__":
    main()
