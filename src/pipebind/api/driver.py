# topmark:header:start
#
#   project      : PipeBind
#   file         : driver.py
#   file_relpath : src/pipebind/api/driver.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Run orchestrator.

`Driver` ties configuration, engine, binding resolver, router and error message
registry together. It offers two entry shapes:

- single-shot (`Driver.run`, `Driver.collect`): one unnamed input on the primary
  input port, the primary output to one sink (or into memory), no parameters or
  options;
- full binding (`Driver.run_bound`): configured and user binding tables,
  parameters and options, the two-pass resolver and routing of every output port.

Every session opened here is closed on all exit paths.
"""

from __future__ import annotations

from typing import IO, TYPE_CHECKING, Any

from pipebind.api.types import PipelineOutputs, RunReport, RunRequest
from pipebind.binding.resolver import (
    apply_input_plan,
    apply_options,
    apply_parameters,
    merge_options,
    merge_parameters,
    plan_inputs,
    plan_outputs,
)
from pipebind.binding.router import route_outputs
from pipebind.config.logging import get_logger
from pipebind.config.model import MutableDriverConfig
from pipebind.core.errors import UnsupportedOperationError
from pipebind.engines import load_engine_factory
from pipebind.pipeline.session import PipelineSession, describe_ports
from pipebind.registry.messages import ErrorMessageRegistry

if TYPE_CHECKING:
    from pipebind.binding.resolver import InputPlan, OutputPlan
    from pipebind.binding.types import InputSource, Sink
    from pipebind.config.logging import PipebindLogger
    from pipebind.config.model import DriverConfig
    from pipebind.core.errors import ExecutionError
    from pipebind.core.qname import QName
    from pipebind.engines import EngineFactory

logger: PipebindLogger = get_logger(__name__)


class Driver:
    """Facade running pipelines with a frozen configuration.

    Args:
        config (DriverConfig | None): Configuration snapshot; bundled defaults when None.
        engine_factory (EngineFactory | None): Overrides ``config.engine``.
        registry (ErrorMessageRegistry | None): Error message registry; the bundled
            table with ``config.unknown_message`` as fallback when None.
        stdin (IO[bytes] | None): Binary stream read for ``"-"`` inputs.
        stdout (IO[bytes] | None): Binary stream written for standard-output sinks.
    """

    def __init__(
        self,
        config: DriverConfig | None = None,
        *,
        engine_factory: EngineFactory | None = None,
        registry: ErrorMessageRegistry | None = None,
        stdin: IO[bytes] | None = None,
        stdout: IO[bytes] | None = None,
    ) -> None:
        self.config: DriverConfig = config or MutableDriverConfig.from_defaults().freeze()
        self.engine_factory: EngineFactory = engine_factory or load_engine_factory(
            self.config.engine
        )
        self.registry: ErrorMessageRegistry = registry or ErrorMessageRegistry.from_resource(
            unknown_message=self.config.unknown_message
        )
        self.stdin = stdin
        self.stdout = stdout

    # --- loading ---

    def _pipeline_source(self, pipeline: str | None) -> str:
        source: str | None = pipeline or self.config.pipeline
        if not source:
            raise UnsupportedOperationError("No pipeline specified")
        return source

    def load_pipeline(self, pipeline: str | None = None) -> PipelineSession:
        """Load ``pipeline`` (or the configured one) into a new session.

        The caller owns the session and must close it.

        Raises:
            UnsupportedOperationError: If no pipeline source is available.
            ExecutionError: If the engine cannot load the pipeline.
        """
        source: str = self._pipeline_source(pipeline)
        logger.debug("Loading pipeline %s", source)
        session: PipelineSession = PipelineSession.open(
            self.engine_factory(), source, stdin=self.stdin, stdout=self.stdout
        )
        logger.debug("Inputs: %s", describe_ports(session.input_metadata()))
        logger.debug("Outputs: %s", describe_ports(session.output_metadata()))
        return session

    # --- single-shot shape ---

    def run(
        self,
        pipeline: str | None,
        input_source: InputSource | None,
        output_sink: Sink | None,
    ) -> int:
        """Run ``pipeline`` with at most one input and one output.

        ``input_source`` is written to the primary input port and the primary output
        port is copied to ``output_sink``; either is skipped when the pipeline
        declares no such port or the argument is None.

        Returns:
            int: Number of documents written to ``output_sink``.
        """
        with self.load_pipeline(pipeline) as session:
            primary_in: str | None = session.find_primary_input_port()
            if input_source is not None and primary_in is not None:
                session.clear_inputs(primary_in)
                session.write_input(primary_in, input_source)
            session.run()
            primary_out: str | None = session.find_primary_output_port()
            if output_sink is None or primary_out is None:
                return 0
            return session.copy_outputs(primary_out, output_sink, self.config.serialization)

    def collect(
        self,
        pipeline: str | None,
        input_source: InputSource | Any | None = None,
    ) -> PipelineOutputs:
        """Run ``pipeline`` and return every output port's documents in memory.

        ``input_source`` may be an `InputSource` or an already parsed document.
        """
        with self.load_pipeline(pipeline) as session:
            primary_in: str | None = session.find_primary_input_port()
            if input_source is not None and primary_in is not None:
                session.clear_inputs(primary_in)
                session.write_input(primary_in, input_source)
            session.run()
            outputs: dict[str, list[Any]] = {
                port: list(session.read_outputs(port)) for port in session.declared_outputs()
            }
            return PipelineOutputs(
                primary_port=session.find_primary_output_port(), outputs=outputs
            )

    # --- full-binding shape ---

    def run_bound(self, request: RunRequest | None = None) -> RunReport:
        """Run a pipeline with configured and user bindings, parameters and options.

        Order of operations: parameters (configured, then user), input bindings,
        output plan (validated before the run), options, run, output routing.

        Raises:
            UnsupportedOperationError: If no pipeline source is available.
            BindingError: If a binding names an undeclared port (nothing has run).
            ResourceError: If an output sink cannot be opened.
            ExecutionError: If the pipeline fails.
        """
        request = request or RunRequest()
        config: DriverConfig = self.config
        with self.load_pipeline(request.pipeline) as session:
            params: dict[tuple[str, QName], str] = merge_parameters(
                config.parameter_table(), request.params
            )
            apply_parameters(session, params)

            in_plan: InputPlan = plan_inputs(
                session.input_metadata(), config.input_table(), request.inputs
            )
            out_plan: OutputPlan = plan_outputs(
                session.output_metadata(), config.output_table(), request.outputs
            )
            stdin_port: str | None = apply_input_plan(session, in_plan)

            apply_options(session, merge_options(config.option_table(), request.options))

            session.run()

            for port, sink in out_plan.sinks.items():
                logger.trace("Copy output from %s to %s", port, sink.describe())
            counts: dict[str, int] = route_outputs(session, out_plan, config.serialization)
            return RunReport(
                pipeline=str(session.source),
                sinks=dict(out_plan.sinks),
                counts=counts,
                implicit_input=in_plan.implicit_port,
                stdin_input=stdin_port,
            )

    # --- error reporting ---

    def lookup_error_message(self, exc: ExecutionError) -> str:
        """Return the registered message for ``exc.code`` (or the fallback)."""
        return self.registry.lookup(exc.code)

    def error_code_and_message(self, exc: ExecutionError) -> str:
        """Return ``"<code>: <message>"`` for ``exc``."""
        return self.registry.code_and_message(exc.code)

    def formatted_error_message(self, exc: ExecutionError) -> str:
        """Return the engine message decorated with the registered explanation."""
        return self.registry.format(exc.code, exc.message)
