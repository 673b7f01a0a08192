# topmark:header:start
#
#   project      : PipeBind
#   file         : model.py
#   file_relpath : src/pipebind/config/model.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Configuration model and merge policy.

This module defines:
    - `DriverConfig`: an immutable snapshot consumed by `pipebind.api.Driver`.
    - `MutableDriverConfig`: a mutable builder used while loading and merging; it
      can be frozen into `DriverConfig` and thawed back for edits.

The configured binding tables (``[inputs]``, ``[outputs]``, ``[params]``,
``[options]``) are the *configuration* side of every run. The user (command line)
tables are kept apart by the caller and only meet the configured ones in the
binding resolver.

Path semantics:
    Relative file paths in ``[pipeline]``, ``[inputs]`` and ``[outputs]`` are
    normalized against the directory of the configuration file that declares them.
    ``"-"`` and URIs with a scheme are kept as-is.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

from pipebind.binding.types import InputSource, Sink, port_ref
from pipebind.config.io import (
    get_binding_values,
    get_bool_value_or_none,
    get_string_map,
    get_string_value_or_none,
    get_table_value,
    is_toml_table,
    load_defaults_dict,
    load_toml_dict,
    to_toml,
)
from pipebind.config.keys import Toml
from pipebind.config.logging import get_logger
from pipebind.constants import DEFAULT_ENGINE_SPEC, STDIO_SENTINEL
from pipebind.core.errors import ConfigError
from pipebind.core.qname import QName
from pipebind.registry.messages import DEFAULT_UNKNOWN_ERROR

if TYPE_CHECKING:
    from pipebind.binding.types import InputTable, OptionTable, OutputTable, ParameterTable, PortRef
    from pipebind.config.io import TomlTable
    from pipebind.config.logging import PipebindLogger

# ArgsLike: generic mapping accepted by `apply_cli_args` (CLI namespaces and API dicts).
ArgsLike = Mapping[str, Any]

logger: PipebindLogger = get_logger(__name__)


def _is_local_path(uri: str) -> bool:
    if uri == STDIO_SENTINEL:
        return False
    scheme: str = urlsplit(uri).scheme
    # A single letter is a Windows drive, not a scheme
    return len(scheme) <= 1


def _resolve_against(base: Path | None, uri: str) -> str:
    """Normalize a relative file path against ``base`` (config file directory)."""
    if base is None or not _is_local_path(uri):
        return uri
    path = Path(uri)
    if path.is_absolute():
        return uri
    return str(base / path)


def _parse_name(text: str, *, section: str) -> QName:
    try:
        return QName.parse(text)
    except ValueError as exc:
        raise ConfigError(f"[{section}] {exc}") from exc


# ------------------ Immutable runtime config ------------------


@dataclass(frozen=True, slots=True)
class DriverConfig:
    """Immutable runtime configuration for a PipeBind driver.

    Attributes:
        engine (str): Engine factory spec (``module:attribute`` or entry point name).
        pipeline (str | None): Pipeline source used when the caller gives none.
        inputs (Mapping[str, tuple[str, ...]]): Port name (``""`` = default port) -> URIs.
        outputs (Mapping[str, str]): Port name -> URI. A ``""`` (default port) entry is
            kept but never routes the primary output port.
        params (Mapping[str, Mapping[QName, str]]): Parameter port (``"*"`` = all) ->
            name -> value.
        options (Mapping[QName, str]): Option name -> value.
        serialization (Mapping[str, str]): Serialization key -> value, applied to
            output ports that declare no serialization of their own.
        unknown_message (str): Fallback message for unregistered error codes.
        debug (bool): Print tracebacks for failed runs.
        config_files (tuple[str, ...]): Configuration sources that were merged.
    """

    engine: str = DEFAULT_ENGINE_SPEC
    pipeline: str | None = None
    inputs: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    outputs: Mapping[str, str] = field(default_factory=dict)
    params: Mapping[str, Mapping[QName, str]] = field(default_factory=dict)
    options: Mapping[QName, str] = field(default_factory=dict)
    serialization: Mapping[str, str] = field(default_factory=dict)
    unknown_message: str = DEFAULT_UNKNOWN_ERROR
    debug: bool = False
    config_files: tuple[str, ...] = ()

    def input_table(self) -> InputTable:
        """Return the configured inputs as a binding table."""
        return {
            port_ref(port): [InputSource.from_uri(uri) for uri in uris]
            for port, uris in self.inputs.items()
        }

    def output_table(self) -> OutputTable:
        """Return the configured outputs as a binding table."""
        table: dict[PortRef, Sink] = {}
        for port, uri in self.outputs.items():
            table[port_ref(port)] = Sink.from_uri(uri)
        return table

    def parameter_table(self) -> ParameterTable:
        return self.params

    def option_table(self) -> OptionTable:
        return self.options

    def to_toml_dict(self) -> TomlTable:
        """Return this configuration in the ``pipebind.toml`` layout."""
        out: TomlTable = {
            Toml.KEY_DEBUG: self.debug,
            Toml.SECTION_ENGINE: {Toml.KEY_ENGINE_SPEC: self.engine},
            Toml.SECTION_PIPELINE: {},
            Toml.SECTION_INPUTS: {p: list(uris) for p, uris in self.inputs.items()},
            Toml.SECTION_OUTPUTS: dict(self.outputs),
            Toml.SECTION_PARAMS: {
                port: {name.clark: value for name, value in values.items()}
                for port, values in self.params.items()
            },
            Toml.SECTION_OPTIONS: {name.clark: value for name, value in self.options.items()},
            Toml.SECTION_SERIALIZATION: dict(self.serialization),
            Toml.SECTION_ERRORS: {Toml.KEY_UNKNOWN_MESSAGE: self.unknown_message},
        }
        if self.pipeline is not None:
            out[Toml.SECTION_PIPELINE][Toml.KEY_PIPELINE_SOURCE] = self.pipeline
        return out

    def thaw(self) -> MutableDriverConfig:
        """Return a mutable copy of this frozen config."""
        return MutableDriverConfig(
            engine=self.engine,
            pipeline=self.pipeline,
            inputs={p: list(uris) for p, uris in self.inputs.items()},
            outputs=dict(self.outputs),
            params={p: dict(values) for p, values in self.params.items()},
            options=dict(self.options),
            serialization=dict(self.serialization),
            unknown_message=self.unknown_message,
            debug=self.debug,
            config_files=list(self.config_files),
        )


# -------------------------- Mutable builder --------------------------
@dataclass
class MutableDriverConfig:
    """Mutable configuration used while loading and merging.

    Scalar fields use ``None`` for "not set" so that `merge_with` can tell an
    explicit value from an inherited one; `freeze` fills in the defaults.
    """

    engine: str | None = None
    pipeline: str | None = None
    inputs: dict[str, list[str]] = field(default_factory=lambda: {})
    outputs: dict[str, str] = field(default_factory=lambda: {})
    params: dict[str, dict[QName, str]] = field(default_factory=lambda: {})
    options: dict[QName, str] = field(default_factory=lambda: {})
    serialization: dict[str, str] = field(default_factory=lambda: {})
    unknown_message: str | None = None
    debug: bool | None = None
    config_files: list[str] = field(default_factory=lambda: [])

    # ---------------------------- Build/freeze ----------------------------
    def freeze(self) -> DriverConfig:
        """Freeze this builder into an immutable `DriverConfig`."""
        return DriverConfig(
            engine=self.engine or DEFAULT_ENGINE_SPEC,
            pipeline=self.pipeline,
            inputs={p: tuple(uris) for p, uris in self.inputs.items()},
            outputs=dict(self.outputs),
            params={p: dict(values) for p, values in self.params.items()},
            options=dict(self.options),
            serialization=dict(self.serialization),
            unknown_message=(
                self.unknown_message if self.unknown_message is not None else DEFAULT_UNKNOWN_ERROR
            ),
            debug=bool(self.debug),
            config_files=tuple(self.config_files),
        )

    # --------------------------- Loaders/parsers --------------------------
    @classmethod
    def from_defaults(cls) -> MutableDriverConfig:
        """Load the default configuration from the bundled `pipebind-default.toml`."""
        return cls.from_toml_dict(load_defaults_dict())

    @classmethod
    def from_toml_file(cls, path: Path) -> MutableDriverConfig:
        """Load configuration from a single TOML file.

        Raises:
            ConfigError: If the file cannot be read or holds malformed values.
        """
        logger.debug("Creating MutableDriverConfig from TOML config: %s", path)
        draft: MutableDriverConfig = cls.from_toml_dict(load_toml_dict(path), config_file=path)
        draft.config_files = [str(path)]
        return draft

    @classmethod
    def from_toml_dict(
        cls,
        data: TomlTable,
        config_file: Path | None = None,
    ) -> MutableDriverConfig:
        """Create a draft config from a parsed TOML dict.

        Args:
            data (TomlTable): The parsed TOML data.
            config_file (Path | None): Source file, used to normalize relative paths.

        Returns:
            MutableDriverConfig: The resulting draft.

        Raises:
            ConfigError: If a section holds values of the wrong shape or a name
                cannot be parsed.
        """
        cfg_dir: Path | None = config_file.parent.resolve() if config_file else None
        draft: MutableDriverConfig = cls()

        draft.debug = get_bool_value_or_none(data, Toml.KEY_DEBUG)

        engine_tbl: TomlTable = get_table_value(data, Toml.SECTION_ENGINE)
        logger.trace("TOML [engine]: %s", engine_tbl)
        draft.engine = get_string_value_or_none(engine_tbl, Toml.KEY_ENGINE_SPEC)

        pipeline_tbl: TomlTable = get_table_value(data, Toml.SECTION_PIPELINE)
        logger.trace("TOML [pipeline]: %s", pipeline_tbl)
        source: str | None = get_string_value_or_none(pipeline_tbl, Toml.KEY_PIPELINE_SOURCE)
        if source is not None:
            draft.pipeline = _resolve_against(cfg_dir, source)

        inputs_tbl: TomlTable = get_table_value(data, Toml.SECTION_INPUTS)
        logger.trace("TOML [inputs]: %s", inputs_tbl)
        for port in inputs_tbl:
            uris: list[str] = get_binding_values(inputs_tbl, port, section=Toml.SECTION_INPUTS)
            draft.inputs[str(port)] = [_resolve_against(cfg_dir, uri) for uri in uris]

        outputs_tbl: TomlTable = get_table_value(data, Toml.SECTION_OUTPUTS)
        logger.trace("TOML [outputs]: %s", outputs_tbl)
        for port in outputs_tbl:
            targets: list[str] = get_binding_values(outputs_tbl, port, section=Toml.SECTION_OUTPUTS)
            if len(targets) != 1:
                raise ConfigError(
                    f"[{Toml.SECTION_OUTPUTS}] {port!r}: an output port takes exactly one URI"
                )
            draft.outputs[str(port)] = _resolve_against(cfg_dir, targets[0])

        params_tbl: TomlTable = get_table_value(data, Toml.SECTION_PARAMS)
        logger.trace("TOML [params]: %s", params_tbl)
        for port, values in params_tbl.items():
            section: str = f"{Toml.SECTION_PARAMS}.{port}"
            if not is_toml_table(values):
                raise ConfigError(f"[{section}]: expected a table of parameter values")
            draft.params[str(port)] = {
                _parse_name(name, section=section): value
                for name, value in get_string_map(values, section=section).items()
            }

        options_tbl: TomlTable = get_table_value(data, Toml.SECTION_OPTIONS)
        logger.trace("TOML [options]: %s", options_tbl)
        draft.options = {
            _parse_name(name, section=Toml.SECTION_OPTIONS): value
            for name, value in get_string_map(options_tbl, section=Toml.SECTION_OPTIONS).items()
        }

        serialization_tbl: TomlTable = get_table_value(data, Toml.SECTION_SERIALIZATION)
        logger.trace("TOML [serialization]: %s", serialization_tbl)
        draft.serialization = get_string_map(serialization_tbl, section=Toml.SECTION_SERIALIZATION)

        errors_tbl: TomlTable = get_table_value(data, Toml.SECTION_ERRORS)
        draft.unknown_message = get_string_value_or_none(errors_tbl, Toml.KEY_UNKNOWN_MESSAGE)

        return draft

    @classmethod
    def load_merged(cls, *, config_file: Path | None = None) -> MutableDriverConfig:
        """Return the defaults merged with ``config_file`` (when given).

        Raises:
            ConfigError: If ``config_file`` cannot be loaded.
        """
        draft: MutableDriverConfig = cls.from_defaults()
        if config_file is not None:
            draft = draft.merge_with(cls.from_toml_file(config_file))
        logger.trace("Effective configuration:\n%s", to_toml(draft.freeze().to_toml_dict()))
        return draft

    # ------------------------------- Merging -------------------------------
    def merge_with(self, other: MutableDriverConfig) -> MutableDriverConfig:
        """Return a new draft where values from ``other`` override this draft.

        Scalars are last-wins when set. Binding tables merge key-wise, so a later
        source replaces the binding of a port but keeps bindings of other ports.
        Parameter tables merge per port and per name.
        """
        params: dict[str, dict[QName, str]] = {p: dict(v) for p, v in self.params.items()}
        for port, values in other.params.items():
            params.setdefault(port, {}).update(values)

        return MutableDriverConfig(
            engine=other.engine if other.engine is not None else self.engine,
            pipeline=other.pipeline if other.pipeline is not None else self.pipeline,
            inputs={**self.inputs, **other.inputs},
            outputs={**self.outputs, **other.outputs},
            params=params,
            options={**self.options, **other.options},
            serialization={**self.serialization, **other.serialization},
            unknown_message=(
                other.unknown_message
                if other.unknown_message is not None
                else self.unknown_message
            ),
            debug=other.debug if other.debug is not None else self.debug,
            config_files=self.config_files + other.config_files,
        )

    def apply_cli_args(self, args: ArgsLike) -> MutableDriverConfig:
        """Apply scalar overrides from an arguments mapping (CLI or API).

        Recognized keys: ``engine``, ``pipeline``, ``debug`` and ``serialization``
        (a ``key -> value`` mapping merged over the configured defaults). Binding
        tables are not handled here; user bindings stay separate from the
        configured ones.
        """
        engine: str | None = args.get("engine")
        if engine:
            self.engine = engine
        pipeline: str | None = args.get("pipeline")
        if pipeline:
            self.pipeline = pipeline
        if args.get("debug"):
            self.debug = True
        serialization: Mapping[str, str] | None = args.get("serialization")
        if serialization:
            self.serialization.update(serialization)
        return self
