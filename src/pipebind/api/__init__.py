# topmark:header:start
#
#   project      : PipeBind
#   file         : __init__.py
#   file_relpath : src/pipebind/api/__init__.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Public PipeBind API (stable surface).

Run pipelines programmatically without going through the CLI.

Configuration contract
----------------------
Functions accept either a plain **mapping** mirroring the ``pipebind.toml`` layout
or a frozen `pipebind.config.DriverConfig`. Mappings are merged over the bundled
defaults and frozen before the run:

```python
from pipebind import api
from pipebind.binding import InputSource, Sink, port_ref

report = api.run(
    "pipeline.toml",
    inputs={port_ref(None): [InputSource.from_uri("doc.xml")]},
    outputs={port_ref(None): Sink.from_uri("out.xml")},
    config={"serialization": {"indent": True}},
)
```
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pipebind.api.driver import Driver
from pipebind.api.types import PipelineOutputs, RunReport, RunRequest
from pipebind.config.model import DriverConfig, MutableDriverConfig
from pipebind.constants import PIPEBIND_VERSION
from pipebind.core.errors import underlying_cause

if TYPE_CHECKING:
    from collections.abc import Mapping

    from pipebind.binding.types import InputTable, OptionTable, OutputTable, ParameterTable

__all__: list[str] = [
    "Driver",
    "PipelineOutputs",
    "RunReport",
    "RunRequest",
    "ensure_driver_config",
    "collect",
    "run",
    "underlying_cause",
    "version",
]


def ensure_driver_config(value: Mapping[str, Any] | DriverConfig | None) -> DriverConfig:
    """Return a frozen `DriverConfig` from a mapping, a snapshot, or None (defaults).

    Raises:
        ConfigError: If the mapping holds malformed values.
    """
    if isinstance(value, DriverConfig):
        return value
    draft: MutableDriverConfig = MutableDriverConfig.from_defaults()
    if value is not None:
        draft = draft.merge_with(MutableDriverConfig.from_toml_dict(dict(value)))
    return draft.freeze()


def run(
    pipeline: str | None = None,
    *,
    inputs: InputTable | None = None,
    outputs: OutputTable | None = None,
    params: ParameterTable | None = None,
    options: OptionTable | None = None,
    config: Mapping[str, Any] | DriverConfig | None = None,
) -> RunReport:
    """Run ``pipeline`` with full bindings and route every output port.

    The keyword tables are the *user* side; ``config`` supplies the configured side.
    """
    driver = Driver(ensure_driver_config(config))
    return driver.run_bound(
        RunRequest(
            pipeline=pipeline,
            inputs=inputs or {},
            outputs=outputs or {},
            params=params or {},
            options=options or {},
        )
    )


def collect(
    pipeline: str | None = None,
    input_source: Any = None,
    *,
    config: Mapping[str, Any] | DriverConfig | None = None,
) -> PipelineOutputs:
    """Run ``pipeline`` on one input and return all outputs in memory."""
    return Driver(ensure_driver_config(config)).collect(pipeline, input_source)


def version() -> str:
    """Return the installed PipeBind version."""
    return PIPEBIND_VERSION
