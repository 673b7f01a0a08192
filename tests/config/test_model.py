# topmark:header:start
#
#   project      : PipeBind
#   file         : test_model.py
#   file_relpath : tests/config/test_model.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Tests for the configuration model: loading, path normalization and merging."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

import pytest

from pipebind.binding.types import DEFAULT, InputSource, Named, Sink
from pipebind.config.model import DriverConfig, MutableDriverConfig
from pipebind.constants import DEFAULT_ENGINE_SPEC
from pipebind.core.errors import ConfigError
from pipebind.core.qname import QName
from tests.conftest import parametrize

if TYPE_CHECKING:
    from pipebind.binding.types import InputTable, OutputTable

PROJECT_CONFIG: str = """
debug = true

[engine]
spec = "tests.fakes:FakeEngine"

[pipeline]
source = "pipelines/main.toml"

[inputs]
"" = "doc.xml"
extra = ["a.xml", "-", "http://example.com/b.xml"]

[outputs]
"" = "out/result.xml"
report = "-"

[params."*"]
n = 1
"{urn:x}flag" = true

[params.config]
level = "high"

[options]
mode = "copy"

[serialization]
indent = true

[errors]
unknown_message = "No idea"
"""


def _write_config(directory: Path, text: str = PROJECT_CONFIG) -> Path:
    path: Path = directory / "pipebind.toml"
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults() -> None:
    config: DriverConfig = MutableDriverConfig.from_defaults().freeze()

    assert config.engine == DEFAULT_ENGINE_SPEC
    assert config.pipeline is None
    assert config.debug is False
    assert config.unknown_message == "Unknown error"
    assert config.input_table() == {}
    assert config.output_table() == {}


def test_from_toml_file(tmp_path: Path) -> None:
    path: Path = _write_config(tmp_path)
    base: Path = tmp_path.resolve()

    config: DriverConfig = MutableDriverConfig.from_toml_file(path).freeze()

    assert config.debug is True
    assert config.engine == "tests.fakes:FakeEngine"
    assert config.pipeline == str(base / "pipelines" / "main.toml")
    assert config.inputs == {
        "": (str(base / "doc.xml"),),
        "extra": (str(base / "a.xml"), "-", "http://example.com/b.xml"),
    }
    assert config.outputs == {"": str(base / "out" / "result.xml"), "report": "-"}
    assert config.params == {
        "*": {QName("", "n"): "1", QName("urn:x", "flag"): "true"},
        "config": {QName("", "level"): "high"},
    }
    assert config.options == {QName("", "mode"): "copy"}
    assert config.serialization == {"indent": "true"}
    assert config.unknown_message == "No idea"
    assert config.config_files == (str(path),)


def test_binding_tables_use_port_refs(tmp_path: Path) -> None:
    config: DriverConfig = MutableDriverConfig.from_toml_file(_write_config(tmp_path)).freeze()

    inputs: InputTable = config.input_table()
    outputs: OutputTable = config.output_table()

    assert set(inputs) == {DEFAULT, Named("extra")}
    assert inputs[Named("extra")][1] == InputSource.from_uri("-")
    assert outputs[Named("report")] == Sink.from_uri("-")
    assert outputs[DEFAULT].uri is not None and outputs[DEFAULT].uri.endswith("result.xml")


def test_absolute_paths_are_kept(tmp_path: Path) -> None:
    absolute: str = str((tmp_path / "abs.xml").resolve())
    path: Path = _write_config(tmp_path, f'[inputs]\nsource = {absolute!r}\n')

    config: DriverConfig = MutableDriverConfig.from_toml_file(path).freeze()

    assert config.inputs == {"source": (absolute,)}


def test_dict_sources_keep_relative_paths() -> None:
    draft: MutableDriverConfig = MutableDriverConfig.from_toml_dict(
        {"inputs": {"source": "rel.xml"}}
    )

    assert draft.inputs == {"source": ["rel.xml"]}


@parametrize(
    "text, fragment",
    [
        ('[outputs]\nresult = ["a.xml", "b.xml"]\n', "exactly one URI"),
        ("[inputs]\nsource = 3\n", "expected a URI"),
        ('[params]\nflat = "x"\n', "expected a table"),
        ('[params."*"]\n"1bad" = "x"\n', "Not a valid name"),
        ("[options]\nnested = { a = 1 }\n", "expected a scalar"),
    ],
)
def test_malformed_values_raise_config_error(tmp_path: Path, text: str, fragment: str) -> None:
    with pytest.raises(ConfigError, match=fragment):
        MutableDriverConfig.from_toml_file(_write_config(tmp_path, text))


def test_merge_is_key_wise_and_last_wins() -> None:
    q = QName("", "q")
    base = MutableDriverConfig(
        engine="a:A",
        inputs={"source": ["base.xml"], "other": ["keep.xml"]},
        params={"*": {q: "1"}, "p": {q: "p"}},
        serialization={"indent": "true", "method": "xml"},
        debug=True,
        config_files=["base.toml"],
    )
    over = MutableDriverConfig(
        pipeline="p.toml",
        inputs={"source": ["over.xml"]},
        params={"*": {QName("", "r"): "2"}},
        serialization={"method": "html"},
        config_files=["over.toml"],
    )

    merged: DriverConfig = base.merge_with(over).freeze()

    assert merged.engine == "a:A"
    assert merged.pipeline == "p.toml"
    assert merged.inputs == {"source": ("over.xml",), "other": ("keep.xml",)}
    assert merged.params == {"*": {q: "1", QName("", "r"): "2"}, "p": {q: "p"}}
    assert merged.serialization == {"indent": "true", "method": "html"}
    assert merged.debug is True
    assert merged.config_files == ("base.toml", "over.toml")


def test_load_merged_layers_the_file_over_the_defaults(tmp_path: Path) -> None:
    path: Path = _write_config(tmp_path, '[outputs]\nresult = "r.xml"\n')

    config: DriverConfig = MutableDriverConfig.load_merged(config_file=path).freeze()

    assert config.engine == DEFAULT_ENGINE_SPEC
    assert config.unknown_message == "Unknown error"
    assert config.outputs == {"result": str(tmp_path.resolve() / "r.xml")}


def test_apply_cli_args() -> None:
    draft: MutableDriverConfig = MutableDriverConfig.from_defaults()
    draft.serialization = {"indent": "false", "method": "xml"}
    args: dict[str, Any] = {
        "engine": "tests.fakes:FakeEngine",
        "pipeline": None,
        "debug": True,
        "serialization": {"indent": "true"},
    }

    config: DriverConfig = draft.apply_cli_args(args).freeze()

    assert config.engine == "tests.fakes:FakeEngine"
    assert config.pipeline is None
    assert config.debug is True
    assert config.serialization == {"indent": "true", "method": "xml"}


def test_thaw_freeze_round_trip(tmp_path: Path) -> None:
    config: DriverConfig = MutableDriverConfig.from_toml_file(_write_config(tmp_path)).freeze()

    assert config.thaw().freeze() == config


def test_to_toml_dict_reloads_to_the_same_config(tmp_path: Path) -> None:
    config: DriverConfig = MutableDriverConfig.from_toml_file(_write_config(tmp_path)).freeze()

    reloaded: DriverConfig = MutableDriverConfig.from_toml_dict(config.to_toml_dict()).freeze()

    assert reloaded.inputs == config.inputs
    assert reloaded.outputs == config.outputs
    assert reloaded.params == config.params
    assert reloaded.options == config.options
    assert reloaded.pipeline == config.pipeline
    assert reloaded.debug is True
