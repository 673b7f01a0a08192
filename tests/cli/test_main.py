# topmark:header:start
#
#   project      : PipeBind
#   file         : test_main.py
#   file_relpath : tests/cli/test_main.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""CLI: binding arguments, output routing, error reporting and exit codes.

Runs the ``pipebind`` command against the bundled declarative engine in an
isolated working directory.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pipebind.constants import PIPEBIND_VERSION
from tests.cli.conftest import assert_FAILURE, assert_SUCCESS, run_cli, run_cli_in
from tests.conftest import parametrize, write_doc, write_pipeline

if TYPE_CHECKING:
    from pathlib import Path

    from click.testing import Result

IDENTITY: str = """
[inputs.source]
primary = true

[outputs.result]
primary = true
from = "source"
serialization = { omit-xml-declaration = true }
"""

WITH_EXTRAS: str = """
[inputs.source]
primary = true
sequence = true

[inputs.parameters]
parameters = true

[options]
mode = "copy"

[outputs.result]
primary = true
from = "source"
serialization = { omit-xml-declaration = true }

[outputs.params]
emit = "parameters"
serialization = { omit-xml-declaration = true }

[outputs.opts]
emit = "options"
serialization = { omit-xml-declaration = true }
"""

PLAIN: str = """
[inputs.source]
primary = true

[outputs.result]
primary = true
from = "source"
"""

XPROC_STEP_NS: str = "http://www.w3.org/ns/xproc-step"


# --- success paths ---


def test_primary_output_goes_to_stdout_with_a_trailing_newline(tmp_path: Path) -> None:
    write_pipeline(tmp_path, IDENTITY)
    write_doc(tmp_path, "doc.xml", "<doc/>")

    result: Result = run_cli_in(tmp_path, ["pipeline.toml", "-i", "doc.xml"])

    assert_SUCCESS(result)
    assert result.stdout == "<doc />\n"


def test_unbound_primary_input_reads_stdin(tmp_path: Path) -> None:
    write_pipeline(tmp_path, IDENTITY)

    result: Result = run_cli_in(tmp_path, ["pipeline.toml"], input_text="<piped/>")

    assert_SUCCESS(result)
    assert result.stdout == "<piped />\n"


def test_dash_input_reads_stdin(tmp_path: Path) -> None:
    write_pipeline(tmp_path, IDENTITY)

    result: Result = run_cli_in(tmp_path, ["pipeline.toml", "-i", "source=-"], input_text="<x/>")

    assert_SUCCESS(result)
    assert result.stdout == "<x />\n"


def test_output_to_a_file_prints_no_trailing_newline(tmp_path: Path) -> None:
    write_pipeline(tmp_path, IDENTITY)
    write_doc(tmp_path, "doc.xml", "<doc/>")

    result: Result = run_cli_in(tmp_path, ["pipeline.toml", "-i", "doc.xml", "-o", "out.xml"])

    assert_SUCCESS(result)
    assert result.stdout == ""
    assert (tmp_path / "out.xml").read_text(encoding="utf-8") == "<doc />"


def test_named_bindings_parameters_and_options(tmp_path: Path) -> None:
    write_pipeline(tmp_path, WITH_EXTRAS)
    write_doc(tmp_path, "a.xml", "<a/>")
    write_doc(tmp_path, "b.xml", "<b/>")

    result: Result = run_cli_in(
        tmp_path,
        [
            "pipeline.toml",
            "mode=move",
            "-i",
            "source=a.xml",
            "-i",
            "source=b.xml",
            "-p",
            "parameters@{urn:x}level=3",
            "-o",
            "result=out.xml",
            "-o",
            "params=params.xml",
            "-o",
            "opts=-",
        ],
    )

    assert_SUCCESS(result)
    assert (tmp_path / "out.xml").read_text(encoding="utf-8") == "<a /><b />"
    params: str = (tmp_path / "params.xml").read_text(encoding="utf-8")
    assert 'name="level"' in params
    assert 'namespace="urn:x"' in params
    assert 'value="3"' in params
    assert 'name="mode" value="move"' in result.stdout
    assert XPROC_STEP_NS in result.stdout
    assert result.stdout.endswith("\n")


def test_serialization_default_applies_to_ports_without_their_own(tmp_path: Path) -> None:
    write_pipeline(tmp_path, PLAIN)
    write_doc(tmp_path, "doc.xml", "<doc><a/></doc>")

    result: Result = run_cli_in(
        tmp_path,
        ["pipeline.toml", "-i", "doc.xml", "-S", "indent=true", "-S", "omit-xml-declaration=true"],
    )

    assert_SUCCESS(result)
    assert result.stdout == "<doc>\n  <a />\n</doc>\n"


def test_configuration_file_supplies_pipeline_and_bindings(tmp_path: Path) -> None:
    conf_dir: Path = tmp_path / "conf"
    conf_dir.mkdir()
    write_pipeline(conf_dir, WITH_EXTRAS)
    write_doc(conf_dir, "doc.xml", "<cfg/>")
    (conf_dir / "pipebind.toml").write_text(
        '[pipeline]\nsource = "pipeline.toml"\n\n'
        '[inputs]\nsource = "doc.xml"\n\n'
        '[outputs]\nparams = "params.xml"\n\n'
        '[params."*"]\ncolor = "blue"\n',
        encoding="utf-8",
    )

    result: Result = run_cli_in(tmp_path, ["mode=fast", "-c", "conf/pipebind.toml"])

    assert_SUCCESS(result)
    assert result.stdout == "<cfg />\n"
    assert 'name="color" value="blue"' in (conf_dir / "params.xml").read_text(encoding="utf-8")


def test_user_bindings_override_the_configuration(tmp_path: Path) -> None:
    write_pipeline(tmp_path, IDENTITY)
    write_doc(tmp_path, "cfg.xml", "<cfg/>")
    write_doc(tmp_path, "user.xml", "<user/>")
    (tmp_path / "pipebind.toml").write_text('[inputs]\nsource = "cfg.xml"\n', encoding="utf-8")

    result: Result = run_cli_in(
        tmp_path, ["pipeline.toml", "-c", "pipebind.toml", "-i", "user.xml"]
    )

    # The unnamed binding cannot take a port that is already bound by name.
    assert_SUCCESS(result)
    assert result.stdout == "<cfg />\n"
    assert "Unnamed input binding left unbound" in result.stderr

    result = run_cli_in(
        tmp_path, ["pipeline.toml", "-c", "pipebind.toml", "-i", "source=user.xml"]
    )

    assert_SUCCESS(result)
    assert result.stdout == "<user />\n"


# --- failures ---


def test_missing_document_reports_the_registered_message(tmp_path: Path) -> None:
    write_pipeline(tmp_path, IDENTITY)

    result: Result = run_cli_in(tmp_path, ["pipeline.toml", "-i", "missing.xml"])

    assert_FAILURE(result)
    assert "(XD0011: It is a dynamic error if the resource referenced" in result.stderr
    assert "Underlying exception:" in result.stderr
    assert "Traceback" not in result.stderr
    assert result.stdout == ""


def test_debug_adds_the_traceback(tmp_path: Path) -> None:
    write_pipeline(tmp_path, IDENTITY)

    result: Result = run_cli_in(tmp_path, ["--debug", "pipeline.toml", "-i", "missing.xml"])

    assert_FAILURE(result)
    assert "Traceback (most recent call last)" in result.stderr


def test_unregistered_code_uses_the_configured_fallback(tmp_path: Path) -> None:
    write_pipeline(tmp_path, '[error]\ncode = "XC0030"\nmessage = "Rejected"\n')
    (tmp_path / "pipebind.toml").write_text(
        '[errors]\nunknown_message = "Not documented"\n', encoding="utf-8"
    )

    result: Result = run_cli_in(tmp_path, ["pipeline.toml", "-c", "pipebind.toml"])

    assert_FAILURE(result)
    assert "Rejected (XC0030: Not documented)" in result.stderr
    assert "Underlying exception" not in result.stderr


def test_error_without_code_prints_the_raw_message(tmp_path: Path) -> None:
    write_pipeline(tmp_path, '[error]\nmessage = "Plain failure"\n')

    result: Result = run_cli_in(tmp_path, ["pipeline.toml"])

    assert_FAILURE(result)
    assert "Plain failure" in result.stderr
    assert "(" not in result.stderr.strip().splitlines()[0]


def test_binding_an_undeclared_port_fails_before_the_run(tmp_path: Path) -> None:
    write_pipeline(tmp_path, IDENTITY)
    write_doc(tmp_path, "doc.xml", "<doc/>")

    result: Result = run_cli_in(
        tmp_path, ["pipeline.toml", "-i", "doc.xml", "-o", "nope=out.xml"]
    )

    assert_FAILURE(result)
    assert "Pipeline failed: There is a binding for the output port 'nope'" in result.stderr
    assert not (tmp_path / "out.xml").exists()


def test_unwritable_output_reports_the_cause(tmp_path: Path) -> None:
    write_pipeline(tmp_path, IDENTITY)
    write_doc(tmp_path, "doc.xml", "<doc/>")

    result: Result = run_cli_in(
        tmp_path, ["pipeline.toml", "-i", "doc.xml", "-o", "no/such/dir/out.xml"]
    )

    assert_FAILURE(result)
    assert "Pipeline failed: Cannot create output file" in result.stderr
    assert "Underlying exception:" in result.stderr


def test_no_pipeline_is_a_usage_error() -> None:
    result: Result = run_cli([])

    assert_FAILURE(result)
    assert "Usage:" in result.stderr
    assert "No pipeline specified" in result.stderr


@parametrize(
    "argv",
    [
        ["pipeline.toml", "--no-such-option"],
        ["pipeline.toml", "-p", "=value"],
        ["pipeline.toml", "-S", "novalue"],
        ["pipeline.toml", "-i", "port="],
        ["pipeline.toml", "not-an-option"],
        ["-v", "-q", "pipeline.toml"],
        ["-c", "missing.toml", "pipeline.toml"],
    ],
)
def test_unusable_command_lines_exit_with_failure(tmp_path: Path, argv: list[str]) -> None:
    write_pipeline(tmp_path, IDENTITY)

    result: Result = run_cli_in(tmp_path, argv)

    assert_FAILURE(result)
    assert result.stdout == ""


def test_malformed_configuration_file_fails(tmp_path: Path) -> None:
    write_pipeline(tmp_path, IDENTITY)
    (tmp_path / "pipebind.toml").write_text("[outputs\n", encoding="utf-8")

    result: Result = run_cli_in(tmp_path, ["pipeline.toml", "-c", "pipebind.toml"])

    assert_FAILURE(result)
    assert "Invalid TOML in configuration file" in result.stderr


# --- informational options and logging ---


def test_version() -> None:
    result: Result = run_cli(["--version"])

    assert_SUCCESS(result)
    assert PIPEBIND_VERSION in result.stdout


def test_help() -> None:
    result: Result = run_cli(["--help"])

    assert_SUCCESS(result)
    for option in ("--input", "--output", "--param", "--serialization", "--config", "--engine"):
        assert option in result.stdout


def test_verbose_logging_goes_to_stderr(tmp_path: Path) -> None:
    write_pipeline(tmp_path, IDENTITY)
    write_doc(tmp_path, "doc.xml", "<doc/>")

    result: Result = run_cli_in(tmp_path, ["-vv", "pipeline.toml", "-i", "doc.xml"])

    assert_SUCCESS(result)
    assert "[DEBUG]" in result.stderr
    assert "[DEBUG]" not in result.stdout
    assert result.stdout == "<doc />\n"


def test_log_level_environment_variable_wins(tmp_path: Path) -> None:
    write_pipeline(tmp_path, IDENTITY)
    write_doc(tmp_path, "doc.xml", "<doc/>")

    result: Result = run_cli_in(
        tmp_path, ["-q", "pipeline.toml", "-i", "doc.xml"], env={"PIPEBIND_LOG_LEVEL": "INFO"}
    )

    assert_SUCCESS(result)
    assert "[INFO]" in result.stderr
