# topmark:header:start
#
#   project      : PipeBind
#   file         : test_messages.py
#   file_relpath : tests/registry/test_messages.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Tests for the error message registry and the bundled error table."""

from __future__ import annotations

import pytest

from pipebind.core.errors import ErrorTableError
from pipebind.core.qname import QName, error_code
from pipebind.registry.messages import (
    DEFAULT_UNKNOWN_ERROR,
    ErrorMessageRegistry,
    parse_error_table,
)


@pytest.fixture(scope="module")
def registry() -> ErrorMessageRegistry:
    return ErrorMessageRegistry.from_resource()


def test_bundled_table_loads(registry: ErrorMessageRegistry) -> None:
    assert len(registry) > 40
    assert "XD0011" in registry
    assert "XD0001" not in registry


def test_registered_code_is_explained(registry: ErrorMessageRegistry) -> None:
    message: str = registry.lookup(error_code("XD0011"))

    assert message.startswith("It is a dynamic error if the resource referenced")


def test_lookup_ignores_the_code_namespace(registry: ErrorMessageRegistry) -> None:
    assert registry.lookup(QName("urn:other", "XD0011")) == registry.lookup(error_code("XD0011"))


def test_unregistered_code_uses_the_fallback(registry: ErrorMessageRegistry) -> None:
    assert registry.code_and_message(error_code("XD0001")) == "XD0001: Unknown error"
    assert registry.lookup(None) == DEFAULT_UNKNOWN_ERROR


def test_fallback_is_per_instance() -> None:
    first = ErrorMessageRegistry({}, unknown_message="Nope")
    second = ErrorMessageRegistry({})

    first.unknown_message = "Changed"

    assert first.lookup(error_code("XD0001")) == "Changed"
    assert second.lookup(error_code("XD0001")) == DEFAULT_UNKNOWN_ERROR


def test_format_combines_raw_message_code_and_explanation() -> None:
    registry = ErrorMessageRegistry({"XC0030": "Step failed."})

    assert registry.format(error_code("XC0030"), "Rejected") == "Rejected (XC0030: Step failed.)"
    assert registry.format(error_code("XC0030"), "") == "XC0030: Step failed."
    assert registry.format(None, "Boom") == "Boom (Unknown error)"


def test_parse_collapses_whitespace_in_messages() -> None:
    text: str = '[errors]\nXD0011 = """It is\n   a dynamic\terror."""\n'

    assert parse_error_table(text) == {"XD0011": "It is a dynamic error."}


@pytest.mark.parametrize(
    "text",
    [
        "[errors\nXD0011 = 'x'",
        "[other]\nXD0011 = 'x'\n",
        "[errors]\nXD0011 = 42\n",
    ],
)
def test_malformed_table_is_fatal(text: str) -> None:
    with pytest.raises(ErrorTableError):
        parse_error_table(text, source="broken.toml")


def test_missing_resource_is_fatal() -> None:
    with pytest.raises(ErrorTableError, match="no-such-table.toml"):
        ErrorMessageRegistry.from_resource(name="no-such-table.toml")
