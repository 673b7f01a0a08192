# topmark:header:start
#
#   project      : PipeBind
#   file         : test_settings.py
#   file_relpath : tests/serialization/test_settings.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Tests for effective serialization settings resolution."""

from __future__ import annotations

from pipebind.core.qname import QName
from pipebind.serialization.settings import (
    ENGINE_DEFAULTS,
    SerializationKey,
    SerializationSettings,
    apply_overrides,
    resolve,
)
from tests.conftest import parametrize


def test_declared_settings_win_outright() -> None:
    """Global defaults are not merged into pipeline-declared settings."""
    declared = SerializationSettings(indent=False, encoding="ISO-8859-1")

    effective: SerializationSettings = resolve("result", declared, {"indent": "true"})

    assert effective is declared
    assert effective.indent is False


def test_global_defaults_apply_when_nothing_is_declared() -> None:
    effective: SerializationSettings = resolve(
        "result", None, {"indent": "true", "method": "html", "encoding": "UTF-16"}
    )

    assert effective.indent is True
    assert effective.method == QName("", "html")
    assert effective.encoding == "UTF-16"
    assert effective.omit_xml_declaration is ENGINE_DEFAULTS.omit_xml_declaration


@parametrize(
    "value, expected",
    [("true", True), ("false", False), ("TRUE", False), ("yes", False), ("1", False)],
)
def test_boolean_knobs_are_true_only_for_the_literal_true(value: str, expected: bool) -> None:
    effective: SerializationSettings = apply_overrides(ENGINE_DEFAULTS, {"indent": value})

    assert effective.indent is expected


def test_every_boolean_key_is_recognized() -> None:
    keys: list[str] = [
        "byte-order-mark",
        "escape-uri-attributes",
        "include-content-type",
        "indent",
        "omit-xml-declaration",
        "undeclare-prefixes",
    ]

    effective: SerializationSettings = apply_overrides(
        ENGINE_DEFAULTS, {key: "true" for key in keys}
    )

    for key in keys:
        assert getattr(effective, SerializationKey(key).attribute) is True


def test_string_knobs_are_copied_verbatim() -> None:
    effective: SerializationSettings = apply_overrides(
        ENGINE_DEFAULTS,
        {
            "doctype-public": "-//W3C//DTD XHTML 1.0 Strict//EN",
            "doctype-system": "xhtml1-strict.dtd",
            "media-type": "text/html",
            "normalization-form": "NFC",
            "standalone": "yes",
            "version": "1.1",
        },
    )

    assert effective.doctype_public == "-//W3C//DTD XHTML 1.0 Strict//EN"
    assert effective.doctype_system == "xhtml1-strict.dtd"
    assert effective.media_type == "text/html"
    assert effective.normalization_form == "NFC"
    assert effective.standalone == "yes"
    assert effective.version == "1.1"


def test_unrecognized_keys_are_ignored() -> None:
    effective: SerializationSettings = apply_overrides(
        ENGINE_DEFAULTS, {"no-such-option": "true", "indent": "true"}
    )

    assert effective == SerializationSettings(indent=True)


def test_overrides_leave_the_base_untouched() -> None:
    base = SerializationSettings()

    apply_overrides(base, {"indent": "true"})

    assert base.indent is False
    assert apply_overrides(base, {}) is base
