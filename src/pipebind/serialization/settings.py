# topmark:header:start
#
#   project      : PipeBind
#   file         : settings.py
#   file_relpath : src/pipebind/serialization/settings.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Effective serialization settings for an output port.

Resolution policy:
    - Settings declared by the pipeline for a port win outright. They are returned
      unmodified; global defaults are *not* merged into them key by key.
    - Otherwise the engine defaults are taken and every recognized key from the
      global defaults (``[serialization]`` in the configuration) is applied.
      Unrecognized keys are ignored so newer configuration files keep working.

Value parsing:
    - Boolean knobs are true only for the literal string ``"true"``.
    - ``method`` is a qualified name in no namespace (``xml``, ``html``, ``text``).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Final

from pipebind.config.logging import get_logger
from pipebind.core.qname import QName

if TYPE_CHECKING:
    from collections.abc import Mapping

    from pipebind.config.logging import PipebindLogger

logger: PipebindLogger = get_logger(__name__)


class SerializationKey(str, Enum):
    """Recognized serialization option names (as written in configuration)."""

    BYTE_ORDER_MARK = "byte-order-mark"
    ESCAPE_URI_ATTRIBUTES = "escape-uri-attributes"
    INCLUDE_CONTENT_TYPE = "include-content-type"
    INDENT = "indent"
    OMIT_XML_DECLARATION = "omit-xml-declaration"
    UNDECLARE_PREFIXES = "undeclare-prefixes"
    METHOD = "method"
    DOCTYPE_PUBLIC = "doctype-public"
    DOCTYPE_SYSTEM = "doctype-system"
    ENCODING = "encoding"
    MEDIA_TYPE = "media-type"
    NORMALIZATION_FORM = "normalization-form"
    STANDALONE = "standalone"
    VERSION = "version"

    @property
    def attribute(self) -> str:
        """The `SerializationSettings` field this key sets."""
        return self.value.replace("-", "_")


BOOLEAN_KEYS: Final[frozenset[SerializationKey]] = frozenset(
    {
        SerializationKey.BYTE_ORDER_MARK,
        SerializationKey.ESCAPE_URI_ATTRIBUTES,
        SerializationKey.INCLUDE_CONTENT_TYPE,
        SerializationKey.INDENT,
        SerializationKey.OMIT_XML_DECLARATION,
        SerializationKey.UNDECLARE_PREFIXES,
    }
)

_KEYS_BY_NAME: Final[dict[str, SerializationKey]] = {k.value: k for k in SerializationKey}


@dataclass(frozen=True, slots=True)
class SerializationSettings:
    """How the documents of one output port are rendered to bytes.

    Attributes:
        byte_order_mark (bool): Emit a byte order mark before each document.
        escape_uri_attributes (bool): Escape URI attribute values (html method).
        include_content_type (bool): Emit a content-type meta element (html method).
        indent (bool): Pretty-print element content.
        omit_xml_declaration (bool): Suppress the XML declaration.
        undeclare_prefixes (bool): Undeclare namespace prefixes (XML 1.1).
        method (QName): Output method (``xml``, ``html``, ``text``).
        doctype_public (str | None): Public identifier of the document type declaration.
        doctype_system (str | None): System identifier of the document type declaration.
        encoding (str): Character encoding.
        media_type (str): Media type of the serialized output.
        normalization_form (str): Unicode normalization form (``none``, ``NFC``, ...).
        standalone (str): ``yes``, ``no`` or ``omit``.
        version (str): XML version written in the declaration.
    """

    byte_order_mark: bool = False
    escape_uri_attributes: bool = False
    include_content_type: bool = False
    indent: bool = False
    omit_xml_declaration: bool = False
    undeclare_prefixes: bool = False
    method: QName = QName("", "xml")
    doctype_public: str | None = None
    doctype_system: str | None = None
    encoding: str = "UTF-8"
    media_type: str = "application/xml"
    normalization_form: str = "none"
    standalone: str = "omit"
    version: str = "1.0"


#: Settings used when neither the pipeline nor the configuration says otherwise.
ENGINE_DEFAULTS: Final[SerializationSettings] = SerializationSettings()


def _coerce(key: SerializationKey, value: str) -> Any:
    if key in BOOLEAN_KEYS:
        return value == "true"
    if key is SerializationKey.METHOD:
        return QName("", value)
    return value


def apply_overrides(
    base: SerializationSettings,
    values: Mapping[str, str],
) -> SerializationSettings:
    """Return ``base`` with every recognized key from ``values`` applied.

    Args:
        base (SerializationSettings): Settings to start from.
        values (Mapping[str, str]): Option name -> string value.

    Returns:
        SerializationSettings: A new settings value; ``base`` is left untouched.
    """
    changes: dict[str, Any] = {}
    for name, value in values.items():
        key: SerializationKey | None = _KEYS_BY_NAME.get(name)
        if key is None:
            logger.debug("Ignoring unrecognized serialization option %r", name)
            continue
        changes[key.attribute] = _coerce(key, value)
    if not changes:
        return base
    return replace(base, **changes)


def resolve(
    port: str,
    declared: SerializationSettings | None,
    global_defaults: Mapping[str, str],
    *,
    base: SerializationSettings = ENGINE_DEFAULTS,
) -> SerializationSettings:
    """Return the effective serialization settings for ``port``.

    Args:
        port (str): The output port name (used for diagnostics only).
        declared (SerializationSettings | None): Settings declared by the pipeline.
        global_defaults (Mapping[str, str]): Global serialization options.
        base (SerializationSettings): Engine defaults used when nothing is declared.

    Returns:
        SerializationSettings: ``declared`` unmodified when present, else ``base``
            with the global defaults applied.
    """
    if declared is not None:
        logger.trace("Port %s: using pipeline-declared serialization", port)
        return declared
    logger.trace("Port %s: using configured serialization options", port)
    return apply_overrides(base, global_defaults)
