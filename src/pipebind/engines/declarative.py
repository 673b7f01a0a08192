# topmark:header:start
#
#   project      : PipeBind
#   file         : declarative.py
#   file_relpath : src/pipebind/engines/declarative.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Reference engine: pipelines declared in TOML, documents handled with ElementTree.

The declarative engine does no XML processing of its own. A pipeline declares its
ports and, for each output port, where its documents come from. That is enough to
drive the binding, routing and error reporting layers end to end.

Declaration layout::

    name = "identity"

    [inputs.source]
    primary = true
    sequence = true          # allow zero or many documents

    [inputs.parameters]
    parameters = true

    [options]                # optional; when present, only these options are accepted
    mode = "copy"

    [outputs.result]
    primary = true
    from = "source"          # copy the documents bound to an input port
    serialization = { indent = true, omit-xml-declaration = true }

    [outputs.params]
    emit = "parameters"      # one c:param-set document (all parameter ports, or `from`)

    [outputs.opts]
    emit = "options"         # one c:options document with the option values

    [error]                  # optional; the run fails with this error code
    code = "XC0030"
    message = "Rejected"

Unknown ports, malformed tables and unreadable documents are reported as
`pipebind.core.errors.ExecutionError` with the matching XProc error code.
"""

from __future__ import annotations

import codecs
import copy
import unicodedata
import xml.etree.ElementTree as ET
from collections.abc import Mapping
from pathlib import Path
from typing import IO, TYPE_CHECKING, Any, Final
from urllib.parse import unquote, urlsplit
from urllib.request import url2pathname

import toml

from pipebind.binding.types import PortMeta, SourceKind
from pipebind.config.logging import get_logger
from pipebind.core.errors import ExecutionError, UnsupportedOperationError
from pipebind.core.qname import QName, error_code
from pipebind.serialization.settings import ENGINE_DEFAULTS, apply_overrides

if TYPE_CHECKING:
    from collections.abc import Iterator, Set

    from pipebind.binding.types import InputSource
    from pipebind.config.logging import PipebindLogger
    from pipebind.serialization.settings import SerializationSettings

logger: PipebindLogger = get_logger(__name__)

NS_XPROC_STEP: Final[str] = "http://www.w3.org/ns/xproc-step"

EMIT_DOCUMENTS: Final[str] = "documents"
EMIT_PARAMETERS: Final[str] = "parameters"
EMIT_OPTIONS: Final[str] = "options"

_NORMALIZATION_FORMS: Final[frozenset[str]] = frozenset({"NFC", "NFD", "NFKC", "NFKD"})

# Codecs that always write a BOM are replaced by their big-endian form; the BOM is
# then written only when the byte-order-mark setting asks for it.
_FIXED_ORDER_CODECS: Final[dict[str, str]] = {"utf-16": "utf-16-be", "utf-32": "utf-32-be"}
_BYTE_ORDER_MARKS: Final[dict[str, bytes]] = {
    "utf-8": codecs.BOM_UTF8,
    "utf-16-be": codecs.BOM_UTF16_BE,
    "utf-16-le": codecs.BOM_UTF16_LE,
    "utf-32-be": codecs.BOM_UTF32_BE,
    "utf-32-le": codecs.BOM_UTF32_LE,
}


def _static_error(local: str, message: str) -> ExecutionError:
    return ExecutionError(message, code=error_code(local))


def _local_path(uri: str) -> Path:
    """Map a plain path or a ``file:`` URI to a filesystem path."""
    parts = urlsplit(uri)
    if len(parts.scheme) <= 1:
        return Path(uri)
    if parts.scheme == "file" and parts.netloc in ("", "localhost"):
        return Path(url2pathname(unquote(parts.path)))
    raise _static_error("XD0011", f"Cannot retrieve {uri!r}: unsupported URI scheme")


def _as_flag(decl: Mapping[str, Any], key: str, *, where: str) -> bool:
    value: Any = decl.get(key, False)
    if not isinstance(value, bool):
        raise _static_error("XS0044", f"{where}: '{key}' must be true or false, got {value!r}")
    return value


def _step_element(local: str) -> ET.Element:
    return ET.Element(f"{{{NS_XPROC_STEP}}}{local}")


def _name_set(tag: str, values: Mapping[QName, str]) -> ET.Element:
    """Build a ``c:param-set``/``c:options`` style document from name/value pairs."""
    root: ET.Element = _step_element(tag)
    child_tag: str = "param" if tag == "param-set" else "option"
    for name, value in values.items():
        item: ET.Element = ET.SubElement(root, f"{{{NS_XPROC_STEP}}}{child_tag}")
        item.set("name", name.local_name)
        if name.namespace:
            item.set("namespace", name.namespace)
        item.set("value", value)
    return root


class OutputFeed:
    """Where the documents of one declared output port come from."""

    def __init__(self, port: str, decl: Mapping[str, Any]) -> None:
        where: str = f"output port '{port}'"
        self.port = port
        self.emit: str = str(decl.get("emit", EMIT_DOCUMENTS))
        if self.emit not in (EMIT_DOCUMENTS, EMIT_PARAMETERS, EMIT_OPTIONS):
            raise _static_error("XS0044", f"{where}: unknown emit kind {self.emit!r}")
        source: Any = decl.get("from")
        if source is not None and not isinstance(source, str):
            raise _static_error("XS0044", f"{where}: 'from' must name an input port")
        self.source: str | None = source
        self.meta = PortMeta(primary=_as_flag(decl, "primary", where=where))
        serialization: Any = decl.get("serialization")
        self.serialization: SerializationSettings | None = None
        if serialization is not None:
            if not isinstance(serialization, Mapping):
                raise _static_error("XS0044", f"{where}: 'serialization' must be a table")
            self.serialization = apply_overrides(
                ENGINE_DEFAULTS,
                {
                    str(k): ("true" if v is True else "false" if v is False else str(v))
                    for k, v in serialization.items()
                },
            )


class DeclarativePipeline:
    """Pipeline handle for a TOML pipeline declaration.

    Implements `pipebind.pipeline.contracts.PipelineHandle`.
    """

    def __init__(self, declaration: Mapping[str, Any], *, source: str | None = None) -> None:
        self.source = source
        self.name: str = str(declaration.get("name", source or "pipeline"))

        inputs: Any = declaration.get("inputs", {})
        outputs: Any = declaration.get("outputs", {})
        if not isinstance(inputs, Mapping) or not isinstance(outputs, Mapping):
            raise _static_error("XS0044", "'inputs' and 'outputs' must be tables of ports")

        self._inputs: dict[str, PortMeta] = {}
        self._sequence: dict[str, bool] = {}
        for port, decl in inputs.items():
            if not isinstance(decl, Mapping):
                raise _static_error("XS0044", f"input port '{port}' must be a table")
            where: str = f"input port '{port}'"
            self._inputs[str(port)] = PortMeta(
                primary=_as_flag(decl, "primary", where=where),
                parameters=_as_flag(decl, "parameters", where=where),
            )
            self._sequence[str(port)] = _as_flag(decl, "sequence", where=where)

        self._outputs: dict[str, OutputFeed] = {}
        for port, decl in outputs.items():
            if not isinstance(decl, Mapping):
                raise _static_error("XS0044", f"output port '{port}' must be a table")
            feed = OutputFeed(str(port), decl)
            if feed.emit == EMIT_DOCUMENTS and feed.source is not None:
                if feed.source not in self._inputs:
                    raise _static_error(
                        "XS0022",
                        f"output port '{port}' reads from undeclared input '{feed.source}'",
                    )
            self._outputs[feed.port] = feed

        declared_options: Any = declaration.get("options")
        self._declared_options: set[QName] | None = None
        self._options: dict[QName, str] = {}
        if declared_options is not None:
            if not isinstance(declared_options, Mapping):
                raise _static_error("XS0044", "'options' must be a table of option defaults")
            self._declared_options = set()
            for key, default in declared_options.items():
                try:
                    name: QName = QName.parse(str(key))
                except ValueError as exc:
                    raise _static_error("XS0044", f"Bad option declaration: {exc}") from exc
                self._declared_options.add(name)
                self._options[name] = str(default)

        error: Any = declaration.get("error")
        self._error: tuple[str | None, str] | None = None
        if isinstance(error, Mapping):
            code: Any = error.get("code")
            self._error = (str(code) if code else None, str(error.get("message", "")))

        self._bound: dict[str, list[ET.Element]] = {port: [] for port in self._inputs}
        self._global_params: dict[QName, str] = {}
        self._port_params: dict[str, dict[QName, str]] = {}
        self._results: dict[str, list[ET.Element]] = {}

    # --- declaration ---

    def declared_inputs(self) -> Set[str]:
        return self._inputs.keys()

    def declared_outputs(self) -> Set[str]:
        return self._outputs.keys()

    def port_meta(self, port: str) -> PortMeta:
        if port in self._inputs:
            return self._inputs[port]
        if port in self._outputs:
            return self._outputs[port].meta
        raise KeyError(port)

    # --- binding ---

    def bind_input(self, port: str, document: Any) -> None:
        if port not in self._bound:
            raise _static_error("XS0010", f"No input port named '{port}'")
        self._bound[port].append(document)

    def clear_inputs(self, port: str) -> None:
        if port in self._bound:
            self._bound[port].clear()

    def bound_count(self, port: str) -> int:
        return len(self._bound.get(port, ()))

    def set_parameter(self, port: str | None, name: QName, value: str) -> None:
        if port is None:
            self._global_params[name] = value
            return
        meta: PortMeta | None = self._inputs.get(port)
        if meta is None or not meta.parameters:
            raise _static_error("XS0010", f"No parameter input port named '{port}'")
        self._port_params.setdefault(port, {})[name] = value

    def set_option(self, name: QName, value: str) -> None:
        if self._declared_options is not None and name not in self._declared_options:
            raise _static_error("XS0031", f"Option {name} is not declared on {self.name}")
        self._options[name] = value

    # --- execution ---

    def parameters_for(self, port: str | None) -> dict[QName, str]:
        """Return the effective parameters of ``port`` (all parameter ports when None)."""
        merged: dict[QName, str] = dict(self._global_params)
        ports: list[str] = (
            [p for p, m in self._inputs.items() if m.parameters] if port is None else [port]
        )
        for p in ports:
            merged.update(self._port_params.get(p, {}))
        return merged

    def run(self) -> None:
        for port, meta in self._inputs.items():
            count: int = len(self._bound[port])
            if not meta.parameters and not self._sequence[port] and count != 1:
                raise _static_error(
                    "XD0006", f"Input port '{port}' expects exactly one document, got {count}"
                )
        if self._error is not None:
            code, message = self._error
            raise ExecutionError(message, code=error_code(code) if code else None)

        results: dict[str, list[ET.Element]] = {}
        for port, feed in self._outputs.items():
            if feed.emit == EMIT_PARAMETERS:
                results[port] = [_name_set("param-set", self.parameters_for(feed.source))]
            elif feed.emit == EMIT_OPTIONS:
                results[port] = [_name_set("options", self._options)]
            elif feed.source is not None:
                results[port] = [copy.deepcopy(doc) for doc in self._bound[feed.source]]
            else:
                results[port] = []
        self._results = results
        logger.debug(
            "Pipeline %s produced %s",
            self.name,
            ", ".join(f"{p}={len(d)}" for p, d in results.items()) or "no outputs",
        )

    def read_outputs(self, port: str) -> Iterator[Any]:
        if port not in self._outputs:
            raise _static_error("XS0010", f"No output port named '{port}'")
        return iter(self._results.get(port, ()))

    def serialization_settings_for(self, port: str) -> SerializationSettings | None:
        feed: OutputFeed | None = self._outputs.get(port)
        return feed.serialization if feed is not None else None


class DeclarativeEngine:
    """Engine loading TOML pipeline declarations.

    Implements `pipebind.pipeline.contracts.Engine`. One instance per run; `close`
    makes the instance unusable.
    """

    def __init__(self) -> None:
        self._closed: bool = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise UnsupportedOperationError("Engine instance is closed")

    def load(self, source: str) -> DeclarativePipeline:
        """Load a pipeline declaration from a path or ``file:`` URI.

        Raises:
            ExecutionError: If the declaration cannot be read or is malformed.
        """
        self._check_open()
        path: Path = _local_path(source)
        logger.debug("Loading pipeline declaration from %s", path)
        try:
            declaration: dict[str, Any] = toml.load(path)
        except OSError as exc:
            raise _static_error("XD0011", f"Cannot read pipeline {source}: {exc}") from exc
        except toml.TomlDecodeError as exc:
            raise _static_error("XS0059", f"Malformed pipeline {source}: {exc}") from exc
        return self.load_declaration(declaration, source=source)

    def load_declaration(
        self, declaration: Mapping[str, Any], *, source: str | None = None
    ) -> DeclarativePipeline:
        """Build a pipeline handle from an already parsed declaration."""
        self._check_open()
        return DeclarativePipeline(declaration, source=source)

    def parse(self, source: InputSource) -> ET.Element:
        """Parse an XML document from a URI or an open binary stream.

        Raises:
            ExecutionError: ``XD0011`` if the resource is missing or not well-formed.
        """
        self._check_open()
        if source.kind is SourceKind.DOCUMENT:
            return source.document
        target: Path | IO[bytes]
        if source.kind is SourceKind.STREAM and source.stream is not None:
            target = source.stream
        elif source.kind is SourceKind.URI and source.uri is not None:
            target = _local_path(source.uri)
        else:
            raise UnsupportedOperationError(f"Cannot parse input source {source.describe()}")
        try:
            return ET.parse(target).getroot()
        except (OSError, ET.ParseError) as exc:
            raise _static_error(
                "XD0011", f"Cannot read {source.describe()} as XML: {exc}"
            ) from exc

    def serialize(self, document: ET.Element, settings: SerializationSettings) -> bytes:
        """Render ``document`` to bytes according to ``settings``.

        Raises:
            ExecutionError: If the requested encoding is unknown.
        """
        self._check_open()
        method: str = settings.method.local_name
        tree: ET.Element = copy.deepcopy(document)
        if settings.indent and method != "text":
            ET.indent(tree)

        if method == "text":
            body: str = "".join(tree.itertext())
        else:
            body = ET.tostring(
                tree, encoding="unicode", method="html" if method == "html" else "xml"
            )

        prolog: list[str] = []
        if method == "xml" and not settings.omit_xml_declaration:
            standalone: str = ""
            if settings.standalone in ("yes", "no"):
                standalone = f' standalone="{settings.standalone}"'
            prolog.append(
                f'<?xml version="{settings.version}" encoding="{settings.encoding}"{standalone}?>'
            )
        if method != "text" and settings.doctype_system:
            root_name: str = tree.tag.rpartition("}")[2]
            if settings.doctype_public:
                prolog.append(
                    f'<!DOCTYPE {root_name} PUBLIC "{settings.doctype_public}" '
                    f'"{settings.doctype_system}">'
                )
            else:
                prolog.append(f'<!DOCTYPE {root_name} SYSTEM "{settings.doctype_system}">')
        text: str = "\n".join([*prolog, body])

        form: str = settings.normalization_form.upper()
        if form in _NORMALIZATION_FORMS:
            text = unicodedata.normalize(form, text)  # type: ignore[arg-type]
        elif form != "NONE":
            logger.debug("Ignoring unsupported normalization form %s", settings.normalization_form)

        try:
            codec: codecs.CodecInfo = codecs.lookup(settings.encoding)
        except LookupError as exc:
            raise ExecutionError(f"Unsupported output encoding {settings.encoding!r}") from exc
        codec_name: str = _FIXED_ORDER_CODECS.get(codec.name, codec.name)
        data: bytes = text.encode(codec_name, errors="xmlcharrefreplace")
        if settings.byte_order_mark:
            data = _BYTE_ORDER_MARKS.get(codec_name, b"") + data
        return data

    def close(self) -> None:
        self._closed = True
