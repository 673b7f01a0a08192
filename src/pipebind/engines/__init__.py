# topmark:header:start
#
#   project      : PipeBind
#   file         : __init__.py
#   file_relpath : src/pipebind/engines/__init__.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Engine discovery.

An engine is named by a spec string, either ``"package.module:Attribute"`` or the
name of an entry point in the ``pipebind.engines`` group (for engines shipped by
third-party distributions). The resolved object must be a zero-argument callable
returning an `pipebind.pipeline.contracts.Engine`; each call yields a fresh
instance, so every run owns its own engine.
"""

from __future__ import annotations

from importlib import import_module
from importlib.metadata import EntryPoints, entry_points
from typing import TYPE_CHECKING, Any, Callable, Final

from pipebind.config.logging import get_logger
from pipebind.core.errors import ConfigError

if TYPE_CHECKING:
    from types import ModuleType

    from pipebind.config.logging import PipebindLogger
    from pipebind.pipeline.contracts import Engine

logger: PipebindLogger = get_logger(__name__)

ENTRYPOINT_GROUP: Final[str] = "pipebind.engines"

EngineFactory = Callable[[], "Engine"]


def _load_from_entry_point(name: str) -> Any:
    candidates: EntryPoints = entry_points().select(group=ENTRYPOINT_GROUP, name=name)
    for ep in candidates:
        logger.debug("Loading engine %r from entry point %s", name, ep.value)
        return ep.load()
    raise ConfigError(
        f"Unknown engine {name!r}: not a 'module:attribute' spec and no "
        f"{ENTRYPOINT_GROUP!r} entry point has that name"
    )


def _load_from_spec(spec: str) -> Any:
    modname, _, attr = spec.partition(":")
    if not modname or not attr:
        raise ConfigError(f"Invalid engine spec {spec!r}: expected 'module:attribute'")
    try:
        mod: ModuleType = import_module(modname)
    except ImportError as exc:
        raise ConfigError(f"Cannot import engine module {modname!r}: {exc}") from exc
    obj: Any = mod
    for part in attr.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as exc:
            raise ConfigError(f"Engine module {modname!r} has no attribute {attr!r}") from exc
    return obj


def load_engine_factory(spec: str) -> EngineFactory:
    """Resolve an engine spec to a factory.

    Args:
        spec (str): ``"module:attribute"`` or an entry point name.

    Returns:
        EngineFactory: Zero-argument callable producing a new engine instance.

    Raises:
        ConfigError: If the spec cannot be resolved to a callable.
    """
    spec = spec.strip()
    factory: Any = _load_from_spec(spec) if ":" in spec else _load_from_entry_point(spec)
    if not callable(factory):
        raise ConfigError(f"Engine spec {spec!r} does not name a callable: {factory!r}")
    logger.trace("Engine spec %r resolved to %r", spec, factory)
    return factory
