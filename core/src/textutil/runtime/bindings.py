"""Host binding surface: the values and functions the host exposes to plugins."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import Any

from textutil import __version__
from textutil.contracts.run_contracts.host_config import HostConfig
from textutil.contracts.runtime import HostCallError, HostValue
from textutil.runtime.values import ValueConversionError, convert_value

HOST_VERSION_BINDING = "HOST_VERSION"

_PLUGIN_LOGGER = "textutil.plugin"


class HostFunction:
    """
    Host callable exposed to script code.

    Arguments are converted to plain host values before ``func`` sees them, and any
    failure (bad arity, bad type, host bug) surfaces in the script as HostCallError.
    """

    __slots__ = ("name", "_func", "_signature")

    def __init__(self, name: str, func: Callable[..., Any]) -> None:
        object.__setattr__(self, "name", name)
        object.__setattr__(self, "_func", func)
        object.__setattr__(self, "_signature", inspect.signature(func))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"host function '{self.name}' is read-only")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"host function '{self.name}' is read-only")

    def __repr__(self) -> str:
        return f"<host function {self.name}>"

    def __call__(self, *args: Any, **kwargs: Any) -> HostValue:
        if kwargs:
            raise HostCallError(f"{self.name}() does not accept keyword arguments")
        try:
            converted = [convert_value(arg) for arg in args]
        except ValueConversionError as exc:
            raise HostCallError(f"{self.name}() received {exc}") from None
        try:
            self._signature.bind(*converted)
        except TypeError as exc:
            raise HostCallError(f"{self.name}(): {exc}") from None
        try:
            result = self._func(*converted)
            return convert_value(result)
        except HostCallError:
            raise
        except Exception as exc:
            raise HostCallError(f"{self.name}() failed: {exc}") from None


def default_bindings(
    config: HostConfig | None = None,
    *,
    plugin_key: str | None = None,
) -> dict[str, HostValue]:
    """
    Build the advisory binding catalogue for one invocation.

    Built fresh per call so no binding object is shared between contexts.
    """
    config = config or HostConfig()
    if not config.host.expose_defaults:
        return {}

    logger = logging.getLogger(_PLUGIN_LOGGER)
    if plugin_key:
        logger = logger.getChild(plugin_key)

    def log(*parts: Any) -> None:
        logger.info("%s", " ".join(str(part) for part in parts))

    def greet(name: str) -> str:
        if not isinstance(name, str):
            raise TypeError("expected text")
        return f"Hello, {name}!"

    return {
        HOST_VERSION_BINDING: __version__,
        "log": HostFunction("log", log),
        "greet": HostFunction("greet", greet),
    }
