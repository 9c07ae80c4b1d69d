from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from textutil.contracts.plugin_contracts.plugin import PluginInfo, PluginSource


class PluginNotFoundError(KeyError):
    pass


@runtime_checkable
class PluginRegistry(Protocol):
    def lookup(self, name: str) -> PluginSource | None:
        """Return the plugin for a case-insensitive name, or None."""
        ...

    def get(self, name: str) -> PluginSource:
        """Return plugin for name or raise PluginNotFoundError."""
        ...

    def list(self) -> Iterable[PluginInfo]:
        """List available plugins (for UI / debugging)."""
        ...
