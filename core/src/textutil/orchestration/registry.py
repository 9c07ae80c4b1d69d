from __future__ import annotations

import logging
import threading
from collections.abc import Iterable

from textutil.contracts import (
    PluginInfo,
    PluginNotFoundError,
    PluginRegistry,
    PluginSource,
    SourceEntry,
    normalize_plugin_key,
)

logger = logging.getLogger("textutil.registry")


class DictPluginRegistry(PluginRegistry):
    """
    In-memory plugin registry keyed by lower-cased plugin name.

    The mapping is only ever replaced wholesale, so readers never see a
    half-built registry. Name collisions after case folding resolve last-write-wins.
    """

    def __init__(self, plugins: dict[str, PluginSource] | None = None) -> None:
        self._lock = threading.Lock()
        self._plugins: dict[str, PluginSource] = {}
        for plugin in (plugins or {}).values():
            self._plugins[normalize_plugin_key(plugin.key)] = plugin

    @classmethod
    def load(cls, source_provider: Iterable[SourceEntry]) -> DictPluginRegistry:
        return cls(plugins=build_plugin_map(source_provider))

    def lookup(self, name: str) -> PluginSource | None:
        return self._plugins.get(normalize_plugin_key(name))

    def get(self, name: str) -> PluginSource:
        plugin = self.lookup(name)
        if plugin is None:
            raise PluginNotFoundError(name)
        return plugin

    def list(self) -> list[PluginInfo]:
        plugins = self._plugins
        return [plugins[key].info for key in sorted(plugins)]

    def refresh(
        self,
        source_provider: Iterable[SourceEntry],
        *,
        merge: bool = False,
    ) -> DictPluginRegistry:
        """Rebuild from ``source_provider`` and swap the mapping in one step."""
        loaded = build_plugin_map(source_provider)
        with self._lock:
            if merge:
                updated = dict(self._plugins)
                updated.update(loaded)
            else:
                updated = loaded
            self._plugins = updated
        logger.info("Plugin registry refreshed: %d plugin(s) (merge=%s)", len(updated), merge)
        return self

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.lookup(name) is not None

    def __len__(self) -> int:
        return len(self._plugins)


def build_plugin_map(source_provider: Iterable[SourceEntry]) -> dict[str, PluginSource]:
    """Decode provider entries into a fresh mapping, skipping bad entries."""
    plugins: dict[str, PluginSource] = {}
    for entry in source_provider:
        plugin = _decode_entry(entry)
        if plugin is None:
            continue
        previous = plugins.get(plugin.key)
        if previous is not None:
            logger.warning(
                "Plugin '%s' from %s replaces earlier source from %s",
                plugin.key,
                plugin.origin,
                previous.origin,
            )
        plugins[plugin.key] = plugin
    return plugins


def _decode_entry(entry: object) -> PluginSource | None:
    try:
        name, payload = entry  # type: ignore[misc]
    except (TypeError, ValueError):
        logger.warning("Skipping malformed plugin entry of type %s", type(entry).__name__)
        return None

    if not isinstance(name, str) or not normalize_plugin_key(name):
        logger.warning("Skipping plugin with invalid name %r", name)
        return None
    if not isinstance(payload, (bytes, bytearray, memoryview)):
        logger.warning(
            "Skipping plugin '%s': expected bytes, got %s", name, type(payload).__name__
        )
        return None

    try:
        source = bytes(payload).decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        logger.warning("Skipping plugin '%s': source is not valid UTF-8 (%s)", name, exc)
        return None

    return PluginSource(key=normalize_plugin_key(name), source=source, origin=name)
