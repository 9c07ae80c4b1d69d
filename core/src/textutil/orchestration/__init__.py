"""Plugin orchestration: registry population and lookup."""

from textutil.orchestration.registry import DictPluginRegistry, build_plugin_map

__all__ = ["DictPluginRegistry", "build_plugin_map"]
