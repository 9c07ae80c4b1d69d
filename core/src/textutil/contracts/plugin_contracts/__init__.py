from .plugin import PluginInfo, PluginSource, normalize_plugin_key
from .registry import PluginNotFoundError, PluginRegistry
from .source_provider import SourceEntry, SourceProvider

__all__ = [
    "PluginInfo",
    "PluginSource",
    "PluginRegistry",
    "PluginNotFoundError",
    "SourceEntry",
    "SourceProvider",
    "normalize_plugin_key",
]
