from __future__ import annotations

from dataclasses import dataclass


def normalize_plugin_key(name: str) -> str:
    """Return the registry key for a plugin name (stripped, lower-cased)."""
    return name.strip().lower()


@dataclass(frozen=True, slots=True)
class PluginInfo:
    key: str
    origin: str | None = None
    size_chars: int = 0


@dataclass(frozen=True, slots=True)
class PluginSource:
    """
    A named unit of plugin script text.

    Immutable once built: the registry replaces entries, it never edits them.
    """

    key: str
    source: str

    # Where the source came from (file stem, path, "memory"); diagnostics only
    origin: str | None = None

    @property
    def info(self) -> PluginInfo:
        return PluginInfo(key=self.key, origin=self.origin, size_chars=len(self.source))

    @property
    def filename(self) -> str:
        """Pseudo filename used when compiling the script."""
        return f"<plugin:{self.key}>"
