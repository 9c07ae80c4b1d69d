from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from pathlib import Path

from textutil.contracts import SourceEntry

logger = logging.getLogger("textutil.discovery")


class DirectorySourceProvider:
    """
    Yield ``(file stem, file bytes)`` for plugin files under a directory.

    Files are read lazily, one per iteration step, in sorted path order so collisions
    resolve the same way on every platform. Unreadable files are logged and skipped.
    """

    def __init__(
        self,
        root: str | Path,
        *,
        suffixes: Iterable[str] = (".py",),
        recursive: bool = True,
    ) -> None:
        self.root = Path(root).expanduser()
        self.suffixes = tuple(suffix.lower() for suffix in suffixes)
        self.recursive = recursive

    def __iter__(self) -> Iterator[SourceEntry]:
        for path in self._candidates():
            try:
                payload = path.read_bytes()
            except OSError as exc:
                logger.warning("Skipping unreadable plugin file %s: %s", path, exc)
                continue
            yield path.stem, payload

    def _candidates(self) -> list[Path]:
        if not self.root.is_dir():
            logger.warning("Plugin directory %s does not exist", self.root)
            return []
        pattern = "**/*" if self.recursive else "*"
        try:
            paths = [
                path
                for path in self.root.glob(pattern)
                if path.suffix.lower() in self.suffixes and not path.is_dir()
            ]
        except OSError as exc:
            logger.warning("Failed to scan plugin directory %s: %s", self.root, exc)
            return []
        return sorted(paths)
