from __future__ import annotations

from collections.abc import Iterator
from typing import Protocol, runtime_checkable

SourceEntry = tuple[str, bytes]


@runtime_checkable
class SourceProvider(Protocol):
    """
    Lazy producer of candidate plugin sources.

    Yields ``(base_name_without_extension, raw_bytes)`` pairs. Providers skip entries
    they cannot read; payload decoding is the registry's job.
    """

    def __iter__(self) -> Iterator[SourceEntry]: ...
