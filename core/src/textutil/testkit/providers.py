from __future__ import annotations

from collections.abc import Iterator, Mapping

from textutil.contracts import SourceEntry


class InMemorySourceProvider:
    """
    Source provider backed by in-memory entries, for tests.

    Text payloads are encoded as UTF-8; bytes pass through untouched so tests can
    inject undecodable sources.
    """

    def __init__(self, entries: Mapping[str, str | bytes] | list[tuple[str, str | bytes]]) -> None:
        items = entries.items() if isinstance(entries, Mapping) else entries
        self._entries: list[tuple[str, str | bytes]] = list(items)
        self.iterations = 0

    def __iter__(self) -> Iterator[SourceEntry]:
        self.iterations += 1
        for name, payload in self._entries:
            if isinstance(payload, str):
                payload = payload.encode("utf-8")
            yield name, payload
