from __future__ import annotations

from collections.abc import Iterable


class InMemoryDataSource:
    # Feeds records in order; circular sources wrap around instead of running dry.
    def __init__(self, records: Iterable[object], *, circular: bool = False) -> None:
        self._records = list(records)
        self._circular = circular
        self._position = 0

    async def feed(self) -> object | None:
        if not self._records:
            return None
        if self._position >= len(self._records):
            if not self._circular:
                return None
            self._position = 0
        record = self._records[self._position]
        self._position += 1
        return record

    def reset(self) -> None:
        self._position = 0
