from __future__ import annotations

from typing import Protocol


class DataSource(Protocol):
    # Returns the record for the next iteration, or None once the data is exhausted.
    async def feed(self) -> object | None:
        raise NotImplementedError("DataSource.feed must be implemented")
