from __future__ import annotations

from typing import Protocol


class SnapshotStorage(Protocol):
    async def read(self) -> dict[str, str] | None:
        """Return the persisted partitions, or None if nothing was written yet."""
        ...

    async def write(self, partitions: dict[str, str]) -> None:
        """Persist all partitions atomically. Raise StorageError on failure."""
        ...
