from __future__ import annotations

from dataclasses import dataclass

from chat_client.domain.value_objects.enums import ThreadKind


@dataclass(frozen=True, slots=True)
class Selection:
    thread_id: str | None = None
    collection: ThreadKind = ThreadKind.DIRECT

    @property
    def is_empty(self) -> bool:
        return self.thread_id is None
