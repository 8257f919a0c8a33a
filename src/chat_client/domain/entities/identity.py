from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SessionIdentity:
    """The acting user, resolved once per session."""

    user_id: str
    username: str = ""
    email: str = ""
    is_admin: bool = False

    def is_me(self, sender_id: str | None) -> bool:
        return sender_id is not None and sender_id == self.user_id
