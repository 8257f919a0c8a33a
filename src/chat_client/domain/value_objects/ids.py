from __future__ import annotations

import uuid
from typing import NewType

ThreadId = NewType("ThreadId", str)
MessageId = NewType("MessageId", str)

LOCAL_ID_PREFIX = "local-"


def new_local_id() -> str:
    """Id for an entity the server has not acknowledged yet."""
    return f"{LOCAL_ID_PREFIX}{uuid.uuid4().hex}"


def is_local_id(value: str) -> bool:
    return value.startswith(LOCAL_ID_PREFIX)
