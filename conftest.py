"""Pin client settings for the test run before chat_client.config is imported."""
from __future__ import annotations

import os
from pathlib import Path

TEST_DEFAULTS = {
    "API_BASE_URL": "http://testserver",
    "CACHE_DATABASE_URL": "sqlite+aiosqlite:///:memory:",
    "AUTH_TOKEN": "",
}


def _read_env_file(path: Path) -> dict[str, str]:
    if not path.exists():
        return {}
    pairs = (line.split("=", 1) for line in path.read_text().splitlines() if "=" in line)
    return {k.strip(): v.strip() for k, v in pairs if not k.lstrip().startswith("#")}


for key, value in {**TEST_DEFAULTS, **_read_env_file(Path(__file__).with_name(".env.test"))}.items():
    os.environ.setdefault(key, value)
