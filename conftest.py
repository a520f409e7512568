"""Root conftest: pins chat settings for tests before chat_client.config is imported."""
from __future__ import annotations

import os
from pathlib import Path

_TEST_DEFAULTS = {
    "API_BASE_URL": "https://chat.test",
    "REDIS_URL": "redis://localhost:6379/15",
    "CURRENT_USER_ID": "42",
    "LOG_LEVEL": "DEBUG",
}

_env_test = Path(__file__).resolve().parent / ".env.test"
if _env_test.exists():
    for line in _env_test.read_text().splitlines():
        key, sep, value = line.strip().partition("=")
        if sep and not key.startswith("#"):
            os.environ.setdefault(key.strip(), value.strip())

for key, value in _TEST_DEFAULTS.items():
    os.environ.setdefault(key, value)
