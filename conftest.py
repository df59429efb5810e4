"""Root conftest: pins settings for the test run before any module imports."""
from __future__ import annotations

import os

_TEST_ENV = {
    "API_BASE_URL": "http://api.test",
    "REALTIME_URL": "ws://relay.test/ws",
    "ACCESS_TOKEN": "test-token",
    "MESSAGE_PAGE_SIZE": "20",
    "CONVERSATION_PAGE_SIZE": "20",
    "TYPING_EXPIRY_SECONDS": "3",
    "TYPING_IDLE_SECONDS": "2",
    "RESYNC_ON_RECONNECT": "true",
}

for key, value in _TEST_ENV.items():
    os.environ[key] = value
