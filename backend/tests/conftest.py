"""Root conftest — shared test configuration."""

import os

# Ensure tests don't accidentally use real credentials or a real database
os.environ.setdefault("IMAGE_LOOKUP_ACCESS_KEY", "unsplash-test-fake-key")
os.environ.setdefault(
    "DATABASE_URL",
    "sqlite+aiosqlite:///test.db",
)
