"""Root conftest — shared test configuration."""

import os

# Ensure tests don't accidentally use real API keys or servers
os.environ.setdefault("ANTHROPIC_API_KEY", "sk-ant-test-fake-key")
os.environ.setdefault(
    "DATABASE_URL",
    "sqlite+aiosqlite:///test.db",
)
os.environ.setdefault("SLACK_SIGNING_SECRET", "test-signing-secret")
os.environ.setdefault("SITE_URL", "https://toolfinder.test")
os.environ.setdefault("RUN_EMBEDDED_WORKER", "false")
