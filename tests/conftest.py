import pytest

from tests.oauth_helpers import FakeClock
from vault.store import MemoryVaultStore

CONFIG_ENV_VARS = (
    "VAULT_AUTH_MODE",
    "VAULT_BACKEND",
    "VAULT_MCP_PUBLIC_URL",
    "VAULT_CORS_ORIGINS",
    "VAULT_REAPER_INTERVAL",
    "VAULT_MCP_DEBUG",
    "AUTH_TOKEN",
    "AUTH_TOKEN_SECRET_ARN",
    "S3_BUCKET_NAME",
    "MCP_HOST",
    "MCP_PORT",
)


@pytest.fixture(autouse=True)
def _clean_config_env(monkeypatch):
    for key in CONFIG_ENV_VARS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_vault() -> MemoryVaultStore:
    return MemoryVaultStore(
        {
            "Inbox/todo.md": "# Todo\n\n- buy milk\n- write the Quarterly report",
            "Inbox/ideas.md": "Ideas for the garden",
            "Projects/alpha/plan.md": "Alpha plan: ship the quarterly release",
            "readme.md": "Welcome to the vault",
            "attachments/image.png": "binary",
        }
    )
