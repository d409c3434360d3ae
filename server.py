from __future__ import annotations

import os
from typing import TYPE_CHECKING

from starlette.middleware import Middleware

from auth.gate import BearerGateMiddleware
from auth.oauth_server import OAuthServer
from auth.static_token import StaticTokenGate, fetch_secret_from_secrets_manager
from vault.store import MemoryVaultStore, VaultStore
from vault.tools import register_vault_tools
from vaultmcp.constants import (
    APP_VERSION,
    AUTH_MODE_STATIC,
    BACKEND_MEMORY,
    HEALTH_PATH,
    LOGGER,
    MCP_PATH,
    SERVER_NAME,
)
from vaultmcp.env import (
    get_auth_mode,
    get_backend,
    get_public_url,
    get_reaper_interval,
    load_env,
    parse_csv_env,
    setup_logging,
    validate_env,
)
from vaultmcp.mcp_app import mount_health_route

if TYPE_CHECKING:
    from fastmcp import FastMCP


def build_vault_store() -> VaultStore:
    if get_backend() == BACKEND_MEMORY:
        LOGGER.warning("Using in-memory vault store; notes are lost on restart.")
        return MemoryVaultStore()

    from vault.s3 import S3VaultStore

    return S3VaultStore(
        os.getenv("S3_BUCKET_NAME", "").strip(),
        region_name=os.getenv("AWS_REGION", "us-east-1"),
    )


def build_static_gate() -> StaticTokenGate:
    region = os.getenv("AWS_REGION", "us-east-1")

    def fetch_secret(secret_id: str) -> str:
        return fetch_secret_from_secrets_manager(secret_id, region_name=region)

    return StaticTokenGate(
        token=os.getenv("AUTH_TOKEN", "").strip() or None,
        secret_id=os.getenv("AUTH_TOKEN_SECRET_ARN", "").strip() or None,
        fetch_secret_fn=fetch_secret,
    )


def build_gate_middleware(
    *,
    oauth_server: OAuthServer | None = None,
    static_gate: StaticTokenGate | None = None,
) -> list[Middleware]:
    return [
        Middleware(
            BearerGateMiddleware,
            oauth_server=oauth_server,
            static_gate=static_gate,
            protected_path=MCP_PATH,
            exempt_paths=(HEALTH_PATH,),
        )
    ]


def create_mcp(vault_store: VaultStore | None = None) -> "FastMCP":
    from fastmcp import FastMCP

    load_env()
    setup_logging()
    auth_mode = get_auth_mode()
    validate_env(auth_mode)

    store = vault_store or build_vault_store()
    mcp = FastMCP(name=SERVER_NAME)
    register_vault_tools(mcp, store)
    mount_health_route(mcp, auth_mode=auth_mode)

    if auth_mode == AUTH_MODE_STATIC:
        static_gate = build_static_gate()
        static_gate.preload()
        middleware = build_gate_middleware(static_gate=static_gate)
    else:
        oauth_server = OAuthServer(
            public_url=get_public_url(),
            cors_origins=parse_csv_env("VAULT_CORS_ORIGINS"),
            reaper_interval_seconds=get_reaper_interval(),
        )
        oauth_server.mount_routes(mcp)
        setattr(mcp, "_oauth_server", oauth_server)
        middleware = build_gate_middleware(oauth_server=oauth_server)

    setattr(mcp, "_auth_mode", auth_mode)
    setattr(mcp, "_gate_middleware", middleware)
    LOGGER.info("%s %s ready (auth mode: %s)", SERVER_NAME, APP_VERSION, auth_mode)
    return mcp


def main() -> None:
    host = os.getenv("MCP_HOST", "127.0.0.1")
    port = int(os.getenv("MCP_PORT", "8080"))
    mcp = create_mcp()

    oauth_server = getattr(mcp, "_oauth_server", None)
    if oauth_server is not None:
        oauth_server.start()
    try:
        mcp.run(
            transport="streamable-http",
            host=host,
            port=port,
            middleware=getattr(mcp, "_gate_middleware", None),
        )
    finally:
        if oauth_server is not None:
            oauth_server.stop()


if __name__ == "__main__":
    main()
