from __future__ import annotations

import logging
import os
from pathlib import Path
from urllib.parse import urlparse

from .constants import (
    AUTH_MODE_OAUTH,
    AUTH_MODE_STATIC,
    AUTH_MODES,
    BACKEND_S3,
    BACKENDS,
    LOGGER,
)


def is_truthy(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def parse_csv_env(key: str) -> set[str]:
    raw = os.getenv(key, "")
    if not raw.strip():
        return set()
    return {item.strip() for item in raw.split(",") if item.strip()}


def _get_env_int(key: str, default: int) -> int:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{key} must be an integer value.")


def load_env() -> None:
    env_path = Path(__file__).resolve().parent.parent / ".env"
    if not env_path.exists():
        return
    from dotenv import load_dotenv

    load_dotenv(env_path, override=True)


def get_auth_mode() -> str:
    mode = os.getenv("VAULT_AUTH_MODE", AUTH_MODE_OAUTH).strip().lower() or AUTH_MODE_OAUTH
    if mode not in AUTH_MODES:
        raise RuntimeError(
            f"VAULT_AUTH_MODE must be one of {', '.join(AUTH_MODES)} (got {mode!r})."
        )
    return mode


def get_backend() -> str:
    backend = os.getenv("VAULT_BACKEND", BACKEND_S3).strip().lower() or BACKEND_S3
    if backend not in BACKENDS:
        raise RuntimeError(
            f"VAULT_BACKEND must be one of {', '.join(BACKENDS)} (got {backend!r})."
        )
    return backend


def get_public_url() -> str | None:
    return os.getenv("VAULT_MCP_PUBLIC_URL", "").strip() or None


def get_reaper_interval() -> int:
    return _get_env_int("VAULT_REAPER_INTERVAL", 300)


def validate_env(auth_mode: str) -> None:
    missing: list[str] = []

    if auth_mode == AUTH_MODE_STATIC:
        if not os.getenv("AUTH_TOKEN", "").strip() and not os.getenv(
            "AUTH_TOKEN_SECRET_ARN", ""
        ).strip():
            missing.append("AUTH_TOKEN or AUTH_TOKEN_SECRET_ARN")

    if get_backend() == BACKEND_S3 and not os.getenv("S3_BUCKET_NAME", "").strip():
        missing.append("S3_BUCKET_NAME")

    if missing:
        raise RuntimeError(
            f"Missing required environment variables for {auth_mode} mode: {', '.join(missing)}"
        )

    public_url = get_public_url()
    if public_url:
        parsed = urlparse(public_url)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise RuntimeError(
                "VAULT_MCP_PUBLIC_URL must be an absolute http(s) URL (for example: "
                "https://vault.example.com)."
            )

    get_reaper_interval()


def setup_logging() -> bool:
    debug_enabled = is_truthy(os.getenv("VAULT_MCP_DEBUG", "1"))
    if debug_enabled:
        logging.basicConfig(level=logging.INFO)
        LOGGER.setLevel(logging.INFO)
    return debug_enabled
