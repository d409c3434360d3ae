from __future__ import annotations

import logging

LOGGER = logging.getLogger("vaultmcp")
APP_VERSION = "0.1.0"
SERVER_NAME = "obsidian-vault-mcp"

AUTH_MODE_OAUTH = "oauth"
AUTH_MODE_STATIC = "static"
AUTH_MODES = (AUTH_MODE_OAUTH, AUTH_MODE_STATIC)

BACKEND_S3 = "s3"
BACKEND_MEMORY = "memory"
BACKENDS = (BACKEND_S3, BACKEND_MEMORY)

MCP_PATH = "/mcp"
HEALTH_PATH = "/health"
