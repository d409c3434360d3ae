from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp, Receive, Scope, Send

from auth.errors import ConfigurationError

if TYPE_CHECKING:
    from auth.oauth_server import OAuthServer
    from auth.static_token import StaticTokenGate

LOGGER = logging.getLogger("vaultmcp.auth")

UNAUTHORIZED_CODE = -32001
INTERNAL_ERROR_CODE = -32000
WWW_AUTHENTICATE = 'Bearer realm="mcp"'


def jsonrpc_error_response(code: int, message: str, status_code: int) -> JSONResponse:
    response = JSONResponse(
        {
            "jsonrpc": "2.0",
            "error": {"code": code, "message": message},
            "id": None,
        },
        status_code=status_code,
    )
    if status_code == 401:
        response.headers["WWW-Authenticate"] = WWW_AUTHENTICATE
    return response


def split_bearer_header(authorization_header: str) -> str | None:
    parts = authorization_header.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer":
        return None
    return parts[1]


class BearerGateMiddleware:
    """ASGI middleware guarding the MCP endpoint with a bearer credential.

    Exactly one of ``oauth_server`` (tokens issued by the embedded
    authorization server) or ``static_gate`` (one pre-shared secret) is used.
    Requests outside ``protected_path``, exempt paths and CORS preflights
    pass straight through.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        oauth_server: OAuthServer | None = None,
        static_gate: StaticTokenGate | None = None,
        protected_path: str = "/mcp",
        exempt_paths: tuple[str, ...] = ("/health",),
    ) -> None:
        if (oauth_server is None) == (static_gate is None):
            raise ValueError("BearerGateMiddleware needs exactly one of oauth_server or static_gate.")
        self.app = app
        self.oauth_server = oauth_server
        self.static_gate = static_gate
        self.protected_path = protected_path.rstrip("/")
        self.exempt_paths = exempt_paths

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not self._is_protected(scope):
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        if self.static_gate is not None:
            rejection = await self._check_static(request)
        else:
            rejection = self._check_oauth(request)

        if rejection is not None:
            await rejection(scope, receive, send)
            return
        await self.app(scope, receive, send)

    def _is_protected(self, scope: Scope) -> bool:
        path = scope.get("path", "")
        if path in self.exempt_paths:
            return False
        if scope.get("method") == "OPTIONS":
            return False
        return path == self.protected_path or path.startswith(f"{self.protected_path}/")

    def _check_oauth(self, request: Request) -> Response | None:
        try:
            valid = self.oauth_server.validate_bearer(request.headers.get("authorization"))
        except Exception:
            LOGGER.exception("Bearer token validation failed")
            return jsonrpc_error_response(INTERNAL_ERROR_CODE, "Internal server error", 500)

        if not valid:
            return jsonrpc_error_response(
                UNAUTHORIZED_CODE,
                "Unauthorized: missing, invalid or expired access token",
                401,
            )
        return None

    async def _check_static(self, request: Request) -> Response | None:
        header = request.headers.get("authorization")
        if not header:
            return jsonrpc_error_response(
                UNAUTHORIZED_CODE, "Missing Authorization header", 401
            )

        presented = split_bearer_header(header)
        if presented is None:
            return jsonrpc_error_response(
                UNAUTHORIZED_CODE,
                "Invalid Authorization header format. Expected: Bearer <token>",
                401,
            )

        try:
            allowed = await self.static_gate.check(presented)
        except ConfigurationError as error:
            LOGGER.error("Auth token retrieval failed: %s", error)
            return jsonrpc_error_response(
                INTERNAL_ERROR_CODE, "Server configuration error", 500
            )
        except Exception:
            LOGGER.exception("Auth token retrieval failed")
            return jsonrpc_error_response(
                INTERNAL_ERROR_CODE, "Server configuration error", 500
            )

        if not allowed:
            return jsonrpc_error_response(UNAUTHORIZED_CODE, "Invalid token", 403)
        return None
