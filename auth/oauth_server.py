from __future__ import annotations

import json
import logging
import time
from typing import Callable

from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response

from auth.client_registry import ClientRegistry
from auth.cors import (
    DEFAULT_CORS_ORIGINS,
    apply_cors_response,
    cors_error_response,
    cors_text_response,
    mount_preflight_route,
)
from auth.errors import (
    InvalidRequest,
    OAuthError,
    PkceRequired,
    UnsupportedGrantType,
    UnsupportedResponseType,
)
from auth.gate import split_bearer_header
from auth.models import RegisteredClient, TokenGrant
from auth.pkce import SUPPORTED_METHODS
from auth.reaper import REAPER_INTERVAL_SECONDS, ExpiryReaper
from auth.token_store import (
    CODE_TTL_SECONDS,
    TOKEN_TTL_SECONDS,
    AccessTokenStore,
    AuthorizationCodeStore,
)
from auth.urls import append_query_params, request_base_url

LOGGER = logging.getLogger("vaultmcp.auth")
SCOPES = ["mcp:tools"]
METADATA_PATH = "/.well-known/oauth-authorization-server"


class OAuthServer:
    """Embedded authorization server for a single-authority deployment.

    Owns the client registry, the code and token stores and the expiry
    reaper. One instance is built at startup and shared by every route.
    """

    def __init__(
        self,
        *,
        public_url: str | None = None,
        client_registry: ClientRegistry | None = None,
        cors_origins: set[str] | None = None,
        code_ttl_seconds: int = CODE_TTL_SECONDS,
        token_ttl_seconds: int = TOKEN_TTL_SECONDS,
        reaper_interval_seconds: float = REAPER_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.public_url = public_url.rstrip("/") if public_url else None
        self.clock = clock
        self.client_registry = client_registry or ClientRegistry(clock=clock)
        self.codes = AuthorizationCodeStore(ttl_seconds=code_ttl_seconds, clock=clock)
        self.tokens = AccessTokenStore(ttl_seconds=token_ttl_seconds, clock=clock)
        self.cors_origins = set(DEFAULT_CORS_ORIGINS)
        if cors_origins:
            self.cors_origins.update(cors_origins)
        self.reaper = ExpiryReaper(
            self.sweep_expired, interval_seconds=reaper_interval_seconds
        )

    # -- lifecycle -------------------------------------------------------------

    def start(self) -> None:
        self.reaper.start()

    def stop(self) -> None:
        self.reaper.stop()

    def sweep_expired(self) -> dict[str, int]:
        return {
            "codes": self.codes.purge_expired(),
            "tokens": self.tokens.purge_expired(),
        }

    # -- protocol operations -----------------------------------------------------

    def metadata_payload(self, base_url: str) -> dict:
        issuer = self.public_url or base_url.rstrip("/")
        return {
            "issuer": issuer,
            "authorization_endpoint": f"{issuer}/authorize",
            "token_endpoint": f"{issuer}/token",
            "registration_endpoint": f"{issuer}/register",
            "response_types_supported": ["code"],
            "grant_types_supported": ["authorization_code"],
            "token_endpoint_auth_methods_supported": ["none", "client_secret_post"],
            "code_challenge_methods_supported": list(SUPPORTED_METHODS),
            "scopes_supported": list(SCOPES),
        }

    def register(
        self, redirect_uris: object, client_name: str | None = None
    ) -> RegisteredClient:
        client = self.client_registry.register(redirect_uris, client_name)
        LOGGER.info("Registered client %s (%s)", client.client_id[:8], client_name)
        return client

    def authorize(
        self,
        *,
        client_id: str | None,
        redirect_uri: str | None,
        response_type: str | None,
        code_challenge: str | None,
        code_challenge_method: str | None = None,
        state: str | None = None,
    ) -> str:
        """Validate an authorization request and return the redirect URL.

        Authorization is granted without a consent step and without looking
        the client up in the registry.
        """
        if not client_id:
            raise InvalidRequest("Missing client_id")
        if response_type != "code":
            raise UnsupportedResponseType(
                "Unsupported response_type. Only 'code' is supported."
            )
        if not redirect_uri:
            raise InvalidRequest("Missing redirect_uri")
        if not code_challenge:
            raise PkceRequired("Missing code_challenge (PKCE required)")

        record = self.codes.issue(
            client_id=client_id,
            redirect_uri=redirect_uri,
            code_challenge=code_challenge,
            code_challenge_method=code_challenge_method,
        )

        params = {"code": record.code}
        if state:
            params["state"] = state
        return append_query_params(redirect_uri, params)

    def exchange(
        self,
        *,
        grant_type: str | None,
        code: str | None,
        redirect_uri: str | None = None,
        client_id: str | None = None,
        code_verifier: str | None = None,
    ) -> TokenGrant:
        if grant_type != "authorization_code":
            raise UnsupportedGrantType("Only authorization_code grant is supported")
        if not code:
            raise InvalidRequest("Missing authorization code")

        record = self.codes.redeem(
            code,
            client_id=client_id,
            redirect_uri=redirect_uri,
            code_verifier=code_verifier,
        )

        token = self.tokens.issue(record.client_id)
        LOGGER.info("Access token issued for client %s", record.client_id[:8])
        return TokenGrant(access_token=token.token, expires_in=self.tokens.ttl_seconds)

    def validate_bearer(self, authorization_header: str | None) -> bool:
        if not authorization_header:
            return False

        token = split_bearer_header(authorization_header)
        if token is None:
            return False

        return self.tokens.validate(token) is not None

    # -- routes ----------------------------------------------------------------

    def mount_routes(self, mcp) -> None:
        @mcp.custom_route(METADATA_PATH, methods=["GET"])
        async def metadata_route(request: Request) -> Response:
            return apply_cors_response(
                request,
                JSONResponse(self.metadata_payload(request_base_url(request))),
                self.cors_origins,
            )

        @mcp.custom_route("/register", methods=["POST"])
        async def register_route(request: Request) -> Response:
            return await self._handle_register(request)

        @mcp.custom_route("/authorize", methods=["GET"])
        async def authorize_route(request: Request) -> Response:
            return await self._handle_authorize(request)

        @mcp.custom_route("/token", methods=["POST"])
        async def token_route(request: Request) -> Response:
            return await self._handle_token(request)

        for path in (METADATA_PATH, "/register", "/authorize", "/token"):
            mount_preflight_route(mcp, path, self.cors_origins)

    # -- handlers --------------------------------------------------------------

    async def _handle_register(self, request: Request) -> Response:
        try:
            payload = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return self._error(request, InvalidRequest("Invalid JSON body."))
        if not isinstance(payload, dict):
            return self._error(request, InvalidRequest("Invalid JSON body."))

        client_name = payload.get("client_name")
        if not isinstance(client_name, str):
            client_name = None

        try:
            client = self.register(payload.get("redirect_uris"), client_name)
        except OAuthError as error:
            LOGGER.warning("Client registration rejected: %s", error.description)
            return self._error(request, error)

        return apply_cors_response(
            request,
            JSONResponse(
                {
                    "client_id": client.client_id,
                    "client_secret": client.client_secret,
                    "redirect_uris": list(client.redirect_uris),
                    "client_name": client.client_name,
                    "token_endpoint_auth_method": "client_secret_post",
                },
                status_code=201,
            ),
            self.cors_origins,
        )

    async def _handle_authorize(self, request: Request) -> Response:
        query = request.query_params
        try:
            redirect_url = self.authorize(
                client_id=query.get("client_id"),
                redirect_uri=query.get("redirect_uri"),
                response_type=query.get("response_type"),
                code_challenge=query.get("code_challenge"),
                code_challenge_method=query.get("code_challenge_method"),
                state=query.get("state"),
            )
        except OAuthError as error:
            return cors_text_response(request, self.cors_origins, error.description, 400)

        return apply_cors_response(
            request,
            RedirectResponse(url=redirect_url, status_code=302),
            self.cors_origins,
        )

    async def _handle_token(self, request: Request) -> Response:
        try:
            body = await self._read_token_body(request)
            grant = self.exchange(
                grant_type=body.get("grant_type"),
                code=body.get("code"),
                redirect_uri=body.get("redirect_uri"),
                client_id=body.get("client_id"),
                code_verifier=body.get("code_verifier"),
            )
        except OAuthError as error:
            LOGGER.warning("Token request rejected: %s (%s)", error.error, error.description)
            return self._error(request, error)

        response = JSONResponse(grant.to_payload())
        response.headers["Cache-Control"] = "no-store"
        return apply_cors_response(request, response, self.cors_origins)

    # -- helpers ---------------------------------------------------------------

    async def _read_token_body(self, request: Request) -> dict[str, str]:
        content_type = request.headers.get("content-type", "")
        if content_type.startswith("application/json"):
            try:
                payload = await request.json()
            except (json.JSONDecodeError, UnicodeDecodeError) as error:
                raise InvalidRequest("Invalid JSON body.") from error
            if not isinstance(payload, dict):
                raise InvalidRequest("Invalid JSON body.")
            return {
                key: value for key, value in payload.items() if isinstance(value, str)
            }

        try:
            form = await request.form()
        except (HTTPException, MultiPartException) as error:
            raise InvalidRequest("Invalid form body.") from error
        return {key: str(value) for key, value in form.multi_items()}

    def _error(self, request: Request, error: OAuthError) -> Response:
        return cors_error_response(
            request=request,
            allowed_origins=self.cors_origins,
            code=error.error,
            description=error.description,
            status_code=error.status_code,
        )
