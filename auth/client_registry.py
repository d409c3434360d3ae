from __future__ import annotations

import threading
import time
from typing import Callable

from auth.crypto import CLIENT_ID_BYTES, CLIENT_SECRET_BYTES, generate_token
from auth.errors import InvalidRedirectUri, InvalidRequest
from auth.models import RegisteredClient
from auth.urls import is_allowed_redirect_uri, parse_redirect_uri


class ClientRegistry:
    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._clients: dict[str, RegisteredClient] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def register(
        self,
        redirect_uris: object,
        client_name: str | None = None,
    ) -> RegisteredClient:
        """Validate every redirect URI, then store a new client.

        Nothing is written unless all URIs pass. The returned record is the
        only place the client secret is ever handed out.
        """
        if not isinstance(redirect_uris, list) or not redirect_uris:
            raise InvalidRequest("redirect_uris is required")

        for uri in redirect_uris:
            parsed = parse_redirect_uri(uri)
            if parsed is None:
                raise InvalidRedirectUri("Invalid redirect URI format")
            if not is_allowed_redirect_uri(parsed):
                raise InvalidRedirectUri("Redirect URIs must be localhost or HTTPS")

        client = RegisteredClient(
            client_id=generate_token(CLIENT_ID_BYTES),
            client_secret=generate_token(CLIENT_SECRET_BYTES),
            redirect_uris=tuple(redirect_uris),
            client_name=client_name,
            created_at=self._clock(),
        )
        with self._lock:
            self._clients[client.client_id] = client
        return client

    def get(self, client_id: str) -> RegisteredClient | None:
        with self._lock:
            return self._clients.get(client_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._clients)
