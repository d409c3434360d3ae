from __future__ import annotations

import asyncio
import logging
import threading
from typing import Callable

from auth.crypto import constant_time_equals
from auth.errors import ConfigurationError

LOGGER = logging.getLogger("vaultmcp.auth")


def fetch_secret_from_secrets_manager(
    secret_id: str,
    *,
    client=None,
    region_name: str | None = None,
) -> str:
    import boto3
    from botocore.exceptions import BotoCoreError, ClientError

    if client is None:
        client = boto3.client("secretsmanager", region_name=region_name)
    try:
        response = client.get_secret_value(SecretId=secret_id)
    except (BotoCoreError, ClientError) as error:
        raise ConfigurationError(
            f"Failed to retrieve auth token from Secrets Manager: {error}"
        ) from error

    secret = response.get("SecretString")
    if not secret:
        raise ConfigurationError("Failed to retrieve auth token from Secrets Manager")
    return secret


class StaticTokenGate:
    """Pre-shared bearer secret for local and single-user deployments.

    The secret comes from ``token`` when given, otherwise it is fetched once
    through ``fetch_secret_fn(secret_id)`` and cached for the process.
    """

    def __init__(
        self,
        *,
        token: str | None = None,
        secret_id: str | None = None,
        fetch_secret_fn: Callable[[str], str] = fetch_secret_from_secrets_manager,
    ) -> None:
        self._token = token or None
        self._secret_id = secret_id or None
        self._fetch_secret_fn = fetch_secret_fn
        self._cached: str | None = None
        self._lock = threading.Lock()

    def resolve(self) -> str:
        with self._lock:
            if self._cached:
                return self._cached

            if self._token:
                self._cached = self._token
                return self._cached

            if not self._secret_id:
                raise ConfigurationError(
                    "Neither AUTH_TOKEN nor AUTH_TOKEN_SECRET_ARN is configured"
                )

            secret = self._fetch_secret_fn(self._secret_id)
            if not secret:
                raise ConfigurationError("Resolved auth token is empty")
            self._cached = secret
            return self._cached

    async def aresolve(self) -> str:
        return await asyncio.to_thread(self.resolve)

    def preload(self) -> bool:
        try:
            self.resolve()
        except Exception as error:
            LOGGER.warning("Failed to pre-load auth token: %s", error)
            return False
        return True

    async def check(self, presented: str) -> bool:
        expected = await self.aresolve()
        return constant_time_equals(presented, expected)

    def reset_cache(self) -> None:
        with self._lock:
            self._cached = None
