from __future__ import annotations

import threading
import time
from typing import Callable

from auth.crypto import ACCESS_TOKEN_BYTES, AUTHORIZATION_CODE_BYTES, generate_token
from auth.errors import InvalidGrant, PkceRequired
from auth.models import AccessToken, AuthorizationCode
from auth.pkce import PLAIN, verify_code_challenge

CODE_TTL_SECONDS = 600
TOKEN_TTL_SECONDS = 3600


class AuthorizationCodeStore:
    """Short-lived, single-use authorization codes.

    Lookups and the mark-used commit run under one lock, so two concurrent
    redemptions of the same code can never both succeed. The PKCE hash runs
    outside it and does not hold up exchanges of other codes. Redeemed codes
    stay in a replay ledger until their original expiry; any further attempt
    to use them is reported as "already used" rather than "invalid".
    """

    def __init__(
        self,
        *,
        ttl_seconds: int = CODE_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._codes: dict[str, AuthorizationCode] = {}
        self._redeemed: dict[str, float] = {}
        self._lock = threading.Lock()

    def issue(
        self,
        *,
        client_id: str,
        redirect_uri: str,
        code_challenge: str,
        code_challenge_method: str | None = None,
    ) -> AuthorizationCode:
        record = AuthorizationCode(
            code=generate_token(AUTHORIZATION_CODE_BYTES),
            client_id=client_id,
            redirect_uri=redirect_uri,
            code_challenge=code_challenge,
            code_challenge_method=code_challenge_method or PLAIN,
            expires_at=self._clock() + self.ttl_seconds,
        )
        with self._lock:
            self._codes[record.code] = record
        return record

    def get(self, code: str) -> AuthorizationCode | None:
        with self._lock:
            return self._codes.get(code)

    def redeem(
        self,
        code: str,
        *,
        client_id: str | None = None,
        redirect_uri: str | None = None,
        code_verifier: str | None = None,
    ) -> AuthorizationCode:
        with self._lock:
            record = self._live_record(code, self._clock())

            if client_id and client_id != record.client_id:
                raise InvalidGrant("Client ID mismatch")

            if redirect_uri and redirect_uri != record.redirect_uri:
                raise InvalidGrant("Redirect URI mismatch")

            if not code_verifier:
                raise PkceRequired("Missing code_verifier (PKCE required)")

            challenge = record.code_challenge
            method = record.code_challenge_method

        # Hashing happens outside the lock; the commit below re-checks liveness.
        if not verify_code_challenge(code_verifier, challenge, method):
            raise InvalidGrant("Invalid code_verifier")

        with self._lock:
            record = self._live_record(code, self._clock())
            record.used = True
            del self._codes[code]
            self._redeemed[code] = record.expires_at
            return record

    def _live_record(self, code: str, now: float) -> AuthorizationCode:
        # Caller holds the lock.
        record = self._codes.get(code)

        if record is None:
            redeemed_until = self._redeemed.get(code)
            if redeemed_until is not None and now <= redeemed_until:
                raise InvalidGrant("Authorization code has already been used")
            raise InvalidGrant("Invalid authorization code")

        if record.is_expired(now):
            del self._codes[code]
            raise InvalidGrant("Authorization code has expired")

        if record.used:
            del self._codes[code]
            raise InvalidGrant("Authorization code has already been used")

        return record

    def purge_expired(self) -> int:
        with self._lock:
            now = self._clock()
            expired_codes = [
                code for code, record in self._codes.items() if record.is_expired(now)
            ]
            for code in expired_codes:
                del self._codes[code]

            expired_ledger = [
                code for code, expires_at in self._redeemed.items() if now > expires_at
            ]
            for code in expired_ledger:
                del self._redeemed[code]

        return len(expired_codes) + len(expired_ledger)

    def __len__(self) -> int:
        with self._lock:
            return len(self._codes)


class AccessTokenStore:
    def __init__(
        self,
        *,
        ttl_seconds: int = TOKEN_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._tokens: dict[str, AccessToken] = {}
        self._lock = threading.Lock()

    def issue(self, client_id: str) -> AccessToken:
        record = AccessToken(
            token=generate_token(ACCESS_TOKEN_BYTES),
            client_id=client_id,
            expires_at=self._clock() + self.ttl_seconds,
        )
        with self._lock:
            self._tokens[record.token] = record
        return record

    def get(self, token: str) -> AccessToken | None:
        with self._lock:
            return self._tokens.get(token)

    def validate(self, token: str) -> AccessToken | None:
        with self._lock:
            record = self._tokens.get(token)
            if record is None:
                return None
            if record.is_expired(self._clock()):
                del self._tokens[token]
                return None
            return record

    def purge_expired(self) -> int:
        with self._lock:
            now = self._clock()
            expired = [
                token for token, record in self._tokens.items() if record.is_expired(now)
            ]
            for token in expired:
                del self._tokens[token]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)
