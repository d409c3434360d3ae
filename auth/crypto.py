from __future__ import annotations

import hmac
import secrets

CLIENT_ID_BYTES = 32
CLIENT_SECRET_BYTES = 48
AUTHORIZATION_CODE_BYTES = 48
ACCESS_TOKEN_BYTES = 64


def generate_token(nbytes: int) -> str:
    return secrets.token_urlsafe(nbytes)


def constant_time_equals(a: str, b: str) -> bool:
    """Compare two secrets without exiting early on the first mismatch.

    Only the length is allowed to short-circuit.
    """
    if len(a) != len(b):
        return False
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))
