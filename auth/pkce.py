from __future__ import annotations

import base64
import hashlib
import secrets

S256 = "S256"
PLAIN = "plain"
SUPPORTED_METHODS = (S256, PLAIN)


def generate_code_verifier() -> str:
    while True:
        verifier = secrets.token_urlsafe(64)
        if 43 <= len(verifier) <= 128:
            return verifier


def generate_code_challenge(verifier: str) -> str:
    digest = hashlib.sha256(verifier.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).decode("utf-8").rstrip("=")


def verify_code_challenge(code_verifier: str, code_challenge: str, method: str) -> bool:
    if method == S256:
        return generate_code_challenge(code_verifier) == code_challenge
    if method == PLAIN:
        return code_verifier == code_challenge
    return False
