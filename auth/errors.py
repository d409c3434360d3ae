from __future__ import annotations


class OAuthError(RuntimeError):
    error = "server_error"
    status_code = 400

    def __init__(self, description: str) -> None:
        super().__init__(description)
        self.description = description

    def to_payload(self) -> dict:
        return {"error": self.error, "error_description": self.description}


class InvalidRequest(OAuthError):
    error = "invalid_request"


class PkceRequired(InvalidRequest):
    pass


class InvalidRedirectUri(OAuthError):
    error = "invalid_redirect_uri"


class UnsupportedResponseType(OAuthError):
    error = "unsupported_response_type"


class UnsupportedGrantType(OAuthError):
    error = "unsupported_grant_type"


class InvalidGrant(OAuthError):
    error = "invalid_grant"


class ConfigurationError(RuntimeError):
    """Raised when the static bearer secret cannot be resolved."""
