from concurrent.futures import ThreadPoolExecutor

from auth.errors import InvalidGrant
from tests.oauth_helpers import (
    FakeClock,
    _build_oauth_server,
    _prepare_authorization_code,
    _token_request,
)


def test_token_exchange_issues_bearer_token() -> None:
    oauth, test_client = _build_oauth_server()
    auth = _prepare_authorization_code(test_client)

    response = _token_request(test_client, auth)

    assert response.status_code == 200
    assert response.headers["cache-control"] == "no-store"
    payload = response.json()
    assert payload["token_type"] == "Bearer"
    assert payload["expires_in"] == 3600
    record = oauth.tokens.get(payload["access_token"])
    assert record is not None
    assert record.client_id == auth["client_id"]
    assert oauth.validate_bearer(f"Bearer {payload['access_token']}")


def test_token_accepts_json_body() -> None:
    _, test_client = _build_oauth_server()
    auth = _prepare_authorization_code(test_client)

    response = test_client.post(
        "/token",
        json={
            "grant_type": "authorization_code",
            "code": auth["authorization_code"],
            "redirect_uri": auth["redirect_uri"],
            "client_id": auth["client_id"],
            "code_verifier": auth["code_verifier"],
        },
    )

    assert response.status_code == 200
    assert response.json()["token_type"] == "Bearer"


def test_token_binds_to_code_owner_when_client_id_omitted() -> None:
    oauth, test_client = _build_oauth_server()
    auth = _prepare_authorization_code(test_client)

    response = _token_request(test_client, auth, client_id=None, redirect_uri=None)

    assert response.status_code == 200
    assert oauth.tokens.get(response.json()["access_token"]).client_id == auth["client_id"]


def test_token_plain_challenge() -> None:
    _, test_client = _build_oauth_server()
    auth = _prepare_authorization_code(
        test_client, code_verifier="plain-verifier-value", code_challenge_method=None
    )

    assert _token_request(test_client, auth).status_code == 200


def test_token_code_is_single_use() -> None:
    oauth, test_client = _build_oauth_server()
    auth = _prepare_authorization_code(test_client)

    first = _token_request(test_client, auth)
    second = _token_request(test_client, auth)

    assert first.status_code == 200
    assert second.status_code == 400
    assert second.json() == {
        "error": "invalid_grant",
        "error_description": "Authorization code has already been used",
    }
    assert len(oauth.tokens) == 1


def test_token_concurrent_exchange_issues_one_token() -> None:
    oauth, test_client = _build_oauth_server()
    auth = _prepare_authorization_code(test_client)

    def attempt(_: int):
        try:
            return oauth.exchange(
                grant_type="authorization_code",
                code=auth["authorization_code"],
                redirect_uri=auth["redirect_uri"],
                client_id=auth["client_id"],
                code_verifier=auth["code_verifier"],
            )
        except Exception as error:
            return error

    with ThreadPoolExecutor(max_workers=8) as pool:
        outcomes = list(pool.map(attempt, range(8)))

    grants = [outcome for outcome in outcomes if not isinstance(outcome, Exception)]
    failures = [outcome for outcome in outcomes if isinstance(outcome, Exception)]
    assert len(grants) == 1
    assert len(failures) == 7
    assert all(isinstance(failure, InvalidGrant) for failure in failures)
    assert {failure.description for failure in failures} == {
        "Authorization code has already been used"
    }
    assert len(oauth.tokens) == 1


def test_token_expired_code() -> None:
    clock = FakeClock()
    oauth, test_client = _build_oauth_server(clock=clock)
    auth = _prepare_authorization_code(test_client)
    clock.advance(601)

    response = _token_request(test_client, auth)

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_grant"
    assert response.json()["error_description"] == "Authorization code has expired"
    assert len(oauth.codes) == 0


def test_token_unknown_code() -> None:
    _, test_client = _build_oauth_server()
    auth = _prepare_authorization_code(test_client)

    response = _token_request(test_client, auth, code="made-up-code")

    assert response.status_code == 400
    assert response.json()["error_description"] == "Invalid authorization code"


def test_token_rejects_client_mismatch() -> None:
    _, test_client = _build_oauth_server()
    auth = _prepare_authorization_code(test_client)

    response = _token_request(test_client, auth, client_id="another-client")

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_grant"
    assert response.json()["error_description"] == "Client ID mismatch"


def test_token_rejects_redirect_mismatch() -> None:
    _, test_client = _build_oauth_server()
    auth = _prepare_authorization_code(test_client)

    response = _token_request(test_client, auth, redirect_uri="http://localhost:9999/other")

    assert response.status_code == 400
    assert response.json()["error_description"] == "Redirect URI mismatch"


def test_token_requires_code_verifier() -> None:
    _, test_client = _build_oauth_server()
    auth = _prepare_authorization_code(test_client)

    response = _token_request(test_client, auth, code_verifier=None)

    assert response.status_code == 400
    assert response.json() == {
        "error": "invalid_request",
        "error_description": "Missing code_verifier (PKCE required)",
    }


def test_token_rejects_wrong_verifier_then_allows_correct_one() -> None:
    _, test_client = _build_oauth_server()
    auth = _prepare_authorization_code(test_client)

    rejected = _token_request(test_client, auth, code_verifier="wrong-verifier")
    accepted = _token_request(test_client, auth)

    assert rejected.status_code == 400
    assert rejected.json()["error_description"] == "Invalid code_verifier"
    assert accepted.status_code == 200


def test_token_rejects_unsupported_grant_type() -> None:
    _, test_client = _build_oauth_server()
    auth = _prepare_authorization_code(test_client)

    response = _token_request(test_client, auth, grant_type="refresh_token")

    assert response.status_code == 400
    assert response.json() == {
        "error": "unsupported_grant_type",
        "error_description": "Only authorization_code grant is supported",
    }


def test_token_requires_code() -> None:
    _, test_client = _build_oauth_server()

    response = test_client.post("/token", data={"grant_type": "authorization_code"})

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_request"
    assert response.json()["error_description"] == "Missing authorization code"


def test_token_rejects_invalid_json() -> None:
    _, test_client = _build_oauth_server()

    response = test_client.post(
        "/token", content=b"[1, 2", headers={"content-type": "application/json"}
    )

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_request"


def test_token_rejects_malformed_form_body() -> None:
    _, test_client = _build_oauth_server()

    response = test_client.post(
        "/token", content=b"grant_type=authorization_code", headers={"content-type": "multipart/form-data"}
    )

    assert response.status_code == 400
    assert response.headers["content-type"].startswith("application/json")
    assert response.json() == {
        "error": "invalid_request",
        "error_description": "Invalid form body.",
    }
