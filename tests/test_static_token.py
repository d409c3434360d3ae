import boto3
import pytest
from botocore.stub import Stubber

from auth.errors import ConfigurationError
from auth.static_token import StaticTokenGate, fetch_secret_from_secrets_manager

SECRET_ARN = "arn:aws:secretsmanager:us-east-1:123456789012:secret:vault-token"


def _secrets_client():
    return boto3.client(
        "secretsmanager",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


def test_direct_token_wins() -> None:
    def _fail(_secret_id: str) -> str:
        raise AssertionError("secret store should not be consulted")

    gate = StaticTokenGate(token="local", secret_id=SECRET_ARN, fetch_secret_fn=_fail)

    assert gate.resolve() == "local"


def test_secret_is_fetched_once_and_cached() -> None:
    calls: list[str] = []

    def _fetch(secret_id: str) -> str:
        calls.append(secret_id)
        return "from-secrets-manager"

    gate = StaticTokenGate(secret_id=SECRET_ARN, fetch_secret_fn=_fetch)

    assert gate.resolve() == "from-secrets-manager"
    assert gate.resolve() == "from-secrets-manager"
    assert calls == [SECRET_ARN]

    gate.reset_cache()
    gate.resolve()
    assert calls == [SECRET_ARN, SECRET_ARN]


def test_resolve_without_any_source() -> None:
    with pytest.raises(ConfigurationError, match="Neither AUTH_TOKEN nor AUTH_TOKEN_SECRET_ARN"):
        StaticTokenGate().resolve()


def test_resolve_rejects_empty_secret() -> None:
    gate = StaticTokenGate(secret_id=SECRET_ARN, fetch_secret_fn=lambda _secret_id: "")

    with pytest.raises(ConfigurationError):
        gate.resolve()


def test_preload_reports_failure(caplog) -> None:
    def _fail(_secret_id: str) -> str:
        raise ConfigurationError("boom")

    gate = StaticTokenGate(secret_id=SECRET_ARN, fetch_secret_fn=_fail)

    assert gate.preload() is False
    assert "Failed to pre-load auth token" in caplog.text


def test_preload_success() -> None:
    assert StaticTokenGate(token="local").preload() is True


@pytest.mark.asyncio
async def test_check_compares_presented_token() -> None:
    gate = StaticTokenGate(token="local-secret")

    assert await gate.check("local-secret") is True
    assert await gate.check("local-secreT") is False
    assert await gate.check("") is False


@pytest.mark.asyncio
async def test_aresolve_runs_fetch_off_loop() -> None:
    gate = StaticTokenGate(secret_id=SECRET_ARN, fetch_secret_fn=lambda _secret_id: "remote")
    assert await gate.aresolve() == "remote"


def test_fetch_secret_from_secrets_manager() -> None:
    client = _secrets_client()
    stubber = Stubber(client)
    stubber.add_response(
        "get_secret_value",
        {"SecretString": "stored-token"},
        {"SecretId": SECRET_ARN},
    )

    with stubber:
        assert fetch_secret_from_secrets_manager(SECRET_ARN, client=client) == "stored-token"


def test_fetch_secret_wraps_client_errors() -> None:
    client = _secrets_client()
    stubber = Stubber(client)
    stubber.add_client_error(
        "get_secret_value",
        service_error_code="ResourceNotFoundException",
        service_message="Secrets Manager can't find the specified secret.",
        http_status_code=400,
    )

    with stubber, pytest.raises(ConfigurationError, match="Failed to retrieve auth token"):
        fetch_secret_from_secrets_manager(SECRET_ARN, client=client)


def test_fetch_secret_rejects_binary_only_secret() -> None:
    client = _secrets_client()
    stubber = Stubber(client)
    stubber.add_response("get_secret_value", {"SecretBinary": b"\x00\x01"})

    with stubber, pytest.raises(ConfigurationError):
        fetch_secret_from_secrets_manager(SECRET_ARN, client=client)
