from auth.pkce import (
    PLAIN,
    S256,
    SUPPORTED_METHODS,
    generate_code_challenge,
    generate_code_verifier,
    verify_code_challenge,
)

RFC7636_VERIFIER = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
RFC7636_CHALLENGE = "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"


def test_s256_challenge_matches_rfc_vector() -> None:
    assert generate_code_challenge(RFC7636_VERIFIER) == RFC7636_CHALLENGE


def test_verify_s256() -> None:
    assert verify_code_challenge(RFC7636_VERIFIER, RFC7636_CHALLENGE, S256)
    assert not verify_code_challenge("wrong-verifier", RFC7636_CHALLENGE, S256)


def test_verify_plain_compares_directly() -> None:
    assert verify_code_challenge("same-value", "same-value", PLAIN)
    assert not verify_code_challenge("same-value", "other-value", PLAIN)


def test_unknown_method_never_verifies() -> None:
    assert not verify_code_challenge(RFC7636_VERIFIER, RFC7636_CHALLENGE, "S512")
    assert not verify_code_challenge("x", "x", "S512")


def test_generated_verifier_round_trips() -> None:
    verifier = generate_code_verifier()
    assert 43 <= len(verifier) <= 128
    assert verify_code_challenge(verifier, generate_code_challenge(verifier), S256)


def test_supported_methods_prefer_s256() -> None:
    assert list(SUPPORTED_METHODS) == ["S256", "plain"]
