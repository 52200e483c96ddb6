import time

import jwt
import pytest

from app.core.claim_tokens import decode_claim_token, generate_claim_token, verify_claim_token


def test_generated_token_verifies():
    token = generate_claim_token("TEST001")

    payload = verify_claim_token(token)

    assert payload is not None
    assert payload["pot_code"] == "TEST001"
    assert payload["exp"] - payload["iat"] == 600


@pytest.mark.parametrize("token", ["not-a-jwt", "invalid.token.here", ""])
def test_malformed_tokens_are_rejected(token):
    assert verify_claim_token(token) is None


def test_non_string_token_is_rejected():
    assert verify_claim_token(None) is None  # type: ignore[arg-type]


def test_expired_token_is_rejected():
    token = generate_claim_token("TEST001", now=int(time.time()) - 3600)

    assert verify_claim_token(token) is None


def test_token_signed_with_other_secret_is_rejected():
    token = generate_claim_token("TEST001", secret="another-secret-that-is-long-enough-for-hs256")

    assert verify_claim_token(token) is None


def test_token_without_pot_code_is_rejected():
    now = int(time.time())
    token = jwt.encode(
        {"iat": now, "exp": now + 60},
        "dev-claim-token-secret-change-in-production",
        algorithm="HS256",
    )

    assert verify_claim_token(token, secret="dev-claim-token-secret-change-in-production") is None


def test_decode_skips_verification():
    token = generate_claim_token("TEST001", now=int(time.time()) - 3600)

    payload = decode_claim_token(token)

    assert payload is not None
    assert payload["pot_code"] == "TEST001"
    assert decode_claim_token("not-a-jwt") is None
