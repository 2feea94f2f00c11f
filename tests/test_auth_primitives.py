"""
tests.test_auth_primitives

Token, password and synthetic-email helpers.
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from regdesk.auth.emails import admin_email_for_username
from regdesk.auth.jwt import JwtConfig, JwtValidationError, decode_and_validate, issue_token
from regdesk.auth.passwords import check_password, hash_password, without_whitespace

CFG = JwtConfig(
    alg="HS256",
    issuer="regdesk-identity",
    audience="authenticated",
    secret="unit-test-signing-key-0123456789abcdef",
)


def test_admin_email_is_stable_per_username() -> None:
    assert admin_email_for_username("ops", domain="regdesk.admin") == "ops@regdesk.admin"
    assert admin_email_for_username(" Ops ", domain="regdesk.admin") == "ops@regdesk.admin"


def test_access_token_round_trip() -> None:
    token, _ = issue_token(cfg=CFG, subject="abc", roles=["authenticated"], claims={"email": "a@b"})
    payload = decode_and_validate(cfg=CFG, token=token)
    assert payload["sub"] == "abc"
    assert payload["email"] == "a@b"
    assert payload["roles"] == ["authenticated"]


def test_registered_claims_cannot_be_overridden() -> None:
    token, _ = issue_token(cfg=CFG, subject="abc", claims={"iss": "someone-else", "typ": "refresh"})
    assert decode_and_validate(cfg=CFG, token=token)["iss"] == "regdesk-identity"


def test_refresh_token_is_not_an_access_token() -> None:
    token, _ = issue_token(cfg=CFG, subject="abc", token_type="refresh", ttl=timedelta(days=1))
    with pytest.raises(JwtValidationError):
        decode_and_validate(cfg=CFG, token=token)
    assert decode_and_validate(cfg=CFG, token=token, token_type="refresh")["sub"] == "abc"


def test_expired_and_foreign_tokens_are_rejected() -> None:
    expired, _ = issue_token(cfg=CFG, subject="abc", ttl=timedelta(seconds=-5))
    with pytest.raises(JwtValidationError):
        decode_and_validate(cfg=CFG, token=expired)

    foreign, _ = issue_token(cfg=JwtConfig("HS256", "other", "authenticated", CFG.secret), subject="abc")
    with pytest.raises(JwtValidationError):
        decode_and_validate(cfg=CFG, token=foreign)


def test_password_hashing() -> None:
    hashed = hash_password("pass123", rounds=4)
    assert hashed.startswith("$2")
    assert check_password("pass123", hashed)
    assert not check_password("pass124", hashed)


def test_passwords_longer_than_bcrypt_limit() -> None:
    long_password = "x" * 100
    hashed = hash_password(long_password, rounds=4)
    assert check_password(long_password, hashed)
    # Only the first 72 bytes take part.
    assert check_password("x" * 72, hashed)


def test_without_whitespace() -> None:
    assert without_whitespace(" pass 1\t23\n") == "pass123"
    assert without_whitespace("pass123") == "pass123"
