import pytest

from app.core.security import (
    ROLE_MERCHANT,
    TokenError,
    access_claims,
    create_refresh_token,
    hash_password,
    issue_token_pair,
    verify_password,
)


def test_password_roundtrip():
    hashed = hash_password("s3cret-pass")
    assert verify_password("s3cret-pass", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("s3cret-pass", "not-a-bcrypt-hash")


def test_access_token_claims():
    tokens = issue_token_pair(subject_id=42, role=ROLE_MERCHANT)
    assert tokens["token_type"] == "bearer"
    assert access_claims(tokens["access_token"]) == (42, ROLE_MERCHANT)


def test_refresh_token_is_not_an_access_token():
    with pytest.raises(TokenError):
        access_claims(create_refresh_token(subject_id=1, role=ROLE_MERCHANT))


def test_garbage_token():
    with pytest.raises(TokenError):
        access_claims("not.a.jwt")
