"""
Tests for password hashing and tokens.
"""

import re

import pytest
from jose import JWTError

from truk.core.security import (
    create_access_token,
    create_qr_token,
    decode_access_token,
    hash_password,
    token_ttl_seconds,
    verify_password,
)


def test_password_hash_verifies():
    hashed = hash_password("s3cret-pass")
    assert hashed != "s3cret-pass"
    assert verify_password("s3cret-pass", hashed)
    assert not verify_password("wrong-pass1", hashed)


def test_access_token_carries_subject_and_role():
    token = create_access_token("user-123", role="admin", jti="fixed-jti")
    payload = decode_access_token(token)

    assert payload["sub"] == "user-123"
    assert payload["role"] == "admin"
    assert payload["jti"] == "fixed-jti"
    assert payload["type"] == "access"
    assert 0 < token_ttl_seconds(payload) <= 3600


def test_tampered_token_is_rejected():
    token = create_access_token("user-123")
    with pytest.raises(JWTError):
        decode_access_token(token[:-2] + "xx")


def test_qr_token_format():
    token = create_qr_token("community-picnic")
    assert re.fullmatch(r"community-picnic-[0-9a-f]{32}", token)
    assert create_qr_token("community-picnic") != token
