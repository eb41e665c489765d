import os
import sys
import time
from datetime import timedelta

import pytest
from jose import jwt

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.exceptions import AuthenticationFailure, ConfigurationError
from app.services.authenticator import Authenticator

SIGNING_KEY = "12345"


def _authenticator() -> Authenticator:
    return Authenticator(SIGNING_KEY, bcrypt_rounds=4)


def test_construction_accepts_non_empty_secret():
    assert Authenticator(SIGNING_KEY) is not None


def test_construction_rejects_empty_secret():
    with pytest.raises(ConfigurationError, match="empty signing key"):
        Authenticator("")


def test_access_token_carries_subject_and_unique_id():
    authenticator = _authenticator()

    first = authenticator.mint_access_token("bob", timedelta(hours=5))
    second = authenticator.mint_access_token("bob", timedelta(hours=5))

    assert first != second
    claims = jwt.decode(first, SIGNING_KEY, algorithms=["HS512"])
    assert claims["sub"] == "bob"
    assert claims["type"] == "access"
    assert claims["exp"] - claims["iat"] == 5 * 60 * 60
    assert claims["jti"] != jwt.decode(second, SIGNING_KEY, algorithms=["HS512"])["jti"]


def test_access_token_expires_after_ttl():
    authenticator = _authenticator()
    token = authenticator.mint_access_token("bob", timedelta(seconds=1))

    assert authenticator.decode_access_token(token)["sub"] == "bob"

    time.sleep(2.1)
    with pytest.raises(AuthenticationFailure):
        authenticator.decode_access_token(token)


def test_access_token_signed_with_other_key_is_rejected():
    token = Authenticator("another-key").mint_access_token("bob", timedelta(minutes=1))

    with pytest.raises(AuthenticationFailure):
        _authenticator().decode_access_token(token)


def test_refresh_tokens_are_random_hex():
    authenticator = _authenticator()

    tokens = {authenticator.mint_refresh_token() for _ in range(50)}

    assert len(tokens) == 50
    for token in tokens:
        assert len(token) == 64
        int(token, 16)


def test_hash_round_trip():
    authenticator = _authenticator()
    first, second = authenticator.mint_refresh_token(), authenticator.mint_refresh_token()

    first_hash = authenticator.hash_for_storage(first)

    assert first_hash != first
    assert authenticator.verify(first, first_hash)
    assert not authenticator.verify(first, authenticator.hash_for_storage(second))


def test_hashes_are_salted():
    authenticator = _authenticator()

    assert authenticator.hash_for_storage("token") != authenticator.hash_for_storage("token")


def test_verify_rejects_malformed_hash():
    authenticator = _authenticator()

    assert not authenticator.verify("token", "not-a-bcrypt-hash")
    assert not authenticator.verify("token", "")
