"""
Tests for token issuing and verification.
"""

import time
from unittest.mock import Mock

import pytest
from authlib.jose import jwt

from api.auth import SigningKey, TokenService, extract_token
from store.errors import (
    EmptyToken,
    IncorrectPassword,
    InvalidSignature,
    Unauthorized,
    UserNotFound,
    Unverifiable,
)
from store.users import CredentialStore


class TestSigningKey:

    def test_generated_keys_differ(self):
        assert SigningKey.generate().secret != SigningKey.generate().secret

    def test_secret_not_in_repr(self):
        key = SigningKey.generate()
        assert key.secret not in repr(key)

    def test_empty_secret_rejected(self):
        with pytest.raises(ValueError):
            SigningKey("")


class TestExtractToken:

    @pytest.mark.parametrize("header, expected", [
        (None, ""),
        ("", ""),
        ("abc.def.ghi", "abc.def.ghi"),
        ("Bearer abc.def.ghi", "abc.def.ghi"),
        ("bearer   abc.def.ghi ", "abc.def.ghi"),
        ("Bearer", ""),
    ])
    def test_extract(self, header, expected):
        assert extract_token(header) == expected


class TestTokenService:
    """Test cases for TokenService."""

    @pytest.fixture
    def offline_credentials(self):
        """Token checks never touch the database."""
        return Mock(spec=CredentialStore)

    @pytest.fixture
    def tokens(self, offline_credentials):
        return TokenService(SigningKey.generate(), offline_credentials, ttl_minutes=10)

    @pytest.mark.asyncio
    async def test_login_returns_token_for_username(self, token_service, credential_store, make_user):
        await credential_store.create_user(make_user("alice", password="pw"))

        token = await token_service.login("alice", "pw")

        assert token_service.identity_from_token(token) == "alice"
        # stable across repeated verification until expiry
        assert token_service.identity_from_token(token) == "alice"

    @pytest.mark.asyncio
    async def test_login_unknown_user(self, token_service):
        with pytest.raises(UserNotFound):
            await token_service.login("nobody", "pw")

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, token_service, credential_store, make_user):
        await credential_store.create_user(make_user("alice", password="pw"))

        with pytest.raises(IncorrectPassword) as exc_info:
            await token_service.login("alice", "not-pw")

        assert exc_info.value.message == "incorrect password"

    def test_token_carries_username_and_expiry(self, tokens):
        before = int(time.time())
        token = tokens.issue_token("alice")

        claims = jwt.decode(token, tokens.signing_key.secret)

        assert claims["username"] == "alice"
        assert before + 600 <= claims["exp"] <= int(time.time()) + 600

    def test_empty_token(self, tokens):
        with pytest.raises(EmptyToken):
            tokens.identity_from_token("")

    def test_token_from_another_key(self, tokens, offline_credentials):
        other = TokenService(SigningKey.generate(), offline_credentials)
        token = other.issue_token("alice")

        with pytest.raises(InvalidSignature):
            tokens.identity_from_token(token)

    def test_restart_invalidates_tokens(self, tokens, offline_credentials):
        """A new process generates a new key, so old tokens stop verifying."""
        token = tokens.issue_token("alice")
        restarted = TokenService(SigningKey.generate(), offline_credentials)

        with pytest.raises(InvalidSignature):
            restarted.identity_from_token(token)

    @pytest.mark.parametrize("garbage", ["not-a-token", "a.b", "a.b.c", "Zm9v.YmFy.YmF6"])
    def test_unparseable_token(self, tokens, garbage):
        with pytest.raises(Unverifiable):
            tokens.identity_from_token(garbage)

    def test_expired_token(self, offline_credentials):
        key = SigningKey.generate()
        expired = TokenService(key, offline_credentials, ttl_minutes=-1).issue_token("alice")

        with pytest.raises(Unauthorized):
            TokenService(key, offline_credentials).identity_from_token(expired)

    def test_token_without_username(self, tokens):
        token = jwt.encode(
            {"alg": "HS256"},
            {"exp": int(time.time()) + 60},
            tokens.signing_key.secret,
        ).decode()

        with pytest.raises(Unverifiable):
            tokens.identity_from_token(token)

    def test_disallowed_algorithm(self, tokens):
        token = jwt.encode(
            {"alg": "HS512"},
            {"username": "alice", "exp": int(time.time()) + 60},
            tokens.signing_key.secret,
        ).decode()

        with pytest.raises(Unverifiable):
            tokens.identity_from_token(token)
