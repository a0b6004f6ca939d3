"""
Token-based authentication for the FastAPI API.

Tokens are HS256 JWTs carrying the username and an expiry. They are not
stored anywhere: verification is signature plus expiry. The signing key
lives only in memory and is generated once per process, so restarting the
service invalidates every token it has issued.
"""

import asyncio
import secrets
import time
from typing import Optional

import structlog
from authlib.jose import JoseError, JsonWebToken
from authlib.jose.errors import BadSignatureError, ExpiredTokenError
from fastapi.security import APIKeyHeader

from store.errors import (
    EmptyToken,
    IncorrectPassword,
    InvalidSignature,
    Unauthorized,
    Unverifiable,
)
from store.users import CredentialStore, check_password

logger = structlog.get_logger(__name__)

# Security scheme. Missing headers are reported by the token service, not here.
token_header = APIKeyHeader(name="Authorization", auto_error=False)


class SigningKey:
    """Symmetric JWT signing secret owned by one process."""

    def __init__(self, secret: str):
        if not secret:
            raise ValueError("signing secret must not be empty")
        self._secret = secret

    @classmethod
    def generate(cls, num_bytes: int = 32) -> "SigningKey":
        """Create a fresh random key."""
        return cls(secrets.token_hex(num_bytes))

    @property
    def secret(self) -> str:
        return self._secret

    def __repr__(self) -> str:
        return "SigningKey(<hidden>)"


def extract_token(header_value: Optional[str]) -> str:
    """Take the token from an Authorization header, with or without a Bearer prefix."""
    if not header_value:
        return ""
    scheme, _, credentials = header_value.strip().partition(" ")
    if scheme.lower() == "bearer":
        return credentials.strip()
    return header_value.strip()


class TokenService:
    """Issues tokens on login and turns presented tokens back into usernames."""

    def __init__(
        self,
        signing_key: SigningKey,
        credentials: CredentialStore,
        ttl_minutes: float = 10,
        algorithm: str = "HS256",
    ):
        self.signing_key = signing_key
        self.credentials = credentials
        self.ttl_seconds = int(ttl_minutes * 60)
        self.algorithm = algorithm
        self._jwt = JsonWebToken([algorithm])

    def issue_token(self, username: str) -> str:
        """Sign a token for ``username`` that expires after the configured TTL."""
        header = {"alg": self.algorithm, "typ": "JWT"}
        payload = {
            "username": username,
            "exp": int(time.time()) + self.ttl_seconds,
        }
        token = self._jwt.encode(header, payload, self.signing_key.secret)
        return token.decode() if isinstance(token, bytes) else token

    async def login(self, username: str, password: str) -> str:
        """
        Verify credentials and mint a bearer token.

        Args:
            username: Account username
            password: Plaintext password

        Returns:
            Signed token string

        Raises:
            UserNotFound: if no such account exists
            IncorrectPassword: if the password does not match the stored hash
        """
        user = await self.credentials.find_by_username(username)

        matches = await asyncio.to_thread(check_password, password, user.password)
        if not matches:
            logger.warning("Login rejected", username=username, reason="incorrect password")
            raise IncorrectPassword()

        logger.info("User logged in", username=username)
        return self.issue_token(username)

    def identity_from_token(self, token: str) -> str:
        """
        Recover the username a token was issued for.

        Raises:
            EmptyToken: if no token was presented
            InvalidSignature: if the token was not signed with this process's key
            Unverifiable: if the token cannot be parsed or lacks a username
            Unauthorized: if the token has expired
        """
        if not token:
            raise EmptyToken()

        try:
            claims = self._jwt.decode(token, self.signing_key.secret)
        except BadSignatureError:
            raise InvalidSignature()
        except JoseError as e:
            logger.debug("Token could not be decoded", error=str(e))
            raise Unverifiable()

        try:
            claims.validate()
        except ExpiredTokenError:
            raise Unauthorized()
        except JoseError as e:
            logger.debug("Token claims are invalid", error=str(e))
            raise Unverifiable()

        username = claims.get("username")
        if not isinstance(username, str) or not username:
            raise Unverifiable()
        return username
