"""Signed, time-bounded access tokens.

Payload structure::

    {
        "sub": "user uuid",
        "iat": 1700000000,  # issued at, UNIX timestamp
        "exp": 1700000900,  # iat + access TTL
        "typ": "access"
    }

Verification is a pure function of the signing secret and the token: there is
no store lookup, so an access token stays valid until it expires. Keep the TTL
short.
"""

from collections.abc import Callable
from datetime import datetime, timedelta
from uuid import UUID

import jwt

from notekeeper.core.modules.token.models import (
    ACCESS_TOKEN_TYPE,
    MIN_SECRET_LENGTH,
    REQUIRED_CLAIMS,
    SUPPORTED_ALGORITHMS,
    AccessToken,
)
from notekeeper.errors import ConfigurationError, TokenBadSignatureError, TokenExpiredError, TokenMalformedError
from notekeeper.utils import now


class TokenCodec:
    """Creates and parses access JWTs."""

    def __init__(
        self,
        secret: str,
        ttl: timedelta,
        algorithm: str = "HS256",
        clock: Callable[[], datetime] = now,
    ) -> None:
        if len(secret) < MIN_SECRET_LENGTH:
            raise ConfigurationError(f"Access token secret must be at least {MIN_SECRET_LENGTH} characters")
        if algorithm not in SUPPORTED_ALGORITHMS:
            raise ConfigurationError(f"Unsupported JWT algorithm '{algorithm}'")
        if ttl <= timedelta(0):
            raise ConfigurationError("Access token TTL must be positive")

        self._secret = secret
        self._ttl = ttl
        self._algorithm = algorithm
        self._clock = clock

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def issue_access(self, user_id: UUID) -> AccessToken:
        """Sign a new access token for the user."""
        issued_at = self._clock()
        payload = {
            "sub": str(user_id),
            "iat": issued_at,
            "exp": issued_at + self._ttl,
            "typ": ACCESS_TOKEN_TYPE,
        }
        return AccessToken(jwt.encode(payload, self._secret, algorithm=self._algorithm))

    def verify_access(self, token: str) -> UUID:
        """Return the user id carried by a valid access token.

        Raises:
            TokenExpiredError: The token is past its expiry
            TokenBadSignatureError: The signature does not match
            TokenMalformedError: Anything else (bad encoding, missing claims, wrong type)
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpiredError from exc
        except jwt.InvalidSignatureError as exc:
            # Must come before DecodeError, which it subclasses
            raise TokenBadSignatureError from exc
        except jwt.InvalidTokenError as exc:
            raise TokenMalformedError from exc

        if payload["typ"] != ACCESS_TOKEN_TYPE:
            raise TokenMalformedError("Token is not an access token")

        try:
            return UUID(payload["sub"])
        except (TypeError, ValueError) as exc:
            raise TokenMalformedError from exc
