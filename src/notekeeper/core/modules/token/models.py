"""Access token types."""

from typing import NewType

AccessToken = NewType("AccessToken", str)

ACCESS_TOKEN_TYPE = "access"
REQUIRED_CLAIMS = ["sub", "iat", "exp", "typ"]
SUPPORTED_ALGORITHMS = frozenset({"HS256", "HS384", "HS512"})
MIN_SECRET_LENGTH = 32
