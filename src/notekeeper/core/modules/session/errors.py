"""Refresh store failures.

These stay inside the core: the auth service collapses all of them into
SessionInvalidError before anything reaches a client.
"""


class RefreshTokenError(Exception):
    """Base class for refresh token rotation failures."""


class RefreshTokenNotFoundError(RefreshTokenError):
    """No session matches the presented token."""


class RefreshTokenExpiredError(RefreshTokenError):
    """The matching session is past its expiry."""


class RefreshTokenReusedError(RefreshTokenError):
    """The matching session was already revoked; all of the user's sessions were revoked in response."""
