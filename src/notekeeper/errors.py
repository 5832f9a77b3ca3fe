from abc import ABC


class UserError(ABC, Exception):
    """Base class for user-related errors.

    All errors that inherit from UserError will have their messages
    displayed to the user. These errors should not contain any
    sensitive information.
    """


class NotFoundError(UserError):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str = "Document not found") -> None:
        super().__init__(message)


class AuthenticationError(UserError):
    """Raised when authentication fails."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message)


class InvalidCredentialsError(AuthenticationError):
    """Raised when an email/password pair does not match a user.

    Unknown email and wrong password are reported identically.
    """

    def __init__(self, message: str = "Invalid email or password") -> None:
        super().__init__(message)


class TokenMalformedError(AuthenticationError):
    """Raised when an access token cannot be parsed or lacks required claims."""

    def __init__(self, message: str = "Malformed access token") -> None:
        super().__init__(message)


class TokenExpiredError(AuthenticationError):
    """Raised when an access token is past its expiry."""

    def __init__(self, message: str = "Access token expired") -> None:
        super().__init__(message)


class TokenBadSignatureError(AuthenticationError):
    """Raised when an access token signature does not verify."""

    def __init__(self, message: str = "Invalid access token signature") -> None:
        super().__init__(message)


class SessionInvalidError(AuthenticationError):
    """Raised for any refresh token failure (unknown, expired, revoked or reused)."""

    def __init__(self, message: str = "Session is invalid or expired") -> None:
        super().__init__(message)


class ValidationError(UserError):
    """Raised when user input fails validation."""


class StoreUnavailableError(Exception):
    """Raised when the backing database cannot be reached or times out."""


class ConfigurationError(Exception):
    """Raised at startup when the server is misconfigured."""
