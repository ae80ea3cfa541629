"""Typed exceptions for auth failures."""


class AuthError(Exception):
    """Base class for authentication/authorization errors."""


class InvalidTokenError(AuthError):
    """Session token is unknown or malformed."""


class SessionExpiredError(AuthError):
    """Session has expired and user must re-authenticate."""


class SessionRevokedError(AuthError):
    """Session was explicitly revoked (logout or security action)."""
