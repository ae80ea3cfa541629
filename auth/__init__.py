"""Authentication modules."""

from auth.exceptions import (
    AuthError,
    InvalidTokenError,
    SessionExpiredError,
    SessionRevokedError,
)
from auth.types import Session
from auth.config import AuthConfig
from auth.session import SessionResolver
from auth.security_middleware import AuthMiddleware
