"""Security middleware for FastAPI - session validation and tenant context."""

import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from auth.session import SessionResolver
from auth.exceptions import InvalidTokenError, SessionExpiredError, SessionRevokedError
from api.base import error_response, ErrorCodes
from utils.tenant_context import set_current_tenant_id, clear_current_tenant_id

logger = logging.getLogger(__name__)


class AuthMiddleware(BaseHTTPMiddleware):
    """Middleware that validates the session and sets the tenant context.

    For protected routes:
    1. Extracts the session token from the Authorization bearer header,
       falling back to the 'session_token' cookie
    2. Resolves the session via SessionResolver
    3. Sets the tenant in request.state and the tenant context (for RLS)
    4. Clears context after request completes

    Public paths bypass authentication entirely.
    """

    PUBLIC_PATHS = [
        "/health",
        "/docs",
        "/openapi.json",
    ]

    def __init__(self, app, session_resolver: SessionResolver):
        super().__init__(app)
        self._session_resolver = session_resolver

    def _is_public_path(self, path: str) -> bool:
        """Check if path is in public paths list."""
        for public_path in self.PUBLIC_PATHS:
            if path == public_path or path.startswith(public_path):
                return True
        return False

    @staticmethod
    def _extract_token(request: Request) -> str | None:
        authorization = request.headers.get("authorization", "")
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
        return request.cookies.get("session_token")

    async def dispatch(self, request: Request, call_next):
        """Process request through middleware."""
        path = request.url.path

        # Skip auth for public paths
        if self._is_public_path(path):
            return await call_next(request)

        session_token = self._extract_token(request)

        if not session_token:
            return JSONResponse(
                status_code=401,
                content=error_response(
                    ErrorCodes.NOT_AUTHENTICATED,
                    "Authentication required",
                ).model_dump(mode="json"),
            )

        try:
            session = self._session_resolver.resolve(session_token)
        except (SessionExpiredError, SessionRevokedError):
            return JSONResponse(
                status_code=401,
                content=error_response(
                    ErrorCodes.SESSION_EXPIRED,
                    "Session has expired",
                ).model_dump(mode="json"),
            )
        except InvalidTokenError:
            logger.warning(f"Rejected unknown session token on {path}")
            return JSONResponse(
                status_code=401,
                content=error_response(
                    ErrorCodes.INVALID_TOKEN,
                    "Invalid session token",
                ).model_dump(mode="json"),
            )

        # Set tenant context for RLS
        set_current_tenant_id(session.user_id)
        request.state.user_id = session.user_id
        request.state.session = session

        try:
            response = await call_next(request)
            return response
        finally:
            # Always clear context
            clear_current_tenant_id()
