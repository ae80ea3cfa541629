"""Session token lookup.

Sessions live in the user_sessions table. Only a SHA-256 digest of the token
is stored, so a leaked table does not leak usable tokens. Token format is
cryptographically random (secrets.token_urlsafe).

The table has no RLS policy: lookups run before any tenant is known.
"""

import hashlib
import logging
import secrets
from datetime import timedelta
from uuid import UUID

from clients.postgres_client import PostgresClient
from auth.config import AuthConfig
from auth.types import Session
from auth.exceptions import InvalidTokenError, SessionExpiredError, SessionRevokedError
from utils.timezone import now_utc, to_utc

logger = logging.getLogger(__name__)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class SessionResolver:
    """Resolve a session token to the tenant it authenticates.

    Supports sliding expiry: a session used within the extend threshold of
    its expiry is pushed out by a full session lifetime.
    """

    def __init__(self, postgres: PostgresClient, config: AuthConfig | None = None):
        self._postgres = postgres
        self._config = config or AuthConfig()

    def create_session(self, user_id: UUID) -> Session:
        """Issue a new session for user_id. The raw token is returned only here."""
        token = secrets.token_urlsafe(32)
        now = now_utc()
        expires_at = now + timedelta(hours=self._config.session_expiry_hours)

        self._postgres.execute(
            """
            INSERT INTO user_sessions (token_hash, user_id, created_at, expires_at, last_activity_at)
            VALUES (%s, %s, %s, %s, %s)
            """,
            (hash_token(token), user_id, now, expires_at, now)
        )

        return Session(
            token=token,
            user_id=user_id,
            created_at=now,
            expires_at=expires_at,
            last_activity_at=now,
        )

    def resolve(self, token: str) -> Session:
        """Validate token and return its session.

        Raises:
            InvalidTokenError: token unknown
            SessionRevokedError: session was revoked
            SessionExpiredError: session expired
        """
        if not token:
            raise InvalidTokenError("Empty session token")

        row = self._postgres.execute_single(
            """
            SELECT user_id, created_at, expires_at, last_activity_at, revoked_at
            FROM user_sessions
            WHERE token_hash = %s
            """,
            (hash_token(token),)
        )

        if row is None:
            raise InvalidTokenError("Session not found")

        if row["revoked_at"] is not None:
            raise SessionRevokedError("Session revoked")

        session = Session(
            token=token,
            user_id=row["user_id"],
            created_at=to_utc(row["created_at"]),
            expires_at=to_utc(row["expires_at"]),
            last_activity_at=to_utc(row["last_activity_at"]),
        )

        now = now_utc()
        if now > session.expires_at:
            raise SessionExpiredError("Session expired")

        if self._config.session_extend_on_activity:
            remaining = session.expires_at - now
            if remaining < timedelta(hours=self._config.session_extend_threshold_hours):
                session = self._extend_session(session)

        return session

    def _extend_session(self, session: Session) -> Session:
        """Extend session expiry and update last_activity_at."""
        now = now_utc()
        updated = session.model_copy(update={
            "expires_at": now + timedelta(hours=self._config.session_expiry_hours),
            "last_activity_at": now,
        })

        self._postgres.execute(
            """
            UPDATE user_sessions
            SET expires_at = %s, last_activity_at = %s
            WHERE token_hash = %s
            """,
            (updated.expires_at, updated.last_activity_at, hash_token(session.token))
        )
        logger.debug(f"Extended session for user {session.user_id}")

        return updated

    def revoke_session(self, token: str) -> None:
        """Revoke session (logout).

        Safe to call with nonexistent token.
        """
        self._postgres.execute(
            "UPDATE user_sessions SET revoked_at = %s WHERE token_hash = %s AND revoked_at IS NULL",
            (now_utc(), hash_token(token))
        )
