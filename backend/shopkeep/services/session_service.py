# Overview: Service-layer operations for session tokens.

"""
Session token management.

- Tokens are 32 random bytes (64 hex chars) from secrets.token_hex.
- Only the SHA-256 of a token is stored; the plaintext goes to the client once.
- Absolute and idle timeouts come from Settings (24h / 2h by default).
- Sessions are revoked on logout, idle timeout or user deactivation.
"""

import secrets
import hashlib
from dataclasses import dataclass
from datetime import timedelta

from ..config import current_settings
from ..extensions import db
from ..models import SessionToken, User
from shopkeep.time_utils import utcnow


@dataclass
class SessionContext:
    user: User
    session: SessionToken


def _timeouts() -> tuple[timedelta, timedelta]:
    settings = current_settings()
    return settings.session_absolute_timeout, settings.session_idle_timeout


def generate_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    Tokens are high-entropy already, so a fast hash is enough here (bcrypt is
    for passwords).
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(
    user: User,
    user_agent: str | None = None,
    ip_address: str | None = None
) -> tuple[SessionToken, str]:
    """
    Create a session for user.

    Returns (session_record, plaintext_token).
    """
    absolute_timeout, _ = _timeouts()

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user.id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + absolute_timeout,
        user_agent=(user_agent or "")[:255] or None,
        ip_address=ip_address,
        is_revoked=False
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason
    db.session.commit()


def validate_session(token: str) -> SessionContext | None:
    """
    Return the SessionContext for a live token, or None.

    None covers unknown, revoked, expired and idle tokens and deactivated
    users. Touches last_used_at on success.
    """
    _, idle_timeout = _timeouts()
    now = utcnow()

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return None

    if session.expires_at < now:
        return None

    if now - session.last_used_at > idle_timeout:
        _revoke(session, "Idle timeout")
        return None

    user = session.user
    if not user or not user.is_active:
        _revoke(session, "User account deactivated")
        return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(user=user, session=session)


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """Revoke a token. Returns False if it was unknown or already revoked."""
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return False

    _revoke(session, reason)
    return True
