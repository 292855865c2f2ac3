# Overview: Service-layer operations for session; bearer token issue, validation and revocation.

import hashlib
import secrets
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from grocerpos.time_utils import utcnow


def generate_token() -> str:
    """64-character hex string (32 bytes of entropy). Plaintext, never stored."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """SHA-256 is sufficient for high-entropy tokens (unlike passwords)."""
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(user_id: int) -> tuple[SessionToken, str]:
    token = generate_token()
    ttl = timedelta(hours=current_app.config.get("SESSION_TTL_HOURS", 24))
    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(token),
        expires_at=utcnow() + ttl,
    )
    db.session.add(session)
    db.session.commit()
    return session, token


def validate_session(token: str) -> User | None:
    """Return the session's user if the token is live, else None."""
    session = db.session.query(SessionToken).filter_by(token_hash=hash_token(token)).first()
    if session is None or session.is_revoked:
        return None
    if session.expires_at <= utcnow():
        return None
    user = session.user
    if user is None or not user.is_active:
        return None
    return user


def revoke_session(token: str) -> bool:
    session = db.session.query(SessionToken).filter_by(token_hash=hash_token(token)).first()
    if session is None or session.is_revoked:
        return False
    session.is_revoked = True
    session.revoked_at = utcnow()
    db.session.commit()
    return True
