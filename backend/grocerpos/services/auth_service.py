"""
Authentication Service

WHY: Every sale, purchase and adjustment must be attributable to a user.
Passwords are hashed with bcrypt; plaintext is never stored or logged.
"""

import bcrypt

from ..extensions import db
from ..models import User


ROLES = ("ADMIN", "MANAGER", "CASHIER", "ACCOUNTANT")
MIN_PASSWORD_LENGTH = 8


class AuthError(Exception):
    """Raised for authentication/user-management errors."""


def hash_password(password: str) -> str:
    """Hash password using bcrypt with cost factor 12."""
    if len(password) < MIN_PASSWORD_LENGTH:
        raise AuthError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed stored hash
        return False


def create_user(*, username: str, name: str, password: str, role: str = "CASHIER", email: str | None = None) -> User:
    if role not in ROLES:
        raise AuthError(f"role must be one of: {', '.join(ROLES)}")
    if db.session.query(User).filter_by(username=username).first():
        raise AuthError(f"Username already exists: {username}")

    user = User(
        username=username,
        name=name,
        email=email,
        role=role,
        password_hash=hash_password(password),
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(username: str, password: str) -> User | None:
    """Return the active user for valid credentials, else None."""
    user = db.session.query(User).filter_by(username=username).first()
    if user is None or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user
