# Overview: Password hashing, user creation and credential checks.

"""
Authentication Service

WHY: Every day close is attributed to the back-office user who submitted
it (closed_by). Passwords are hashed with bcrypt.

MULTI-TENANT: Users belong to exactly one organization. Username
uniqueness is tenant-scoped; authentication can be scoped by org.
"""

from __future__ import annotations

import logging

import bcrypt

from ..extensions import db
from ..models import Organization, Store, User
from ..time_utils import utcnow

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


class AuthError(Exception):
    """Raised when a user cannot be created or authenticated."""
    pass


def hash_password(password: str) -> str:
    """Hash password using bcrypt with cost factor 12."""
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise AuthError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=12))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe check of a password against its bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash in the database
        return False


def create_user(
    username: str,
    password: str,
    org_id: int,
    *,
    email: str | None = None,
    store_id: int | None = None,
) -> User:
    """
    Create a back-office user.

    Raises AuthError if the org is missing or inactive, the username is
    taken inside the org, or store_id names a store of another org.
    """
    org = db.session.query(Organization).filter_by(id=org_id).first()
    if not org:
        raise AuthError("Organization not found")
    if not org.is_active:
        raise AuthError("Organization is not active")

    existing = db.session.query(User).filter_by(org_id=org_id, username=username).first()
    if existing:
        raise AuthError("Username already exists in this organization")

    if store_id is not None:
        store = db.session.query(Store).filter_by(id=store_id).first()
        if not store or store.org_id != org_id:
            raise AuthError("Store does not belong to this organization")

    user = User(
        org_id=org_id,
        store_id=store_id,
        username=username,
        email=email,
        password_hash=hash_password(password),
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(username: str, password: str, org_id: int | None = None) -> User | None:
    """
    Return the User for valid credentials, else None.

    Inactive users and users of inactive organizations never authenticate.
    Updates last_login_at on success.
    """
    query = db.session.query(User).filter(
        User.username == username,
        User.is_active.is_(True),
    )
    if org_id is not None:
        query = query.filter(User.org_id == org_id)

    user = query.first()
    if not user:
        return None

    if not user.organization or not user.organization.is_active:
        return None

    if not verify_password(password, user.password_hash):
        logger.info("Failed login for username=%s", username)
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user
