# Overview: Service-layer operations for auth; password hashing, user creation, login.

"""
Authentication Service

Passwords are hashed with bcrypt (cost factor 12) and must meet minimum
strength rules. Users belong to one organization and one store; usernames
are unique within the organization.
"""

import re

import bcrypt

from ..extensions import db
from ..models import User, Organization
from ..permissions import ROLE_PERMISSIONS
from ..time_utils import utcnow
from .tenant_service import require_store_in_org


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter, one lowercase letter and one digit

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")


def hash_password(password: str, rounds: int = 12) -> str:
    """Validate strength, then hash with bcrypt."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt comparison. Malformed hashes never verify."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(
    username: str,
    password: str,
    org_id: int,
    store_id: int,
    role: str = "clerk",
    rounds: int = 12,
) -> User:
    """
    Create a user in a store of the organization.

    Raises:
        ValueError: unknown role, duplicate username, inactive org
        TenantAccessError: store does not belong to org
        PasswordValidationError: weak password
    """
    if role not in ROLE_PERMISSIONS:
        raise ValueError(f"Unknown role: {role}. Must be one of {sorted(ROLE_PERMISSIONS)}")

    org = db.session.get(Organization, org_id)
    if not org:
        raise ValueError("Organization not found")
    if not org.is_active:
        raise ValueError("Organization is not active")

    require_store_in_org(store_id, org_id)

    existing = db.session.query(User).filter_by(org_id=org_id, username=username).first()
    if existing:
        raise ValueError(f"Username '{username}' already exists in this organization")

    user = User(
        org_id=org_id,
        store_id=store_id,
        username=username,
        password_hash=hash_password(password, rounds=rounds),
        role=role,
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    return user


def find_org_by_code(org_code: str) -> Organization | None:
    return db.session.query(Organization).filter_by(code=org_code).first()


def authenticate(org_code: str, username: str, password: str) -> User | None:
    """
    Return the User if the credentials are valid and the org is active.

    Updates last_login_at on success.
    """
    org = find_org_by_code(org_code)
    if not org or not org.is_active:
        return None

    user = db.session.query(User).filter(
        User.org_id == org.id,
        User.username == username,
        User.is_active.is_(True),
    ).first()

    if not user or not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user
