# Overview: Service-layer operations for session tokens; issues and validates bearer tokens.

"""
Session Token Management

- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage
- Absolute and idle timeouts from app config
- Tenant context (org_id, store_id) captured at login and immutable
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from ..time_utils import utcnow
from .tenant_service import TenantContext


@dataclass
class SessionContext:
    user: User
    session: SessionToken
    tenant: TenantContext


def generate_token() -> str:
    return secrets.token_hex(32)  # 32 bytes = 64 hex characters


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def _absolute_timeout() -> timedelta:
    return timedelta(hours=current_app.config.get("SESSION_ABSOLUTE_TIMEOUT_HOURS", 24))


def _idle_timeout() -> timedelta:
    return timedelta(hours=current_app.config.get("SESSION_IDLE_TIMEOUT_HOURS", 2))


def create_session(
    user: User,
    user_agent: str | None = None,
    ip_address: str | None = None
) -> tuple[SessionToken, str]:
    """
    Create a session for an authenticated user.

    Returns (session_record, plaintext_token). Only the hash is stored.
    """
    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user.id,
        org_id=user.org_id,
        store_id=user.store_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + _absolute_timeout(),
        user_agent=user_agent,
        ip_address=ip_address,
        is_revoked=False
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def validate_session(token: str) -> SessionContext | None:
    """
    Return SessionContext if the token is valid, otherwise None.

    Expired, idle, revoked sessions and sessions of deactivated users or
    organizations are rejected (idle/deactivated ones are revoked on the way).
    """
    now = utcnow()
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return None

    if session.expires_at < now:
        return None

    revoke_reason = None
    if now - session.last_used_at > _idle_timeout():
        revoke_reason = "Idle timeout"
    elif not session.user or not session.user.is_active:
        revoke_reason = "User account deactivated"
    elif not session.organization or not session.organization.is_active:
        revoke_reason = "Organization deactivated"

    if revoke_reason:
        session.is_revoked = True
        session.revoked_at = now
        session.revoked_reason = revoke_reason
        db.session.commit()
        return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(
        user=session.user,
        session=session,
        tenant=TenantContext(
            org_id=session.org_id,
            store_id=session.store_id,
            user_id=session.user_id,
            session_id=session.id,
        ),
    )


def revoke_session(token: str, reason: str = "User logout") -> bool:
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return False

    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason
    db.session.commit()
    return True
