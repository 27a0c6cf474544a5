# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/trackey/routes/auth.py
"""
Authentication API routes

- Login by organization code, username and password
- Bearer session tokens (only the SHA-256 hash is stored)
- Failed logins and logouts are recorded as security events
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth
from ..permissions import ROLE_PERMISSIONS
from ..services import auth_service
from ..services import session_service
from ..services.security_service import log_security_event
from ..time_utils import to_utc_z


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Request body:
    {
        "org_code": "SHOP1",
        "username": "clerk",
        "password": "..."
    }

    Returns:
        200: token, user, permissions and tenant ids
        400: missing fields
        401: invalid credentials
    """
    try:
        data = request.get_json(silent=True) or {}
        org_code = data.get("org_code")
        username = data.get("username")
        password = data.get("password")

        if not all([org_code, username, password]):
            return jsonify({"error": "org_code, username and password required"}), 400

        user_agent = request.headers.get("User-Agent")
        ip_address = request.remote_addr

        user = auth_service.authenticate(org_code, username, password)

        if not user:
            org = auth_service.find_org_by_code(org_code)
            log_security_event(
                user_id=None,
                event_type="LOGIN_FAILED",
                success=False,
                resource=request.path,
                action=request.method,
                reason=f"Invalid credentials for '{username}' in org '{org_code}'",
                ip_address=ip_address,
                user_agent=user_agent,
                org_id=org.id if org else None,
            )
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user,
            user_agent=user_agent,
            ip_address=ip_address
        )

        return jsonify({
            "user": user.to_dict(),
            "permissions": sorted(ROLE_PERMISSIONS.get(user.role, ())),
            "token": token,
            "org_id": session.org_id,
            "store_id": session.store_id,
            "expires_at": to_utc_z(session.expires_at),
            "message": "Login successful"
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    try:
        token = request.headers.get("Authorization").split(" ", 1)[1]
        session_service.revoke_session(token)

        log_security_event(
            user_id=g.current_user.id,
            event_type="LOGOUT",
            success=True,
            resource=request.path,
            action=request.method,
            ip_address=request.remote_addr,
            user_agent=request.headers.get("User-Agent"),
            org_id=g.tenant.org_id,
            store_id=g.tenant.store_id,
        )
        return jsonify({"message": "Logged out"}), 200

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    user = g.current_user
    return jsonify({
        "user": user.to_dict(),
        "permissions": sorted(ROLE_PERMISSIONS.get(user.role, ())),
        "org_id": g.tenant.org_id,
        "store_id": g.tenant.store_id,
    }), 200
