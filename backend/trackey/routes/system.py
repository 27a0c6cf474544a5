# backend/trackey/routes/system.py
"""
System health endpoint.

Checks the ledger and inventory tables; 503 means the store is unreachable,
so the client can tell a transient outage from a rejected payment.
"""

import time
from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Debt, ProductDevice
from ..time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__, url_prefix="/api")


def _check(fn) -> dict:
    start = time.perf_counter()
    try:
        fn()
        return {"status": "healthy", "latency_ms": round((time.perf_counter() - start) * 1000, 2)}
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Health check failed")
        return {"status": "unhealthy", "error": "Database error"}


def check_store() -> dict:
    # Row-free checks: only reachability of each table is reported, never tenant counts.
    return {
        "database": _check(lambda: db.session.execute(text("SELECT 1")).scalar()),
        "ledger": _check(lambda: db.session.query(Debt.id).limit(1).all()),
        "inventory": _check(lambda: db.session.query(ProductDevice.id).limit(1).all()),
    }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: every check passed
    - 503: the store is unreachable
    """
    checks = check_store()
    healthy = all(c["status"] == "healthy" for c in checks.values())

    return {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "checks": checks,
    }, 200 if healthy else 503
