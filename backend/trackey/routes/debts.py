# Overview: Flask API routes for debts and payments; parses input and returns JSON responses.

# backend/trackey/routes/debts.py
"""
Debt Ledger API Routes

- List debts with derived balances (unresolved first), search and status filter
- Open debts (credit sales), optionally with a deposit
- Record payments; the balance is re-read from the store after each write

ERRORS:
- 400 ValidationError (INVALID_AMOUNT, EXCEEDS_REMAINING_BALANCE, ...)
- 404 debt/customer/product not in the caller's store
- 503 the store failed; nothing was recorded
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_permission
from ..services import debt_service
from ..services.concurrency import StoreError
from ..services.ledger_service import CORRELATE_DEBT_ID
from ..validation import ConflictError, NotFoundError, ValidationError, optional_int


debts_bp = Blueprint("debts", __name__, url_prefix="/api/debts")


def _store_unavailable(e: StoreError, action: str):
    current_app.logger.warning("Store failure while %s: %s", action, e.__cause__ or e)
    return jsonify({"error": str(e), "code": "STORE_UNAVAILABLE", "values": []}), 503


def _not_found(e: NotFoundError):
    return jsonify({"error": str(e), "code": "NOT_FOUND", "values": []}), 404


# =============================================================================
# LEDGER
# =============================================================================

@debts_bp.get("")
@require_auth
@require_permission("VIEW_DEBTS")
def list_debts_route():
    """
    Query params:
    - search: matches customer, product, device id or settlement channel
    - status: owing | partial | paid
    - correlate: debt_id (default) | customer_product
    - page, per_page: omit page for the full list
    """
    try:
        result = debt_service.list_ledger(
            g.tenant,
            search=request.args.get("search"),
            status=request.args.get("status") or None,
            correlate=request.args.get("correlate") or CORRELATE_DEBT_ID,
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
        return jsonify(result), 200

    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except StoreError as e:
        return _store_unavailable(e, "loading debts")
    except Exception:
        current_app.logger.exception("Failed to list debts")
        return jsonify({"error": "Internal server error"}), 500


@debts_bp.post("")
@require_auth
@require_permission("MANAGE_DEBTS")
def create_debt_route():
    """
    Request body:
    {
        "customer_id": 4,              (or "customer_name": "Ada")
        "phone_number": "0803...",     (optional, new customers only)
        "product_id": 2,               (optional)
        "product_name": "iPhone 13",   (optional, defaults to product's name)
        "owed": "1000.00",
        "deposit": "200",              (optional, recorded as first payment)
        "paid_to": "transfer",         (optional)
        "device_ids": ["356789012345678"],
        "qty": 1,
        "balance_mode": "DERIVED"      (or "STORED")
    }
    """
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"error": "Invalid JSON payload", "code": "INVALID_FIELD", "values": []}), 400

        row = debt_service.create_debt(
            g.tenant,
            owed=data.get("owed"),
            customer_id=optional_int(data, "customer_id", minimum=1),
            customer_name=data.get("customer_name"),
            phone_number=data.get("phone_number"),
            product_id=optional_int(data, "product_id", minimum=1),
            product_name=data.get("product_name"),
            supplier=data.get("supplier"),
            qty=optional_int(data, "qty", minimum=1),
            device_ids=data.get("device_ids"),
            balance_mode=data.get("balance_mode") or "DERIVED",
            deposit=data.get("deposit"),
            paid_to=data.get("paid_to"),
        )
        return jsonify({"debt": row.to_dict()}), 201

    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except ConflictError as e:
        return jsonify(e.to_dict()), 409
    except NotFoundError as e:
        return _not_found(e)
    except StoreError as e:
        return _store_unavailable(e, "creating debt")
    except Exception:
        current_app.logger.exception("Failed to create debt")
        return jsonify({"error": "Internal server error"}), 500


@debts_bp.get("/<int:debt_id>")
@require_auth
@require_permission("VIEW_DEBTS")
def get_debt_route(debt_id: int):
    try:
        row = debt_service.get_ledger_row(g.tenant, debt_id)
        payments = debt_service.get_payment_history(g.tenant, debt_id)
        devices = debt_service.get_debt_devices(g.tenant, debt_id)
        return jsonify({
            "debt": row.to_dict(),
            "payments": [p.to_dict() for p in payments],
            "devices": devices,
        }), 200

    except NotFoundError as e:
        return _not_found(e)
    except StoreError as e:
        return _store_unavailable(e, "loading debt")
    except Exception:
        current_app.logger.exception("Failed to get debt")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# PAYMENTS
# =============================================================================

@debts_bp.get("/<int:debt_id>/payments")
@require_auth
@require_permission("VIEW_DEBTS")
def list_payments_route(debt_id: int):
    """Payment history, newest first."""
    try:
        payments = debt_service.get_payment_history(g.tenant, debt_id)
        return jsonify({
            "payments": [p.to_dict() for p in payments],
            "count": len(payments),
        }), 200

    except NotFoundError as e:
        return _not_found(e)
    except StoreError as e:
        return _store_unavailable(e, "loading payments")
    except Exception:
        current_app.logger.exception("Failed to list payments")
        return jsonify({"error": "Internal server error"}), 500


@debts_bp.post("/<int:debt_id>/payments")
@require_auth
@require_permission("RECORD_PAYMENTS")
def record_payment_route(debt_id: int):
    """
    Request body:
    {
        "amount": "250.00",
        "paid_to": "cash"   (optional settlement channel)
    }

    Returns:
        201: payment and the debt's fresh ledger row
        400: INVALID_AMOUNT or EXCEEDS_REMAINING_BALANCE (nothing written)
        404: debt not found
        503: store unavailable (nothing written)
    """
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"error": "Invalid JSON payload", "code": "INVALID_FIELD", "values": []}), 400

        payment, row = debt_service.record_payment(
            g.tenant,
            debt_id=debt_id,
            amount=data.get("amount"),
            paid_to=data.get("paid_to"),
        )
        return jsonify({
            "payment": payment.to_dict(),
            "debt": row.to_dict(),
        }), 201

    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except NotFoundError as e:
        return _not_found(e)
    except StoreError as e:
        return _store_unavailable(e, "recording payment")
    except Exception:
        current_app.logger.exception("Failed to record payment")
        return jsonify({"error": "Internal server error"}), 500
