# Overview: Flask API routes for store expenses; parses input and returns JSON responses.

# backend/trackey/routes/expenses.py
"""
Expense API Routes

- List expenses newest first, with search over type and description
- Record and correct expenses (any staff role)
- Delete an expense (store owner only: DELETE_EXPENSES)

ERRORS:
- 400 INVALID_AMOUNT / INVALID_DATE / MISSING_FIELD
- 403 caller lacks the permission (logged as a security event)
- 404 expense not in the caller's store
- 503 store unavailable
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_permission
from ..services import expense_service
from ..services.concurrency import StoreError
from ..validation import ConflictError, NotFoundError, ValidationError


expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


def _store_unavailable(e: StoreError, action: str):
    current_app.logger.warning("Store failure while %s: %s", action, e.__cause__ or e)
    return jsonify({"error": str(e), "code": "STORE_UNAVAILABLE", "values": []}), 503


def _not_found(e: NotFoundError):
    return jsonify({"error": str(e), "code": "NOT_FOUND", "values": []}), 404


@expenses_bp.get("")
@require_auth
@require_permission("VIEW_EXPENSES")
def list_expenses_route():
    """Query params: search (type or description), page, per_page."""
    try:
        result = expense_service.list_expenses(
            g.tenant,
            search=request.args.get("search"),
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
        return jsonify(result), 200

    except StoreError as e:
        return _store_unavailable(e, "loading expenses")
    except Exception:
        current_app.logger.exception("Failed to list expenses")
        return jsonify({"error": "Internal server error"}), 500


@expenses_bp.post("")
@require_auth
@require_permission("RECORD_EXPENSES")
def create_expense_route():
    """
    Request body:
    {
        "expense_date": "2026-03-01",
        "expense_type": "Rent",
        "amount": "150000.00",
        "description": "March shop rent"   (optional)
    }
    """
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"error": "Invalid JSON payload", "code": "INVALID_FIELD", "values": []}), 400

        expense = expense_service.create_expense(g.tenant, data)
        return jsonify({"expense": expense.to_dict()}), 201

    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except ConflictError as e:
        return jsonify(e.to_dict()), 409
    except StoreError as e:
        return _store_unavailable(e, "recording expense")
    except Exception:
        current_app.logger.exception("Failed to create expense")
        return jsonify({"error": "Internal server error"}), 500


@expenses_bp.get("/<int:expense_id>")
@require_auth
@require_permission("VIEW_EXPENSES")
def get_expense_route(expense_id: int):
    try:
        expense = expense_service.load_expense(g.tenant, expense_id)
        return jsonify({"expense": expense.to_dict()}), 200

    except NotFoundError as e:
        return _not_found(e)
    except StoreError as e:
        return _store_unavailable(e, "loading expense")
    except Exception:
        current_app.logger.exception("Failed to get expense")
        return jsonify({"error": "Internal server error"}), 500


@expenses_bp.put("/<int:expense_id>")
@require_auth
@require_permission("RECORD_EXPENSES")
def update_expense_route(expense_id: int):
    """Partial update: send only the fields to change."""
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"error": "Invalid JSON payload", "code": "INVALID_FIELD", "values": []}), 400

        expense = expense_service.update_expense(g.tenant, expense_id, data)
        return jsonify({"expense": expense.to_dict()}), 200

    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except ConflictError as e:
        return jsonify(e.to_dict()), 409
    except NotFoundError as e:
        return _not_found(e)
    except StoreError as e:
        return _store_unavailable(e, "updating expense")
    except Exception:
        current_app.logger.exception("Failed to update expense")
        return jsonify({"error": "Internal server error"}), 500


@expenses_bp.delete("/<int:expense_id>")
@require_auth
@require_permission("DELETE_EXPENSES")
def delete_expense_route(expense_id: int):
    try:
        expense_service.delete_expense(g.tenant, expense_id)
        return jsonify({"deleted": expense_id}), 200

    except NotFoundError as e:
        return _not_found(e)
    except ConflictError as e:
        return jsonify(e.to_dict()), 409
    except StoreError as e:
        return _store_unavailable(e, "deleting expense")
    except Exception:
        current_app.logger.exception("Failed to delete expense")
        return jsonify({"error": "Internal server error"}), 500
