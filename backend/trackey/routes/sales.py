# Overview: Flask API routes for device sales; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_permission
from ..services import sales_service
from ..services.concurrency import StoreError
from ..validation import ConflictError, NotFoundError, ValidationError


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_auth
@require_permission("RECORD_SALES")
def record_sale_route():
    """
    Mark a listed device as sold.

    Request body:
    {
        "device_id": "356789012345678",
        "amount": "420000"   (optional)
    }

    Returns:
        201: sale record
        400: malformed device id or amount
        404: device not listed in this store
        409: device already sold
    """
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"error": "Invalid JSON payload", "code": "INVALID_FIELD", "values": []}), 400

        sale = sales_service.record_device_sale(
            g.tenant,
            device_id=data.get("device_id"),
            amount=data.get("amount"),
        )
        return jsonify({"sale": sale.to_dict()}), 201

    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except ConflictError as e:
        return jsonify(e.to_dict()), 409
    except NotFoundError as e:
        return jsonify({"error": str(e), "code": "NOT_FOUND", "values": []}), 404
    except StoreError as e:
        current_app.logger.warning("Store failure while recording sale: %s", e.__cause__ or e)
        return jsonify({"error": str(e), "code": "STORE_UNAVAILABLE", "values": []}), 503
    except Exception:
        current_app.logger.exception("Failed to record sale")
        return jsonify({"error": "Internal server error"}), 500
