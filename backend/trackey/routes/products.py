# Overview: Flask API routes for products and device identifiers; parses input and returns JSON responses.

# backend/trackey/routes/products.py
"""
Product & Device Identifier API Routes

- Create products (single or batch) with their 15-digit device identifiers
- Replace a product's identifier list, remove one identifier, delete a product
- Product detail with each device annotated sold/available
- Bulk sold/available status lookup

ERRORS:
- 400 INVALID_DEVICE_ID / DUPLICATE_DEVICE_ID / MISSING_FIELD (values name the offenders)
- 409 DEVICE_ID_CONFLICT (identifier already on another product) or
  CONCURRENT_MODIFICATION (product edited by another session)
- 404 product not in the caller's store
- 503 store unavailable
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_permission
from ..services import inventory_service
from ..services.concurrency import StoreError
from ..validation import ConflictError, NotFoundError, ValidationError


products_bp = Blueprint("products", __name__, url_prefix="/api")


def _store_unavailable(e: StoreError, action: str):
    current_app.logger.warning("Store failure while %s: %s", action, e.__cause__ or e)
    return jsonify({"error": str(e), "code": "STORE_UNAVAILABLE", "values": []}), 503


def _not_found(e: NotFoundError):
    return jsonify({"error": str(e), "code": "NOT_FOUND", "values": []}), 404


# =============================================================================
# PRODUCTS
# =============================================================================

@products_bp.get("/products")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_products_route():
    """Query params: search (name, supplier or device id), page, per_page."""
    try:
        result = inventory_service.list_products(
            g.tenant,
            search=request.args.get("search"),
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
        return jsonify(result), 200

    except StoreError as e:
        return _store_unavailable(e, "loading products")
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/products")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def create_products_route():
    """
    Request body, either one product:
    {
        "name": "iPhone 13 128GB",
        "supplier": "Slot",
        "purchase_price": "350000",
        "selling_price": "420000",
        "device_ids": ["356789012345678", "356789012345679"]
    }
    or a batch: {"products": [{...}, {...}]}

    The whole batch is rejected if any item or identifier is invalid.
    """
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"error": "Invalid JSON payload", "code": "INVALID_FIELD", "values": []}), 400

        items = data["products"] if "products" in data else [data]
        products = inventory_service.create_products(g.tenant, items)

        return jsonify({
            "products": [inventory_service.product_summary(p) for p in products],
        }), 201

    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except ConflictError as e:
        return jsonify(e.to_dict()), 409
    except StoreError as e:
        return _store_unavailable(e, "creating products")
    except Exception:
        current_app.logger.exception("Failed to create products")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/products/<int:product_id>")
@require_auth
@require_permission("VIEW_INVENTORY")
def get_product_route(product_id: int):
    """Query params: q (device id filter), page, per_page (device list)."""
    try:
        product = inventory_service.get_product(
            g.tenant,
            product_id,
            device_search=request.args.get("q"),
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
        return jsonify({"product": product}), 200

    except NotFoundError as e:
        return _not_found(e)
    except StoreError as e:
        return _store_unavailable(e, "loading product")
    except Exception:
        current_app.logger.exception("Failed to get product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.put("/products/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def update_product_route(product_id: int):
    """
    Replace the product's identifier list; other fields are optional.

    Request body:
    {
        "device_ids": ["356789012345678"],
        "name": "...",           (optional)
        "selling_price": "..."   (optional)
    }

    available_qty becomes the size of the new list; quantity_sold is kept.
    """
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"error": "Invalid JSON payload", "code": "INVALID_FIELD", "values": []}), 400

        fields = inventory_service.parse_product_fields(data, partial=True)
        snapshot = inventory_service.apply_device_id_set(
            g.tenant,
            product_id=product_id,
            device_ids=data.get("device_ids"),
            fields=fields,
        )
        inventory = snapshot.to_dict()
        product = inventory_service.get_product(g.tenant, product_id)

        return jsonify({"product": product, "inventory": inventory}), 200

    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except ConflictError as e:
        return jsonify(e.to_dict()), 409
    except NotFoundError as e:
        return _not_found(e)
    except StoreError as e:
        return _store_unavailable(e, "updating product")
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/products/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def delete_product_route(product_id: int):
    try:
        inventory_service.delete_product(g.tenant, product_id)
        return jsonify({"deleted": product_id}), 200

    except NotFoundError as e:
        return _not_found(e)
    except ConflictError as e:
        return jsonify(e.to_dict()), 409
    except StoreError as e:
        return _store_unavailable(e, "deleting product")
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# DEVICE IDENTIFIERS
# =============================================================================

@products_bp.delete("/products/<int:product_id>/devices/<device_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def remove_device_route(product_id: int, device_id: str):
    """Removing an identifier the product does not hold is a no-op."""
    try:
        snapshot = inventory_service.remove_device_id(g.tenant, product_id=product_id, device_id=device_id)
        return jsonify({"inventory": snapshot.to_dict()}), 200

    except NotFoundError as e:
        return _not_found(e)
    except ConflictError as e:
        return jsonify(e.to_dict()), 409
    except StoreError as e:
        return _store_unavailable(e, "removing device")
    except Exception:
        current_app.logger.exception("Failed to remove device")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/devices/status")
@require_auth
@require_permission("VIEW_INVENTORY")
def device_status_route():
    """
    Request body: {"device_ids": ["356789012345678", ...]}

    Returns: {"sold": [...], "available": [...]}
    """
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"error": "Invalid JSON payload", "code": "INVALID_FIELD", "values": []}), 400

        return jsonify(inventory_service.device_status(g.tenant, data.get("device_ids"))), 200

    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except StoreError as e:
        return _store_unavailable(e, "checking device status")
    except Exception:
        current_app.logger.exception("Failed to check device status")
        return jsonify({"error": "Internal server error"}), 500
