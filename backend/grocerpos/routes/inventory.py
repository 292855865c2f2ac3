# Overview: Flask API routes for inventory status, manual adjustments and the movement log.

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..models import Product
from ..services import inventory_service, movement_log
from ..services.inventory_service import InventoryError
from ..validation import (
    ValidationError,
    parse_adjustment_request,
    parse_pagination,
    parse_bool_flag,
    pagination_block,
)
from ..decorators import require_auth, require_permission


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("/")
@require_auth
@require_permission("inventory")
def inventory_status_route():
    """
    Stock position per active product.

    Query params: search, low_stock, expiring, page, limit
    """
    try:
        page, limit = parse_pagination(request.args)
        rows, total = inventory_service.get_inventory_status(
            search=(request.args.get("search") or "").strip() or None,
            low_stock=parse_bool_flag(request.args.get("low_stock")),
            expiring=parse_bool_flag(request.args.get("expiring")),
            expiring_within_days=current_app.config.get("EXPIRING_SOON_DAYS", 30),
            page=page,
            limit=limit,
        )
        return jsonify({
            "products": rows,
            "pagination": pagination_block(page, limit, total),
        }), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to get inventory status")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/adjust")
@require_auth
@require_permission("inventory")
def adjust_stock_route():
    """
    Manual batch correction.

    Request: {product_id, batch_id, type: ADJUSTMENT|DAMAGE|RETURN, quantity, reason?}
    """
    try:
        req = parse_adjustment_request(request.get_json(silent=True))

        movement = inventory_service.adjust_stock(
            product_id=req.product_id,
            batch_id=req.batch_id,
            movement_type=req.type,
            quantity=req.quantity,
            actor_user_id=g.current_user.id,
            reason=req.reason,
        )

        return jsonify({"movement": movement.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except InventoryError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/<int:product_id>/movements")
@require_auth
@require_permission("inventory")
def list_movements_route(product_id: int):
    """Movement log for a product, newest first."""
    product = db.session.query(Product).filter_by(id=product_id).first()
    if product is None:
        return jsonify({"error": "Product not found"}), 404

    try:
        limit = int(request.args.get("limit", 200))
    except ValueError:
        return jsonify({"error": "limit must be an integer"}), 400
    limit = max(1, min(limit, 1000))

    movements = movement_log.list_movements(product_id, limit=limit)
    return jsonify({
        "product_id": product_id,
        "movements": [m.to_dict() for m in movements],
    }), 200
