# Overview: Flask API routes for supplier purchases (stock receiving).

from flask import Blueprint, request, jsonify, g, current_app

from ..services import purchase_service
from ..services.purchase_service import PurchaseError
from ..validation import (
    ValidationError,
    parse_purchase_request,
    parse_pagination,
    parse_optional_int,
    pagination_block,
)
from ..decorators import require_auth, require_permission


purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


@purchases_bp.post("/")
@require_auth
@require_permission("purchases")
def create_purchase_route():
    """
    Receive a supplier delivery into batches.

    Requires: purchases permission
    """
    try:
        req = parse_purchase_request(request.get_json(silent=True))

        purchase = purchase_service.create_purchase(
            supplier_id=req.supplier_id,
            items=req.items,
            actor_user_id=g.current_user.id,
            payment_method=req.payment_method,
            payment_status=req.payment_status,
            notes=req.notes,
        )

        return jsonify({"purchase": purchase.to_dict(include_lines=True)}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except PurchaseError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create purchase")
        return jsonify({"error": "Internal server error"}), 500


@purchases_bp.get("/")
@require_auth
@require_permission("purchases")
def list_purchases_route():
    try:
        page, limit = parse_pagination(request.args)
        rows, total = purchase_service.list_purchases(
            page=page,
            limit=limit,
            supplier_id=parse_optional_int(request.args, "supplier_id"),
        )
        return jsonify({
            "purchases": [p.to_dict() for p in rows],
            "pagination": pagination_block(page, limit, total),
        }), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list purchases")
        return jsonify({"error": "Internal server error"}), 500
