# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/grocerpos/routes/sales.py
"""Sales API routes with permission enforcement"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import sales_service
from ..services.sales_service import SaleError
from ..validation import (
    ValidationError,
    parse_sale_request,
    parse_pagination,
    parse_optional_int,
    parse_optional_datetime,
    pagination_block,
)
from ..decorators import require_auth, require_permission, rate_limited


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("/")
@rate_limited("api")
@require_auth
@require_permission("sales")
def create_sale_route():
    """
    Checkout a basket.

    Requires: sales permission
    Available to: admin, manager, cashier

    Request: {customer_id?, items: [{product_id, quantity}], payment_method,
    discount_cents?, notes?}
    """
    try:
        req = parse_sale_request(request.get_json(silent=True))

        result = sales_service.create_sale(
            items=req.items,
            payment_method=req.payment_method,
            actor_user_id=g.current_user.id,
            customer_id=req.customer_id,
            discount_cents=req.discount_cents,
            notes=req.notes,
        )

        return jsonify(result.to_dict()), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/")
@require_auth
@require_permission("sales")
def list_sales_route():
    """
    List sales, newest first.

    Query params: page, limit, start_date, end_date, customer_id
    """
    try:
        page, limit = parse_pagination(request.args)
        rows, total = sales_service.list_sales(
            page=page,
            limit=limit,
            start_date=parse_optional_datetime(request.args, "start_date"),
            end_date=parse_optional_datetime(request.args, "end_date"),
            customer_id=parse_optional_int(request.args, "customer_id"),
        )
        return jsonify({
            "sales": [s.to_dict() for s in rows],
            "pagination": pagination_block(page, limit, total),
        }), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_permission("sales")
def get_sale_route(sale_id: int):
    """Get sale with its lines."""
    sale = sales_service.get_sale(sale_id)
    if sale is None:
        return jsonify({"error": "Sale not found"}), 404
    return jsonify({"sale": sale.to_dict(include_lines=True)}), 200
