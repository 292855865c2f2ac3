# Overview: Service-layer operations for inventory; manual adjustments and stock status.

from __future__ import annotations

from datetime import timedelta

from sqlalchemy import or_

from ..extensions import db
from ..models import Product, ProductBatch, StockMovement
from grocerpos.time_utils import days_until, utcnow, to_utc_z
from . import batch_ledger, movement_log
from .audit_service import record_audit
from .concurrency import RETRYABLE_ERRORS, begin_write_transaction, is_conflict, retry_settings, run_with_retry
"""
Inventory adjustment semantics

- ADJUSTMENT: signed delta applied as given (count corrections).
- DAMAGE: always removes abs(quantity) (shrink, spoilage).
- RETURN: always adds abs(quantity) back to the batch.
- The batch must belong to the product; a decrease may not take the batch
  below zero.
- Exactly one movement per adjustment, carrying the applied signed delta.
"""


class InventoryError(Exception):
    """Raised for inventory adjustment errors."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class InventoryNotFoundError(InventoryError):
    status_code = 404


class InventoryConflictError(InventoryError):
    status_code = 409


def _signed_delta(movement_type: str, quantity: int) -> int:
    if movement_type == "DAMAGE":
        return -abs(quantity)
    if movement_type == "RETURN":
        return abs(quantity)
    if movement_type == "ADJUSTMENT":
        return quantity
    raise InventoryError(f"Unsupported adjustment type: {movement_type}")


def adjust_stock(
    *,
    product_id: int,
    batch_id: int,
    movement_type: str,
    quantity: int,
    actor_user_id: int | None,
    reason: str | None = None,
) -> StockMovement:
    """Apply a manual batch correction and log it. Returns the movement."""
    if quantity == 0:
        raise InventoryError("quantity must be non-zero")
    delta = _signed_delta(movement_type, quantity)

    def _op() -> StockMovement:
        begin_write_transaction()

        product = db.session.query(Product).filter_by(id=product_id).first()
        if product is None:
            raise InventoryNotFoundError("Product not found", details={"product_id": product_id})

        batch = batch_ledger.get_batch(batch_id, lock=True)
        if batch is None or batch.product_id != product_id:
            raise InventoryNotFoundError(
                "Batch not found or does not belong to product",
                details={"product_id": product_id, "batch_id": batch_id},
            )

        if delta < 0:
            if batch.quantity + delta < 0:
                raise InventoryError(
                    "Insufficient stock in batch",
                    details={"batch_id": batch_id, "available": batch.quantity, "requested": -delta},
                )
            batch_ledger.decrement_batch(batch_id, -delta)
        else:
            batch_ledger.increment_batch(batch_id, delta)

        movement = movement_log.append_movement(
            product_id=product_id,
            movement_type=movement_type,
            quantity=delta,
            reason=reason,
            actor_user_id=actor_user_id,
        )

        record_audit(
            actor_user_id=actor_user_id,
            action="STOCK_ADJUSTMENT",
            entity_type="Product",
            entity_id=product_id,
            details={"type": movement_type, "quantity": delta, "batch_id": batch_id, "reason": reason},
        )

        db.session.commit()
        return movement

    try:
        return run_with_retry(_op, **retry_settings())
    except RETRYABLE_ERRORS as exc:
        if not is_conflict(exc):
            raise
        raise InventoryConflictError(
            "Adjustment could not be applied due to concurrent updates; please retry",
            details={"retryable": True},
        ) from exc


def _product_status(product: Product, batches: list[ProductBatch]) -> dict:
    total_stock = sum(b.quantity for b in batches)
    total_value = sum(b.quantity * b.purchase_price_cents for b in batches)
    expiries = [b.expiration_date for b in batches if b.expiration_date is not None]
    nearest_expiry = min(expiries) if expiries else None
    return {
        "id": product.id,
        "name": product.name,
        "barcode": product.barcode,
        "unit": product.unit,
        "min_stock_level": product.min_stock_level,
        "max_stock_level": product.max_stock_level,
        "total_stock": total_stock,
        "total_value_cents": total_value,
        "nearest_expiry": to_utc_z(nearest_expiry) if nearest_expiry else None,
        "days_to_expiry": days_until(nearest_expiry),
        "_nearest_expiry_dt": nearest_expiry,
        "is_low_stock": total_stock <= product.min_stock_level,
        "batches": [b.to_dict() for b in batches],
    }


def get_inventory_status(
    *,
    search: str | None = None,
    low_stock: bool = False,
    expiring: bool = False,
    expiring_within_days: int = 30,
    page: int = 1,
    limit: int = 50,
) -> tuple[list[dict], int]:
    """
    Stock position per active product, derived from batches with quantity > 0.

    low_stock keeps products at or below min_stock_level; expiring keeps
    products whose nearest batch expiry falls within expiring_within_days.
    Filtering happens after aggregation, so pagination is applied last.
    """
    query = db.session.query(Product).filter(Product.is_active.is_(True))
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Product.name.ilike(pattern), Product.barcode.ilike(pattern)))
    products = query.order_by(Product.name.asc()).all()

    batch_rows = (
        db.session.query(ProductBatch)
        .filter(
            ProductBatch.product_id.in_([p.id for p in products] or [-1]),
            ProductBatch.quantity > 0,
        )
        .order_by(ProductBatch.expiration_date.asc(), ProductBatch.id.asc())
        .all()
    )
    batches_by_product: dict[int, list[ProductBatch]] = {}
    for batch in batch_rows:
        batches_by_product.setdefault(batch.product_id, []).append(batch)

    rows = [_product_status(p, batches_by_product.get(p.id, [])) for p in products]

    if low_stock:
        rows = [r for r in rows if r["is_low_stock"]]
    if expiring:
        cutoff = utcnow() + timedelta(days=expiring_within_days)
        rows = [r for r in rows if r["_nearest_expiry_dt"] is not None and r["_nearest_expiry_dt"] <= cutoff]

    for r in rows:
        r.pop("_nearest_expiry_dt")

    total = len(rows)
    start = (page - 1) * limit
    return rows[start:start + limit], total
