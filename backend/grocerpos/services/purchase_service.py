# Overview: Service-layer operations for supplier purchases; receives goods into batches.

from __future__ import annotations

from ..extensions import db
from ..models import Product, Purchase, PurchaseLine
from ..validation import PurchaseItemRequest
from . import batch_ledger, movement_log
from .audit_service import record_audit
from .concurrency import RETRYABLE_ERRORS, begin_write_transaction, is_conflict, retry_settings, run_with_retry
from .customer_service import get_supplier, increment_supplier_balance
from .invoice_service import generate_invoice_number


PURCHASE_INVOICE_PREFIX = "PO"


class PurchaseError(Exception):
    """Raised for purchase operation errors."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class PurchaseNotFoundError(PurchaseError):
    status_code = 404


class PurchaseConflictError(PurchaseError):
    status_code = 409


def _receive_item(item: PurchaseItemRequest, *, actor_user_id: int | None) -> PurchaseLine:
    product = db.session.query(Product).filter_by(id=item.product_id).first()
    if product is None:
        raise PurchaseNotFoundError(
            f"Product not found: {item.product_id}",
            details={"product_id": item.product_id},
        )

    batch = batch_ledger.find_batch(product.id, item.batch_number, lock=True)
    if batch is not None:
        batch_ledger.increment_batch(batch.id, item.quantity)
        # Administrative correction: latest receipt wins for price, expiry only if given
        batch.purchase_price_cents = item.purchase_price_cents
        if item.expiration_date is not None:
            batch.expiration_date = item.expiration_date
            batch.is_expired = False
    else:
        batch = batch_ledger.create_batch(
            product_id=product.id,
            batch_number=item.batch_number,
            quantity=item.quantity,
            purchase_price_cents=item.purchase_price_cents,
            expiration_date=item.expiration_date,
        )

    if product.cost_price_cents != item.purchase_price_cents:
        product.cost_price_cents = item.purchase_price_cents

    movement_log.append_movement(
        product_id=product.id,
        movement_type="PURCHASE",
        quantity=item.quantity,
        reason=f"Purchase - Batch: {item.batch_number}",
        actor_user_id=actor_user_id,
    )

    return PurchaseLine(
        product_id=product.id,
        batch_id=batch.id,
        batch_number=item.batch_number,
        quantity=item.quantity,
        purchase_price_cents=item.purchase_price_cents,
        expiration_date=item.expiration_date,
        line_total_cents=item.quantity * item.purchase_price_cents,
    )


def create_purchase(
    *,
    supplier_id: int,
    items,
    actor_user_id: int | None,
    payment_method: str | None = None,
    payment_status: str = "PENDING",
    notes: str | None = None,
) -> Purchase:
    """
    Receive a supplier delivery.

    Each item lands in the (product, batch_number) batch, created on first
    receipt. The supplier balance grows by the purchase total unless it was
    paid in full (payment_status COMPLETED). Same all-or-nothing and retry
    discipline as checkout, since it writes the same batch rows.
    """
    if not items:
        raise PurchaseError("At least one item is required")

    def _op() -> Purchase:
        begin_write_transaction()

        if get_supplier(supplier_id) is None:
            raise PurchaseNotFoundError("Supplier not found", details={"supplier_id": supplier_id})

        lines = [_receive_item(item, actor_user_id=actor_user_id) for item in items]
        total_cents = sum(line.line_total_cents for line in lines)

        purchase = Purchase(
            invoice_number=generate_invoice_number(PURCHASE_INVOICE_PREFIX),
            supplier_id=supplier_id,
            subtotal_cents=total_cents,
            total_cents=total_cents,
            payment_method=payment_method,
            payment_status=payment_status,
            notes=notes,
            created_by_user_id=actor_user_id,
        )
        purchase.lines = lines
        db.session.add(purchase)
        db.session.flush()

        if payment_status != "COMPLETED":
            increment_supplier_balance(supplier_id, total_cents)

        record_audit(
            actor_user_id=actor_user_id,
            action="CREATE_PURCHASE",
            entity_type="Purchase",
            entity_id=purchase.id,
            details={"invoice_number": purchase.invoice_number, "total_cents": total_cents},
        )

        db.session.commit()
        return purchase

    try:
        return run_with_retry(_op, **retry_settings())
    except RETRYABLE_ERRORS as exc:
        if not is_conflict(exc):
            raise
        raise PurchaseConflictError(
            "Purchase could not be recorded due to concurrent updates; please retry",
            details={"retryable": True},
        ) from exc


def list_purchases(*, page: int = 1, limit: int = 50, supplier_id: int | None = None) -> tuple[list[Purchase], int]:
    query = db.session.query(Purchase)
    if supplier_id is not None:
        query = query.filter(Purchase.supplier_id == supplier_id)
    total = query.count()
    rows = (
        query.order_by(Purchase.created_at.desc(), Purchase.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return rows, total
