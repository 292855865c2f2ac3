"""
Sales Service - checkout as one atomic unit of work

WHY: A checkout touches shared batch rows, the movement log, the sale
record and the customer ledger. Either all of it commits or none of it
does; a failure on the third line of a basket must not leave the first
two lines' batches decremented.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from flask import current_app

from ..extensions import db
from ..models import Sale, SaleLine, Product, PAYMENT_METHODS
from ..validation import SaleItemRequest
from grocerpos.time_utils import utcnow
from . import batch_ledger, movement_log, pricing
from .allocation import InsufficientStockError, plan_allocation
from .audit_service import record_audit
from .concurrency import RETRYABLE_ERRORS, begin_write_transaction, is_conflict, retry_settings, run_with_retry
from .customer_service import get_customer, increment_total_purchased
from .invoice_service import generate_invoice_number


SALE_INVOICE_PREFIX = "INV"


class SaleError(Exception):
    """Raised for sale operation errors."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class SaleValidationError(SaleError):
    """Malformed request reached the service (empty basket, bad quantity)."""


class SaleNotFoundError(SaleError):
    status_code = 404


class SaleStateError(SaleError):
    """Referenced entity exists but cannot be sold in its current state."""


class SaleStockError(SaleError):
    """Requested quantity exceeds eligible stock for a product."""


class SaleConflictError(SaleError):
    """Concurrent updates kept winning; the caller may retry the whole checkout."""
    status_code = 409

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, details={"retryable": True, **(details or {})})


@dataclass
class SaleResult:
    sale: Sale
    cost_of_goods_sold_cents: int
    gross_profit_cents: int

    def to_dict(self) -> dict:
        return {
            "sale": self.sale.to_dict(include_lines=True),
            "cost_of_goods_sold_cents": self.cost_of_goods_sold_cents,
            "gross_profit_cents": self.gross_profit_cents,
        }


def _validate_request(items, payment_method: str, discount_cents: int) -> None:
    if not items:
        raise SaleValidationError("At least one item is required")
    for i, item in enumerate(items):
        qty = item.quantity
        if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
            raise SaleValidationError(
                f"items[{i}].quantity must be a positive integer",
                details={"index": i, "quantity": qty},
            )
    if payment_method not in PAYMENT_METHODS:
        raise SaleValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")
    if discount_cents < 0:
        raise SaleValidationError("discount_cents must be >= 0")


def _allocate_item(
    item: SaleItemRequest,
    *,
    as_of: datetime,
    totals: pricing.SaleTotals,
    lines: list[SaleLine],
    actor_user_id: int | None,
) -> None:
    """Plan, decrement, price and log one requested item. Appends to lines/totals."""
    product = db.session.query(Product).filter_by(id=item.product_id).first()
    if product is None:
        raise SaleNotFoundError(
            f"Product not found: {item.product_id}",
            details={"product_id": item.product_id},
        )

    if product.selling_price_cents is None or product.selling_price_cents <= 0:
        raise SaleStateError(
            f"Product {product.name} has no selling price set",
            details={"product_id": product.id},
        )

    batches = batch_ledger.available_batches(product.id, as_of, lock=True)
    try:
        plan = plan_allocation(batches, item.quantity)
    except InsufficientStockError as e:
        raise SaleStockError(
            f"Insufficient stock for {product.name}. Available: {e.available}, Requested: {e.requested}",
            details={
                "product_id": product.id,
                "product_name": product.name,
                "available": e.available,
                "requested": e.requested,
            },
        ) from e

    unit_tax = pricing.unit_tax(product.selling_price_cents, product.tax_rate_bps)
    batches_by_id = {b.id: b for b in batches}

    for slice_ in plan.slices:
        batch = batches_by_id[slice_.batch_id]
        purchase_price_cents = batch.purchase_price_cents

        batch_ledger.decrement_batch(slice_.batch_id, slice_.quantity)

        total_cents = pricing.line_total(slice_.quantity, product.selling_price_cents)
        tax_cents = pricing.line_tax(slice_.quantity, unit_tax)
        cost_cents = pricing.line_cost(slice_.quantity, purchase_price_cents)

        lines.append(SaleLine(
            line_number=len(lines) + 1,
            product_id=product.id,
            batch_id=slice_.batch_id,
            quantity=slice_.quantity,
            unit_price_cents=product.selling_price_cents,
            tax_cents=tax_cents,
            discount_cents=0,
            line_total_cents=total_cents,
            cost_cents=cost_cents,
        ))
        totals.add(total_cents=total_cents, tax_cents=tax_cents, cost_cents=cost_cents)

    # One movement per requested item, not per batch slice; the sale lines
    # are what record which batches were drawn from.
    movement_log.append_movement(
        product_id=product.id,
        movement_type="SALE",
        quantity=-item.quantity,
        reason="Sale transaction",
        actor_user_id=actor_user_id,
    )


def create_sale(
    *,
    items,
    payment_method: str,
    actor_user_id: int | None,
    customer_id: int | None = None,
    discount_cents: int = 0,
    notes: str | None = None,
) -> SaleResult:
    """
    Checkout: allocate stock FIFO-by-expiry, price every slice and persist the sale.

    items is an ordered sequence of objects with product_id and quantity
    (SaleItemRequest). Lines are processed in the given order and, within a
    line, batches in expiry-then-receipt order.

    The whole body runs as one transaction under run_with_retry: any
    SaleError rolls back everything; concurrency conflicts re-run the
    checkout from scratch and surface as SaleConflictError once retries are
    exhausted.

    discount_cents is subtracted once from subtotal + tax and is not capped,
    so a discount larger than the basket yields a negative total.
    """
    _validate_request(items, payment_method, discount_cents)

    def _op() -> SaleResult:
        begin_write_transaction()

        if customer_id is not None and get_customer(customer_id) is None:
            raise SaleNotFoundError("Customer not found", details={"customer_id": customer_id})

        as_of = utcnow()
        totals = pricing.SaleTotals()
        lines: list[SaleLine] = []

        for item in items:
            _allocate_item(item, as_of=as_of, totals=totals, lines=lines, actor_user_id=actor_user_id)

        total_cents = totals.total_cents(discount_cents)
        invoice_number = generate_invoice_number(SALE_INVOICE_PREFIX)

        sale = Sale(
            invoice_number=invoice_number,
            customer_id=customer_id,
            subtotal_cents=totals.subtotal_cents,
            tax_cents=totals.tax_cents,
            discount_cents=discount_cents,
            total_cents=total_cents,
            payment_method=payment_method,
            payment_status="COMPLETED",
            notes=notes,
            created_by_user_id=actor_user_id,
        )
        sale.lines = lines
        db.session.add(sale)
        db.session.flush()

        if customer_id is not None:
            increment_total_purchased(customer_id, total_cents)

        record_audit(
            actor_user_id=actor_user_id,
            action="CREATE_SALE",
            entity_type="Sale",
            entity_id=sale.id,
            details={
                "invoice_number": invoice_number,
                "total_cents": total_cents,
                "item_count": len(items),
            },
        )

        db.session.commit()
        return SaleResult(
            sale=sale,
            cost_of_goods_sold_cents=totals.cost_cents,
            gross_profit_cents=totals.gross_profit_cents(discount_cents),
        )

    try:
        result = run_with_retry(_op, **retry_settings())
    except RETRYABLE_ERRORS as exc:
        if not is_conflict(exc):
            raise
        raise SaleConflictError("Sale could not be completed due to concurrent updates; please retry") from exc

    current_app.logger.info(
        "Sale %s created: total_cents=%d lines=%d",
        result.sale.invoice_number,
        result.sale.total_cents,
        len(result.sale.lines),
    )
    return result


def get_sale(sale_id: int) -> Sale | None:
    return db.session.query(Sale).filter_by(id=sale_id).first()


def list_sales(
    *,
    page: int = 1,
    limit: int = 50,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    customer_id: int | None = None,
) -> tuple[list[Sale], int]:
    """Newest-first page of sales plus the total matching count."""
    query = db.session.query(Sale)
    if start_date is not None:
        query = query.filter(Sale.created_at >= start_date)
    if end_date is not None:
        query = query.filter(Sale.created_at <= end_date)
    if customer_id is not None:
        query = query.filter(Sale.customer_id == customer_id)

    total = query.count()
    rows = (
        query.order_by(Sale.created_at.desc(), Sale.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return rows, total
