# Overview: Service-layer operations for the batch ledger; current stock per product, partitioned by batch.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import case, func, or_, update

from ..extensions import db
from ..models import ProductBatch
from grocerpos.time_utils import utcnow
from .concurrency import StockConflictError, lock_for_update
"""
Batch Ledger Invariants (authoritative)

- Current stock is SUM(product_batches.quantity); never derived from movements.
- quantity >= 0 at all times. Decrements are conditional writes
  (quantity >= n re-checked by the UPDATE itself), so a plan built on a stale
  read can never drive a batch negative.
- Mutations: receive (increment), sale allocation (decrement),
  manual adjustment/return (either). No other code path writes quantity.
- Batches are never deleted; quantity == 0 means exhausted.
"""


def _fifo_order():
    # soonest expiry first, non-expiring last, then oldest received
    return (
        case((ProductBatch.expiration_date.is_(None), 1), else_=0),
        ProductBatch.expiration_date.asc(),
        ProductBatch.created_at.asc(),
        ProductBatch.id.asc(),
    )


def available_batches(product_id: int, as_of: datetime | None = None, *, lock: bool = False) -> list[ProductBatch]:
    """
    Sellable batches for a product in FIFO-by-expiry order.

    Eligible: quantity > 0, not flagged expired, and no expiration date or
    one strictly after as_of (defaults to now).
    """
    as_of = as_of or utcnow()
    query = db.session.query(ProductBatch).filter(
        ProductBatch.product_id == product_id,
        ProductBatch.quantity > 0,
        ProductBatch.is_expired.is_(False),
        or_(
            ProductBatch.expiration_date.is_(None),
            ProductBatch.expiration_date > as_of,
        ),
    ).order_by(*_fifo_order()).populate_existing()
    if lock:
        query = lock_for_update(query)
    return query.all()


def get_batch(batch_id: int, *, lock: bool = False) -> ProductBatch | None:
    query = db.session.query(ProductBatch).filter_by(id=batch_id)
    if lock:
        query = lock_for_update(query)
    return query.first()


def find_batch(product_id: int, batch_number: str, *, lock: bool = False) -> ProductBatch | None:
    query = db.session.query(ProductBatch).filter_by(product_id=product_id, batch_number=batch_number)
    if lock:
        query = lock_for_update(query)
    return query.first()


def decrement_batch(batch_id: int, quantity: int) -> None:
    """
    Atomically take quantity out of a batch.

    The UPDATE carries its own quantity >= n guard; if it matches no row the
    batch changed under us and StockConflictError is raised with nothing
    written.
    """
    if quantity <= 0:
        raise ValueError("decrement quantity must be > 0")

    result = db.session.execute(
        update(ProductBatch)
        .where(ProductBatch.id == batch_id, ProductBatch.quantity >= quantity)
        .values(quantity=ProductBatch.quantity - quantity)
    )
    if result.rowcount != 1:
        raise StockConflictError(batch_id=batch_id, requested=quantity)


def increment_batch(batch_id: int, quantity: int) -> None:
    """Atomically add quantity to a batch (receive, return, positive adjustment)."""
    if quantity <= 0:
        raise ValueError("increment quantity must be > 0")

    result = db.session.execute(
        update(ProductBatch)
        .where(ProductBatch.id == batch_id)
        .values(quantity=ProductBatch.quantity + quantity)
    )
    if result.rowcount != 1:
        raise ValueError(f"batch {batch_id} not found")


def create_batch(
    *,
    product_id: int,
    batch_number: str,
    quantity: int,
    purchase_price_cents: int,
    expiration_date: datetime | None = None,
) -> ProductBatch:
    batch = ProductBatch(
        product_id=product_id,
        batch_number=batch_number,
        quantity=quantity,
        purchase_price_cents=purchase_price_cents,
        expiration_date=expiration_date,
    )
    db.session.add(batch)
    db.session.flush()
    return batch


def get_quantity_on_hand(product_id: int) -> int:
    """Total remaining quantity across all of a product's batches (expired included)."""
    q = db.session.query(func.coalesce(func.sum(ProductBatch.quantity), 0)).filter(
        ProductBatch.product_id == product_id,
    )
    return int(q.scalar() or 0)


def mark_expired_batches(as_of: datetime | None = None) -> int:
    """
    Flag batches whose expiration date has passed. Returns rows flagged.

    Quantities are untouched; flagged stock simply stops being sellable.
    Caller commits.
    """
    as_of = as_of or utcnow()
    result = db.session.execute(
        update(ProductBatch)
        .where(
            ProductBatch.is_expired.is_(False),
            ProductBatch.expiration_date.isnot(None),
            ProductBatch.expiration_date <= as_of,
        )
        .values(is_expired=True)
        .execution_options(synchronize_session="fetch")
    )
    return int(result.rowcount or 0)
