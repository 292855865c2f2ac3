# Overview: Append-only stock movement log.

from __future__ import annotations

from ..extensions import db
from ..models import StockMovement, MOVEMENT_TYPES
"""
Movement Log Invariants

- Append-only: rows are inserted and never updated or deleted (enforced by
  mapper events in models/audit.py).
- Written inside the same DB transaction as the batch change it records.
- Not a source of truth for stock levels; see batch_ledger.
"""


def append_movement(
    *,
    product_id: int,
    movement_type: str,
    quantity: int,
    reason: str | None = None,
    actor_user_id: int | None = None,
) -> StockMovement:
    """Append one movement and return it (id assigned, not committed)."""
    if movement_type not in MOVEMENT_TYPES:
        raise ValueError(f"unknown movement type: {movement_type}")
    if quantity == 0:
        raise ValueError("movement quantity must be non-zero")

    movement = StockMovement(
        product_id=product_id,
        type=movement_type,
        quantity=quantity,
        reason=reason,
        created_by_user_id=actor_user_id,
    )
    db.session.add(movement)
    db.session.flush()  # ensures movement.id is assigned without committing
    return movement


def list_movements(product_id: int, *, limit: int = 200) -> list[StockMovement]:
    return (
        db.session.query(StockMovement)
        .filter_by(product_id=product_id)
        .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
        .limit(limit)
        .all()
    )
